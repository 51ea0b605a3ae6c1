"""
Controlled vocabularies for nursing resumes

Contains:
- CERTIFICATIONS: known certifications (id -> name, full name, issuers, aliases)
- EHR_PLATFORMS: EHR/EMR software platforms
- CLINICAL_SKILLS: clinical skill names keyed by slug
- ASSOCIATIONS / RECOGNITIONS: professional bodies and awards
- NURSING_SPECIALTIES: ordered specialties with inference keywords
- LICENSE_TYPES, US_STATES, COMPACT_STATES: licensure data
- LANGUAGES plus education / short-course keyword sets

Matching helpers live at the bottom.
"""
import re
from typing import Dict, Iterable, List, Optional, Tuple

# ========================================
# Certifications
# ========================================
# Key: vocabulary id, Value: name, full name, issuing bodies, extra aliases
CERTIFICATIONS = {
    # Required by most employers
    "bls": {"name": "BLS", "full_name": "Basic Life Support",
            "issuers": ["American Heart Association", "American Red Cross"],
            "aliases": ["cpr", "bls for healthcare providers"]},
    "acls": {"name": "ACLS", "full_name": "Advanced Cardiovascular Life Support",
             "issuers": ["American Heart Association"], "aliases": ["advanced cardiac life support"]},
    "pals": {"name": "PALS", "full_name": "Pediatric Advanced Life Support",
             "issuers": ["American Heart Association"], "aliases": []},
    "nrp": {"name": "NRP", "full_name": "Neonatal Resuscitation Program",
            "issuers": ["American Academy of Pediatrics"], "aliases": []},
    "nihss": {"name": "NIHSS", "full_name": "NIH Stroke Scale",
              "issuers": ["American Heart Association"], "aliases": ["nih stroke scale certification"]},

    # Critical care / emergency
    "ccrn": {"name": "CCRN", "full_name": "Critical Care Registered Nurse", "issuers": ["AACN"], "aliases": []},
    "cen": {"name": "CEN", "full_name": "Certified Emergency Nurse", "issuers": ["BCEN"], "aliases": []},
    "tcrn": {"name": "TCRN", "full_name": "Trauma Certified Registered Nurse", "issuers": ["BCEN"], "aliases": []},
    "cpen": {"name": "CPEN", "full_name": "Certified Pediatric Emergency Nurse", "issuers": ["BCEN"], "aliases": []},
    "tncc": {"name": "TNCC", "full_name": "Trauma Nursing Core Course", "issuers": ["ENA"], "aliases": []},
    "enpc": {"name": "ENPC", "full_name": "Emergency Nursing Pediatric Course", "issuers": ["ENA"], "aliases": []},

    # Perioperative / maternal-child
    "cnor": {"name": "CNOR", "full_name": "Certified Perioperative Nurse", "issuers": ["CCI"], "aliases": []},
    "rnc-ob": {"name": "RNC-OB", "full_name": "Inpatient Obstetric Nursing", "issuers": ["NCC"], "aliases": []},
    "rnc-nic": {"name": "RNC-NIC", "full_name": "Neonatal Intensive Care Nursing", "issuers": ["NCC"], "aliases": []},
    "rnc-mnn": {"name": "RNC-MNN", "full_name": "Maternal Newborn Nursing", "issuers": ["NCC"], "aliases": []},
    "stable": {"name": "S.T.A.B.L.E.", "full_name": "S.T.A.B.L.E. Program", "issuers": ["S.T.A.B.L.E. Program"],
               "aliases": ["stable program"]},

    # Medical / specialty
    "cmsrn": {"name": "CMSRN", "full_name": "Certified Medical-Surgical Registered Nurse", "issuers": ["AMSN"], "aliases": []},
    "ocn": {"name": "OCN", "full_name": "Oncology Certified Nurse", "issuers": ["ONCC"], "aliases": []},
    "cvrn": {"name": "CVRN", "full_name": "Cardiac Vascular Nursing", "issuers": ["ABCNN"], "aliases": []},
    "pccn": {"name": "PCCN", "full_name": "Progressive Care Certified Nurse", "issuers": ["AACN"], "aliases": []},
    "chpn": {"name": "CHPN", "full_name": "Certified Hospice and Palliative Nurse", "issuers": ["HPCC"], "aliases": []},
    "cpn": {"name": "CPN", "full_name": "Certified Pediatric Nurse", "issuers": ["PNCB"], "aliases": []},
    "cnn": {"name": "CNN", "full_name": "Certified Nephrology Nurse", "issuers": ["NNCC"], "aliases": []},
    "cwocn": {"name": "CWOCN", "full_name": "Certified Wound, Ostomy, Continence Nurse", "issuers": ["WOCNCB"], "aliases": []},
    "rn-bc-informatics": {"name": "RN-BC (Informatics)", "full_name": "Nursing Informatics Certification",
                          "issuers": ["ANCC"], "aliases": ["informatics nursing certification"]},
    "ccm": {"name": "CCM", "full_name": "Certified Case Manager", "issuers": ["CCMC"], "aliases": []},
}

# ========================================
# EHR / EMR Platforms
# ========================================
EHR_PLATFORMS = {
    # Hospital systems
    "epic": {"name": "Epic", "aliases": ["epic systems", "epiccare", "epic hyperspace"]},
    "cerner": {"name": "Cerner (Oracle Health)", "aliases": ["oracle health", "cerner powerchart"]},
    "meditech": {"name": "Meditech", "aliases": ["meditech expanse"]},
    "allscripts": {"name": "Allscripts", "aliases": []},
    "cpsi": {"name": "CPSI", "aliases": []},

    # Outpatient / ambulatory
    "eclinicalworks": {"name": "eClinicalWorks", "aliases": ["ecw"]},
    "nextgen": {"name": "NextGen Healthcare", "aliases": ["nextgen"]},
    "athenahealth": {"name": "athenahealth", "aliases": ["athena", "athenaone"]},
    "veradigm": {"name": "Veradigm (Allscripts)", "aliases": ["veradigm"]},
    "kareo": {"name": "Kareo", "aliases": []},

    # Post-acute / behavioral
    "pointclickcare": {"name": "PointClickCare", "aliases": ["point click care", "pcc"]},
    "netsmart": {"name": "Netsmart", "aliases": ["myavatar"]},
    "homecare-homebase": {"name": "HomeCare HomeBase", "aliases": ["hchb"]},
    "matrixcare": {"name": "MatrixCare", "aliases": []},
    "drchrono": {"name": "DrChrono", "aliases": []},
}

# ========================================
# Clinical Skills
# ========================================
_CLINICAL_SKILL_NAMES = [
    # Core, every specialty
    "Patient Assessment", "Medication Administration", "IV Therapy", "Wound Care",
    "Patient Education", "Care Planning", "Documentation", "Vital Signs Monitoring",
    "Infection Control", "Fall Prevention",

    # Critical care
    "Ventilator Management", "Hemodynamic Monitoring", "Arterial Line Management",
    "Central Line Care", "Sedation Management", "Vasopressor Titration",
    "Blood Product Administration", "Code Blue Response", "Rapid Response", "ECMO Care",

    # Emergency
    "Triage Assessment", "Trauma Care", "Cardiac Monitoring", "Procedural Sedation",
    "Point of Care Testing", "Stroke Protocol", "STEMI Protocol",

    # Maternal-child
    "Fetal Heart Monitoring", "Labor Support", "Epidural Monitoring", "Newborn Resuscitation",
    "Premature Infant Care", "Phototherapy", "Family-Centered Care", "Weight-Based Dosing",
    "Immunization Administration",

    # Perioperative
    "Sterile Technique", "Surgical Positioning", "Surgical Counts", "Anesthesia Support",

    # Cardiac / telemetry
    "Cardiac Rhythm Interpretation", "12-Lead ECG", "Telemetry Monitoring",
    "Heart Failure Management", "Anticoagulation Therapy",

    # Oncology / renal
    "Chemotherapy Administration", "Port-a-Cath Care", "Symptom Management",
    "Palliative Care", "Hemodialysis", "Peritoneal Dialysis", "Vascular Access Care",

    # Behavioral / neuro / rehab / community
    "Crisis Intervention", "De-escalation Techniques", "Suicide Risk Assessment",
    "Therapeutic Communication", "Neurological Assessment", "Seizure Management",
    "Mobility Assessment", "Pain Management", "Discharge Planning",
    "Medication Reconciliation", "Ostomy Care", "PICC Line Care", "Caregiver Education",
    "Chronic Disease Management", "Phone Triage", "Utilization Review",
]


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


CLINICAL_SKILLS = {slugify(name): {"name": name, "aliases": []} for name in _CLINICAL_SKILL_NAMES}
CLINICAL_SKILLS["iv-therapy"]["aliases"] = ["iv insertion", "iv starts", "intravenous therapy"]
CLINICAL_SKILLS["12-lead-ecg"]["aliases"] = ["12 lead ekg", "ekg interpretation"]
CLINICAL_SKILLS["vital-signs-monitoring"]["aliases"] = ["vital signs"]

# ========================================
# Professional Associations & Recognitions
# ========================================
ASSOCIATIONS = {
    "ana": {"name": "American Nurses Association", "aliases": ["ana"]},
    "aacn": {"name": "American Association of Critical-Care Nurses", "aliases": ["aacn"]},
    "aorn": {"name": "Association of periOperative Registered Nurses", "aliases": ["aorn"]},
    "ena": {"name": "Emergency Nurses Association", "aliases": ["ena"]},
    "ons": {"name": "Oncology Nursing Society", "aliases": ["ons"]},
    "awhonn": {"name": "Association of Women's Health, Obstetric and Neonatal Nurses", "aliases": ["awhonn"]},
    "apna": {"name": "American Psychiatric Nurses Association", "aliases": ["apna"]},
    "sigma": {"name": "Sigma Theta Tau International Honor Society of Nursing",
              "aliases": ["sigma theta tau", "sigma", "stti"]},
    "nsna": {"name": "National Student Nurses' Association", "aliases": ["nsna"]},
    "aanp": {"name": "American Association of Nurse Practitioners", "aliases": ["aanp"]},
}

RECOGNITIONS = {
    "daisy-award": {"name": "DAISY Award for Extraordinary Nurses", "aliases": ["daisy award", "daisy"]},
    "nurse-of-the-year": {"name": "Nurse of the Year", "aliases": []},
    "preceptor-of-the-year": {"name": "Preceptor of the Year", "aliases": []},
    "employee-of-the-month": {"name": "Employee of the Month", "aliases": []},
    "magnet-nurse-excellence": {"name": "Magnet Nursing Excellence Award", "aliases": ["magnet award"]},
    "deans-list": {"name": "Dean's List", "aliases": ["deans list"]},
    "summa-cum-laude": {"name": "Summa Cum Laude", "aliases": []},
    "magna-cum-laude": {"name": "Magna Cum Laude", "aliases": []},
    "cum-laude": {"name": "Cum Laude", "aliases": []},
}

# ========================================
# Nursing Specialties (definition order decides ties)
# ========================================
NURSING_SPECIALTIES = [
    ("icu", "ICU / Critical Care", ["ICU", "MICU", "SICU", "CCU", "Critical Care"]),
    ("er", "Emergency / Trauma", ["ER", "ED", "Emergency", "Trauma"]),
    ("med-surg", "Medical-Surgical", ["Med-Surg", "Medical Surgical"]),
    ("labor-delivery", "Labor & Delivery", ["L&D", "OB", "Labor", "Delivery", "Obstetrics"]),
    ("postpartum", "Postpartum / Mother-Baby", ["Postpartum", "Mother Baby", "Couplet Care"]),
    ("nicu", "NICU", ["NICU", "Neonatal", "Newborn ICU"]),
    ("pediatrics", "Pediatrics", ["Peds", "Pediatric", "Children"]),
    ("or", "Operating Room / Perioperative", ["OR", "Surgery", "Perioperative", "PACU"]),
    ("cardiac", "Cardiac / Cath Lab", ["Cardiac", "Cath Lab", "Cardiology", "CVICU"]),
    ("oncology", "Oncology", ["Oncology", "Cancer", "Chemo"]),
    ("telemetry", "Telemetry / Step-Down", ["Tele", "Telemetry", "PCU", "Step-Down"]),
    ("neuro", "Neurology / Neuro ICU", ["Neuro", "Neurology", "Stroke"]),
    ("dialysis", "Dialysis / Nephrology", ["Dialysis", "Hemo", "Renal", "Nephrology"]),
    ("psych", "Psychiatric / Mental Health", ["Psych", "Mental Health", "Behavioral Health"]),
    ("home-health", "Home Health", ["Home Health", "Home Care", "Visiting"]),
    ("hospice", "Hospice / Palliative", ["Hospice", "Palliative", "End of Life"]),
    ("rehab", "Rehabilitation", ["Rehab", "Rehabilitation", "SNF"]),
    ("outpatient", "Outpatient / Clinic", ["Outpatient", "Clinic", "Ambulatory"]),
    ("case-management", "Case Management", ["Case Management", "Utilization Review", "UR"]),
    ("school", "School Nursing", ["School Nurse", "Student Health"]),
    ("infusion", "Infusion", ["Infusion", "IV Therapy"]),
    ("wound-care", "Wound Care", ["Wound", "Ostomy", "WOC"]),
    ("float-pool", "Float Pool", ["Float", "Resource", "PRN"]),
    ("travel", "Travel Nursing", ["Travel", "Contract", "Agency"]),
]

# ========================================
# Licensure
# ========================================
LICENSE_TYPES = {
    "rn": {"name": "RN", "full_name": "Registered Nurse", "aliases": ["registered nurse", "rn license"]},
    "aprn": {"name": "APRN", "full_name": "Advanced Practice Registered Nurse",
             "aliases": ["np", "nurse practitioner", "fnp", "cns", "crna", "cnm"]},
    "lpn": {"name": "LPN", "full_name": "Licensed Practical Nurse", "aliases": ["licensed practical nurse"]},
    "lvn": {"name": "LVN", "full_name": "Licensed Vocational Nurse", "aliases": ["licensed vocational nurse"]},
}

US_STATES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas", "CA": "California",
    "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware", "FL": "Florida", "GA": "Georgia",
    "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi", "MO": "Missouri",
    "MT": "Montana", "NE": "Nebraska", "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey",
    "NM": "New Mexico", "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont",
    "VA": "Virginia", "WA": "Washington", "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
    "DC": "District of Columbia", "PR": "Puerto Rico", "GU": "Guam", "VI": "Virgin Islands",
}

# Nurse Licensure Compact members
COMPACT_STATES = frozenset([
    "AL", "AZ", "AR", "CO", "DE", "FL", "GA", "ID", "IN", "IA",
    "KS", "KY", "LA", "ME", "MD", "MS", "MO", "MT", "NE", "NH",
    "NJ", "NM", "NC", "ND", "OH", "OK", "SC", "SD", "TN", "TX",
    "UT", "VA", "VT", "WV", "WI", "WY",
])

# ========================================
# Languages
# ========================================
LANGUAGES = [
    "english", "spanish", "french", "german", "italian", "portuguese", "russian",
    "mandarin", "chinese", "japanese", "korean", "arabic", "hindi", "bengali", "urdu",
    "swahili", "dutch", "swedish", "norwegian", "danish", "finnish", "polish", "turkish",
    "vietnamese", "thai", "greek", "hebrew", "farsi", "persian", "lingala", "cantonese",
    "punjabi", "tagalog", "filipino", "indonesian", "malay", "tamil", "telugu", "marathi",
    "gujarati", "ukrainian", "czech", "slovak", "romanian", "hungarian", "bulgarian",
    "serbian", "croatian", "latin", "amharic", "somali", "hausa", "igbo", "yoruba", "zulu",
    "xhosa", "afrikaans", "malagasy", "nepali", "khmer", "lao", "burmese", "mongolian",
    "haitian creole", "american sign language", "asl",
]

LANGUAGE_INDICATORS = [
    "fluent in", "proficient in", "native", "speaker", "language", "bilingual",
    "multilingual", "translator", "interpretation", "conversational",
]

# ========================================
# Education vs. Short Course Keywords
# ========================================
FORMAL_EDUCATION_KEYWORDS = [
    "bachelor", "bachelors", "master", "masters", "phd", "doctorate", "undergraduate",
    "graduate", "bs", "ba", "ms", "ma", "mba", "bsc", "msc", "university", "college",
    "associate", "adn", "asn", "bsn", "msn", "dnp",
]

SHORT_COURSE_KEYWORDS = [
    "certificate", "certification", "certified", "diploma", "course", "training",
    "workshop", "seminar", "professional development", "credential", "license",
    "bootcamp", "nanodegree", "specialization", "microcredential", "microdegree",
    "professional certificate", "udemy", "coursera", "edx", "skillshare", "linkedin learning",
]

FORMAL_INSTITUTION_KEYWORDS = ["university", "college", "institute of technology"]

SHORT_COURSE_INSTITUTION_KEYWORDS = [
    "course", "workshop", "training", "certificate", "learning platform",
    "udemy", "coursera", "edx", "skillshare", "linkedin learning",
]


# ========================================
# Matching helpers
# ========================================

def normalize_text(text: str) -> str:
    """Lowercase, punctuation to spaces, collapsed whitespace."""
    text = (text or "").lower().replace("&", " and ")
    return " ".join(re.sub(r"[^a-z0-9+#]+", " ", text).split())


def contains_phrase(text: str, phrase: str) -> bool:
    """Whole-token containment of `phrase` in `text` (both normalized here)."""
    haystack = normalize_text(text)
    needle = normalize_text(phrase)
    if not haystack or not needle:
        return False
    return f" {needle} " in f" {haystack} "


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    return any(contains_phrase(text, phrase) for phrase in phrases)


def _terms(entry_id: str, entry: dict) -> List[str]:
    terms = [entry_id.replace("-", " "), entry.get("name", ""), entry.get("full_name", "")]
    terms.extend(entry.get("aliases", []))
    return [t for t in (normalize_text(term) for term in terms) if t]


MIN_CONTAINMENT_LENGTH = 3


def match_vocabulary(item: str, vocabulary: Dict[str, dict]) -> Optional[str]:
    """
    Vocabulary id for a free-text item, or None.

    Exact normalized match against every entry first, then token-level
    containment in either direction. Dict order decides ties.
    """
    normalized = normalize_text(item)
    if not normalized:
        return None

    indexed: List[Tuple[str, List[str]]] = [(vid, _terms(vid, entry)) for vid, entry in vocabulary.items()]

    for vid, terms in indexed:
        if normalized in terms:
            return vid

    padded_item = f" {normalized} "
    for vid, terms in indexed:
        for term in terms:
            if min(len(term), len(normalized)) < MIN_CONTAINMENT_LENGTH:
                continue
            if f" {term} " in padded_item or padded_item in f" {term} ":
                return vid
    return None


def match_specialty(text: str) -> Optional[str]:
    """First specialty (definition order) whose keyword appears in text."""
    for specialty_id, _name, keywords in NURSING_SPECIALTIES:
        for keyword in keywords:
            if _keyword_hit(text, keyword):
                return specialty_id
    return None


def specialty_by_name(value: str) -> Optional[str]:
    normalized = normalize_text(value)
    for specialty_id, name, _keywords in NURSING_SPECIALTIES:
        if normalized in (normalize_text(specialty_id), normalize_text(name)):
            return specialty_id
    return None


def _keyword_hit(text: str, keyword: str) -> bool:
    # Short upper-case keywords (ER, OR, OB, UR) are abbreviations: case-sensitive
    if len(keyword) <= 3 and keyword.isupper():
        return re.search(rf"(?<![A-Za-z0-9]){re.escape(keyword)}(?![A-Za-z0-9])", text or "") is not None
    return contains_phrase(text, keyword)


def resolve_state(value: str) -> Optional[str]:
    """Two-letter jurisdiction code from a code or a full state name."""
    cleaned = (value or "").strip()
    if cleaned.upper() in US_STATES:
        return cleaned.upper()
    normalized = normalize_text(cleaned)
    for code, name in US_STATES.items():
        if normalize_text(name) == normalized:
            return code
    return None


def is_compact_state(code: str) -> bool:
    return code in COMPACT_STATES

"""
Import normalization: arbitrary raw resume -> CanonicalDocument.

Pure and deterministic. Stages run in order:
  1. structural validation
  2. education / short-course split
  3. language extraction from competencies
  4. controlled-vocabulary matching
  5. specialty inference
  6. license mapping
"""
import logging
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as date_parser

from resumesync.config import DEFAULT_LANGUAGE_PROFICIENCY, MAX_DOMAIN_SKILLS, SHORT_COURSE_MAX_DAYS
from resumesync.models.document import (
    Affiliation,
    CanonicalDocument,
    Credential,
    CustomBlock,
    DomainSkills,
    EducationEntry,
    Honor,
    Identity,
    LanguageSkill,
    License,
    Position,
    Project,
    ShortCourse,
    Supplemental,
    VolunteerEntry,
)
from resumesync.services import vocabularies as vocab
from resumesync.services.import_adapter import AdaptedImport, adapt, flag, text
from resumesync.utils.exceptions import ImportRejectedError

logger = logging.getLogger(__name__)

_OPEN_ENDED = {"present", "current", "now", "ongoing", "in progress", "expected"}
_DATE_DEFAULT = datetime(2000, 1, 1)


# ========================================
# Stage 1: structural validation
# ========================================

def validate_structure(raw: Any) -> AdaptedImport:
    """Adapt and check a raw import; raises ImportRejectedError when unusable."""
    if isinstance(raw, (list, tuple)):
        raise ImportRejectedError("Import must be an object, not an array")
    if not isinstance(raw, Mapping):
        raise ImportRejectedError("Import must be an object")

    adapted = adapt(raw)
    usable = (
        isinstance(adapted.identity, Mapping)
        or isinstance(adapted.positions, list)
        or isinstance(adapted.education, list)
        or isinstance(adapted.competencies, list)
    )
    if not usable:
        raise ImportRejectedError(
            "Import has no usable personal info, experience, education or skills"
        )
    return adapted


# ========================================
# Stage 2: education vs. short course
# ========================================

def parse_date(value: str) -> Optional[datetime]:
    """Best-effort parse of a resume date; None for blanks, 'Present' and garbage."""
    cleaned = (value or "").strip()
    if not cleaned or cleaned.lower() in _OPEN_ENDED:
        return None
    try:
        return date_parser.parse(cleaned, default=_DATE_DEFAULT)
    except (ValueError, OverflowError):
        return None


def classify_education(record: Dict[str, Any]) -> Tuple[str, str]:
    """
    ("education" | "course", rule) for one adapted education record.

    First matching rule wins.
    """
    credential = text(record.get("credential"))
    institution = text(record.get("institution"))
    narrative = text(record.get("narrative"))

    if vocab.contains_any(credential, vocab.FORMAL_EDUCATION_KEYWORDS):
        return "education", "formal_credential"
    if vocab.contains_any(credential, vocab.SHORT_COURSE_KEYWORDS):
        return "course", "course_credential"
    if vocab.contains_any(institution, vocab.FORMAL_INSTITUTION_KEYWORDS):
        return "education", "formal_institution"
    if vocab.contains_any(institution, vocab.SHORT_COURSE_INSTITUTION_KEYWORDS):
        return "course", "course_institution"

    start = parse_date(text(record.get("start")))
    end = parse_date(text(record.get("end")))
    if start and end and 0 <= (end - start).days < SHORT_COURSE_MAX_DAYS:
        return "course", "short_duration"

    if vocab.contains_any(narrative, vocab.SHORT_COURSE_KEYWORDS):
        return "course", "course_narrative"
    return "education", "default"


def split_education(records: List[Dict[str, Any]]) -> Tuple[List[EducationEntry], List[ShortCourse]]:
    education: List[EducationEntry] = []
    courses: List[ShortCourse] = []
    seen_courses = set()

    for record in records:
        credential = text(record.get("credential"))
        institution = text(record.get("institution"))
        if not credential and not institution:
            continue

        kind, rule = classify_education(record)
        end = text(record.get("end"))
        logger.debug("Education entry classified", extra={"kind": kind, "rule": rule})

        if kind == "course":
            name = credential or institution
            if name.casefold() in seen_courses:
                continue
            seen_courses.add(name.casefold())
            courses.append(ShortCourse(
                name=name,
                issuer=institution if credential else "",
                date=end or text(record.get("graduation_date")),
                narrative=text(record.get("narrative")),
            ))
        else:
            education.append(EducationEntry(
                credential=credential,
                institution=institution,
                location=text(record.get("location")),
                graduation_date=text(record.get("graduation_date")) or end,
                narrative=text(record.get("narrative")),
                is_in_progress=flag(record.get("is_in_progress")) or end.lower() in _OPEN_ENDED,
            ))
    return education, courses


# ========================================
# Stage 3: languages out of competencies
# ========================================

_PHRASE_PATTERNS = [
    re.compile(r"\bfluent in\s+(.+)", re.IGNORECASE),
    re.compile(r"\bproficient in\s+(.+)", re.IGNORECASE),
    re.compile(r"\bnative speaker of\s+(.+)", re.IGNORECASE),
    re.compile(r"(.+?)\s+speaker\b", re.IGNORECASE),
]
_PROFICIENCY_WORDS = ["native", "proficient", "conversational", "basic", "intermediate", "fluent"]


def _language_names(value: str) -> List[str]:
    return [name for name in vocab.LANGUAGES if vocab.contains_phrase(value, name)]


def _display_language(name: str) -> str:
    return name.upper() if name == "asl" else name.title()


def _proficiency_from(value: str) -> str:
    for word in _PROFICIENCY_WORDS:
        if vocab.contains_phrase(value, word):
            return word.title()
    return DEFAULT_LANGUAGE_PROFICIENCY


def extract_languages(item: str) -> List[LanguageSkill]:
    """Languages a competency string states, or [] when it is not about languages."""
    has_indicator = vocab.contains_any(item, vocab.LANGUAGE_INDICATORS)
    names = _language_names(item)
    if not has_indicator and not names:
        return []

    if not names:
        for pattern in _PHRASE_PATTERNS:
            match = pattern.search(item)
            if match:
                phrase = re.sub(r"\b(native|fluent|proficient)\b", "", match.group(1), flags=re.IGNORECASE)
                phrase = phrase.strip(" .,;:-")
                if phrase:
                    names = [phrase.lower()]
                break
    if not names:
        return []

    proficiency = _proficiency_from(item)
    return [LanguageSkill(language=_display_language(name), proficiency=proficiency) for name in names]


def split_languages(
    competencies: List[str], explicit: List[Dict[str, str]]
) -> Tuple[List[str], List[LanguageSkill]]:
    """Languages found in competencies come first; `explicit` only adds new names."""
    languages: List[LanguageSkill] = []
    seen = set()

    def add(skill: LanguageSkill):
        key = skill.language.casefold()
        if key not in seen:
            seen.add(key)
            languages.append(skill)

    remaining = []
    for item in competencies:
        found = extract_languages(item)
        if found:
            for skill in found:
                add(skill)
        else:
            remaining.append(item)

    for entry in explicit:
        add(LanguageSkill(
            language=entry["language"].strip(),
            proficiency=entry.get("proficiency") or DEFAULT_LANGUAGE_PROFICIENCY,
        ))
    return remaining, languages


# ========================================
# Stage 4: controlled vocabularies
# ========================================

def _credential(item: Dict[str, str], credential_id: str) -> Credential:
    entry = vocab.CERTIFICATIONS[credential_id]
    return Credential(
        id=credential_id,
        display_name=entry["name"],
        expiration=item.get("expiration", ""),
        issuer=item.get("issuer") or entry["issuers"][0],
    )


def match_certifications(items: List[Dict[str, str]]) -> Tuple[List[Credential], List[ShortCourse]]:
    credentials: List[Credential] = []
    legacy: List[ShortCourse] = []
    for item in items:
        credential_id = vocab.match_vocabulary(item["name"], vocab.CERTIFICATIONS)
        if credential_id is None and item.get("full_name"):
            credential_id = vocab.match_vocabulary(item["full_name"], vocab.CERTIFICATIONS)
        if credential_id:
            credentials.append(_credential(item, credential_id))
        else:
            legacy.append(ShortCourse(
                name=item["name"],
                issuer=item.get("issuer", ""),
                date=item.get("date") or item.get("expiration", ""),
                narrative=item.get("narrative", ""),
            ))
    return credentials, legacy


class _DomainSkillBuilder:
    """Accumulates domain skills up to the configured cap."""

    def __init__(self):
        self.platform_ids: List[str] = []
        self.skill_ids: List[str] = []
        self.custom: List[str] = []

    @property
    def full(self) -> bool:
        return len(self.platform_ids) + len(self.skill_ids) + len(self.custom) >= MAX_DOMAIN_SKILLS

    def _add(self, bucket: List[str], value: str) -> bool:
        if value in bucket:
            return True
        if self.full:
            return False
        bucket.append(value)
        return True

    def add_known(self, item: str) -> bool:
        """Match against platforms, then clinical skills; True when absorbed."""
        platform_id = vocab.match_vocabulary(item, vocab.EHR_PLATFORMS)
        if platform_id:
            return self._add(self.platform_ids, platform_id)
        skill_id = vocab.match_vocabulary(item, vocab.CLINICAL_SKILLS)
        if skill_id:
            return self._add(self.skill_ids, skill_id)
        return False

    def add_custom(self, item: str) -> bool:
        if any(existing.casefold() == item.casefold() for existing in self.custom):
            return True
        return self._add(self.custom, item)


def match_named(items: List[Dict[str, str]], vocabulary: Dict[str, dict]) -> List[Tuple[Dict[str, str], Optional[str]]]:
    return [(item, vocab.match_vocabulary(item["name"], vocabulary)) for item in items]


# ========================================
# Stage 6: licenses
# ========================================

def map_licenses(records: List[Dict[str, str]]) -> List[License]:
    licenses = []
    for record in records:
        license_type = vocab.match_vocabulary(record.get("type", ""), vocab.LICENSE_TYPES)
        if not license_type:
            continue
        jurisdiction = vocab.resolve_state(record.get("jurisdiction", "")) or ""
        licenses.append(License(
            type=vocab.LICENSE_TYPES[license_type]["name"],
            jurisdiction=jurisdiction,
            number=record.get("number", ""),
            is_multi_jurisdiction=vocab.is_compact_state(jurisdiction),
            expiration=record.get("expiration", ""),
        ))
    return licenses


# ========================================
# Pipeline
# ========================================

def normalize(raw: Any) -> CanonicalDocument:
    """Map a raw import into the canonical document, or raise ImportRejectedError."""
    adapted = validate_structure(raw)

    identity = Identity(**adapted.identity_fields())
    positions = [
        Position(
            title=text(p["title"]),
            organization=text(p["organization"]),
            location=text(p["location"]),
            start=text(p["start"]),
            end=text(p["end"]),
            is_current=flag(p["is_current"]) or text(p["end"]).lower() in _OPEN_ENDED,
            narrative=text(p["narrative"]),
        )
        for p in adapted.position_records()
    ]

    education, short_courses = split_education(adapted.education_records())

    competencies, languages = split_languages(adapted.competency_strings(), adapted.languages)

    credentials, legacy_courses = match_certifications(adapted.certifications)

    skills = _DomainSkillBuilder()
    generic = []
    for item in adapted.platforms + adapted.clinical_skills + adapted.custom_skills:
        if not skills.add_known(item) and not skills.add_custom(item):
            # Over the cap: keep it as a plain competency rather than drop it
            generic.append(item)

    for item in competencies:
        if skills.add_known(item):
            continue
        credential_id = vocab.match_vocabulary(item, vocab.CERTIFICATIONS)
        if credential_id:
            credentials.append(_credential({"name": item}, credential_id))
            continue
        generic.append(item)

    affiliations = [
        Affiliation(name=item["name"], vocabulary_id=vid, role=item.get("role", ""))
        for item, vid in match_named(adapted.memberships, vocab.ASSOCIATIONS)
    ]
    honors = [
        Honor(name=item["name"], vocabulary_id=vid, issuer=item.get("issuer", ""), date=item.get("date", ""))
        for item, vid in match_named(adapted.honors, vocab.RECOGNITIONS)
    ]

    specialty_id = vocab.specialty_by_name(adapted.specialty) if adapted.specialty else None
    if specialty_id is None:
        corpus = "\n".join(f"{p.title}\n{p.narrative}" for p in positions)
        specialty_id = vocab.match_specialty(corpus)

    licenses = map_licenses(adapted.licenses)

    document = CanonicalDocument(
        identity=identity,
        narrative=adapted.narrative,
        positions=positions,
        education=education,
        short_courses=short_courses,
        competencies=generic,
        licenses=licenses,
        credentials=credentials,
        domain_skills=DomainSkills(
            platform_ids=skills.platform_ids,
            skill_ids=skills.skill_ids,
            specialty_id=specialty_id,
            custom_skills=skills.custom,
        ),
        supplemental=Supplemental(
            short_courses_legacy=legacy_courses,
            affiliations=affiliations,
            volunteering=[VolunteerEntry(**v) for v in adapted.volunteering],
            honors=honors,
            projects=[Project(**p) for p in adapted.projects],
            languages=languages,
            custom_blocks=[CustomBlock(**b) for b in adapted.custom_blocks],
        ),
    )
    logger.info(
        "Import normalized",
        extra={
            "positions": len(positions),
            "education": len(education),
            "short_courses": len(short_courses),
            "languages": len(languages),
            "credentials": len(document.credentials),
        },
    )
    return document

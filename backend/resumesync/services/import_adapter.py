"""
Input adapter for raw resume imports.

Raw imports name the same field in many ways (`company`, `employer`,
`organization`...). This module resolves every alias once, at the start of
normalization, so the pipeline only ever sees canonical names.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

# Key: canonical name, Value: accepted raw names in priority order
TOP_LEVEL_ALIASES = {
    "identity": ["identity", "personalInfo", "personal_info", "contactInfo", "contact", "basics"],
    "narrative": ["narrative", "summary", "professionalSummary", "profile", "objective", "about"],
    "positions": ["positions", "experience", "workExperience", "work_experience", "employment", "work"],
    "education": ["education", "schools", "academics"],
    "competencies": ["competencies", "skills", "keySkills", "coreCompetencies"],
    "licenses": ["licenses", "licensure", "nursingLicenses"],
    "certifications": ["certifications", "certificates", "credentials"],
    "domain_skills": ["healthcareSkills", "domainSkills"],
    "additional": ["additional", "supplemental", "additionalInfo"],
}

DOMAIN_SKILL_ALIASES = {
    "platforms": ["ehrSystems", "platformIds", "platforms", "emrSystems", "software"],
    "clinical_skills": ["clinicalSkills", "skillIds", "skills"],
    "specialty": ["specialty", "specialtyId"],
    "custom_skills": ["customSkills", "otherSkills"],
}

ADDITIONAL_ALIASES = {
    "languages": ["languages"],
    "certifications": ["certifications", "shortCoursesLegacy"],
    "memberships": ["memberships", "affiliations", "associations", "professionalMemberships"],
    "honors": ["honors", "awards", "recognitions"],
    "volunteering": ["volunteering", "volunteer", "volunteerExperience"],
    "projects": ["projects"],
    "custom_blocks": ["customBlocks", "customSections"],
}

IDENTITY_ALIASES = {
    "name": ["name", "fullName", "full_name"],
    "email": ["email", "emailAddress"],
    "phone": ["phone", "phoneNumber", "mobile"],
    "location": ["location", "address", "city"],
    "linkedin": ["linkedin", "linkedIn", "linkedinUrl"],
    "website": ["website", "portfolio", "url"],
}

POSITION_ALIASES = {
    "title": ["title", "jobTitle", "position", "role"],
    "organization": ["organization", "company", "employer", "companyName", "facility"],
    "location": ["location", "city"],
    "start": ["start", "startDate", "from"],
    "end": ["end", "endDate", "to"],
    "is_current": ["isCurrent", "current", "currentlyWorking"],
    "narrative": ["narrative", "description", "responsibilities", "achievements", "summary"],
}

EDUCATION_ALIASES = {
    "credential": ["credential", "degree", "qualification", "program"],
    "institution": ["institution", "school", "university", "college", "provider"],
    "location": ["location", "city"],
    "start": ["start", "startDate", "from"],
    "end": ["end", "endDate", "to"],
    "graduation_date": ["graduationDate", "graduation", "date"],
    "narrative": ["narrative", "description", "details", "achievements"],
    "is_in_progress": ["isInProgress", "inProgress", "current"],
}

LICENSE_ALIASES = {
    "type": ["type", "licenseType"],
    "jurisdiction": ["jurisdiction", "state"],
    "number": ["number", "licenseNumber"],
    "expiration": ["expiration", "expirationDate", "expires"],
}

CERTIFICATION_ALIASES = {
    "name": ["name", "displayName", "title", "certification", "id"],
    "full_name": ["fullName"],
    "issuer": ["issuer", "issuingBody", "organization"],
    "expiration": ["expiration", "expirationDate", "expires"],
    "date": ["date", "issueDate", "dateEarned"],
    "narrative": ["narrative", "description"],
}

_ABSENT = object()


def pick(mapping: Mapping, aliases: Sequence[str], default: Any = None) -> Any:
    """First non-None value found under any alias."""
    for alias in aliases:
        value = mapping.get(alias, _ABSENT)
        if value is not _ABSENT and value is not None:
            return value
    return default


def text(value: Any) -> str:
    """Coerce a raw scalar or list of bullet strings to one trimmed string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return "\n".join(t for t in (text(v) for v in value) if t)
    if isinstance(value, bool):
        return ""
    return str(value).strip()


def flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _records(value: Any) -> List[Mapping]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _items(value: Any) -> List[Any]:
    """Strings or mappings from a raw list; other entries dropped."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (str, Mapping))]


def _adapt_record(record: Mapping, aliases: Dict[str, List[str]]) -> Dict[str, Any]:
    return {name: pick(record, names) for name, names in aliases.items()}


def _as_named(item: Any, name_aliases: Sequence[str], extra: Dict[str, List[str]]) -> Optional[Dict[str, Any]]:
    if isinstance(item, str):
        return {"name": item.strip(), **{key: "" for key in extra}} if item.strip() else None
    name = text(pick(item, name_aliases))
    if not name:
        return None
    return {"name": name, **{key: text(pick(item, names)) for key, names in extra.items()}}


@dataclass
class AdaptedImport:
    """A raw import with every field under its canonical name.

    `identity`, `positions`, `education` and `competencies` keep their raw
    value (whatever type it had) so structural validation can judge them.
    """
    identity: Any = None
    narrative: str = ""
    positions: Any = None
    education: Any = None
    competencies: Any = None
    licenses: List[Dict[str, Any]] = field(default_factory=list)
    certifications: List[Dict[str, Any]] = field(default_factory=list)
    platforms: List[str] = field(default_factory=list)
    clinical_skills: List[str] = field(default_factory=list)
    specialty: str = ""
    custom_skills: List[str] = field(default_factory=list)
    languages: List[Dict[str, str]] = field(default_factory=list)
    memberships: List[Dict[str, str]] = field(default_factory=list)
    honors: List[Dict[str, str]] = field(default_factory=list)
    volunteering: List[Dict[str, Any]] = field(default_factory=list)
    projects: List[Dict[str, str]] = field(default_factory=list)
    custom_blocks: List[Dict[str, str]] = field(default_factory=list)

    def identity_fields(self) -> Dict[str, str]:
        record = self.identity if isinstance(self.identity, Mapping) else {}
        fields = {name: text(pick(record, names)) for name, names in IDENTITY_ALIASES.items()}
        if not fields["name"]:
            first = text(record.get("firstName"))
            last = text(record.get("lastName"))
            fields["name"] = " ".join(part for part in (first, last) if part)
        return fields

    def position_records(self) -> List[Dict[str, Any]]:
        return [_adapt_record(r, POSITION_ALIASES) for r in _records(self.positions)]

    def education_records(self) -> List[Dict[str, Any]]:
        return [_adapt_record(r, EDUCATION_ALIASES) for r in _records(self.education)]

    def competency_strings(self) -> List[str]:
        if not isinstance(self.competencies, list):
            return []
        result = []
        for item in self.competencies:
            if isinstance(item, Mapping):
                item = pick(item, ["name", "skill", "title"])
            value = text(item)
            if value:
                result.append(value)
        return result


def _strings(value: Any) -> List[str]:
    result = []
    for item in _items(value):
        if isinstance(item, Mapping):
            item = pick(item, ["name", "id", "title"])
        value_text = text(item)
        if value_text:
            result.append(value_text)
    return result


def adapt(raw: Mapping) -> AdaptedImport:
    """Resolve aliases of a raw mapping into an AdaptedImport."""
    adapted = AdaptedImport(
        identity=pick(raw, TOP_LEVEL_ALIASES["identity"]),
        narrative=text(pick(raw, TOP_LEVEL_ALIASES["narrative"])),
        positions=pick(raw, TOP_LEVEL_ALIASES["positions"]),
        education=pick(raw, TOP_LEVEL_ALIASES["education"]),
        competencies=pick(raw, TOP_LEVEL_ALIASES["competencies"]),
    )

    adapted.licenses = [
        {key: text(value) for key, value in _adapt_record(r, LICENSE_ALIASES).items()}
        for r in _records(pick(raw, TOP_LEVEL_ALIASES["licenses"]))
    ]

    domain = pick(raw, TOP_LEVEL_ALIASES["domain_skills"], {})
    if not isinstance(domain, Mapping):
        domain = {}
    adapted.platforms = _strings(pick(domain, DOMAIN_SKILL_ALIASES["platforms"]))
    adapted.clinical_skills = _strings(pick(domain, DOMAIN_SKILL_ALIASES["clinical_skills"]))
    adapted.specialty = text(pick(domain, DOMAIN_SKILL_ALIASES["specialty"]))
    adapted.custom_skills = _strings(pick(domain, DOMAIN_SKILL_ALIASES["custom_skills"]))

    additional = pick(raw, TOP_LEVEL_ALIASES["additional"], {})
    if not isinstance(additional, Mapping):
        additional = {}

    cert_extra = {k: v for k, v in CERTIFICATION_ALIASES.items() if k != "name"}
    raw_certs = _items(pick(raw, TOP_LEVEL_ALIASES["certifications"])) + _items(
        pick(additional, ADDITIONAL_ALIASES["certifications"])
    )
    adapted.certifications = [
        c for c in (_as_named(item, CERTIFICATION_ALIASES["name"], cert_extra) for item in raw_certs) if c
    ]

    for item in _items(pick(additional, ADDITIONAL_ALIASES["languages"])):
        if isinstance(item, str):
            entry = {"language": item.strip(), "proficiency": ""}
        else:
            entry = {
                "language": text(pick(item, ["language", "name"])),
                "proficiency": text(pick(item, ["proficiency", "level"])),
            }
        if entry["language"]:
            adapted.languages.append(entry)

    adapted.memberships = [
        m for m in (
            _as_named(item, ["name", "organization"], {"role": ["role", "position"]})
            for item in _items(pick(additional, ADDITIONAL_ALIASES["memberships"]))
        ) if m
    ]
    adapted.honors = [
        h for h in (
            _as_named(item, ["name", "title", "award"], {"issuer": ["issuer", "organization"], "date": ["date"]})
            for item in _items(pick(additional, ADDITIONAL_ALIASES["honors"]))
        ) if h
    ]
    adapted.volunteering = [
        {
            "organization": text(pick(r, ["organization", "company"])),
            "role": text(pick(r, ["role", "title", "position"])),
            "start": text(pick(r, ["start", "startDate"])),
            "end": text(pick(r, ["end", "endDate"])),
            "narrative": text(pick(r, ["narrative", "description"])),
        }
        for r in _records(pick(additional, ADDITIONAL_ALIASES["volunteering"]))
    ]
    adapted.projects = [
        {
            "name": text(pick(r, ["name", "title"])),
            "narrative": text(pick(r, ["narrative", "description"])),
            "link": text(pick(r, ["link", "url"])),
        }
        for r in _records(pick(additional, ADDITIONAL_ALIASES["projects"]))
    ]
    adapted.custom_blocks = [
        {
            "heading": text(pick(r, ["heading", "title"])),
            "body": text(pick(r, ["body", "content", "description"])),
        }
        for r in _records(pick(additional, ADDITIONAL_ALIASES["custom_blocks"]))
    ]
    return adapted

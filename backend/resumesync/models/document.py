"""
Canonical resume document model.

Every storage backend and the import pipeline speak this shape. Field names
are snake_case in Python and camelCase on the wire (Firestore documents,
local storage blobs, API bodies).
"""
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from resumesync.config import DEFAULT_TEMPLATE_ID, DEFAULT_TITLE
from resumesync.models.enums import DEFAULT_SECTION_ORDER, SectionKey


def _dedupe_casefold(values: List[str]) -> List[str]:
    """Strip, drop blanks and keep the first spelling of each case-insensitive value."""
    seen = set()
    result = []
    for value in values:
        cleaned = (value or "").strip()
        key = cleaned.casefold()
        if cleaned and key not in seen:
            seen.add(key)
            result.append(cleaned)
    return result


class CanonicalModel(BaseModel):
    """Base for document parts: camelCase aliases, immutable once built."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Identity(CanonicalModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    linkedin: str = ""
    website: str = ""

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else ""


class Position(CanonicalModel):
    title: str = ""
    organization: str = ""
    location: str = ""
    start: str = ""
    end: str = ""
    is_current: bool = False
    narrative: str = ""


class EducationEntry(CanonicalModel):
    credential: str = ""
    institution: str = ""
    location: str = ""
    graduation_date: str = ""
    narrative: str = ""
    is_in_progress: bool = False


class ShortCourse(CanonicalModel):
    name: str = ""
    issuer: str = ""
    date: str = ""
    narrative: str = ""


class License(CanonicalModel):
    type: str = ""
    jurisdiction: str = ""
    number: str = ""
    is_multi_jurisdiction: bool = False
    expiration: str = ""


class Credential(CanonicalModel):
    """A certification drawn from the controlled vocabulary."""
    id: str
    display_name: str = ""
    expiration: str = ""
    issuer: str = ""


class DomainSkills(CanonicalModel):
    platform_ids: List[str] = Field(default_factory=list)
    skill_ids: List[str] = Field(default_factory=list)
    specialty_id: Optional[str] = None
    custom_skills: List[str] = Field(default_factory=list)

    @field_validator("platform_ids", "skill_ids")
    @classmethod
    def unique_ids(cls, v):
        return list(dict.fromkeys(v))

    @field_validator("custom_skills")
    @classmethod
    def unique_custom(cls, v):
        return _dedupe_casefold(v)

    def total(self) -> int:
        return len(self.platform_ids) + len(self.skill_ids) + len(self.custom_skills)


class LanguageSkill(CanonicalModel):
    language: str
    proficiency: str = "Fluent"


class Affiliation(CanonicalModel):
    name: str
    vocabulary_id: Optional[str] = None
    role: str = ""


class Honor(CanonicalModel):
    name: str
    vocabulary_id: Optional[str] = None
    issuer: str = ""
    date: str = ""


class VolunteerEntry(CanonicalModel):
    organization: str = ""
    role: str = ""
    start: str = ""
    end: str = ""
    narrative: str = ""


class Project(CanonicalModel):
    name: str = ""
    narrative: str = ""
    link: str = ""


class CustomBlock(CanonicalModel):
    heading: str = ""
    body: str = ""


class Supplemental(CanonicalModel):
    short_courses_legacy: List[ShortCourse] = Field(default_factory=list)
    affiliations: List[Affiliation] = Field(default_factory=list)
    volunteering: List[VolunteerEntry] = Field(default_factory=list)
    honors: List[Honor] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    languages: List[LanguageSkill] = Field(default_factory=list)
    custom_blocks: List[CustomBlock] = Field(default_factory=list)

    @field_validator("languages")
    @classmethod
    def unique_languages(cls, v):
        seen = set()
        result = []
        for item in v:
            key = item.language.strip().casefold()
            if key and key not in seen:
                seen.add(key)
                result.append(item)
        return result


class CanonicalDocument(CanonicalModel):
    """
    The resume payload.

    `identity` is None only for stored blobs that never had one; such a
    document is never persisted. Sections are replaced whole through
    `with_section`, never patched in place.
    """
    identity: Optional[Identity] = None
    narrative: str = ""
    positions: List[Position] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    short_courses: List[ShortCourse] = Field(default_factory=list)
    competencies: List[str] = Field(default_factory=list)
    licenses: List[License] = Field(default_factory=list)
    credentials: List[Credential] = Field(default_factory=list)
    domain_skills: DomainSkills = Field(default_factory=DomainSkills)
    supplemental: Supplemental = Field(default_factory=Supplemental)

    @field_validator("competencies")
    @classmethod
    def unique_competencies(cls, v):
        return _dedupe_casefold(v)

    @field_validator("credentials")
    @classmethod
    def unique_credentials(cls, v):
        by_id = {}
        for credential in v:
            by_id.setdefault(credential.id, credential)
        return list(by_id.values())

    @classmethod
    def from_stored(cls, data: Optional[Dict[str, Any]]) -> "CanonicalDocument":
        """Hydrate from a backend's stored representation."""
        return cls.model_validate(data or {})

    def to_stored(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def has_identity(self) -> bool:
        return self.identity is not None

    def with_section(self, key, value) -> "CanonicalDocument":
        """Return a copy with one whole section replaced (and revalidated)."""
        attr = _SECTION_ATTRS[SectionKey(key)]
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data[attr] = value
        return type(self).model_validate(data)

    def suggested_title(self) -> str:
        first_name = self.identity.first_name if self.identity else ""
        return f"{first_name}'s Resume" if first_name else DEFAULT_TITLE


_SECTION_ATTRS = {
    SectionKey.IDENTITY: "identity",
    SectionKey.NARRATIVE: "narrative",
    SectionKey.POSITIONS: "positions",
    SectionKey.EDUCATION: "education",
    SectionKey.SHORT_COURSES: "short_courses",
    SectionKey.COMPETENCIES: "competencies",
    SectionKey.LICENSES: "licenses",
    SectionKey.CREDENTIALS: "credentials",
    SectionKey.DOMAIN_SKILLS: "domain_skills",
    SectionKey.SUPPLEMENTAL: "supplemental",
}


class DocumentMeta(CanonicalModel):
    """Metadata kept beside the content; `id` is None until a backend assigns one."""
    id: Optional[str] = None
    title: str = DEFAULT_TITLE
    template_id: str = DEFAULT_TEMPLATE_ID
    last_updated: Optional[str] = None
    section_order: List[str] = Field(default_factory=lambda: list(DEFAULT_SECTION_ORDER))


class StoredDocument(CanonicalModel):
    """What `load` hands back: content plus its metadata."""
    content: CanonicalDocument
    meta: DocumentMeta


def default_document() -> CanonicalDocument:
    """The empty starting template."""
    return CanonicalDocument(identity=Identity())


def snapshot(content: CanonicalDocument, meta: DocumentMeta) -> str:
    """Serialized state used to detect no-op writes."""
    return json.dumps(
        {
            "content": content.to_stored(),
            "title": meta.title,
            "templateId": meta.template_id,
            "sectionOrder": meta.section_order,
        },
        sort_keys=True,
    )

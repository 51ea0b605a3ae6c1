"""
Per-section completeness derived from canonical content.

Always recomputed from the current document; nothing here is cached.
"""
from typing import Dict

from resumesync.config import MIN_COMPETENCIES, POSITION_NARRATIVE_MIN_LENGTH, SUMMARY_MIN_LENGTH
from resumesync.models.document import CanonicalDocument
from resumesync.models.enums import SectionKey


def identity_complete(doc: CanonicalDocument) -> bool:
    return bool(doc.identity and doc.identity.name.strip() and doc.identity.email.strip())


def narrative_complete(doc: CanonicalDocument) -> bool:
    return len(doc.narrative.strip()) > SUMMARY_MIN_LENGTH


def positions_complete(doc: CanonicalDocument) -> bool:
    return any(
        p.title.strip()
        and p.organization.strip()
        and len(p.narrative.strip()) >= POSITION_NARRATIVE_MIN_LENGTH
        for p in doc.positions
    )


def education_complete(doc: CanonicalDocument) -> bool:
    return any(e.credential.strip() and e.institution.strip() for e in doc.education)


def licenses_complete(doc: CanonicalDocument) -> bool:
    return any(lic.type and lic.jurisdiction for lic in doc.licenses)


def domain_skills_complete(doc: CanonicalDocument) -> bool:
    return doc.domain_skills.total() > 0


SECTION_RULES = {
    SectionKey.IDENTITY.value: identity_complete,
    SectionKey.NARRATIVE.value: narrative_complete,
    SectionKey.POSITIONS.value: positions_complete,
    SectionKey.EDUCATION.value: education_complete,
    SectionKey.SHORT_COURSES.value: lambda doc: bool(doc.short_courses),
    SectionKey.LICENSES.value: licenses_complete,
    SectionKey.CREDENTIALS.value: lambda doc: bool(doc.credentials),
    SectionKey.DOMAIN_SKILLS.value: domain_skills_complete,
    SectionKey.COMPETENCIES.value: lambda doc: len(doc.competencies) >= MIN_COMPETENCIES,
    SectionKey.SUPPLEMENTAL.value: lambda doc: True,
}


def evaluate_completion(doc: CanonicalDocument) -> Dict[str, bool]:
    """Map of section key -> complete?"""
    return {section: bool(rule(doc)) for section, rule in SECTION_RULES.items()}


def completion_percentage(doc: CanonicalDocument) -> int:
    progress = evaluate_completion(doc)
    return round(100 * sum(progress.values()) / len(progress))

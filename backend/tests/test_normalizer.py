"""
Tests for the import normalization pipeline
"""
import copy

import pytest

from resumesync.services.normalizer import (
    classify_education,
    extract_languages,
    normalize,
    parse_date,
    validate_structure,
)
from resumesync.utils.exceptions import ImportRejectedError


class TestStructuralValidation:
    """Test raw imports are rejected when unusable"""

    @pytest.mark.parametrize("raw", [
        [],
        [{"name": "x"}],
        "resume.pdf",
        None,
        {},
        {"personalInfo": "Jane Doe"},
        {"experience": {"title": "RN"}},
    ])
    def test_rejected(self, raw):
        """Test arrays, scalars and mis-typed sections are rejected"""
        with pytest.raises(ImportRejectedError):
            normalize(raw)

    def test_any_single_section_is_enough(self):
        """Test one well-typed section suffices"""
        assert validate_structure({"skills": ["Triage"]}).competencies == ["Triage"]
        assert normalize({"education": []}).education == []


class TestEducationSplit:
    """Test education vs. short-course classification"""

    def test_bsn_and_udemy_course(self):
        """Test a degree stays education and a two-week online course becomes a course"""
        doc = normalize({
            "education": [
                {"degree": "BSN", "school": "State University",
                 "startDate": "2018-09-01", "endDate": "2022-05-01"},
                {"degree": "IV Certification", "school": "Udemy",
                 "startDate": "2023-01-01", "endDate": "2023-01-15"},
            ]
        })
        assert [e.credential for e in doc.education] == ["BSN"]
        assert [c.name for c in doc.short_courses] == ["IV Certification"]
        assert doc.short_courses[0].issuer == "Udemy"

    def test_rules_in_priority_order(self):
        """Test which rule decides each entry"""
        assert classify_education({"credential": "Master of Nursing Workshop"}) == ("education", "formal_credential")
        assert classify_education({"credential": "Phlebotomy Training"}) == ("course", "course_credential")
        assert classify_education({"credential": "Nursing", "institution": "Austin Community College"}) == (
            "education", "formal_institution")
        assert classify_education({"credential": "Charge Nurse", "institution": "Coursera"}) == (
            "course", "course_institution")
        assert classify_education({
            "credential": "Charge Nurse Leadership", "institution": "St. Mary",
            "start": "2023-03-01", "end": "2023-04-15",
        }) == ("course", "short_duration")
        assert classify_education({
            "credential": "Charge Nurse Leadership", "institution": "St. Mary",
            "narrative": "A two-day seminar",
        }) == ("course", "course_narrative")
        assert classify_education({"credential": "Nursing Diploma Program", "institution": "St. Mary"})[0] == "course"
        assert classify_education({"credential": "Nursing", "institution": "St. Mary"}) == ("education", "default")

    def test_entries_without_credential_or_institution_are_skipped(self):
        """Test empty rows disappear"""
        doc = normalize({"education": [{"degree": "", "school": ""}, {"description": "orphan"}]})
        assert doc.education == []
        assert doc.short_courses == []

    def test_open_ended_education_is_in_progress(self):
        """Test 'Present' marks an in-progress degree"""
        doc = normalize({"education": [{"degree": "MSN", "school": "State University", "endDate": "Present"}]})
        assert doc.education[0].is_in_progress is True

    def test_mutually_exclusive(self, raw_resume):
        """Test nothing lands in both education and short courses"""
        doc = normalize(raw_resume)
        education = {(e.credential, e.institution) for e in doc.education}
        courses = {(c.name, c.issuer) for c in doc.short_courses}
        assert education and courses
        assert not education & courses


class TestParseDate:
    """Test lenient date parsing"""

    def test_formats(self):
        """Test common resume date shapes"""
        assert parse_date("2023-01-15").day == 15
        assert parse_date("May 2022").month == 5
        assert parse_date("Present") is None
        assert parse_date("sometime") is None
        assert parse_date("") is None


class TestLanguages:
    """Test language extraction from competencies"""

    def test_phrases(self):
        """Test indicator phrases and proficiency words"""
        assert [(s.language, s.proficiency) for s in extract_languages("Fluent in Spanish")] == [("Spanish", "Fluent")]
        assert [(s.language, s.proficiency) for s in extract_languages("Native Tagalog speaker")] == [
            ("Tagalog", "Native")]
        assert [s.language for s in extract_languages("ASL")] == ["ASL"]
        assert extract_languages("Wound Care") == []

    def test_bilingual_lists_both(self):
        """Test several names in one item"""
        names = [s.language for s in extract_languages("Bilingual English/Spanish")]
        assert names == ["English", "Spanish"]

    def test_competency_languages_merged_first(self):
        """Test languages from skills win duplicates; additional.languages only adds new ones"""
        doc = normalize({
            "skills": ["Fluent in Spanish", "Conversational French"],
            "additional": {"languages": [
                {"language": "spanish", "proficiency": "Native"},
                {"language": "Tagalog", "proficiency": "Native"},
            ]},
        })
        assert [(s.language, s.proficiency) for s in doc.supplemental.languages] == [
            ("Spanish", "Fluent"), ("French", "Conversational"), ("Tagalog", "Native")]
        assert doc.competencies == []


class TestVocabularyMatching:
    """Test competencies and certifications against controlled vocabularies"""

    def test_language_platform_and_skill(self):
        """Test a mixed competency list is fully routed"""
        doc = normalize({"skills": ["Fluent in Spanish", "Wound Care", "Epic"]})
        assert [(s.language, s.proficiency) for s in doc.supplemental.languages] == [("Spanish", "Fluent")]
        assert "epic" in doc.domain_skills.platform_ids
        assert "wound-care" in doc.domain_skills.skill_ids
        assert doc.competencies == []

    def test_certifications(self, raw_resume):
        """Test known certifications become credentials, the rest legacy courses"""
        doc = normalize(raw_resume)
        assert [c.id for c in doc.credentials] == ["bls"]
        assert doc.credentials[0].display_name == "BLS"
        assert doc.credentials[0].issuer == "American Heart Association"
        assert [c.name for c in doc.supplemental.short_courses_legacy] == ["Underwater Basket Weaving"]

    def test_certification_objects(self):
        """Test object-shaped certifications keep their expiration and issuer"""
        doc = normalize({
            "skills": [],
            "certifications": [{"name": "ACLS", "expirationDate": "2026-01", "issuingBody": "Red Cross"}],
        })
        credential = doc.credentials[0]
        assert (credential.id, credential.expiration, credential.issuer) == ("acls", "2026-01", "Red Cross")

    def test_unmatched_competencies_stay_generic(self, raw_resume):
        """Test unknown items are kept, not dropped"""
        assert normalize(raw_resume).competencies == ["Team Leadership"]

    def test_explicit_domain_skills(self):
        """Test explicit platforms and clinical skills, with unknown ones as custom"""
        doc = normalize({
            "skills": [],
            "healthcareSkills": {
                "ehrSystems": ["Cerner PowerChart", "Homegrown EMR"],
                "clinicalSkills": ["Ventilator Management"],
                "specialty": "Cardiac / Cath Lab",
            },
        })
        assert doc.domain_skills.platform_ids == ["cerner"]
        assert doc.domain_skills.skill_ids == ["ventilator-management"]
        assert doc.domain_skills.custom_skills == ["Homegrown EMR"]
        assert doc.domain_skills.specialty_id == "cardiac"

    def test_domain_skills_capped(self):
        """Test the cap keeps overflow as plain competencies"""
        custom = [f"Custom Skill {i}" for i in range(20)]
        doc = normalize({"skills": [], "healthcareSkills": {"customSkills": custom}})
        assert doc.domain_skills.total() == 15
        assert doc.competencies == custom[15:]

    def test_affiliations_and_honors(self):
        """Test memberships and awards carry vocabulary ids when known"""
        doc = normalize({
            "skills": [],
            "additional": {
                "memberships": ["American Nurses Association", "Local Book Club"],
                "honors": [{"title": "DAISY Award", "date": "2021"}],
            },
        })
        assert [(a.name, a.vocabulary_id) for a in doc.supplemental.affiliations] == [
            ("American Nurses Association", "ana"), ("Local Book Club", None)]
        assert doc.supplemental.honors[0].vocabulary_id == "daisy-award"
        assert doc.supplemental.honors[0].date == "2021"


class TestSpecialtyAndLicenses:
    """Test specialty inference and license mapping"""

    def test_specialty_from_positions(self, raw_resume):
        """Test specialty inferred from titles and narratives"""
        assert normalize(raw_resume).domain_skills.specialty_id == "icu"

    def test_no_specialty(self):
        """Test no keyword means no specialty"""
        doc = normalize({"experience": [{"title": "Office Manager", "description": "Scheduling"}]})
        assert doc.domain_skills.specialty_id is None

    def test_licenses(self):
        """Test recognizable types kept, jurisdictions normalized, compact flag set"""
        doc = normalize({
            "licenses": [
                {"type": "RN", "state": "Texas", "number": "123"},
                {"licenseType": "Nurse Practitioner", "state": "ca"},
                {"type": "Forklift", "state": "TX"},
            ],
            "skills": [],
        })
        assert [(lic.type, lic.jurisdiction, lic.is_multi_jurisdiction) for lic in doc.licenses] == [
            ("RN", "TX", True), ("APRN", "CA", False)]


class TestNormalize:
    """Test whole-pipeline properties"""

    def test_identity_and_positions(self, raw_resume):
        """Test aliases resolve to canonical fields"""
        doc = normalize(raw_resume)
        assert doc.identity.name == "Jane Doe"
        assert doc.identity.email == "jane@example.com"
        assert doc.narrative.startswith("Compassionate ICU nurse")
        position = doc.positions[0]
        assert (position.title, position.organization, position.is_current) == (
            "Registered Nurse - ICU", "St. Mary Hospital", True)

    def test_name_from_parts(self):
        """Test firstName/lastName fallback"""
        doc = normalize({"personalInfo": {"firstName": "Ana", "lastName": "Lopez"}})
        assert doc.identity.name == "Ana Lopez"

    def test_idempotent(self, raw_resume):
        """Test equal input gives deeply equal output"""
        assert normalize(raw_resume) == normalize(copy.deepcopy(raw_resume))
        assert normalize(raw_resume).to_stored() == normalize(raw_resume).to_stored()

    def test_raw_input_not_mutated(self, raw_resume):
        """Test normalization is pure"""
        before = copy.deepcopy(raw_resume)
        normalize(raw_resume)
        assert raw_resume == before

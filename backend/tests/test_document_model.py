"""
Tests for the canonical document model
"""
import pydantic
import pytest

from resumesync.models.document import (
    CanonicalDocument,
    Credential,
    DocumentMeta,
    Identity,
    LanguageSkill,
    Position,
    Supplemental,
    default_document,
    snapshot,
)
from resumesync.models.enums import DEFAULT_SECTION_ORDER, SectionKey


class TestCanonicalDocument:
    """Test document construction and invariants"""

    def test_default_document_has_identity(self):
        """Test the starting template can be saved"""
        doc = default_document()
        assert doc.has_identity()
        assert doc.identity.name == ""

    def test_stored_blob_without_identity(self):
        """Test a blob missing identity hydrates without one"""
        doc = CanonicalDocument.from_stored({"narrative": "Hello"})
        assert not doc.has_identity()
        assert doc.narrative == "Hello"

    def test_wire_format_is_camel_case(self):
        """Test to_stored uses the wire names"""
        doc = CanonicalDocument(
            identity=Identity(name="Jane Doe"),
            positions=[Position(title="RN", is_current=True)],
        )
        stored = doc.to_stored()
        assert "shortCourses" in stored
        assert "domainSkills" in stored
        assert stored["positions"][0]["isCurrent"] is True
        assert stored["supplemental"]["shortCoursesLegacy"] == []

    def test_from_stored_accepts_wire_format(self):
        """Test hydrating camelCase data"""
        doc = CanonicalDocument.from_stored({
            "identity": {"name": "Jane"},
            "domainSkills": {"platformIds": ["epic", "epic"], "customSkills": ["A", "a"]},
        })
        assert doc.domain_skills.platform_ids == ["epic"]
        assert doc.domain_skills.custom_skills == ["A"]

    def test_competencies_dedupe_case_insensitively(self):
        """Test first spelling wins"""
        doc = CanonicalDocument(competencies=["Triage", "triage", " ", "Charting"])
        assert doc.competencies == ["Triage", "Charting"]

    def test_credentials_unique_by_id(self):
        """Test duplicate credential ids collapse"""
        doc = CanonicalDocument(credentials=[
            Credential(id="bls", display_name="BLS"),
            Credential(id="bls", display_name="BLS again"),
        ])
        assert [c.display_name for c in doc.credentials] == ["BLS"]

    def test_languages_unique(self):
        """Test languages dedupe case-insensitively"""
        supplemental = Supplemental(languages=[
            LanguageSkill(language="Spanish"),
            LanguageSkill(language="spanish", proficiency="Native"),
        ])
        assert len(supplemental.languages) == 1
        assert supplemental.languages[0].proficiency == "Fluent"

    def test_documents_are_immutable(self):
        """Test mutation goes through with_section only"""
        doc = default_document()
        with pytest.raises(pydantic.ValidationError):
            doc.narrative = "changed"


class TestWithSection:
    """Test whole-section replacement"""

    def test_returns_new_document(self):
        """Test the original is untouched"""
        doc = default_document()
        updated = doc.with_section(SectionKey.NARRATIVE, "Experienced nurse")
        assert updated.narrative == "Experienced nurse"
        assert doc.narrative == ""

    def test_accepts_wire_key_and_revalidates(self):
        """Test string keys and validation of the new value"""
        doc = default_document().with_section("competencies", ["A", "a", "B"])
        assert doc.competencies == ["A", "B"]

    def test_accepts_raw_dicts(self):
        """Test section values may be plain dicts"""
        doc = default_document().with_section("identity", {"name": "Sam Lee", "email": "s@x.io"})
        assert doc.identity.first_name == "Sam"

    def test_unknown_section(self):
        """Test unknown keys are refused"""
        with pytest.raises(ValueError):
            default_document().with_section("hobbies", [])


class TestMetaAndSnapshot:
    """Test metadata defaults and no-op detection"""

    def test_meta_defaults(self):
        """Test default metadata"""
        meta = DocumentMeta()
        assert meta.id is None
        assert meta.title == "My Resume"
        assert meta.template_id == "ats"
        assert meta.section_order == DEFAULT_SECTION_ORDER

    def test_suggested_title(self):
        """Test title derived from first name"""
        doc = CanonicalDocument(identity=Identity(name="Maria Garcia"))
        assert doc.suggested_title() == "Maria's Resume"
        assert default_document().suggested_title() == "My Resume"

    def test_snapshot_ignores_id_and_timestamp(self):
        """Test backend-assigned metadata does not make a write look dirty"""
        doc = default_document()
        before = snapshot(doc, DocumentMeta())
        after = snapshot(doc, DocumentMeta(id="abc", last_updated="2024-01-01T00:00:00+00:00"))
        assert before == after

    def test_snapshot_tracks_title_and_content(self):
        """Test title and content changes are detected"""
        doc = default_document()
        base = snapshot(doc, DocumentMeta())
        assert snapshot(doc, DocumentMeta(title="Other")) != base
        assert snapshot(doc.with_section("narrative", "x"), DocumentMeta()) != base

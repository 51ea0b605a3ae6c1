"""
Tests for input validation
"""
import pytest

from resumesync.utils.exceptions import ValidationError
from resumesync.utils.validation import SaveResumeRequest, ValidateNameRequest, validate_request


class TestSaveResumeValidation:
    """Test save/update request validation"""

    def test_valid_request(self):
        """Test valid save request"""
        data = {
            "resumeData": {"identity": {"name": "Jane Doe"}},
            "resumeName": "  Jane's Resume  ",
            "sectionOrder": ["identity", "positions"],
        }
        result = validate_request(SaveResumeRequest, data)
        assert result["resumeName"] == "Jane's Resume"
        assert result["sectionOrder"] == ["identity", "positions"]
        assert "templateId" not in result

    def test_missing_identity(self):
        """Test a document without identity is refused"""
        with pytest.raises(ValidationError):
            validate_request(SaveResumeRequest, {"resumeData": {"narrative": "Hi"}})

    def test_missing_resume_data(self):
        """Test missing required field"""
        with pytest.raises(ValidationError):
            validate_request(SaveResumeRequest, {"resumeName": "Orphan"})

    def test_blank_name_becomes_none(self):
        """Test whitespace-only names are dropped"""
        result = validate_request(SaveResumeRequest, {
            "resumeData": {"identity": {}},
            "resumeName": "   ",
        })
        assert "resumeName" not in result

    def test_unknown_section_key(self):
        """Test section order with unknown keys"""
        with pytest.raises(ValidationError) as exc_info:
            validate_request(SaveResumeRequest, {
                "resumeData": {"identity": {}},
                "sectionOrder": ["identity", "hobbies"],
            })
        assert "hobbies" in exc_info.value.message

    def test_repeated_section_key(self):
        """Test section order with duplicates"""
        with pytest.raises(ValidationError):
            validate_request(SaveResumeRequest, {
                "resumeData": {"identity": {}},
                "sectionOrder": ["identity", "identity"],
            })


class TestValidateNameRequest:
    """Test title availability request validation"""

    def test_name_is_stripped(self):
        """Test name is trimmed"""
        result = validate_request(ValidateNameRequest, {"name": "  My Resume "})
        assert result["name"] == "My Resume"

    def test_empty_name(self):
        """Test empty name is refused"""
        with pytest.raises(ValidationError):
            validate_request(ValidateNameRequest, {"name": "   "})


class TestValidateRequest:
    """Test validate_request helper"""

    def test_raise_on_error_false(self):
        """Test returning validation errors instead of raising"""
        is_valid, data, errors = validate_request(ValidateNameRequest, {}, raise_on_error=False)
        assert is_valid is False
        assert data == {}
        assert any("name" in error for error in errors)

    def test_valid_without_raising(self):
        """Test success tuple"""
        is_valid, data, errors = validate_request(ValidateNameRequest, {"name": "A"}, raise_on_error=False)
        assert is_valid is True
        assert data == {"name": "A"}
        assert errors == []

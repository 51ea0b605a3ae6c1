"""
Input validation schemas using Pydantic
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from resumesync.models.enums import SectionKey
from resumesync.utils.exceptions import ValidationError

_SECTION_KEYS = {key.value for key in SectionKey}


class SaveResumeRequest(BaseModel):
    """Validation schema for creating or updating a resume"""
    resumeData: dict = Field(..., description="Canonical document (camelCase)")
    resumeName: Optional[str] = Field(None, max_length=200, description="Document title")
    templateId: Optional[str] = Field(None, max_length=64, description="Rendering template")
    sectionOrder: Optional[List[str]] = Field(None, description="Section keys, top to bottom")

    @field_validator('resumeData')
    @classmethod
    def validate_identity_present(cls, v):
        if not isinstance(v.get('identity'), dict):
            raise ValueError('resumeData must contain an identity section')
        return v

    @field_validator('resumeName')
    @classmethod
    def strip_name(cls, v):
        if v is None:
            return None
        return v.strip() or None

    @field_validator('sectionOrder')
    @classmethod
    def validate_section_order(cls, v):
        if v is None:
            return None
        unknown = [key for key in v if key not in _SECTION_KEYS]
        if unknown:
            raise ValueError(f"Unknown section keys: {', '.join(unknown)}")
        if len(set(v)) != len(v):
            raise ValueError('Section keys must not repeat')
        return v


class ValidateNameRequest(BaseModel):
    """Validation schema for title availability checks"""
    name: str = Field(..., min_length=1, max_length=200)
    excludeId: Optional[str] = Field(None, max_length=128)

    @field_validator('name')
    @classmethod
    def validate_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


def validate_request(schema_class: type[BaseModel], data: dict, raise_on_error: bool = True):
    """
    Validate request data against a Pydantic schema.

    Args:
        schema_class: Pydantic model class
        data: Request data to validate
        raise_on_error: If True, raise ValidationError. If False, return (is_valid, errors)

    Returns:
        If raise_on_error=True: Validated data dict
        If raise_on_error=False: (is_valid: bool, validated_data: dict, errors: list)
    """
    try:
        validated = schema_class(**(data or {}))
        if raise_on_error:
            return validated.model_dump(exclude_none=True)
        return True, validated.model_dump(exclude_none=True), []
    except Exception as e:
        if isinstance(e, ValidationError):
            raise
        errors = []
        if hasattr(e, 'errors'):
            for error in e.errors():
                field = '.'.join(str(x) for x in error.get('loc', []))
                message = error.get('msg', 'Validation error')
                errors.append(f"{field}: {message}")

        error_message = '; '.join(errors) if errors else str(e)

        if raise_on_error:
            raise ValidationError(error_message, details={'validation_errors': errors})
        return False, {}, errors

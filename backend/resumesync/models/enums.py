"""
Enums and constants for data models
"""
from enum import Enum


class SectionKey(str, Enum):
    """Top-level sections of a canonical document, keyed by wire name"""
    IDENTITY = "identity"
    NARRATIVE = "narrative"
    POSITIONS = "positions"
    EDUCATION = "education"
    SHORT_COURSES = "shortCourses"
    COMPETENCIES = "competencies"
    LICENSES = "licenses"
    CREDENTIALS = "credentials"
    DOMAIN_SKILLS = "domainSkills"
    SUPPLEMENTAL = "supplemental"


DEFAULT_SECTION_ORDER = [
    SectionKey.IDENTITY.value,
    SectionKey.NARRATIVE.value,
    SectionKey.POSITIONS.value,
    SectionKey.EDUCATION.value,
    SectionKey.SHORT_COURSES.value,
    SectionKey.LICENSES.value,
    SectionKey.CREDENTIALS.value,
    SectionKey.DOMAIN_SKILLS.value,
    SectionKey.COMPETENCIES.value,
    SectionKey.SUPPLEMENTAL.value,
]


class FailureKind(str, Enum):
    """Why a persistence call did not succeed"""
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    VALIDATION = "validation"


class BackendKind(str, Enum):
    """Persistence backend flavour"""
    EPHEMERAL = "ephemeral"
    DURABLE = "durable"


class SelectorState(str, Enum):
    """Backend selector / migration states"""
    UNRESOLVED = "unresolved"
    EPHEMERAL_ONLY = "ephemeral_only"
    MIGRATION_PENDING = "migration_pending"
    MIGRATING = "migrating"
    DURABLE_ONLY = "durable_only"
    MIGRATION_FAILED = "migration_failed"


class MigrationOutcome(str, Enum):
    """Result codes of a migration attempt"""
    SUCCESS = "MIGRATION_SUCCESS"
    NO_DATA = "NO_DATA_TO_MIGRATE"
    ALREADY_DURABLE = "ALREADY_DB_ONLY"
    IN_PROGRESS = "MIGRATION_IN_PROGRESS"
    FAILED = "MIGRATION_ERROR"
    EXHAUSTED = "MIGRATION_EXHAUSTED"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"


class SyncStatus(str, Enum):
    """Save indicator state exposed by the sync controller"""
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    SAVED = "saved"
    UNSAVED = "unsaved"


class NotificationKind(str, Enum):
    """Events surfaced to the presentation layer"""
    SAVED = "saved"
    SAVE_FAILED = "save_failed"
    DOCUMENT_MISSING = "document_missing"
    IDENTITY_CHANGED = "identity_changed"
    MIGRATION_SUCCEEDED = "migration_succeeded"
    MIGRATION_FAILED = "migration_failed"
    MIGRATION_EXHAUSTED = "migration_exhausted"
    IMPORT_REJECTED = "import_rejected"

"""
Application configuration - constants, environment variables and store key names
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ========================================
# Secrets & Firebase
# ========================================
FLASK_SECRET = os.getenv("FLASK_SECRET", "dev")
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "resumesync-native")
GOOGLE_APPLICATION_CREDENTIALS = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

# ========================================
# Logging
# ========================================
LOG_LEVEL = os.getenv("RESUME_SYNC_LOG_LEVEL", "INFO").upper()

# ========================================
# Durable Store API (client side)
# ========================================
RESUME_API_BASE_URL = os.getenv("RESUME_API_BASE_URL", "http://localhost:5001")
RESUME_API_TIMEOUT_SECONDS = float(os.getenv("RESUME_API_TIMEOUT_SECONDS", "15"))
RESUME_API_READ_RETRIES = int(os.getenv("RESUME_API_READ_RETRIES", "2"))

# Firestore layout: users/{uid}/resumes/{resumeId}
USERS_COLLECTION = "users"
RESUMES_COLLECTION = "resumes"

# ========================================
# Auto-save & Session Markers
# ========================================
AUTOSAVE_DEBOUNCE_SECONDS = float(os.getenv("RESUME_AUTOSAVE_DEBOUNCE", "1.0"))

RELOAD_MARKER_TTL_SECONDS = 5
MIGRATION_LOCK_TTL_SECONDS = 120
CREATION_LOCK_TTL_SECONDS = 10
EDITING_LOCK_TTL_SECONDS = 300

MAX_MIGRATION_ATTEMPTS = int(os.getenv("RESUME_MAX_MIGRATION_ATTEMPTS", "3"))

# ========================================
# Document Defaults
# ========================================
DEFAULT_TEMPLATE_ID = "ats"
DEFAULT_TITLE = "My Resume"
MAX_TITLE_SUFFIX_ATTEMPTS = 100

# ========================================
# Completion Thresholds
# ========================================
SUMMARY_MIN_LENGTH = 30  # strictly greater than
POSITION_NARRATIVE_MIN_LENGTH = 400
MIN_COMPETENCIES = 3

# ========================================
# Import Normalization
# ========================================
SHORT_COURSE_MAX_DAYS = 90
MAX_DOMAIN_SKILLS = 15
DEFAULT_LANGUAGE_PROFICIENCY = "Fluent"

# ========================================
# Ephemeral Store Keys
# ========================================
# Names are shared with existing browser sessions; do not rename.
CONTENT_KEY = "modern_resume_data"
TEMPLATE_KEY = "selected_resume_template"
PROGRESS_KEY = "modern_resume_progress"
CURRENT_ID_KEY = "current_resume_id"
SECTION_ORDER_KEY = "resume_section_order"
TITLE_KEY = "resume_title"

# Transient session markers
RELOAD_MARKER_KEY = "possible_page_refresh"
RELOAD_TIMESTAMP_KEY = "refresh_timestamp"
PENDING_CHANGES_KEY = "pending_resume_changes"
PENDING_TIMESTAMP_KEY = "pending_resume_timestamp"
MIGRATION_LOCK_KEY = "migration_in_progress"
MIGRATION_ATTEMPTS_KEY = "migration_attempts"
MIGRATION_COMPLETED_KEY = "migration_completed"
CREATION_LOCK_KEY = "creating_new_resume"
EDITING_LOCK_KEY = "editing_existing_resume"
EDITING_TARGET_KEY = "editing_resume_id"
DB_ONLY_MODE_KEY = "db_only_mode"
NEEDS_MIGRATION_KEY = "needs_db_migration"

EPHEMERAL_DOCUMENT_KEYS = (
    CONTENT_KEY,
    TEMPLATE_KEY,
    PROGRESS_KEY,
    CURRENT_ID_KEY,
    SECTION_ORDER_KEY,
    TITLE_KEY,
)

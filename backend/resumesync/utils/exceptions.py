"""
Custom exception classes for consistent error handling
"""
import logging

from flask import jsonify

logger = logging.getLogger(__name__)


class ResumeSyncException(Exception):
    """Base exception for all resume sync errors"""
    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        self.message = message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self):
        return {
            'success': False,
            'error': self.message,
            'error_code': self.error_code,
            'details': self.details
        }

    def to_response(self):
        return jsonify(self.to_dict()), self.status_code


class ValidationError(ResumeSyncException):
    """Input validation error"""
    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str = None, details: dict = None):
        if field:
            message = f"Validation error for field '{field}': {message}"
        super().__init__(message, self.error_code, details)


class AuthenticationError(ResumeSyncException):
    """Authentication error"""
    status_code = 401
    error_code = "AUTH_ERROR"

    def __init__(self, message: str = "Authentication required", details: dict = None):
        super().__init__(message, self.error_code, details)


class NotFoundError(ResumeSyncException):
    """Resource not found error"""
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", details: dict = None):
        message = f"{resource} not found"
        super().__init__(message, self.error_code, details)


class ImportRejectedError(ResumeSyncException):
    """Raw import failed structural validation; no document was produced"""
    status_code = 422
    error_code = "IMPORT_REJECTED"

    def __init__(self, reason: str, details: dict = None):
        self.reason = reason
        super().__init__(f"Import rejected: {reason}", self.error_code, details)


class ContractViolation(ResumeSyncException):
    """Programmer error, e.g. calling update() without a document id"""
    status_code = 500
    error_code = "CONTRACT_VIOLATION"


class StorageDisabled(ResumeSyncException):
    """Local key-value storage refused a write"""
    status_code = 503
    error_code = "STORAGE_DISABLED"

    def __init__(self, message: str = "Local storage is disabled", details: dict = None):
        super().__init__(message, self.error_code, details)


class ExternalAPIError(ResumeSyncException):
    """Durable store API error"""
    status_code = 502
    error_code = "EXTERNAL_API_ERROR"

    def __init__(self, service: str, message: str = None, details: dict = None):
        if not message:
            message = f"{service} API error. Please try again later."
        super().__init__(message, self.error_code, {
            'service': service,
            **(details or {})
        })


def handle_resume_sync_exception(e: ResumeSyncException):
    """Flask error handler for resume sync exceptions"""
    if e.status_code >= 500:
        logger.error("Request failed", extra={"error_code": e.error_code, "details": e.details})
    return e.to_response()


def _error_body(message: str, error_code: str, **details):
    return jsonify({'success': False, 'error': message, 'error_code': error_code, 'details': details})


def register_error_handlers(app):
    """Render every error as the JSON envelope the resume client parses"""
    app.register_error_handler(ResumeSyncException, handle_resume_sync_exception)

    @app.errorhandler(400)
    def bad_request(e):
        return _error_body('Malformed request body', 'BAD_REQUEST', message=str(e)), 400

    @app.errorhandler(404)
    def unknown_route(e):
        return _error_body('Resource not found', 'NOT_FOUND'), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error_body('Method not allowed', 'METHOD_NOT_ALLOWED'), 405

    @app.errorhandler(429)
    def rate_limited(e):
        # flask-limiter puts the exceeded limit in the description
        return _error_body('Too many saves. Please slow down.', 'RATE_LIMIT_EXCEEDED', limit=e.description), 429

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Unhandled error")
        return _error_body('An unexpected error occurred. Please try again later.', 'INTERNAL_ERROR'), 500

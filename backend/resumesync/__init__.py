"""
Resume sync: persistence synchronization and import normalization for the resume builder.
"""
from flask import Flask

from resumesync.logging_config import configure_logging


def create_app(testing: bool = False) -> Flask:
    """Build the durable-store API."""
    configure_logging(keep_handlers=testing)

    app = Flask(__name__)
    app.config['TESTING'] = testing

    from resumesync.extensions import init_app_extensions, init_firebase
    from resumesync.utils.exceptions import register_error_handlers

    init_app_extensions(app)
    if not testing:
        init_firebase(app)
    register_error_handlers(app)

    from resumesync.routes.health import health_bp
    from resumesync.routes.resume import resume_bp
    app.register_blueprint(health_bp)   # /ping, /health, /healthz
    app.register_blueprint(resume_bp)   # /api/resume/*

    return app

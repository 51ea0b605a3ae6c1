"""
Flask extensions and initialization
"""
import functools
import logging
import os
import time

import firebase_admin
from firebase_admin import credentials, firestore, auth as fb_auth
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from resumesync.config import FIREBASE_PROJECT_ID, FLASK_SECRET

logger = logging.getLogger(__name__)

# Global Firestore client
db = None
limiter = None


def init_firebase(app=None):
    """Initialize Firebase and set up the Firestore client."""
    global db
    if firebase_admin._apps:  # already initialized
        db = firestore.client()
        return

    cred = None
    cred_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if cred_path and os.path.exists(cred_path):
        cred = credentials.Certificate(cred_path)
        logger.info("Using Firebase credentials file", extra={"path": cred_path})

    try:
        if cred:
            firebase_admin.initialize_app(cred, {'projectId': FIREBASE_PROJECT_ID})
        else:
            # Cloud environments supply default credentials
            logger.warning("No Firebase credentials file found, using project ID only")
            firebase_admin.initialize_app(options={'projectId': FIREBASE_PROJECT_ID})
        db = firestore.client()
        logger.info("Firestore client initialized")
    except Exception as e:
        # Let the app start; auth-gated routes will report the problem
        logger.exception("Firebase initialization failed", extra={"error": str(e)})
        db = None


def get_db():
    """Returns the Firestore client instance."""
    global db
    if db is None:
        if not firebase_admin._apps:
            raise RuntimeError("Firestore DB not initialized. Call init_firebase() first.")
        db = firestore.client()
    return db


def _is_network_error(error: Exception) -> bool:
    text = f"{type(error).__name__} {error}".lower()
    return any(keyword in text for keyword in (
        'connection', 'remote', 'disconnected', 'aborted', 'timeout',
        'network', 'unreachable', 'refused'
    ))


def require_firebase_auth(fn):
    """
    Decorator to require Firebase authentication for an endpoint.
    Verifies the Bearer ID token and stores the decoded claims on
    `request.firebase_user`. OPTIONS (CORS preflight) passes through.
    Transient network failures during verification are retried.
    """
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        if request.method == 'OPTIONS':
            return fn(*args, **kwargs)

        if not firebase_admin._apps:
            logger.error("Firebase Admin SDK not initialized")
            return jsonify({'error': 'Firebase Admin SDK not initialized'}), 500

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Missing Authorization header'}), 401
        id_token = auth_header.split(' ', 1)[1].strip()

        max_retries = 3
        retry_delay = 0.5
        for attempt in range(max_retries):
            try:
                request.firebase_user = fb_auth.verify_id_token(id_token)
                break
            except ValueError as ve:
                logger.info("Token verification failed", extra={"error": str(ve)})
                return jsonify({'error': 'Invalid or expired token'}), 401
            except Exception as token_error:
                if _is_network_error(token_error) and attempt < max_retries - 1:
                    logger.warning(
                        "Network error during token verification",
                        extra={"attempt": attempt + 1, "error": str(token_error)},
                    )
                    time.sleep(retry_delay * (attempt + 1))
                    continue
                if _is_network_error(token_error):
                    return jsonify({
                        'error': 'Network error during authentication. Please try again.',
                        'retry': True
                    }), 503
                logger.info("Token rejected", extra={"error": str(token_error)})
                return jsonify({'error': 'Invalid or expired token. Please sign in again.'}), 401

        return fn(*args, **kwargs)
    return wrapper


def get_rate_limit_key():
    """Rate limit per signed-in user when known, otherwise per address."""
    user = getattr(request, 'firebase_user', None)
    if user and user.get('uid'):
        return f"user:{user['uid']}"
    return get_remote_address()


def init_app_extensions(app: Flask):
    """Initializes Flask extensions like CORS and Rate Limiting."""
    global limiter
    limiter = Limiter(
        app=app,
        key_func=get_rate_limit_key,
        default_limits=["2000 per day", "300 per hour"],
        storage_uri="memory://",
        strategy="fixed-window",
        headers_enabled=True
    )
    app.limiter = limiter

    allowed_origins_env = os.getenv("CORS_ORIGINS", "")
    allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]
    default_origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    # Cannot use "*" with supports_credentials=True
    CORS(app,
         resources={r"/api/*": {
             "origins": sorted(set(default_origins + allowed_origins)),
             "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
             "allow_headers": ["Content-Type", "Authorization"],
             "max_age": 3600,
         }},
         supports_credentials=True)
    app.secret_key = FLASK_SECRET

"""
Health check routes
"""
import firebase_admin
from flask import Blueprint, jsonify

from resumesync.extensions import get_db

health_bp = Blueprint('health', __name__)


@health_bp.route('/ping')
def ping():
    return "pong"


@health_bp.route('/health')
def health():
    """Health check endpoint"""
    firebase_status = 'not_initialized'
    firebase_error = None
    if firebase_admin._apps:
        try:
            firebase_status = 'initialized' if get_db() else 'apps_exist_but_db_none'
        except Exception as e:
            firebase_status = 'error'
            firebase_error = str(e)

    return jsonify({
        'status': 'healthy',
        'services': {
            'firebase': {
                'status': firebase_status,
                'error': firebase_error
            }
        }
    })


@health_bp.get("/healthz")
def healthz():
    """Kubernetes health check endpoint"""
    return jsonify({"status": "ok"}), 200

"""
Resume persistence routes (durable store)
"""
import functools
import logging

from flask import Blueprint, request, jsonify

from resumesync.extensions import require_firebase_auth
from resumesync.services.normalizer import normalize
from resumesync.services.resume_store import ResumeStore
from resumesync.utils.exceptions import (
    AuthenticationError,
    ExternalAPIError,
    NotFoundError,
    ResumeSyncException,
)
from resumesync.utils.validation import SaveResumeRequest, ValidateNameRequest, validate_request

logger = logging.getLogger(__name__)

resume_bp = Blueprint('resume', __name__, url_prefix='/api/resume')


def _uid() -> str:
    uid = (getattr(request, 'firebase_user', None) or {}).get('uid')
    if not uid:
        raise AuthenticationError("User ID not found in token")
    return uid


def firestore_errors(fn):
    """Report unexpected Firestore failures as a 502 instead of a bare 500."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ResumeSyncException:
            raise
        except Exception as e:
            logger.exception("Resume store call failed", extra={"endpoint": fn.__name__})
            raise ExternalAPIError("Firestore", details={"error": str(e)}) from e
    return wrapper


@resume_bp.route('/save', methods=['POST'])
@require_firebase_auth
@firestore_errors
def save_resume():
    """Create a new resume document"""
    uid = _uid()
    data = validate_request(SaveResumeRequest, request.get_json(silent=True) or {})
    store = ResumeStore()
    name = store.unique_title(uid, data['resumeName']) if data.get('resumeName') else None
    meta = store.create(
        uid,
        data['resumeData'],
        name=name,
        template_id=data.get('templateId'),
        section_order=data.get('sectionOrder'),
    )
    return jsonify({
        'success': True,
        'resumeId': meta['id'],
        'resumeName': meta['title'],
        'lastUpdated': meta['lastUpdated'],
    }), 201


@resume_bp.route('/update/<resume_id>', methods=['PUT'])
@require_firebase_auth
@firestore_errors
def update_resume(resume_id):
    """Replace the content of an existing resume"""
    uid = _uid()
    data = validate_request(SaveResumeRequest, request.get_json(silent=True) or {})
    meta = ResumeStore().update(
        uid,
        resume_id,
        data['resumeData'],
        name=data.get('resumeName'),
        template_id=data.get('templateId'),
        section_order=data.get('sectionOrder'),
    )
    if meta is None:
        raise NotFoundError("Resume", details={'resumeId': resume_id})
    return jsonify({
        'success': True,
        'resumeId': meta['id'],
        'resumeName': meta['title'],
        'lastUpdated': meta['lastUpdated'],
    })


@resume_bp.route('/get/<resume_id>', methods=['GET'])
@require_firebase_auth
@firestore_errors
def get_resume(resume_id):
    uid = _uid()
    resume = ResumeStore().get(uid, resume_id)
    if resume is None:
        raise NotFoundError("Resume", details={'resumeId': resume_id})
    return jsonify({'success': True, 'resume': resume})


@resume_bp.route('/list', methods=['GET'])
@require_firebase_auth
@firestore_errors
def list_resumes():
    uid = _uid()
    return jsonify({'success': True, 'resumes': ResumeStore().list(uid)})


@resume_bp.route('/delete/<resume_id>', methods=['DELETE'])
@require_firebase_auth
@firestore_errors
def delete_resume(resume_id):
    uid = _uid()
    if not ResumeStore().delete(uid, resume_id):
        raise NotFoundError("Resume", details={'resumeId': resume_id})
    return jsonify({'success': True})


@resume_bp.route('/validate-name', methods=['POST'])
@require_firebase_auth
@firestore_errors
def validate_name():
    """Report whether a title is free and suggest a unique one"""
    uid = _uid()
    data = validate_request(ValidateNameRequest, request.get_json(silent=True) or {})
    suggestion = ResumeStore().unique_title(uid, data['name'], exclude_id=data.get('excludeId'))
    return jsonify({
        'success': True,
        'available': suggestion == data['name'],
        'suggestion': suggestion,
    })


@resume_bp.route('/import', methods=['POST'])
@require_firebase_auth
def import_resume():
    """Normalize a raw imported resume into the canonical shape"""
    raw = request.get_json(silent=True)
    document = normalize(raw)
    logger.info("Resume import normalized", extra={"uid": _uid()})
    return jsonify({'success': True, 'resumeData': document.to_stored()})

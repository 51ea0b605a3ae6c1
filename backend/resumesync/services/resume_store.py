"""
Firestore-backed resume records: users/{uid}/resumes/{resumeId}
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from resumesync.config import (
    DEFAULT_TEMPLATE_ID,
    DEFAULT_TITLE,
    MAX_TITLE_SUFFIX_ATTEMPTS,
    RESUMES_COLLECTION,
    USERS_COLLECTION,
)
from resumesync.extensions import get_db
from resumesync.models.enums import DEFAULT_SECTION_ORDER

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_meta(resume_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
    """Wire-format metadata for one stored record."""
    return {
        "id": resume_id,
        "title": record.get("resumeName") or DEFAULT_TITLE,
        "templateId": record.get("templateId") or DEFAULT_TEMPLATE_ID,
        "lastUpdated": record.get("updatedAt"),
        "sectionOrder": record.get("sectionOrder") or list(DEFAULT_SECTION_ORDER),
    }


class ResumeStore:
    """Per-user resume documents in Firestore."""

    def __init__(self, db=None):
        self._db = db

    def _get_db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    def _collection(self, uid: str):
        return (
            self._get_db()
            .collection(USERS_COLLECTION)
            .document(uid)
            .collection(RESUMES_COLLECTION)
        )

    def create(
        self,
        uid: str,
        resume_data: Dict[str, Any],
        name: Optional[str] = None,
        template_id: Optional[str] = None,
        section_order: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        ref = self._collection(uid).document()
        now = _now_iso()
        record = {
            "resumeData": resume_data,
            "resumeName": name or DEFAULT_TITLE,
            "templateId": template_id or DEFAULT_TEMPLATE_ID,
            "sectionOrder": section_order or list(DEFAULT_SECTION_ORDER),
            "createdAt": now,
            "updatedAt": now,
        }
        ref.set(record)
        logger.info("Resume created", extra={"uid": uid, "resume_id": ref.id})
        return to_meta(ref.id, record)

    def update(
        self,
        uid: str,
        resume_id: str,
        resume_data: Dict[str, Any],
        name: Optional[str] = None,
        template_id: Optional[str] = None,
        section_order: Optional[List[str]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Replace content of an existing record; None when it does not exist."""
        ref = self._collection(uid).document(resume_id)
        snapshot = ref.get()
        if not snapshot.exists:
            return None

        record = snapshot.to_dict() or {}
        changes = {"resumeData": resume_data, "updatedAt": _now_iso()}
        if name:
            changes["resumeName"] = name
        if template_id:
            changes["templateId"] = template_id
        if section_order:
            changes["sectionOrder"] = section_order
        ref.update(changes)
        record.update(changes)
        return to_meta(resume_id, record)

    def get(self, uid: str, resume_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self._collection(uid).document(resume_id).get()
        if not snapshot.exists:
            return None
        record = snapshot.to_dict() or {}
        return {**to_meta(resume_id, record), "resumeData": record.get("resumeData") or {}}

    def list(self, uid: str) -> List[Dict[str, Any]]:
        metas = [to_meta(doc.id, doc.to_dict() or {}) for doc in self._collection(uid).stream()]
        metas.sort(key=lambda m: m["lastUpdated"] or "", reverse=True)
        return metas

    def delete(self, uid: str, resume_id: str) -> bool:
        ref = self._collection(uid).document(resume_id)
        if not ref.get().exists:
            return False
        ref.delete()
        logger.info("Resume deleted", extra={"uid": uid, "resume_id": resume_id})
        return True

    def unique_title(self, uid: str, name: str, exclude_id: Optional[str] = None) -> str:
        """`name` if free, else the first free "name (n)" for n = 2..limit."""
        taken = {
            (m["title"] or "").strip().casefold()
            for m in self.list(uid)
            if m["id"] != exclude_id
        }
        base = name.strip() or DEFAULT_TITLE
        if base.casefold() not in taken:
            return base
        for n in range(2, MAX_TITLE_SUFFIX_ATTEMPTS + 1):
            candidate = f"{base} ({n})"
            if candidate.casefold() not in taken:
                return candidate
        return f"{base} ({_now_iso()[:19]})"

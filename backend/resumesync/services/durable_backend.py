"""
Durable backend: the resume API over HTTP.

Every call is a network round trip and can fail on its own (timeout, auth
rejected, record deleted elsewhere). Those failures come back as
PersistenceResult values; `is_available` only reflects whether we believe
we are signed in.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from resumesync.config import RESUME_API_BASE_URL, RESUME_API_READ_RETRIES, RESUME_API_TIMEOUT_SECONDS
from resumesync.models.document import CanonicalDocument, DocumentMeta, StoredDocument
from resumesync.models.enums import BackendKind, FailureKind
from resumesync.services.identity import IdentityProvider
from resumesync.services.persistence import PersistencePort, PersistenceResult, SaveOptions, SaveReceipt
from resumesync.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

_STATUS_KINDS = {
    400: FailureKind.VALIDATION,
    401: FailureKind.UNAVAILABLE,
    403: FailureKind.UNAVAILABLE,
    404: FailureKind.NOT_FOUND,
    422: FailureKind.VALIDATION,
}


def _failure_from_response(response: httpx.Response) -> PersistenceResult:
    kind = _STATUS_KINDS.get(response.status_code, FailureKind.TRANSIENT)
    try:
        reason = response.json().get("error") or response.reason_phrase
    except ValueError:
        reason = response.reason_phrase or f"HTTP {response.status_code}"
    return PersistenceResult.failure(kind, reason)


class DurableBackend(PersistencePort):
    kind = BackendKind.DURABLE

    def __init__(
        self,
        identity: IdentityProvider,
        base_url: str = RESUME_API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = RESUME_API_TIMEOUT_SECONDS,
        read_retries: int = RESUME_API_READ_RETRIES,
    ):
        self.identity = identity
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout
        self.read_retries = read_retries

    def is_available(self) -> bool:
        return self.identity.is_authenticated

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/api/resume",
            transport=self.transport,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.identity.get_token()}"},
        )

    async def _send(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> httpx.Response:
        async with self._client() as client:
            return await client.request(method, path, json=json)

    async def _read(self, path: str) -> httpx.Response:
        @retry_with_backoff(max_retries=self.read_retries, initial_delay=0.25)
        async def attempt():
            return await self._send("GET", path)

        return await attempt()

    async def _call(self, method: str, path: str, json: Optional[Dict[str, Any]] = None):
        """(response, None) on a 2xx, (None, failure) otherwise."""
        if not self.is_available():
            return None, PersistenceResult.failure(FailureKind.UNAVAILABLE, "Not signed in")
        try:
            if method == "GET":
                response = await self._read(path)
            else:
                response = await self._send(method, path, json=json)
        except httpx.TimeoutException:
            logger.warning("Resume API timed out", extra={"method": method, "path": path})
            return None, PersistenceResult.failure(FailureKind.TRANSIENT, "The resume service timed out")
        except httpx.HTTPError as e:
            logger.warning("Resume API unreachable", extra={"method": method, "path": path, "error": str(e)})
            return None, PersistenceResult.failure(FailureKind.TRANSIENT, "The resume service is unreachable")

        if response.is_success:
            return response, None
        logger.info(
            "Resume API returned an error",
            extra={"method": method, "path": path, "status": response.status_code},
        )
        return None, _failure_from_response(response)

    async def load(self, document_id: Optional[str]) -> PersistenceResult[StoredDocument]:
        if not document_id:
            return PersistenceResult.failure(FailureKind.NOT_FOUND, "No resume id")
        response, failure = await self._call("GET", f"/get/{document_id}")
        if failure:
            return failure

        resume = response.json().get("resume") or {}
        try:
            content = CanonicalDocument.from_stored(resume.get("resumeData"))
            meta = DocumentMeta.model_validate({k: v for k, v in resume.items() if k != "resumeData"})
        except PydanticValidationError as e:
            logger.warning("Stored resume is unreadable", extra={"resume_id": document_id, "errors": e.error_count()})
            return PersistenceResult.failure(FailureKind.VALIDATION, "Stored resume is unreadable")
        return PersistenceResult.success(StoredDocument(content=content, meta=meta))

    async def save(
        self, content: CanonicalDocument, options: Optional[SaveOptions] = None
    ) -> PersistenceResult[SaveReceipt]:
        options = options or SaveOptions()
        body: Dict[str, Any] = {"resumeData": content.to_stored()}
        if options.title:
            body["resumeName"] = options.title
        if options.template_id:
            body["templateId"] = options.template_id
        if options.section_order:
            body["sectionOrder"] = options.section_order

        if options.id:
            response, failure = await self._call("PUT", f"/update/{options.id}", json=body)
        else:
            response, failure = await self._call("POST", "/save", json=body)
        if failure:
            return failure

        payload = response.json()
        return PersistenceResult.success(SaveReceipt(
            id=payload["resumeId"],
            title=payload.get("resumeName") or options.title or content.suggested_title(),
            last_updated=payload.get("lastUpdated"),
        ))

    async def delete(self, document_id: str) -> PersistenceResult[None]:
        _response, failure = await self._call("DELETE", f"/delete/{document_id}")
        return failure or PersistenceResult.success()

    async def list(self) -> PersistenceResult[List[DocumentMeta]]:
        response, failure = await self._call("GET", "/list")
        if failure:
            return failure
        metas = [DocumentMeta.model_validate(item) for item in response.json().get("resumes", [])]
        return PersistenceResult.success(metas)

    async def unique_title(self, name: str) -> str:
        """Ask the server for a free title; falls back to `name` on any failure."""
        response, failure = await self._call("POST", "/validate-name", json={"name": name})
        if failure:
            return name
        return response.json().get("suggestion") or name

"""
Persistence port shared by the ephemeral and durable backends.

Every method returns a PersistenceResult. Ordinary failures (store
unavailable, document missing, network trouble) come back as values; only
contract violations raise.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from resumesync.models.document import CanonicalDocument, DocumentMeta, StoredDocument
from resumesync.models.enums import BackendKind, FailureKind
from resumesync.utils.exceptions import ContractViolation

T = TypeVar("T")


@dataclass(frozen=True)
class PersistenceResult(Generic[T]):
    """Uniform envelope: success flag, value, failure kind and a readable reason."""
    ok: bool
    value: Optional[T] = None
    kind: Optional[FailureKind] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, value: T = None) -> "PersistenceResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: FailureKind, reason: str) -> "PersistenceResult[T]":
        return cls(ok=False, kind=kind, reason=reason)

    @property
    def not_found(self) -> bool:
        return self.kind == FailureKind.NOT_FOUND


@dataclass
class SaveOptions:
    id: Optional[str] = None
    title: Optional[str] = None
    template_id: Optional[str] = None
    section_order: Optional[List[str]] = field(default=None)


@dataclass(frozen=True)
class SaveReceipt:
    id: str
    title: str
    last_updated: Optional[str] = None


class PersistencePort(ABC):
    """Contract implemented identically by each backend."""

    kind: BackendKind

    @abstractmethod
    def is_available(self) -> bool:
        """Cheap synchronous check; never touches the network."""

    @abstractmethod
    async def load(self, document_id: Optional[str]) -> PersistenceResult[StoredDocument]:
        ...

    @abstractmethod
    async def save(
        self, content: CanonicalDocument, options: Optional[SaveOptions] = None
    ) -> PersistenceResult[SaveReceipt]:
        ...

    async def update(
        self, document_id: str, content: CanonicalDocument, options: Optional[SaveOptions] = None
    ) -> PersistenceResult[SaveReceipt]:
        if not document_id:
            raise ContractViolation("update() requires a document id")
        options = options or SaveOptions()
        options.id = document_id
        return await self.save(content, options)

    @abstractmethod
    async def delete(self, document_id: str) -> PersistenceResult[None]:
        ...

    @abstractmethod
    async def list(self) -> PersistenceResult[List[DocumentMeta]]:
        ...

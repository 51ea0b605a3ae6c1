"""
Handoff to the renderer (PDF/preview). Rendering itself lives elsewhere;
this module only guarantees the renderer sees what has been saved.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union

from resumesync.models.document import CanonicalDocument
from resumesync.models.enums import BackendKind, SyncStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderRequest:
    content: CanonicalDocument
    template_id: str
    section_order: List[str] = field(default_factory=list)
    title: str = ""
    document_id: Optional[str] = None


@dataclass(frozen=True)
class RenderResult:
    ok: bool
    output: Any = None
    error: Optional[str] = None


Renderer = Callable[[RenderRequest], Union[Any, Awaitable[Any]]]


async def request_render(controller, renderer: Renderer, require_durable: bool = False) -> RenderResult:
    """Flush pending edits, then hand the saved document to `renderer`.

    With `require_durable` (e.g. sharing a link) the document must already
    live in the durable store.
    """
    await controller.flush()

    if controller.status == SyncStatus.UNSAVED:
        logger.warning("Rendering unsaved content", extra={"resume_id": controller.document_id})

    if require_durable and (
        not controller.document_id or controller.selector.active_backend.kind != BackendKind.DURABLE
    ):
        return RenderResult(ok=False, error="Sign in and save your resume before continuing")

    render_request = RenderRequest(
        content=controller.content,
        template_id=controller.meta.template_id,
        section_order=list(controller.meta.section_order),
        title=controller.meta.title,
        document_id=controller.document_id,
    )
    output = renderer(render_request)
    if hasattr(output, "__await__"):
        output = await output
    return RenderResult(ok=True, output=output)

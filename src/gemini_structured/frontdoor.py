"""Convenience entry point combining orchestration and recovery.

``generate_document`` is what most callers need: send a prompt, obtain one
complete (or best-effort truncated) response, and recover the structured
document from it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gemini_structured.config import FrozenConfig, resolve_config
from gemini_structured.core.types import RecoveredDocument, Shape
from gemini_structured.orchestrator.orchestrator import GenerationOrchestrator
from gemini_structured.recovery.parser import ParserOptions, ProgressiveParser

if TYPE_CHECKING:
    from gemini_structured.adapters.base import GenerationTransport

log = logging.getLogger(__name__)


def parser_options(config: FrozenConfig) -> ParserOptions:
    """Parser options derived from resolved configuration."""
    return ParserOptions(
        latex_aware=config.latex_aware,
        max_resegment_candidates=config.max_resegment_candidates,
    )


def create_orchestrator(
    cfg: FrozenConfig | None = None,
    *,
    transport: GenerationTransport | None = None,
) -> GenerationOrchestrator:
    """Build an orchestrator, resolving configuration when none is given."""
    return GenerationOrchestrator.from_config(cfg or resolve_config(), transport)


async def generate_document(
    prompt: str,
    expected_item_count: int,
    shape: Shape | str = Shape.ARRAY,
    *,
    orchestrator: GenerationOrchestrator | None = None,
    options: ParserOptions | None = None,
    parser: ProgressiveParser | None = None,
) -> RecoveredDocument:
    """Generate and recover a structured document.

    Args:
        prompt: Prompt sent to the model.
        expected_item_count: How many items the caller expects; sizes the
            output budget.
        shape: ``"array"`` or ``"object"``.
        orchestrator: Optional orchestrator. If omitted, one is built from
            ``resolve_config()``.
        options: Parser options; default to the orchestrator's configuration.
        parser: Optional parser instance; takes precedence over ``options``.

    Raises:
        OrchestratorError: No response could be obtained.
        RecoveryError: A response was obtained but no document could be
            recovered from it.

    Example:
        ```python
        doc = await generate_document("List 5 quiz questions as JSON", 5)
        for item in doc.value:
            ...
        ```
    """
    shape = Shape.coerce(shape)
    orchestrator = orchestrator or create_orchestrator()
    parser = parser or ProgressiveParser(options or parser_options(orchestrator.config))

    raw = await orchestrator.orchestrate_generation(prompt, expected_item_count, shape)
    document = parser.recover(raw, shape)
    if document.salvaged:
        log.warning(
            "Request %s: kept %d item(s) from a truncated response, dropped %d chars",
            raw.request_id,
            len(document.value),
            document.discarded_chars,
        )
    return document

"""Transport protocol used by the orchestrator.

A transport performs exactly one upstream call per ``send`` and never
retries on its own; rotation and backoff belong to the orchestrator. Failures
are raised (``TransportError`` preferably, so the class is explicit; any other
exception is classified from its status code and message).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gemini_structured.core.types import RawResponse
    from gemini_structured.orchestrator.credentials import CredentialSlot


@runtime_checkable
class GenerationTransport(Protocol):
    """One-shot text generation against an upstream model."""

    async def send(
        self, prompt: str, max_output_tokens: int, credential: CredentialSlot
    ) -> RawResponse:
        """Send ``prompt`` with ``credential`` and return the complete text."""
        ...

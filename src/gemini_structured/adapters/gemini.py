"""Google GenAI transport."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import TYPE_CHECKING, Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from gemini_structured.core.exceptions import TransportError
from gemini_structured.core.types import ErrorClass, RawResponse
from gemini_structured.orchestrator.classify import classify_error, retry_after_hint

if TYPE_CHECKING:
    from gemini_structured.orchestrator.credentials import CredentialSlot

log = logging.getLogger(__name__)


def _finish_reason(response: Any) -> str | None:
    candidates = getattr(response, "candidates", None) or ()
    if not candidates:
        return None
    reason = getattr(candidates[0], "finish_reason", None)
    if reason is None:
        return None
    return str(getattr(reason, "name", reason))


def _block_reason(response: Any) -> str | None:
    feedback = getattr(response, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None) if feedback else None
    if reason is None:
        return None
    return str(getattr(reason, "name", reason))


class GoogleGenAITransport:
    """Send prompts through ``google.genai`` with one client per credential."""

    def __init__(
        self,
        model: str,
        *,
        temperature: float = 0.7,
        system_instruction: str | None = None,
        client_factory: Callable[..., Any] = genai.Client,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.system_instruction = system_instruction
        self._client_factory = client_factory
        self._clients: dict[int, Any] = {}

    def _client_for(self, credential: CredentialSlot) -> Any:
        client = self._clients.get(credential.index)
        if client is None:
            client = self._client_factory(api_key=credential.key)
            self._clients[credential.index] = client
        return client

    def _config(self, max_output_tokens: int) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            max_output_tokens=max_output_tokens,
            temperature=self.temperature,
            system_instruction=self.system_instruction,
        )

    async def send(
        self, prompt: str, max_output_tokens: int, credential: CredentialSlot
    ) -> RawResponse:
        client = self._client_for(credential)
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._config(max_output_tokens),
            )
        except genai_errors.APIError as e:
            error_class = classify_error(e)
            log.debug(
                "Upstream call on slot %d failed (%s, code=%s): %s",
                credential.index,
                error_class.value,
                e.code,
                e.message,
            )
            raise TransportError(
                str(e),
                error_class=error_class,
                status_code=e.code,
                retry_after=retry_after_hint(e),
            ) from e

        text = response.text or ""
        blocked = _block_reason(response)
        if blocked and not text:
            raise TransportError(
                f"Prompt blocked by safety filters ({blocked})",
                error_class=ErrorClass.FATAL,
            )
        return RawResponse(text=text, finish_reason=_finish_reason(response))

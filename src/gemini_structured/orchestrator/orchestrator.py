"""Request orchestration: rotation, backoff and truncation retry.

``GenerationOrchestrator.orchestrate_generation`` turns one prompt into one
complete ``RawResponse``:

- Output budget starts at ``base + per_item * expected_item_count``, capped.
- Quota errors put the current credential into cooldown and rotate to the
  next one after a short delay.
- Overload errors rotate as well, with a delay that grows with the attempt
  number.
- Fatal errors abort immediately.
- A response the upstream reports as cut at the token limit is retried on the
  same credential with a larger budget, while attempts remain and the budget
  can still grow. Without a reported finish reason, a response that does not
  end with the expected closing bracket is treated the same way. Once no
  retry is left, the last truncated response is returned flagged so the
  caller can salvage it.

The attempt budget is ``max(attempt_floor, pool size)`` so a large pool is
always walked once.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import dataclasses
import logging
import time
from typing import TYPE_CHECKING
import uuid

from gemini_structured.core.exceptions import (
    FatalRequestError,
    OverloadExhausted,
    QuotaExhausted,
)
from gemini_structured.core.types import ErrorClass, RawResponse, RequestAttempt, Shape
from gemini_structured.config.types import FrozenConfig
from gemini_structured.orchestrator.budget import grow_budget, output_budget
from gemini_structured.orchestrator.classify import (
    classify_error,
    quota_limit_hint,
    retry_after_hint,
)
from gemini_structured.orchestrator.credentials import CredentialPool, CredentialSlot
from gemini_structured.recovery.normalizer import ends_cleanly
from gemini_structured.telemetry import TelemetryContext, TelemetryContextProtocol

if TYPE_CHECKING:
    from gemini_structured.adapters.base import GenerationTransport

log = logging.getLogger(__name__)

T_GENERATE = "orchestrator.generate"
T_ATTEMPT = "orchestrator.attempt"

_TRUNCATED_FINISH_REASONS = frozenset({"MAX_TOKENS"})
_UNKNOWN_FINISH_REASONS = frozenset({"FINISH_REASON_UNSPECIFIED"})


class GenerationOrchestrator:
    """Drive one upstream transport across a pool of credentials."""

    def __init__(
        self,
        transport: GenerationTransport,
        pool: CredentialPool,
        config: FrozenConfig | None = None,
        *,
        telemetry: TelemetryContextProtocol | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self.pool = pool
        self.config = config or FrozenConfig()
        self._telemetry = telemetry or TelemetryContext()
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: FrozenConfig,
        transport: GenerationTransport | None = None,
        **kwargs: object,
    ) -> GenerationOrchestrator:
        """Build an orchestrator from resolved configuration.

        Without an explicit transport, a ``GoogleGenAITransport`` for the
        configured model is used.
        """
        if transport is None:
            from gemini_structured.adapters.gemini import GoogleGenAITransport

            transport = GoogleGenAITransport(config.model, temperature=config.temperature)
        pool = CredentialPool.from_keys(config.api_keys)
        return cls(transport, pool, config, **kwargs)  # type: ignore[arg-type]

    @property
    def max_attempts(self) -> int:
        return max(self.config.attempt_floor, self.pool.size)

    def initial_budget(self, expected_item_count: int) -> int:
        return output_budget(
            expected_item_count,
            base=self.config.base_output_tokens,
            per_item=self.config.tokens_per_item,
            ceiling=self.config.max_output_tokens,
        )

    def _looks_truncated(self, response: RawResponse, shape: Shape) -> bool:
        """Trust the reported finish reason; fall back to the closing bracket."""
        reason = response.finish_reason
        if reason in _TRUNCATED_FINISH_REASONS:
            return True
        if reason is not None and reason not in _UNKNOWN_FINISH_REASONS:
            return False
        return not ends_cleanly(response.text, shape)

    async def orchestrate_generation(
        self,
        prompt: str,
        expected_item_count: int,
        expected_shape: Shape | str = Shape.ARRAY,
    ) -> RawResponse:
        """Obtain one complete response for ``prompt``.

        Raises:
            QuotaExhausted: every attempt ended in a quota error.
            OverloadExhausted: attempts ran out while the service was overloaded.
            FatalRequestError: a non-retryable failure occurred.
        """
        shape = Shape.coerce(expected_shape)
        request_id = uuid.uuid4().hex[:12]
        with self._telemetry(T_GENERATE, request_id=request_id, shape=shape.value):
            return await self._run(prompt, expected_item_count, shape, request_id)

    async def _run(
        self, prompt: str, expected_item_count: int, shape: Shape, request_id: str
    ) -> RawResponse:
        cfg = self.config
        max_attempts = self.max_attempts
        budget = self.initial_budget(expected_item_count)
        attempts: list[RequestAttempt] = []
        last_error: BaseException | None = None
        last_class: ErrorClass | None = None
        last_truncated: RawResponse | None = None
        retry_after: float | None = None
        quota_limit: int | None = None

        log.debug(
            "Generation %s: %d attempt(s) over %d credential(s), initial budget %d tokens",
            request_id,
            max_attempts,
            self.pool.size,
            budget,
        )

        slot = self.pool.next_slot()
        for attempt in range(1, max_attempts + 1):
            started = self._clock()
            try:
                with self._telemetry(T_ATTEMPT, attempt=attempt, slot=slot.index):
                    response = await self.transport.send(prompt, budget, slot)
            except Exception as e:
                error_class = classify_error(e)
                attempts.append(
                    self._record(slot, attempt, started, error_class, budget, str(e))
                )
                self._telemetry.count(f"orchestrator.retry.{error_class.value}")
                last_error, last_class = e, error_class

                if error_class is ErrorClass.FATAL:
                    log.error(
                        "Generation %s: fatal upstream error on attempt %d: %s",
                        request_id,
                        attempt,
                        e,
                    )
                    raise FatalRequestError(
                        f"Upstream rejected the request: {e}",
                        attempts=tuple(attempts),
                        last_error=e,
                    ) from e

                if error_class is ErrorClass.QUOTA:
                    hint = retry_after_hint(e)
                    if hint is not None:
                        retry_after = max(retry_after or 0.0, hint)
                    quota_limit = quota_limit_hint(e) or quota_limit
                    self.pool.record_quota(slot, max(cfg.quota_cooldown, hint or 0.0))
                    delay = cfg.quota_retry_delay
                else:
                    delay = cfg.overload_base_delay * attempt

                if attempt == max_attempts:
                    break
                slot = await self._rotate(request_id, error_class, attempt, delay)
                continue

            output = dataclasses.replace(
                response, request_id=request_id, output_budget=budget
            )
            if not self._looks_truncated(output, shape):
                attempts.append(self._record(slot, attempt, started, "success", budget))
                log.debug(
                    "Generation %s: complete response on attempt %d (%d chars)",
                    request_id,
                    attempt,
                    output.length,
                )
                return output

            attempts.append(self._record(slot, attempt, started, "truncated", budget))
            self._telemetry.count("orchestrator.retry.truncated")
            last_truncated = dataclasses.replace(output, truncated_suspected=True)
            if attempt == max_attempts:
                break
            grown = grow_budget(budget, growth=cfg.truncation_growth, ceiling=cfg.max_output_tokens)
            if grown <= budget:
                log.debug(
                    "Generation %s: budget already at the %d token ceiling", request_id, budget
                )
                break
            log.warning(
                "Generation %s: response looks truncated (finish_reason=%s); "
                "retrying with budget %d -> %d",
                request_id,
                output.finish_reason,
                budget,
                grown,
            )
            budget = grown

        if last_truncated is not None:
            log.warning(
                "Generation %s: no truncation retry left; returning truncated response for salvage",
                request_id,
            )
            return last_truncated

        recorded = tuple(attempts)
        if last_class is ErrorClass.QUOTA:
            log.error("Generation %s: all credentials exhausted their quota", request_id)
            raise QuotaExhausted(
                f"Quota exhausted across {self.pool.size} credential(s) "
                f"after {len(recorded)} attempt(s)",
                attempts=recorded,
                last_error=last_error,
                retry_after=retry_after,
                quota_limit=quota_limit,
            ) from last_error
        log.error("Generation %s: service stayed overloaded after %d attempt(s)", request_id, len(recorded))
        raise OverloadExhausted(
            f"Service overloaded after {len(recorded)} attempt(s)",
            attempts=recorded,
            last_error=last_error,
        ) from last_error

    async def _rotate(
        self, request_id: str, error_class: ErrorClass, attempt: int, delay: float
    ) -> CredentialSlot:
        slot = self.pool.next_slot()
        log.warning(
            "Generation %s: %s error on attempt %d; retrying on slot %d in %.1fs",
            request_id,
            error_class.value,
            attempt,
            slot.index,
            delay,
        )
        if delay > 0:
            await self._sleep(delay)
        return slot

    def _record(
        self,
        slot: CredentialSlot,
        attempt: int,
        started: float,
        outcome: str | ErrorClass,
        budget: int,
        message: str = "",
    ) -> RequestAttempt:
        return RequestAttempt(
            slot_index=slot.index,
            attempt=attempt,
            elapsed=max(0.0, self._clock() - started),
            outcome=outcome,  # type: ignore[arg-type]
            output_budget=budget,
            message=message,
        )


async def orchestrate_generation(
    prompt: str,
    expected_item_count: int,
    expected_shape: Shape | str = Shape.ARRAY,
    *,
    orchestrator: GenerationOrchestrator | None = None,
) -> RawResponse:
    """Module-level convenience wrapper.

    Without an explicit orchestrator, configuration is resolved from the
    environment and the Google GenAI transport is used.
    """
    if orchestrator is None:
        from gemini_structured.config import resolve_config

        orchestrator = GenerationOrchestrator.from_config(resolve_config())
    return await orchestrator.orchestrate_generation(
        prompt, expected_item_count, expected_shape
    )

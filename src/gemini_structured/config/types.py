"""Immutable configuration used by the orchestrator and parser.

Configuration is resolved once (``resolve_config``), frozen, and then passed
explicitly; nothing reads the environment after resolution.
"""

from dataclasses import dataclass, field
from typing import Any

from gemini_structured import constants


@dataclass(frozen=True, slots=True)
class FrozenConfig:
    """Resolved, validated and immutable configuration."""

    model: str = constants.DEFAULT_MODEL
    temperature: float = constants.DEFAULT_TEMPERATURE
    api_keys: tuple[str, ...] = field(default=(), repr=False)

    attempt_floor: int = constants.ATTEMPT_FLOOR
    quota_retry_delay: float = constants.QUOTA_RETRY_DELAY
    overload_base_delay: float = constants.OVERLOAD_BASE_DELAY
    quota_cooldown: float = constants.QUOTA_COOLDOWN

    base_output_tokens: int = constants.BASE_OUTPUT_TOKENS
    tokens_per_item: int = constants.TOKENS_PER_ITEM
    max_output_tokens: int = constants.MAX_OUTPUT_TOKENS
    truncation_growth: float = constants.TRUNCATION_GROWTH

    latex_aware: bool = False
    max_resegment_candidates: int = constants.MAX_RESEGMENT_CANDIDATES

    @property
    def key_count(self) -> int:
        return len(self.api_keys)

    def summary(self) -> dict[str, Any]:
        """Configuration as a dict with key material redacted, for logging."""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "api_keys": f"<{self.key_count} redacted>",
            "attempt_floor": self.attempt_floor,
            "quota_retry_delay": self.quota_retry_delay,
            "overload_base_delay": self.overload_base_delay,
            "quota_cooldown": self.quota_cooldown,
            "base_output_tokens": self.base_output_tokens,
            "tokens_per_item": self.tokens_per_item,
            "max_output_tokens": self.max_output_tokens,
            "truncation_growth": self.truncation_growth,
            "latex_aware": self.latex_aware,
            "max_resegment_candidates": self.max_resegment_candidates,
        }

"""Configuration schema and validation using Pydantic.

Validates and coerces configuration values from the environment (``GEMINI_``
prefix), an optional ``.env`` file, and programmatic overrides.
"""

from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gemini_structured import constants


class GenerationSettings(BaseSettings):
    """Pydantic settings schema for generation and recovery."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Upstream ---

    model: str = Field(default=constants.DEFAULT_MODEL, min_length=1)
    temperature: float = Field(default=constants.DEFAULT_TEMPERATURE, ge=0.0, le=2.0)

    # --- Retry and rotation ---

    attempt_floor: int = Field(default=constants.ATTEMPT_FLOOR, ge=1)
    quota_retry_delay: float = Field(default=constants.QUOTA_RETRY_DELAY, ge=0.0)
    overload_base_delay: float = Field(default=constants.OVERLOAD_BASE_DELAY, ge=0.0)
    quota_cooldown: float = Field(default=constants.QUOTA_COOLDOWN, ge=0.0)

    # --- Output budgeting ---

    base_output_tokens: int = Field(default=constants.BASE_OUTPUT_TOKENS, ge=1)
    tokens_per_item: int = Field(default=constants.TOKENS_PER_ITEM, ge=0)
    max_output_tokens: int = Field(default=constants.MAX_OUTPUT_TOKENS, ge=1)
    truncation_growth: float = Field(default=constants.TRUNCATION_GROWTH, ge=1.0)

    # --- Recovery ---

    latex_aware: bool = False
    max_resegment_candidates: int = Field(
        default=constants.MAX_RESEGMENT_CANDIDATES, ge=1
    )

    @field_validator("model", mode="before")
    @classmethod
    def strip_model(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_budget_bounds(self) -> "GenerationSettings":
        """The base budget must fit under the ceiling."""
        if self.base_output_tokens > self.max_output_tokens:
            raise ValueError(
                f"base_output_tokens ({self.base_output_tokens}) cannot exceed "
                f"max_output_tokens ({self.max_output_tokens})"
            )
        return self

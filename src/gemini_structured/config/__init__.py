"""Configuration for structured generation.

Precedence, highest first: programmatic overrides, environment variables
(``GEMINI_`` prefix, optionally seeded from a ``.env`` file), defaults.
"""

from collections.abc import Iterable
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError

from gemini_structured.core.exceptions import ConfigurationError

from .env_loader import get_env_summary, load_api_keys
from .schema import GenerationSettings
from .types import FrozenConfig

log = logging.getLogger(__name__)


def resolve_config(
    *,
    env_file: str | Path | None = None,
    api_keys: Iterable[str] | None = None,
    **overrides: Any,
) -> FrozenConfig:
    """Resolve configuration once and freeze it.

    Args:
        env_file: Optional ``.env`` file read in addition to the environment.
        api_keys: Explicit credential keys; when omitted they are discovered
            from the environment.
        **overrides: Field values that take precedence over the environment.

    Raises:
        ConfigurationError: If any value fails validation.
    """
    try:
        settings = GenerationSettings(_env_file=env_file, **overrides)  # type: ignore[call-arg]
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if api_keys is None:
        environ = dict(os.environ)
        if env_file is not None:
            file_values = dotenv_values(env_file)
            environ = {k: v for k, v in file_values.items() if v is not None} | environ
        keys = load_api_keys(environ)
    else:
        keys = tuple(k.strip() for k in api_keys if k and k.strip())

    config = FrozenConfig(api_keys=keys, **settings.model_dump())
    log.debug("Resolved configuration: %s", config.summary())
    return config


__all__ = [  # noqa: RUF022
    "resolve_config",
    "FrozenConfig",
    "GenerationSettings",
    "load_api_keys",
    "get_env_summary",
]

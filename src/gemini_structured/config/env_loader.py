"""Credential discovery from environment variables.

Keys are collected in rotation order:

1. ``GEMINI_API_KEY``
2. ``GEMINI_API_KEY_1`` through ``GEMINI_API_KEY_10``
3. ``GEMINI_API_KEYS`` (comma separated)

Blank values and duplicates are dropped; the first occurrence wins.
"""

from collections.abc import Mapping
import os

from gemini_structured import constants


def load_api_keys(environ: Mapping[str, str] | None = None) -> tuple[str, ...]:
    """Return the configured API keys in rotation order."""
    env = os.environ if environ is None else environ

    candidates: list[str] = [env.get(constants.API_KEY_ENV, "")]
    candidates.extend(
        env.get(f"{constants.API_KEY_ENV}_{i}", "")
        for i in range(1, constants.MAX_NUMBERED_KEYS + 1)
    )
    candidates.extend(env.get(constants.API_KEY_LIST_ENV, "").split(","))

    keys: list[str] = []
    for candidate in candidates:
        key = candidate.strip()
        if key and key not in keys:
            keys.append(key)
    return tuple(keys)


def get_env_summary(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Summarize ``GEMINI_*`` variables with key material redacted."""
    env = os.environ if environ is None else environ
    return {
        name: "<redacted>" if "API_KEY" in name else value
        for name, value in sorted(env.items())
        if name.startswith("GEMINI_")
    }

"""Unit tests for configuration resolution.

These tests verify the core behaviors of the configuration module:
- Loading settings and credentials from environment variables.
- Prioritizing explicit overrides over the environment.
- Reading an optional .env file without letting it beat the environment.
"""

import dataclasses

import pytest

from gemini_structured.config import (
    FrozenConfig,
    get_env_summary,
    load_api_keys,
    resolve_config,
)
from gemini_structured.core.exceptions import ConfigurationError

pytestmark = pytest.mark.unit


def test_defaults_without_environment():
    config = resolve_config()

    assert config.model == "gemini-2.5-flash"
    assert config.temperature == 0.7
    assert config.api_keys == ()
    assert config.attempt_floor == 3
    assert config.max_output_tokens == 65536
    assert config.latex_aware is False


def test_settings_and_keys_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_MODEL", "  gemini-2.5-pro ")
    monkeypatch.setenv("GEMINI_TEMPERATURE", "0.2")
    monkeypatch.setenv("GEMINI_LATEX_AWARE", "true")
    monkeypatch.setenv("GEMINI_API_KEY", "primary")
    monkeypatch.setenv("GEMINI_API_KEY_2", "second")
    monkeypatch.setenv("GEMINI_API_KEYS", "third, primary")

    config = resolve_config()

    assert config.model == "gemini-2.5-pro"
    assert config.temperature == 0.2
    assert config.latex_aware is True
    assert config.api_keys == ("primary", "second", "third")


def test_overrides_beat_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_MODEL", "env-model")

    config = resolve_config(model="override-model", api_keys=[" k1 ", "", "k2"])

    assert config.model == "override-model"
    assert config.api_keys == ("k1", "k2")


@pytest.mark.parametrize(
    "overrides",
    [
        {"temperature": 5},
        {"attempt_floor": 0},
        {"truncation_growth": 0.5},
        {"base_output_tokens": 70000, "max_output_tokens": 65536},
    ],
)
def test_invalid_values_raise_configuration_error(overrides):
    with pytest.raises(ConfigurationError):
        resolve_config(**overrides)


def test_env_file_is_read_but_environment_wins(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "GEMINI_MODEL=file-model\nGEMINI_API_KEY=file-key\nGEMINI_API_KEY_1=file-extra\n"
    )
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")

    config = resolve_config(env_file=env_file)

    assert config.model == "file-model"
    assert config.api_keys == ("env-key", "file-extra")


def test_load_api_keys_order_and_deduplication():
    environ = {
        "GEMINI_API_KEY": "a",
        "GEMINI_API_KEY_1": "a",
        "GEMINI_API_KEY_10": "c",
        "GEMINI_API_KEY_11": "ignored",
        "GEMINI_API_KEYS": " d , ,a",
    }

    assert load_api_keys(environ) == ("a", "c", "d")


def test_frozen_config_is_immutable_and_redacted():
    config = FrozenConfig(api_keys=("secret-one", "secret-two"))

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.model = "other"  # type: ignore[misc]
    assert "secret-one" not in repr(config)
    assert config.summary()["api_keys"] == "<2 redacted>"
    assert config.key_count == 2


def test_env_summary_redacts_keys():
    summary = get_env_summary({"GEMINI_API_KEY": "s", "GEMINI_MODEL": "m", "OTHER": "x"})

    assert summary == {"GEMINI_API_KEY": "<redacted>", "GEMINI_MODEL": "m"}

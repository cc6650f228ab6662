"""
Shared fixtures: environment isolation, fake credentials and scripted
orchestrators.
"""

import logging
import os

import pytest

from gemini_structured.config import FrozenConfig
from tests.fixtures.transports import make_orchestrator  # noqa: F401


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, isolated unit tests")
    config.addinivalue_line(
        "markers", "contract: transport protocol conformance tests"
    )


@pytest.fixture(autouse=True)
def isolate_gemini_env(monkeypatch):
    """Strip GEMINI_* variables (keys, settings, telemetry flag) per test.

    ``DEBUG`` is removed too since it switches telemetry on.
    """
    for name in [n for n in os.environ if n.startswith("GEMINI_")]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(scope="session", autouse=True)
def quiet_sdk_loggers():
    for name in ("google_genai", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


@pytest.fixture
def mock_api_keys():
    return ("test_key_alpha_0001", "test_key_bravo_0002", "test_key_charlie_0003")


@pytest.fixture
def fast_config(mock_api_keys):
    """Default retry policy over three fake keys."""
    return FrozenConfig(api_keys=mock_api_keys)

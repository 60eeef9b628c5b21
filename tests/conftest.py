"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import structlog

from testrelay.config import get_settings
from testrelay.logging import clear_import_context
from tests.factories import make_settings
from tests.fakes import FakeRegistryClient

if TYPE_CHECKING:
    from collections.abc import Generator

    from testrelay.config import Settings


SETTINGS_ENV_VARS = (
    "TESTRELAY_SERVER_URL",
    "TESTRELAY_API_KEY",
    "TESTRELAY_PROJECT_ID",
    "TESTRELAY_ENVIRONMENT",
    "TESTRELAY_LOG_LEVEL",
    "TESTRELAY_LOG_JSON_FORMAT",
)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires a live registry)",
    )


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (require a live registry)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly enabled."""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep host TESTRELAY_* variables and logging configuration out of tests."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    clear_import_context()
    structlog.reset_defaults()


@pytest.fixture
def settings() -> Settings:
    """Registry settings pointing at a fake server."""
    return make_settings()


@pytest.fixture
def fake_client() -> FakeRegistryClient:
    """Empty in-memory registry."""
    return FakeRegistryClient()

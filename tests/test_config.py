"""Tests for configuration settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from testrelay.config import Settings, get_settings
from tests.factories import make_settings


class TestSettings:
    """Test suite for Settings."""

    def test_loads_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        # Given
        monkeypatch.setenv("TESTRELAY_SERVER_URL", "https://registry.example.test/")
        monkeypatch.setenv("TESTRELAY_API_KEY", "secret")
        monkeypatch.setenv("TESTRELAY_PROJECT_ID", "proj-7")
        monkeypatch.setenv("TESTRELAY_READ_TIMEOUT", "5")

        # When
        settings = Settings(_env_file=None)

        # Then
        assert settings.server_url == "https://registry.example.test"
        assert settings.api_base_url == "https://registry.example.test/api"
        assert settings.read_timeout == 5.0
        assert settings.environment == "AUTOMATION"

    def test_required_fields(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"server_url": "  "},
            {"api_key": ""},
            {"project_id": " "},
            {"connect_timeout": 0},
            {"read_timeout": -1},
        ],
    )
    def test_invalid_values(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            make_settings(**overrides)

    def test_for_project(self) -> None:
        settings = make_settings()

        other = settings.for_project(" proj-2 ", server_url="https://b.example.test/")

        assert other.project_id == "proj-2"
        assert other.server_url == "https://b.example.test"
        assert other.api_key == "test-key"
        assert settings.project_id == "proj-1"

    def test_for_project_ignores_blank_overrides(self) -> None:
        other = make_settings().for_project("proj-2", server_url=" ", api_key="")

        assert other.server_url == "https://registry.example.test"
        assert other.api_key == "test-key"

    def test_repr_hides_api_key(self) -> None:
        assert "test-key" not in repr(make_settings())

    def test_get_settings_is_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TESTRELAY_SERVER_URL", "https://registry.example.test")
        monkeypatch.setenv("TESTRELAY_API_KEY", "secret")
        monkeypatch.setenv("TESTRELAY_PROJECT_ID", "proj-7")

        assert get_settings() is get_settings()

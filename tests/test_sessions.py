"""Tests for per-project registry sessions."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from testrelay.config import Settings
from testrelay.registry import HttpRegistryClient
from testrelay.sessions import SessionRegistry
from tests.fakes import FakeRegistryClient


class RecordingFactory:
    """Client factory that remembers the settings of every client it built."""

    def __init__(self) -> None:
        self.built: list[tuple[Settings, FakeRegistryClient]] = []

    def __call__(self, settings: Settings) -> FakeRegistryClient:
        client = FakeRegistryClient()
        self.built.append((settings, client))
        return client


class BrokenClient(FakeRegistryClient):
    def close(self) -> None:
        super().close()
        raise RuntimeError("socket already closed")


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def sessions(settings: Settings, factory: RecordingFactory) -> SessionRegistry:
    return SessionRegistry(settings, client_factory=factory)


class TestSessionRegistry:
    """Tests for SessionRegistry."""

    def test_client_is_cached_per_project(
        self, sessions: SessionRegistry, factory: RecordingFactory
    ) -> None:
        first = sessions.get("proj-2")
        second = sessions.get(" proj-2 ")

        assert first is second
        assert len(factory.built) == 1
        assert factory.built[0][0].project_id == "proj-2"

    def test_blank_project_uses_default(
        self, sessions: SessionRegistry, factory: RecordingFactory
    ) -> None:
        assert sessions.get(None) is sessions.get("") is sessions.get("proj-1")
        assert sessions.project_ids() == ["proj-1"]

    def test_overrides_apply_on_creation(
        self, sessions: SessionRegistry, factory: RecordingFactory
    ) -> None:
        sessions.get("proj-3", server_url="https://other.example.test/", api_key="other-key")

        [(settings, _)] = factory.built
        assert settings.server_url == "https://other.example.test"
        assert settings.api_key == "other-key"
        assert sessions.settings.api_key == "test-key"

    def test_close_all_continues_past_errors(self, settings: Settings) -> None:
        clients = iter([BrokenClient(), FakeRegistryClient()])
        sessions = SessionRegistry(settings, client_factory=lambda s: next(clients))
        broken = sessions.get("a")
        healthy = sessions.get("b")

        sessions.close_all()

        assert broken.closed
        assert healthy.closed
        assert len(sessions) == 0

    def test_context_manager_closes(
        self, settings: Settings, factory: RecordingFactory
    ) -> None:
        with SessionRegistry(settings, client_factory=factory) as sessions:
            sessions.get("proj-1")

        assert factory.built[0][1].closed

    def test_concurrent_get_builds_one_client(
        self, sessions: SessionRegistry, factory: RecordingFactory
    ) -> None:
        with ThreadPoolExecutor(max_workers=8) as pool:
            clients = list(pool.map(lambda _: sessions.get("proj-9"), range(32)))

        assert len({id(client) for client in clients}) == 1
        assert len(factory.built) == 1

    def test_default_factory_builds_http_client(self, settings: Settings) -> None:
        with SessionRegistry(settings) as sessions:
            client = sessions.get()
            assert isinstance(client, HttpRegistryClient)
            assert client.project_id == "proj-1"

    def test_settings_required(self) -> None:
        with pytest.raises(ValueError):
            SessionRegistry(None)

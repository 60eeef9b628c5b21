"""Per-project registry client sessions.

A test suite may report into several projects, possibly on different
servers. ``SessionRegistry`` lazily creates one client per project id and
closes them all when the suite finishes.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from testrelay.config import Settings
from testrelay.logging import get_logger
from testrelay.registry.client import HttpRegistryClient, RegistryClient

logger = get_logger(__name__)

ClientFactory = Callable[[Settings], RegistryClient]


class SessionRegistry:
    """Thread-safe map of project id to registry client."""

    def __init__(self, settings: Settings, client_factory: ClientFactory | None = None):
        """Initialize the registry.

        Args:
            settings: Default connection settings; their project is the default project.
            client_factory: Builds a client from settings (defaults to HttpRegistryClient).
        """
        if settings is None:
            raise ValueError("Registry settings are required")
        self.settings = settings
        self._factory: ClientFactory = client_factory or HttpRegistryClient
        self._clients: dict[str, RegistryClient] = {}
        self._lock = threading.Lock()

    @property
    def default_project_id(self) -> str:
        return self.settings.project_id

    def __enter__(self) -> SessionRegistry:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close_all()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def project_ids(self) -> list[str]:
        with self._lock:
            return list(self._clients)

    def get(
        self,
        project_id: str | None = None,
        server_url: str | None = None,
        api_key: str | None = None,
    ) -> RegistryClient:
        """Return the cached client for a project, creating it on first use.

        Args:
            project_id: Target project; blank means the default project.
            server_url: Server override used only when the client is created.
            api_key: API key override used only when the client is created.
        """
        key = (project_id or "").strip() or self.default_project_id
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                client = self._factory(self.settings.for_project(key, server_url, api_key))
                self._clients[key] = client
                logger.debug("registry_session_created", project_id=key)
            return client

    def close_all(self) -> None:
        """Close every client, continuing past failures, and forget them."""
        with self._lock:
            clients = list(self._clients.items())
            self._clients.clear()
        for project_id, client in clients:
            try:
                client.close()
            except Exception as e:  # noqa: BLE001 - closing must reach every client
                logger.warning("registry_session_close_failed", project_id=project_id, error=str(e))

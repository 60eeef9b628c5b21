"""Registry client collaborator and its wire schemas."""

from .client import HttpRegistryClient, RegistryClient

__all__ = ["HttpRegistryClient", "RegistryClient"]

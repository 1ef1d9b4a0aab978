"""
BaseConnector — abstract interface for upstream identity connectors.

The authorization server drives every provider through the same three
operations: build the login URL, turn the callback into an Identity, and
refresh a previously resolved Identity.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping

from utils.schemas import Identity, Scopes


class BaseConnector(ABC):
    """Abstract base for all identity connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug, e.g. 'github'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable, e.g. 'GitHub'."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def login_url(self, scopes: Scopes, callback_url: str, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        scopes : Scopes
            Scopes requested by the downstream client.
        callback_url : str
            Must equal the redirect URI the connector was configured with.
        state : str
            Opaque state string, passed through untouched.
        """
        ...

    @abstractmethod
    async def handle_callback(self, scopes: Scopes, query: Mapping[str, str]) -> Identity:
        """
        Exchange the callback's authorization code for an Identity.

        ``query`` holds the callback request's query parameters.
        """
        ...

    @abstractmethod
    async def refresh(self, scopes: Scopes, identity: Identity) -> Identity:
        """Re-resolve ``identity`` using its ``connector_data``."""
        ...

"""
ConnectorRegistry — builds and provides access to configured connectors.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from config.settings import Settings, config
from connectors.base import BaseConnector

logger = logging.getLogger(__name__)


class ConnectorRegistry:
    """Singleton registry for all identity connectors."""

    _instance: Optional["ConnectorRegistry"] = None

    def __new__(cls) -> "ConnectorRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._connectors = {}
            cls._instance._discovered = False
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Destroy singleton — only useful in test teardown."""
        cls._instance = None

    def discover(self, settings: Optional[Settings] = None) -> None:
        """
        Build every connector that has credentials configured.

        An invalid configuration raises ConnectorConfigError, so a broken
        connector stops startup instead of being silently skipped.
        """
        if self._discovered:
            return
        settings = settings or config

        if settings.github_client_id and settings.github_client_secret:
            connector = settings.github_connector_config().open(
                "github", timeout=settings.http_timeout_seconds
            )
            self.register(connector)
        else:
            logger.warning(
                "Connector github skipped — not configured (missing client_id/secret)"
            )
        self._discovered = True

    def register(self, connector: BaseConnector) -> None:
        self._connectors[connector.provider_name] = connector
        logger.info(
            "Connector registered: %s (%s)",
            connector.display_name,
            connector.provider_name,
        )

    def get(self, provider: str) -> Optional[BaseConnector]:
        """Get a connector by provider name."""
        return self._connectors.get(provider)

    def list_providers(self) -> List[Dict[str, str]]:
        """Return info about all registered connectors."""
        return [
            {"provider": c.provider_name, "display_name": c.display_name}
            for c in self._connectors.values()
        ]

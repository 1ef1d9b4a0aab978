"""
Exception types raised by the identity connectors.

Callers can tell the failure domains apart:

- ``ConnectorConfigError`` — bad configuration, nothing was built.
- ``UpstreamError`` and subclasses — the provider answered with something
  unusable (bad status, bad JSON, network failure).
- ``NotAuthorizedError`` — the provider answered fine, but the user is not
  in any of the required orgs / teams.
- ``NoUsableEmailError`` — no verified email could be selected.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ConnectorError(Exception):
    """Base exception for all connector errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConnectorConfigError(ConnectorError):
    """Raised when a connector configuration is invalid."""


class RedirectURIMismatchError(ConnectorError):
    """Raised when the caller's callback URL differs from the configured one."""

    def __init__(self, callback_url: str, redirect_uri: str):
        super().__init__(
            f"expected callback URL {callback_url!r} did not match the URL in the config {redirect_uri!r}",
            {"callback_url": callback_url, "redirect_uri": redirect_uri},
        )


class MissingConnectorDataError(ConnectorError):
    """Raised on refresh when the identity carries no upstream access token."""

    def __init__(self) -> None:
        super().__init__("no upstream access token found")


class ConnectorDataError(ConnectorError):
    """Raised when persisted connector data cannot be decoded."""


class OAuth2Error(ConnectorError):
    """An ``error`` reported by the provider during the OAuth2 flow."""

    def __init__(self, error: str, error_description: str = ""):
        message = f"{error}: {error_description}" if error_description else error
        super().__init__(
            message,
            {"error": error, "error_description": error_description},
        )
        self.error = error
        self.error_description = error_description


# ── Protocol errors ─────────────────────────────────────────────────────


class UpstreamError(ConnectorError):
    """Base for errors talking to the upstream provider."""


class UpstreamHTTPError(UpstreamError):
    """Non-2xx response from the provider."""

    def __init__(self, status_code: int, status: str, body: str, url: str = ""):
        super().__init__(
            f"{status}: {body}",
            {"status_code": status_code, "status": status, "body": body, "url": url},
        )
        self.status_code = status_code
        self.status = status
        self.body = body
        self.url = url


class UpstreamDecodeError(UpstreamError):
    """Response body could not be decoded into the expected shape."""


class UpstreamRequestError(UpstreamError):
    """The request never produced a response (DNS, TLS, timeout, ...)."""


class MalformedEmailError(UpstreamError):
    """The provider returned an email address without an ``@``."""


# ── Policy errors ───────────────────────────────────────────────────────


class NotAuthorizedError(ConnectorError):
    """User is not a member of any required org or team."""

    def __init__(self, login: str):
        super().__init__(
            f"github: user {login!r} not in required orgs or teams",
            {"login": login},
        )
        self.login = login


class NoUsableEmailError(ConnectorError):
    """User has no verified primary email and no preferred-domain email."""

    def __init__(self) -> None:
        super().__init__(
            "github: user has no verified, primary email or preferred-domain email"
        )

"""
GitHubConnector — upstream identity via GitHub OAuth2.

Turns a GitHub authorization-code callback into an Identity, with optional
org/team based authorization and group claims.  Works against github.com and
GitHub Enterprise Server.

GitHub OAuth tokens don't expire, so refresh simply re-reads the profile with
the access token stored in ``Identity.connector_data``.
"""

from __future__ import annotations

import logging
import ssl
from typing import Dict, List, Mapping, Optional, Union
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from connectors.base import BaseConnector
from connectors.errors import (
    ConnectorDataError,
    MissingConnectorDataError,
    OAuth2Error,
    RedirectURIMismatchError,
    UpstreamDecodeError,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamRequestError,
)
from connectors.github_emails import EmailPolicy
from connectors.github_groups import GroupResolver
from connectors.pagination import fetch_page
from utils.schemas import ConnectorData, Identity, Scopes, UpstreamUser

logger = logging.getLogger(__name__)

PUBLIC_API_URL = "https://api.github.com"
_PUBLIC_WEB_URL = "https://github.com"

# Needed for '/user' and '/user/emails'.
SCOPE_EMAIL = "user:email"
# Needed for '/user/teams', '/user/orgs' and org membership checks.
SCOPE_ORGS = "read:org"


def _gh_headers(token: Optional[str] = None) -> Dict[str, str]:
    """Standard GitHub API headers."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class GitHubConnector(BaseConnector):
    """
    OAuth2 identity connector for GitHub.

    Build through ``GitHubConfig.open()``, which validates the configuration.
    Instances hold no per-login state and can be shared between requests.
    """

    def __init__(
        self,
        *,
        connector_id: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        host_name: str,
        api_url: str,
        use_login_as_id: bool,
        groups: GroupResolver,
        emails: EmailPolicy,
        verify: Union[ssl.SSLContext, bool] = True,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._connector_id = connector_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._host_name = host_name
        self._api_url = api_url
        self._use_login_as_id = use_login_as_id
        self._groups = groups
        self._emails = emails
        self._verify = verify
        self._timeout = timeout
        self._transport = transport

        web_url = f"https://{host_name}" if host_name else _PUBLIC_WEB_URL
        self._auth_url = f"{web_url}/login/oauth/authorize"
        self._token_url = f"{web_url}/login/oauth/access_token"

    @property
    def provider_name(self) -> str:
        return "github"

    @property
    def display_name(self) -> str:
        return "GitHub"

    @property
    def connector_id(self) -> str:
        return self._connector_id

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    @property
    def api_url(self) -> str:
        return self._api_url

    def oauth_scopes(self, scopes: Scopes) -> List[str]:
        """GitHub scopes to request; ``read:org`` only when groups are needed."""
        github_scopes = [SCOPE_EMAIL]
        if self._groups.required(scopes.groups):
            github_scopes.append(SCOPE_ORGS)
        return github_scopes

    def _client(self, token: Optional[str] = None) -> httpx.AsyncClient:
        """A fresh client bound to ``token`` (or to no credential at all)."""
        return httpx.AsyncClient(
            headers=_gh_headers(token),
            timeout=self._timeout,
            verify=self._verify,
            follow_redirects=True,
            transport=self._transport,
        )

    # ── OAuth flow ──────────────────────────────────────────────────────

    def login_url(self, scopes: Scopes, callback_url: str, state: str) -> str:
        if callback_url != self._redirect_uri:
            raise RedirectURIMismatchError(callback_url, self._redirect_uri)

        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.oauth_scopes(scopes)),
            "state": state,
        }
        return f"{self._auth_url}?{urlencode(params)}"

    async def handle_callback(self, scopes: Scopes, query: Mapping[str, str]) -> Identity:
        error = query.get("error")
        if error:
            raise OAuth2Error(error, query.get("error_description") or "")

        token = await self._exchange_code(query.get("code") or "")

        async with self._client(token) as client:
            user = await self._user(client)

            identity = Identity(
                user_id=user.login if self._use_login_as_id else str(user.id),
                username=user.name or user.login,
                preferred_username=user.login,
                email=user.email or "",
                email_verified=True,
            )

            # Only look up groups if 'orgs', 'org', or the 'groups' scope ask for them.
            if self._groups.required(scopes.groups):
                identity.groups = await self._groups.resolve(client, scopes.groups, user.login)

        if scopes.offline_access:
            identity.connector_data = ConnectorData(access_token=token).dumps()

        logger.info(
            "[%s] GitHub login: user=%s groups=%d",
            self._connector_id, user.login, len(identity.groups),
        )
        return identity

    async def refresh(self, scopes: Scopes, identity: Identity) -> Identity:
        if not identity.connector_data:
            raise MissingConnectorDataError()

        try:
            data = ConnectorData.model_validate_json(identity.connector_data)
        except ValidationError as exc:
            raise ConnectorDataError(f"github: unmarshal access token: {exc}") from exc

        async with self._client(data.access_token) as client:
            user = await self._user(client)

            identity.username = user.name or user.login
            identity.preferred_username = user.login
            identity.email = user.email or ""

            if self._groups.required(scopes.groups):
                identity.groups = await self._groups.resolve(client, scopes.groups, user.login)

        logger.info("[%s] GitHub refresh: user=%s", self._connector_id, user.login)
        return identity

    # ── Upstream calls ──────────────────────────────────────────────────

    async def _exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token."""
        async with self._client() as client:
            try:
                resp = await client.post(
                    self._token_url,
                    data={
                        "grant_type": "authorization_code",
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "code": code,
                        "redirect_uri": self._redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                )
            except httpx.HTTPError as exc:
                raise UpstreamRequestError(f"github: failed to get token: {exc}") from exc

        if not resp.is_success:
            raise UpstreamHTTPError(
                resp.status_code,
                f"github: failed to get token: {resp.status_code} {resp.reason_phrase}",
                resp.text,
                self._token_url,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamDecodeError(f"github: failed to get token: {exc}") from exc
        if not isinstance(data, dict):
            raise UpstreamDecodeError("github: failed to get token: unexpected response body")

        # GitHub reports bad/expired codes with a 200 and an 'error' field.
        if data.get("error"):
            raise OAuth2Error(data["error"], data.get("error_description") or "")

        token = data.get("access_token")
        if not token:
            raise UpstreamDecodeError("github: failed to get token: server response missing access_token")
        return token

    async def _user(self, client: httpx.AsyncClient) -> UpstreamUser:
        """Profile of the authenticated user, with ``email`` resolved."""
        try:
            # https://docs.github.com/en/rest/users/users#get-the-authenticated-user
            user, _ = await fetch_page(client, f"{self._api_url}/user", UpstreamUser)
            user.email = await self._emails.resolve(client, user)
        except UpstreamError as exc:
            raise UpstreamError(f"github: get user: {exc}", dict(exc.details)) from exc
        return user

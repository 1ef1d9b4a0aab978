"""
GitHub connector configuration and factory.

Keys accept both the snake_case field names and the camelCase names used
in connector config files, so either of these works::

    GitHubConfig(client_id="...", host_name="ghe.example.com")
    GitHubConfig.model_validate({"clientID": "...", "hostName": "ghe.example.com"})
"""

from __future__ import annotations

import logging
import ssl
from typing import Optional, Tuple, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from connectors.errors import ConnectorConfigError
from connectors.github import PUBLIC_API_URL, GitHubConnector
from connectors.github_emails import EmailPolicy
from connectors.github_groups import GroupResolver
from utils.schemas import OrgFilter, TeamNameField

logger = logging.getLogger(__name__)


class GitHubConfig(BaseModel):
    """Configuration options for GitHub logins."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    client_id: str = Field("", alias="clientID")
    client_secret: str = Field("", alias="clientSecret")
    redirect_uri: str = Field("", alias="redirectURI")

    # Legacy single-org filter; superseded by ``orgs``.
    org: str = ""
    orgs: Tuple[OrgFilter, ...] = ()

    # GitHub Enterprise Server host, e.g. "ghe.example.com" (no scheme, no path).
    host_name: str = Field("", alias="hostName")
    # PEM file path or inline PEM; only valid together with host_name.
    root_ca: str = Field("", alias="rootCA")

    # "name" (default), "slug" or "both".
    team_name_field: str = Field("", alias="teamNameField")
    # With no orgs configured, load every org and team as group claims.
    load_all_groups: bool = Field(False, alias="loadAllGroups")
    use_login_as_id: bool = Field(False, alias="useLoginAsID")
    # e.g. "example.com" or "*.example.com"
    preferred_email_domain: str = Field("", alias="preferredEmailDomain")
    # Use {id}+{login}@users.noreply.github.com; github.com only.
    noreply_private_email: bool = Field(False, alias="noreplyPrivateEmail")

    def open(
        self,
        connector_id: str = "github",
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> GitHubConnector:
        """
        Validate the configuration and build a connector.

        Raises ConnectorConfigError; nothing is built on failure.
        """
        if self.org:
            if self.orgs:
                raise ConnectorConfigError(
                    "github: cannot use both 'org' and 'orgs' fields simultaneously"
                )
            logger.warning(
                "[%s] github: legacy field 'org' being used. Switch to the newer 'orgs' field structure",
                connector_id,
            )

        api_url = PUBLIC_API_URL
        if self.host_name:
            if "/" in self.host_name:
                raise ConnectorConfigError("invalid hostname: hostname cannot contain `/`")
            api_url = f"https://{self.host_name}/api/v3"

        verify: Union[ssl.SSLContext, bool] = True
        if self.root_ca:
            if not self.host_name:
                raise ConnectorConfigError(
                    "invalid connector config: Host name field required for a root certificate file"
                )
            verify = _root_ca_context(self.root_ca)

        team_name_field = _team_name_field(self.team_name_field)

        if self.preferred_email_domain.endswith("*"):
            raise ConnectorConfigError('invalid PreferredEmailDomain: glob pattern cannot end with "*"')

        return GitHubConnector(
            connector_id=connector_id,
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
            host_name=self.host_name,
            api_url=api_url,
            use_login_as_id=self.use_login_as_id,
            groups=GroupResolver(
                api_url=api_url,
                org=self.org,
                orgs=self.orgs,
                load_all_groups=self.load_all_groups,
                team_name_field=team_name_field,
            ),
            emails=EmailPolicy(
                api_url=api_url,
                host_name=self.host_name,
                preferred_email_domain=self.preferred_email_domain,
                noreply_private_email=self.noreply_private_email,
            ),
            verify=verify,
            timeout=timeout,
            transport=transport,
        )


def _team_name_field(value: str) -> TeamNameField:
    if value == "":
        return TeamNameField.NAME
    try:
        return TeamNameField(value)
    except ValueError:
        raise ConnectorConfigError(
            f"invalid connector config: unsupported team name field value `{value}`"
        ) from None


def _root_ca_context(root_ca: str) -> ssl.SSLContext:
    """SSL context trusting only ``root_ca``; the system store is not loaded."""
    try:
        if root_ca.lstrip().startswith("-----BEGIN"):
            return ssl.create_default_context(cadata=root_ca)
        return ssl.create_default_context(cafile=root_ca)
    except (OSError, ValueError) as exc:
        raise ConnectorConfigError(f"failed to create HTTP client: {exc}") from exc

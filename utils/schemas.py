"""
Pydantic schemas shared by the connectors and the API layer.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ═══════════════════════════════════════════════════════════════════════════════
# Connector contract — what the authorization server passes in / gets back
# ═══════════════════════════════════════════════════════════════════════════════


class Scopes(BaseModel):
    """Scopes requested by the downstream client that affect the connector."""

    offline_access: bool = False
    groups: bool = False

    @classmethod
    def from_scope_string(cls, scope: Optional[str]) -> "Scopes":
        """Build from a space-delimited OAuth2 scope string."""
        requested = set((scope or "").split())
        return cls(
            offline_access="offline_access" in requested,
            groups="groups" in requested,
        )


class Identity(BaseModel):
    """
    Normalized identity produced by a connector.

    ``connector_data`` is opaque to the caller; it is persisted alongside the
    identity and handed back on refresh.
    """

    user_id: str
    username: str
    preferred_username: str = ""
    email: str = ""
    email_verified: bool = False
    groups: List[str] = Field(default_factory=list)
    connector_data: Optional[bytes] = None


class ConnectorData(BaseModel):
    """
    Opaque state persisted for GitHub identities.

    GitHub's OAuth2 tokens never expire, so the access token alone is enough
    to refresh.
    """

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")

    def dumps(self) -> bytes:
        return json.dumps(self.model_dump(by_alias=True)).encode()


# ═══════════════════════════════════════════════════════════════════════════════
# GitHub REST API shapes
# ═══════════════════════════════════════════════════════════════════════════════


class TeamNameField(str, Enum):
    """Which team attribute(s) end up in group claims."""

    NAME = "name"
    SLUG = "slug"
    BOTH = "both"


class OrgFilter(BaseModel):
    """
    Org / team restriction.

    ``name`` is the org login.  With ``teams`` empty, any org member may log
    in; otherwise the user must be in at least one of the listed teams.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    teams: Tuple[str, ...] = ()


class UpstreamUser(BaseModel):
    """``GET /user`` — only the fields the connector needs."""

    id: int
    login: str
    name: Optional[str] = None
    email: Optional[str] = None


class UserEmail(BaseModel):
    """``GET /user/emails`` item."""

    email: str
    verified: bool = False
    primary: bool = False
    visibility: Optional[str] = None


class Org(BaseModel):
    login: str


class Team(BaseModel):
    """``GET /user/teams`` item."""

    name: str
    slug: str = ""
    organization: Org

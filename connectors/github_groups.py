"""
Group resolution for GitHub identities.

Exactly one policy applies per connector, picked in this order:

  1. ``orgs``            — per-org membership check + optional team allow-list.
                           Fails with NotAuthorizedError if no org authorizes.
  2. ``org`` (legacy)    — team claims of the user's teams in that one org.
  3. ``load_all_groups`` — every org plus every ``org:team`` (needs the
                           ``groups`` scope).
  4. otherwise           — no groups.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import httpx

from connectors.errors import NotAuthorizedError, UpstreamHTTPError, UpstreamRequestError
from connectors.pagination import iter_pages
from utils.schemas import Org, OrgFilter, Team, TeamNameField

logger = logging.getLogger(__name__)


def format_team_name(org: str, team: str) -> str:
    """Team names are only unique within an org, so claims carry the org prefix."""
    return f"{org}:{team}"


@dataclass(frozen=True)
class GroupResolver:
    api_url: str
    org: str = ""
    orgs: Tuple[OrgFilter, ...] = field(default_factory=tuple)
    load_all_groups: bool = False
    team_name_field: TeamNameField = TeamNameField.NAME

    def required(self, group_scope: bool) -> bool:
        """Whether the ``read:org`` scope and a group lookup are needed."""
        return bool(self.orgs) or bool(self.org) or group_scope

    async def resolve(self, client: httpx.AsyncClient, group_scope: bool, login: str) -> List[str]:
        if self.orgs:
            return await self._groups_for_orgs(client, login)
        if self.org:
            return await self._team_claims_for_org(client, self.org)
        if group_scope and self.load_all_groups:
            return await self._user_groups(client)
        return []

    def team_claims(self, team: Team) -> List[str]:
        if self.team_name_field is TeamNameField.BOTH:
            return [team.name, team.slug]
        if self.team_name_field is TeamNameField.SLUG:
            return [team.slug]
        return [team.name]

    # ── org list ────────────────────────────────────────────────────────

    async def _groups_for_orgs(self, client: httpx.AsyncClient, login: str) -> List[str]:
        """
        Authorized if the user is a member of at least one org that has no
        team list, or belongs to at least one listed team of some org.
        Only team-restricted orgs contribute groups.
        """
        groups: List[str] = []
        authorized = False

        for org in self.orgs:
            if not await self._user_in_org(client, login, org.name):
                continue

            if not org.teams:
                authorized = True
                continue

            allowed = set(org.teams)
            teams = [
                t for t in await self._teams_for_org(client, org.name)
                if allowed.intersection(self.team_claims(t))
            ]
            if not teams:
                logger.info("User %s is in org %s but in none of its listed teams", login, org.name)
                continue

            authorized = True
            for team in teams:
                groups.extend(format_team_name(org.name, claim) for claim in self.team_claims(team))

        if not authorized:
            raise NotAuthorizedError(login)
        return groups

    async def _user_in_org(self, client: httpx.AsyncClient, login: str, org_name: str) -> bool:
        """
        Requester is the user, so this returns 204 for members and 404/302
        otherwise.

        https://docs.github.com/en/rest/orgs/members#check-organization-membership-for-a-user
        """
        url = f"{self.api_url}/orgs/{org_name}/members/{login}"
        try:
            resp = await client.get(url, follow_redirects=False)
        except httpx.HTTPError as exc:
            raise UpstreamRequestError(f"github: check org membership: {exc}", {"url": url}) from exc

        if resp.status_code == 204:
            return True
        if resp.status_code in (302, 404):
            logger.info(
                "User %s not in org %s or application not authorized to read org data",
                login, org_name,
            )
            return False
        raise UpstreamHTTPError(
            resp.status_code,
            f"github: unexpected return status: {resp.status_code} {resp.reason_phrase}",
            resp.text,
            url,
        )

    # ── team listing ────────────────────────────────────────────────────

    async def _teams_for_org(self, client: httpx.AsyncClient, org_name: str) -> List[Team]:
        return [t for t in await self._user_teams(client) if t.organization.login == org_name]

    async def _team_claims_for_org(self, client: httpx.AsyncClient, org_name: str) -> List[str]:
        claims: List[str] = []
        for team in await self._teams_for_org(client, org_name):
            claims.extend(self.team_claims(team))
        return claims

    async def _user_teams(self, client: httpx.AsyncClient) -> List[Team]:
        # https://docs.github.com/en/rest/teams/teams#list-teams-for-the-authenticated-user
        teams: List[Team] = []
        async for page in iter_pages(client, f"{self.api_url}/user/teams", List[Team]):
            teams.extend(page)
        return teams

    # ── load all ────────────────────────────────────────────────────────

    async def _user_groups(self, client: httpx.AsyncClient) -> List[str]:
        orgs = await self._user_orgs(client)

        org_teams: Dict[str, List[str]] = {}
        for team in await self._user_teams(client):
            org_teams.setdefault(team.organization.login, []).extend(self.team_claims(team))

        groups: List[str] = []
        for org in orgs:
            groups.append(org)
            groups.extend(format_team_name(org, t) for t in org_teams.get(org, []))
        return groups

    async def _user_orgs(self, client: httpx.AsyncClient) -> List[str]:
        # https://docs.github.com/en/rest/orgs/orgs#list-organizations-for-the-authenticated-user
        logins: List[str] = []
        async for page in iter_pages(client, f"{self.api_url}/user/orgs", List[Org]):
            logins.extend(o.login for o in page)
        return logins

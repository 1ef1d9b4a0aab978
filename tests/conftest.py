"""Shared fixtures: an in-memory GitHub served through httpx.MockTransport."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from connectors.github_config import GitHubConfig

API = "https://api.github.com"
TOKEN_URL = "https://github.com/login/oauth/access_token"
REDIRECT_URI = "https://auth.example.com/callback"


class FakeGitHub:
    """
    Route table keyed by (method, full URL).

    Each route is a list of response factories consumed in order; the last
    one keeps answering once the others are used up.  Unknown URLs get 404.
    """

    def __init__(self) -> None:
        self._routes: Dict[Tuple[str, str], List[Callable[[httpx.Request], httpx.Response]]] = {}
        self.requests: List[httpx.Request] = []

    def route(
        self,
        url: str,
        json: Any = None,
        *,
        status: int = 200,
        link: Optional[str] = None,
        method: str = "GET",
        text: Optional[str] = None,
    ) -> "FakeGitHub":
        headers = {"Link": link} if link else {}

        def respond(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text, headers=headers)
            if json is None:
                return httpx.Response(status, headers=headers)
            return httpx.Response(status, json=json, headers=headers)

        self._routes.setdefault((method, url), []).append(respond)
        return self

    def user(self, login: str = "octo", user_id: int = 42, name: str = "Octo Cat", email: str = "octo@example.com") -> "FakeGitHub":
        return self.route(f"{API}/user", {"id": user_id, "login": login, "name": name, "email": email})

    def token(self, access_token: str = "gho_token") -> "FakeGitHub":
        return self.route(TOKEN_URL, {"access_token": access_token, "token_type": "bearer"}, method="POST")

    def member(self, org: str, login: str = "octo", status: int = 204) -> "FakeGitHub":
        return self.route(f"{API}/orgs/{org}/members/{login}", status=status)

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def count(self, path: str) -> int:
        return sum(1 for p in self.paths() if p == path)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responders = self._routes.get((request.method, str(request.url)))
        if not responders:
            return httpx.Response(404, json={"message": "Not Found"})
        respond = responders.pop(0) if len(responders) > 1 else responders[0]
        return respond(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def client(self, token: str = "gho_token") -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            headers={"Authorization": f"Bearer {token}"},
        )


def team(name: str, org: str, slug: Optional[str] = None) -> Dict[str, Any]:
    return {"name": name, "slug": slug or name.lower().replace(" ", "-"), "organization": {"login": org}}


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def make_connector(github: FakeGitHub):
    """Build a connector wired to the fake GitHub."""

    def _make(**overrides):
        options = {
            "client_id": "client-id",
            "client_secret": "client-secret",
            "redirect_uri": REDIRECT_URI,
        }
        options.update(overrides)
        return GitHubConfig(**options).open("github", transport=github.transport)

    return _make

"""
Email selection for GitHub identities.

``GET /user`` only returns the *public* email.  When it is empty, or when a
preferred domain is configured, the private ``/user/emails`` list is crawled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx

from connectors.errors import MalformedEmailError, NoUsableEmailError
from connectors.pagination import iter_pages
from utils.schemas import UpstreamUser, UserEmail

logger = logging.getLogger(__name__)

# https://docs.github.com/en/account-and-profile/setting-up-and-managing-your-personal-account-on-github/managing-email-preferences/setting-your-commit-email-address
NOREPLY_DOMAIN = "users.noreply.github.com"


def is_public_host(host_name: str) -> bool:
    return host_name in ("", "github.com")


def is_preferred_email_domain(pattern: str, domain: str) -> bool:
    """
    Label-wise glob match: ``*.example.com`` matches ``mail.example.com``
    but neither ``example.com`` nor ``a.b.example.com``.
    """
    if domain == pattern:
        return True

    pattern_labels = pattern.split(".")
    domain_labels = domain.split(".")
    if len(pattern_labels) != len(domain_labels):
        return False

    return all(p == "*" or p == d for p, d in zip(pattern_labels, domain_labels))


@dataclass(frozen=True)
class EmailPolicy:
    api_url: str
    host_name: str = ""
    preferred_email_domain: str = ""
    noreply_private_email: bool = False

    async def resolve(self, client: httpx.AsyncClient, user: UpstreamUser) -> str:
        """Return the email to put on the identity for ``user``."""
        # No equivalent noreply address exists on Enterprise Server.
        if self.noreply_private_email and is_public_host(self.host_name):
            return f"{user.id}+{user.login}@{NOREPLY_DOMAIN}"

        if not user.email or self.preferred_email_domain:
            return await self._user_email(client)
        return user.email

    async def _user_email(self, client: httpx.AsyncClient) -> str:
        primary: Optional[UserEmail] = None
        preferred: List[UserEmail] = []

        # https://docs.github.com/en/rest/users/emails#list-email-addresses-for-the-authenticated-user
        async for emails in iter_pages(client, f"{self.api_url}/user/emails", List[UserEmail]):
            for email in emails:
                # GitHub Enterprise has no email verification.
                if self.host_name:
                    email.verified = True

                if email.verified and email.primary and primary is None:
                    primary = email

                if self.preferred_email_domain:
                    _, at, domain = email.email.partition("@")
                    if not at:
                        raise MalformedEmailError("github: invalid format email is detected")
                    if email.verified and is_preferred_email_domain(self.preferred_email_domain, domain):
                        preferred.append(email)

        if preferred:
            return preferred[0].email
        if primary is not None:
            return primary.email

        logger.info("No usable email among the user's GitHub addresses")
        raise NoUsableEmailError()

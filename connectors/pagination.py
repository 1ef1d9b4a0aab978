"""
Paginated GET helper for REST APIs that advertise pages in a ``Link`` header.

    Link: <https://api.github.com/user/teams?page=2>; rel="next",
          <https://api.github.com/user/teams?page=5>; rel="last"

Crawling stops when:
  • the header has no ``last`` relation at all, or
  • the ``last`` URL is the page just fetched (even if ``next`` is present), or
  • there is no ``next`` relation.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, Tuple

import httpx
from pydantic import TypeAdapter, ValidationError

from connectors.errors import UpstreamDecodeError, UpstreamHTTPError, UpstreamRequestError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


_LINK_ENTRY = re.compile(r"<([^>]*)>((?:\s*;\s*[^,;<]+)*)")


def parse_link_header(value: str) -> Dict[str, str]:
    """
    Parse ``<url>; rel="name"`` entries into ``{rel: url}``.

    URLs are taken from inside the angle brackets, so commas in a query
    string do not split an entry.  Text outside brackets is ignored; the
    first URL seen for a relation wins.
    """
    links: Dict[str, str] = {}
    for match in _LINK_ENTRY.finditer(value):
        target, params = match.groups()
        for param in params.split(";"):
            key, _, raw = param.partition("=")
            if key.strip().lower() != "rel":
                continue
            for rel in raw.strip().strip('"').split():
                links.setdefault(rel, target)
    return links


def next_page_url(current_url: str, link_header: str) -> str:
    """Return the next page URL, or ``""`` when the crawl is finished."""
    links = parse_link_header(link_header or "")
    last = links.get("last")
    if last is None or last == current_url:
        return ""
    return links.get("next", "")


async def fetch_page(client: httpx.AsyncClient, url: str, shape: Any) -> Tuple[Any, str]:
    """
    GET ``url`` and decode the JSON body as ``shape``.

    Returns ``(value, next_url)``; ``next_url`` is ``""`` on the last page.
    """
    try:
        resp = await client.get(url)
    except httpx.HTTPError as exc:
        raise UpstreamRequestError(f"github: get URL {url}: {exc}", {"url": url}) from exc

    if not resp.is_success:
        raise UpstreamHTTPError(
            resp.status_code,
            f"{resp.status_code} {resp.reason_phrase}",
            resp.text,
            url,
        )

    try:
        value = _adapter(shape).validate_json(resp.content)
    except ValidationError as exc:
        raise UpstreamDecodeError(f"failed to decode response: {exc}", {"url": url}) from exc

    return value, next_page_url(url, resp.headers.get("Link", ""))


async def iter_pages(client: httpx.AsyncClient, url: str, shape: Any) -> AsyncIterator[Any]:
    """Yield every decoded page starting at ``url``, in order."""
    pages = 0
    while url:
        page, url = await fetch_page(client, url, shape)
        pages += 1
        yield page
    logger.debug("Fetched %d page(s)", pages)

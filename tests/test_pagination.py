"""
Tests for the Link-header pagination helper.
"""

from typing import List

import httpx
import pytest

from conftest import API, FakeGitHub
from connectors.errors import UpstreamDecodeError, UpstreamHTTPError, UpstreamRequestError
from connectors.pagination import fetch_page, iter_pages, next_page_url, parse_link_header

URL = f"{API}/user/teams"


def _page(n: int) -> str:
    return f"{URL}?page={n}"


def _link(next_url: str = "", last_url: str = "") -> str:
    parts = []
    if next_url:
        parts.append(f'<{next_url}>; rel="next"')
    if last_url:
        parts.append(f'<{last_url}>; rel="last"')
    return ", ".join(parts)


class TestParseLinkHeader:
    def test_next_and_last(self):
        links = parse_link_header(_link(_page(2), _page(5)))
        assert links == {"next": _page(2), "last": _page(5)}

    def test_all_relations(self):
        header = (
            f'<{_page(1)}>; rel="first", <{_page(1)}>; rel="prev", '
            f'<{_page(3)}>; rel="next", <{_page(9)}>; rel="last"'
        )
        links = parse_link_header(header)
        assert links["next"] == _page(3)
        assert links["last"] == _page(9)
        assert links["first"] == _page(1)

    def test_commas_inside_url(self):
        base = f"{URL}?fields=a,b"
        links = parse_link_header(f'<{base}&page=2>; rel="next", <{base}&page=3>; rel="last"')
        assert links == {"next": f"{base}&page=2", "last": f"{base}&page=3"}

    def test_garbage_is_ignored(self):
        assert parse_link_header("") == {}
        assert parse_link_header('nonsense; rel="next"') == {}


class TestNextPageUrl:
    def test_no_header(self):
        assert next_page_url(_page(1), "") == ""

    def test_next_without_last_stops(self):
        assert next_page_url(_page(1), _link(next_url=_page(2))) == ""

    def test_next_and_last(self):
        assert next_page_url(_page(1), _link(_page(2), _page(3))) == _page(2)

    def test_last_equal_to_current_stops_even_with_next(self):
        assert next_page_url(_page(3), _link(_page(4), _page(3))) == ""

    def test_last_without_next(self):
        assert next_page_url(_page(1), _link(last_url=_page(3))) == ""

    def test_comma_in_query_string_keeps_crawling(self):
        base = f"{URL}?fields=a,b"
        header = _link(f"{base}&page=2", f"{base}&page=3")
        assert next_page_url(f"{base}&page=1", header) == f"{base}&page=2"


class TestFetch:
    @pytest.mark.asyncio
    async def test_crawls_all_pages_in_order(self, github: FakeGitHub):
        github.route(URL, [1, 2], link=_link(_page(2), _page(3)))
        github.route(_page(2), [3, 4], link=_link(_page(3), _page(3)))
        github.route(_page(3), [5], link=_link(last_url=_page(3)))

        async with github.client() as client:
            items = [item async for page in iter_pages(client, URL, List[int]) for item in page]

        assert items == [1, 2, 3, 4, 5]
        assert len(github.requests) == 3

    @pytest.mark.asyncio
    async def test_stops_when_last_is_current_despite_next(self, github: FakeGitHub):
        github.route(URL, [1], link=_link(_page(2), _page(3)))
        github.route(_page(2), [2], link=_link(_page(3), _page(3)))
        # malformed: the last page still points to a next page
        github.route(_page(3), [3], link=_link(_page(4), _page(3)))
        github.route(_page(4), [4])

        async with github.client() as client:
            pages = [page async for page in iter_pages(client, URL, List[int])]

        assert pages == [[1], [2], [3]]
        assert _page(4) not in [str(r.url) for r in github.requests]

    @pytest.mark.asyncio
    async def test_each_crawl_starts_over(self, github: FakeGitHub):
        github.route(URL, ["a"])

        async with github.client() as client:
            first = [page async for page in iter_pages(client, URL, List[str])]
            second = [page async for page in iter_pages(client, URL, List[str])]

        assert first == second == [["a"]]
        assert len(github.requests) == 2

    @pytest.mark.asyncio
    async def test_non_2xx_carries_status_and_body(self, github: FakeGitHub):
        github.route(URL, status=500, text="upstream exploded")

        async with github.client() as client:
            with pytest.raises(UpstreamHTTPError) as exc_info:
                await fetch_page(client, URL, List[int])

        err = exc_info.value
        assert err.status_code == 500
        assert err.status == "500 Internal Server Error"
        assert err.body == "upstream exploded"
        assert "upstream exploded" in str(err)
        assert len(github.requests) == 1

    @pytest.mark.asyncio
    async def test_undecodable_body(self, github: FakeGitHub):
        github.route(URL, text="<html>not json</html>")

        async with github.client() as client:
            with pytest.raises(UpstreamDecodeError, match="failed to decode response"):
                await fetch_page(client, URL, List[int])

    @pytest.mark.asyncio
    async def test_wrong_shape(self, github: FakeGitHub):
        github.route(URL, {"message": "not a list"})

        async with github.client() as client:
            with pytest.raises(UpstreamDecodeError):
                await fetch_page(client, URL, List[int])

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(UpstreamRequestError, match="connection refused"):
                await fetch_page(client, URL, List[int])

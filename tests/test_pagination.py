"""Tests for nextPageKey pagination."""

import httpx
import pytest

from keptn_cli.core.client import StructuredError
from keptn_cli.core.types import Page, Project


def serve_pages(server, pages: dict[str, dict]) -> None:
    """Serve pages keyed by the nextPageKey query parameter ("" = first page)."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=pages[request.url.params.get("nextPageKey", "")])

    server.handler = handler


class TestPage:
    @pytest.mark.parametrize(("key", "has_more"), [("", False), ("0", False), ("1", True), ("abc", True)])
    def test_has_more(self, key, has_more):
        assert Page(items=[], next_page_key=key).has_more is has_more

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("3", 3),
            ("+3", 3),
            ("-2", -2),
            ("", 0),
            ("abc", 0),
            ("1_0", 0),
            (" 3", 0),
            ("3 ", 0),
            ("\u0663", 0),
        ],
    )
    def test_cursor_value(self, key, value):
        assert Page(items=[], next_page_key=key).cursor_value == value

    def test_from_dict_missing_fields(self):
        page = Page.from_dict({}, "projects")

        assert page.items == []
        assert page.next_page_key == ""


class TestPaginateAll:
    @pytest.mark.asyncio
    async def test_concatenates_pages_in_order(self, server, api):
        serve_pages(
            server,
            {
                "": {"projects": [{"projectName": "a"}, {"projectName": "b"}], "nextPageKey": "1"},
                "1": {"projects": [{"projectName": "c"}], "nextPageKey": "2"},
                "2": {"projects": [{"projectName": "d"}], "nextPageKey": "0"},
            }
        )

        projects = await api.paginate_all("/v1/project", "projects", parser=Project.from_dict)

        assert [p.project_name for p in projects] == ["a", "b", "c", "d"]
        assert len(server.requests) == 3
        assert "nextPageKey" not in server.requests[0].url.params
        assert [r.url.params["nextPageKey"] for r in server.requests[1:]] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_empty_key_ends_pagination(self, server, api):
        serve_pages(
            server,
            {
                "": {"events": [{"id": "1"}], "nextPageKey": "5"},
                "5": {"events": [{"id": "2"}], "nextPageKey": ""},
            }
        )

        events = await api.paginate_all("/event", "events")

        assert events == [{"id": "1"}, {"id": "2"}]
        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_page_limit_stops_early(self, server, api):
        def handler(request: httpx.Request) -> httpx.Response:
            current = int(request.url.params.get("nextPageKey", "0"))
            return httpx.Response(200, json={"events": [{"id": str(current)}], "nextPageKey": str(current + 1)})

        server.handler = handler

        events = await api.paginate_all("/event", "events", page_limit=3)

        assert [e["id"] for e in events] == ["0", "1", "2"]
        assert len(server.requests) == 3

    @pytest.mark.asyncio
    async def test_non_numeric_cursor_does_not_hit_limit(self, server, api):
        serve_pages(
            server,
            {
                "": {"events": [{"id": "1"}], "nextPageKey": "abc"},
                "abc": {"events": [{"id": "2"}], "nextPageKey": "0"},
            }
        )

        events = await api.paginate_all("/event", "events", page_limit=1)

        assert len(events) == 2

    @pytest.mark.asyncio
    async def test_underscored_cursor_does_not_hit_limit(self, server, api):
        serve_pages(
            server,
            {
                "": {"events": [{"id": "1"}], "nextPageKey": "1_0"},
                "1_0": {"events": [{"id": "2"}], "nextPageKey": "0"},
            }
        )

        events = await api.paginate_all("/event", "events", page_limit=10)

        assert [e["id"] for e in events] == ["1", "2"]
        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_filter_params_sent_with_every_page(self, server, api):
        serve_pages(
            server,
            {
                "": {"events": [], "nextPageKey": "1"},
                "1": {"events": [], "nextPageKey": "0"},
            }
        )

        await api.paginate_all("/event", "events", params={"project": "sockshop", "pageSize": "10"})

        for request in server.requests:
            assert request.url.params["project"] == "sockshop"
            assert request.url.params["pageSize"] == "10"

    @pytest.mark.asyncio
    async def test_error_discards_fetched_pages(self, server, api):
        server.reply(200, {"projects": [{"projectName": "a"}], "nextPageKey": "1"})
        server.reply(500, {"message": "datastore unavailable"})

        with pytest.raises(StructuredError, match="datastore unavailable"):
            await api.paginate_all("/v1/project", "projects")

        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_empty_body_is_last_page(self, server, api):
        server.reply(200)

        assert await api.paginate_all("/v1/project", "projects") == []

"""Tests for the Linear GraphQL client."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from linear_tui.api import queries
from linear_tui.api.client import (
    LinearAuthError,
    LinearClient,
    LinearMalformedResponseError,
    LinearNetworkError,
    LinearNotFoundError,
)
from linear_tui.auth.session import Session
from linear_tui.core.filters import FilterState, StatusTab


@pytest.fixture
def session() -> Session:
    return Session.from_api_key("lin_api_test")


def _response(status_code: int = 200, **kwargs: object) -> httpx.Response:
    return httpx.Response(status_code, **kwargs)


class TestQueryBuilders:
    """Test translation of filter state into GraphQL inputs."""

    def test_empty_filter(self) -> None:
        """Nothing constrained means no filter argument."""
        assert queries.build_issue_filter(FilterState()) is None

    def test_full_filter(self) -> None:
        """Each constraint maps to its own clause."""
        filters = FilterState(team_id="t1", project_id="p1", status=StatusTab.TODO, contains="crash")
        assert queries.build_issue_filter(filters) == {
            "team": {"id": {"eq": "t1"}},
            "project": {"id": {"eq": "p1"}},
            "state": {"type": {"in": ["backlog", "unstarted"]}},
            "title": {"containsIgnoreCase": "crash"},
        }

    def test_state_overrides_status(self) -> None:
        """An explicit workflow state wins over the status tab."""
        filters = FilterState(state_id="s1", status=StatusTab.DONE)
        assert queries.build_issue_filter(filters) == {"state": {"id": {"eq": "s1"}}}

    def test_page_size_clamped(self) -> None:
        """Zero selects the default, large values are capped."""
        assert queries.clamp_page_size(0) == 20
        assert queries.clamp_page_size(1000) == queries.MAX_PAGE_SIZE
        assert queries.clamp_page_size(5) == 5


class TestLinearClientContext:
    """Test client lifecycle."""

    @pytest.mark.asyncio
    async def test_context_manager_lifecycle(self, session: Session) -> None:
        """The HTTP client exists only inside the context."""
        client = LinearClient(session)
        async with client:
            assert isinstance(client.client, httpx.AsyncClient)
        assert client._client is None

    def test_client_outside_context_raises(self, session: Session) -> None:
        """Using the client without entering it is a programming error."""
        with pytest.raises(RuntimeError, match="async context manager"):
            _ = LinearClient(session).client

    def test_api_key_header(self, session: Session) -> None:
        """API keys are sent without a Bearer prefix."""
        assert LinearClient(session)._headers["Authorization"] == "lin_api_test"


class TestLinearClientRequests:
    """Test parsing of API payloads."""

    @pytest.mark.asyncio
    async def test_list_issues(self, session: Session) -> None:
        """Issues and page info are parsed from the connection."""
        data = {
            "issues": {
                "nodes": [
                    {
                        "id": "i1",
                        "identifier": "ENG-1",
                        "title": "Fix login",
                        "priority": 2,
                        "state": {"id": "s1", "name": "Todo", "type": "unstarted"},
                        "assignee": {"id": "u1", "name": "Ada", "displayName": "ada"},
                    }
                ],
                "pageInfo": {"endCursor": "c1", "hasNextPage": True},
            }
        }
        with patch.object(LinearClient, "_execute", new_callable=AsyncMock) as mock_execute:
            mock_execute.return_value = data
            async with LinearClient(session) as client:
                page = await client.list_issues(FilterState(team_id="t1"), "c0", 20)

        assert page.end_cursor == "c1"
        assert page.has_next_page is True
        assert page.issues[0].identifier == "ENG-1"
        assert page.issues[0].assignee.label == "ada"
        variables = mock_execute.call_args.args[1]
        assert variables["after"] == "c0"
        assert variables["filter"] == {"team": {"id": {"eq": "t1"}}}

    @pytest.mark.asyncio
    async def test_list_issues_without_connection(self, session: Session) -> None:
        """A response without an issues connection is malformed."""
        with patch.object(LinearClient, "_execute", new_callable=AsyncMock) as mock_execute:
            mock_execute.return_value = {}
            async with LinearClient(session) as client:
                with pytest.raises(LinearMalformedResponseError):
                    await client.list_issues(FilterState(), None, 20)

    @pytest.mark.asyncio
    async def test_issue_detail_flattens_children(self, session: Session) -> None:
        """Nested children are stored flat, keyed by identifier."""
        data = {
            "issue": {
                "id": "i1",
                "identifier": "ENG-1",
                "title": "Root",
                "labels": {"nodes": [{"id": "l1", "name": "bug"}]},
                "comments": {"nodes": [{"id": "c1", "body": "hi", "createdAt": "2024-01-02T10:00:00Z"}]},
                "history": {"nodes": []},
                "children": {
                    "nodes": [
                        {
                            "identifier": "ENG-2",
                            "title": "Child",
                            "children": {"nodes": [{"identifier": "ENG-3", "title": "Grandchild"}]},
                        }
                    ]
                },
            }
        }
        with patch.object(LinearClient, "_execute", new_callable=AsyncMock) as mock_execute:
            mock_execute.return_value = data
            async with LinearClient(session) as client:
                detail = await client.issue_detail("ENG-1")

        assert detail.child_ids == ["ENG-2"]
        assert set(detail.sub_issues) == {"ENG-2", "ENG-3"}
        assert detail.sub_issues["ENG-2"].child_ids == ["ENG-3"]
        assert detail.labels[0].name == "bug"
        assert detail.comments[0].body == "hi"

    @pytest.mark.asyncio
    async def test_issue_detail_missing(self, session: Session) -> None:
        """A null issue means the key does not exist."""
        with patch.object(LinearClient, "_execute", new_callable=AsyncMock) as mock_execute:
            mock_execute.return_value = {"issue": None}
            async with LinearClient(session) as client:
                with pytest.raises(LinearNotFoundError, match="ENG-404"):
                    await client.issue_detail("ENG-404")

    @pytest.mark.asyncio
    async def test_cycles_sorted_latest_first(self, session: Session) -> None:
        """Cycles come back ordered by start date, newest first."""
        data = {
            "cycles": {
                "nodes": [
                    {"id": "c1", "number": 1, "startsAt": "2024-01-01"},
                    {"id": "c2", "number": 2, "startsAt": "2024-02-01"},
                ]
            }
        }
        with patch.object(LinearClient, "_execute", new_callable=AsyncMock) as mock_execute:
            mock_execute.return_value = data
            async with LinearClient(session) as client:
                cycles = await client.cycles(None, 10)

        assert [c.number for c in cycles] == [2, 1]


class TestLinearClientErrorHandling:
    """Test HTTP and GraphQL error mapping."""

    @pytest.mark.asyncio
    async def test_auth_error_401(self, session: Session) -> None:
        """401 raises LinearAuthError without retrying."""
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(401, json={})
            async with LinearClient(session) as client:
                with pytest.raises(LinearAuthError):
                    await client._execute("query { viewer { id } }")
        assert mock_post.await_count == 1

    @pytest.mark.asyncio
    async def test_graphql_auth_error(self, session: Session) -> None:
        """An authentication error in the errors array is an auth failure."""
        body = {"errors": [{"message": "bad key", "extensions": {"code": "AUTHENTICATION_ERROR"}}]}
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, json=body)
            async with LinearClient(session) as client:
                with pytest.raises(LinearAuthError):
                    await client._execute("query { viewer { id } }")

    @pytest.mark.asyncio
    async def test_graphql_errors_malformed(self, session: Session) -> None:
        """Other GraphQL errors are reported as malformed responses."""
        body = {"errors": [{"message": "Cannot query field"}]}
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, json=body)
            async with LinearClient(session) as client:
                with pytest.raises(LinearMalformedResponseError, match="Cannot query field"):
                    await client._execute("query { nope }")

    @pytest.mark.asyncio
    async def test_non_json_body(self, session: Session) -> None:
        """A body that is not JSON is malformed."""
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, text="<html>")
            async with LinearClient(session) as client:
                with pytest.raises(LinearMalformedResponseError, match="not JSON"):
                    await client._execute("query { viewer { id } }")

    @pytest.mark.asyncio
    async def test_server_error_retried(self, session: Session) -> None:
        """5xx responses are retried with backoff, then succeed."""
        with (
            patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post,
            patch("linear_tui.api.client.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
        ):
            mock_post.side_effect = [_response(502, json={}), _response(200, json={"data": {"ok": True}})]
            async with LinearClient(session) as client:
                data = await client._execute("query { ok }")

        assert data == {"ok": True}
        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_timeout_exhausts_retries(self, session: Session) -> None:
        """Repeated timeouts become a network error."""
        with (
            patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post,
            patch("linear_tui.api.client.asyncio.sleep", new_callable=AsyncMock),
        ):
            mock_post.side_effect = httpx.ReadTimeout("slow")
            async with LinearClient(session, max_retries=2) as client:
                with pytest.raises(LinearNetworkError, match="timeout after 2 attempts"):
                    await client._execute("query { ok }")
        assert mock_post.await_count == 2

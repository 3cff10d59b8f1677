"""Linear GraphQL API client using httpx.

Provides the listing and detail services consumed by the fetch dispatcher.
One query per call; every failure is raised as a LinearClientError subclass
so callers can tell transient transport problems from authentication and
payload problems.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from linear_tui.api import queries
from linear_tui.core.models import (
    CycleSummary,
    IssueDetail,
    IssuePage,
    IssueSummary,
    ProjectSummary,
    SubIssueRecord,
    TeamSummary,
    WorkflowState,
)

if TYPE_CHECKING:
    from linear_tui.auth.session import Session
    from linear_tui.core.filters import FilterState

logger = logging.getLogger(__name__)

# Linear API constants
DEFAULT_ENDPOINT = "https://api.linear.app/graphql"
DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
INITIAL_BACKOFF = 1.0  # seconds
MAX_BACKOFF = 60.0
USER_AGENT = "linear-tui"


class LinearClientError(Exception):
    """Base exception for Linear client errors."""


class LinearNetworkError(LinearClientError):
    """Transport failure, timeout or unexpected HTTP status."""


class LinearAuthError(LinearClientError):
    """The session was rejected by the API."""


class LinearMalformedResponseError(LinearClientError):
    """The response could not be understood (bad JSON, schema, GraphQL errors)."""


class LinearNotFoundError(LinearClientError):
    """Requested resource not found."""


def _is_auth_error(error: dict[str, Any]) -> bool:
    extensions = error.get("extensions") or {}
    code = str(extensions.get("code", "")).upper()
    kind = str(extensions.get("type", "")).lower()
    return code == "AUTHENTICATION_ERROR" or kind == "authentication error"


def _is_not_found(error: dict[str, Any]) -> bool:
    return "not found" in str(error.get("message", "")).lower()


def _nodes(payload: dict[str, Any] | None, key: str) -> list[dict[str, Any]]:
    """Return ``payload[key]["nodes"]`` tolerating missing connections."""
    connection = (payload or {}).get(key) or {}
    return list(connection.get("nodes") or [])


def _flatten_sub_issues(nodes: list[dict[str, Any]], arena: dict[str, SubIssueRecord]) -> list[str]:
    """Store nested ``children`` nodes in ``arena`` and return their identifiers."""
    identifiers = []
    for node in nodes:
        child_ids = _flatten_sub_issues(_nodes(node, "children"), arena)
        fields = {key: value for key, value in node.items() if key != "children"}
        record = SubIssueRecord.model_validate({**fields, "childIds": child_ids})
        arena.setdefault(record.identifier, record)
        identifiers.append(record.identifier)
    return identifiers


class LinearClient:
    """Async Linear GraphQL client.

    Must be used as an async context manager. The underlying httpx client is
    safe for concurrent requests, so one instance serves every background
    fetch. Transient failures are retried with exponential backoff.
    """

    def __init__(
        self,
        session: Session,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        """Initialize the client.

        Args:
            session: Authenticated session providing the token.
            endpoint: GraphQL endpoint URL.
            timeout: Request timeout in seconds.
            max_retries: Attempts per request for transient failures.
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        # Never log the headers
        self._headers = {
            "Authorization": session.authorization_header,
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> LinearClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(headers=self._headers, timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("LinearClient must be used as async context manager")
        return self._client

    async def _execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Post a GraphQL document and return its ``data`` object.

        Raises:
            LinearAuthError: If the token is rejected.
            LinearMalformedResponseError: If the body is not a usable GraphQL response.
            LinearNotFoundError: If the API reports a missing entity.
            LinearNetworkError: For transport failures after retries.
        """
        body = {"query": query, "variables": variables or {}}

        for attempt in range(self.max_retries):
            wait_time = min(INITIAL_BACKOFF * (2**attempt), MAX_BACKOFF)
            last_attempt = attempt >= self.max_retries - 1
            try:
                response = await self.client.post(self.endpoint, json=body)
            except httpx.TimeoutException as e:
                if not last_attempt:
                    logger.warning(f"Request timeout, retrying in {wait_time:.1f}s")
                    await asyncio.sleep(wait_time)
                    continue
                raise LinearNetworkError(f"Request timeout after {self.max_retries} attempts") from e
            except httpx.HTTPError as e:
                if not last_attempt:
                    logger.warning(f"HTTP error: {e}, retrying in {wait_time:.1f}s")
                    await asyncio.sleep(wait_time)
                    continue
                raise LinearNetworkError(f"HTTP error after {self.max_retries} attempts: {e}") from e

            if response.status_code in (401, 403):
                raise LinearAuthError("Linear rejected the credentials. Run `linear-tui login`.")

            if response.status_code == 429 or response.status_code >= 500:
                if not last_attempt:
                    logger.warning(
                        f"Linear API returned {response.status_code}, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt + 1}/{self.max_retries})"
                    )
                    await asyncio.sleep(wait_time)
                    continue
                raise LinearNetworkError(f"Linear API error {response.status_code} after {self.max_retries} attempts")

            return self._parse(response)

        # Should not reach here, but just in case
        raise LinearNetworkError("Max retries exceeded")

    def _parse(self, response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise LinearMalformedResponseError(f"Response is not JSON (HTTP {response.status_code})") from e
        if not isinstance(payload, dict):
            raise LinearMalformedResponseError("Response is not a JSON object")

        errors = payload.get("errors") or []
        if errors:
            if any(_is_auth_error(error) for error in errors):
                raise LinearAuthError("Linear rejected the credentials. Run `linear-tui login`.")
            if any(_is_not_found(error) for error in errors):
                raise LinearNotFoundError(errors[0].get("message", "not found"))
            messages = "; ".join(str(error.get("message", error)) for error in errors)
            raise LinearMalformedResponseError(f"GraphQL returned errors: {messages}")

        if response.status_code >= 400:
            logger.error(f"Linear API error {response.status_code}: {response.text[:200]}")
            raise LinearNetworkError(f"Linear API error {response.status_code}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise LinearMalformedResponseError("Response has no data object")
        return data

    # =========================================================================
    # Metadata
    # =========================================================================

    async def teams(self) -> list[TeamSummary]:
        """List every team visible to the session."""
        data = await self._execute(queries.TEAMS_QUERY)
        try:
            return [TeamSummary.model_validate(node) for node in _nodes(data, "teams")]
        except ValidationError as e:
            raise LinearMalformedResponseError(f"Unexpected team payload: {e}") from e

    async def workflow_states(self, team_id: str) -> list[WorkflowState]:
        """List the workflow states of one team."""
        data = await self._execute(queries.WORKFLOW_STATES_QUERY, {"teamId": team_id})
        team = data.get("team")
        if team is None:
            raise LinearNotFoundError(f"Team not found: {team_id}")
        try:
            return [WorkflowState.model_validate(node) for node in _nodes(team, "states")]
        except ValidationError as e:
            raise LinearMalformedResponseError(f"Unexpected workflow state payload: {e}") from e

    # =========================================================================
    # Issues
    # =========================================================================

    async def list_issues(self, filters: FilterState, cursor: str | None, limit: int) -> IssuePage:
        """Fetch one page of issues matching ``filters``.

        Args:
            filters: Active filter state.
            cursor: End cursor of the previous page, None for the first page.
            limit: Page size.

        Returns:
            The page and its pagination info.
        """
        variables: dict[str, Any] = {"first": queries.clamp_page_size(limit)}
        issue_filter = queries.build_issue_filter(filters)
        if issue_filter is not None:
            variables["filter"] = issue_filter
        if cursor:
            variables["after"] = cursor

        data = await self._execute(queries.LIST_ISSUES_QUERY, variables)
        connection = data.get("issues")
        if not isinstance(connection, dict):
            raise LinearMalformedResponseError("Response has no issues connection")
        page_info = connection.get("pageInfo") or {}
        try:
            return IssuePage(
                issues=[IssueSummary.model_validate(node) for node in connection.get("nodes") or []],
                end_cursor=page_info.get("endCursor"),
                has_next_page=bool(page_info.get("hasNextPage", False)),
            )
        except ValidationError as e:
            raise LinearMalformedResponseError(f"Unexpected issue payload: {e}") from e

    async def issue_detail(self, identifier: str) -> IssueDetail:
        """Fetch an issue with comments, history and sub-issues in one query.

        Args:
            identifier: Issue key such as ``ENG-123``.

        Raises:
            LinearNotFoundError: If no issue has that key.
        """
        data = await self._execute(queries.ISSUE_DETAIL_QUERY, {"id": identifier})
        issue = data.get("issue")
        if issue is None:
            raise LinearNotFoundError(f"Issue not found: {identifier}")

        arena: dict[str, SubIssueRecord] = {}
        try:
            child_ids = _flatten_sub_issues(_nodes(issue, "children"), arena)
            fields = {key: value for key, value in issue.items() if key not in ("labels", "comments", "history", "children")}
            return IssueDetail.model_validate(
                {
                    **fields,
                    "labels": _nodes(issue, "labels"),
                    "comments": _nodes(issue, "comments"),
                    "history": _nodes(issue, "history"),
                    "childIds": child_ids,
                    "subIssues": arena,
                }
            )
        except ValidationError as e:
            raise LinearMalformedResponseError(f"Unexpected issue detail payload: {e}") from e

    # =========================================================================
    # Projects & Cycles
    # =========================================================================

    async def projects(self, team_id: str | None, limit: int, order_by: str = "updatedAt") -> list[ProjectSummary]:
        """List projects, most recently updated first."""
        variables: dict[str, Any] = {"first": queries.clamp_page_size(limit), "orderBy": order_by}
        project_filter = queries.build_project_filter(team_id)
        if project_filter is not None:
            variables["filter"] = project_filter
        data = await self._execute(queries.LIST_PROJECTS_QUERY, variables)
        try:
            return [ProjectSummary.model_validate(node) for node in _nodes(data, "projects")]
        except ValidationError as e:
            raise LinearMalformedResponseError(f"Unexpected project payload: {e}") from e

    async def cycles(self, team_id: str | None, limit: int) -> list[CycleSummary]:
        """List cycles, latest start date first."""
        variables: dict[str, Any] = {"first": queries.clamp_page_size(limit)}
        cycle_filter = queries.build_cycle_filter(team_id)
        if cycle_filter is not None:
            variables["filter"] = cycle_filter
        data = await self._execute(queries.LIST_CYCLES_QUERY, variables)
        try:
            cycles = [CycleSummary.model_validate(node) for node in _nodes(data, "cycles")]
        except ValidationError as e:
            raise LinearMalformedResponseError(f"Unexpected cycle payload: {e}") from e
        return sorted(cycles, key=lambda cycle: cycle.starts_at or "", reverse=True)

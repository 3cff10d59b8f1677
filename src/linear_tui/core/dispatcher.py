"""Background fetch dispatch.

Requests are submitted from the UI loop and executed as asyncio tasks. Each
task ends by putting exactly one FetchCompletion on a bounded queue, which
the UI loop drains and hands to the controller. Workers never touch
controller state; the generation they carry is what lets the controller
ignore results that arrive after the user has moved on.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from linear_tui.api.client import (
    LinearAuthError,
    LinearClientError,
    LinearMalformedResponseError,
    LinearNotFoundError,
)
from linear_tui.auth.session import UnauthenticatedError

if TYPE_CHECKING:
    from linear_tui.auth.session import SessionProvider
    from linear_tui.core.cache import PageKey
    from linear_tui.core.filters import FilterState
    from linear_tui.core.models import (
        CycleSummary,
        IssueDetail,
        IssuePage,
        ProjectSummary,
        TeamSummary,
        WorkflowState,
    )

logger = logging.getLogger(__name__)


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class IssuePageRequest:
    """One page of the issue list for a filter."""

    key: PageKey
    filters: FilterState
    cursor: str | None
    page_size: int


@dataclass(frozen=True)
class DetailRequest:
    """Full detail (comments, history, sub-issues) for one issue key."""

    identifier: str


@dataclass(frozen=True)
class TeamsRequest:
    """All teams visible to the session."""


@dataclass(frozen=True)
class WorkflowStatesRequest:
    """Workflow states of one team."""

    team_id: str


@dataclass(frozen=True)
class ProjectOptionsRequest:
    """Projects usable as filter options (``None`` team means all teams)."""

    team_id: str | None
    limit: int = 50


@dataclass(frozen=True)
class ProjectsOverlayRequest:
    """Most recently updated projects for the projects overlay."""

    team_id: str | None
    limit: int


@dataclass(frozen=True)
class CyclesOverlayRequest:
    """Most recent cycles for the cycles overlay."""

    team_id: str | None
    limit: int


FetchRequest = (
    IssuePageRequest
    | DetailRequest
    | TeamsRequest
    | WorkflowStatesRequest
    | ProjectOptionsRequest
    | ProjectsOverlayRequest
    | CyclesOverlayRequest
)


# =============================================================================
# Outcomes
# =============================================================================


class ErrorKind(str, Enum):
    """Failure categories surfaced to the controller."""

    NETWORK = "network"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class Ok:
    payload: Any


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    reason: str


Outcome = Ok | Err


@dataclass(frozen=True)
class FetchCompletion:
    """Immutable message delivered once per submitted request."""

    generation: int
    request: FetchRequest
    outcome: Outcome


@dataclass(frozen=True)
class FetchHandle:
    """Returned by ``submit``; identifies the request in logs and tests."""

    request_id: int
    request: FetchRequest
    generation: int


class FetchDispatcher(Protocol):
    """Anything that can run a request in the background."""

    def submit(self, request: FetchRequest, generation: int) -> FetchHandle:
        """Start the request and return immediately."""
        ...


class FetchBackend(Protocol):
    """The API collaborator used by AsyncFetchDispatcher."""

    async def list_issues(self, filters: FilterState, cursor: str | None, limit: int) -> IssuePage: ...

    async def issue_detail(self, identifier: str) -> IssueDetail: ...

    async def teams(self) -> list[TeamSummary]: ...

    async def workflow_states(self, team_id: str) -> list[WorkflowState]: ...

    async def projects(
        self, team_id: str | None, limit: int, order_by: str = "updatedAt"
    ) -> list[ProjectSummary]: ...

    async def cycles(self, team_id: str | None, limit: int) -> list[CycleSummary]: ...


# =============================================================================
# asyncio implementation
# =============================================================================


class AsyncFetchDispatcher:
    """Runs each request as an asyncio task and queues its completion.

    ``submit`` must be called from the running event loop; it only schedules
    the task. In-flight requests are never aborted: stale results are
    dropped by the controller when they arrive.
    """

    def __init__(
        self,
        backend: FetchBackend,
        sessions: SessionProvider,
        max_in_flight: int = 8,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            backend: API client performing the actual calls
            sessions: Consulted before every call
            max_in_flight: Capacity of the completion queue; finished workers
                wait for room rather than dropping results
        """
        self._backend = backend
        self._sessions = sessions
        self._queue: asyncio.Queue[FetchCompletion] = asyncio.Queue(maxsize=max_in_flight)
        self._tasks: set[asyncio.Task[None]] = set()
        self._ids = itertools.count(1)

    def submit(self, request: FetchRequest, generation: int) -> FetchHandle:
        handle = FetchHandle(next(self._ids), request, generation)
        logger.debug(f"Submitting #{handle.request_id} {type(request).__name__} (generation {generation})")
        task = asyncio.get_running_loop().create_task(self._run(handle))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return handle

    async def next_completion(self) -> FetchCompletion:
        """Wait for the next completion (used by the UI drain loop)."""
        return await self._queue.get()

    async def aclose(self) -> None:
        """Cancel outstanding workers (application shutdown only)."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def _run(self, handle: FetchHandle) -> None:
        outcome = await self._execute(handle.request)
        logger.debug(f"Completed #{handle.request_id}: {type(outcome).__name__}")
        await self._queue.put(FetchCompletion(handle.generation, handle.request, outcome))

    async def _execute(self, request: FetchRequest) -> Outcome:
        """Run one request, converting every failure into an Err outcome."""
        try:
            self._sessions.current_session()
            return Ok(await self._call(request))
        except (UnauthenticatedError, LinearAuthError) as e:
            logger.error(f"Not authenticated: {e}")
            return Err(ErrorKind.UNAUTHENTICATED, str(e))
        except LinearNotFoundError as e:
            logger.warning(f"Not found: {e}")
            return Err(ErrorKind.NOT_FOUND, str(e))
        except LinearMalformedResponseError as e:
            logger.error(f"Malformed response for {type(request).__name__}: {e}")
            return Err(ErrorKind.MALFORMED, str(e))
        except LinearClientError as e:
            logger.warning(f"Network error for {type(request).__name__}: {e}")
            return Err(ErrorKind.NETWORK, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error for {type(request).__name__}")
            return Err(ErrorKind.NETWORK, f"unexpected error: {e}")

    async def _call(self, request: FetchRequest) -> Any:
        backend = self._backend
        match request:
            case IssuePageRequest(filters=filters, cursor=cursor, page_size=page_size):
                return await backend.list_issues(filters, cursor, page_size)
            case DetailRequest(identifier=identifier):
                return await backend.issue_detail(identifier)
            case TeamsRequest():
                return await backend.teams()
            case WorkflowStatesRequest(team_id=team_id):
                return await backend.workflow_states(team_id)
            case ProjectOptionsRequest(team_id=team_id, limit=limit):
                projects = await backend.projects(team_id, limit)
                return sorted(projects, key=lambda project: project.name.lower())
            case ProjectsOverlayRequest(team_id=team_id, limit=limit):
                return await backend.projects(team_id, limit)
            case CyclesOverlayRequest(team_id=team_id, limit=limit):
                return await backend.cycles(team_id, limit)
        raise TypeError(f"Unsupported request: {request!r}")

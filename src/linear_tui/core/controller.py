"""Application controller for the dashboard.

The controller owns every piece of mutable UI state: filters, the page
cache, selection, overlays, and metadata (teams, workflow states, project
options). It is driven by two entry points only:

- ``handle_input`` for key presses and render ticks
- ``handle_fetch_completion`` for results delivered by the dispatcher

and exposes ``current_view_model`` for drawing. It never performs I/O
itself; every network call goes through the injected dispatcher and comes
back as a FetchCompletion tagged with the generation it was issued under.

Generations:
- ``generation`` guards issue pages and issue detail. It is bumped on
  every filter change, reload, page refresh and cache invalidation.
- ``meta_generation`` guards teams, workflow states and project options.
  It is bumped only on reload, so metadata is not starved by filter edits.
- overlay fetches carry the OverlayManager's own generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import TYPE_CHECKING

from linear_tui.core import commands
from linear_tui.core.cache import FetchStatus, PageCache, PageEntry, PageKey
from linear_tui.core.commands import (
    ClearFilters,
    Command,
    Empty,
    GoToPage,
    Reload,
    SetContains,
    SetDetailTab,
    SetProject,
    SetState,
    SetStatus,
    SetTeam,
    Step,
    ToggleHelp,
    Unknown,
    Usage,
    ViewIssue,
)
from linear_tui.core.detail import DetailTab, DetailView, build_detail_view
from linear_tui.core.dispatcher import (
    CyclesOverlayRequest,
    DetailRequest,
    Err,
    ErrorKind,
    FetchCompletion,
    FetchDispatcher,
    FetchRequest,
    IssuePageRequest,
    Ok,
    ProjectOptionsRequest,
    ProjectsOverlayRequest,
    TeamsRequest,
    WorkflowStatesRequest,
)
from linear_tui.core.filters import FilterState, StatusTab
from linear_tui.core.overlay import OverlayKind, OverlayManager
from linear_tui.core.view_model import (
    DetailPanel,
    Focus,
    Mode,
    OverlayView,
    PaletteView,
    SidebarList,
    ViewModel,
)

if TYPE_CHECKING:
    from linear_tui.core.models import IssueSummary, ProjectSummary, TeamSummary, WorkflowState

logger = logging.getLogger(__name__)

SPINNER_FRAMES = ("-", "\\", "|", "/")
PROJECT_OPTION_LIMIT = 50
MAX_SUGGESTIONS = 5

PALETTE_VERBS = (
    "team",
    "state",
    "project",
    "status",
    "contains",
    "page",
    "view",
    "detail",
    "activity",
    "sub-issues",
    "clear",
    "reload",
    "help",
)

# Textual key names for punctuation, folded to the character itself
_KEY_ALIASES = {
    "right_square_bracket": "]",
    "left_square_bracket": "[",
    "ctrl+right_square_bracket": "ctrl+]",
    "ctrl+left_square_bracket": "ctrl+[",
    "full_stop": ".",
    "comma": ",",
    "question_mark": "?",
    "colon": ":",
    "slash": "/",
    "shift+p": "P",
    "shift+tab": "tab",
}

_STATUS_KEYS = {"1": StatusTab.TODO, "2": StatusTab.DOING, "3": StatusTab.DONE, "4": StatusTab.ALL}


# =============================================================================
# Input events
# =============================================================================


@dataclass(frozen=True)
class KeyInput:
    """One key press.

    ``key`` uses Textual's key names ("p", "P", "ctrl+p", "escape", "up",
    "right_square_bracket", ...). ``character`` is the printable character
    typed, if any, and is what the palette appends to its buffer.
    """

    key: str
    character: str | None = None

    @property
    def normalized(self) -> str:
        return _KEY_ALIASES.get(self.key, self.key)


@dataclass(frozen=True)
class Tick:
    """Periodic render tick; advances the spinner."""


InputEvent = KeyInput | Tick


# =============================================================================
# Controller
# =============================================================================


class AppController:
    """Owns dashboard state and turns input and completions into fetches."""

    def __init__(
        self,
        dispatcher: FetchDispatcher,
        *,
        page_size: int = 20,
        project_overlay_limit: int = 50,
        cycle_overlay_limit: int = 10,
        tz: tzinfo | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            dispatcher: Runs fetch requests in the background
            page_size: Issues per page
            project_overlay_limit: Projects shown in the projects overlay
            cycle_overlay_limit: Cycles shown in the cycles overlay
            tz: Timezone used to group activity by day (local time if None)
        """
        self._dispatcher = dispatcher
        self._page_size = page_size
        self._project_overlay_limit = project_overlay_limit
        self._cycle_overlay_limit = cycle_overlay_limit
        self._tz = tz

        self.generation = 0
        self.meta_generation = 0
        self.filters = FilterState()
        self.cache = PageCache()
        self.page = 0
        self.focus = Focus.ISSUES
        self.overlays = OverlayManager()

        self._rows: list[IssueSummary] = []
        self._rows_key: PageKey | None = None
        self._selected_id: str | None = None
        self._select_last_on_load = False

        self._details: dict[str, DetailView] = {}
        self._detail_errors: dict[str, str] = {}
        self._detail_pending: set[str] = set()
        self._detail_tabs: dict[str, DetailTab] = {}

        self._teams: list[TeamSummary] | None = None
        self._teams_pending = False
        self._states: dict[str, list[WorkflowState]] = {}
        self._states_pending: set[str] = set()
        self._project_options: dict[str | None, list[ProjectSummary]] = {}
        self._project_options_pending: set[str | None] = set()

        self.status = "Ready"
        self._spinning = False
        self._spinner_index = 0
        self.auth_required = False
        self.quit_requested = False

    # =========================================================================
    # Derived state
    # =========================================================================

    @property
    def mode(self) -> Mode:
        match self.overlays.kind:
            case OverlayKind.NONE:
                return Mode.BROWSING
            case OverlayKind.PALETTE:
                return Mode.PALETTE_ACTIVE
        return Mode.OVERLAY_ACTIVE

    @property
    def current_key(self) -> PageKey:
        return PageKey(self.filters.fingerprint, self.page)

    @property
    def rows(self) -> list[IssueSummary]:
        return list(self._rows)

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected_index(self) -> int | None:
        return self._index_of(self._selected_id)

    @property
    def detail_tab(self) -> DetailTab:
        """Tab shown for the selected issue (remembered per issue)."""
        if self._selected_id is None:
            return DetailTab.SUMMARY
        return self._detail_tabs.get(self._selected_id.upper(), DetailTab.SUMMARY)

    def _index_of(self, identifier: str | None) -> int | None:
        if identifier is None:
            return None
        wanted = identifier.upper()
        for index, issue in enumerate(self._rows):
            if issue.identifier.upper() == wanted:
                return index
        return None

    def _team_key(self, team_id: str | None) -> str:
        if team_id is None:
            return "All"
        for team in self._teams or []:
            if team.id == team_id:
                return team.key
        return team_id

    def _state_name(self, state_id: str | None) -> str:
        if state_id is None:
            return "All"
        for state in self._states.get(self.filters.team_id or "", []):
            if state.id == state_id:
                return state.name
        return state_id

    def _project_name(self, project_id: str | None) -> str:
        if project_id is None:
            return "All"
        for project in self._project_options.get(self.filters.team_id, []):
            if project.id == project_id:
                return project.name
        return project_id

    @property
    def filters_text(self) -> str:
        parts = [
            f"team={self._team_key(self.filters.team_id)}",
            f"project={self._project_name(self.filters.project_id)}",
            f"state={self._state_name(self.filters.state_id)}",
            f"status={self.filters.status.label}",
        ]
        if self.filters.contains:
            parts.append(f"title~'{self.filters.contains}'")
        parts.append(f"page={self.page + 1}")
        if self._selected_id:
            parts.append(f"selected={self._selected_id}")
        return "Filters: " + "  ".join(parts)

    def _has_pending_work(self) -> bool:
        entry = self.cache.lookup(self.current_key)
        if entry is not None and entry.status is FetchStatus.PENDING:
            return True
        if self._detail_pending:
            return True
        state = self.overlays.list_state
        return state is not None and state.loading

    # =========================================================================
    # Status line
    # =========================================================================

    def _set_status(self, message: str, spinner: bool = False) -> None:
        self.status = message
        self._spinning = spinner
        if spinner:
            self._spinner_index = 0

    def _report_error(self, kind: ErrorKind, message: str) -> None:
        if kind is ErrorKind.UNAUTHENTICATED:
            self.auth_required = True
            self._set_status(f"Not authenticated: {message}. Run `linear-tui login` to sign in.")
        else:
            self._set_status(f"Error: {message}")

    @property
    def status_text(self) -> str:
        if self._spinning:
            return f"{SPINNER_FRAMES[self._spinner_index]} {self.status}"
        return self.status

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Issue the initial metadata and page-0 fetches (generation 1)."""
        self.meta_generation += 1
        self._bump_generation()
        self._request_teams()
        self._request_project_options(self.filters.team_id)
        self._load_current_page()

    def _submit(self, request: FetchRequest, generation: int) -> None:
        self._dispatcher.submit(request, generation)

    def _bump_generation(self) -> None:
        self.generation += 1
        dropped = self.cache.drop_stale_pending(self.generation)
        self._detail_pending.clear()
        logger.debug(f"Generation {self.generation} (dropped {len(dropped)} stale pending pages)")

    def _invalidate_all(self) -> None:
        self.cache.invalidate_all()
        self._details.clear()
        self._detail_errors.clear()
        self._bump_generation()

    # =========================================================================
    # Fetch requests
    # =========================================================================

    def _request_teams(self) -> None:
        if self._teams is not None or self._teams_pending:
            return
        self._teams_pending = True
        self._submit(TeamsRequest(), self.meta_generation)

    def _request_states(self, team_id: str | None) -> None:
        if team_id is None or team_id in self._states or team_id in self._states_pending:
            return
        self._states_pending.add(team_id)
        self._submit(WorkflowStatesRequest(team_id), self.meta_generation)

    def _request_project_options(self, team_id: str | None) -> None:
        if team_id in self._project_options or team_id in self._project_options_pending:
            return
        self._project_options_pending.add(team_id)
        self._submit(ProjectOptionsRequest(team_id, PROJECT_OPTION_LIMIT), self.meta_generation)

    def _load_current_page(self) -> None:
        """Show the current page from cache, or fetch it.

        At most one fetch per key is in flight: a PENDING entry suppresses a
        new request, a FAILED or missing entry triggers one.
        """
        key = self.current_key
        entry = self.cache.lookup(key)
        if entry is not None and entry.status is FetchStatus.READY:
            self._show_page(key, entry)
            return
        if self._rows_key != key:
            self._rows = []
            self._rows_key = None
        if not self.cache.needs_fetch(key):
            self._set_status(f"Loading page {self.page + 1}...", spinner=True)
            return

        cursor = None
        if self.page > 0:
            previous = self.cache.lookup(PageKey(key.fingerprint, self.page - 1))
            cursor = previous.next_cursor if previous else None
            if cursor is None:
                self._set_status(f"Page {self.page + 1} not available; advance sequentially")
                return

        self.cache.insert(key, PageEntry.pending(self.generation))
        self._submit(IssuePageRequest(key, self.filters, cursor, self._page_size), self.generation)
        self._set_status(f"Loading issues (page {self.page + 1})...", spinner=True)

    def _ensure_detail(self, identifier: str) -> None:
        key = identifier.upper()
        if key in self._details or key in self._detail_pending:
            return
        self._detail_pending.add(key)
        self._detail_errors.pop(key, None)
        self._submit(DetailRequest(identifier), self.generation)

    # =========================================================================
    # Completions
    # =========================================================================

    def handle_fetch_completion(self, completion: FetchCompletion) -> None:
        """Apply a finished fetch, unless it is stale."""
        request = completion.request
        match request:
            case IssuePageRequest():
                self._on_page(completion, request)
            case DetailRequest():
                self._on_detail(completion, request)
            case TeamsRequest():
                self._on_teams(completion)
            case WorkflowStatesRequest():
                self._on_states(completion, request)
            case ProjectOptionsRequest():
                self._on_project_options(completion, request)
            case ProjectsOverlayRequest():
                self._on_overlay(completion, OverlayKind.PROJECTS)
            case CyclesOverlayRequest():
                self._on_overlay(completion, OverlayKind.CYCLES)

    def _on_page(self, completion: FetchCompletion, request: IssuePageRequest) -> None:
        if completion.generation != self.generation:
            logger.debug(f"Discarding stale page {request.key.page} (generation {completion.generation})")
            return
        entry = self.cache.lookup(request.key)
        if entry is None or entry.status is not FetchStatus.PENDING:
            logger.debug(f"Discarding page {request.key.page}: no pending entry")
            return

        match completion.outcome:
            case Ok(payload=page):
                ready = PageEntry.ready(completion.generation, page)
                self.cache.insert(request.key, ready)
                if request.key == self.current_key:
                    self._show_page(request.key, ready)
            case Err(kind=kind, reason=reason):
                self.cache.insert(request.key, PageEntry.failed(completion.generation, reason))
                if request.key == self.current_key or kind is ErrorKind.UNAUTHENTICATED:
                    self._report_error(kind, reason)

    def _on_detail(self, completion: FetchCompletion, request: DetailRequest) -> None:
        key = request.identifier.upper()
        if completion.generation != self.generation:
            logger.debug(f"Discarding stale detail for {key} (generation {completion.generation})")
            return
        self._detail_pending.discard(key)
        if self._selected_id is None or self._selected_id.upper() != key:
            logger.debug(f"Discarding detail for {key}: no longer selected")
            if isinstance(completion.outcome, Err) and completion.outcome.kind is ErrorKind.UNAUTHENTICATED:
                self._report_error(completion.outcome.kind, completion.outcome.reason)
            return

        match completion.outcome:
            case Ok(payload=detail):
                self._details[key] = build_detail_view(detail, self._tz)
                if self._spinning and not self._has_pending_work():
                    self._spinning = False
            case Err(kind=kind, reason=reason):
                self._detail_errors[key] = reason
                self._report_error(kind, reason)

    def _on_teams(self, completion: FetchCompletion) -> None:
        if completion.generation != self.meta_generation:
            logger.debug("Discarding stale team list")
            return
        self._teams_pending = False
        match completion.outcome:
            case Ok(payload=teams):
                self._teams = list(teams)
            case Err(kind=kind, reason=reason):
                self._report_error(kind, f"failed to load teams: {reason}")

    def _on_states(self, completion: FetchCompletion, request: WorkflowStatesRequest) -> None:
        if completion.generation != self.meta_generation:
            logger.debug(f"Discarding stale workflow states for team {request.team_id}")
            return
        self._states_pending.discard(request.team_id)
        match completion.outcome:
            case Ok(payload=states):
                self._states[request.team_id] = list(states)
            case Err(kind=kind, reason=reason):
                self._report_error(kind, f"failed to load workflow states: {reason}")

    def _on_project_options(self, completion: FetchCompletion, request: ProjectOptionsRequest) -> None:
        if completion.generation != self.meta_generation:
            logger.debug(f"Discarding stale project options for team {request.team_id}")
            return
        self._project_options_pending.discard(request.team_id)
        match completion.outcome:
            case Ok(payload=projects):
                self._project_options[request.team_id] = list(projects)
            case Err(kind=kind, reason=reason):
                self._report_error(kind, f"failed to load projects: {reason}")

    def _on_overlay(self, completion: FetchCompletion, kind: OverlayKind) -> None:
        match completion.outcome:
            case Ok(payload=items):
                self.overlays.apply_items(kind, completion.generation, items)
            case Err(kind=error_kind, reason=reason):
                applied = self.overlays.apply_error(kind, completion.generation, reason)
                if applied or error_kind is ErrorKind.UNAUTHENTICATED:
                    self._report_error(error_kind, reason)

    # =========================================================================
    # Page display and selection
    # =========================================================================

    def _show_page(self, key: PageKey, entry: PageEntry) -> None:
        """Display a Ready page, preserving selection by identifier."""
        self._rows = list(entry.issues)
        self._rows_key = key
        select_last = self._select_last_on_load
        self._select_last_on_load = False

        if not self._rows:
            self._selected_id = None
            self._set_status(f"No issues match the current filters (page {key.page + 1})")
            return

        if select_last:
            index = len(self._rows) - 1
        else:
            index = self._index_of(self._selected_id)
            if index is None:
                index = 0
        self._select_row(index)
        self._set_status(f"Loaded {len(self._rows)} issues (page {key.page + 1})", spinner=self._has_pending_work())

    def _select_row(self, index: int) -> None:
        issue = self._rows[index]
        self._selected_id = issue.identifier
        self._ensure_detail(issue.identifier)

    def _move_selection(self, delta: int) -> None:
        if not self._rows:
            self._set_status("No issues loaded")
            return
        index = self.selected_index
        target = (0 if index is None else index) + delta
        if target < 0:
            if self.page > 0:
                self._go_to_page(self.page - 1, select_last=True)
            else:
                self._set_status("Already at first issue")
            return
        if target >= len(self._rows):
            if self._page_reachable(self.page + 1):
                self._go_to_page(self.page + 1)
            else:
                self._set_status("Already at last issue")
            return
        self._select_row(target)
        self._set_status(f"Selected {self._selected_id}")

    def _view_issue(self, target: str | int | Step) -> None:
        count = len(self._rows)
        match target:
            case Step.NEXT:
                self._move_selection(1)
            case Step.PREV:
                self._move_selection(-1)
            case Step.FIRST | Step.LAST:
                if not count:
                    self._set_status("No issues loaded")
                    return
                self._select_row(0 if target is Step.FIRST else count - 1)
                self._set_status(f"Selected {self._selected_id}")
            case int():
                if not 1 <= target <= count:
                    self._set_status(f"Row {target} is out of range (1-{count})" if count else "No issues loaded")
                    return
                self._select_row(target - 1)
                self._set_status(f"Selected {self._selected_id}")
            case str():
                index = self._index_of(target)
                if index is None:
                    self._set_status(f"Issue {target} is not in the current list")
                    return
                self._select_row(index)
                self._set_status(f"Selected {self._selected_id}")

    # =========================================================================
    # Pagination
    # =========================================================================

    def _page_reachable(self, target: int) -> bool:
        if target == 0:
            return True
        fingerprint = self.filters.fingerprint
        entry = self.cache.lookup(PageKey(fingerprint, target))
        if entry is not None and entry.status is FetchStatus.READY:
            return True
        previous = self.cache.lookup(PageKey(fingerprint, target - 1))
        return previous is not None and previous.next_cursor is not None

    def _go_to_page(self, target: int, select_last: bool = False) -> None:
        if target < 0:
            self._set_status("Already at first page")
            return
        if target == self.page:
            self._set_status(f"Already on page {target + 1}")
            return
        if not self._page_reachable(target):
            if target == self.page + 1:
                self._set_status("Already at last page")
            else:
                self._set_status(f"Page {target + 1} not available; advance sequentially")
            return
        self.page = target
        self._selected_id = None
        self._select_last_on_load = select_last
        self._load_current_page()

    def _refresh_page(self) -> None:
        """Refetch the current page and drop the pages fetched after it."""
        key = self.current_key
        entry = self.cache.lookup(key)
        if entry is not None and entry.status is FetchStatus.PENDING:
            self._set_status(f"Page {self.page + 1} is already loading", spinner=True)
            return
        page = self.page
        while (stale := PageKey(key.fingerprint, page)) in self.cache:
            self.cache.invalidate(stale)
            page += 1
        self._bump_generation()
        self._load_current_page()

    # =========================================================================
    # Filters
    # =========================================================================

    def _apply_filters(self, filters: FilterState, message: str) -> None:
        """Switch to new filters: page 0, fresh cache, next generation."""
        self.filters = filters
        self.page = 0
        self._select_last_on_load = False
        self.overlays.close()
        self._invalidate_all()
        logger.info(f"Filters changed: {self.filters_text}")
        self._load_current_page()
        self._set_status(f"{message}; loading issues...", spinner=True)

    def _change_team(self, team_id: str | None) -> None:
        if team_id == self.filters.team_id:
            self._set_status(f"Team already {self._team_key(team_id)}")
            return
        self._apply_filters(self.filters.with_team(team_id), f"Team: {self._team_key(team_id)}")
        self._request_states(team_id)
        self._request_project_options(team_id)

    def _set_team(self, key: str) -> None:
        if self._teams is None:
            self._request_teams()
            self._set_status("Teams are still loading", spinner=True)
            return
        wanted = key.lower()
        for team in self._teams:
            if team.key.lower() == wanted or team.name.lower() == wanted:
                self._change_team(team.id)
                return
        self._set_status(f"Unknown team: {key}")

    def _move_team(self, delta: int) -> None:
        if self._teams is None:
            self._request_teams()
            self._set_status("Teams are still loading", spinner=True)
            return
        ids: list[str | None] = [None, *(team.id for team in self._teams)]
        current = ids.index(self.filters.team_id) if self.filters.team_id in ids else 0
        target = max(0, min(len(ids) - 1, current + delta))
        if target == current:
            self._set_status("Already at first team" if delta < 0 else "Already at last team")
            return
        self._change_team(ids[target])

    def _team_states(self) -> list[WorkflowState] | None:
        """States of the selected team, requesting them if needed."""
        team_id = self.filters.team_id
        if team_id is None:
            self._set_status("Select a team to filter by state")
            return None
        if team_id not in self._states:
            self._request_states(team_id)
            self._set_status("Workflow states are still loading", spinner=True)
            return None
        return self._states[team_id]

    def _change_state(self, state: WorkflowState | None) -> None:
        state_id = state.id if state else None
        if state_id == self.filters.state_id:
            self._set_status(f"State already {state.name if state else 'All'}")
            return
        filters = self.filters.with_state(state_id, state.type if state else None)
        self._apply_filters(filters, f"State: {state.name if state else 'All'}")

    def _set_state(self, name: str) -> None:
        states = self._team_states()
        if states is None:
            return
        wanted = name.lower()
        for state in states:
            if state.name.lower() == wanted:
                self._change_state(state)
                return
        self._set_status(f"Unknown state: {name}")

    def _move_state(self, delta: int) -> None:
        states = self._team_states()
        if states is None:
            return
        options: list[WorkflowState | None] = [None, *states]
        ids = [state.id if state else None for state in options]
        current = ids.index(self.filters.state_id) if self.filters.state_id in ids else 0
        target = max(0, min(len(options) - 1, current + delta))
        if target == current:
            self._set_status("Already at first state" if delta < 0 else "Already at last state")
            return
        self._change_state(options[target])

    def _set_project(self, target: str | Step) -> None:
        if target is Step.CLEAR:
            if self.filters.project_id is None:
                self._set_status("Project filter already cleared")
                return
            self._apply_filters(self.filters.with_project(None), "Cleared project filter")
            return

        team_id = self.filters.team_id
        options = self._project_options.get(team_id)
        if options is None:
            self._request_project_options(team_id)
            self._set_status("Projects are still loading", spinner=True)
            return
        if not options:
            self._set_status("No projects available")
            return

        match target:
            case Step.NEXT | Step.PREV:
                ids: list[str | None] = [None, *(project.id for project in options)]
                current = ids.index(self.filters.project_id) if self.filters.project_id in ids else 0
                delta = 1 if target is Step.NEXT else -1
                project_id = ids[(current + delta) % len(ids)]
                self._apply_filters(
                    self.filters.with_project(project_id), f"Project: {self._project_name(project_id)}"
                )
            case str():
                wanted = target.lower()
                found = next((p for p in options if p.name.lower() == wanted), None)
                if found is None:
                    found = next((p for p in options if p.name.lower().startswith(wanted)), None)
                if found is None:
                    self._set_status(f"Unknown project: {target}")
                elif found.id == self.filters.project_id:
                    self._set_status(f"Project already {found.name}")
                else:
                    self._apply_filters(self.filters.with_project(found.id), f"Project: {found.name}")

    def _set_status_tab(self, target: StatusTab | Step) -> None:
        match target:
            case Step.NEXT:
                tab = self.filters.status.cycle(1)
            case Step.PREV:
                tab = self.filters.status.cycle(-1)
            case StatusTab():
                tab = target
            case _:
                self._set_status(commands.STATUS_USAGE)
                return
        if tab is self.filters.status and self.filters.state_id is None:
            self._set_status(f"Status already {tab.label}")
            return
        self._apply_filters(self.filters.with_status(tab), f"Status: {tab.label}")

    def _set_contains(self, text: str | None) -> None:
        filters = self.filters.with_contains(text)
        if filters == self.filters:
            self._set_status("Title filter unchanged" if text else "Title filter already cleared")
            return
        message = f"Title contains '{filters.contains}'" if filters.contains else "Cleared title filter"
        self._apply_filters(filters, message)

    def _clear_filters(self) -> None:
        if self.filters == FilterState():
            self._set_status("Filters already clear")
            return
        self._apply_filters(FilterState(), "Cleared filters")

    def _reload(self) -> None:
        """Drop all cached data and refetch metadata and the current filters."""
        self.meta_generation += 1
        self._teams = None
        self._teams_pending = False
        self._states.clear()
        self._states_pending.clear()
        self._project_options.clear()
        self._project_options_pending.clear()
        self.page = 0
        self._select_last_on_load = False
        self._invalidate_all()
        self._request_teams()
        self._request_states(self.filters.team_id)
        self._request_project_options(self.filters.team_id)
        self._load_current_page()
        self._set_status("Reloading...", spinner=True)

    # =========================================================================
    # Detail tabs
    # =========================================================================

    def _set_detail_tab(self, target: DetailTab | Step) -> None:
        if self._selected_id is None:
            self._set_status("No issue selected")
            return
        current = self.detail_tab
        match target:
            case Step.NEXT:
                tab = current.cycle(1)
            case Step.PREV:
                tab = current.cycle(-1)
            case DetailTab():
                tab = target
            case _:
                self._set_status(commands.DETAIL_USAGE)
                return
        self._detail_tabs[self._selected_id.upper()] = tab
        self._set_status(f"Detail: {tab.label}")

    # =========================================================================
    # Overlays
    # =========================================================================

    def _toggle_overlay(self, kind: OverlayKind) -> None:
        if self.overlays.kind is kind:
            self.overlays.close()
            self._set_status(f"Closed {kind.value}")
            return
        generation = self.overlays.open(kind)
        team_id = self.filters.team_id
        match kind:
            case OverlayKind.PROJECTS:
                self._submit(ProjectsOverlayRequest(team_id, self._project_overlay_limit), generation)
                self._set_status("Loading recent projects...", spinner=True)
            case OverlayKind.CYCLES:
                self._submit(CyclesOverlayRequest(team_id, self._cycle_overlay_limit), generation)
                self._set_status("Loading recent cycles...", spinner=True)
            case OverlayKind.HELP:
                self._set_status("Help (press ? or Esc to close)")

    def _open_palette(self, initial: str = "") -> None:
        self.overlays.open(OverlayKind.PALETTE, initial_input=initial)
        self._set_status("Command mode (Enter to run, Esc to cancel)")

    # =========================================================================
    # Commands
    # =========================================================================

    def execute(self, command: Command) -> None:
        """Run one palette command; every variant is handled."""
        match command:
            case SetTeam(key=key):
                self._set_team(key)
            case SetState(name=name):
                self._set_state(name)
            case SetProject(target=target):
                self._set_project(target)
            case SetStatus(target=target):
                self._set_status_tab(target)
            case SetContains(text=text):
                self._set_contains(text)
            case ClearFilters():
                self._clear_filters()
            case Reload():
                self._reload()
            case GoToPage(target=Step.NEXT):
                self._go_to_page(self.page + 1)
            case GoToPage(target=Step.PREV):
                self._go_to_page(self.page - 1)
            case GoToPage(target=Step.REFRESH):
                self._refresh_page()
            case GoToPage(target=int() as number):
                self._go_to_page(number - 1)
            case ViewIssue(target=target):
                self._view_issue(target)
            case SetDetailTab(target=target):
                self._set_detail_tab(target)
            case ToggleHelp():
                if self.overlays.kind is OverlayKind.HELP:
                    self._set_status("Help is already open")
                else:
                    self._toggle_overlay(OverlayKind.HELP)
            case Usage(message=message):
                self._set_status(message)
            case Empty():
                self._set_status("No command entered")
            case Unknown(text=text):
                self._set_status(f"Unknown command: {text}")
            case _:
                self._set_status(f"Unsupported command: {command!r}")

    # =========================================================================
    # Input
    # =========================================================================

    def handle_input(self, event: InputEvent) -> None:
        """Route a key press or tick according to the current mode."""
        match event:
            case Tick():
                self.tick()
            case KeyInput():
                match self.mode:
                    case Mode.PALETTE_ACTIVE:
                        self._palette_key(event)
                    case Mode.OVERLAY_ACTIVE:
                        self._overlay_key(event)
                    case Mode.BROWSING:
                        self._browse_key(event)

    def tick(self) -> None:
        """Advance the spinner while work is pending; stop it otherwise."""
        if not self._spinning:
            return
        if not self._has_pending_work():
            self._spinning = False
            return
        self._spinner_index = (self._spinner_index + 1) % len(SPINNER_FRAMES)

    def _palette_key(self, event: KeyInput) -> None:
        palette = self.overlays.palette
        match event.normalized:
            case "escape":
                self.overlays.close()
                self._set_status("Exited command mode")
            case "enter":
                text = palette.input
                palette.record(text)
                self.overlays.close()
                logger.debug(f"Palette command: {text!r}")
                self.execute(commands.parse(text))
            case "backspace":
                palette.input = palette.input[:-1]
                palette.history_index = None
            case "up":
                palette.recall(-1)
            case "down":
                palette.recall(1)
            case "tab":
                suggestions = self.palette_suggestions()
                if suggestions:
                    palette.input = suggestions[0]
            case _:
                if event.character and event.character.isprintable():
                    palette.input += event.character
                    palette.history_index = None

    def _overlay_key(self, event: KeyInput) -> None:
        match event.normalized:
            case "escape" | "q":
                kind = self.overlays.kind
                self.overlays.close()
                self._set_status(f"Closed {kind.value}")
            case "o" | "O":
                self._toggle_overlay(OverlayKind.PROJECTS)
            case "y" | "Y":
                self._toggle_overlay(OverlayKind.CYCLES)
            case "?":
                self._toggle_overlay(OverlayKind.HELP)
            case ":":
                self._open_palette()

    def _browse_key(self, event: KeyInput) -> None:
        key = event.normalized
        match key:
            case "q" | "escape":
                self.quit_requested = True
            case ":":
                self._open_palette()
            case "/":
                current = self.filters.contains
                self._open_palette(f"contains {current}" if current else "contains ")
            case "?":
                self._toggle_overlay(OverlayKind.HELP)
            case "o" | "O":
                self._toggle_overlay(OverlayKind.PROJECTS)
            case "y" | "Y":
                self._toggle_overlay(OverlayKind.CYCLES)
            case "r" | "R":
                self._reload()
            case "c" | "C":
                self._clear_filters()
            case "p":
                self._set_project(Step.NEXT)
            case "P":
                self._set_project(Step.PREV)
            case "ctrl+p":
                self._set_project(Step.CLEAR)
            case "t" | "T":
                self._move_team(1)
            case "s" | "S":
                self._move_state(1)
            case "1" | "2" | "3" | "4":
                self._set_status_tab(_STATUS_KEYS[key])
            case "ctrl+]":
                self._set_status_tab(Step.NEXT)
            case "ctrl+[":
                self._set_status_tab(Step.PREV)
            case "]":
                self._go_to_page(self.page + 1)
            case "[":
                self._go_to_page(self.page - 1)
            case ".":
                self._set_detail_tab(Step.NEXT)
            case ",":
                self._set_detail_tab(Step.PREV)
            case "tab":
                self.focus = self.focus.cycle()
                self._set_status(f"Focus: {self.focus.value}")
            case "down" | "j":
                self._move_focused(1)
            case "up" | "k":
                self._move_focused(-1)

    def _move_focused(self, delta: int) -> None:
        match self.focus:
            case Focus.ISSUES:
                self._move_selection(delta)
            case Focus.TEAMS:
                self._move_team(delta)
            case Focus.STATES:
                self._move_state(delta)

    # =========================================================================
    # Palette suggestions
    # =========================================================================

    def palette_suggestions(self) -> list[str]:
        """Completions for the palette input, based on loaded data."""
        text = self.overlays.palette.input.lstrip()
        if " " not in text:
            prefix = text.lower()
            return [verb for verb in PALETTE_VERBS if verb.startswith(prefix)][:MAX_SUGGESTIONS]

        verb, _, arg = text.partition(" ")
        verb = verb.lower()
        arg = arg.strip().lower()
        candidates: list[str]
        match verb:
            case "team":
                candidates = [team.key for team in self._teams or []]
            case "state":
                candidates = [state.name for state in self._states.get(self.filters.team_id or "", [])]
            case "project":
                names = [project.name for project in self._project_options.get(self.filters.team_id, [])]
                candidates = [*names, "next", "prev", "clear"]
            case "status":
                candidates = [tab.value for tab in StatusTab] + ["next", "prev"]
            case "contains":
                candidates = ["clear"]
            case "page":
                reachable = [str(n + 1) for n in range(self.page + 2) if self._page_reachable(n)]
                candidates = [*reachable, "next", "prev", "refresh"]
            case "view":
                candidates = [issue.identifier for issue in self._rows] + ["next", "prev", "first", "last"]
            case "detail":
                candidates = [tab.value for tab in DetailTab] + ["next", "prev"]
            case _:
                return []
        matches = [c for c in candidates if c.lower().startswith(arg)]
        return [f"{verb} {c}" for c in matches[:MAX_SUGGESTIONS]]

    # =========================================================================
    # View model
    # =========================================================================

    def current_view_model(self) -> ViewModel:
        """Snapshot of everything the renderer needs."""
        entry = self.cache.lookup(self.current_key)
        loading = entry is not None and entry.status is FetchStatus.PENDING
        has_next = entry is not None and entry.next_cursor is not None

        teams = SidebarList()
        if self._teams is not None:
            team_ids = [team.id for team in self._teams]
            teams = SidebarList(
                labels=("All", *(team.key for team in self._teams)),
                selected=team_ids.index(self.filters.team_id) + 1 if self.filters.team_id in team_ids else 0,
            )
        states = SidebarList()
        team_states = self._states.get(self.filters.team_id or "")
        if team_states is not None:
            state_ids = [state.id for state in team_states]
            states = SidebarList(
                labels=("All", *(state.name for state in team_states)),
                selected=state_ids.index(self.filters.state_id) + 1 if self.filters.state_id in state_ids else 0,
            )

        key = self._selected_id.upper() if self._selected_id else None
        detail = DetailPanel(
            tab=self.detail_tab,
            identifier=self._selected_id,
            loading=key in self._detail_pending if key else False,
            view=self._details.get(key) if key else None,
            error=self._detail_errors.get(key) if key else None,
        )

        overlay = None
        palette = None
        kind = self.overlays.kind
        if kind is OverlayKind.PALETTE:
            palette = PaletteView(
                input=self.overlays.palette.input,
                suggestions=tuple(self.palette_suggestions()),
                history=tuple(self.overlays.palette.history),
            )
        elif kind is not OverlayKind.NONE:
            state = self.overlays.list_state
            overlay = OverlayView(
                kind=kind,
                loading=state.loading if state else False,
                items=tuple(state.items) if state else (),
                error=state.error if state else None,
            )

        return ViewModel(
            mode=self.mode,
            focus=self.focus,
            status=self.status_text,
            filters_text=self.filters_text,
            status_tab=self.filters.status,
            issues=tuple(self._rows),
            selected_index=self.selected_index,
            page=self.page + 1,
            has_next_page=has_next,
            loading=loading,
            detail=detail,
            teams=teams,
            states=states,
            contains=self.filters.contains,
            overlay=overlay,
            palette=palette,
            auth_required=self.auth_required,
            generation=self.generation,
        )

"""Textual application for the Linear dashboard.

The app is a thin shell around AppController:
- key presses become KeyInput events
- a worker drains the dispatcher queue and posts FetchCompleted messages
- an interval timer sends Tick events for the spinner
- after every event the widgets are redrawn from the view model
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Static

from linear_tui.api.client import LinearClient
from linear_tui.core.controller import AppController, InputEvent, KeyInput, Tick
from linear_tui.core.dispatcher import AsyncFetchDispatcher
from linear_tui.core.view_model import Focus

# NOTE: Needed at RUNTIME for Textual's on_* message handler dispatch.
from linear_tui.ui.messages import FetchCompleted  # noqa: TC001
from linear_tui.ui.render import (
    render_detail,
    issue_scroll_target,
    render_header,
    render_issue_list,
    render_overlay,
    render_palette,
    render_sidebar,
    render_status_line,
)

if TYPE_CHECKING:
    from linear_tui.auth.session import SessionProvider
    from linear_tui.config import Config

logger = logging.getLogger(__name__)


class LinearTUI(App):
    """Textual TUI for browsing Linear issues."""

    TITLE = "Linear"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        layout: vertical;
    }

    #header {
        height: 3;
        border-bottom: solid $accent;
        padding: 0 1;
    }

    #body {
        height: 1fr;
    }

    #sidebar {
        width: 22;
        border-right: solid $primary-background-darken-2;
        padding: 0 1;
    }

    #teams, #states {
        height: auto;
        margin-bottom: 1;
    }

    #issues-container {
        width: 1fr;
        padding: 0 1;
    }

    #detail-container {
        width: 1fr;
        border-left: solid $primary-background-darken-2;
        padding: 0 1;
    }

    #overlay {
        dock: bottom;
        height: auto;
        max-height: 20;
        border: solid $accent;
        background: $surface;
        padding: 0 1;
    }

    #palette {
        dock: bottom;
        height: auto;
        border: solid $warning;
        background: $surface;
        padding: 0 1;
    }

    #status {
        height: 1;
        padding: 0 1;
    }
    """

    # Keys the screen would otherwise consume (focus traversal, escape)
    BINDINGS: ClassVar = [
        Binding("tab", "forward_key('tab')", show=False, priority=True),
        Binding("shift+tab", "forward_key('tab')", show=False, priority=True),
        Binding("escape", "forward_key('escape')", show=False, priority=True),
    ]

    def __init__(self, config: Config, sessions: SessionProvider, **kwargs) -> None:
        """Initialize the TUI.

        Args:
            config: Effective configuration
            sessions: Session provider; a session must be available at startup
        """
        super().__init__(**kwargs)
        self._config = config
        self._sessions = sessions
        self._client: LinearClient | None = None
        self._dispatcher: AsyncFetchDispatcher | None = None
        self._controller: AppController | None = None

    def _require_controller(self) -> AppController:
        """Return the controller, raising if the app has not mounted yet.

        Raises:
            RuntimeError: If called before on_mount
        """
        if self._controller is None:
            msg = "Controller not ready - the app has not mounted"
            raise RuntimeError(msg)
        return self._controller

    def compose(self) -> ComposeResult:
        """Compose the app layout."""
        yield Static(id="header")
        with Horizontal(id="body"):
            with Vertical(id="sidebar"):
                yield Static(id="teams")
                yield Static(id="states")
            with VerticalScroll(id="issues-container"):
                yield Static(id="issues")
            with VerticalScroll(id="detail-container"):
                yield Static(id="detail")
        yield Static(id="overlay")
        yield Static(id="palette")
        yield Static(id="status")

    async def on_mount(self) -> None:
        """Open the API client, start the controller and the background loops."""
        config = self._config
        self._client = LinearClient(
            self._sessions.current_session(),
            endpoint=config.endpoint,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )
        await self._client.__aenter__()
        self._dispatcher = AsyncFetchDispatcher(self._client, self._sessions, max_in_flight=config.max_in_flight)
        self._controller = AppController(
            self._dispatcher,
            page_size=config.page_size,
            project_overlay_limit=config.project_overlay_limit,
            cycle_overlay_limit=config.cycle_overlay_limit,
        )
        self._controller.start()
        self._drain_completions()
        self.set_interval(config.tick_interval, self._on_tick)
        self.refresh_view()
        logger.info("Dashboard started")

    async def on_unmount(self) -> None:
        """Stop outstanding fetches and close the HTTP client."""
        logger.debug("TUI unmounting, running cleanup")
        if self._dispatcher is not None:
            await self._dispatcher.aclose()
        if self._client is not None:
            await self._client.__aexit__(None, None, None)
            self._client = None

    @work(exclusive=True, group="fetch-drain")
    async def _drain_completions(self) -> None:
        """Forward every dispatcher completion to the message queue."""
        dispatcher = self._dispatcher
        if dispatcher is None:
            return
        while True:
            completion = await dispatcher.next_completion()
            self.post_message(FetchCompleted(completion))

    # =========================================================================
    # Input
    # =========================================================================

    def _dispatch(self, event: InputEvent) -> None:
        controller = self._require_controller()
        controller.handle_input(event)
        if controller.quit_requested:
            logger.info("Quit requested")
            self.exit()
            return
        self.refresh_view()

    def _on_tick(self) -> None:
        if self._controller is not None:
            self._dispatch(Tick())

    def on_key(self, event: events.Key) -> None:
        """Forward key presses to the controller."""
        if self._controller is None:
            return
        event.stop()
        self._dispatch(KeyInput(event.key, event.character))

    def action_forward_key(self, key: str) -> None:
        if self._controller is not None:
            self._dispatch(KeyInput(key))

    def on_fetch_completed(self, message: FetchCompleted) -> None:
        """Apply a finished fetch and redraw."""
        self._require_controller().handle_fetch_completion(message.completion)
        self.refresh_view()

    # =========================================================================
    # Drawing
    # =========================================================================

    def refresh_view(self) -> None:
        """Redraw every widget from the current view model."""
        vm = self._require_controller().current_view_model()
        self.query_one("#header", Static).update(render_header(vm))
        self.query_one("#teams", Static).update(render_sidebar("Teams", vm.teams, vm.focus is Focus.TEAMS))
        self.query_one("#states", Static).update(render_sidebar("States", vm.states, vm.focus is Focus.STATES))
        self.query_one("#issues", Static).update(render_issue_list(vm))
        self._scroll_to_selection(vm.selected_index)
        self.query_one("#detail", Static).update(render_detail(vm.detail))
        self.query_one("#status", Static).update(render_status_line(vm))

        overlay = self.query_one("#overlay", Static)
        overlay.display = vm.overlay is not None
        if vm.overlay is not None:
            overlay.update(render_overlay(vm.overlay))

        palette = self.query_one("#palette", Static)
        palette.display = vm.palette is not None
        if vm.palette is not None:
            palette.update(render_palette(vm.palette))

    def _scroll_to_selection(self, selected_index: int | None) -> None:
        """Keep the selected issue row inside the visible part of the list."""
        container = self.query_one("#issues-container", VerticalScroll)
        target = issue_scroll_target(
            selected_index, round(container.scroll_y), container.scrollable_content_region.height
        )
        if target is not None:
            # scroll_to clamps to the laid-out height, which lags the update
            self.call_after_refresh(container.scroll_to, y=target, animate=False)

"""Read-only snapshot handed to the render layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from linear_tui.core.detail import DetailTab, DetailView
    from linear_tui.core.filters import StatusTab
    from linear_tui.core.models import IssueSummary
    from linear_tui.core.overlay import OverlayKind


class Mode(str, Enum):
    """Top-level state of the controller."""

    BROWSING = "browsing"
    OVERLAY_ACTIVE = "overlay_active"
    PALETTE_ACTIVE = "palette_active"


class Focus(str, Enum):
    """Which list the up/down keys move through."""

    ISSUES = "issues"
    TEAMS = "teams"
    STATES = "states"

    def cycle(self) -> Focus:
        order = [Focus.ISSUES, Focus.TEAMS, Focus.STATES]
        return order[(order.index(self) + 1) % len(order)]


@dataclass(frozen=True)
class SidebarList:
    """Team or state list; index 0 is the implicit "All" entry."""

    labels: tuple[str, ...] = ()
    selected: int = 0


@dataclass(frozen=True)
class DetailPanel:
    tab: DetailTab
    identifier: str | None = None
    loading: bool = False
    view: DetailView | None = None
    error: str | None = None


@dataclass(frozen=True)
class OverlayView:
    kind: OverlayKind
    loading: bool = False
    items: tuple[Any, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class PaletteView:
    input: str
    suggestions: tuple[str, ...] = ()
    history: tuple[str, ...] = ()


@dataclass(frozen=True)
class ViewModel:
    """Everything needed to draw one frame."""

    mode: Mode
    focus: Focus
    status: str
    filters_text: str
    status_tab: StatusTab
    issues: tuple[IssueSummary, ...]
    selected_index: int | None
    page: int  # 1-based
    has_next_page: bool
    loading: bool
    detail: DetailPanel
    teams: SidebarList = field(default_factory=SidebarList)
    states: SidebarList = field(default_factory=SidebarList)
    contains: str | None = None
    overlay: OverlayView | None = None
    palette: PaletteView | None = None
    auth_required: bool = False
    generation: int = 0

    @property
    def selected_issue(self) -> IssueSummary | None:
        if self.selected_index is None:
            return None
        return self.issues[self.selected_index]

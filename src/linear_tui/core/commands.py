"""Palette command language.

``parse`` turns one line of palette input into a Command value. It never
raises: anything it cannot make sense of becomes ``Unknown`` (unrecognised
verb) or ``Usage`` (known verb, bad argument).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from linear_tui.core.detail import DetailTab
from linear_tui.core.filters import StatusTab


class Step(str, Enum):
    """Relative targets shared by several commands."""

    NEXT = "next"
    PREV = "prev"
    FIRST = "first"
    LAST = "last"
    CLEAR = "clear"
    REFRESH = "refresh"


@dataclass(frozen=True)
class SetTeam:
    key: str


@dataclass(frozen=True)
class SetState:
    name: str


@dataclass(frozen=True)
class SetProject:
    target: str | Step  # project name, or NEXT / PREV / CLEAR


@dataclass(frozen=True)
class SetStatus:
    target: StatusTab | Step  # tab, or NEXT / PREV


@dataclass(frozen=True)
class SetContains:
    text: str | None  # None clears the title filter


@dataclass(frozen=True)
class ClearFilters:
    pass


@dataclass(frozen=True)
class Reload:
    pass


@dataclass(frozen=True)
class GoToPage:
    target: int | Step  # 1-based page number, or NEXT / PREV / REFRESH


@dataclass(frozen=True)
class ViewIssue:
    target: str | int | Step  # issue key, 1-based row, or NEXT / PREV / FIRST / LAST


@dataclass(frozen=True)
class SetDetailTab:
    target: DetailTab | Step  # tab, or NEXT / PREV


@dataclass(frozen=True)
class ToggleHelp:
    pass


@dataclass(frozen=True)
class Usage:
    """A known command with a missing or invalid argument."""

    message: str


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Unknown:
    text: str


Command = (
    SetTeam
    | SetState
    | SetProject
    | SetStatus
    | SetContains
    | ClearFilters
    | Reload
    | GoToPage
    | ViewIssue
    | SetDetailTab
    | ToggleHelp
    | Usage
    | Empty
    | Unknown
)

PROJECT_USAGE = "Usage: project <name|next|prev|clear>"
STATUS_USAGE = "Usage: status <todo|doing|done|all|next|prev>"
PAGE_USAGE = "Usage: page <number|next|prev|refresh>"
VIEW_USAGE = "Usage: view <issue-key|number|next|prev|first|last>"
DETAIL_USAGE = "Usage: detail <summary|description|activity|sub-issues|next|prev>"

_STEP_ALIASES = {"next": Step.NEXT, "prev": Step.PREV, "previous": Step.PREV}

_STATUS_ALIASES = {
    "todo": StatusTab.TODO,
    "doing": StatusTab.DOING,
    "inprogress": StatusTab.DOING,
    "done": StatusTab.DONE,
    "completed": StatusTab.DONE,
    "all": StatusTab.ALL,
}

_DETAIL_ALIASES = {
    "summary": DetailTab.SUMMARY,
    "description": DetailTab.DESCRIPTION,
    "activity": DetailTab.ACTIVITY,
    "sub-issues": DetailTab.SUB_ISSUES,
    "subissues": DetailTab.SUB_ISSUES,
    "children": DetailTab.SUB_ISSUES,
}


def _parse_project(arg: str) -> Command:
    lowered = arg.lower()
    if not arg:
        return Usage(PROJECT_USAGE)
    if lowered in _STEP_ALIASES:
        return SetProject(_STEP_ALIASES[lowered])
    if lowered == "clear":
        return SetProject(Step.CLEAR)
    return SetProject(arg)


def _parse_status(arg: str) -> Command:
    lowered = arg.lower()
    if lowered in _STEP_ALIASES:
        return SetStatus(_STEP_ALIASES[lowered])
    if lowered in _STATUS_ALIASES:
        return SetStatus(_STATUS_ALIASES[lowered])
    return Usage(STATUS_USAGE)


def _parse_page(arg: str) -> Command:
    lowered = arg.lower()
    if lowered in _STEP_ALIASES:
        return GoToPage(_STEP_ALIASES[lowered])
    if lowered == "refresh":
        return GoToPage(Step.REFRESH)
    if lowered.isdigit():
        number = int(lowered)
        return GoToPage(number) if number >= 1 else Usage("Pages start at 1")
    return Usage(PAGE_USAGE)


def _parse_view(arg: str) -> Command:
    lowered = arg.lower()
    if not arg:
        return Usage(VIEW_USAGE)
    if lowered in _STEP_ALIASES:
        return ViewIssue(_STEP_ALIASES[lowered])
    if lowered == "first":
        return ViewIssue(Step.FIRST)
    if lowered == "last":
        return ViewIssue(Step.LAST)
    if lowered.isdigit():
        number = int(lowered)
        return ViewIssue(number) if number >= 1 else Usage(VIEW_USAGE)
    return ViewIssue(arg.upper())


def _parse_detail(arg: str) -> Command:
    lowered = arg.lower()
    if lowered in _STEP_ALIASES:
        return SetDetailTab(_STEP_ALIASES[lowered])
    if lowered in _DETAIL_ALIASES:
        return SetDetailTab(_DETAIL_ALIASES[lowered])
    return Usage(DETAIL_USAGE)


def _parse_contains(arg: str) -> Command:
    if not arg:
        return Usage("Usage: contains <text|clear>")
    if arg.lower() == "clear":
        return SetContains(None)
    return SetContains(arg)


def parse(text: str) -> Command:
    """Parse one line of palette input.

    The first whitespace-separated token selects the command (case
    insensitive); the remainder, trimmed, is its argument.
    """
    stripped = text.strip()
    if not stripped:
        return Empty()
    parts = stripped.split(maxsplit=1)
    verb = parts[0].lower()
    arg = parts[1].strip() if len(parts) > 1 else ""

    match verb:
        case "team":
            return SetTeam(arg) if arg else Usage("Usage: team <key>")
        case "state":
            return SetState(arg) if arg else Usage("Usage: state <name>")
        case "project":
            return _parse_project(arg)
        case "status":
            return _parse_status(arg)
        case "contains":
            return _parse_contains(arg)
        case "page":
            return _parse_page(arg)
        case "view":
            return _parse_view(arg)
        case "detail":
            return _parse_detail(arg)
        case "activity" | "sub-issues" | "subissues" if not arg:
            return SetDetailTab(_DETAIL_ALIASES[verb])
        case "clear" if not arg:
            return ClearFilters()
        case "reload" if not arg:
            return Reload()
        case "help" | "?" if not arg:
            return ToggleHelp()
    return Unknown(stripped)

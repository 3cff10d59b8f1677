"""Tests for the palette command parser."""

from __future__ import annotations

import pytest

from linear_tui.core.commands import (
    DETAIL_USAGE,
    PAGE_USAGE,
    PROJECT_USAGE,
    STATUS_USAGE,
    VIEW_USAGE,
    ClearFilters,
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
    parse,
)
from linear_tui.core.detail import DetailTab
from linear_tui.core.filters import StatusTab


class TestParseCommands:
    """Test the recognised command grammar."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("team ENG", SetTeam("ENG")),
            ("TEAM eng", SetTeam("eng")),
            ("state In Progress", SetState("In Progress")),
            ("project Mobile App", SetProject("Mobile App")),
            ("project next", SetProject(Step.NEXT)),
            ("project previous", SetProject(Step.PREV)),
            ("project clear", SetProject(Step.CLEAR)),
            ("status todo", SetStatus(StatusTab.TODO)),
            ("status inprogress", SetStatus(StatusTab.DOING)),
            ("status completed", SetStatus(StatusTab.DONE)),
            ("status all", SetStatus(StatusTab.ALL)),
            ("status next", SetStatus(Step.NEXT)),
            ("contains login bug", SetContains("login bug")),
            ("contains clear", SetContains(None)),
            ("page 3", GoToPage(3)),
            ("page next", GoToPage(Step.NEXT)),
            ("page prev", GoToPage(Step.PREV)),
            ("page refresh", GoToPage(Step.REFRESH)),
            ("view eng-12", ViewIssue("ENG-12")),
            ("view 2", ViewIssue(2)),
            ("view first", ViewIssue(Step.FIRST)),
            ("view last", ViewIssue(Step.LAST)),
            ("detail activity", SetDetailTab(DetailTab.ACTIVITY)),
            ("detail subissues", SetDetailTab(DetailTab.SUB_ISSUES)),
            ("detail next", SetDetailTab(Step.NEXT)),
            ("activity", SetDetailTab(DetailTab.ACTIVITY)),
            ("sub-issues", SetDetailTab(DetailTab.SUB_ISSUES)),
            ("clear", ClearFilters()),
            ("reload", Reload()),
            ("help", ToggleHelp()),
            ("?", ToggleHelp()),
        ],
    )
    def test_parse(self, text: str, expected: object) -> None:
        """Each command form maps onto its variant."""
        assert parse(text) == expected

    def test_whitespace_tokenization(self) -> None:
        """Extra whitespace between and around tokens is ignored."""
        assert parse("   team\t  ENG   ") == SetTeam("ENG")
        assert parse("page    2") == GoToPage(2)


class TestParseErrors:
    """Test that parsing never raises."""

    @pytest.mark.parametrize("text", ["", "   ", "\t"])
    def test_empty(self, text: str) -> None:
        """Blank input is Empty."""
        assert parse(text) == Empty()

    def test_unknown_verb(self) -> None:
        """An unrecognised first token keeps the trimmed text."""
        assert parse("  frobnicate now ") == Unknown("frobnicate now")

    def test_known_verb_with_trailing_junk_is_unknown(self) -> None:
        """Argument-less commands reject arguments."""
        assert parse("reload everything") == Unknown("reload everything")
        assert parse("clear all") == Unknown("clear all")

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("project", PROJECT_USAGE),
            ("status", STATUS_USAGE),
            ("status sideways", STATUS_USAGE),
            ("page", PAGE_USAGE),
            ("page two", PAGE_USAGE),
            ("view", VIEW_USAGE),
            ("view 0", VIEW_USAGE),
            ("detail", DETAIL_USAGE),
            ("detail comments", DETAIL_USAGE),
        ],
    )
    def test_usage(self, text: str, message: str) -> None:
        """Bad arguments produce a usage message instead of an exception."""
        assert parse(text) == Usage(message)

    def test_page_zero(self) -> None:
        """Pages are 1-based."""
        assert parse("page 0") == Usage("Pages start at 1")

    def test_missing_team_and_state(self) -> None:
        """team and state need an argument."""
        assert isinstance(parse("team"), Usage)
        assert isinstance(parse("state"), Usage)
        assert isinstance(parse("contains"), Usage)

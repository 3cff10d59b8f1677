"""Tests for Textual message types."""

from __future__ import annotations

from linear_tui.core.dispatcher import FetchCompletion, Ok, TeamsRequest
from linear_tui.ui.messages import FetchCompleted


class TestFetchCompleted:
    """Test the message carrying dispatcher completions."""

    def test_carries_completion(self) -> None:
        """The completion is passed through untouched."""
        completion = FetchCompletion(3, TeamsRequest(), Ok([]))
        message = FetchCompleted(completion)
        assert message.completion is completion

    def test_handler_name(self) -> None:
        """Textual routes the message to on_fetch_completed."""
        assert FetchCompleted.handler_name == "on_fetch_completed"

"""Message types posted to the Textual app.

Dispatcher -> TUI:
- FetchCompleted: a background fetch finished (successfully or not)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from textual.message import Message

if TYPE_CHECKING:
    from linear_tui.core.dispatcher import FetchCompletion


class FetchCompleted(Message):
    """A fetch completion drained from the dispatcher queue."""

    def __init__(self, completion: FetchCompletion) -> None:
        """Initialize the message.

        Args:
            completion: The immutable completion to hand to the controller
        """
        self.completion = completion
        super().__init__()

"""Overlay panels shown on top of the browsing view.

At most one overlay is open. The projects and cycles overlays load their
own data; each open gets a fresh overlay generation so a result that
arrives after the overlay was closed or replaced is ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class OverlayKind(str, Enum):
    NONE = "none"
    PROJECTS = "projects"
    CYCLES = "cycles"
    HELP = "help"
    PALETTE = "palette"

    @property
    def fetches(self) -> bool:
        """Whether opening this overlay loads data."""
        return self in (OverlayKind.PROJECTS, OverlayKind.CYCLES)


@dataclass
class ListOverlayState:
    """Transient fetch state of the projects/cycles overlay."""

    loading: bool = True
    items: list[Any] = field(default_factory=list)
    error: str | None = None


@dataclass
class PaletteState:
    """Command palette input buffer and history cursor.

    ``history_index`` is None when the cursor sits past the newest entry,
    i.e. the user is editing fresh input.
    """

    input: str = ""
    history: list[str] = field(default_factory=list)
    history_index: int | None = None

    def record(self, command: str) -> None:
        """Append to history, skipping blanks and consecutive duplicates."""
        command = command.strip()
        if command and (not self.history or self.history[-1] != command):
            self.history.append(command)
        self.history_index = None

    def recall(self, delta: int) -> None:
        """Move through history; moving past the newest entry clears the input."""
        if not self.history:
            return
        size = len(self.history)
        current = size if self.history_index is None else self.history_index
        target = max(0, min(size, current + delta))
        if target == size:
            self.history_index = None
            self.input = ""
        else:
            self.history_index = target
            self.input = self.history[target]


class OverlayManager:
    """Owns the single active overlay."""

    def __init__(self) -> None:
        self._kind = OverlayKind.NONE
        self._generation = 0
        self.list_state: ListOverlayState | None = None
        self.palette = PaletteState()

    @property
    def kind(self) -> OverlayKind:
        return self._kind

    @property
    def generation(self) -> int:
        return self._generation

    def is_open(self) -> bool:
        return self._kind is not OverlayKind.NONE

    def open(self, kind: OverlayKind, initial_input: str = "") -> int:
        """Open ``kind``, replacing whatever was open.

        Returns:
            The overlay generation to tag this overlay's fetch with.
        """
        if kind is OverlayKind.NONE:
            self.close()
            return self._generation
        self._generation += 1
        self._kind = kind
        self.list_state = ListOverlayState() if kind.fetches else None
        if kind is OverlayKind.PALETTE:
            self.palette.input = initial_input
            self.palette.history_index = None
        logger.debug(f"Overlay {kind.value} opened (generation {self._generation})")
        return self._generation

    def close(self) -> None:
        if self._kind is OverlayKind.NONE:
            return
        logger.debug(f"Overlay {self._kind.value} closed")
        self._kind = OverlayKind.NONE
        self._generation += 1
        self.list_state = None
        self.palette.input = ""
        self.palette.history_index = None

    def accepts(self, kind: OverlayKind, generation: int) -> bool:
        """Whether a fetch result tagged ``generation`` still belongs to the open overlay."""
        return self._kind is kind and self._generation == generation and self.list_state is not None

    def apply_items(self, kind: OverlayKind, generation: int, items: list[Any]) -> bool:
        if not self.accepts(kind, generation):
            logger.debug(f"Dropping stale {kind.value} overlay result (generation {generation})")
            return False
        self.list_state = ListOverlayState(loading=False, items=list(items))
        return True

    def apply_error(self, kind: OverlayKind, generation: int, reason: str) -> bool:
        if not self.accepts(kind, generation):
            logger.debug(f"Dropping stale {kind.value} overlay error (generation {generation})")
            return False
        self.list_state = ListOverlayState(loading=False, error=reason)
        return True

"""Filter state for the issue list and its cache fingerprint."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, replace
from enum import Enum


class StatusTab(str, Enum):
    """Coarse status bucket shown as tabs above the issue list."""

    ALL = "all"
    TODO = "todo"
    DOING = "doing"
    DONE = "done"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def cycle(self, delta: int) -> StatusTab:
        """Return the tab ``delta`` steps away, wrapping around."""
        tabs = list(StatusTab)
        return tabs[(tabs.index(self) + delta) % len(tabs)]


# Workflow state types (Linear's ``WorkflowState.type``) covered by each tab
STATUS_STATE_TYPES: dict[StatusTab, tuple[str, ...]] = {
    StatusTab.TODO: ("backlog", "unstarted"),
    StatusTab.DOING: ("started", "inprogress"),
    StatusTab.DONE: ("completed", "done"),
}


def infer_status_tab(state_type: str | None) -> StatusTab:
    """Map a workflow state type to the tab that contains it."""
    if state_type:
        lowered = state_type.lower()
        for tab, types in STATUS_STATE_TYPES.items():
            if lowered in types:
                return tab
    return StatusTab.ALL


@dataclass(frozen=True)
class FilterState:
    """Active constraints on the issue list.

    A blank ``contains`` is stored as ``None`` so that "no text filter" has a
    single representation.
    """

    team_id: str | None = None
    project_id: str | None = None
    state_id: str | None = None
    status: StatusTab = StatusTab.ALL
    contains: str | None = None

    def __post_init__(self) -> None:
        if self.contains is not None:
            cleaned = self.contains.strip()
            object.__setattr__(self, "contains", cleaned or None)

    @property
    def fingerprint(self) -> str:
        """Deterministic cache key covering every field.

        Keys are sorted before hashing so the encoding does not depend on
        field declaration order.
        """
        payload = {
            "contains": self.contains,
            "project": self.project_id,
            "state": self.state_id,
            "status": self.status.value,
            "team": self.team_id,
        }
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:24]

    def with_team(self, team_id: str | None) -> FilterState:
        """Switch team; project, state and status tab belong to a team and reset."""
        return replace(self, team_id=team_id, project_id=None, state_id=None, status=StatusTab.ALL)

    def with_project(self, project_id: str | None) -> FilterState:
        return replace(self, project_id=project_id)

    def with_state(self, state_id: str | None, state_type: str | None = None) -> FilterState:
        return replace(self, state_id=state_id, status=infer_status_tab(state_type) if state_id else StatusTab.ALL)

    def with_status(self, status: StatusTab) -> FilterState:
        return replace(self, status=status, state_id=None)

    def with_contains(self, contains: str | None) -> FilterState:
        return replace(self, contains=contains)

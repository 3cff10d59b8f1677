"""Typed records returned by the Linear API.

Field names are snake_case; the GraphQL payload uses camelCase and is
mapped through the alias generator, so ``IssueSummary.model_validate(node)``
accepts a raw node straight from the response.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiRecord(BaseModel):
    """Base for all API records (immutable, camelCase aliases)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# =============================================================================
# Shared
# =============================================================================


class UserSummary(ApiRecord):
    """A Linear user as embedded in issues, comments and history."""

    id: str
    name: str | None = None
    display_name: str | None = None

    @property
    def label(self) -> str:
        """Preferred human-readable name."""
        return self.display_name or self.name or "Unknown"


class TeamSummary(ApiRecord):
    """A team (``key`` is the short prefix used in issue identifiers)."""

    id: str
    name: str
    key: str


class WorkflowState(ApiRecord):
    """A workflow state; ``type`` is Linear's category (backlog, started...)."""

    id: str
    name: str
    type: str | None = None


class IssueLabel(ApiRecord):
    """A label attached to an issue."""

    id: str
    name: str
    color: str | None = None


# =============================================================================
# Issues
# =============================================================================


class IssueSummary(ApiRecord):
    """One row of the issue list."""

    id: str
    identifier: str
    title: str
    url: str | None = None
    priority: int | None = None
    state: WorkflowState | None = None
    assignee: UserSummary | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class IssuePage(ApiRecord):
    """One page of a listing plus its pagination cursor."""

    issues: list[IssueSummary] = Field(default_factory=list)
    end_cursor: str | None = None
    has_next_page: bool = False


class Comment(ApiRecord):
    """A comment posted on an issue."""

    id: str
    body: str = ""
    created_at: datetime
    user: UserSummary | None = None


class HistoryEvent(ApiRecord):
    """A raw issue history entry; any subset of the from/to pairs may be set."""

    id: str
    created_at: datetime
    actors: list[UserSummary] = Field(default_factory=list)
    from_state: WorkflowState | None = None
    to_state: WorkflowState | None = None
    from_assignee: UserSummary | None = None
    to_assignee: UserSummary | None = None
    from_priority: float | None = None
    to_priority: float | None = None
    from_due_date: str | None = None
    to_due_date: str | None = None
    from_title: str | None = None
    to_title: str | None = None
    updated_description: bool = False


class SubIssueRecord(ApiRecord):
    """A node of the sub-issue arena, referencing children by identifier."""

    identifier: str
    title: str
    state: WorkflowState | None = None
    assignee: UserSummary | None = None
    priority: int | None = None
    team: TeamSummary | None = None
    child_ids: list[str] = Field(default_factory=list)


class IssueDetail(ApiRecord):
    """Full issue payload returned by the detail service in one round trip.

    ``child_ids`` are the immediate children; ``sub_issues`` is an arena keyed
    by identifier holding every descendant the API returned.
    """

    id: str
    identifier: str
    title: str
    description: str | None = None
    url: str | None = None
    priority: int | None = None
    state: WorkflowState | None = None
    assignee: UserSummary | None = None
    labels: list[IssueLabel] = Field(default_factory=list)
    team: TeamSummary | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    comments: list[Comment] = Field(default_factory=list)
    history: list[HistoryEvent] = Field(default_factory=list)
    child_ids: list[str] = Field(default_factory=list)
    sub_issues: dict[str, SubIssueRecord] = Field(default_factory=dict)


# =============================================================================
# Projects & Cycles
# =============================================================================


class ProjectSummary(ApiRecord):
    """A project, used both as filter option and in the projects overlay."""

    id: str
    name: str
    state: str | None = None
    start_date: str | None = None
    target_date: str | None = None
    updated_at: datetime | None = None
    lead: UserSummary | None = None


class CycleSummary(ApiRecord):
    """A cycle shown in the cycles overlay."""

    id: str
    number: int
    name: str | None = None
    starts_at: str | None = None
    ends_at: str | None = None
    team: TeamSummary | None = None

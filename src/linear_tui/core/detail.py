"""Detail view building: activity timeline and sub-issue tree.

Pure functions of an IssueDetail. The timeline merges comments and history
into one list sorted newest first and groups it by local calendar day; the
tree expands child identifiers through the sub-issue arena.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date, datetime, tzinfo

    from linear_tui.core.models import Comment, HistoryEvent, IssueDetail, SubIssueRecord, UserSummary


class DetailTab(str, Enum):
    """Tabs of the detail panel."""

    SUMMARY = "summary"
    DESCRIPTION = "description"
    ACTIVITY = "activity"
    SUB_ISSUES = "sub-issues"

    @property
    def label(self) -> str:
        return "Sub-issues" if self is DetailTab.SUB_ISSUES else self.value.capitalize()

    def cycle(self, delta: int) -> DetailTab:
        tabs = list(DetailTab)
        return tabs[(tabs.index(self) + delta) % len(tabs)]


# =============================================================================
# Activity
# =============================================================================


@dataclass(frozen=True)
class CommentPosted:
    author: str
    body: str
    at: datetime


@dataclass(frozen=True)
class FieldChanged:
    """One field transition; a history event touching several fields yields several."""

    field: str
    from_value: str | None
    to_value: str | None
    at: datetime
    actor: str = "System"


ActivityItem = CommentPosted | FieldChanged


@dataclass(frozen=True)
class ActivityDay:
    day: date
    items: list[ActivityItem]


def _user_label(user: UserSummary | None) -> str:
    return user.label if user else "Unknown"


def _normalize(value: str | None) -> str | None:
    return value.strip().lower() if value is not None else None


def _priority(value: float | None) -> str | None:
    return None if value is None else str(int(value))


def _history_changes(event: HistoryEvent) -> list[FieldChanged]:
    actor = ", ".join(_user_label(user) for user in event.actors) or "System"
    pairs = [
        ("state", event.from_state.name if event.from_state else None, event.to_state.name if event.to_state else None),
        (
            "assignee",
            event.from_assignee.label if event.from_assignee else None,
            event.to_assignee.label if event.to_assignee else None,
        ),
        ("priority", _priority(event.from_priority), _priority(event.to_priority)),
        ("due", event.from_due_date, event.to_due_date),
        ("title", event.from_title, event.to_title),
    ]
    changes = [
        FieldChanged(name, old, new, event.created_at, actor)
        for name, old, new in pairs
        if _normalize(old) != _normalize(new)
    ]
    if event.updated_description:
        changes.append(FieldChanged("description", None, None, event.created_at, actor))
    return changes


def merge_activity(comments: list[Comment], history: list[HistoryEvent]) -> list[ActivityItem]:
    """Merge comments and history into one list, newest first.

    The sort is stable, and comments are placed ahead of history events in the
    input, so at equal timestamps comments come first and each stream keeps
    its own order.
    """
    items: list[ActivityItem] = [
        CommentPosted(author=_user_label(comment.user), body=comment.body.strip(), at=comment.created_at)
        for comment in comments
    ]
    for event in history:
        items.extend(_history_changes(event))
    return sorted(items, key=lambda item: item.at, reverse=True)


def group_by_day(items: list[ActivityItem], tz: tzinfo | None = None) -> list[ActivityDay]:
    """Group consecutive items by calendar day in ``tz`` (local time if None)."""
    groups: list[ActivityDay] = []
    for item in items:
        day = item.at.astimezone(tz).date()
        if groups and groups[-1].day == day:
            groups[-1].items.append(item)
        else:
            groups.append(ActivityDay(day=day, items=[item]))
    return groups


# =============================================================================
# Sub-issue tree
# =============================================================================


@dataclass(frozen=True)
class SubIssueNode:
    """A node of the sub-issue tree.

    ``truncated`` marks an identifier that was already on the path from the
    root; it is shown as a leaf instead of being expanded again.
    """

    identifier: str
    title: str
    state: str | None = None
    assignee: str | None = None
    priority: int | None = None
    team: str | None = None
    children: list[SubIssueNode] = field(default_factory=list)
    truncated: bool = False

    def walk(self):
        """Yield every node depth-first, root included."""
        yield self
        for child in self.children:
            yield from child.walk()


def _node_from_record(
    record: SubIssueRecord, children: list[SubIssueNode] | None = None, truncated: bool = False
) -> SubIssueNode:
    return SubIssueNode(
        identifier=record.identifier,
        title=record.title,
        state=record.state.name if record.state else None,
        assignee=record.assignee.label if record.assignee else None,
        priority=record.priority,
        team=record.team.key if record.team else None,
        children=children or [],
        truncated=truncated,
    )


def _expand(child_ids: list[str], arena: dict[str, SubIssueRecord], path: set[str]) -> list[SubIssueNode]:
    nodes = []
    for identifier in child_ids:
        record = arena.get(identifier)
        key = identifier.upper()
        if key in path:
            if record is None:
                nodes.append(SubIssueNode(identifier=identifier, title="", truncated=True))
            else:
                nodes.append(_node_from_record(record, truncated=True))
        elif record is None:
            nodes.append(SubIssueNode(identifier=identifier, title=""))
        else:
            path.add(key)
            children = _expand(record.child_ids, arena, path)
            path.discard(key)
            nodes.append(_node_from_record(record, children))
    return nodes


def build_sub_issue_tree(detail: IssueDetail) -> SubIssueNode:
    """Build the tree rooted at the issue itself."""
    children = _expand(detail.child_ids, detail.sub_issues, {detail.identifier.upper()})
    return SubIssueNode(
        identifier=detail.identifier,
        title=detail.title,
        state=detail.state.name if detail.state else None,
        assignee=detail.assignee.label if detail.assignee else None,
        priority=detail.priority,
        team=detail.team.key if detail.team else None,
        children=children,
    )


# =============================================================================
# Builder
# =============================================================================


@dataclass(frozen=True)
class DetailView:
    """Everything the detail panel renders for one issue."""

    issue: IssueDetail
    activity: list[ActivityDay]
    tree: SubIssueNode

    @property
    def identifier(self) -> str:
        return self.issue.identifier


def build_detail_view(detail: IssueDetail, tz: tzinfo | None = None) -> DetailView:
    """Build the activity timeline and sub-issue tree for ``detail``."""
    activity = group_by_day(merge_activity(detail.comments, detail.history), tz)
    return DetailView(issue=detail, activity=activity, tree=build_sub_issue_tree(detail))

"""GraphQL documents and filter construction for the Linear API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from linear_tui.core.filters import STATUS_STATE_TYPES

if TYPE_CHECKING:
    from linear_tui.core.filters import FilterState

MAX_PAGE_SIZE = 200

# Sub-issue nesting requested in one round trip (root children + 2 levels)
SUB_ISSUE_FIELDS = """
    identifier
    title
    priority
    state { id name type }
    assignee { id name displayName }
    team { id name key }
"""

TEAMS_QUERY = """
query TeamsQuery {
    teams {
        nodes { id name key }
    }
}
"""

WORKFLOW_STATES_QUERY = """
query WorkflowStates($teamId: String!) {
    team(id: $teamId) {
        states {
            nodes { id name type }
        }
    }
}
"""

LIST_ISSUES_QUERY = """
query ListIssues($first: Int!, $filter: IssueFilter, $after: String) {
    issues(first: $first, filter: $filter, orderBy: updatedAt, after: $after) {
        nodes {
            id
            identifier
            title
            url
            priority
            createdAt
            updatedAt
            state { id name type }
            assignee { id name displayName }
        }
        pageInfo {
            hasNextPage
            endCursor
        }
    }
}
"""

ISSUE_DETAIL_QUERY = f"""
query IssueDetail($id: String!) {{
    issue(id: $id) {{
        id
        identifier
        title
        description
        url
        priority
        createdAt
        updatedAt
        state {{ id name type }}
        assignee {{ id name displayName }}
        labels(first: 20) {{ nodes {{ id name color }} }}
        team {{ id name key }}
        comments(first: 50) {{
            nodes {{
                id
                body
                createdAt
                user {{ id name displayName }}
            }}
        }}
        history(first: 50) {{
            nodes {{
                id
                createdAt
                actors {{ id name displayName }}
                fromState {{ id name type }}
                toState {{ id name type }}
                fromAssignee {{ id name displayName }}
                toAssignee {{ id name displayName }}
                fromPriority
                toPriority
                fromDueDate
                toDueDate
                fromTitle
                toTitle
                updatedDescription
            }}
        }}
        children(first: 50) {{
            nodes {{
                {SUB_ISSUE_FIELDS}
                children(first: 50) {{
                    nodes {{
                        {SUB_ISSUE_FIELDS}
                        children(first: 50) {{
                            nodes {{ {SUB_ISSUE_FIELDS} }}
                        }}
                    }}
                }}
            }}
        }}
    }}
}}
"""

LIST_PROJECTS_QUERY = """
query ListProjects($first: Int!, $filter: ProjectFilter, $orderBy: PaginationOrderBy) {
    projects(first: $first, filter: $filter, orderBy: $orderBy) {
        nodes {
            id
            name
            state
            startDate
            targetDate
            updatedAt
            lead { id name displayName }
        }
    }
}
"""

LIST_CYCLES_QUERY = """
query ListCycles($first: Int!, $filter: CycleFilter) {
    cycles(first: $first, filter: $filter, orderBy: createdAt) {
        nodes {
            id
            name
            number
            startsAt
            endsAt
            team { id name key }
        }
    }
}
"""


def clamp_page_size(limit: int) -> int:
    """Zero means "default" (20); anything above the API maximum is capped."""
    if limit <= 0:
        return 20
    return min(limit, MAX_PAGE_SIZE)


def build_issue_filter(filters: FilterState) -> dict[str, Any] | None:
    """Translate a FilterState into Linear's ``IssueFilter`` input.

    Returns:
        The filter object, or None when nothing is constrained.
    """
    issue_filter: dict[str, Any] = {}
    if filters.team_id:
        issue_filter["team"] = {"id": {"eq": filters.team_id}}
    if filters.project_id:
        issue_filter["project"] = {"id": {"eq": filters.project_id}}
    if filters.state_id:
        issue_filter["state"] = {"id": {"eq": filters.state_id}}
    elif filters.status in STATUS_STATE_TYPES:
        issue_filter["state"] = {"type": {"in": list(STATUS_STATE_TYPES[filters.status])}}
    if filters.contains:
        issue_filter["title"] = {"containsIgnoreCase": filters.contains}
    return issue_filter or None


def build_project_filter(team_id: str | None) -> dict[str, Any] | None:
    """Restrict projects to those accessible by one team."""
    if not team_id:
        return None
    return {"accessibleTeams": {"some": {"id": {"eq": team_id}}}}


def build_cycle_filter(team_id: str | None) -> dict[str, Any] | None:
    """Restrict cycles to one team."""
    if not team_id:
        return None
    return {"team": {"id": {"eq": team_id}}}

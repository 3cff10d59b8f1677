"""Render view-model snapshots as Rich text.

Every function here is a pure function of its arguments, so widgets can
call them on each refresh and tests can inspect ``Text.plain``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.text import Text

from linear_tui.core.detail import CommentPosted, DetailTab, FieldChanged
from linear_tui.core.filters import StatusTab
from linear_tui.core.models import CycleSummary, ProjectSummary
from linear_tui.core.overlay import OverlayKind
from linear_tui.core.view_model import Focus

if TYPE_CHECKING:
    from linear_tui.core.detail import ActivityDay, DetailView, SubIssueNode
    from linear_tui.core.models import IssueSummary
    from linear_tui.core.view_model import DetailPanel, OverlayView, PaletteView, SidebarList, ViewModel

# Lines above the first issue row in render_issue_list
ISSUE_LIST_HEADER_LINES = 1

PRIORITY_LABELS = {0: "No priority", 1: "Urgent", 2: "High", 3: "Medium", 4: "Low"}

STATE_STYLES = {
    "backlog": "dim",
    "unstarted": "white",
    "started": "yellow",
    "completed": "green",
    "canceled": "dim strike",
}

HELP_LINES = [
    ("j/k, Up/Down", "Move in the focused list"),
    ("Tab", "Cycle focus: issues, teams, states"),
    ("t / s", "Next team / next workflow state"),
    ("p / P / Ctrl+p", "Next / previous / clear project"),
    ("1-4", "Status tab: Todo, Doing, Done, All"),
    ("Ctrl+] / Ctrl+[", "Next / previous status tab"),
    ("] / [", "Next / previous page"),
    (". / ,", "Next / previous detail tab"),
    ("/", "Filter titles (contains)"),
    ("c", "Clear filters"),
    ("r", "Reload everything"),
    ("o / y", "Recent projects / recent cycles"),
    (":", "Command palette"),
    ("?", "Toggle this help"),
    ("q / Esc", "Quit (closes an open overlay first)"),
]


def priority_label(priority: int | None) -> str:
    if priority is None:
        return "-"
    return PRIORITY_LABELS.get(priority, str(priority))


def _state_style(state_type: str | None) -> str:
    return STATE_STYLES.get((state_type or "").lower(), "white")


# =============================================================================
# Header and status
# =============================================================================


def render_status_tabs(active: StatusTab) -> Text:
    """Tab strip for the coarse status filter, active tab highlighted."""
    text = Text()
    for index, tab in enumerate([StatusTab.TODO, StatusTab.DOING, StatusTab.DONE, StatusTab.ALL], start=1):
        if index > 1:
            text.append("  ")
        style = "bold reverse cyan" if tab is active else "dim"
        text.append(f" {index}:{tab.label} ", style=style)
    return text


def render_header(vm: ViewModel) -> Text:
    text = render_status_tabs(vm.status_tab)
    text.append("\n")
    text.append(vm.filters_text, style="dim")
    return text


def render_status_line(vm: ViewModel) -> Text:
    text = Text()
    if vm.auth_required:
        text.append("AUTH ", style="bold white on red")
    style = "bold red" if vm.status.startswith("Error") or vm.auth_required else "italic yellow"
    text.append(vm.status, style=style)
    return text


# =============================================================================
# Lists
# =============================================================================


def render_issue_row(issue: IssueSummary, selected: bool) -> Text:
    text = Text(no_wrap=True, overflow="ellipsis")
    marker = ">" if selected else " "
    text.append(f"{marker} ", style="bold cyan" if selected else "")
    text.append(f"{issue.identifier:<10}", style="bold" if selected else "cyan")
    state = issue.state
    text.append(f"{(state.name if state else '-'):<14}", style=_state_style(state.type if state else None))
    text.append(issue.title, style="reverse" if selected else "")
    if issue.assignee:
        text.append(f"  @{issue.assignee.label}", style="dim")
    return text


def render_issue_list(vm: ViewModel) -> Text:
    """Issue table for the current page, with a pagination footer."""
    text = Text()
    title_style = "bold underline" if vm.focus is Focus.ISSUES else "bold"
    text.append(f"Issues (page {vm.page})\n", style=title_style)
    if not vm.issues:
        text.append("Loading..." if vm.loading else "No issues", style="dim italic")
    for index, issue in enumerate(vm.issues):
        if index:
            text.append("\n")
        text.append_text(render_issue_row(issue, index == vm.selected_index))
    footer = "more below; ] for next page" if vm.has_next_page else "end of results"
    text.append(f"\n\n{len(vm.issues)} shown, {footer}", style="dim")
    return text


def issue_scroll_target(selected_index: int | None, top: int, height: int) -> int | None:
    """Scroll offset that brings the selected issue row into view.

    Args:
        selected_index: Row selected in the issue list, if any
        top: Current vertical scroll offset of the list
        height: Number of visible lines

    Returns:
        The new offset, or None when the row is already visible.
    """
    if selected_index is None or height <= 0:
        return None
    if selected_index == 0:
        return 0 if top > 0 else None
    row = ISSUE_LIST_HEADER_LINES + selected_index
    if row < top:
        return row
    if row >= top + height:
        return row - height + 1
    return None


def render_sidebar(title: str, sidebar: SidebarList, focused: bool) -> Text:
    text = Text()
    text.append(f"{title}\n", style="bold underline" if focused else "bold")
    if not sidebar.labels:
        text.append("-", style="dim")
        return text
    for index, label in enumerate(sidebar.labels):
        if index:
            text.append("\n")
        selected = index == sidebar.selected
        text.append(f"{'>' if selected else ' '} {label}", style="bold cyan" if selected else "")
    return text


# =============================================================================
# Detail panel
# =============================================================================


def render_detail_tabs(active: DetailTab) -> Text:
    text = Text()
    for index, tab in enumerate(DetailTab):
        if index:
            text.append(" | ", style="dim")
        text.append(tab.label, style="bold reverse" if tab is active else "dim")
    return text


def render_summary(view: DetailView) -> Text:
    issue = view.issue
    text = Text()
    text.append(f"{issue.identifier}  ", style="bold cyan")
    text.append(issue.title, style="bold")
    rows = [
        ("State", issue.state.name if issue.state else "-"),
        ("Assignee", issue.assignee.label if issue.assignee else "Unassigned"),
        ("Priority", priority_label(issue.priority)),
        ("Team", issue.team.key if issue.team else "-"),
        ("Labels", ", ".join(label.name for label in issue.labels) or "-"),
        ("Sub-issues", str(sum(1 for _ in view.tree.walk()) - 1)),
        ("Comments", str(len(issue.comments))),
    ]
    if issue.updated_at:
        rows.append(("Updated", issue.updated_at.strftime("%Y-%m-%d %H:%M")))
    if issue.url:
        rows.append(("URL", issue.url))
    for name, value in rows:
        text.append(f"\n{name + ':':<12}", style="dim")
        text.append(value)
    return text


def render_description(view: DetailView) -> Text:
    description = (view.issue.description or "").strip()
    if not description:
        return Text("No description", style="dim italic")
    return Text(description)


def _activity_line(item: CommentPosted | FieldChanged) -> Text:
    text = Text()
    text.append(item.at.strftime("%H:%M "), style="dim")
    match item:
        case CommentPosted(author=author, body=body):
            text.append(author, style="bold")
            text.append(" commented: ", style="dim")
            first, _, rest = body.partition("\n")
            text.append(first + (" ..." if rest else ""))
        case FieldChanged(field="description", actor=actor):
            text.append(actor, style="bold")
            text.append(" updated the description", style="dim")
        case FieldChanged(field=name, from_value=old, to_value=new, actor=actor):
            text.append(actor, style="bold")
            text.append(f" changed {name}: ", style="dim")
            text.append(old or "none", style="red")
            text.append(" -> ", style="dim")
            text.append(new or "none", style="green")
    return text


def render_activity(days: list[ActivityDay]) -> Text:
    """Activity grouped by day, newest day first, drawn as a tree."""
    if not days:
        return Text("No activity", style="dim italic")
    text = Text()
    for day_index, day in enumerate(days):
        if day_index:
            text.append("\n")
        text.append(day.day.strftime("%a %Y-%m-%d"), style="bold magenta")
        for index, item in enumerate(day.items):
            branch = "└─ " if index == len(day.items) - 1 else "├─ "
            text.append("\n" + branch, style="dim")
            text.append_text(_activity_line(item))
    return text


def _node_label(node: SubIssueNode) -> Text:
    text = Text()
    text.append(node.identifier, style="cyan")
    text.append(f" {node.title}")
    if node.state:
        text.append(f" [{node.state}]", style="yellow")
    if node.assignee:
        text.append(f" @{node.assignee}", style="dim")
    if node.truncated:
        text.append(" (cycle)", style="red")
    return text


def render_sub_issues(tree: SubIssueNode) -> Text:
    """Sub-issue tree below the root issue."""
    if not tree.children:
        return Text("No sub-issues", style="dim italic")
    text = _node_label(tree)

    def draw(nodes: list[SubIssueNode], prefix: str) -> None:
        for index, node in enumerate(nodes):
            last = index == len(nodes) - 1
            text.append("\n" + prefix + ("└─ " if last else "├─ "), style="dim")
            text.append_text(_node_label(node))
            draw(node.children, prefix + ("   " if last else "│  "))

    draw(tree.children, "")
    return text


def render_detail(panel: DetailPanel) -> Text:
    text = render_detail_tabs(panel.tab)
    text.append("\n\n")
    if panel.identifier is None:
        text.append("No issue selected", style="dim italic")
        return text
    if panel.view is None:
        if panel.error:
            text.append(f"Failed to load {panel.identifier}: {panel.error}", style="red")
        else:
            text.append(f"Loading {panel.identifier}...", style="dim italic")
        return text

    match panel.tab:
        case DetailTab.SUMMARY:
            text.append_text(render_summary(panel.view))
        case DetailTab.DESCRIPTION:
            text.append_text(render_description(panel.view))
        case DetailTab.ACTIVITY:
            text.append_text(render_activity(panel.view.activity))
        case DetailTab.SUB_ISSUES:
            text.append_text(render_sub_issues(panel.view.tree))
    return text


# =============================================================================
# Overlays
# =============================================================================


def render_help() -> Text:
    text = Text("Keys\n", style="bold")
    for keys, description in HELP_LINES:
        text.append(f"\n{keys:<18}", style="bold yellow")
        text.append(description)
    text.append("\n\nCommands: team, state, project, status, contains, page, view, detail, clear, reload, help", style="dim")
    return text


def _overlay_item(item: object) -> Text:
    text = Text()
    match item:
        case ProjectSummary(name=name, state=state, target_date=target, lead=lead):
            text.append(name, style="bold")
            if state:
                text.append(f"  {state}", style="yellow")
            if target:
                text.append(f"  target {target}", style="dim")
            if lead:
                text.append(f"  @{lead.label}", style="dim")
        case CycleSummary(number=number, name=name, starts_at=starts, ends_at=ends, team=team):
            text.append(f"Cycle {number}", style="bold")
            if name:
                text.append(f" {name}")
            if team:
                text.append(f"  {team.key}", style="cyan")
            text.append(f"  {(starts or '?')[:10]} to {(ends or '?')[:10]}", style="dim")
        case _:
            text.append(str(item))
    return text


def render_overlay(overlay: OverlayView) -> Text:
    if overlay.kind is OverlayKind.HELP:
        return render_help()
    title = "Recent projects" if overlay.kind is OverlayKind.PROJECTS else "Recent cycles"
    text = Text(f"{title}\n", style="bold")
    if overlay.loading:
        text.append("\nLoading...", style="dim italic")
    elif overlay.error:
        text.append(f"\nError: {overlay.error}", style="red")
    elif not overlay.items:
        text.append("\nNothing to show", style="dim italic")
    for item in overlay.items:
        text.append("\n")
        text.append_text(_overlay_item(item))
    return text


def render_palette(palette: PaletteView) -> Text:
    text = Text()
    text.append(":", style="bold yellow")
    text.append(palette.input)
    text.append("_", style="blink")
    if palette.suggestions:
        text.append("\n")
        text.append("  ".join(palette.suggestions), style="dim")
    return text

"""Terminal dashboard for browsing Linear issues, projects and cycles."""

__version__ = "0.3.0"

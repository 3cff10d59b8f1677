"""Linear GraphQL API access."""

from linear_tui.api.client import (
    LinearAuthError,
    LinearClient,
    LinearClientError,
    LinearMalformedResponseError,
    LinearNetworkError,
    LinearNotFoundError,
)

__all__ = [
    "LinearAuthError",
    "LinearClient",
    "LinearClientError",
    "LinearMalformedResponseError",
    "LinearNetworkError",
    "LinearNotFoundError",
]

"""Session and credential handling."""

from linear_tui.auth.session import CredentialStore, Session, SessionProvider, TokenType, UnauthenticatedError

__all__ = [
    "CredentialStore",
    "Session",
    "SessionProvider",
    "TokenType",
    "UnauthenticatedError",
]

"""Session loading for the Linear API.

Sessions come from the ``LINEAR_API_KEY`` environment variable or from a
per-profile credentials file written by ``linear-tui login``.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

API_KEY_ENV = "LINEAR_API_KEY"
CREDENTIALS_VERSION = 1


class UnauthenticatedError(Exception):
    """No usable session; the user has to log in again."""


class TokenType(str, Enum):
    """How the access token is presented to the API."""

    BEARER = "bearer"
    API_KEY = "api_key"


class Session(BaseModel):
    """An authenticated Linear session."""

    access_token: str
    token_type: TokenType = TokenType.API_KEY
    expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_api_key(cls, key: str) -> Session:
        return cls(access_token=key, token_type=TokenType.API_KEY)

    @property
    def authorization_header(self) -> str:
        """Value of the ``Authorization`` header (API keys are sent bare)."""
        if self.token_type is TokenType.BEARER:
            return f"Bearer {self.access_token}"
        return self.access_token

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at


class CredentialStore:
    """Stores one session per profile as JSON in the config directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, profile: str) -> Path:
        return self.root / f"credentials-{profile}.json"

    def load(self, profile: str) -> Session | None:
        """Load the stored session, or None if there is none.

        Raises:
            UnauthenticatedError: If the file exists but cannot be read.
        """
        path = self.path_for(profile)
        if not path.exists():
            return None
        try:
            envelope = json.loads(path.read_text(encoding="utf-8"))
            return Session.model_validate(envelope["session"])
        except (OSError, ValueError, KeyError, ValidationError) as e:
            logger.error(f"Unreadable credentials file {path}: {e}")
            raise UnauthenticatedError(f"Credentials for profile '{profile}' are unreadable") from e

    def save(self, profile: str, session: Session) -> Path:
        """Write the session with user-only permissions."""
        path = self.path_for(profile)
        path.parent.mkdir(parents=True, exist_ok=True)
        envelope = {
            "profile": profile,
            "version": CREDENTIALS_VERSION,
            "session": session.model_dump(mode="json"),
        }
        path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
        path.chmod(0o600)
        return path

    def delete(self, profile: str) -> bool:
        path = self.path_for(profile)
        if path.exists():
            path.unlink()
            return True
        return False


class SessionProvider:
    """Resolves the current session, consulted before every fetch."""

    def __init__(self, store: CredentialStore, profile: str = "default") -> None:
        self._store = store
        self.profile = profile
        self._session: Session | None = None

    def current_session(self) -> Session:
        """Return a valid session.

        Raises:
            UnauthenticatedError: If no session is configured or it expired.
        """
        if self._session is None:
            key = os.getenv(API_KEY_ENV)
            self._session = Session.from_api_key(key) if key else self._store.load(self.profile)
        if self._session is None:
            raise UnauthenticatedError(f"Not logged in (profile '{self.profile}'). Run `linear-tui login`.")
        if self._session.is_expired():
            raise UnauthenticatedError("Session expired. Run `linear-tui login`.")
        return self._session

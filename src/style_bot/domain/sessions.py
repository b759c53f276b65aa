"""Domain models for style sessions."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SessionState(Enum):
    """Observable states of a user's style session."""

    OK = "OK"
    EXPIRED = "EXPIRED"
    NONE = "NONE"


@dataclass(frozen=True)
class UserSession:
    """A style code waiting for the user's photo."""

    user_id: str
    pending_code: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionStatus:
    """Result of reading a user's session."""

    state: SessionState
    code: str | None = None

"""Short-lived per-user style sessions."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from style_bot.domain.sessions import SessionState, SessionStatus, UserSession

DEFAULT_SESSION_TTL = timedelta(minutes=5)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class StyleSessionStore:
    """Tracks the style code each user picked before sending a photo.

    Expiry is checked when a session is read; an expired session is removed
    by the read that discovers it, so EXPIRED is reported once.
    """

    ttl: timedelta = DEFAULT_SESSION_TTL
    clock: Callable[[], datetime] = _utc_now
    _sessions: dict[str, UserSession] = field(default_factory=dict, init=False)

    def set(self, user_id: object, code: str) -> UserSession:
        """Create or replace the pending session for a user."""
        key = str(user_id)
        session = UserSession(
            user_id=key,
            pending_code=str(code),
            expires_at=self.clock() + self.ttl,
        )
        self._sessions[key] = session
        return session

    def get_status(self, user_id: object) -> SessionStatus:
        """Return the session state, evicting it if it has expired."""
        key = str(user_id)
        session = self._sessions.get(key)
        if session is None:
            return SessionStatus(state=SessionState.NONE)
        if self.clock() >= session.expires_at:
            self._sessions.pop(key, None)
            return SessionStatus(state=SessionState.EXPIRED)
        return SessionStatus(state=SessionState.OK, code=session.pending_code)

    def clear(self, user_id: object) -> None:
        """Drop any session for the user."""
        self._sessions.pop(str(user_id), None)

    def sweep_expired(self) -> int:
        """Remove expired sessions and return how many were dropped."""
        now = self.clock()
        expired = [
            key for key, session in self._sessions.items() if now >= session.expires_at
        ]
        for key in expired:
            del self._sessions[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

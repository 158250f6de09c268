"""Session gate driving the record store lifecycle."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from vitatrack.domain.errors import BadRequest
from vitatrack.domain.records import FoodRecord
from vitatrack.domain.sessions import UserSession
from vitatrack.services.records import RecordStore

_logger = logging.getLogger(__name__)


class SessionListener(Protocol):
    """Receives login and logout transitions."""

    def on_session_start(self, session: UserSession) -> None:
        """Handle a newly signed-in user."""

    def on_session_end(self) -> None:
        """Handle the current user signing out."""


@dataclass
class SessionGate:
    """Tracks the signed-in user and notifies listeners in order."""

    record_store: RecordStore
    listeners: list[SessionListener] = field(default_factory=list)
    _current: UserSession | None = field(default=None, init=False)

    @property
    def current_user(self) -> UserSession | None:
        """The signed-in user, if any."""
        return self._current

    def subscribe(self, listener: SessionListener) -> None:
        """Register an extra listener after the record store."""
        self.listeners.append(listener)

    async def login(self, session: UserSession) -> list[FoodRecord]:
        """Start a session and load the selected day's records."""
        if session.user_id <= 0:
            raise BadRequest(f"Invalid user id: {session.user_id}")
        if self._current is not None:
            self.logout()
        self._current = session
        self.record_store.on_session_start(session)
        for listener in self.listeners:
            listener.on_session_start(session)
        _logger.info("User %s signed in", session.user_id)
        return await self.record_store.load()

    def logout(self) -> None:
        """End the session and clear all user state synchronously."""
        previous = self._current
        self._current = None
        self.record_store.on_session_end()
        for listener in self.listeners:
            listener.on_session_end()
        if previous is not None:
            _logger.info("User %s signed out", previous.user_id)

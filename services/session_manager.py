"""
Session Management for editor state

Keeps one SelectionState per browser session and expires idle ones.
"""

import threading
import uuid
from datetime import datetime, timedelta
from typing import Dict, Optional

import structlog

from models.schemas import SelectionState

logger = structlog.get_logger(__name__)


class SessionManager:
    """Manages editor sessions"""

    def __init__(self, preview_store, session_timeout_minutes: int = 60):
        """
        Initialize session manager.

        Args:
            preview_store: PreviewStore holding the sessions' previews
            session_timeout_minutes: Minutes before a session expires
        """
        self.preview_store = preview_store
        self.sessions: Dict[str, SelectionState] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)
        self._lock = threading.Lock()

    def create_session(self) -> str:
        """
        Create a new editor session.

        Returns:
            session_id: Unique identifier for the session
        """
        session_id = str(uuid.uuid4())
        with self._lock:
            self.sessions[session_id] = SelectionState(session_id=session_id)
        logger.info("Session created", session_id=session_id)
        return session_id

    def get_session(self, session_id: str) -> Optional[SelectionState]:
        """
        Get an existing session.

        Args:
            session_id: Session identifier

        Returns:
            SelectionState if found and not expired, None otherwise
        """
        with self._lock:
            state = self.sessions.get(session_id)
            if state is None:
                return None

            # Sessions with a generation in flight never expire
            if not state.is_loading and datetime.now() - state.last_updated > self.session_timeout:
                del self.sessions[session_id]
                expired = state
            else:
                expired = None

        if expired is not None:
            self._release_previews(expired)
            return None

        return state

    def get_or_create_session(self, session_id: Optional[str] = None) -> tuple[SelectionState, bool]:
        """
        Get existing session or create new one.

        Every lookup also sweeps sessions idle past the timeout, so previews
        of abandoned browsers are released without a separate scheduler.

        Args:
            session_id: Optional session identifier

        Returns:
            Tuple of (SelectionState, is_new)
        """
        self.cleanup_expired_sessions()

        if session_id:
            state = self.get_session(session_id)
            if state:
                return state, False

        new_id = self.create_session()
        return self.sessions[new_id], True

    def cleanup_expired_sessions(self) -> int:
        """
        Remove all expired sessions and release their previews.

        Returns:
            Number of sessions cleaned up
        """
        now = datetime.now()
        with self._lock:
            expired = [
                state for state in self.sessions.values()
                if not state.is_loading and now - state.last_updated > self.session_timeout
            ]
            for state in expired:
                del self.sessions[state.session_id]

        for state in expired:
            self._release_previews(state)

        if expired:
            logger.info("Expired sessions removed", count=len(expired))
        return len(expired)

    def get_session_count(self) -> int:
        """Get number of active sessions"""
        return len(self.sessions)

    def _release_previews(self, state: SelectionState) -> None:
        with state.lock:
            for slot in state.slots.values():
                self.preview_store.release(slot.preview_url)

"""
Shellgate - Session Registry
Tracks live terminal sessions and enforces per-user limits
"""

from typing import Dict, Tuple
from loguru import logger


class SessionRegistry:
    """
    Process-wide bookkeeping of active sessions.
    Only ids are stored; sessions never reach each other through it.
    """

    def __init__(self, max_sessions_per_user: int = 5):
        self.max_sessions_per_user = max_sessions_per_user
        self.active_sessions: Dict[str, str] = {}  # session_id -> user_id

    def can_create_session(self, user_id: str) -> Tuple[bool, str]:
        """Check if a new session can be created for this user"""
        user_sessions = sum(1 for owner in self.active_sessions.values() if owner == user_id)
        if self.max_sessions_per_user > 0 and user_sessions >= self.max_sessions_per_user:
            return False, f"Maximum sessions per user ({self.max_sessions_per_user}) reached"
        return True, ""

    def register_session(self, session_id: str, user_id: str):
        self.active_sessions[session_id] = user_id
        logger.debug(f"Session registered: {session_id} (active={len(self.active_sessions)})")

    def unregister_session(self, session_id: str):
        self.active_sessions.pop(session_id, None)

    def get_active_count(self) -> int:
        """Get count of active sessions."""
        return len(self.active_sessions)

"""
app/services/session_service.py

Purpose: Conversation session state

- Current workflow state per user
- Scratch data carried between steps of one workflow
- In memory only: a restart puts everyone back to IDLE
- Safe for concurrent access from overlapping webhook handlers
"""

import threading
from typing import Dict

from app.flow.states import ConversationState
from app.core.logging import get_logger

logger = get_logger(__name__)


class ConversationSessionStore:
    """
    Per-user conversation state and scratch data.

    One lock guards both maps so that resetting a user to IDLE and
    writing scratch data can never interleave.
    """

    def __init__(self):
        self._states: Dict[int, ConversationState] = {}
        self._scratch: Dict[int, Dict[str, str]] = {}
        self._lock = threading.Lock()

    def set_state(self, user_id: int, state: ConversationState) -> None:
        """
        Overwrites the user's state. IDLE also drops the user's scratch data.
        """
        with self._lock:
            previous = self._states.get(user_id, ConversationState.IDLE)
            self._states[user_id] = state
            if state == ConversationState.IDLE:
                self._scratch.pop(user_id, None)

        if previous != state:
            logger.debug(
                f"State updated: {previous.value} -> {state.value}",
                extra={"user_id": user_id}
            )

    def get_state(self, user_id: int) -> ConversationState:
        """
        Returns the user's state, IDLE if the user has none.
        """
        with self._lock:
            return self._states.get(user_id, ConversationState.IDLE)

    def set_scratch(self, user_id: int, key: str, value: str) -> None:
        with self._lock:
            self._scratch.setdefault(user_id, {})[key] = value

    def get_scratch(self, user_id: int, key: str) -> str:
        """
        Returns a scratch value, or an empty string if the user or key is unknown.
        """
        with self._lock:
            return self._scratch.get(user_id, {}).get(key, "")

    def reset(self, user_id: int) -> None:
        """Shortcut for set_state(user_id, IDLE)."""
        self.set_state(user_id, ConversationState.IDLE)

    def has_scratch(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._scratch.get(user_id))

import logging
from collections import deque
from typing import Deque, Dict, Tuple

from ..models import ConversationSession, Message

logger = logging.getLogger(__name__)


class ConversationStore:
    """Bounded, in-memory message history per session key.

    Each key holds a sliding window of at most ``max_messages`` messages;
    appending past the cap drops the oldest ones. Nothing survives a process
    restart.
    """

    def __init__(self, max_messages: int = 20) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._max_messages = max_messages
        self._sessions: Dict[str, Deque[Message]] = {}

    @property
    def max_messages(self) -> int:
        return self._max_messages

    def append(self, key: str, message: Message) -> None:
        """Add message to the end of key's history, evicting the oldest on overflow."""
        history = self._sessions.get(key)
        if history is None:
            history = deque(maxlen=self._max_messages)
            self._sessions[key] = history
            logger.debug("Created conversation session %s", key)
        history.append(message)

    def get_history(self, key: str) -> Tuple[Message, ...]:
        """Return a chronological snapshot of key's history (empty if unknown)."""
        history = self._sessions.get(key)
        if history is None:
            return ()
        return tuple(history)

    def get_session(self, key: str) -> ConversationSession:
        return ConversationSession(key=key, history=self.get_history(key))

    def reset(self, key: str) -> None:
        """Empty key's history. Idempotent; unknown keys are ignored."""
        if self._sessions.pop(key, None) is not None:
            logger.debug("Cleared conversation session %s", key)

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Literal, Mapping, Optional, Protocol, Sequence, Tuple, Union

from ..exceptions import GenerationFailed, InvalidInput, SessionBusy
from ..models import ConversationSession, Message, Role, SectionValue, StructuredResponse
from ..services.conversation_store import ConversationStore
from ..services.response_parser import ParseSchema, parse_with_schema

logger = logging.getLogger(__name__)

Reply = Union[str, StructuredResponse]
BusyPolicy = Literal["queue", "reject"]

ROLE_PREFIXES = {Role.USER: "User", Role.ASSISTANT: "Assistant"}


class TextGenerator(Protocol):
    async def generate(self, prompt_text: str, timeout: float | None = None) -> str:
        ...


@dataclass(frozen=True)
class ToolProfile:
    """Static configuration of a tool, or of one persona style of a tool.

    ``fallback`` is returned as-is whenever generation fails, so it must be
    the same object on every call.
    """

    name: str
    system_instruction: str
    greeting: str
    fallback: Reply
    schema: Optional[ParseSchema] = None
    section_fallbacks: Mapping[str, SectionValue] = field(default_factory=dict)

    @property
    def structured(self) -> bool:
        return self.schema is not None


class SessionManager(ABC):
    """Runs conversational turns for one tool.

    Each session key owns a bounded history in the injected store. A turn
    appends the user message, prompts the model with the tool's system
    instruction and prior history, and appends the reply. Turns for the same
    key are serialized; with ``busy_policy="reject"`` a second concurrent
    turn raises SessionBusy instead of waiting.

    A reset while a turn is waiting on the model wins: the late reply is
    returned to its caller but not recorded in the emptied history.
    """

    tool_name = "tool"

    def __init__(
        self,
        model_client: TextGenerator,
        store: ConversationStore,
        busy_policy: BusyPolicy = "queue",
        max_prompt_chars: int | None = None,
    ) -> None:
        self._model = model_client
        self._store = store
        self._busy_policy = busy_policy
        self._max_prompt_chars = max_prompt_chars
        # Per-key bookkeeping lives only while turns are queued or running.
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Dict[str, int] = {}
        self._resets: Dict[str, int] = {}

    @abstractmethod
    def profile_for(self, style: Optional[str] = None) -> ToolProfile:
        """Profile used for a turn or reset in the given style."""

    def format_user_text(self, user_text: str) -> str:
        return user_text

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _turn_finished(self, key: str) -> None:
        remaining = self._pending[key] - 1
        if remaining:
            self._pending[key] = remaining
            return
        del self._pending[key]
        self._locks.pop(key, None)
        self._resets.pop(key, None)

    def _clear(self, key: str) -> None:
        self._store.reset(key)
        if key in self._pending:
            self._resets[key] = self._resets.get(key, 0) + 1
        logger.info("Session reset tool=%s session=%s", self.tool_name, key)

    def is_busy(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def build_prompt(
        self,
        profile: ToolProfile,
        history: Sequence[Message],
        user_text: str,
        context: Optional[str] = None,
    ) -> str:
        """System instruction, optional context, prior turns, then the new message.

        When a prompt budget is set, the oldest history lines are dropped
        until the prompt fits.
        """
        head = profile.system_instruction
        if context:
            head = f"{head}\n\n{context}"
        tail = f"User: {self.format_user_text(user_text)}\nAssistant:"
        lines = [f"{ROLE_PREFIXES[m.role]}: {m.text}" for m in history]

        while True:
            parts = [head]
            if lines:
                parts.append("Conversation history:\n" + "\n".join(lines))
            parts.append(tail)
            prompt = "\n\n".join(parts)
            if not lines or self._max_prompt_chars is None:
                return prompt
            if len(prompt) <= self._max_prompt_chars:
                return prompt
            lines.pop(0)

    def shape_reply(self, profile: ToolProfile, text: str) -> Reply:
        if profile.schema is None:
            return text
        return parse_with_schema(text, profile.schema, profile.section_fallbacks)

    async def submit_turn(
        self,
        key: str,
        user_text: str,
        style: Optional[str] = None,
        context: Optional[str] = None,
        timeout: float | None = None,
    ) -> Reply:
        """Run one turn for key and return the reply.

        Raises:
            InvalidInput: user_text is empty or whitespace.
            SessionBusy: busy_policy is "reject" and key has a turn in flight.

        Model failures are not raised: the profile's static fallback is
        returned and no assistant message is recorded.
        """
        if not user_text or not user_text.strip():
            raise InvalidInput("Message cannot be empty")
        text = user_text.strip()
        profile = self.profile_for(style)

        lock = self._lock_for(key)
        if self._busy_policy == "reject" and lock.locked():
            raise SessionBusy(key)

        self._pending[key] = self._pending.get(key, 0) + 1
        try:
            async with lock:
                generation = self._resets.get(key, 0)
                prior = self._store.get_history(key)
                self._store.append(key, Message(role=Role.USER, text=text))
                prompt = self.build_prompt(profile, prior, text, context)
                logger.info(
                    "Turn start tool=%s session=%s history=%d", profile.name, key, len(prior)
                )
                try:
                    reply_text = await self._model.generate(prompt, timeout=timeout)
                except GenerationFailed as e:
                    logger.warning(
                        "Generation failed tool=%s session=%s: %s", profile.name, key, e
                    )
                    return profile.fallback
                if self._resets.get(key, 0) == generation:
                    self._store.append(key, Message(role=Role.ASSISTANT, text=reply_text))
                else:
                    logger.info(
                        "Session reset mid-turn, reply not recorded tool=%s session=%s",
                        profile.name,
                        key,
                    )
        finally:
            self._turn_finished(key)

        return self.shape_reply(profile, reply_text)

    def reset_session(self, key: str, style: Optional[str] = None) -> str:
        """Clear key's history and return the tool's opening greeting."""
        self._clear(key)
        return self.profile_for(style).greeting

    def get_history(self, key: str) -> Tuple[Message, ...]:
        return self._store.get_history(key)

    def get_session(self, key: str) -> ConversationSession:
        return self._store.get_session(key)


def fallback_response(primary_text: str, section_fallbacks: Mapping[str, SectionValue]) -> StructuredResponse:
    """Static StructuredResponse used when generation fails."""
    return StructuredResponse(primary_text=primary_text, sections=section_fallbacks)

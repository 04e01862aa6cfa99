"""The three dashboard tools and the wiring that builds them.

Each tool is a SessionManager around a shared model client and its own
conversation store; ``build_toolkit`` assembles them from settings so the
web layer (and tests) can inject their own instances.
"""

from dataclasses import dataclass
from typing import Optional

from ..services.conversation_store import ConversationStore
from ..services.model_client import ModelClient
from ..services.speech_client import SpeechClient
from ..settings import Settings, get_settings
from .cofounder import CofounderSessionManager, parse_style
from .market_research import MarketResearchSessionManager, market_research_profile
from .mentor import MentorSessionManager, mentor_profile
from .session_manager import SessionManager, TextGenerator, ToolProfile

MENTOR = "mentor"
MARKET_RESEARCH = "market_research"
COFOUNDER = "cofounder"
TOOLS = (MENTOR, MARKET_RESEARCH, COFOUNDER)


def session_key(tool: str, style: Optional[str] = None, session_id: Optional[str] = None) -> str:
    """Key for a tool's history: "mentor", "cofounder-analytical", "mentor:abc"."""
    key = tool
    if tool == COFOUNDER:
        key = f"{tool}-{parse_style(style).value}"
    if session_id:
        key = f"{key}:{session_id}"
    return key


@dataclass
class Toolkit:
    mentor: MentorSessionManager
    market_research: MarketResearchSessionManager
    cofounder: CofounderSessionManager
    model_client: Optional[ModelClient] = None
    speech_client: Optional[SpeechClient] = None

    def manager(self, tool: str) -> SessionManager:
        if tool == MENTOR:
            return self.mentor
        if tool == MARKET_RESEARCH:
            return self.market_research
        if tool == COFOUNDER:
            return self.cofounder
        raise KeyError(tool)

    async def close(self) -> None:
        if self.model_client is not None:
            await self.model_client.close()
        if self.speech_client is not None:
            await self.speech_client.close()


def build_toolkit(
    settings: Settings | None = None,
    model_client: TextGenerator | None = None,
    speech_client: SpeechClient | None = None,
) -> Toolkit:
    """Wire the three session managers from settings."""
    settings = settings or get_settings()
    owned_model = None
    if model_client is None:
        owned_model = ModelClient.from_settings(settings)
        model_client = owned_model

    def _store() -> ConversationStore:
        return ConversationStore(max_messages=settings.history_max_messages)

    common = {
        "busy_policy": settings.busy_policy,
        "max_prompt_chars": settings.max_prompt_chars,
    }
    return Toolkit(
        mentor=MentorSessionManager(
            model_client, _store(), profile=mentor_profile(settings), **common
        ),
        market_research=MarketResearchSessionManager(
            model_client, _store(), profile=market_research_profile(settings), **common
        ),
        cofounder=CofounderSessionManager(
            model_client, _store(), max_items=settings.parsed_list_max_items, **common
        ),
        model_client=owned_model,
        speech_client=speech_client or SpeechClient.from_settings(settings),
    )


__all__ = [
    "COFOUNDER",
    "MARKET_RESEARCH",
    "MENTOR",
    "TOOLS",
    "Toolkit",
    "ToolProfile",
    "SessionManager",
    "build_toolkit",
    "session_key",
]

from typing import Optional

from ..settings import Settings, get_settings
from .session_manager import SessionManager, ToolProfile

MENTOR_GREETING = "Hello! I'm your AI Mentor. How can I help you today?"
MENTOR_FALLBACK = (
    "I'm sorry, I couldn't put together an answer just now. "
    "Could you try asking again in a moment? I'm happy to keep going from where we left off."
)


def mentor_profile(settings: Settings | None = None) -> ToolProfile:
    settings = settings or get_settings()
    return ToolProfile(
        name="mentor",
        system_instruction=settings.mentor_system_prompt,
        greeting=MENTOR_GREETING,
        fallback=MENTOR_FALLBACK,
    )


class MentorSessionManager(SessionManager):
    """Free-form learning assistant; replies are plain text."""

    tool_name = "mentor"

    def __init__(self, *args, profile: ToolProfile | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._profile = profile or mentor_profile()

    def profile_for(self, style: Optional[str] = None) -> ToolProfile:
        return self._profile

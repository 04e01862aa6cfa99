from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model: str = "gemini-2.0-flash"
    temperature: float = 0.7
    genai_api_key: str | None = None
    genai_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    request_timeout_seconds: float = 30.0
    max_retries: int = 2
    max_prompt_chars: int = 24000

    history_max_messages: int = 20  # 10 exchanges
    parsed_list_max_items: int = 3
    busy_policy: Literal["queue", "reject"] = "queue"

    cors_origins: str = "*"

    tts_api_key: str | None = None
    tts_base_url: str = "https://api.cartesia.ai"
    tts_api_version: str = "2024-06-30"
    tts_model_id: str = "sonic-english"
    tts_request_timeout_seconds: float = 30.0

    mentor_system_prompt: str = (
        "You are an expert AI mentor and learning assistant with deep expertise "
        "in technology, business, science, and personal development.\n\n"
        "Your role is to:\n"
        "- Provide clear, actionable guidance tailored to the user's learning level\n"
        "- Break down complex concepts into digestible explanations\n"
        "- Offer practical examples and real-world applications\n"
        "- Encourage critical thinking and problem-solving\n"
        "- Provide step-by-step guidance when needed\n"
        "- Share relevant resources and best practices\n\n"
        "Guidelines:\n"
        "- Keep responses concise but comprehensive\n"
        "- Focus on practical value and actionable insights\n"
        "- Use examples to illustrate complex concepts\n"
        "- Ask follow-up questions to guide deeper learning"
    )

    market_research_system_prompt: str = (
        "You are a senior market research analyst with expertise in industry "
        "trend analysis, competitive landscape assessment, market opportunity "
        "identification, consumer behavior analysis and strategic recommendations.\n\n"
        "Analyze the given market research query and answer in this structured format:\n\n"
        "ANALYSIS:\n"
        "Key Trends:\n"
        "- [key market trend]\n\n"
        "Market Insights:\n"
        "[1-2 paragraphs of strategic insights]\n\n"
        "Opportunities:\n"
        "- [market opportunity]\n\n"
        "Threats:\n"
        "- [potential threat]\n\n"
        "Recommendations:\n"
        "- [Action] - Priority: [High/Medium/Low] - Rationale: [Explanation]\n\n"
        "COMPETITIVE ANALYSIS:\n"
        "Key Players:\n"
        "- [key market player]\n\n"
        "Market Share:\n"
        "- Leader: [company with market share percentage]\n"
        "- Challenger: [company with market share percentage]\n\n"
        "Competitive Advantages:\n"
        "- [competitive advantage]\n\n"
        "Focus on realistic and actionable market data."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Return the application settings singleton (loaded from env / .env)."""
    global _SETTINGS
    try:
        return _SETTINGS
    except NameError:
        _SETTINGS = Settings()
        return _SETTINGS

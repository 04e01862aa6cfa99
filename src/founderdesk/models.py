from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Literal, Mapping, Tuple, Union

SectionValue = Union[str, Tuple[str, ...]]


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """One turn in a conversation."""

    role: Role
    text: str

    def __post_init__(self) -> None:
        if not self.text:
            raise ValueError("message text must not be empty")


@dataclass
class ConversationSession:
    """Per-key conversation state; history is oldest first."""

    key: str
    history: Tuple[Message, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.history


@dataclass(frozen=True)
class StructuredResponse:
    """Model reply split into the named sections a tool expects.

    ``sections`` always carries every expected section name. It is a
    read-only view with tuple lists, so a shared fallback instance can't be
    mutated by callers.
    """

    primary_text: str
    sections: Mapping[str, SectionValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {
            name: value if isinstance(value, str) else tuple(value)
            for name, value in self.sections.items()
        }
        object.__setattr__(self, "sections", MappingProxyType(frozen))

    def get_list(self, name: str) -> Tuple[str, ...]:
        value = self.sections.get(name, ())
        return (value,) if isinstance(value, str) else tuple(value)

    def get_text(self, name: str) -> str:
        value = self.sections.get(name, "")
        return value if isinstance(value, str) else "\n".join(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "primary_text": self.primary_text,
            "sections": {
                name: value if isinstance(value, str) else list(value)
                for name, value in self.sections.items()
            },
        }


class PersonaStyle(str, Enum):
    ANALYTICAL = "analytical"
    VISIONARY = "visionary"
    PRAGMATIC = "pragmatic"
    DEVIL = "devil"

    @property
    def display_name(self) -> str:
        return "Devil's Advocate" if self is PersonaStyle.DEVIL else self.value.capitalize()


class Scenario(str, Enum):
    FUNDRAISING = "fundraising"
    PRODUCT = "product"
    PIVOT = "pivot"
    HIRING = "hiring"


Priority = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class SearchResult:
    title: str
    source: str
    summary: str
    relevance_score: float


@dataclass(frozen=True)
class Recommendation:
    action: str
    priority: Priority
    rationale: str


@dataclass(frozen=True)
class MarketShare:
    leader: str
    challenger_segment: str


@dataclass(frozen=True)
class CompetitiveAnalysis:
    key_players: Tuple[str, ...]
    market_share: MarketShare
    competitive_advantages: Tuple[str, ...]


@dataclass(frozen=True)
class MarketAnalysis:
    key_trends: Tuple[str, ...]
    market_insights: str
    opportunities: Tuple[str, ...]
    threats: Tuple[str, ...]
    recommendations: Tuple[Recommendation, ...]


@dataclass(frozen=True)
class MarketReport:
    """Market research answer assembled for the dashboard."""

    query: str
    search_results: Tuple[SearchResult, ...]
    analysis: MarketAnalysis
    competitive_analysis: CompetitiveAnalysis

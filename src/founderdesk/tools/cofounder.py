from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..exceptions import InvalidInput
from ..models import PersonaStyle, Scenario, SectionValue
from ..services.response_parser import DEFAULT_MAX_ITEMS, ParseSchema, SectionSpec
from .session_manager import Reply, SessionManager, ToolProfile, fallback_response

DEFAULT_REASONING = "Generated response based on conversation context and co-founder style"

RESPONSE = SectionSpec("primary_text", "RESPONSE", "text", primary=True)
REASONING = SectionSpec("reasoning", "REASONING", "text")
DATA_POINTS = SectionSpec("data_points", "DATA POINTS", "list")
OPPORTUNITIES = SectionSpec("opportunities", "OPPORTUNITIES", "list")
RISKS = SectionSpec("risks", "RISKS", "list")
NEXT_STEPS = SectionSpec("next_steps", "NEXT STEPS", "list")

# Labels of other styles still end a block if the model emits them anyway.
_ALL_LABELS = ("RESPONSE", "REASONING", "DATA POINTS", "OPPORTUNITIES", "RISKS", "NEXT STEPS")


@dataclass(frozen=True)
class ScenarioInfo:
    title: str
    description: str


SCENARIOS: Dict[Scenario, ScenarioInfo] = {
    Scenario.FUNDRAISING: ScenarioInfo(
        "Fundraising Strategy",
        "Discuss your startup's fundraising approach and investor pitch",
    ),
    Scenario.PRODUCT: ScenarioInfo(
        "Product Development",
        "Debate product roadmap priorities and feature development",
    ),
    Scenario.PIVOT: ScenarioInfo(
        "Considering a Pivot",
        "Evaluate whether to change your business model based on market feedback",
    ),
    Scenario.HIRING: ScenarioInfo(
        "Hiring Decision",
        "Discuss potential candidates for a key leadership position",
    ),
}

STYLE_DESCRIPTIONS: Dict[PersonaStyle, str] = {
    PersonaStyle.ANALYTICAL: "Data-driven, logical, focused on metrics and evidence",
    PersonaStyle.VISIONARY: "Big-picture thinker, inspirational, future-oriented",
    PersonaStyle.PRAGMATIC: "Practical, solution-oriented, focuses on implementation",
    PersonaStyle.DEVIL: "Challenges assumptions, identifies potential issues",
}

_PERSONALITIES: Dict[PersonaStyle, str] = {
    PersonaStyle.ANALYTICAL: (
        "You are an analytical co-founder with a data-driven mindset. Your personality:\n"
        "- Focus on metrics, KPIs, and quantifiable outcomes\n"
        "- Reference specific data points and statistical insights\n"
        "- Question assumptions with evidence\n"
        "- Prioritize ROI and measurable results\n"
        "- Communicate with precision and clarity\n\n"
        "Always support your points with data or logical frameworks."
    ),
    PersonaStyle.VISIONARY: (
        "You are a visionary co-founder who inspires through big-picture thinking. Your personality:\n"
        "- Focus on transformative opportunities and future potential\n"
        "- Think in terms of market disruption and innovation\n"
        "- Connect current actions to long-term vision\n"
        "- Challenge conventional thinking\n"
        "- Communicate with passion and conviction\n\n"
        "Paint vivid pictures of what success could look like."
    ),
    PersonaStyle.PRAGMATIC: (
        "You are a pragmatic co-founder focused on execution and realistic solutions. Your personality:\n"
        "- Prioritize actionable next steps and implementation\n"
        "- Focus on resource constraints and practical limitations\n"
        "- Break big goals into manageable milestones\n"
        "- Emphasize timeline and budget considerations\n"
        "- Communicate clearly about what's actually doable\n\n"
        "Always bring conversations back to concrete actions and realistic timelines."
    ),
    PersonaStyle.DEVIL: (
        "You are a co-founder who plays devil's advocate to strengthen decision-making. Your personality:\n"
        "- Challenge assumptions and identify blind spots\n"
        "- Explore potential risks and failure scenarios\n"
        "- Ask difficult questions others might avoid\n"
        "- Test the robustness of proposed strategies\n"
        "- Push for thorough risk assessment\n\n"
        "Your goal is to make the team's thinking stronger by constructively challenging ideas."
    ),
}

_STYLE_SECTIONS: Dict[PersonaStyle, Tuple[SectionSpec, ...]] = {
    PersonaStyle.ANALYTICAL: (RESPONSE, REASONING, DATA_POINTS, NEXT_STEPS),
    PersonaStyle.VISIONARY: (RESPONSE, REASONING, OPPORTUNITIES, NEXT_STEPS),
    PersonaStyle.PRAGMATIC: (RESPONSE, REASONING, NEXT_STEPS),
    PersonaStyle.DEVIL: (RESPONSE, REASONING, RISKS, NEXT_STEPS),
}

_FORMAT_HINTS = {
    "RESPONSE": "[Your main response to the co-founder]",
    "REASONING": "[Explain your thinking process]",
    "DATA POINTS": "- [Relevant metric or data point]",
    "OPPORTUNITIES": "- [Future opportunity]",
    "RISKS": "- [Potential risk]",
    "NEXT STEPS": "- [Actionable step]",
}

STYLE_FALLBACKS: Dict[PersonaStyle, Dict[str, SectionValue]] = {
    PersonaStyle.ANALYTICAL: {
        "reasoning": DEFAULT_REASONING,
        "data_points": ("Review relevant metrics for this scenario",),
        "next_steps": ("Gather the key numbers before we decide",),
    },
    PersonaStyle.VISIONARY: {
        "reasoning": DEFAULT_REASONING,
        "opportunities": ("Explore long-term strategic possibilities",),
        "next_steps": ("Sketch the long-term vision together",),
    },
    PersonaStyle.PRAGMATIC: {
        "reasoning": DEFAULT_REASONING,
        "next_steps": ("Continue discussion to clarify implementation details",),
    },
    PersonaStyle.DEVIL: {
        "reasoning": DEFAULT_REASONING,
        "risks": ("Consider potential negative outcomes",),
        "next_steps": ("List the assumptions we haven't tested yet",),
    },
}

_FALLBACK_REPLIES: Dict[PersonaStyle, str] = {
    PersonaStyle.ANALYTICAL: (
        "Sorry, I lost my train of thought there. Before we go further, "
        "let's pull up the numbers that matter for this decision."
    ),
    PersonaStyle.VISIONARY: (
        "Sorry, my mind wandered for a second. Let's step back and picture "
        "where we want this company to be in five years."
    ),
    PersonaStyle.PRAGMATIC: (
        "Sorry, I didn't catch all of that. Let's focus on what we can actually "
        "get done in the next 30 days."
    ),
    PersonaStyle.DEVIL: (
        "Sorry, I got distracted. Before we commit, let's make sure we're not "
        "overlooking anything that could go wrong."
    ),
}


_STYLE_ALIASES = {
    "devil's-advocate": PersonaStyle.DEVIL,
    "devils-advocate": PersonaStyle.DEVIL,
    "devil's advocate": PersonaStyle.DEVIL,
}


def parse_style(style: Optional[str]) -> PersonaStyle:
    """Resolve a style id; unknown ids are invalid input."""
    if isinstance(style, PersonaStyle):
        return style
    normalized = (style or "").strip().lower()
    if normalized in _STYLE_ALIASES:
        return _STYLE_ALIASES[normalized]
    try:
        return PersonaStyle(normalized)
    except ValueError as e:
        raise InvalidInput(f"Unknown co-founder style: {style!r}") from e


def parse_scenario(scenario: Optional[str]) -> Optional[Scenario]:
    if scenario is None or isinstance(scenario, Scenario):
        return scenario
    try:
        return Scenario(scenario)
    except ValueError as e:
        raise InvalidInput(f"Unknown scenario: {scenario!r}") from e


def _with_article(phrase: str) -> str:
    return f"an {phrase}" if phrase[:1].lower() in "aeiou" else f"a {phrase}"


def opening_message(style: PersonaStyle, scenario: Optional[Scenario] = None) -> str:
    """Scenario-specific line the co-founder opens (or reopens) with."""
    approach = _with_article(style.display_name.lower())
    if scenario is Scenario.FUNDRAISING:
        return (
            "Let's talk about our fundraising strategy. We need to decide how much to raise "
            f"and what kind of investors to target. Taking {approach} approach, I think we "
            "should consider the market conditions carefully. What are your thoughts?"
        )
    if scenario is Scenario.PRODUCT:
        return (
            "I've been reviewing our product roadmap. We need to prioritize which features "
            f"to build next. Taking {approach} approach, I have some concerns about our "
            "current direction. What features do you think we should focus on?"
        )
    if scenario is Scenario.PIVOT:
        return (
            "The market feedback we're getting suggests we might need to pivot our business "
            f"model. Taking {approach} approach, I think we should evaluate our options "
            "carefully. How do you feel about changing our direction?"
        )
    if scenario is Scenario.HIRING:
        return (
            "We need to make a decision about the VP of Engineering role. We have two strong "
            f"candidates with different backgrounds. Taking {approach} approach, I'm thinking "
            "about both long-term fit and immediate needs. What qualities are you looking for "
            "in this hire?"
        )
    return (
        f"Let's discuss our startup's strategy. Taking {approach} approach, I'm excited to "
        "work through these challenges together. What's on your mind today?"
    )


def scenario_context(scenario: Optional[Scenario]) -> Optional[str]:
    if scenario is None:
        return None
    info = SCENARIOS[scenario]
    return f"Current scenario: {info.title} - {info.description}"


def _system_instruction(style: PersonaStyle) -> str:
    labels = [spec.label for spec in _STYLE_SECTIONS[style]]
    blocks = "\n\n".join(f"{label}:\n{_FORMAT_HINTS[label]}" for label in labels)
    return (
        f"{_PERSONALITIES[style]}\n\n"
        f"Provide your response in this format:\n\n{blocks}"
    )


def cofounder_profile(style: PersonaStyle, max_items: int = DEFAULT_MAX_ITEMS) -> ToolProfile:
    sections = _STYLE_SECTIONS[style]
    own_labels = {spec.label for spec in sections}
    return ToolProfile(
        name=f"cofounder-{style.value}",
        system_instruction=_system_instruction(style),
        greeting=opening_message(style),
        fallback=fallback_response(_FALLBACK_REPLIES[style], STYLE_FALLBACKS[style]),
        schema=ParseSchema(
            sections=sections,
            boundary_labels=tuple(label for label in _ALL_LABELS if label not in own_labels),
            max_items=max_items,
        ),
        section_fallbacks=STYLE_FALLBACKS[style],
    )


class CofounderSessionManager(SessionManager):
    """Persona conversation; one profile (and usually one session key) per style.

    When no style is passed it is read from a ``cofounder-<style>`` key.
    """

    tool_name = "cofounder"

    def __init__(self, *args, max_items: int = DEFAULT_MAX_ITEMS, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._profiles = {style: cofounder_profile(style, max_items) for style in PersonaStyle}

    @staticmethod
    def style_from_key(key: str) -> Optional[str]:
        prefix = f"{CofounderSessionManager.tool_name}-"
        if not key.startswith(prefix):
            return None
        return key[len(prefix):].split(":", 1)[0]

    def profile_for(self, style: Optional[str] = None) -> ToolProfile:
        return self._profiles[parse_style(style)]

    async def submit_turn(
        self,
        key: str,
        user_text: str,
        style: Optional[str] = None,
        context: Optional[str] = None,
        timeout: float | None = None,
        scenario: Optional[str] = None,
    ) -> Reply:
        parsed = parse_scenario(scenario)
        if context is None:
            context = scenario_context(parsed)
        return await super().submit_turn(
            key,
            user_text,
            style=style or self.style_from_key(key),
            context=context,
            timeout=timeout,
        )

    def reset_session(
        self, key: str, style: Optional[str] = None, scenario: Optional[str] = None
    ) -> str:
        """Clear key's history and return the style's opening line for scenario."""
        persona = parse_style(style or self.style_from_key(key))
        parsed = parse_scenario(scenario)
        self._clear(key)
        return opening_message(persona, parsed)

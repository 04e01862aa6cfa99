from unittest.mock import MagicMock

import pytest

from founderdesk.exceptions import InvalidInput
from founderdesk.models import PersonaStyle, Scenario, StructuredResponse
from founderdesk.services.conversation_store import ConversationStore
from founderdesk.tools.cofounder import (
    DEFAULT_REASONING,
    CofounderSessionManager,
    cofounder_profile,
    opening_message,
    parse_style,
)

ANALYTICAL_REPLY = """RESPONSE:
We have 14 months of runway, so there's no rush.

REASONING:
Burn is flat and revenue grows 8% monthly.

DATA POINTS:
- Runway: 14 months
- MoM growth: 8%
- CAC payback: 7 months
- Churn: 2%

NEXT STEPS:
- Build the investor pipeline
- Update the metrics deck
"""


@pytest.fixture
def cofounder(mock_model: MagicMock) -> CofounderSessionManager:
    """Co-founder manager over a mocked model."""
    return CofounderSessionManager(mock_model, ConversationStore(max_messages=20))


@pytest.mark.asyncio
async def test_analytical_reply_is_parsed(
    cofounder: CofounderSessionManager, mock_model: MagicMock
) -> None:
    """An analytical reply is split into response, reasoning, data points and steps."""
    mock_model.generate.return_value = ANALYTICAL_REPLY
    reply = await cofounder.submit_turn(
        "cofounder-analytical", "Should we raise now?", scenario="fundraising"
    )
    assert isinstance(reply, StructuredResponse)
    assert reply.primary_text == "We have 14 months of runway, so there's no rush."
    assert reply.sections["reasoning"] == "Burn is flat and revenue grows 8% monthly."
    assert reply.sections["data_points"] == (
        "Runway: 14 months",
        "MoM growth: 8%",
        "CAC payback: 7 months",
    )
    assert reply.sections["next_steps"] == (
        "Build the investor pipeline",
        "Update the metrics deck",
    )
    assert set(reply.sections) == {"reasoning", "data_points", "next_steps"}


@pytest.mark.asyncio
async def test_scenario_included_in_prompt(
    cofounder: CofounderSessionManager, mock_model: MagicMock
) -> None:
    """The chosen scenario is described in the prompt."""
    await cofounder.submit_turn("cofounder-pragmatic", "Where do we start?", scenario="hiring")
    prompt = mock_model.generate.call_args.args[0]
    assert "Current scenario: Hiring Decision" in prompt
    assert "NEXT STEPS:" in prompt


@pytest.mark.asyncio
async def test_unlabeled_reply_fills_every_style_section(
    cofounder: CofounderSessionManager, mock_model: MagicMock
) -> None:
    """A reply ignoring the format still carries every section the style expects."""
    mock_model.generate.return_value = "Honestly, I think it's too risky."
    reply = await cofounder.submit_turn("cofounder-devil", "Let's pivot", style="devil")
    assert reply.primary_text == "Honestly, I think it's too risky."
    assert reply.sections["reasoning"] == DEFAULT_REASONING
    assert reply.sections["risks"] == ("Consider potential negative outcomes",)
    assert reply.sections["next_steps"]


@pytest.mark.parametrize(
    "style,extra",
    [
        (PersonaStyle.ANALYTICAL, "data_points"),
        (PersonaStyle.VISIONARY, "opportunities"),
        (PersonaStyle.DEVIL, "risks"),
    ],
)
def test_style_specific_sections(style: PersonaStyle, extra: str) -> None:
    """Each style expects reasoning, next steps and its own extra section."""
    profile = cofounder_profile(style)
    names = {spec.name for spec in profile.schema.sections}
    assert {"primary_text", "reasoning", "next_steps", extra} <= names
    assert isinstance(profile.fallback, StructuredResponse)
    assert set(profile.fallback.sections) == names - {"primary_text"}


def test_pragmatic_has_no_extra_section() -> None:
    """The pragmatic style only expects reasoning and next steps."""
    profile = cofounder_profile(PersonaStyle.PRAGMATIC)
    assert {spec.name for spec in profile.schema.sections} == {
        "primary_text",
        "reasoning",
        "next_steps",
    }


@pytest.mark.asyncio
async def test_styles_keep_separate_histories(
    cofounder: CofounderSessionManager,
) -> None:
    """Each style's key has its own history."""
    await cofounder.submit_turn("cofounder-visionary", "Dream big")
    await cofounder.submit_turn("cofounder-analytical", "Show me numbers")
    assert len(cofounder.get_history("cofounder-visionary")) == 2
    assert len(cofounder.get_history("cofounder-analytical")) == 2


@pytest.mark.asyncio
async def test_reset_returns_scenario_opening(
    cofounder: CofounderSessionManager,
) -> None:
    """reset_session clears history and opens with the scenario's line."""
    await cofounder.submit_turn("cofounder-analytical", "hi")
    greeting = cofounder.reset_session("cofounder-analytical", scenario="fundraising")
    assert greeting.startswith("Let's talk about our fundraising strategy.")
    assert "an analytical approach" in greeting
    assert cofounder.get_history("cofounder-analytical") == ()


def test_opening_message_articles() -> None:
    """Opening lines use the right article for the style name."""
    assert "a devil's advocate approach" in opening_message(PersonaStyle.DEVIL, Scenario.PIVOT)
    assert "a pragmatic approach" in opening_message(PersonaStyle.PRAGMATIC)


def test_parse_style_aliases_and_errors() -> None:
    """Style ids accept the devil's-advocate aliases and reject unknown ids."""
    assert parse_style("devil's-advocate") is PersonaStyle.DEVIL
    assert parse_style("Visionary") is PersonaStyle.VISIONARY
    with pytest.raises(InvalidInput):
        parse_style("optimistic")
    with pytest.raises(InvalidInput):
        parse_style(None)


@pytest.mark.asyncio
async def test_unknown_scenario_rejected(
    cofounder: CofounderSessionManager, mock_model: MagicMock
) -> None:
    """An unknown scenario is invalid input and never reaches the model."""
    with pytest.raises(InvalidInput):
        await cofounder.submit_turn("cofounder-analytical", "hi", scenario="ipo")
    mock_model.generate.assert_not_called()

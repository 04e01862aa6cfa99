from typing import Dict, Optional, Tuple

from ..models import (
    CompetitiveAnalysis,
    MarketAnalysis,
    MarketReport,
    MarketShare,
    SearchResult,
    SectionValue,
    StructuredResponse,
)
from ..services.response_parser import (
    ParseSchema,
    SectionSpec,
    parse_market_share,
    parse_recommendation,
)
from ..settings import Settings, get_settings
from .session_manager import SessionManager, ToolProfile, fallback_response

MARKET_GREETING = (
    "Hi! I'm your Market Research Assistant. Tell me which market, product or "
    "industry you'd like analyzed and I'll map out trends, opportunities and competitors."
)

MARKET_SCHEMA = ParseSchema(
    sections=(
        SectionSpec("key_trends", "Key Trends", "list"),
        SectionSpec("market_insights", "Market Insights", "text"),
        SectionSpec("opportunities", "Opportunities", "list"),
        SectionSpec("threats", "Threats", "list"),
        SectionSpec("recommendations", "Recommendations", "list"),
        SectionSpec("key_players", "Key Players", "list"),
        SectionSpec("market_share", "Market Share", "list"),
        SectionSpec("competitive_advantages", "Competitive Advantages", "list"),
    ),
    boundary_labels=("SEARCH RESULTS", "ANALYSIS", "COMPETITIVE ANALYSIS"),
)

MARKET_FALLBACKS: Dict[str, SectionValue] = {
    "key_trends": (
        "Growing market demand and adoption rates",
        "Increasing investment in innovation and technology",
        "Shift towards digital transformation and automation",
    ),
    "market_insights": (
        "The market shows strong growth potential with increasing adoption across "
        "multiple sectors. Key drivers include technological advancement, changing "
        "consumer preferences, and regulatory support."
    ),
    "opportunities": (
        "Untapped market segments with high growth potential",
        "Strategic partnerships and collaboration opportunities",
        "Technology integration and innovation possibilities",
    ),
    "threats": (
        "Intense competition from established players",
        "Regulatory changes and compliance requirements",
        "Economic uncertainty and market volatility",
    ),
    "recommendations": (
        "Develop strategic partnerships with key industry players - Priority: High - "
        "Rationale: Partnerships can provide access to new markets and shared resources",
        "Invest in technology and innovation capabilities - Priority: High - "
        "Rationale: Technology leadership is crucial for competitive advantage",
        "Explore international market opportunities - Priority: Medium - "
        "Rationale: Geographic diversification can reduce risk and increase growth",
    ),
    "key_players": (
        "Market Leader Corp",
        "Innovation Systems Inc",
        "Global Solutions Ltd",
    ),
    "market_share": (
        "Leader: Market Leader Corp with 35% market share",
        "Challenger: Innovation Systems Inc leading the challenger segment with 18%",
    ),
    "competitive_advantages": (
        "Strong brand recognition and customer loyalty",
        "Advanced technology and R&D capabilities",
        "Extensive distribution networks",
    ),
}

DEFAULT_MARKET_SHARE = MarketShare(
    leader="Market Leader Corp with 35% market share",
    challenger_segment="Innovation Systems Inc leading the challenger segment with 18%",
)

MARKET_FALLBACK = fallback_response(
    str(MARKET_FALLBACKS["market_insights"]), MARKET_FALLBACKS
)


def market_research_profile(settings: Settings | None = None) -> ToolProfile:
    settings = settings or get_settings()
    return ToolProfile(
        name="market_research",
        system_instruction=settings.market_research_system_prompt,
        greeting=MARKET_GREETING,
        fallback=MARKET_FALLBACK,
        schema=MARKET_SCHEMA.with_max_items(settings.parsed_list_max_items),
        section_fallbacks=MARKET_FALLBACKS,
    )


def search_results_for(query: str) -> Tuple[SearchResult, ...]:
    """Reference sources listed alongside every analysis of query."""
    return (
        SearchResult(
            title=f"Market Analysis: {query}",
            source="industry-insights.com",
            summary="Comprehensive market research findings and industry trends analysis based on current data.",
            relevance_score=0.9,
        ),
        SearchResult(
            title=f"{query} - Competitive Landscape",
            source="market-research-pro.com",
            summary="Detailed competitive analysis and market positioning insights for strategic planning.",
            relevance_score=0.85,
        ),
        SearchResult(
            title=f"Future Trends in {query}",
            source="future-markets.org",
            summary="Forward-looking analysis of emerging trends and future opportunities in the sector.",
            relevance_score=0.8,
        ),
    )


def build_report(query: str, response: StructuredResponse) -> MarketReport:
    """Assemble the dashboard's MarketReport from a parsed (or fallback) response."""
    analysis = MarketAnalysis(
        key_trends=response.get_list("key_trends"),
        market_insights=response.get_text("market_insights"),
        opportunities=response.get_list("opportunities"),
        threats=response.get_list("threats"),
        recommendations=tuple(
            parse_recommendation(item) for item in response.get_list("recommendations")
        ),
    )
    competitive = CompetitiveAnalysis(
        key_players=response.get_list("key_players"),
        market_share=parse_market_share(
            response.get_list("market_share"), DEFAULT_MARKET_SHARE
        ),
        competitive_advantages=response.get_list("competitive_advantages"),
    )
    return MarketReport(
        query=query.strip(),
        search_results=search_results_for(query.strip()),
        analysis=analysis,
        competitive_analysis=competitive,
    )


class MarketResearchSessionManager(SessionManager):
    """Structured market analysis; follow-up queries see earlier answers."""

    tool_name = "market_research"

    def __init__(self, *args, profile: ToolProfile | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._profile = profile or market_research_profile()

    def profile_for(self, style: Optional[str] = None) -> ToolProfile:
        return self._profile

    def format_user_text(self, user_text: str) -> str:
        return f"Query to analyze: {user_text}"

    async def analyze(
        self, key: str, query: str, timeout: float | None = None
    ) -> MarketReport:
        """Run a turn for query and return it as a MarketReport."""
        response = await self.submit_turn(key, query, timeout=timeout)
        if isinstance(response, str):
            response = StructuredResponse(primary_text=response)
        return build_report(query, response)

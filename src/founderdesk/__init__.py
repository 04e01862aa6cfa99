"""FounderDesk: mentor, market-research and co-founder AI tools."""

__version__ = "0.1.0"

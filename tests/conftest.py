import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest


_root = Path(__file__).resolve().parents[1]
_src = _root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from founderdesk.services.model_client import ModelClient  # noqa: E402
from founderdesk.settings import Settings  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only (no .env lookups)."""
    return Settings(_env_file=None, genai_api_key="test-key")


@pytest.fixture
def mock_model() -> MagicMock:
    """Mock ModelClient whose generate returns a canned reply."""
    m = MagicMock(spec=ModelClient)
    m.generate = AsyncMock(return_value="Start with linear algebra and Python.")
    return m

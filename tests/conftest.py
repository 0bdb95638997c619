# tests/conftest.py
"""
Pytest Configuration and Fixtures for BeatGuard Tests

Fixtures defined here are available to every test module in tests/.
"""

import sys
from pathlib import Path
from typing import Any, Dict
from unittest.mock import Mock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from beatguard.core import GrammarConfig, DEFAULT_GRAMMAR
from beatguard.deployment import RhythmService
from beatguard.utils import DetectionLogger
from tests.test_utils import TEST_CONFIG


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: unit test")
    config.addinivalue_line("markers", "codec: BEAT and score codec tests")
    config.addinivalue_line("markers", "detection: bot and human detector tests")
    config.addinivalue_line("markers", "reassembly: tab reassembly and aggregation tests")
    config.addinivalue_line("markers", "integration: tests spanning several components")


@pytest.fixture(scope="session")
def grammar() -> GrammarConfig:
    """Default scheme: 100 ms ticks, ! * ~ / ___"""
    return DEFAULT_GRAMMAR


@pytest.fixture(scope="session")
def fast_grammar() -> GrammarConfig:
    """50 ms ticks, so 3 ticks = 150 ms"""
    return GrammarConfig(tick_ms=50)


@pytest.fixture(scope="session")
def fine_grammar() -> GrammarConfig:
    """10 ms ticks"""
    return GrammarConfig(tick_ms=10)


@pytest.fixture(scope="session")
def alt_grammar() -> GrammarConfig:
    """A second glyph set served side by side with the default one"""
    return GrammarConfig(page='#', element='@', time_gap='+', repeat_gap='=',
                         tab_switch='>>', tick_ms=50)


@pytest.fixture
def test_config() -> Dict[str, Any]:
    return {section: dict(values) for section, values in TEST_CONFIG.items()}


@pytest.fixture
def event_logger() -> Mock:
    """Detection logger double; records calls instead of writing logs"""
    return Mock(spec=DetectionLogger)


@pytest.fixture
def rhythm_service(test_config, event_logger) -> RhythmService:
    return RhythmService(test_config, event_logger=event_logger)

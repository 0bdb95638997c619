"""
BeatGuard Agents Package
Pattern detection over decoded BEAT streams.

1. Bot Detection Agent: fixed-priority bank of rhythm heuristics
2. Human Detection Agent: ordered, toggleable personalization rules

Both agents are stateless: one stream in, at most one label out.
"""

from .beat_features import DetectorFeatures, extract_features
from .bot_detection_agent import (
    BotLabel, BotDetectionAgent, BOT_DETECTORS, EXTENSION_DETECTORS, detect_bot, detect_bot_features,
)
from .human_detection_agent import (
    HumanRule,
    HumanDetectionAgent,
    DEFAULT_HUMAN_RULES,
    build_human_rules,
    detect_human,
    rapid_repeat_before,
)

__all__ = [
    'DetectorFeatures',
    'extract_features',
    'BotLabel',
    'BotDetectionAgent',
    'BOT_DETECTORS',
    'EXTENSION_DETECTORS',
    'detect_bot',
    'detect_bot_features',
    'HumanRule',
    'HumanDetectionAgent',
    'DEFAULT_HUMAN_RULES',
    'build_human_rules',
    'detect_human',
    'rapid_repeat_before',
]

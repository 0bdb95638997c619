"""
BeatGuard - Behavioral Rhythm Analysis for Bot and Human Detection
Main package initialization.

Project Structure Explanation:
├── core/        # BEAT grammar, token codec, score codec, exceptions
├── ingestion/   # Fragment records, batch payloads, rhythm cookies
├── session/     # Tab reassembly, metric aggregation, archive records
├── agents/      # Bot detector bank and human rules
├── deployment/  # Live-streaming and archiving passes
└── utils/       # Configuration and logging
"""

# ============================================================================
# VERSION INFORMATION
# ============================================================================
__version__ = "1.0.0"
__author__ = "BeatGuard Team"
__license__ = "AGPL-3.0-or-later"

# ============================================================================
# CORE EXPORTS
# ============================================================================
from .core import (
    GrammarConfig,
    DEFAULT_GRAMMAR,
    Page,
    Element,
    TimeGap,
    RepeatGap,
    TabSwitch,
    decode_beat,
    encode_beat,
    format_readable,
    SessionScore,
    parse_score,
    serialize_score,
    update_score,
    BeatGuardError,
    FormatError,
    ScoreFormatError,
    ConfigurationError,
)

# ============================================================================
# INGESTION / SESSION / DETECTION EXPORTS
# ============================================================================
from .ingestion import TabFragment, parse_fragment_record, parse_batch
from .session import MergedSession, ReassemblyAnomaly, reassemble, aggregate_metrics, to_archive_record
from .agents import BotLabel, detect_bot, detect_human, BotDetectionAgent, HumanDetectionAgent
from .deployment import RhythmService, scan_cookies

__all__ = [
    # Grammar and codec
    'GrammarConfig', 'DEFAULT_GRAMMAR',
    'Page', 'Element', 'TimeGap', 'RepeatGap', 'TabSwitch',
    'decode_beat', 'encode_beat', 'format_readable',
    # Score
    'SessionScore', 'parse_score', 'serialize_score', 'update_score',
    # Errors
    'BeatGuardError', 'FormatError', 'ScoreFormatError', 'ConfigurationError',
    # Fragments and sessions
    'TabFragment', 'parse_fragment_record', 'parse_batch',
    'MergedSession', 'ReassemblyAnomaly', 'reassemble', 'aggregate_metrics', 'to_archive_record',
    # Detection
    'BotLabel', 'detect_bot', 'detect_human', 'BotDetectionAgent', 'HumanDetectionAgent',
    # Service
    'RhythmService', 'scan_cookies',
]

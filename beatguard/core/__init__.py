"""
BeatGuard core: BEAT grammar, token codec and session score codec.

Everything in this package is pure and synchronous.
"""

from .exceptions import BeatGuardError, FormatError, ScoreFormatError, ConfigurationError
from .grammar import GrammarConfig, DEFAULT_GRAMMAR
from .beat_codec import (
    Page,
    Element,
    TimeGap,
    RepeatGap,
    TabSwitch,
    BeatToken,
    BeatStream,
    decode_beat,
    encode_beat,
    format_readable,
    ticks_to_seconds,
)
from .score_codec import (
    SessionScore,
    parse_score,
    serialize_score,
    extract_score_cookie,
    update_security,
    update_personalization,
    update_score,
    new_score,
)

__all__ = [
    'BeatGuardError', 'FormatError', 'ScoreFormatError', 'ConfigurationError',
    'GrammarConfig', 'DEFAULT_GRAMMAR',
    'Page', 'Element', 'TimeGap', 'RepeatGap', 'TabSwitch', 'BeatToken', 'BeatStream',
    'decode_beat', 'encode_beat', 'format_readable', 'ticks_to_seconds',
    'SessionScore', 'parse_score', 'serialize_score', 'extract_score_cookie',
    'update_security', 'update_personalization', 'update_score', 'new_score',
]

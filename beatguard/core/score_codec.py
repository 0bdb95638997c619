# beatguard/core/score_codec.py
"""
Session Score Codec

The score value travels between client and server as a cookie:

    <security><flags...>_<time>_<hash>___<tabs>
    0000000000_1735680000_x7n4kb2p___2

The first digit is the security level (0=pass, 1=challenge, 2=block), the
following fixed-width digits are personalization flags (0=off, 1=on,
2=client-side one-time marker). Time and hash may be empty but their
underscore positions are always present.
"""

import re
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from .exceptions import ScoreFormatError

MAX_SECURITY_LEVEL = 2          # Block
DEFAULT_FLAG_COUNT = 9          # Personalization positions 1..9
FLAG_OFF = 0
FLAG_ON = 1
FLAG_ONE_TIME = 2               # Reserved for the client, never set by the server

SCORE_COOKIE_PATTERN = re.compile(r'(?:^|;)\s*score=([^;]+)')


@dataclass(frozen=True)
class SessionScore:
    """Parsed score state value"""
    security_level: int
    flags: Tuple[int, ...]
    session_time: str = ''
    session_hash: str = ''
    tab_count: str = '1'

    def __post_init__(self):
        object.__setattr__(self, 'flags', tuple(self.flags))
        object.__setattr__(self, 'tab_count', str(self.tab_count))

    @property
    def field(self) -> str:
        """Security digit followed by the flag digits (e.g. ``0100000000``)"""
        return str(self.security_level) + ''.join(str(flag) for flag in self.flags)

    def serialize(self) -> str:
        return serialize_score(self)


def _score_pattern(flag_count: int) -> "re.Pattern":
    return re.compile(
        r'^([0-2])'                          # Security level
        + r'([0-2]{%d})' % flag_count        # Personalization flags
        + r'_([^_]*)'                        # Session time (may be empty)
        + r'_([^_]*)'                        # Session hash (may be empty)
        + r'___(\d+)$'                       # Tab count
    )


def parse_score(raw: str, flag_count: int = DEFAULT_FLAG_COUNT) -> SessionScore:
    """
    Parse the score state value

    Args:
        raw: Cookie value, e.g. ``0000000000_1735680000_x7n4kb2p___2``
        flag_count: Width of the personalization flag array

    Returns:
        SessionScore

    Raises:
        ScoreFormatError: Value does not match the fixed layout
    """
    if not isinstance(raw, str):
        raise ScoreFormatError(f"Score value must be a string, got {type(raw).__name__}")

    match = _score_pattern(flag_count).match(raw.strip())
    if not match:
        raise ScoreFormatError(f"Malformed score value: {raw!r}")

    security, flags, session_time, session_hash, tab_count = match.groups()
    return SessionScore(
        security_level=int(security),
        flags=tuple(int(digit) for digit in flags),
        session_time=session_time,
        session_hash=session_hash,
        tab_count=tab_count,
    )


def serialize_score(score: SessionScore) -> str:
    """Serialize back to the exact wire layout (leading zeros preserved)"""
    return f"{score.field}_{score.session_time}_{score.session_hash}___{score.tab_count}"


def extract_score_cookie(cookie_header: str) -> Optional[str]:
    """Return the raw ``score=`` cookie value from a Cookie header, if present"""
    match = SCORE_COOKIE_PATTERN.search(cookie_header or '')
    return match.group(1).strip() if match else None


def update_security(score: SessionScore, hit: bool) -> SessionScore:
    """
    Escalate the security level on a bot hit

    The level increments by one and saturates at 2; it is never decremented.
    """
    if not hit:
        return score
    return replace(score, security_level=min(score.security_level + 1, MAX_SECURITY_LEVEL))


def update_personalization(score: SessionScore, flag_index: int, hit: bool) -> SessionScore:
    """
    Turn on a personalization flag

    Args:
        score: Current score
        flag_index: 1-based flag position
        hit: Whether the human rule matched

    Returns:
        Updated score; unchanged unless hit and the flag is currently 0
    """
    if not 1 <= flag_index <= len(score.flags):
        raise ValueError(f"Flag index {flag_index} outside 1..{len(score.flags)}")
    if not hit or score.flags[flag_index - 1] != FLAG_OFF:
        return score

    flags = list(score.flags)
    flags[flag_index - 1] = FLAG_ON
    return replace(score, flags=tuple(flags))


def update_score(score: SessionScore, bot_hit: bool,
                 human_flag: Optional[int] = None) -> SessionScore:
    """Apply both update rules for one request"""
    score = update_security(score, bot_hit)
    if human_flag is not None:
        score = update_personalization(score, human_flag, True)
    return score


def new_score(flag_count: int = DEFAULT_FLAG_COUNT,
              session_time: str = '', session_hash: str = '',
              tab_count: Union[int, str] = 1) -> SessionScore:
    """Fresh score with security level 0 and all flags off"""
    return SessionScore(0, (FLAG_OFF,) * flag_count, session_time, session_hash, str(tab_count))

# beatguard/ingestion/fragment_parser.py
"""
Fragment Record Parser for BeatGuard
Parses per-tab telemetry fragments from cookies and batch payloads

Fragment record (underscore-delimited):

    echoFlag_[time]_[hash]_device_referrer_scrolls_clicks_duration_<BEAT...>

Batch payload: ``rhythm_<tabId>=<record>`` blocks, each ending where the
next ``rhythm_`` begins or the payload ends.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple

from ..core.beat_codec import BeatToken, decode_beat
from ..core.exceptions import FormatError
from ..core.grammar import GrammarConfig, DEFAULT_GRAMMAR

logger = logging.getLogger(__name__)

# Number of underscore-delimited header fields in front of the BEAT part
HEADER_FIELDS = 8

# Compiled regex for payload splitting
BATCH_BLOCK_PATTERN = re.compile(r'rhythm_(\d+)=(.*?)(?=rhythm_|$)', re.DOTALL)
COOKIE_FRAGMENT_PATTERN = re.compile(r'rhythm_(\d+)=([^;]+)')
LOG_HEADER_PATTERN = re.compile(r'rhythm_(\d+)=(\d*)_([^_;]*)_([^_;]*)_')


@dataclass(frozen=True)
class TabFragment:
    """One browser tab's partial beat stream plus its interaction counters"""
    tab_id: str                          # Tab identifier (digits)
    device: int = 0                      # 0=desktop, 1=mobile, 2=tablet
    referrer: int = 0                    # 0=direct, 1=internal, 2=unknown, 3+=mapped
    scrolls: int = 0
    clicks: int = 0
    duration: int = 0                    # Ticks
    session_time: str = ''
    session_hash: str = ''
    echo: str = ''                       # Echo flag field as sent by the client
    beat: Tuple[BeatToken, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'tab_id', str(self.tab_id))
        object.__setattr__(self, 'beat', tuple(self.beat))


def _parse_counter(value: str, name: str) -> int:
    """Empty counters count as zero; anything else must be a plain integer"""
    value = value.strip()
    if not value:
        return 0
    if not value.isdigit() or not value.isascii():
        raise FormatError(f"Counter '{name}' is not numeric: {value!r}")
    return int(value)


def parse_fragment_record(tab_id: str, record: str,
                          grammar: GrammarConfig = DEFAULT_GRAMMAR) -> TabFragment:
    """
    Parse one fragment record

    Args:
        tab_id: Tab identifier taken from the ``rhythm_<tabId>`` key
        record: Underscore-delimited record
        grammar: Encoding scheme of the BEAT part

    Returns:
        TabFragment with a decoded beat

    Raises:
        FormatError: Non-numeric counter or malformed BEAT part
    """
    parts = record.strip().split('_')
    header = parts[:HEADER_FIELDS] + [''] * (HEADER_FIELDS - len(parts[:HEADER_FIELDS]))
    beat_raw = '_'.join(parts[HEADER_FIELDS:])

    echo, session_time, session_hash = header[0], header[1], header[2]
    try:
        beat = decode_beat(beat_raw, grammar)
    except FormatError as e:
        raise FormatError(f"Tab {tab_id}: {e}") from e

    return TabFragment(
        tab_id=str(tab_id),
        device=_parse_counter(header[3], 'device'),
        referrer=_parse_counter(header[4], 'referrer'),
        scrolls=_parse_counter(header[5], 'scrolls'),
        clicks=_parse_counter(header[6], 'clicks'),
        duration=_parse_counter(header[7], 'duration'),
        session_time=session_time,
        session_hash=session_hash,
        echo=echo,
        beat=beat,
    )


def split_batch(payload: str) -> Iterator[Tuple[str, str]]:
    """Yield (tab_id, record) for every ``rhythm_`` block of a batch payload"""
    for match in BATCH_BLOCK_PATTERN.finditer(payload or ''):
        # Blocks may be joined with '&', ';' or newlines
        yield match.group(1), match.group(2).strip().rstrip('&;').strip()


def parse_batch(payload: str, grammar: GrammarConfig = DEFAULT_GRAMMAR) -> Dict[str, TabFragment]:
    """
    Parse a batch payload into tab id -> TabFragment

    A malformed fragment fails the whole batch with FormatError so that it is
    never merged into a session.
    """
    fragments: Dict[str, TabFragment] = {}
    for tab_id, record in split_batch(payload):
        if tab_id in fragments:
            logger.warning(f"Duplicate fragment for tab {tab_id}; keeping the later one")
        fragments[tab_id] = parse_fragment_record(tab_id, record, grammar)

    logger.debug(f"Parsed batch with {len(fragments)} fragment(s)")
    return fragments


def iter_cookie_fragments(cookie_header: str) -> Iterator[Tuple[str, str]]:
    """Yield (tab_id, record) for every ``rhythm_<n>`` cookie in a Cookie header"""
    for match in COOKIE_FRAGMENT_PATTERN.finditer(cookie_header or ''):
        yield match.group(1), match.group(2).strip()


def redact_rhythm_log(cookie_header: str, include_time: bool = False,
                      include_hash: bool = False) -> str:
    """
    Blank the time and hash fields of every rhythm cookie before logging

    Args:
        cookie_header: Raw Cookie header text
        include_time: Keep the time field
        include_hash: Keep the hash field

    Returns:
        Cookie text safe for the streaming log
    """
    def _redact(match: "re.Match") -> str:
        tab_id, echo, session_time, session_hash = match.groups()
        session_time = session_time if include_time else ''
        session_hash = session_hash if include_hash else ''
        return f"rhythm_{tab_id}={echo}_{session_time}_{session_hash}_"

    return LOG_HEADER_PATTERN.sub(_redact, cookie_header or '')

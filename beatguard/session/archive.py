# beatguard/session/archive.py
"""
Archive record renderer.

Turns a MergedSession into the record pushed to log storage: duration and
gap payloads in seconds (one decimal), time/hash only when enabled, and the
beat optionally spaced for readability. The record is for humans and
downstream analytics; it is not meant to be decoded again.
"""

import json
from typing import Any, Dict

from ..core.beat_codec import format_readable
from ..core.grammar import GrammarConfig, DEFAULT_GRAMMAR
from .reassembler import MergedSession


def to_archive_record(session: MergedSession,
                      grammar: GrammarConfig = DEFAULT_GRAMMAR,
                      include_time: bool = False,
                      include_hash: bool = False,
                      spaced: bool = True) -> Dict[str, Any]:
    """
    Build the archive record for a merged session

    Args:
        session: Result of reassemble()
        grammar: Grammar used for glyphs and tick conversion
        include_time: Keep the anchor's session time (if non-empty)
        include_hash: Keep the anchor's session hash (if non-empty)
        spaced: Space out the beat text

    Returns:
        Ordered dict: [time], [hash], device, referrer, scrolls, clicks,
        duration, beat
    """
    record: Dict[str, Any] = {}
    if include_time and session.session_time:
        record['time'] = session.session_time
    if include_hash and session.session_hash:
        record['hash'] = session.session_hash

    record['device'] = session.device
    record['referrer'] = session.referrer
    record['scrolls'] = session.total_scrolls
    record['clicks'] = session.total_clicks
    record['duration'] = round(grammar.ticks_to_seconds(session.total_duration), 1)
    record['beat'] = format_readable(session.merged_beat, grammar, spaced=spaced)
    return record


def dumps_record(record: Dict[str, Any]) -> str:
    """Serialize one archive record as an NDJSON line"""
    return json.dumps(record, ensure_ascii=False, separators=(',', ':'))

# tests/test_utils.py
"""
Shared builders for BeatGuard tests.

Builds BEAT strings, fragment records, batch payloads and cookie headers so
individual tests only spell out what they care about.
"""

from typing import Dict, Iterable, Optional, Sequence

# Partial configuration used by service tests; merged over the defaults
TEST_CONFIG = {
    'streaming': {'log': False, 'time': False, 'hash': False, 'bot': True, 'human': True},
    'archiving': {'log': True, 'time': False, 'hash': False, 'space': True},
    'logging': {'level': 'DEBUG', 'file': None, 'json': False},
}

# Gap values without any run, trend or ratio that a bot detector would flag
IRREGULAR_GAPS = [13, 27, 8, 45, 19, 33, 61, 22, 17, 40,
                  11, 29, 53, 24, 36, 9, 48, 15, 31, 26]

EMPTY_SCORE = '0000000000_____1'


def build_beat(gaps: Iterable[int], labels: Optional[Sequence[str]] = None,
               page: str = 'home') -> str:
    """``!page`` followed by ``~gap*label`` pairs (label defaults to ``btn``)"""
    gaps = list(gaps)
    labels = list(labels) if labels is not None else ['btn'] * len(gaps)
    return f"!{page}" + ''.join(f"~{gap}*{label}" for gap, label in zip(gaps, labels))


def build_fragment_record(beat: str, echo: str = '0', session_time: str = '',
                          session_hash: str = '', device='0', referrer='0',
                          scrolls='0', clicks='0', duration='0') -> str:
    """Underscore-delimited fragment record"""
    fields = [echo, session_time, session_hash, device, referrer, scrolls, clicks, duration, beat]
    return '_'.join(str(value) for value in fields)


def build_batch(records: Dict[str, str], separator: str = '') -> str:
    """``rhythm_<tab>=<record>`` blocks in dict order"""
    return separator.join(f"rhythm_{tab_id}={record}" for tab_id, record in records.items())


def build_cookie_header(records: Dict[str, str], score: Optional[str] = EMPTY_SCORE) -> str:
    cookies = []
    if score is not None:
        cookies.append(f"score={score}")
    cookies.extend(f"rhythm_{tab_id}={record}" for tab_id, record in records.items())
    return '; '.join(cookies)

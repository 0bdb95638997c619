# beatguard/core/beat_codec.py
"""
BEAT Tokenizer / Decoder / Encoder
Purpose: Converts the compact behavioral encoding into typed tokens and back

A BEAT string is a chronological sequence of interactions recorded by the
client, for example::

    !home~237*nav-2~19*help~12/3/3*help___2

    !home      page "home" opened
    ~237       237 ticks until the next event
    *nav-2     element "nav-2" selected
    /3         same element selected again 3 ticks later
    ___2       user switched to tab 2

Numeric payloads are tick counts. Converting ticks to wall-clock time is the
caller's job (see GrammarConfig.ticks_to_seconds); tokens always keep ticks.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .exceptions import FormatError
from .grammar import GrammarConfig, DEFAULT_GRAMMAR

logger = logging.getLogger(__name__)


# ============================================================================
# TOKEN TYPES
# ============================================================================

@dataclass(frozen=True)
class Page:
    """Page opened (page-start symbol followed by a label)"""
    label: str


@dataclass(frozen=True)
class Element:
    """Element selected; labels may carry a numeric DOM-depth prefix (e.g. 7div1)"""
    label: str


@dataclass(frozen=True)
class TimeGap:
    """Ticks elapsed since the previous event"""
    ticks: int


@dataclass(frozen=True)
class RepeatGap:
    """Ticks between repeated selections of the same element"""
    ticks: int


@dataclass(frozen=True)
class TabSwitch:
    """Switch to another tab; target keeps the digits exactly as recorded"""
    target: str

    def __post_init__(self):
        # Accept TabSwitch(2) as shorthand for TabSwitch("2")
        if isinstance(self.target, int) and not isinstance(self.target, bool):
            object.__setattr__(self, 'target', str(self.target))


BeatToken = Union[Page, Element, TimeGap, RepeatGap, TabSwitch]
BeatStream = List[BeatToken]

GAP_TYPES = (TimeGap, RepeatGap)


# ============================================================================
# DECODING
# ============================================================================

def _glyph_table(grammar: GrammarConfig) -> List[Tuple[str, str]]:
    # Longest glyph first so a multi-character glyph wins over its prefix
    return sorted(grammar.symbols().items(), key=lambda item: -len(item[1]))


def _glyph_at(raw: str, position: int, table: Sequence[Tuple[str, str]]) -> Optional[Tuple[str, str]]:
    for role, glyph in table:
        if raw.startswith(glyph, position):
            return role, glyph
    return None


def _split_units(raw: str, grammar: GrammarConfig) -> List[Tuple[str, str]]:
    """
    Split a BEAT string into (role, payload) units

    Args:
        raw: BEAT string
        grammar: Grammar providing the glyphs

    Returns:
        List of (role, payload) tuples in string order
    """
    table = _glyph_table(grammar)
    units = []
    position = 0
    length = len(raw)

    while position < length:
        match = _glyph_at(raw, position, table)
        if match is None:
            # Only reachable for text in front of the first glyph
            raise FormatError(
                f"BEAT must start with page symbol {grammar.page!r}: {raw[:20]!r}"
            )
        role, glyph = match
        start = position + len(glyph)
        end = start
        while end < length and _glyph_at(raw, end, table) is None:
            end += 1
        units.append((role, raw[start:end]))
        position = end

    return units


def _parse_ticks(payload: str, role: str, grammar: GrammarConfig) -> int:
    if not payload or not payload.isdigit() or not payload.isascii():
        glyph = grammar.symbols()[role]
        raise FormatError(f"Non-numeric duration payload {glyph}{payload!r}")
    return int(payload)


def decode_beat(raw: str, grammar: GrammarConfig = DEFAULT_GRAMMAR) -> BeatStream:
    """
    Decode a BEAT string into an ordered token stream

    Args:
        raw: BEAT string as recorded by the client
        grammar: Encoding scheme of the string

    Returns:
        List of BeatToken

    Raises:
        FormatError: Empty input, missing leading page symbol, non-numeric
            gap payload, non-numeric tab-switch target, or a repeat gap that
            does not follow another gap
    """
    if not isinstance(raw, str) or not raw:
        raise FormatError("BEAT string is empty")

    units = _split_units(raw, grammar)
    # A longer glyph may share its first characters with the page glyph
    if units[0][0] != 'page':
        raise FormatError(
            f"BEAT must start with page symbol {grammar.page!r}: {raw[:20]!r}"
        )

    stream: BeatStream = []
    for role, payload in units:
        if role == 'page':
            stream.append(Page(payload))
        elif role == 'element':
            stream.append(Element(payload))
        elif role == 'time_gap':
            stream.append(TimeGap(_parse_ticks(payload, role, grammar)))
        elif role == 'repeat_gap':
            if not stream or not isinstance(stream[-1], GAP_TYPES):
                raise FormatError(
                    f"Repeat gap {grammar.repeat_gap}{payload} must follow a time gap"
                )
            stream.append(RepeatGap(_parse_ticks(payload, role, grammar)))
        else:
            if not payload or not payload.isdigit() or not payload.isascii():
                raise FormatError(f"Tab switch target must be numeric: {grammar.tab_switch}{payload!r}")
            stream.append(TabSwitch(payload))

    return stream


# ============================================================================
# ENCODING
# ============================================================================

def _encode_token(token: BeatToken, grammar: GrammarConfig) -> str:
    if isinstance(token, Page):
        return grammar.page + token.label
    if isinstance(token, Element):
        return grammar.element + token.label
    if isinstance(token, TimeGap):
        return grammar.time_gap + str(token.ticks)
    if isinstance(token, RepeatGap):
        return grammar.repeat_gap + str(token.ticks)
    if isinstance(token, TabSwitch):
        return grammar.tab_switch + token.target
    raise FormatError(f"Unknown BEAT token: {token!r}")


def encode_beat(stream: Sequence[BeatToken], grammar: GrammarConfig = DEFAULT_GRAMMAR) -> str:
    """
    Encode a token stream back into its BEAT string

    decode_beat(encode_beat(stream)) == stream for every stream produced by
    decode_beat.
    """
    return ''.join(_encode_token(token, grammar) for token in stream)


def format_readable(stream: Sequence[BeatToken],
                    grammar: GrammarConfig = DEFAULT_GRAMMAR,
                    spaced: bool = True) -> str:
    """
    Render a stream for archives: gaps in seconds, optionally spaced

    Args:
        stream: Decoded tokens
        grammar: Grammar providing glyphs and tick length
        spaced: Put a space before page, time-gap, element and tab-switch
            symbols (repeat gaps stay attached to their time gap)

    Returns:
        Human-readable BEAT text, e.g. ``!home ~23.7 *nav-2 ___2``
    """
    parts = []
    for token in stream:
        if isinstance(token, GAP_TYPES):
            glyph = grammar.time_gap if isinstance(token, TimeGap) else grammar.repeat_gap
            text = f"{glyph}{grammar.ticks_to_seconds(token.ticks):.1f}"
        else:
            text = _encode_token(token, grammar)

        if spaced and not isinstance(token, RepeatGap):
            text = ' ' + text
        parts.append(text)

    return ''.join(parts).lstrip(' ')


def ticks_to_seconds(ticks: int, grammar: GrammarConfig = DEFAULT_GRAMMAR) -> float:
    return grammar.ticks_to_seconds(ticks)

"""Parsing of fragment records, batch payloads and rhythm cookies."""

from .fragment_parser import (
    TabFragment,
    parse_fragment_record,
    parse_batch,
    split_batch,
    iter_cookie_fragments,
    redact_rhythm_log,
)

__all__ = [
    'TabFragment',
    'parse_fragment_record',
    'parse_batch',
    'split_batch',
    'iter_cookie_fragments',
    'redact_rhythm_log',
]

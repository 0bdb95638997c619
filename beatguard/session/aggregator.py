# beatguard/session/aggregator.py
"""
Metric Aggregator
Sums per-fragment interaction counters into session totals.

Every fragment in the batch contributes, whether or not the reassembler
reaches its tab: an unreached tab still produced real browser events.
"""

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class SessionTotals:
    scrolls: int = 0
    clicks: int = 0
    duration: int = 0        # Ticks


def aggregate_metrics(fragments: Iterable) -> SessionTotals:
    """
    Sum scrolls, clicks and duration across fragments

    Args:
        fragments: TabFragment objects (missing counters count as zero)

    Returns:
        SessionTotals
    """
    scrolls = clicks = duration = 0
    for fragment in fragments:
        scrolls += getattr(fragment, 'scrolls', 0) or 0
        clicks += getattr(fragment, 'clicks', 0) or 0
        duration += getattr(fragment, 'duration', 0) or 0
    return SessionTotals(scrolls=scrolls, clicks=clicks, duration=duration)

# beatguard/agents/beat_features.py
"""
Detector input features.

Derived once per decoded stream and shared by every bot detector so the
detectors themselves stay pure scans over plain sequences.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..core.beat_codec import BeatToken, Page, Element, TimeGap, GAP_TYPES

DEPTH_PREFIX = re.compile(r'^(\d+)')


@dataclass
class DetectorFeatures:
    """Sequences pulled out of a BeatStream, in stream order"""
    gap_runs: List[List[int]] = field(default_factory=list)  # Adjacent gaps (time and repeat), ticks
    time_gaps: List[int] = field(default_factory=list)       # Time gaps only, ticks
    depths: List[int] = field(default_factory=list)          # DOM depth of elements that encode one
    element_labels: List[str] = field(default_factory=list)
    page_labels: List[str] = field(default_factory=list)
    tail_element: Optional[str] = None                       # Last element, if only time gaps follow it
    tail_gaps: List[int] = field(default_factory=list)       # Gap run directly before tail_element


def element_depth(label: str):
    """Numeric DOM-depth prefix of an element label (``7div1`` -> 7), or None"""
    match = DEPTH_PREFIX.match(label)
    return int(match.group(1)) if match else None


def _tail(stream: Sequence[BeatToken]) -> Tuple[Optional[str], List[int]]:
    end = len(stream) - 1
    while end >= 0 and isinstance(stream[end], TimeGap):
        end -= 1
    if end < 0 or not isinstance(stream[end], Element):
        return None, []

    start = end
    while start > 0 and isinstance(stream[start - 1], GAP_TYPES):
        start -= 1
    return stream[end].label, [gap.ticks for gap in stream[start:end]]


def extract_features(stream: Sequence[BeatToken]) -> DetectorFeatures:
    features = DetectorFeatures()
    previous = None
    for token in stream:
        if isinstance(token, GAP_TYPES):
            # Any page, element or switch in between starts a new run
            if not isinstance(previous, GAP_TYPES):
                features.gap_runs.append([])
            features.gap_runs[-1].append(token.ticks)
            if isinstance(token, TimeGap):
                features.time_gaps.append(token.ticks)
        elif isinstance(token, Element):
            features.element_labels.append(token.label)
            depth = element_depth(token.label)
            if depth is not None:
                features.depths.append(depth)
        elif isinstance(token, Page):
            features.page_labels.append(token.label)
        previous = token

    features.tail_element, features.tail_gaps = _tail(stream)
    return features

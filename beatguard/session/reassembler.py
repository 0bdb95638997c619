# beatguard/session/reassembler.py
"""
Tab Reassembler
Purpose: Merges per-tab fragments into one chronological activity timeline

Each tab submits its own fragment. Tab-switch tokens point at the tab the
user moved to; following them from the anchor tab rebuilds the cross-tab
timeline. A tab can be left and revisited, so every tab keeps an integer
read cursor and a revisit continues where the previous visit stopped.

Traversal is a bounded loop over an arena of fragments: at most
sum(len(fragment.beat)) steps are taken, so cyclic or malformed switch
graphs always terminate.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from ..core.beat_codec import BeatToken, TabSwitch
from ..core.exceptions import FormatError
from ..ingestion.fragment_parser import TabFragment
from .aggregator import SessionTotals, aggregate_metrics

logger = logging.getLogger(__name__)


class ReassemblyAnomaly(Enum):
    """Non-fatal stopping conditions; the flow collected so far is kept"""
    MISSING_TAB = "missing_tab"          # Switch target not in the batch
    BOUND_REACHED = "bound_reached"      # Step bound hit before a natural end


@dataclass(frozen=True)
class MergedSession:
    """Derived cross-tab session, discarded after reporting"""
    device: int
    referrer: int
    total_scrolls: int
    total_clicks: int
    total_duration: int                                  # Ticks
    merged_beat: Tuple[BeatToken, ...]
    anchor_tab: str = '1'
    session_time: str = ''
    session_hash: str = ''
    visit_order: Tuple[str, ...] = field(default_factory=tuple)
    anomaly: Optional[ReassemblyAnomaly] = None


@dataclass
class TraversalResult:
    flow: List[BeatToken]
    visit_order: List[str]
    anomaly: Optional[ReassemblyAnomaly] = None


def select_anchor(tab_ids) -> str:
    """
    Pick the reassembly anchor: the lowest numeric tab id

    Raises:
        ValueError: No tab ids given
        FormatError: A tab id is not made of ASCII digits
    """
    tab_ids = [str(tab_id) for tab_id in tab_ids]
    if not tab_ids:
        raise ValueError("Cannot select an anchor tab from an empty batch")
    invalid = [tab_id for tab_id in tab_ids if not (tab_id.isdigit() and tab_id.isascii())]
    if invalid:
        raise FormatError(f"Tab ids must be numeric: {sorted(invalid)}")
    return min(tab_ids, key=lambda tab_id: (int(tab_id), tab_id))


def traverse(fragments: Mapping[str, TabFragment], anchor_tab: str) -> TraversalResult:
    """
    Follow tab switches from the anchor and collect the global flow

    Args:
        fragments: Tab id -> fragment
        anchor_tab: Tab where reconstruction begins

    Returns:
        TraversalResult with the flow, the visited tabs in order and the
        anomaly that stopped traversal, if any
    """
    cursors: Dict[str, int] = {tab_id: 0 for tab_id in fragments}
    bound = sum(len(fragment.beat) for fragment in fragments.values())

    flow: List[BeatToken] = []
    visit_order: List[str] = [anchor_tab]
    active = anchor_tab
    steps = 0

    while True:
        fragment = fragments.get(active)
        if fragment is None:
            logger.debug(f"Switch target tab {active} missing from batch; stopping")
            return TraversalResult(flow, visit_order, ReassemblyAnomaly.MISSING_TAB)

        position = cursors[active]
        if position >= len(fragment.beat):
            return TraversalResult(flow, visit_order)

        if steps >= bound:
            logger.debug(f"Reassembly bound of {bound} steps reached; stopping")
            return TraversalResult(flow, visit_order, ReassemblyAnomaly.BOUND_REACHED)

        token = fragment.beat[position]
        cursors[active] = position + 1
        flow.append(token)
        steps += 1

        if isinstance(token, TabSwitch):
            active = token.target
            visit_order.append(active)


def reassemble(fragments: Mapping[str, TabFragment],
               anchor_tab: Optional[str] = None) -> MergedSession:
    """
    Merge a batch of tab fragments into one session

    Args:
        fragments: Tab id -> fragment
        anchor_tab: Starting tab; defaults to the lowest numeric tab id

    Returns:
        MergedSession. Counters are summed over every fragment in the batch,
        including tabs the traversal never reached; device, referrer, time
        and hash come from the anchor only.

    Raises:
        ValueError: Empty batch or anchor not in the batch
        FormatError: Non-numeric tab id when no anchor is given
    """
    if not fragments:
        raise ValueError("Cannot reassemble an empty batch")

    anchor_tab = select_anchor(fragments) if anchor_tab is None else str(anchor_tab)
    if anchor_tab not in fragments:
        raise ValueError(f"Anchor tab {anchor_tab} is not in the batch")

    result = traverse(fragments, anchor_tab)
    totals: SessionTotals = aggregate_metrics(fragments.values())
    leader = fragments[anchor_tab]

    unvisited = set(fragments) - set(result.visit_order)
    if unvisited:
        logger.debug(f"Tabs never reached by traversal: {sorted(unvisited)}")

    return MergedSession(
        device=leader.device,
        referrer=leader.referrer,
        total_scrolls=totals.scrolls,
        total_clicks=totals.clicks,
        total_duration=totals.duration,
        merged_beat=tuple(result.flow),
        anchor_tab=anchor_tab,
        session_time=leader.session_time,
        session_hash=leader.session_hash,
        visit_order=tuple(result.visit_order),
        anomaly=result.anomaly,
    )

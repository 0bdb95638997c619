# beatguard/agents/bot_detection_agent.py
"""
Bot Detection Agent
Purpose: Detects automated traffic from the rhythm of a decoded BEAT stream
Techniques: Timing analysis, sequence regularity, navigation and DOM-depth statistics

Detectors run in a fixed priority order and the first match wins:

1. MachineGun  - 10+ consecutive time gaps of 200 ms or less
2. Metronome   - the same value 8+ times in one run of adjacent gaps
3. NoVariance  - std-dev under 200 ms while the mean is above 1 s
4. Arithmetic  - constant non-zero step between time gaps
5. Geometric   - constant ratio between time gaps
6. PingPong    - A-B-A-B-A-B page bounce
7. Surface     - 90%+ of clicks at DOM depth 2 or less
8. Monotonous  - under 15% distinct element labels across 20+ clicks

Extension detectors (BotExample) are off by default and run after the bank.
"""

# Import standard Python libraries
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np  # Numerical computing for timing statistics

from ..core.beat_codec import BeatToken
from ..core.grammar import GrammarConfig, DEFAULT_GRAMMAR
from .beat_features import DetectorFeatures, extract_features

logger = logging.getLogger(__name__)

# Detection thresholds
MACHINE_GUN_MAX_GAP_MS = 200     # A gap this short or shorter is machine-fast
MACHINE_GUN_MIN_RUN = 10
METRONOME_MIN_REPEATS = 8
NO_VARIANCE_MAX_STD_MS = 200
NO_VARIANCE_MIN_MEAN_MS = 1000
SEQUENCE_MIN_POINTS = 4          # Arithmetic, Geometric and NoVariance
GEOMETRIC_TOLERANCE = 0.01
PING_PONG_MIN_PAGES = 6          # Three full A-B cycles
SURFACE_MIN_ELEMENTS = 10
SURFACE_MAX_DEPTH = 2
SURFACE_MIN_RATIO = 0.9
MONOTONOUS_MIN_ELEMENTS = 20
MONOTONOUS_MAX_DIVERSITY = 0.15
RAPID_TAP_TARGET = 'are-you-human'  # BotExample extension
RAPID_TAP_MAX_MS = 400
RAPID_TAP_MIN_COUNT = 3


@dataclass(frozen=True)
class BotLabel:
    """Detected bot pattern; str() gives the wire form ``Name:evidence``"""
    name: str
    evidence: str

    def __str__(self) -> str:
        return f"{self.name}:{self.evidence}"


# ============================================================================
# DETECTORS
# ============================================================================

def detect_machine_gun(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """Longest run of consecutive fast time gaps"""
    gaps = features.time_gaps
    if len(gaps) < MACHINE_GUN_MIN_RUN:
        return None

    longest = run = 0
    for ticks in gaps:
        run = run + 1 if grammar.ticks_to_ms(ticks) <= MACHINE_GUN_MAX_GAP_MS else 0
        longest = max(longest, run)

    if longest >= MACHINE_GUN_MIN_RUN:
        return BotLabel('MachineGun', str(longest))
    return None


def detect_metronome(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """Same gap value repeated within one run of directly adjacent gaps"""
    for gaps in features.gap_runs:
        previous = None
        run = 0
        for ticks in gaps:
            run = run + 1 if ticks == previous else 1
            previous = ticks
            if run >= METRONOME_MIN_REPEATS:
                return BotLabel('Metronome', str(ticks))
    return None


def detect_no_variance(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """
    Human timing always wobbles; scripted waits do not

    Population standard deviation and mean are compared in milliseconds,
    the evidence reports the deviation in ticks.
    """
    if len(features.time_gaps) < SEQUENCE_MIN_POINTS:
        return None

    values = np.array(features.time_gaps, dtype=float)
    average = float(np.mean(values))
    spread = float(np.std(values))  # ddof=0: population std-dev

    if (spread * grammar.tick_ms < NO_VARIANCE_MAX_STD_MS
            and average * grammar.tick_ms > NO_VARIANCE_MIN_MEAN_MS):
        return BotLabel('NoVariance', f"{spread:.1f}")
    return None


def detect_arithmetic(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """Constant non-zero difference between consecutive time gaps"""
    if len(features.time_gaps) < SEQUENCE_MIN_POINTS:
        return None

    deltas = np.diff(np.array(features.time_gaps, dtype=np.int64))
    delta = int(deltas[0])
    if delta != 0 and bool(np.all(deltas == delta)):
        return BotLabel('Arithmetic', f"{delta:+d}")
    return None


def detect_geometric(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """Constant ratio between consecutive time gaps"""
    values = features.time_gaps
    if len(values) < SEQUENCE_MIN_POINTS or values[0] <= 0 or values[1] <= 0:
        return None

    ratio = values[1] / values[0]
    if ratio == 1:
        return None

    for previous, current in zip(values, values[1:]):
        if previous <= 0 or abs(current / previous - ratio) >= GEOMETRIC_TOLERANCE:
            return None
    return BotLabel('Geometric', f"x{ratio:.1f}")


def detect_ping_pong(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """Two distinct pages visited alternately for at least three cycles"""
    pages = features.page_labels
    for start in range(len(pages) - 1):
        first, second = pages[start], pages[start + 1]
        if first == second:
            continue
        end = start + 2
        while end < len(pages) and pages[end] == pages[end - 2]:
            end += 1
        # Only whole A-B cycles count
        if (end - start) // 2 * 2 >= PING_PONG_MIN_PAGES:
            return BotLabel('PingPong', f"{first}-{second}")
    return None


def detect_surface(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """Clicks concentrated on shallow DOM nodes"""
    depths = features.depths
    if len(depths) < SURFACE_MIN_ELEMENTS:
        return None

    shallow = sum(1 for depth in depths if depth <= SURFACE_MAX_DEPTH)
    if shallow / len(depths) >= SURFACE_MIN_RATIO:
        return BotLabel('Surface', f"{shallow}/{len(depths)}")
    return None


def detect_monotonous(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """Many clicks on very few distinct elements"""
    labels = features.element_labels
    if len(labels) < MONOTONOUS_MIN_ELEMENTS:
        return None

    unique = len(set(labels))
    if unique / len(labels) < MONOTONOUS_MAX_DIVERSITY:
        return BotLabel('Monotonous', f"{unique}t")
    return None


def detect_bot_example(features: DetectorFeatures, grammar: GrammarConfig) -> Optional[BotLabel]:
    """
    Example extension: rapid taps that end on the ``are-you-human`` element

    Counts the fast gaps (400 ms or less) directly in front of the last
    element, e.g. ``~3/1/2*are-you-human`` -> ``BotExample:3``.
    """
    if features.tail_element != RAPID_TAP_TARGET:
        return None

    count = 0
    for ticks in reversed(features.tail_gaps):
        if grammar.ticks_to_ms(ticks) > RAPID_TAP_MAX_MS:
            break
        count += 1

    if count >= RAPID_TAP_MIN_COUNT:
        return BotLabel('BotExample', str(count))
    return None


Detector = Callable[[DetectorFeatures, GrammarConfig], Optional[BotLabel]]

# Priority order matters: the first detector that fires decides the label
BOT_DETECTORS: Tuple[Tuple[str, Detector], ...] = (
    ('MachineGun', detect_machine_gun),
    ('Metronome', detect_metronome),
    ('NoVariance', detect_no_variance),
    ('Arithmetic', detect_arithmetic),
    ('Geometric', detect_geometric),
    ('PingPong', detect_ping_pong),
    ('Surface', detect_surface),
    ('Monotonous', detect_monotonous),
)

# Site-specific extensions; off unless enabled by name, checked after the bank
EXTENSION_DETECTORS: Tuple[Tuple[str, Detector], ...] = (
    ('BotExample', detect_bot_example),
)


def detect_bot_features(features: DetectorFeatures,
                        grammar: GrammarConfig = DEFAULT_GRAMMAR,
                        extensions: Sequence[str] = ()) -> Optional[BotLabel]:
    for _, detector in BOT_DETECTORS:
        label = detector(features, grammar)
        if label is not None:
            return label
    for name, detector in EXTENSION_DETECTORS:
        if name not in extensions:
            continue
        label = detector(features, grammar)
        if label is not None:
            return label
    return None


def detect_bot(stream: Sequence[BeatToken],
               grammar: GrammarConfig = DEFAULT_GRAMMAR,
               extensions: Sequence[str] = ()) -> Optional[BotLabel]:
    """
    Run the bot detector bank over a decoded stream

    Args:
        stream: Decoded BEAT tokens
        grammar: Grammar whose tick length converts thresholds to ticks
        extensions: Names of enabled extension detectors

    Returns:
        First matching BotLabel, or None when the rhythm looks human
    """
    return detect_bot_features(extract_features(stream), grammar, extensions)


# ============================================================================
# AGENT
# ============================================================================

class BotDetectionAgent:
    """
    Bot Detection Agent

    Thin, stateless wrapper around the detector bank that reports results in
    the dictionary shape used by the rest of the system.
    """

    def __init__(self, grammar: GrammarConfig = DEFAULT_GRAMMAR,
                 agent_id: str = "bot_detection_001",
                 extensions: Sequence[str] = ()):
        known = {name for name, _ in EXTENSION_DETECTORS}
        unknown = set(extensions) - known
        if unknown:
            raise ValueError(f"Unknown bot extension detectors: {sorted(unknown)}")

        self.agent_id = agent_id
        self.name = "Bot Detection Agent"
        self.grammar = grammar
        self.extensions = tuple(extensions)

    def detect(self, stream: Sequence[BeatToken]) -> Optional[BotLabel]:
        return detect_bot(stream, self.grammar, self.extensions)

    def analyze(self, stream: Sequence[BeatToken]) -> Dict[str, Any]:
        """
        Analyze a stream and describe the verdict

        Returns:
            Dict with is_bot, bot_type, evidence and label keys
        """
        label = self.detect(stream)
        if label is None:
            return {
                'is_bot': False,
                'bot_type': 'human',
                'evidence': 'Appears human',
                'label': None,
            }

        logger.debug(f"{self.agent_id}: matched {label}")
        return {
            'is_bot': True,
            'bot_type': label.name,
            'evidence': label.evidence,
            'label': str(label),
        }

    def get_detector_names(self) -> List[str]:
        names = [name for name, _ in BOT_DETECTORS]
        return names + [name for name, _ in EXTENSION_DETECTORS if name in self.extensions]

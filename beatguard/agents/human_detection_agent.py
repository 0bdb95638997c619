# beatguard/agents/human_detection_agent.py
"""
Human Detection Agent
Purpose: Recognizes human behaviour worth personalizing for

Rules form an ordered list, one per personalization flag position (1-9).
Each rule can be switched on or off independently; the first enabled rule
that matches decides the flag. Positions without a matcher are extension
slots and are skipped.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.beat_codec import BeatToken, Element, TimeGap, GAP_TYPES
from ..core.grammar import GrammarConfig, DEFAULT_GRAMMAR

logger = logging.getLogger(__name__)

Matcher = Callable[[Sequence[BeatToken], GrammarConfig], bool]


@dataclass(frozen=True)
class HumanRule:
    """One personalization rule bound to a flag position"""
    position: int                          # Flag position 1..9
    name: str
    matcher: Optional[Matcher] = None      # None marks an extension slot
    enabled: bool = True
    description: str = ''

    @property
    def is_placeholder(self) -> bool:
        return self.matcher is None


def rapid_repeat_before(target: str = 'buy', min_repeats: int = 3,
                        max_gap_ms: int = 1500) -> Matcher:
    """
    Build a matcher for rapid repeated selections right before a target element

    The gap run directly in front of the element must start with a time gap,
    hold at least ``min_repeats`` gaps, and every gap must be at most
    ``max_gap_ms``. Example (100 ms ticks): ``~13/8/8*buy-1`` matches.

    Args:
        target: Element label prefix, e.g. ``buy`` matches ``buy-1``
        min_repeats: Minimum number of gaps in the run
        max_gap_ms: Upper bound for each gap

    Returns:
        Matcher callable
    """
    def matcher(stream: Sequence[BeatToken], grammar: GrammarConfig) -> bool:
        for index, token in enumerate(stream):
            if not isinstance(token, Element) or not token.label.startswith(target):
                continue

            start = index
            while start > 0 and isinstance(stream[start - 1], GAP_TYPES):
                start -= 1
            run = stream[start:index]

            if (len(run) >= min_repeats
                    and isinstance(run[0], TimeGap)
                    and all(grammar.ticks_to_ms(gap.ticks) <= max_gap_ms for gap in run)):
                return True
        return False

    return matcher


def _placeholder(position: int) -> HumanRule:
    return HumanRule(
        position=position,
        name=f'slot_{position}',
        enabled=False,
        description=f'Extension slot for personalization flag {position}',
    )


DEFAULT_HUMAN_RULES: Tuple[HumanRule, ...] = (
    HumanRule(
        position=1,
        name='rapid_repeat_buy',
        matcher=rapid_repeat_before(),
        description='Three or more rapid taps right before a buy element',
    ),
) + tuple(_placeholder(position) for position in range(2, 10))


def build_human_rules(config: Optional[Dict[str, Any]] = None) -> Tuple[HumanRule, ...]:
    """
    Apply the ``detection.human_rules`` config section to the default rules

    Example config::

        human_rules:
          rapid_repeat_buy:
            enabled: true
            target: buy
            min_repeats: 3
            max_gap_ms: 1500
    """
    config = config or {}
    rules: List[HumanRule] = []
    for rule in DEFAULT_HUMAN_RULES:
        settings = config.get(rule.name) or {}
        if rule.name == 'rapid_repeat_buy' and settings:
            rule = replace(rule, matcher=rapid_repeat_before(
                target=settings.get('target', 'buy'),
                min_repeats=int(settings.get('min_repeats', 3)),
                max_gap_ms=int(settings.get('max_gap_ms', 1500)),
            ))
        if 'enabled' in settings:
            rule = replace(rule, enabled=bool(settings['enabled']))
        rules.append(rule)
    return tuple(rules)


def detect_human(stream: Sequence[BeatToken],
                 grammar: GrammarConfig = DEFAULT_GRAMMAR,
                 rules: Sequence[HumanRule] = DEFAULT_HUMAN_RULES) -> Optional[int]:
    """
    Run the human rules in order

    Returns:
        Flag position of the first enabled rule that matches, or None
    """
    for rule in rules:
        if not rule.enabled or rule.is_placeholder:
            continue
        if rule.matcher(stream, grammar):
            return rule.position
    return None


class HumanDetectionAgent:
    """Stateless wrapper that carries the grammar and the active rule list"""

    def __init__(self, grammar: GrammarConfig = DEFAULT_GRAMMAR,
                 rules: Sequence[HumanRule] = DEFAULT_HUMAN_RULES,
                 agent_id: str = "human_detection_001"):
        self.agent_id = agent_id
        self.name = "Human Detection Agent"
        self.grammar = grammar
        self.rules = tuple(rules)

    def detect(self, stream: Sequence[BeatToken]) -> Optional[int]:
        position = detect_human(stream, self.grammar, self.rules)
        if position is not None:
            logger.debug(f"{self.agent_id}: flag position {position} matched")
        return position

    def active_rules(self) -> List[str]:
        return [rule.name for rule in self.rules if rule.enabled and not rule.is_placeholder]

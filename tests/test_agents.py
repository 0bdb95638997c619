# tests/test_agents.py
"""
Tests for the bot detector bank and the human rules.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from beatguard.agents import (
    BotDetectionAgent, BotLabel, BOT_DETECTORS, HumanDetectionAgent, DEFAULT_HUMAN_RULES,
    build_human_rules, detect_bot, detect_human, extract_features,
)
from beatguard.agents.beat_features import element_depth
from beatguard.agents.bot_detection_agent import (
    detect_arithmetic, detect_bot_example, detect_geometric, detect_machine_gun,
    detect_metronome, detect_ping_pong,
)
from beatguard.core import DEFAULT_GRAMMAR, decode_beat
from tests.test_utils import IRREGULAR_GAPS, build_beat

pytestmark = [pytest.mark.unit, pytest.mark.detection]

# Eight equal gaps chained directly after one another
METRONOME_BEAT = "!home~500" + "/500" * 7 + "*btn"


def classify(beat, grammar=None):
    stream = decode_beat(beat)
    label = detect_bot(stream, grammar) if grammar else detect_bot(stream)
    return str(label) if label else None


class TestFeatures:
    """Tests for detector feature extraction"""

    def test_extract_features(self):
        features = extract_features(decode_beat("!home~12/3*7div~4*nav!cart"))

        assert features.gap_runs == [[12, 3], [4]]
        assert features.time_gaps == [12, 4]
        assert features.depths == [7]
        assert features.element_labels == ['7div', 'nav']
        assert features.page_labels == ['home', 'cart']

    def test_element_depth(self):
        assert element_depth('12span') == 12
        assert element_depth('buy-1') is None


class TestBotDetectors:
    """Each detector at and just below its threshold"""

    def test_machine_gun(self):
        """Ten fast time gaps in a row"""
        assert classify(build_beat([1, 2] * 5)) == "MachineGun:10"

    def test_machine_gun_150ms(self, fast_grammar):
        """150 ms gaps count as machine-fast"""
        features = extract_features(decode_beat(build_beat([3] * 10)))

        assert str(detect_machine_gun(features, fast_grammar)) == "MachineGun:10"

    def test_machine_gun_nine_gaps(self, fast_grammar):
        features = extract_features(decode_beat(build_beat([3] * 9)))

        assert detect_machine_gun(features, fast_grammar) is None

    def test_machine_gun_reports_longest_run(self):
        assert classify(build_beat([1, 2] * 6 + [30])) == "MachineGun:12"

    def test_nine_fast_gaps_not_flagged(self):
        assert classify(build_beat([1, 2, 1, 2, 1, 2, 1, 2, 1])) is None

    def test_metronome(self):
        """Eight equal gaps directly after one another"""
        assert classify(METRONOME_BEAT) == "Metronome:500"

    def test_metronome_seven_repeats(self):
        features = extract_features(decode_beat("!home~500" + "/500" * 6 + "*btn"))

        assert detect_metronome(features, None) is None

    def test_metronome_ignores_gaps_split_by_elements(self):
        """Equal gaps with clicks in between are ordinary browsing"""
        beat = "!home" + "".join(f"~5*el{i}" for i in range(8))

        assert detect_metronome(extract_features(decode_beat(beat)), None) is None
        assert classify(beat) is None

    def test_metronome_run_does_not_cross_element(self):
        features = extract_features(decode_beat("!home~5/5/5/5*btn~5/5/5/5*btn"))

        assert features.gap_runs == [[5, 5, 5, 5], [5, 5, 5, 5]]
        assert detect_metronome(features, None) is None

    def test_no_variance(self):
        """Slow, almost identical waits"""
        assert classify(build_beat([20, 21, 20, 19])) == "NoVariance:0.7"

    def test_no_variance_fine_ticks(self, fine_grammar):
        assert classify(build_beat([1000, 1010, 990, 1000]), fine_grammar) == "NoVariance:7.1"

    def test_no_variance_needs_slow_mean(self, fine_grammar):
        assert classify(build_beat([100, 5000, 100, 5000]), fine_grammar) is None

    def test_arithmetic(self):
        assert classify(build_beat([10, 13, 16, 19])) == "Arithmetic:+3"

    def test_arithmetic_decreasing(self):
        assert classify(build_beat([40, 30, 20, 10])) == "Arithmetic:-10"

    def test_arithmetic_needs_nonzero_step(self):
        features = extract_features(decode_beat(build_beat([7, 7, 7, 7])))

        assert detect_arithmetic(features, None) is None

    def test_geometric(self):
        assert classify(build_beat([2, 4, 8, 16])) == "Geometric:x2.0"

    def test_geometric_within_tolerance(self):
        features = extract_features(decode_beat(build_beat([100, 200, 400, 801])))

        assert str(detect_geometric(features, None)) == "Geometric:x2.0"

    @pytest.mark.parametrize("gaps", [[7, 7, 7, 7], [2, 4, 8, 17]])
    def test_geometric_rejected(self, gaps):
        """A ratio of one, or a ratio that drifts, is not geometric"""
        features = extract_features(decode_beat(build_beat(gaps)))

        assert detect_geometric(features, None) is None

    def test_ping_pong(self):
        """Three full A-B cycles"""
        assert classify("!a~30!b~45!a~32!b~51!a~28!b~60") == "PingPong:a-b"

    def test_ping_pong_needs_two_pages(self):
        features = extract_features(decode_beat("!a~30!a~45!a~32!a~51!a~28!a"))

        assert detect_ping_pong(features, None) is None

    def test_ping_pong_partial_cycle(self):
        features = extract_features(decode_beat("!a~30!b~45!a~32!b~51!a"))

        assert detect_ping_pong(features, None) is None

    def test_surface(self):
        """Nine of ten clicks at depth two or less"""
        labels = ['1nav', '2btn', '1logo', '2menu', '1a', '2b', '1c', '2d', '1e', '7deep']

        assert classify(build_beat(IRREGULAR_GAPS[:10], labels)) == "Surface:9/10"

    def test_surface_below_ratio(self):
        labels = ['1nav', '2btn', '1logo', '2menu', '1a', '2b', '1c', '2d', '5x', '7deep']

        assert classify(build_beat(IRREGULAR_GAPS[:10], labels)) is None

    def test_monotonous(self):
        """Twenty clicks on two distinct elements"""
        labels = ['btn', 'link'] * 10

        assert classify(build_beat(IRREGULAR_GAPS, labels)) == "Monotonous:2t"

    def test_monotonous_diversity_boundary(self):
        labels = ['btn', 'link', 'card'] * 6 + ['btn', 'link']

        assert classify(build_beat(IRREGULAR_GAPS, labels)) is None

    def test_human_rhythm(self):
        assert classify(build_beat(IRREGULAR_GAPS[:6], ['nav', 'help', 'img', 'buy', 'more', 'faq'])) is None


class TestBotDetectionAgent:
    """Tests for priority order and the agent wrapper"""

    def test_priority_machine_gun_over_metronome(self):
        """Ten chained fast gaps match both; MachineGun runs first"""
        assert classify("!home" + "~1" * 10 + "*btn") == "MachineGun:10"

    def test_detector_order(self):
        agent = BotDetectionAgent()

        assert agent.get_detector_names() == [
            'MachineGun', 'Metronome', 'NoVariance', 'Arithmetic',
            'Geometric', 'PingPong', 'Surface', 'Monotonous',
        ]
        assert len(BOT_DETECTORS) == 8

    def test_analyze_bot(self):
        report = BotDetectionAgent().analyze(decode_beat(METRONOME_BEAT))

        assert report == {
            'is_bot': True,
            'bot_type': 'Metronome',
            'evidence': '500',
            'label': 'Metronome:500',
        }

    def test_analyze_human(self):
        report = BotDetectionAgent().analyze(decode_beat("!home~37*a"))

        assert report['is_bot'] is False
        assert report['label'] is None

    def test_label_wire_form(self):
        assert str(BotLabel('PingPong', 'a-b')) == "PingPong:a-b"


class TestBotExampleExtension:
    """Tests for the opt-in rapid-tap extension detector"""

    TAPS = "!home~30*nav~3/1/2*are-you-human"

    def test_off_by_default(self):
        assert classify(self.TAPS) is None
        assert "BotExample" not in BotDetectionAgent().get_detector_names()

    def test_enabled(self):
        """Three taps of 400 ms or less ending on the target element"""
        agent = BotDetectionAgent(extensions=["BotExample"])

        assert str(agent.detect(decode_beat(self.TAPS))) == "BotExample:3"
        assert agent.get_detector_names()[-1] == "BotExample"

    @pytest.mark.parametrize("beat, expected", [
        ("!home~30*nav~3/1/2*are-you-human~7", "BotExample:3"),
        ("!home~30*nav~5/1/2/3*are-you-human", "BotExample:3"),
        ("!home~30*nav~13/1/2*are-you-human", None),
        ("!home~30*nav~3/1/2*are-you-human~4*next", None),
        ("!home~30*nav~3/1/2*are-you-robot", None),
    ])
    def test_tail_rules(self, beat, expected):
        """Only fast gaps directly before a trailing target element count"""
        label = detect_bot_example(extract_features(decode_beat(beat)), DEFAULT_GRAMMAR)

        assert (str(label) if label else None) == expected

    def test_unknown_extension(self):
        with pytest.raises(ValueError):
            BotDetectionAgent(extensions=["Nope"])


class TestHumanRules:
    """Tests for the ordered personalization rules"""

    def test_rapid_repeat_before_buy(self):
        """Three quick taps right before a buy element set flag 1"""
        stream = decode_beat("!p1~2403*img-1~1194*buy-1~13/8/8*buy-1-up")

        assert detect_human(stream) == 1

    def test_consecutive_time_gaps(self):
        assert detect_human(decode_beat("!p1~3~3~3*buy")) == 1

    @pytest.mark.parametrize("beat", [
        "!p1~13/8*buy",
        "!p1~13/80/8*buy",
        "!p1~13/8/8*cart",
        "!p1~1194*buy-1",
    ])
    def test_no_match(self, beat):
        assert detect_human(decode_beat(beat)) is None

    def test_rule_table(self):
        """Nine positions; only the first carries a rule by default"""
        assert [rule.position for rule in DEFAULT_HUMAN_RULES] == list(range(1, 10))
        assert DEFAULT_HUMAN_RULES[0].name == 'rapid_repeat_buy'
        assert all(rule.is_placeholder for rule in DEFAULT_HUMAN_RULES[1:])

    def test_rule_disabled(self):
        rules = build_human_rules({'rapid_repeat_buy': {'enabled': False}})
        stream = decode_beat("!p1~13/8/8*buy")

        assert detect_human(stream, rules=rules) is None
        assert HumanDetectionAgent(rules=rules).active_rules() == []

    def test_rule_target_override(self):
        rules = build_human_rules({'rapid_repeat_buy': {'target': 'cart'}})
        agent = HumanDetectionAgent(rules=rules)

        assert agent.detect(decode_beat("!p1~13/8/8*cart")) == 1
        assert agent.detect(decode_beat("!p1~13/8/8*buy")) is None

    def test_max_gap_scales_with_ticks(self, fine_grammar):
        """The gap bound is in milliseconds, not ticks"""
        stream = decode_beat("!p1~130/80/80*buy")

        assert detect_human(stream, fine_grammar) == 1
        assert detect_human(stream) is None

    def test_active_rules(self):
        assert HumanDetectionAgent().active_rules() == ['rapid_repeat_buy']

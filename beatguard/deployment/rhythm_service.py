# beatguard/deployment/rhythm_service.py
"""
Rhythm Service for BeatGuard
Composes the core into the two passes a transport layer calls

1. Live streaming: scan the rhythm cookies of one request, classify, and
   compute the updated score value (only reported when it changed).
2. Archiving: merge a batch of tab fragments into one session record.

HTTP semantics (status codes, Set-Cookie headers, WAF rules, AI
summaries) stay with the caller. Classification always completes before
any log event is handed to the background logger.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..agents.bot_detection_agent import BotDetectionAgent, BotLabel
from ..agents.human_detection_agent import HumanDetectionAgent, build_human_rules
from ..core.exceptions import FormatError
from ..core.grammar import GrammarConfig
from ..core.score_codec import (
    SessionScore, extract_score_cookie, new_score, parse_score,
    serialize_score, update_score,
)
from ..ingestion.fragment_parser import (
    HEADER_FIELDS, iter_cookie_fragments, parse_batch,
    parse_fragment_record, redact_rhythm_log,
)
from ..session.archive import dumps_record, to_archive_record
from ..session.reassembler import MergedSession, reassemble
from ..utils.config_utils import (
    bot_extensions_from_config, grammar_from_config, merge_with_defaults, validate_config,
)
from ..utils.logging_utils import DetectionLogger, get_detection_logger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    """Outcome of scanning one request's cookies"""
    bot: Optional[BotLabel]
    human: Optional[int]
    score: SessionScore


@dataclass(frozen=True)
class StreamingOutcome:
    """What the transport layer needs after a live-streaming pass"""
    bot: Optional[BotLabel]
    human: Optional[int]
    score: SessionScore
    changed: bool
    log_line: Optional[str] = None

    @property
    def score_value(self) -> Optional[str]:
        """Serialized score to send back, or None when nothing changed"""
        return serialize_score(self.score) if self.changed else None


@dataclass(frozen=True)
class ArchiveOutcome:
    session: MergedSession
    record: Dict[str, Any]
    line: str


def scan_cookies(cookie_header: str,
                 bot_agent: Optional[BotDetectionAgent] = None,
                 human_agent: Optional[HumanDetectionAgent] = None,
                 grammar: Optional[GrammarConfig] = None,
                 flag_count: int = 9) -> ScanResult:
    """
    Classify the rhythm cookies of one request

    Fragments are checked in cookie order; for each, the bot bank runs
    before the human rules and the first hit ends the scan. Fragments with
    an empty BEAT part are skipped.

    Args:
        cookie_header: Raw Cookie header text
        bot_agent: Bot agent, or None to skip bot detection
        human_agent: Human agent, or None to skip human rules
        grammar: Grammar of the rhythm cookies
        flag_count: Width of the personalization flag array

    Returns:
        ScanResult with the parsed (not yet updated) score

    Raises:
        FormatError: Malformed score value or malformed non-empty fragment
    """
    grammar = grammar or (bot_agent.grammar if bot_agent else
                          human_agent.grammar if human_agent else GrammarConfig())

    raw_score = extract_score_cookie(cookie_header)
    if raw_score is None:
        logger.debug("No score cookie; starting from a fresh score")
        score = new_score(flag_count)
    else:
        score = parse_score(raw_score, flag_count)

    for tab_id, record in iter_cookie_fragments(cookie_header):
        if not '_'.join(record.split('_')[HEADER_FIELDS:]):
            continue
        fragment = parse_fragment_record(tab_id, record, grammar)

        bot = bot_agent.detect(fragment.beat) if bot_agent else None
        if bot is not None:
            return ScanResult(bot=bot, human=None, score=score)

        human = human_agent.detect(fragment.beat) if human_agent else None
        if human is not None:
            return ScanResult(bot=None, human=human, score=score)

    return ScanResult(bot=None, human=None, score=score)


class RhythmService:
    """
    Live-streaming and archiving passes

    Args:
        config: Configuration dictionary (see utils.config_utils)
        event_logger: Detection logger; defaults to the global one
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 event_logger: Optional[DetectionLogger] = None):
        self.config = validate_config(merge_with_defaults(config))
        self.grammar = grammar_from_config(self.config)
        self.streaming = self.config['streaming']
        self.archiving = self.config['archiving']
        self.flag_count = self.config['detection']['flag_count']

        self.bot_agent = BotDetectionAgent(
            self.grammar, extensions=bot_extensions_from_config(self.config)
        )
        self.human_agent = HumanDetectionAgent(
            self.grammar, build_human_rules(self.config['detection'].get('human_rules'))
        )

        if event_logger is None:
            log_config = self.config['logging']
            event_logger = get_detection_logger(
                log_file=log_config.get('file'),
                log_level=log_config.get('level', 'INFO'),
                enable_json=bool(log_config.get('json')),
            )
        self.event_logger = event_logger

    def process_livestream(self, cookie_header: str) -> StreamingOutcome:
        """
        Run the live-streaming pass for one request

        Args:
            cookie_header: Raw Cookie header text

        Returns:
            StreamingOutcome; ``score_value`` is None when the score is unchanged
        """
        try:
            result = scan_cookies(
                cookie_header,
                bot_agent=self.bot_agent if self.streaming.get('bot', True) else None,
                human_agent=self.human_agent if self.streaming.get('human', True) else None,
                grammar=self.grammar,
                flag_count=self.flag_count,
            )
        except FormatError as e:
            logger.warning(f"Rejected rhythm cookies: {e}")
            self.event_logger.log_format_error(f"rhythm cookies: {e}")
            raise

        if result.bot is None and result.human is None:
            return StreamingOutcome(None, None, result.score, changed=False)

        score = update_score(result.score, result.bot is not None, result.human)
        changed = score != result.score

        log_line = None
        if self.streaming.get('log'):
            log_line = redact_rhythm_log(
                cookie_header,
                include_time=bool(self.streaming.get('time')),
                include_hash=bool(self.streaming.get('hash')),
            )

        outcome = StreamingOutcome(result.bot, result.human, score, changed, log_line)
        self._dispatch_streaming_events(outcome)
        return outcome

    def _dispatch_streaming_events(self, outcome: StreamingOutcome):
        if outcome.bot is not None:
            self.event_logger.log_bot_detected(
                str(outcome.bot), outcome.score.security_level, serialize_score(outcome.score)
            )
        if outcome.human is not None and outcome.changed:
            self.event_logger.log_human_signal(
                outcome.human, outcome.score.field, serialize_score(outcome.score)
            )
        if outcome.log_line:
            self.event_logger.log_stream(outcome.log_line)

    def process_archive(self, payload: str) -> Optional[ArchiveOutcome]:
        """
        Run the archiving pass for one batch payload

        Returns:
            ArchiveOutcome, or None when archiving is disabled

        Raises:
            FormatError: A fragment of the batch is malformed
            ValueError: The payload holds no fragments
        """
        if not self.archiving.get('log', True):
            return None

        try:
            fragments = parse_batch(payload, self.grammar)
        except FormatError as e:
            logger.warning(f"Rejected batch payload: {e}")
            self.event_logger.log_format_error(f"batch payload: {e}")
            raise

        session = reassemble(fragments)
        if session.anomaly is not None:
            logger.debug(f"Batch reassembled with anomaly {session.anomaly.value}")

        record = to_archive_record(
            session,
            self.grammar,
            include_time=bool(self.archiving.get('time')),
            include_hash=bool(self.archiving.get('hash')),
            spaced=bool(self.archiving.get('space', True)),
        )
        line = dumps_record(record)

        self.event_logger.log_archive(line, {
            'tabs': len(fragments),
            'visited': list(session.visit_order),
        })
        return ArchiveOutcome(session=session, record=record, line=line)

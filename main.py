#!/usr/bin/env python3
"""
============================================================================
BeatGuard - Behavioral Rhythm Analysis for Bot and Human Detection
============================================================================
MAIN ENTRY POINT: command-line access to the BeatGuard passes

Modes:
1. decode   - decode a BEAT string and print its tokens
2. classify - run the bot bank and human rules over a BEAT string
3. scan     - live-streaming pass over a raw Cookie header
4. archive  - archiving pass over a raw batch payload

Input comes from --input, or stdin when --input is omitted.
============================================================================
"""

# ============================================================================
# IMPORTS AND DEPENDENCIES
# ============================================================================

import sys                    # System-specific parameters and functions
import json                   # JSON output
import argparse               # Command-line argument parsing
import logging                # Flexible event logging system
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Optional

from beatguard import __version__
from beatguard.agents import BotDetectionAgent, HumanDetectionAgent, build_human_rules
from beatguard.core import BeatGuardError, decode_beat, encode_beat
from beatguard.deployment import RhythmService
from beatguard.utils import (
    DEFAULT_CONFIG_PATH, flush_logs, get_detection_logger,
    bot_extensions_from_config, grammar_from_config, load_config, setup_logger,
)

# ============================================================================
# CONSTANTS
# ============================================================================

SYSTEM_NAME = "BeatGuard"
MODES = ['decode', 'classify', 'scan', 'archive']

logger = logging.getLogger("beatguard.cli")


def _token_to_dict(token) -> Dict[str, Any]:
    data = asdict(token) if is_dataclass(token) else {'value': str(token)}
    data['type'] = type(token).__name__
    return data


def run_decode(config: Dict[str, Any], text: str) -> Dict[str, Any]:
    grammar = grammar_from_config(config)
    stream = decode_beat(text, grammar)
    return {
        'tokens': [_token_to_dict(token) for token in stream],
        'encoded': encode_beat(stream, grammar),
    }


def run_classify(config: Dict[str, Any], text: str) -> Dict[str, Any]:
    grammar = grammar_from_config(config)
    stream = decode_beat(text, grammar)
    bot_agent = BotDetectionAgent(grammar, extensions=bot_extensions_from_config(config))
    human_agent = HumanDetectionAgent(grammar, build_human_rules(config['detection'].get('human_rules')))

    report = bot_agent.analyze(stream)
    report['human_flag'] = None if report['is_bot'] else human_agent.detect(stream)
    return report


def run_scan(service: RhythmService, text: str) -> Dict[str, Any]:
    outcome = service.process_livestream(text)
    return {
        'bot': str(outcome.bot) if outcome.bot else None,
        'human': outcome.human,
        'changed': outcome.changed,
        'score': outcome.score_value,
    }


def run_archive(service: RhythmService, text: str) -> Optional[Dict[str, Any]]:
    outcome = service.process_archive(text)
    if outcome is None:
        logger.info("Archiving disabled in configuration")
        return None
    return outcome.record


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"{SYSTEM_NAME} v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --mode decode --input '!home~12*buy~3/2/2*buy'
  %(prog)s --mode scan --input 'score=0000000000_____1; rhythm_1=0___0_0_3_2_40_!home~1~1'
  %(prog)s --mode archive < batch.txt
        """
    )

    parser.add_argument(
        '--mode', '-m',
        type=str,
        choices=MODES,
        required=True,
        help='Operation mode'
    )

    parser.add_argument(
        '--input', '-i',
        type=str,
        help='BEAT string, Cookie header or batch payload (default: stdin)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Configuration file path (default: {DEFAULT_CONFIG_PATH})'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Write the JSON result to this file instead of stdout'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the BeatGuard command-line interface.

    Returns:
        Process exit code (0 success, 1 configuration error, 2 bad input)
    """
    args = build_parser().parse_args(argv)

    # Logs go to stderr so stdout carries only the JSON result
    setup_logger("beatguard", log_level="DEBUG" if args.verbose else "WARNING",
                 enable_json=False, stream=sys.stderr)

    try:
        config = load_config(args.config)
    except BeatGuardError as e:
        logger.error(f"Failed to load configuration: {e}")
        return 1

    text = args.input if args.input is not None else sys.stdin.read()
    text = text.strip()

    try:
        if args.mode == 'decode':
            result = run_decode(config, text)
        elif args.mode == 'classify':
            result = run_classify(config, text)
        else:
            log_config = config["logging"]
            event_logger = get_detection_logger(
                log_file=log_config.get("file"),
                log_level=log_config.get("level", "INFO"),
                enable_json=bool(log_config.get("json")),
                stream=sys.stderr,
            )
            service = RhythmService(config, event_logger=event_logger)
            if args.mode == 'scan':
                result = run_scan(service, text)
            else:
                result = run_archive(service, text)
    except (BeatGuardError, ValueError) as e:
        logger.error(f"Rejected input: {e}")
        return 2
    finally:
        flush_logs()

    output = json.dumps(result, indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(output + '\n')
        logger.info(f"Result saved to {args.output}")
    else:
        print(output)
    return 0


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print(f"\n{SYSTEM_NAME} interrupted by user")
        sys.exit(130)

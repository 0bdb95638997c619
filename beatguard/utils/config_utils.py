"""
Configuration loading for BeatGuard.

Configuration is a YAML file with the sections ``grammar``, ``streaming``,
``archiving``, ``detection`` and ``logging``. Anything omitted falls back to
the defaults below; a missing file means "all defaults".
"""

import os
import copy
import logging
from typing import Dict, Any, List, Optional

import yaml  # YAML configuration file parsing

from ..core.exceptions import ConfigurationError
from ..core.grammar import GrammarConfig
from ..agents.bot_detection_agent import EXTENSION_DETECTORS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/beatguard.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    'grammar': {
        'tick_ms': 100,
        'tokens': {
            'page': '!',
            'element': '*',
            'time_gap': '~',
            'repeat_gap': '/',
            'tab_switch': '___',
        },
    },
    # Live streaming: classify rhythm cookies on every request
    'streaming': {
        'log': False,       # Log redacted rhythm cookies (development only)
        'time': False,      # Keep the time field in stream logs
        'hash': False,      # Keep the hash field in stream logs
        'bot': True,        # Run the bot detector bank
        'human': True,      # Run the human rules
    },
    # Archiving: merge batches and push one record per session
    'archiving': {
        'log': True,
        'time': False,
        'hash': False,
        'space': True,      # Space out the beat text
    },
    'detection': {
        'flag_count': 9,
        # Opt-in bot detectors, run after the fixed bank
        'bot_extensions': {
            'BotExample': False,
        },
        'human_rules': {
            'rapid_repeat_buy': {
                'enabled': True,
                'target': 'buy',
                'min_repeats': 3,
                'max_gap_ms': 1500,
            },
        },
    },
    'logging': {
        'level': 'INFO',
        'file': None,
        'json': False,
    },
}

KNOWN_SECTIONS = set(DEFAULT_CONFIG)
KNOWN_BOT_EXTENSIONS = {name for name, _ in EXTENSION_DETECTORS}


def get_default_config() -> Dict[str, Any]:
    """Return a deep copy of the default configuration"""
    return copy.deepcopy(DEFAULT_CONFIG)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_with_defaults(override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Overlay a (possibly partial) configuration on the defaults"""
    return _merge(DEFAULT_CONFIG, override or {})


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a merged configuration

    Raises:
        ConfigurationError: Unknown section, bad grammar, bad flag count,
            unknown bot extension or unknown log level
    """
    unknown = set(config) - KNOWN_SECTIONS
    if unknown:
        raise ConfigurationError(f"Unknown configuration sections: {sorted(unknown)}")

    # Raises ConfigurationError on bad glyphs or tick length
    GrammarConfig.from_dict(config['grammar'])

    flag_count = config['detection'].get('flag_count')
    if not isinstance(flag_count, int) or isinstance(flag_count, bool) or not 1 <= flag_count <= 9:
        raise ConfigurationError(f"detection.flag_count must be 1..9, got {flag_count!r}")

    extensions = config['detection'].get('bot_extensions') or {}
    if not isinstance(extensions, dict):
        raise ConfigurationError("detection.bot_extensions must be a mapping")
    unknown = set(extensions) - KNOWN_BOT_EXTENSIONS
    if unknown:
        raise ConfigurationError(f"Unknown bot extension detectors: {sorted(unknown)}")

    level = str(config['logging'].get('level', 'INFO')).upper()
    if not isinstance(getattr(logging, level, None), int):
        raise ConfigurationError(f"Unknown log level: {level}")

    return config


def load_config(config_path: Optional[str] = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from a YAML file

    Args:
        config_path: Path to the YAML file; None means defaults only

    Returns:
        Validated configuration dictionary

    Raises:
        ConfigurationError: Invalid YAML or invalid values
    """
    if not config_path or not os.path.exists(config_path):
        if config_path:
            logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return validate_config(get_default_config())

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in configuration file: {e}")
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

    config = validate_config(merge_with_defaults(loaded))
    logger.info(f"Configuration loaded from {config_path}")
    return config


def grammar_from_config(config: Dict[str, Any]) -> GrammarConfig:
    return GrammarConfig.from_dict(config.get('grammar'))


def bot_extensions_from_config(config: Dict[str, Any]) -> List[str]:
    """Names of the extension detectors switched on in ``detection.bot_extensions``"""
    extensions = config.get('detection', {}).get('bot_extensions') or {}
    return [name for name, enabled in extensions.items() if enabled]

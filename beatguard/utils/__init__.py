"""
Utility modules for BeatGuard.

- Configuration loading (YAML)
- Structured and detection-event logging
"""

from .config_utils import (
    DEFAULT_CONFIG_PATH,
    load_config,
    get_default_config,
    merge_with_defaults,
    validate_config,
    grammar_from_config,
    bot_extensions_from_config,
)

from .logging_utils import (
    setup_logger,
    get_logger,
    get_detection_logger,
    flush_logs,
    JSONFormatter,
    DetectionLogger,
    DetectionEvent,
    DetectionEventType,
    Severity,
)

__all__ = [
    'DEFAULT_CONFIG_PATH',
    'load_config',
    'get_default_config',
    'merge_with_defaults',
    'validate_config',
    'grammar_from_config',
    'bot_extensions_from_config',
    'setup_logger',
    'get_logger',
    'get_detection_logger',
    'flush_logs',
    'JSONFormatter',
    'DetectionLogger',
    'DetectionEvent',
    'DetectionEventType',
    'Severity',
]

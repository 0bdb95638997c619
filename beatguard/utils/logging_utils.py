"""
Logging Utilities for BeatGuard.

This module provides:
- Structured logging with JSON output
- Detection event logging (bot labels, human flags, score changes, archives)
- Background dispatch so log I/O never delays classification

Detection events are queued and written by a daemon thread; callers finish
their classification work first and only then hand the event over.
"""

import logging
import logging.handlers
import json
import sys
import os
import threading
import queue
from datetime import datetime
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict
from enum import Enum


class Severity(Enum):
    """Severity of detection events."""
    HIGH = "HIGH"              # Bot blocked
    MEDIUM = "MEDIUM"          # Bot challenged
    LOW = "LOW"                # Human signal, score change
    INFORMATIONAL = "INFO"     # Archives and stream logs
    DEBUG = "DEBUG"


class DetectionEventType(Enum):
    """Types of detection events for categorization."""
    BOT_DETECTED = "BOT_DETECTED"
    HUMAN_SIGNAL = "HUMAN_SIGNAL"
    SESSION_ARCHIVED = "SESSION_ARCHIVED"
    STREAM_LOG = "STREAM_LOG"
    FORMAT_ERROR = "FORMAT_ERROR"


@dataclass
class DetectionEvent:
    """Structured detection event for logging."""
    timestamp: str
    event_type: DetectionEventType
    severity: Severity
    description: Optional[str] = None
    label: Optional[str] = None
    score: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for JSON serialization."""
        data = asdict(self)
        data['event_type'] = self.event_type.value
        data['severity'] = self.severity.value
        return data


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per line.
    """

    DEFAULT_FIELDS = {
        'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
        'funcName', 'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'message', 'msg', 'name', 'pathname', 'process', 'processName',
        'relativeCreated', 'stack_info', 'thread', 'threadName', 'taskName',
    }

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string
        """
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Add extra fields from record
        for key, value in record.__dict__.items():
            if key in self.DEFAULT_FIELDS or key.startswith('_'):
                continue
            if isinstance(value, DetectionEvent):
                log_entry[key] = value.to_dict()
            elif isinstance(value, (str, int, float, bool, type(None))):
                log_entry[key] = value
            else:
                log_entry[key] = str(value)

        return json.dumps(log_entry, ensure_ascii=False)


def _add_file_handler(logger: logging.Logger, log_file: str, formatter: logging.Formatter):
    log_dir = os.path.dirname(log_file)
    if log_dir:  # Only create directory if path has a directory component
        os.makedirs(log_dir, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


class DetectionLogger:
    """
    Detection event logger with background dispatch.

    log_event() only enqueues; a daemon thread writes the records.
    """

    LEVEL_MAP = {
        Severity.HIGH: logging.ERROR,
        Severity.MEDIUM: logging.WARNING,
        Severity.LOW: logging.INFO,
        Severity.INFORMATIONAL: logging.INFO,
        Severity.DEBUG: logging.DEBUG,
    }

    def __init__(self, name: str = "beatguard.detection",
                 log_file: Optional[str] = None,
                 log_level: str = "INFO",
                 enable_json: bool = False,
                 stream=None):
        """
        Initialize detection logger.

        Args:
            name: Logger name
            log_file: Optional file path for JSON logs
            log_level: Logging level
            enable_json: Use JSON on the console as well
            stream: Console stream (default: stdout)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level.upper()))

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()
        self.logger.propagate = False

        console_formatter = JSONFormatter() if enable_json else logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_handler = logging.StreamHandler(stream or sys.stdout)
        console_handler.setFormatter(console_formatter)
        self.logger.addHandler(console_handler)

        if log_file:
            _add_file_handler(self.logger, log_file, JSONFormatter())

        self.event_queue: "queue.Queue[DetectionEvent]" = queue.Queue()
        self._start_async_processor()

    def _start_async_processor(self):
        """Start async event processing thread."""
        def process_events():
            while True:
                event = self.event_queue.get()
                try:
                    self._log_event_sync(event)
                except Exception as e:
                    # Log error but keep the processor alive
                    self.logger.error(f"Error processing detection event: {e}")
                finally:
                    self.event_queue.task_done()

        processor_thread = threading.Thread(
            target=process_events,
            daemon=True,
            name="DetectionEventProcessor"
        )
        processor_thread.start()

    def log_event(self, event: DetectionEvent):
        """Queue a detection event for the background writer."""
        self.event_queue.put(event)

    def _log_event_sync(self, event: DetectionEvent):
        log_level = self.LEVEL_MAP.get(event.severity, logging.INFO)
        message = f"{event.event_type.value}: {event.description or 'Detection event'}"
        self.logger.log(log_level, message, extra={'detection_event': event})

    def log_bot_detected(self, label: str, security_level: int, score: Optional[str] = None):
        """
        Log a bot detection.

        Args:
            label: Bot label, e.g. ``MachineGun:12``
            security_level: Level after the update (1=challenge, 2=block)
            score: Serialized score value
        """
        self.log_event(DetectionEvent(
            timestamp=datetime.now().isoformat(),
            event_type=DetectionEventType.BOT_DETECTED,
            severity=Severity.HIGH if security_level >= 2 else Severity.MEDIUM,
            description=f"bot: {label} (level {security_level})",
            label=label,
            score=score,
        ))

    def log_human_signal(self, flag_position: int, field: str, score: Optional[str] = None):
        self.log_event(DetectionEvent(
            timestamp=datetime.now().isoformat(),
            event_type=DetectionEventType.HUMAN_SIGNAL,
            severity=Severity.LOW,
            description=f"human: {field} (case {flag_position})",
            label=str(flag_position),
            score=score,
        ))

    def log_format_error(self, description: str):
        self.log_event(DetectionEvent(
            timestamp=datetime.now().isoformat(),
            event_type=DetectionEventType.FORMAT_ERROR,
            severity=Severity.LOW,
            description=description,
        ))

    def log_stream(self, text: str):
        self.log_event(DetectionEvent(
            timestamp=datetime.now().isoformat(),
            event_type=DetectionEventType.STREAM_LOG,
            severity=Severity.INFORMATIONAL,
            description=text,
        ))

    def log_archive(self, record_line: str, details: Optional[Dict[str, Any]] = None):
        self.log_event(DetectionEvent(
            timestamp=datetime.now().isoformat(),
            event_type=DetectionEventType.SESSION_ARCHIVED,
            severity=Severity.INFORMATIONAL,
            description=record_line,
            details=details or {},
        ))

    def flush(self):
        """Block until every queued event has been written."""
        self.event_queue.join()


# Global logger instance
_DETECTION_LOGGER: Optional[DetectionLogger] = None


def setup_logger(name: str = "beatguard",
                 log_file: Optional[str] = None,
                 log_level: str = "INFO",
                 enable_json: bool = True,
                 stream=None) -> logging.Logger:
    """
    Set up and configure logger.

    Args:
        name: Logger name
        log_file: Optional log file path
        log_level: Logging level
        enable_json: Whether to use JSON formatting
        stream: Console stream (default: stdout)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Already configured
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, log_level.upper()))

    if enable_json:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        _add_file_handler(logger, log_file, formatter)

    return logger


def get_logger(name: str = "beatguard") -> logging.Logger:
    return logging.getLogger(name)


def get_detection_logger(log_file: Optional[str] = None,
                         log_level: str = "INFO",
                         enable_json: bool = False,
                         stream=None) -> DetectionLogger:
    """
    Get global detection logger instance.

    The first call decides the configuration.
    """
    global _DETECTION_LOGGER

    if _DETECTION_LOGGER is None:
        _DETECTION_LOGGER = DetectionLogger(
            name="beatguard.detection",
            log_file=log_file,
            log_level=log_level,
            enable_json=enable_json,
            stream=stream,
        )

    return _DETECTION_LOGGER


def flush_logs():
    """Flush all pending detection events."""
    if _DETECTION_LOGGER:
        _DETECTION_LOGGER.flush()

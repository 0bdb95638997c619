# beatguard/core/exceptions.py
"""
Exception hierarchy for BeatGuard.

Every error raised on purpose by the package derives from BeatGuardError so
callers at the transport boundary can catch one type.
"""


# Custom exceptions
class BeatGuardError(Exception):
    """Base exception for BeatGuard operations"""
    pass


class FormatError(BeatGuardError, ValueError):
    """Raised when a BEAT string, fragment record or score value is malformed"""
    pass


class ScoreFormatError(FormatError):
    """Raised when the score state value does not match the fixed digit layout"""
    pass


class ConfigurationError(BeatGuardError):
    """Raised when grammar or detection configuration is invalid"""
    pass

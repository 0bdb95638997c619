# beatguard/core/grammar.py
"""
BEAT grammar configuration.

The client-side recorder and this package must agree on five symbol glyphs
and on the tick length. Instead of module-level constants the grammar is a
value passed to every decode/encode/detect call, so several encoding
schemes can be served side by side.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class GrammarConfig:
    """Symbol glyphs and tick length of one BEAT encoding scheme"""
    page: str = "!"               # Page-start symbol
    element: str = "*"            # Element (click target) symbol
    time_gap: str = "~"           # Gap since the previous event
    repeat_gap: str = "/"         # Gap of a repeated action on the same element
    tab_switch: str = "___"       # Tab-switch prefix, followed by the target tab id
    tick_ms: int = 100            # Length of one tick in milliseconds

    def __post_init__(self):
        symbols = self.symbols()
        for role, glyph in symbols.items():
            if not isinstance(glyph, str) or not glyph:
                raise ConfigurationError(f"Glyph for '{role}' must be a non-empty string")
            if any(ch.isdigit() for ch in glyph):
                raise ConfigurationError(f"Glyph for '{role}' must not contain digits: {glyph!r}")
        if len(set(symbols.values())) != len(symbols):
            raise ConfigurationError(f"Grammar glyphs must be distinct: {symbols}")
        if not isinstance(self.tick_ms, int) or isinstance(self.tick_ms, bool) or self.tick_ms <= 0:
            raise ConfigurationError(f"tick_ms must be a positive integer, got {self.tick_ms!r}")

    def symbols(self) -> Dict[str, str]:
        """Return role -> glyph mapping"""
        return {
            'page': self.page,
            'element': self.element,
            'time_gap': self.time_gap,
            'repeat_gap': self.repeat_gap,
            'tab_switch': self.tab_switch,
        }

    def ticks_to_ms(self, ticks: int) -> int:
        return ticks * self.tick_ms

    def ticks_to_seconds(self, ticks: int) -> float:
        """Convert a tick count into seconds (ticks * tick_ms / 1000)"""
        return ticks * self.tick_ms / 1000

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> "GrammarConfig":
        """
        Build a grammar from the ``grammar`` section of the YAML config

        Args:
            config: Mapping with optional ``tick_ms`` and ``tokens`` keys

        Returns:
            GrammarConfig instance (defaults for anything omitted)
        """
        if not config:
            return cls()
        if not isinstance(config, dict):
            raise ConfigurationError("grammar section must be a mapping")

        tokens = config.get('tokens') or {}
        if not isinstance(tokens, dict):
            raise ConfigurationError("grammar.tokens must be a mapping")
        unknown = set(tokens) - set(cls().symbols())
        if unknown:
            raise ConfigurationError(f"Unknown grammar token roles: {sorted(unknown)}")

        return cls(tick_ms=config.get('tick_ms', 100), **tokens)


# Encoding scheme shared with the default client recorder
DEFAULT_GRAMMAR = GrammarConfig()

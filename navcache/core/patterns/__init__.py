"""Navigation pattern learning."""

from navcache.core.patterns.pattern_table import PatternStats, PatternTable

__all__ = ["PatternTable", "PatternStats"]

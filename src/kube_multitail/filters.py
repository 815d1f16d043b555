"""Case-insensitive line filtering."""

import re
from typing import Iterable, List, Optional, Pattern

from .log import logger


ERROR_PATTERN = "ERROR|WARN|Exception|failed|error"


def compile_pattern(pattern: str) -> Pattern:
    """Compile a grep pattern; fall back to a literal match if it is not a valid regex."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.debug(f"Pattern '{pattern}' is not a valid regex ({e}), matching it literally")
        return re.compile(re.escape(pattern), re.IGNORECASE)


class LineFilter:
    """Keeps a line when at least one of its patterns matches."""

    def __init__(self, patterns: Iterable[str]):
        self.patterns: List[str] = [p for p in patterns if p]
        self._compiled = [compile_pattern(p) for p in self.patterns]

    @classmethod
    def build(cls, grep: Iterable[str] = (), errors: bool = False) -> Optional['LineFilter']:
        """Filter for the given grep patterns plus the error preset, or None when unfiltered."""
        patterns = [p for p in grep if p]
        if errors:
            patterns.append(ERROR_PATTERN)
        if not patterns:
            return None
        return cls(patterns)

    def matches(self, line: str) -> bool:
        return any(regex.search(line) for regex in self._compiled)

    def __repr__(self):
        return f"LineFilter({'|'.join(self.patterns)!r})"

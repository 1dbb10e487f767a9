"""
compiled.py

Executable form of a persisted pattern string.

A persisted "Regex" slot holds one of two things:
- a pattern source, run with re.search
- a numeric sentinel "__NUMERIC_<GT|LT|GTE|LTE>:<threshold>"

parse_compiled() turns the string into PatternMatch | NumericComparison so
callers dispatch on type instead of sniffing prefixes. The persisted string
shape never changes.
"""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Union

from .models import stringify_value

logger = logging.getLogger(__name__)

NUMERIC_SENTINEL_PREFIX = "__NUMERIC_"

_NUMERIC_SENTINEL_RE = re.compile(r"__NUMERIC_(GT|LT|GTE|LTE):(.*)", re.DOTALL)

_COMPARATORS: Dict[str, Callable[[float, float], bool]] = {
    "GT": operator.gt,
    "LT": operator.lt,
    "GTE": operator.ge,
    "LTE": operator.le,
}

# Leading numeric prefix, same acceptance as a lenient float parser:
# "150", " -1.5e3 USD", ".5" parse; "abc", "" do not.
_LEADING_FLOAT_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_number(value: Any) -> Optional[float]:
    """Parse the leading number of a value; None when there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if number != number else number
    m = _LEADING_FLOAT_RE.match(str(value))
    if not m:
        return None
    return float(m.group(1))


@lru_cache(maxsize=1024)
def _compile(source: str) -> re.Pattern:
    return re.compile(source)


def compile_pattern(source: str) -> Optional[re.Pattern]:
    """Compile once per source; a malformed pattern yields None."""
    try:
        return _compile(source)
    except re.error as e:
        logger.debug("Invalid pattern %r: %s", source, e)
        return None


@dataclass(frozen=True)
class PatternMatch:
    source: str

    def search(self, text: str) -> Optional[re.Match]:
        compiled = compile_pattern(self.source)
        if compiled is None:
            return None
        return compiled.search(text)

    def matches(self, value: Any) -> bool:
        return self.search(stringify_value(value).strip()) is not None


@dataclass(frozen=True)
class NumericComparison:
    code: str
    threshold: str

    @property
    def source(self) -> str:
        return f"{NUMERIC_SENTINEL_PREFIX}{self.code}:{self.threshold}"

    def matches(self, value: Any) -> bool:
        threshold = parse_number(self.threshold)
        number = parse_number(value)
        if threshold is None or number is None:
            return False
        return _COMPARATORS[self.code](number, threshold)


CompiledCondition = Union[PatternMatch, NumericComparison]


def parse_compiled(source: str) -> CompiledCondition:
    m = _NUMERIC_SENTINEL_RE.fullmatch(source)
    if m:
        return NumericComparison(code=m.group(1), threshold=m.group(2))
    return PatternMatch(source=source)

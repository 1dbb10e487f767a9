#!/usr/bin/env python3
"""
decompiler.py

Pattern Decompiler: best-effort structural inverse of compiler.py.

Shapes are recognised in a fixed precedence, most specific first:
  numeric sentinel
  extract-and-compare    (?:P)V(?:S)
  does-not-contain       ^(?!.*V)
  does-not-equal         ^(?!V$)
  extract-between        P(.*?)S
  extract-after          P(.*)
  extract-before         (.*?)S
  equals                 ^V$
  begins-with            ^V
  ends-with              V$
  matches-pattern        A|B     (unescaped alternation)
  contains               anything else, shown literally

Round-tripping is exact only for compiler-produced shapes. A hand-written
pattern that fits no shape falls through to "contains" with the full
pattern as its value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from . import operations as ops
from .compiled import NumericComparison, parse_compiled
from .models import (
    AttributeSpec,
    CompiledExpression,
    Condition,
    TagAttribute,
)

_ESCAPED_CHAR_RE = re.compile(r"\\([.*+?^${}()|\[\]\\])")

# Group fragments are runs of escaped pairs or plain characters, so an
# escaped ")" inside a prefix does not close the group early.
_EXTRACT_AND_COMPARE_RE = re.compile(r"\(\?:((?:\\.|[^\\])*?)\)(.+)\(\?:((?:\\.|[^\\])*)\)")
_DOES_NOT_CONTAIN_RE = re.compile(r"\^\(\?!\.\*(.+)\)")
_DOES_NOT_EQUAL_RE = re.compile(r"\^\(\?!(.+)\$\)")
_EXTRACT_BETWEEN_RE = re.compile(r"(.+?)\(\.\*\?\)(.+)")
_EXTRACT_AFTER_RE = re.compile(r"(.+)\(\.\*\)")
_EXTRACT_BEFORE_RE = re.compile(r"\(\.\*\?\)(.+)")
_EXTRACT_MATCHING_RE = re.compile(r"\((.+)\)")


def unescape_pattern(text: str) -> str:
    return _ESCAPED_CHAR_RE.sub(r"\1", text)


def _is_escaped(text: str, index: int) -> bool:
    """True when the character at index is preceded by an odd number of backslashes."""
    count = 0
    i = index - 1
    while i >= 0 and text[i] == "\\":
        count += 1
        i -= 1
    return count % 2 == 1


def _ends_with_anchor(text: str) -> bool:
    return len(text) > 1 and text.endswith("$") and not _is_escaped(text, len(text) - 1)


def _split_alternation(text: str) -> List[str]:
    parts = []
    start = 0
    for i, ch in enumerate(text):
        if ch == "|" and not _is_escaped(text, i):
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


@dataclass
class Decomposition:
    """Structured form recovered from a pattern."""
    operation: str
    value: str = ""
    values: Optional[List[str]] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    pattern: Optional[str] = None


# ======================================================
# SHAPE RECOGNISERS
# Each returns a Decomposition or None. Order in _SHAPES is the precedence.
# ======================================================

def _numeric(p: str) -> Optional[Decomposition]:
    compiled = parse_compiled(p)
    if not isinstance(compiled, NumericComparison):
        return None
    return Decomposition(ops.operation_for_numeric_code(compiled.code), value=compiled.threshold)


def _extract_and_compare(p: str) -> Optional[Decomposition]:
    m = _EXTRACT_AND_COMPARE_RE.fullmatch(p)
    if not m:
        return None
    return Decomposition(
        ops.EXTRACT_AND_COMPARE,
        value=unescape_pattern(m.group(2)),
        prefix=unescape_pattern(m.group(1)),
        suffix=unescape_pattern(m.group(3)),
    )


def _does_not_contain(p: str) -> Optional[Decomposition]:
    m = _DOES_NOT_CONTAIN_RE.fullmatch(p)
    return Decomposition(ops.DOES_NOT_CONTAIN, value=unescape_pattern(m.group(1))) if m else None


def _does_not_equal(p: str) -> Optional[Decomposition]:
    m = _DOES_NOT_EQUAL_RE.fullmatch(p)
    if not m or _is_escaped(p, len(p) - 2):
        return None
    return Decomposition(ops.DOES_NOT_EQUAL, value=unescape_pattern(m.group(1)))


def _extract_between(p: str) -> Optional[Decomposition]:
    m = _EXTRACT_BETWEEN_RE.fullmatch(p)
    if not m:
        return None
    return Decomposition(
        ops.EXTRACT_BETWEEN,
        prefix=unescape_pattern(m.group(1)),
        suffix=unescape_pattern(m.group(2)),
    )


def _extract_after(p: str) -> Optional[Decomposition]:
    m = _EXTRACT_AFTER_RE.fullmatch(p)
    return Decomposition(ops.EXTRACT_AFTER, prefix=unescape_pattern(m.group(1))) if m else None


def _extract_before(p: str) -> Optional[Decomposition]:
    m = _EXTRACT_BEFORE_RE.fullmatch(p)
    return Decomposition(ops.EXTRACT_BEFORE, suffix=unescape_pattern(m.group(1))) if m else None


def _equals(p: str) -> Optional[Decomposition]:
    if len(p) > 2 and p.startswith("^") and _ends_with_anchor(p):
        return Decomposition(ops.EQUALS, value=unescape_pattern(p[1:-1]))
    return None


def _begins_with(p: str) -> Optional[Decomposition]:
    if len(p) > 1 and p.startswith("^"):
        return Decomposition(ops.BEGINS_WITH, value=unescape_pattern(p[1:]))
    return None


def _ends_with(p: str) -> Optional[Decomposition]:
    if _ends_with_anchor(p):
        return Decomposition(ops.ENDS_WITH, value=unescape_pattern(p[:-1]))
    return None


def _matches_pattern(p: str) -> Optional[Decomposition]:
    parts = _split_alternation(p)
    if len(parts) < 2:
        return None
    values = [unescape_pattern(part) for part in parts]
    return Decomposition(ops.MATCHES_PATTERN, value=values[0], values=values)


def _contains(p: str) -> Decomposition:
    return Decomposition(ops.CONTAINS, value=unescape_pattern(p))


Recogniser = Callable[[str], Optional[Decomposition]]

_SHAPES: List[Tuple[str, Recogniser]] = [
    ("numeric", _numeric),
    ("extract_and_compare", _extract_and_compare),
    ("does_not_contain", _does_not_contain),
    ("does_not_equal", _does_not_equal),
    ("extract_between", _extract_between),
    ("extract_after", _extract_after),
    ("extract_before", _extract_before),
    ("equals", _equals),
    ("begins_with", _begins_with),
    ("ends_with", _ends_with),
    ("matches_pattern", _matches_pattern),
]

_EXTRACTION_SHAPES = {"extract_between", "extract_after", "extract_before"}


def _recognise(pattern: str, skip_extraction: bool = False) -> Decomposition:
    for name, recogniser in _SHAPES:
        if skip_extraction and name in _EXTRACTION_SHAPES:
            continue
        found = recogniser(pattern)
        if found is not None:
            return found
    return _contains(pattern)


# ======================================================
# PUBLIC API
# ======================================================

def decompose_match(pattern: str) -> Decomposition:
    """Recover the match operation and values behind a compiled condition."""
    return _recognise(pattern, skip_extraction=True)


def decompose_extraction(pattern: str) -> Decomposition:
    """Recover the extraction operation behind a compiled attribute pattern."""
    predefined = ops.predefined_for_pattern(pattern)
    if predefined is not None:
        return Decomposition(predefined.key)

    for recogniser in (_extract_between, _extract_after, _extract_before):
        found = recogniser(pattern)
        if found is not None:
            return found

    m = _EXTRACT_MATCHING_RE.fullmatch(pattern)
    if m:
        return Decomposition(ops.EXTRACT_MATCHING, pattern=m.group(1))
    return Decomposition(ops.EXTRACT_MATCHING, pattern=pattern)


_DESCRIPTIONS: Dict[str, Callable[[Decomposition], str]] = {
    ops.EXTRACT_AND_COMPARE: lambda d: f"Extract between '{d.prefix}' and '{d.suffix}' equals '{d.value}'",
    ops.DOES_NOT_CONTAIN: lambda d: f"Does not contain '{d.value}'",
    ops.DOES_NOT_EQUAL: lambda d: f"Does not equal '{d.value}'",
    ops.EXTRACT_BETWEEN: lambda d: f"Extract between '{d.prefix}' and '{d.suffix}'",
    ops.EXTRACT_AFTER: lambda d: f"Extract after '{d.prefix}'",
    ops.EXTRACT_BEFORE: lambda d: f"Extract before '{d.suffix}'",
    ops.EQUALS: lambda d: f"Equals '{d.value}'",
    ops.BEGINS_WITH: lambda d: f"Starts with '{d.value}'",
    ops.ENDS_WITH: lambda d: f"Ends with '{d.value}'",
    ops.MATCHES_PATTERN: lambda d: "Matches one of: " + ", ".join(f"'{v}'" for v in d.values or []),
    ops.CONTAINS: lambda d: f"Contains '{d.value}'",
}


def describe(pattern: str) -> str:
    """Human-readable rendering straight from a raw pattern."""
    predefined = ops.predefined_for_pattern(pattern)
    if predefined is not None:
        return predefined.label

    found = _recognise(pattern)
    if found.operation in ops.NUMERIC_OPERATIONS:
        code = ops.NUMERIC_OPERATIONS[found.operation]
        return f"{ops.NUMERIC_LABELS[code]} {found.value}"
    return _DESCRIPTIONS[found.operation](found)


def describe_expression(expression) -> str:
    """Cached description when present, otherwise regenerated from the pattern."""
    return expression.description or describe(expression.pattern)


# ======================================================
# EDITOR FORMS
# ======================================================

def to_condition(expression: CompiledExpression) -> Condition:
    d = decompose_match(expression.pattern)
    return Condition(
        source_field=expression.source_field,
        operation=d.operation,
        value=d.value,
        values=d.values,
        prefix=d.prefix,
        suffix=d.suffix,
    )


def to_attribute_spec(attribute: TagAttribute) -> AttributeSpec:
    expression = attribute.expression
    d = decompose_extraction(expression.pattern)
    operation = d.operation
    if expression.verify_value:
        operation = ops.EXTRACT_BETWEEN_AND_VERIFY
    return AttributeSpec(
        attribute_tag=attribute.attribute_tag,
        source_field=expression.source_field,
        extraction_operation=operation,
        is_mandatory=attribute.is_mandatory,
        validation_kind=attribute.validation_kind,
        prefix=d.prefix,
        suffix=d.suffix,
        pattern=d.pattern,
        verify_value=expression.verify_value,
    )

"""
Operation catalogue for conditions and attribute extractions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


# ======================================================
# MATCH OPERATIONS
# ======================================================

BEGINS_WITH = "begins_with"
ENDS_WITH = "ends_with"
CONTAINS = "contains"
DOES_NOT_CONTAIN = "does_not_contain"
EQUALS = "equals"
DOES_NOT_EQUAL = "does_not_equal"
MATCHES_PATTERN = "matches_pattern"
EXTRACT_AND_COMPARE = "extract_and_compare"
GREATER_THAN = "greater_than"
LESS_THAN = "less_than"
GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
LESS_THAN_OR_EQUAL = "less_than_or_equal"

# operation -> sentinel code used in "__NUMERIC_<CODE>:<threshold>"
NUMERIC_OPERATIONS: Dict[str, str] = {
    GREATER_THAN: "GT",
    LESS_THAN: "LT",
    GREATER_THAN_OR_EQUAL: "GTE",
    LESS_THAN_OR_EQUAL: "LTE",
}

NUMERIC_LABELS: Dict[str, str] = {
    "GT": "Greater than",
    "LT": "Less than",
    "GTE": "Greater than or equal to",
    "LTE": "Less than or equal to",
}

MATCH_OPERATIONS: Tuple[str, ...] = (
    BEGINS_WITH,
    ENDS_WITH,
    CONTAINS,
    DOES_NOT_CONTAIN,
    EQUALS,
    DOES_NOT_EQUAL,
    MATCHES_PATTERN,
    EXTRACT_AND_COMPARE,
) + tuple(NUMERIC_OPERATIONS)

MATCH_OPERATION_LABELS: Dict[str, str] = {
    BEGINS_WITH: "Starts with",
    ENDS_WITH: "Ends with",
    CONTAINS: "Contains",
    DOES_NOT_CONTAIN: "Does not contain",
    EQUALS: "Equals",
    DOES_NOT_EQUAL: "Does not equal",
    MATCHES_PATTERN: "Matches one of",
    EXTRACT_AND_COMPARE: "Extract between and compare",
    GREATER_THAN: "Greater than",
    LESS_THAN: "Less than",
    GREATER_THAN_OR_EQUAL: "Greater than or equal to",
    LESS_THAN_OR_EQUAL: "Less than or equal to",
}


def operation_for_numeric_code(code: str) -> Optional[str]:
    for op, c in NUMERIC_OPERATIONS.items():
        if c == code:
            return op
    return None


# ======================================================
# EXTRACTION OPERATIONS
# ======================================================

EXTRACT_BETWEEN = "extract_between"
EXTRACT_AFTER = "extract_after"
EXTRACT_BEFORE = "extract_before"
EXTRACT_MATCHING = "extract_matching"
EXTRACT_BETWEEN_AND_VERIFY = "extract_between_and_verify"

PREDEFINED_PREFIX = "predefined:"

EXTRACTION_OPERATIONS: Tuple[str, ...] = (
    EXTRACT_BETWEEN,
    EXTRACT_AFTER,
    EXTRACT_BEFORE,
    EXTRACT_MATCHING,
    EXTRACT_BETWEEN_AND_VERIFY,
)


@dataclass(frozen=True)
class PredefinedPattern:
    key: str
    label: str
    pattern: str
    # When True, a non-null extraction counts as a passed verification
    validate: bool


PREDEFINED_PATTERNS: Dict[str, PredefinedPattern] = {
    p.key: p
    for p in [
        PredefinedPattern(
            key="predefined:ksa_iban",
            label="Verify KSA IBAN",
            pattern=r"(SA\d{22})",
            validate=True,
        ),
    ]
}


def is_predefined(operation: str) -> bool:
    return operation.startswith(PREDEFINED_PREFIX)


def predefined_for_pattern(pattern: str) -> Optional[PredefinedPattern]:
    for p in PREDEFINED_PATTERNS.values():
        if p.pattern == pattern:
            return p
    return None

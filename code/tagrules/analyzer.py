#!/usr/bin/env python3
"""
analyzer.py

Row / Context Analyzer: runs every rule library against a transaction row.

Per row, per library (in order):
1. Library (parent) context must match the row; empty context = wildcard.
2. Per definition (in order):
   - StatusTag must be ACTIVE
   - today (ISO YYYY-MM-DD string) must lie within Validity
   - definition (child) context must match too (AND, not OR)
   - RuleSet must match (empty RuleSet = always)
3. On match: tag appended, definition appended, attributes extracted
   under the tag name.

Ordering follows library-then-definition order. No sorting, no de-duplication:
two definitions with the same tag yield two tag entries, and the later one's
attribute map replaces the earlier one's.

Performance:
- O(rows * libraries * definitions * conditions), no indexing.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from .evaluator import evaluate_rule_set
from .extractor import extract_attributes, verify_attributes
from .models import (
    AnalysisResult,
    Context,
    RuleLibrary,
    TagDefinition,
    TransactionRow,
    Validity,
    stringify_value,
)

PREVIEW_LIBRARY_ID = "__preview__"


def today_iso() -> str:
    return date.today().isoformat()


def context_matches(context: Context, row: TransactionRow) -> bool:
    for entry in context:
        value = row.get(entry.key)
        if value is None or stringify_value(value) != entry.value:
            return False
    return True


def is_within_validity(validity: Validity, today: str) -> bool:
    if validity.start_date and today < validity.start_date:
        return False
    if validity.end_date and today > validity.end_date:
        return False
    return True


def _definition_applies(definition: TagDefinition, row: TransactionRow, today: str) -> bool:
    if definition.status != "ACTIVE":
        return False
    if not is_within_validity(definition.validity, today):
        return False
    if not context_matches(definition.context, row):
        return False
    return evaluate_rule_set(definition.rule_set, row)


def analyze_row(
    row: TransactionRow,
    libraries: List[RuleLibrary],
    today: Optional[str] = None,
) -> AnalysisResult:
    today = today or today_iso()
    result = AnalysisResult()

    for library in libraries:
        if not context_matches(library.context, row):
            continue

        for definition in library.definitions:
            if not _definition_applies(definition, row, today):
                continue

            extracted = extract_attributes(definition.attributes, row)
            result.tags.append(definition.tag)
            result.matched_definitions.append(definition)
            result.attributes[definition.tag] = extracted
            result.verified[definition.tag] = verify_attributes(definition.attributes, extracted)

    return result


def analyze_rows(
    rows: Iterable[TransactionRow],
    libraries: List[RuleLibrary],
    today: Optional[str] = None,
) -> List[AnalysisResult]:
    # One reference date for the whole run
    today = today or today_iso()
    return [analyze_row(row, libraries, today) for row in rows]


def preview_definition(
    definition: TagDefinition,
    rows: Iterable[TransactionRow],
    today: Optional[str] = None,
) -> List[AnalysisResult]:
    """Live preview of an in-progress definition against every row."""
    library = RuleLibrary(context=[], definitions=[definition], id=PREVIEW_LIBRARY_ID)
    return analyze_rows(rows, [library], today)

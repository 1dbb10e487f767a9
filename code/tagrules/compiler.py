#!/usr/bin/env python3
"""
compiler.py

Condition Compiler: structured condition / attribute descriptions ->
pattern source + human-readable description.

Pattern Shapes
--------------
Match operations (value escaped unless noted):
- begins_with          ^VALUE
- ends_with            VALUE$
- contains             VALUE
- does_not_contain     ^(?!.*VALUE)
- equals               ^VALUE$
- does_not_equal       ^(?!VALUE$)
- matches_pattern      V1|V2|...
- extract_and_compare  (?:PREFIX)VALUE(?:SUFFIX)
- greater_than etc.    __NUMERIC_GT:<threshold>   (not a pattern, see compiled.py)

Extraction operations:
- extract_between              PREFIX(.*?)SUFFIX
- extract_after                PREFIX(.*)
- extract_before               (.*?)SUFFIX
- extract_matching             (RAW)        raw fragment, not escaped
- extract_between_and_verify   PREFIX(.*?)SUFFIX   (verify value checked downstream)
- predefined:<name>            fixed table, parameters ignored

All functions are deterministic: same inputs -> byte-identical output.
"""

from __future__ import annotations

import re
from typing import List, Optional

from . import operations as ops
from .compiled import NumericComparison
from .models import (
    AttributeExpression,
    AttributeSpec,
    CompiledExpression,
    Condition,
    DefinitionId,
    TagAttribute,
)

# Characters with special meaning in the persisted pattern dialect
_SPECIAL_CHARS_RE = re.compile(r"([.*+?^${}()|\[\]\\])")


def escape_pattern(text: str) -> str:
    return _SPECIAL_CHARS_RE.sub(r"\\\1", text)


def _values_or_single(value: str, values: Optional[List[str]]) -> List[str]:
    return list(values) if values else [value]


# ======================================================
# MATCH CONDITIONS
# ======================================================

def compile_match(
    operation: str,
    value: str,
    values: Optional[List[str]] = None,
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
) -> str:
    if operation in ops.NUMERIC_OPERATIONS:
        return NumericComparison(ops.NUMERIC_OPERATIONS[operation], value.strip()).source

    escaped = escape_pattern(value)

    if operation == ops.BEGINS_WITH:
        return f"^{escaped}"
    if operation == ops.ENDS_WITH:
        return f"{escaped}$"
    if operation == ops.CONTAINS:
        return escaped
    if operation == ops.DOES_NOT_CONTAIN:
        return f"^(?!.*{escaped})"
    if operation == ops.EQUALS:
        return f"^{escaped}$"
    if operation == ops.DOES_NOT_EQUAL:
        return f"^(?!{escaped}$)"
    if operation == ops.MATCHES_PATTERN:
        return "|".join(escape_pattern(v) for v in _values_or_single(value, values))
    if operation == ops.EXTRACT_AND_COMPARE:
        return f"(?:{escape_pattern(prefix or '')}){escaped}(?:{escape_pattern(suffix or '')})"
    return escaped


def describe_match(
    operation: str,
    value: str,
    values: Optional[List[str]] = None,
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
) -> str:
    if operation in ops.NUMERIC_OPERATIONS:
        return f"{ops.NUMERIC_LABELS[ops.NUMERIC_OPERATIONS[operation]]} {value.strip()}"
    if operation == ops.BEGINS_WITH:
        return f"Begin with '{value}'"
    if operation == ops.ENDS_WITH:
        return f"End with '{value}'"
    if operation == ops.CONTAINS:
        return f"Contain '{value}'"
    if operation == ops.DOES_NOT_CONTAIN:
        return f"Not contain '{value}'"
    if operation == ops.EQUALS:
        return f"Equal '{value}'"
    if operation == ops.DOES_NOT_EQUAL:
        return f"Not equal '{value}'"
    if operation == ops.MATCHES_PATTERN:
        quoted = ", ".join(f"'{v}'" for v in _values_or_single(value, values))
        return f"Match one of: {quoted}"
    if operation == ops.EXTRACT_AND_COMPARE:
        return f"Extract between '{prefix or ''}' and '{suffix or ''}' equals '{value}'"
    return value


# ======================================================
# EXTRACTIONS
# ======================================================

def compile_extraction(
    operation: str,
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
    pattern: Optional[str] = None,
    verify_value: Optional[str] = None,
) -> str:
    if ops.is_predefined(operation):
        predefined = ops.PREDEFINED_PATTERNS.get(operation)
        return predefined.pattern if predefined else "(.*)"
    if operation in (ops.EXTRACT_BETWEEN, ops.EXTRACT_BETWEEN_AND_VERIFY):
        return f"{escape_pattern(prefix or '')}(.*?){escape_pattern(suffix or '')}"
    if operation == ops.EXTRACT_AFTER:
        return f"{escape_pattern(prefix or '')}(.*)"
    if operation == ops.EXTRACT_BEFORE:
        return f"(.*?){escape_pattern(suffix or '')}"
    if operation == ops.EXTRACT_MATCHING:
        return f"({pattern or '.*'})"
    return "(.*)"


def describe_extraction(
    operation: str,
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
    pattern: Optional[str] = None,
    verify_value: Optional[str] = None,
) -> str:
    if ops.is_predefined(operation):
        predefined = ops.PREDEFINED_PATTERNS.get(operation)
        return predefined.label if predefined else "Extract value"
    if operation == ops.EXTRACT_BETWEEN:
        return f"Extract between '{prefix or ''}' and '{suffix or ''}'"
    if operation == ops.EXTRACT_BETWEEN_AND_VERIFY:
        return f"Extract between '{prefix or ''}' and '{suffix or ''}' and verify '{verify_value or ''}'"
    if operation == ops.EXTRACT_AFTER:
        return f"Extract after '{prefix or ''}'"
    if operation == ops.EXTRACT_BEFORE:
        return f"Extract before '{suffix or ''}'"
    if operation == ops.EXTRACT_MATCHING:
        return f"Extract matching '{pattern or ''}'"
    return "Extract value"


# ======================================================
# FORM -> PERSISTED EXPRESSIONS
# ======================================================

def make_expression_id(definition_id: DefinitionId, prefix: str, index: int) -> str:
    return f"{definition_id}-{prefix}-{index}"


def compile_condition(condition: Condition, pattern_id: Optional[str] = None) -> CompiledExpression:
    args = (condition.operation, condition.value, condition.values)
    kwargs = {"prefix": condition.prefix, "suffix": condition.suffix}
    return CompiledExpression(
        source_field=condition.source_field,
        pattern=compile_match(*args, **kwargs),
        pattern_id=pattern_id,
        description=describe_match(*args, **kwargs),
    )


def compile_attribute(spec: AttributeSpec, pattern_id: Optional[str] = None) -> TagAttribute:
    params = {
        "prefix": spec.prefix,
        "suffix": spec.suffix,
        "pattern": spec.pattern,
        "verify_value": spec.verify_value,
    }
    expression = AttributeExpression(
        source_field=spec.source_field,
        pattern=compile_extraction(spec.extraction_operation, **params),
        description=describe_extraction(spec.extraction_operation, **params),
        verify_value=spec.verify_value or None,
        pattern_id=pattern_id,
    )
    return TagAttribute(
        attribute_tag=spec.attribute_tag,
        expression=expression,
        is_mandatory=spec.is_mandatory,
        validation_kind=spec.validation_kind,
    )


def compile_rule_set(groups: List[List[Condition]]) -> List[List[CompiledExpression]]:
    return [[compile_condition(c) for c in group] for group in groups]


def compile_attributes(definition_id: DefinitionId, specs: List[AttributeSpec]) -> List[TagAttribute]:
    return [
        compile_attribute(spec, pattern_id=make_expression_id(definition_id, "attr", i))
        for i, spec in enumerate(specs)
    ]

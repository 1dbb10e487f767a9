"""
Attribute Extractor: pulls attribute values out of a matched row.

Capture policy:
- source field falsy (missing, None, "", 0, False) -> None
- otherwise the first capturing group of the first match -> str
- no match, no group, or a malformed pattern -> None
"""

from __future__ import annotations

from typing import Dict, List, Optional

from . import operations as ops
from .compiled import PatternMatch
from .models import TagAttribute, TransactionRow, stringify_value


def extract_value(attribute: TagAttribute, row: TransactionRow) -> Optional[str]:
    expression = attribute.expression
    raw = row.get(expression.source_field)
    # Falsy check, not a None check: empty strings and zero also yield None
    if not raw:
        return None

    m = PatternMatch(expression.pattern).search(stringify_value(raw))
    if m is None or m.re.groups < 1:
        return None
    return m.group(1)


def extract_attributes(attributes: List[TagAttribute], row: TransactionRow) -> Dict[str, Optional[str]]:
    return {attr.attribute_tag: extract_value(attr, row) for attr in attributes}


def verify_attributes(
    attributes: List[TagAttribute],
    extracted: Dict[str, Optional[str]],
) -> Dict[str, bool]:
    """
    Downstream verification of extracted values.

    - VerifyValue present: extracted value must equal it
    - Validating predefined pattern: a value must have been extracted
    Attributes with neither are left out of the result.
    """
    verified: Dict[str, bool] = {}
    for attr in attributes:
        value = extracted.get(attr.attribute_tag)
        expression = attr.expression
        if expression.verify_value:
            verified[attr.attribute_tag] = value == expression.verify_value
            continue
        predefined = ops.predefined_for_pattern(expression.pattern)
        if predefined is not None and predefined.validate:
            verified[attr.attribute_tag] = value is not None
    return verified

"""
Field metadata derived from transaction rows (row shape is data-driven).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List

SKIP_FIELDS = {
    "FMSId",
    "Hash",
    "IsDeadEnd",
    "TagSpecId",
    "Version",
    "Tag",
    "CertaintyLevel",
    "Attributes",
    "MultiTags",
    "ExtractionCompletness",
}

IDENTIFIER_CANDIDATES = ["_id", "Identifier", "Name"]

# Always shown first, in this order, when present
PRIORITY_FIELDS = [
    "BankSwiftCode",
    "IBAN",
    "EntryDate",
    "Side",
    "TransactionTypeCode",
    "Amount",
]


@dataclass(frozen=True)
class FieldMeta:
    identifier_field: str
    data_fields: List[str]

    @property
    def source_fields(self) -> List[str]:
        return self.data_fields


def derive_field_meta(rows: List[Dict[str, Any]]) -> FieldMeta:
    all_keys = set()
    object_keys = set()
    for row in rows:
        for key, value in row.items():
            all_keys.add(key)
            if isinstance(value, (dict, list)):
                object_keys.add(key)

    identifier = next((c for c in IDENTIFIER_CANDIDATES if c in all_keys), IDENTIFIER_CANDIDATES[0])

    excluded = SKIP_FIELDS | object_keys | {identifier}
    remaining = sorted(k for k in all_keys if k not in excluded)

    data_fields = [f for f in PRIORITY_FIELDS if f in remaining]
    data_fields += [f for f in remaining if f not in PRIORITY_FIELDS]
    return FieldMeta(identifier_field=identifier, data_fields=data_fields)


def humanize_field_name(name: str) -> str:
    """
    BankSwiftCode -> Bank Swift Code, Field86 -> Field 86, IBANCode -> IBAN Code.
    """
    s = re.sub(r"([a-z])([A-Z])", r"\1 \2", name)
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", s)
    s = re.sub(r"([a-zA-Z])(\d)", r"\1 \2", s)
    s = re.sub(r"(\d)([a-zA-Z])", r"\1 \2", s)
    return s

#!/usr/bin/env python3
"""
persistence.py

Import/export boundary for rule collections and transaction rows.

Rule collection document contract:
- top-level value is a JSON array
- every entry is an object with a "Context" array and a
  "TagSpecDefinitions" array
Anything else raises RuleCollectionFormatError before the core sees it.

Transactions:
- .csv  -> read with pandas, NaN cells become None
- .json -> {"Transactions": [...]} or a bare array of row objects
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Union

import pandas as pd

from .models import RuleLibrary, TransactionRow


class RuleCollectionFormatError(ValueError):
    """Raised when a rule collection document does not have the expected shape."""
    pass


# ======================================================
# RULE COLLECTIONS
# ======================================================

def _validate_document(data: Any) -> None:
    if not isinstance(data, list):
        raise RuleCollectionFormatError(
            f"Invalid rule collection: expected a JSON array of libraries, got {type(data).__name__}"
        )
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise RuleCollectionFormatError(f"Invalid library at index {i}: expected an object")
        missing = [k for k in ("Context", "TagSpecDefinitions") if not isinstance(entry.get(k), list)]
        if missing:
            raise RuleCollectionFormatError(
                f"Invalid library at index {i}: missing array(s) {missing}"
            )
        for j, definition in enumerate(entry["TagSpecDefinitions"]):
            if not isinstance(definition, dict):
                raise RuleCollectionFormatError(
                    f"Invalid definition at index {j} of library {i}: expected an object"
                )


def loads_libraries(text: str) -> List[RuleLibrary]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RuleCollectionFormatError(f"Invalid rule collection: not valid JSON ({exc})") from exc

    _validate_document(data)
    try:
        return [RuleLibrary.from_dict(entry) for entry in data]
    except (AttributeError, KeyError, TypeError) as exc:
        raise RuleCollectionFormatError(f"Invalid rule collection: malformed definition ({exc!r})") from exc


def load_libraries(path: Union[str, Path]) -> List[RuleLibrary]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rule collection file not found: {path}")
    return loads_libraries(path.read_text(encoding="utf-8"))


def dumps_libraries(libraries: List[RuleLibrary]) -> str:
    return json.dumps([lib.to_dict() for lib in libraries], indent=2, ensure_ascii=False)


def save_libraries(libraries: List[RuleLibrary], path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_libraries(libraries), encoding="utf-8")
    return path


# ======================================================
# TRANSACTIONS
# ======================================================

def frame_to_rows(df: pd.DataFrame) -> List[TransactionRow]:
    """DataFrame -> row dicts, with NaN/NaT turned into None."""
    clean = df.astype(object).where(pd.notna(df), None)
    return clean.to_dict(orient="records")


def load_transactions(path: Union[str, Path]) -> List[TransactionRow]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Transactions file not found: {path}")

    if path.suffix.lower() == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("Transactions")
        if not isinstance(data, list):
            raise ValueError(f"Invalid transactions file (expected a Transactions array): {path}")
        return [dict(row) for row in data]

    # Keep every column as text so codes like "0101" survive
    df = pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""])
    return frame_to_rows(df)

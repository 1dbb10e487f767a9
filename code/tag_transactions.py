#!/usr/bin/env python3
"""
tag_transactions.py

Deterministic, explainable transaction tagger driven by a rule collection document.

Each transaction row is checked against every rule library:
- Library context (e.g. BankSwiftCode + Side) gates the whole library.
- Definition context (e.g. TransactionTypeCode) gates one definition.
- Only ACTIVE definitions inside their validity window are considered.
- A definition matches when any of its AND groups matches (OR-of-AND).
- Matched definitions contribute a tag plus extracted attribute values.

Output columns added to the input:
- Tags                     "|"-joined tags, in rule order
- Tag_Count
- Matched_Definition_Ids   "|"-joined definition Ids
- Top_Certainty            highest CertaintyLevelTag among matches
- Attr__<Tag>__<Attribute>      extracted value (blank when none)
- Verified__<Tag>__<Attribute>  verification outcome, where defined

IO:
- Rules:        --rules  or TAG_RULES_JSON
- Transactions: --input  or TAG_INPUT_PATH   (.csv or .json)
- Output dir:   --output-dir or TAG_OUTPUT_DIR -> tagged_transactions.csv
- Validity reference date: --as-of or TAG_AS_OF_DATE (default: today)

RUN_SELF_CHECKS=1 runs built-in checks instead.

Performance:
- O(rows * definitions * conditions) row-wise evaluation. Fine for statement volumes.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from dotenv import load_dotenv

from tagrules.analyzer import analyze_rows
from tagrules.compiler import compile_attribute, compile_condition
from tagrules.config import load_settings
from tagrules.models import (
    AttributeSpec,
    Condition,
    ContextEntry,
    RuleLibrary,
    TagDefinition,
    Validity,
)
from tagrules.persistence import frame_to_rows, load_libraries, load_transactions


# ======================================================
# CONFIG
# ======================================================

OUTPUT_FILENAME = "tagged_transactions.csv"

TAG_SEPARATOR = "|"
ATTR_COLUMN_PREFIX = "Attr__"
VERIFIED_COLUMN_PREFIX = "Verified__"

CERTAINTY_RANK = {"HIGH": 3, "MEDIUM": 2, "LOW": 1}


# ======================================================
# HELPERS
# ======================================================

def attr_column(tag: str, attribute: str) -> str:
    return f"{ATTR_COLUMN_PREFIX}{tag}__{attribute}"


def verified_column(tag: str, attribute: str) -> str:
    return f"{VERIFIED_COLUMN_PREFIX}{tag}__{attribute}"


def split_tags(cell: object) -> List[str]:
    if cell is None or pd.isna(cell):
        return []
    s = str(cell).strip()
    return [t for t in s.split(TAG_SEPARATOR) if t] if s else []


def _top_certainty(definitions: List[TagDefinition]) -> str:
    if not definitions:
        return ""
    best = max(definitions, key=lambda d: CERTAINTY_RANK.get(d.certainty, 0))
    return best.certainty


def attribute_columns(libraries: List[RuleLibrary]) -> List[str]:
    """Stable, rule-ordered list of every attribute / verification column."""
    cols: List[str] = []
    for lib in libraries:
        for definition in lib.definitions:
            for attr in definition.attributes:
                for col in (
                    attr_column(definition.tag, attr.attribute_tag),
                    verified_column(definition.tag, attr.attribute_tag),
                ):
                    if col not in cols:
                        cols.append(col)
    return cols


# ======================================================
# PIPELINE
# ======================================================

def tag_frame(
    df: pd.DataFrame,
    libraries: List[RuleLibrary],
    today: Optional[str] = None,
) -> pd.DataFrame:
    df = df.copy().reset_index(drop=True)
    results = analyze_rows(frame_to_rows(df), libraries, today)

    df["Tags"] = [TAG_SEPARATOR.join(r.tags) for r in results]
    df["Tag_Count"] = [len(r.tags) for r in results]
    df["Matched_Definition_Ids"] = [
        TAG_SEPARATOR.join(str(d.id) for d in r.matched_definitions) for r in results
    ]
    df["Top_Certainty"] = [_top_certainty(r.matched_definitions) for r in results]

    expanded: Dict[str, List[object]] = {col: [None] * len(df) for col in attribute_columns(libraries)}
    for i, r in enumerate(results):
        for tag, values in r.attributes.items():
            for name, value in values.items():
                expanded[attr_column(tag, name)][i] = value
        for tag, checks in r.verified.items():
            for name, ok in checks.items():
                expanded[verified_column(tag, name)][i] = ok

    # Drop verification columns no attribute ever fills
    for col, values in expanded.items():
        if col.startswith(VERIFIED_COLUMN_PREFIX) and all(v is None for v in values):
            continue
        df[col] = values

    return df


def tag_transactions_file(
    rules_json: Path,
    input_path: Path,
    output_dir: Path,
    today: Optional[str] = None,
) -> pd.DataFrame:
    libraries = load_libraries(rules_json)
    df = pd.DataFrame(load_transactions(input_path))

    out = tag_frame(df, libraries, today)

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / OUTPUT_FILENAME
    out.to_csv(output_path, index=False)

    n_defs = sum(len(lib.definitions) for lib in libraries)
    tagged = int((out["Tag_Count"] > 0).sum()) if len(out) else 0
    print(f"[INFO] Rule libraries: {len(libraries)} ({n_defs} definitions)")
    print(f"[INFO] Transactions: {len(out)}")
    print(f"[OK] Tagged rows: {tagged} ({(tagged / len(out)) if len(out) else 0:.1%})")
    print(f"Tagging complete -> {output_path}")
    return out


# ======================================================
# ENTRY POINT
# ======================================================

def _sample_libraries() -> List[RuleLibrary]:
    definition = TagDefinition(
        id="self-check-1",
        tag="ORDERING_PARTY",
        context=[],
        validity=Validity(start_date="2000-01-01"),
        rule_set=[[compile_condition(Condition("Field86", "begins_with", "ORDP"))]],
        attributes=[
            compile_attribute(AttributeSpec("Reference", "Field86", "extract_between", prefix="ORDP/", suffix="/")),
            compile_attribute(AttributeSpec("IBAN", "Field86", "predefined:ksa_iban")),
        ],
    )
    large = TagDefinition(
        id="self-check-2",
        tag="LARGE_CREDIT",
        validity=Validity(start_date="2000-01-01"),
        rule_set=[[compile_condition(Condition("Amount", "greater_than", "100"))]],
    )
    return [
        RuleLibrary(
            context=[ContextEntry("BankSwiftCode", "ARNBSARI"), ContextEntry("Side", "CR")],
            definitions=[definition, large],
        )
    ]


def _self_check() -> None:
    libraries = _sample_libraries()
    df = pd.DataFrame(
        [
            {"BankSwiftCode": "ARNBSARI", "Side": "CR", "Field86": "ORDP/1234/SA0380000000608010167519", "Amount": "150"},
            {"BankSwiftCode": "ARNBSARI", "Side": "DR", "Field86": "ORDP/1234/", "Amount": "150"},
            {"BankSwiftCode": "ARNBSARI", "Side": "CR", "Field86": "OTHER", "Amount": "abc"},
        ]
    )

    out = tag_frame(df, libraries, today="2024-06-01")

    assert split_tags(out.loc[0, "Tags"]) == ["ORDERING_PARTY", "LARGE_CREDIT"], out.loc[0, "Tags"]
    assert out.loc[0, attr_column("ORDERING_PARTY", "Reference")] == "1234"
    assert out.loc[0, attr_column("ORDERING_PARTY", "IBAN")] == "SA0380000000608010167519"
    assert bool(out.loc[0, verified_column("ORDERING_PARTY", "IBAN")]) is True
    assert out.loc[0, "Top_Certainty"] == "HIGH"

    # Side mismatch: library context gates every definition
    assert split_tags(out.loc[1, "Tags"]) == []
    # Rule miss + non-numeric amount: no tags, no error
    assert split_tags(out.loc[2, "Tags"]) == []

    print("Tagging self-checks passed.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tag bank transactions with a rule collection")
    parser.add_argument("--rules", type=str, default=None, help="Rule collection JSON")
    parser.add_argument("--input", type=str, default=None, help="Transactions CSV or JSON")
    parser.add_argument("--output-dir", type=str, default=None, help="Directory for tagged_transactions.csv")
    parser.add_argument("--as-of", type=str, default=None, help="Validity reference date (YYYY-MM-DD)")
    return parser.parse_args()


def main():
    load_dotenv()

    if os.getenv("RUN_SELF_CHECKS") == "1":
        _self_check()
        return

    args = parse_args()
    try:
        settings = load_settings(
            rules_json=args.rules,
            input_path=args.input,
            output_dir=args.output_dir,
            as_of_date=args.as_of,
        )
    except ValueError as e:
        raise SystemExit(f"Missing configuration: {e}. Provide --rules/--input/--output-dir or set them in .env.")

    print("=" * 60)
    print("TRANSACTION TAGGING")
    print("=" * 60)
    print(f"Rules:  {settings.rules_json}")
    print(f"Input:  {settings.input_path}")
    print(f"Output: {settings.output_dir}")
    if settings.as_of_date:
        print(f"As of:  {settings.as_of_date}")
    print()

    tag_transactions_file(
        settings.rules_json,
        settings.input_path,
        settings.output_dir,
        today=settings.as_of_date,
    )


if __name__ == "__main__":
    main()

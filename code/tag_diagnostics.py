#!/usr/bin/env python3
"""
tag_diagnostics.py

Diagnostic tool for rule-based transaction tagging.

Generates evidence artifacts to explain tagging gaps: which tags fire, how
much of the statement stays untagged, and how well attributes are extracted.

Outputs:
- tag_coverage_summary.csv
- untagged_pressure_report.csv
- attribute_extraction_report.csv
- rule_catalog.csv

Usage:
    python tag_diagnostics.py \\
        --input <tagged_transactions.csv> \\
        --rules <rules.json> \\
        --output-dir <diagnostics/> \\
        [--description-field Field86]
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
from dotenv import load_dotenv

from tag_transactions import (
    attr_column,
    split_tags,
    verified_column,
)
from tagrules.config import DEFAULT_DESCRIPTION_FIELD
from tagrules.decompiler import describe_expression
from tagrules.fields import derive_field_meta, humanize_field_name
from tagrules.models import RuleLibrary
from tagrules.persistence import load_libraries


# ======================================================
# CONFIGURATION BLOCK
# ======================================================

THRESHOLDS = {
    "UNTAGGED_WARNING_PCT": 0.30,   # 30% of rows
    "UNTAGGED_CRITICAL_PCT": 0.50,  # 50% of rows
}

REQUIRED_COLUMNS = ["Tags"]

TOP_N_DESCRIPTIONS = 5


# ======================================================
# HELPERS
# ======================================================

def normalize_description(desc: object) -> str:
    """
    Normalize description for grouping.
    - Uppercase
    - Collapse whitespace
    - Truncate to 80 chars
    """
    if desc is None or pd.isna(desc):
        return ""
    s = str(desc).upper().strip()
    s = " ".join(s.split())
    return s[:80]


def get_severity(pct: float, warning_threshold: float, critical_threshold: float) -> str:
    """Determine severity level based on percentage thresholds."""
    if pct >= critical_threshold:
        return "CRITICAL"
    elif pct >= warning_threshold:
        return "WARNING"
    return "OK"


def format_context(context) -> str:
    return ", ".join(f"{e.key}={e.value}" for e in context) if context else "(any)"


def validate_required_columns(df: pd.DataFrame) -> None:
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        available = sorted(df.columns.tolist())
        raise ValueError(
            f"Missing required columns for diagnostics: {missing}\n"
            f"Available columns: {available}\n"
            f"Hint: Ensure input is tagged_transactions.csv produced by tag_transactions.py."
        )


# ======================================================
# REPORT GENERATORS
# ======================================================

def generate_tag_coverage_summary(df: pd.DataFrame) -> pd.DataFrame:
    """One row per tag: rows carrying it, share of all rows, rank by count."""
    columns = ["Tag", "Txn_Count", "Txn_Pct", "Rank"]
    total = len(df)
    counts: Dict[str, int] = {}
    for cell in df["Tags"]:
        # A tag emitted twice for one row counts once for that row
        for tag in set(split_tags(cell)):
            counts[tag] = counts.get(tag, 0) + 1

    if not counts:
        return pd.DataFrame(columns=columns)

    summary = pd.DataFrame(
        [{"Tag": tag, "Txn_Count": n} for tag, n in counts.items()]
    )
    summary["Txn_Pct"] = (summary["Txn_Count"] / total * 100).round(2)

    # Deterministic: count desc, then Tag asc
    summary = summary.sort_values(["Txn_Count", "Tag"], ascending=[False, True]).reset_index(drop=True)
    summary["Rank"] = range(1, len(summary) + 1)
    return summary[columns]


def _get_top_descriptions(df: pd.DataFrame, description_field: str, n: int) -> Dict[str, object]:
    """
    Top N normalized descriptions by count.
    Returns dict with Top_Description_1..N and their counts.
    """
    result: Dict[str, object] = {}
    ranked: List[Tuple[str, int]] = []

    if len(df) > 0 and description_field in df.columns:
        norm = df[description_field].apply(normalize_description)
        counts = norm[norm != ""].value_counts()
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:n]

    for i in range(n):
        idx = i + 1
        if i < len(ranked):
            result[f"Top_Description_{idx}"] = ranked[i][0]
            result[f"Top_Description_{idx}_Count"] = int(ranked[i][1])
        else:
            result[f"Top_Description_{idx}"] = ""
            result[f"Top_Description_{idx}_Count"] = 0
    return result


def generate_untagged_pressure_report(df: pd.DataFrame, description_field: str) -> pd.DataFrame:
    """How much of the statement no rule explains, with the most common leftovers."""
    total = len(df)
    untagged = df[df["Tags"].apply(lambda c: len(split_tags(c)) == 0)]
    pct = (len(untagged) / total) if total > 0 else 0.0

    row = {
        "Total_Rows": total,
        "Untagged_Count": len(untagged),
        "Untagged_Pct": round(pct * 100, 2),
        "Severity": get_severity(
            pct, THRESHOLDS["UNTAGGED_WARNING_PCT"], THRESHOLDS["UNTAGGED_CRITICAL_PCT"]
        ),
        "Threshold_Warning": THRESHOLDS["UNTAGGED_WARNING_PCT"] * 100,
        "Threshold_Critical": THRESHOLDS["UNTAGGED_CRITICAL_PCT"] * 100,
        "Description_Field": description_field,
        **_get_top_descriptions(untagged, description_field, TOP_N_DESCRIPTIONS),
    }
    return pd.DataFrame([row])


def _is_blank(value: object) -> bool:
    return value is None or pd.isna(value) or str(value).strip() == ""


def _is_false(value: object) -> bool:
    if _is_blank(value):
        return False
    return str(value).strip().lower() in ("false", "0")


def generate_attribute_extraction_report(df: pd.DataFrame, libraries: List[RuleLibrary]) -> pd.DataFrame:
    """
    Per (tag, attribute): rows where the tag fired, values extracted,
    nulls, mandatory attributes left empty, failed verifications.
    """
    columns = [
        "Tag", "Attribute", "Is_Mandatory", "Matched_Rows", "Extracted",
        "Null", "Extraction_Pct", "Mandatory_Missing", "Verification_Failed",
    ]
    rows = []
    seen = set()
    tagged_mask_cache: Dict[str, pd.Series] = {}

    for lib in libraries:
        for definition in lib.definitions:
            for attr in definition.attributes:
                key = (definition.tag, attr.attribute_tag)
                if key in seen:
                    continue
                seen.add(key)

                if definition.tag not in tagged_mask_cache:
                    tagged_mask_cache[definition.tag] = df["Tags"].apply(
                        lambda c, t=definition.tag: t in split_tags(c)
                    )
                matched = df[tagged_mask_cache[definition.tag]]

                col = attr_column(definition.tag, attr.attribute_tag)
                if col in matched.columns:
                    blank = matched[col].apply(_is_blank)
                else:
                    blank = pd.Series(True, index=matched.index)
                extracted = int((~blank).sum())
                nulls = int(blank.sum())

                vcol = verified_column(definition.tag, attr.attribute_tag)
                failed = int(matched[vcol].apply(_is_false).sum()) if vcol in matched.columns else 0

                rows.append({
                    "Tag": definition.tag,
                    "Attribute": attr.attribute_tag,
                    "Is_Mandatory": attr.is_mandatory,
                    "Matched_Rows": len(matched),
                    "Extracted": extracted,
                    "Null": nulls,
                    "Extraction_Pct": round(extracted / len(matched) * 100, 2) if len(matched) else 0.0,
                    "Mandatory_Missing": nulls if attr.is_mandatory else 0,
                    "Verification_Failed": failed,
                })

    return pd.DataFrame(rows, columns=columns)


def generate_rule_catalog(df: pd.DataFrame, libraries: List[RuleLibrary]) -> pd.DataFrame:
    """One line per condition / attribute, described for humans."""
    columns = [
        "Library_Context", "Definition_Id", "Tag", "Status", "Definition_Context",
        "Kind", "Group", "Source_Field", "Source_Label", "Description", "Field_In_Data",
    ]
    meta = derive_field_meta(df.to_dict(orient="records"))
    known = set(meta.data_fields) | {meta.identifier_field}

    rows = []
    for lib in libraries:
        for definition in lib.definitions:
            base = {
                "Library_Context": format_context(lib.context),
                "Definition_Id": str(definition.id),
                "Tag": definition.tag,
                "Status": definition.status,
                "Definition_Context": format_context(definition.context),
            }
            if not definition.rule_set:
                rows.append({
                    **base, "Kind": "CONDITION", "Group": "", "Source_Field": "",
                    "Source_Label": "", "Description": "(always matches)", "Field_In_Data": True,
                })
            for g, group in enumerate(definition.rule_set, start=1):
                for expr in group:
                    rows.append({
                        **base,
                        "Kind": "CONDITION",
                        "Group": g,
                        "Source_Field": expr.source_field,
                        "Source_Label": humanize_field_name(expr.source_field),
                        "Description": describe_expression(expr),
                        "Field_In_Data": expr.source_field in known,
                    })
            for attr in definition.attributes:
                expr = attr.expression
                rows.append({
                    **base,
                    "Kind": f"ATTRIBUTE:{attr.attribute_tag}",
                    "Group": "",
                    "Source_Field": expr.source_field,
                    "Source_Label": humanize_field_name(expr.source_field),
                    "Description": describe_expression(expr),
                    "Field_In_Data": expr.source_field in known,
                })

    return pd.DataFrame(rows, columns=columns)


# ======================================================
# OUTPUT AND SUMMARY
# ======================================================

def write_outputs(output_dir: Path, reports: Dict[str, pd.DataFrame]) -> Dict[str, Path]:
    """Write all CSV artifacts to output directory."""
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = {}
    for name, frame in reports.items():
        path = output_dir / f"{name}.csv"
        frame.to_csv(path, index=False)
        paths[name] = path
    return paths


def print_console_summary(
    input_path: Path,
    total_rows: int,
    coverage: pd.DataFrame,
    untagged: pd.DataFrame,
    catalog: pd.DataFrame,
    output_paths: Dict[str, Path],
) -> None:
    """Print human-readable summary to console."""
    print("\n" + "=" * 60)
    print("TAGGING DIAGNOSTICS")
    print("=" * 60)

    print(f"\nInput: {input_path}")
    print(f"Total rows loaded: {total_rows}")

    print("\nTop 5 Tags by Coverage:")
    if len(coverage) > 0:
        for _, row in coverage.head(5).iterrows():
            print(f"  {row['Rank']}. {row['Tag']:<30} | {row['Txn_Count']:>6} rows ({row['Txn_Pct']:.1f}%)")
    else:
        print("  (no tags)")

    u = untagged.iloc[0]
    marker = f" [{u['Severity']}]" if u["Severity"] != "OK" else ""
    print(f"\nUntagged: {u['Untagged_Count']} rows ({u['Untagged_Pct']:.1f}%){marker}")

    missing_fields = sorted(set(catalog.loc[~catalog["Field_In_Data"].astype(bool), "Source_Field"]) - {""})
    if missing_fields:
        print(f"\n[WARNING] Rules reference fields absent from the data: {missing_fields}")

    print(f"\nOutputs written to: {next(iter(output_paths.values())).parent}/")
    for path in output_paths.values():
        print(f"  - {path.name}")

    print("\n" + "=" * 60)


def run_diagnostics(
    input_path: Path,
    rules_path: Path,
    output_dir: Path,
    description_field: str = DEFAULT_DESCRIPTION_FIELD,
) -> Dict[str, pd.DataFrame]:
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    df = pd.read_csv(input_path, dtype=str, keep_default_na=False, na_values=[""])
    validate_required_columns(df)
    libraries = load_libraries(rules_path)

    reports = {
        "tag_coverage_summary": generate_tag_coverage_summary(df),
        "untagged_pressure_report": generate_untagged_pressure_report(df, description_field),
        "attribute_extraction_report": generate_attribute_extraction_report(df, libraries),
        "rule_catalog": generate_rule_catalog(df, libraries),
    }
    output_paths = write_outputs(output_dir, reports)

    print_console_summary(
        input_path,
        len(df),
        reports["tag_coverage_summary"],
        reports["untagged_pressure_report"],
        reports["rule_catalog"],
        output_paths,
    )
    return reports


# ======================================================
# CLI AND MAIN
# ======================================================

def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Transaction tagging diagnostics tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tag_diagnostics.py --input tagged.csv --rules rules.json --output-dir diagnostics/
  python tag_diagnostics.py --input tagged.csv --rules rules.json --output-dir diagnostics/ --description-field Description
        """
    )
    parser.add_argument("--input", required=True, type=str, help="Path to tagged_transactions.csv")
    parser.add_argument("--rules", type=str, default=None, help="Rule collection JSON (default: TAG_RULES_JSON)")
    parser.add_argument("--output-dir", required=True, type=str, help="Output directory for diagnostic CSVs")
    parser.add_argument(
        "--description-field",
        type=str,
        default=None,
        help=f"Free-text field for grouping untagged rows (default: TAG_DESCRIPTION_FIELD or {DEFAULT_DESCRIPTION_FIELD})",
    )
    return parser.parse_args()


def main() -> None:
    """Main entry point."""
    load_dotenv()
    args = parse_args()

    rules = args.rules or os.getenv("TAG_RULES_JSON")
    if not rules:
        raise SystemExit("Missing rules. Provide --rules or set TAG_RULES_JSON in .env.")
    description_field: Optional[str] = (
        args.description_field or os.getenv("TAG_DESCRIPTION_FIELD") or DEFAULT_DESCRIPTION_FIELD
    )

    run_diagnostics(
        Path(args.input),
        Path(rules),
        Path(args.output_dir),
        description_field=description_field,
    )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
run_pipeline.py

Single entrypoint to run:
Stage 1 (tag) -> Stage 2 (diagnostics, optional).

Design:
- Uses .env as the single source of truth where possible.
- Each stage runs as its own process, exactly as it would from the shell.
- Diagnostics are skipped when RUN_DIAGNOSTICS=0.
"""

from __future__ import annotations

import os
import sys
import subprocess
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from tag_transactions import OUTPUT_FILENAME


def _run(cmd: List[str]) -> None:
    print("\nRUN:", " ".join(cmd))
    subprocess.check_call(cmd)


def main() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    code_dir = repo_root / "code"

    load_dotenv(code_dir / ".env")

    rules = os.getenv("TAG_RULES_JSON")
    tag_in = os.getenv("TAG_INPUT_PATH")
    tag_out = os.getenv("TAG_OUTPUT_DIR")
    if not rules or not tag_in or not tag_out:
        raise ValueError("Missing TAG_RULES_JSON / TAG_INPUT_PATH / TAG_OUTPUT_DIR in code/.env")

    # ---- Stage 1: Tag transactions ----
    _run([sys.executable, str(code_dir / "tag_transactions.py")])

    tagged_csv = Path(tag_out) / OUTPUT_FILENAME
    if not tagged_csv.exists():
        raise FileNotFoundError(f"Expected {tagged_csv} from Stage 1 but not found.")

    # ---- Stage 2: Diagnostics (requires CLI args) ----
    if os.getenv("RUN_DIAGNOSTICS", "1") == "0":
        print("\n-> Skipping diagnostics (RUN_DIAGNOSTICS=0)")
    else:
        diagnostics_dir = repo_root / "diagnostics"
        _run([
            sys.executable, str(code_dir / "tag_diagnostics.py"),
            "--input", str(tagged_csv),
            "--rules", rules,
            "--output-dir", str(diagnostics_dir),
        ])

    print("\nPipeline complete.")


if __name__ == "__main__":
    main()

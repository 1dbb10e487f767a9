import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DESCRIPTION_FIELD = "Field86"


@dataclass(frozen=True)
class Settings:
    rules_json: Path
    input_path: Path
    output_dir: Path
    description_field: str
    as_of_date: Optional[str]


def build_settings(
    rules_json: str,
    input_path: str,
    output_dir: str,
    description_field: Optional[str] = None,
    as_of_date: Optional[str] = None,
) -> Settings:
    return Settings(
        rules_json=Path(rules_json),
        input_path=Path(input_path),
        output_dir=Path(output_dir),
        description_field=description_field or DEFAULT_DESCRIPTION_FIELD,
        as_of_date=as_of_date or None,
    )


def load_settings(
    rules_json=None,
    input_path=None,
    output_dir=None,
    description_field=None,
    as_of_date=None,
    dotenv_path=None,
) -> Settings:
    """Explicit arguments win over TAG_* variables from the environment / .env."""
    load_dotenv(dotenv_path)
    rules_json = rules_json or os.getenv("TAG_RULES_JSON")
    input_path = input_path or os.getenv("TAG_INPUT_PATH")
    output_dir = output_dir or os.getenv("TAG_OUTPUT_DIR")
    if not rules_json or not input_path or not output_dir:
        raise ValueError("TAG_RULES_JSON, TAG_INPUT_PATH and TAG_OUTPUT_DIR must be provided")
    return build_settings(
        rules_json,
        input_path,
        output_dir,
        description_field=description_field or os.getenv("TAG_DESCRIPTION_FIELD"),
        as_of_date=as_of_date or os.getenv("TAG_AS_OF_DATE"),
    )

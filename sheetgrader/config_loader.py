"""
Configuration loader for the Sheet Grader system.

Handles parsing and validation of YAML configuration files and answer keys.
"""

import json
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .config import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RECORDS_DIR,
    DEFAULT_REPORTS_DIR,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    ORACLE_MODEL,
)
from .errors import ConfigurationError
from .models import AnswerKeyConfig, ExportSettings, GridConfig


class GraderConfig(BaseModel):
    """
    Configuration model for a batch run.
    """
    images_dir: Optional[Path] = Field(None, description="Directory containing answer-sheet images")
    answer_key: list[str] = Field(default_factory=list, description="Inline answer key")
    answer_key_path: Optional[Path] = Field(None, description="File holding the answer key")
    grid_rows: Optional[int] = Field(None, ge=1, description="Answer grid rows")
    grid_columns: Optional[int] = Field(None, ge=1, description="Answer grid columns")
    detect_roll_number: bool = Field(False, description="Read roll numbers from sheets")
    detect_subject_code: bool = Field(False, description="Read subject codes from sheets")
    expected_count: Optional[int] = Field(None, ge=1, description="Number of sheets expected in the batch")

    records_dir: Path = Field(DEFAULT_RECORDS_DIR, description="Where evaluation records are saved")
    reports_dir: Path = Field(DEFAULT_REPORTS_DIR, description="Where Excel reports are written")

    oracle_model: str = Field(ORACLE_MODEL, description="Vision model name")
    oracle_base_url: Optional[str] = Field(None, description="OpenAI-compatible endpoint")
    max_retries: int = Field(DEFAULT_MAX_RETRIES, ge=0, description="Retries for rate-limited calls")
    retry_backoff_seconds: float = Field(DEFAULT_RETRY_BACKOFF_SECONDS, ge=0, description="First retry delay")

    export: ExportSettings = Field(default_factory=ExportSettings, description="Excel styling")

    # Flags can also be configured
    only_dashboard: bool = Field(False, description="Launch dashboard with existing records")
    dashboard_port: int = Field(8050, description="Port for the dashboard")
    verbose: bool = Field(False, description="Enable verbose output")

    def answer_key_config(self) -> AnswerKeyConfig:
        """
        Build the AnswerKeyConfig for a run.

        Raises:
            ConfigurationError: If the key is missing, empty or invalid.
        """
        answers = self.answer_key
        if not answers and self.answer_key_path:
            answers = load_answer_key(self.answer_key_path)

        grid = None
        if self.grid_rows and self.grid_columns:
            grid = GridConfig(rows=self.grid_rows, columns=self.grid_columns)

        try:
            config = AnswerKeyConfig(
                answers=answers,
                grid_config=grid,
                detect_roll_number=self.detect_roll_number,
                detect_subject_code=self.detect_subject_code,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid answer key: {e}") from e

        config.validate_for_run()
        return config


def load_answer_key(key_path: Path) -> list[str]:
    """
    Read an answer key file.

    Accepts a YAML or JSON list, or plain text with answers separated by
    commas, whitespace or newlines (e.g. "A, C, B, D").

    Raises:
        ConfigurationError: If the file is missing or holds no answers.
    """
    if not key_path.exists():
        raise ConfigurationError(f"Answer key file not found: {key_path}")

    content = key_path.read_text(encoding="utf-8")
    if key_path.suffix.lower() == ".json":
        data = json.loads(content)
    elif key_path.suffix.lower() in (".yml", ".yaml"):
        data = yaml.safe_load(content)
    else:
        data = [token for token in re.split(r"[\s,;]+", content) if token]

    if isinstance(data, dict):
        data = data.get("answers", [])
    if not data:
        raise ConfigurationError(f"No answers found in {key_path}")
    return [str(answer) for answer in data]


def load_config(config_path: Path) -> GraderConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        GraderConfig object with loaded values.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
        ValidationError: If config data is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    # Resolve relative paths relative to the config file location
    config_dir = config_path.parent
    for path_field in ["images_dir", "answer_key_path", "records_dir", "reports_dir"]:
        if path_field in config_data and config_data[path_field]:
            path = Path(config_data[path_field])
            if not path.is_absolute():
                config_data[path_field] = config_dir / path

    export_data = config_data.get("export") or {}
    logo = export_data.get("school_logo_url")
    if logo and "://" not in logo and not Path(logo).is_absolute():
        export_data["school_logo_url"] = str(config_dir / logo)
        config_data["export"] = export_data

    return GraderConfig(**config_data)

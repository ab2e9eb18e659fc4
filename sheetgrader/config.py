"""
Configuration constants for the Sheet Grader system.
"""

from pathlib import Path


# Answer key
VALID_OPTIONS: list[str] = ["A", "B", "C", "D", "E"]
UNATTEMPTED: str = "UNATTEMPTED"
# Markers the oracle uses for blank or illegible answer boxes
UNATTEMPTED_MARKERS: list[str] = [UNATTEMPTED, "?", ""]

# Grade buckets (inclusive lower bounds, accuracy in percent)
EXCELLENT_THRESHOLD: float = 90.0
GOOD_THRESHOLD: float = 75.0
PASS_THRESHOLD: float = 50.0

# Oracle configuration
# Any OpenAI-compatible chat completions endpoint with vision support works
ORACLE_MODEL: str = "gpt-4o-mini"
MAX_TOKENS: int = 4096
DEFAULT_MAX_RETRIES: int = 2
DEFAULT_RETRY_BACKOFF_SECONDS: float = 2.0
IMAGE_EXTENSIONS: list[str] = [".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif"]

# Excel report configuration
MAX_SHEET_NAME_LENGTH: int = 31
NO_SUBJECT_SHEET: str = "NO_SUBJECT"
BAR_CHAR: str = "█"
EMPTY_BAR_CHAR: str = "░"
TOP_MISTAKES: int = 10
LOW_CONFIDENCE_REVIEW_THRESHOLD: int = 5
DEFAULT_HEADER_COLOR: str = "#1e40af"
DEFAULT_FONT_FAMILY: str = "Arial"

# Default paths (can be overridden via config file)
DEFAULT_RECORDS_DIR: Path = Path("records")
DEFAULT_REPORTS_DIR: Path = Path("reports")
RECORDS_INDEX_FILENAME: str = "records_index.jsonl"

"""
Pydantic models for the Sheet Grader system.

Defines the answer key configuration, batch item state, the validated
oracle response schema, persisted evaluation records and report settings.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .config import DEFAULT_FONT_FAMILY, DEFAULT_HEADER_COLOR, VALID_OPTIONS
from .errors import ConfigurationError


class GridConfig(BaseModel):
    """
    Rows x columns layout mapping answer-box position to question number.

    Attributes:
        rows: Number of rows of answer boxes on the sheet.
        columns: Number of columns of answer boxes on the sheet.
    """

    model_config = ConfigDict(frozen=True)

    rows: int = Field(..., ge=1, description="Rows of answer boxes")
    columns: int = Field(..., ge=1, description="Columns of answer boxes")

    @property
    def size(self) -> int:
        return self.rows * self.columns


class AnswerKeyConfig(BaseModel):
    """
    Answer key and detection flags for one processing run.

    Frozen: a run never sees its key change. Submitting a different key
    means building a new instance for a new run.

    Attributes:
        answers: Expected answers in question order, single letters A-E.
        grid_config: Optional grid layout; rows x columns must match the key.
        detect_roll_number: Ask the oracle to read the roll number.
        detect_subject_code: Ask the oracle to read the subject code.
    """

    model_config = ConfigDict(frozen=True)

    answers: tuple[str, ...] = Field(default=(), description="Expected answers, A-E")
    grid_config: GridConfig | None = Field(default=None, description="Optional grid layout")
    detect_roll_number: bool = Field(default=False, description="Detect roll number")
    detect_subject_code: bool = Field(default=False, description="Detect subject code")

    @field_validator("answers", mode="before")
    @classmethod
    def _normalize_answers(cls, value):
        if isinstance(value, str):
            value = [value]
        normalized = []
        for answer in value:
            letter = str(answer).strip().upper()
            if letter not in VALID_OPTIONS:
                raise ValueError(f"Invalid answer '{answer}': expected one of {', '.join(VALID_OPTIONS)}")
            normalized.append(letter)
        return tuple(normalized)

    @model_validator(mode="after")
    def _check_grid(self) -> "AnswerKeyConfig":
        if self.grid_config is not None and self.answers and self.grid_config.size != len(self.answers):
            raise ValueError(
                f"Grid {self.grid_config.rows}x{self.grid_config.columns} holds "
                f"{self.grid_config.size} answers but the key has {len(self.answers)}"
            )
        return self

    @property
    def total_questions(self) -> int:
        return len(self.answers)

    def validate_for_run(self) -> None:
        """
        Check the key can be submitted to the oracle.

        Raises:
            ConfigurationError: If no answers are configured.
        """
        if not self.answers:
            raise ConfigurationError("Answer key required. Please submit an answer key first.")


class ItemStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.COMPLETED, ItemStatus.ERROR)


class BatchItem(BaseModel):
    """
    One answer-sheet image tracked through the batch state machine.

    Attributes:
        file_name: Name of the uploaded image file.
        status: Current state of the item.
        roll_number: Roll number read from the sheet.
        subject_code: Subject code read from the sheet.
        score: Number of correct answers.
        total_questions: Number of questions scored.
        accuracy: Percentage of correct answers (0-100).
        error: User-facing error message when status is error.
        warning: Non-fatal warning for a completed item (e.g. not saved).
    """

    model_config = ConfigDict(frozen=True)

    file_name: str = Field(..., description="Uploaded image file name")
    status: ItemStatus = Field(default=ItemStatus.PENDING, description="State machine status")
    roll_number: str | None = Field(default=None, description="Detected roll number")
    subject_code: str | None = Field(default=None, description="Detected subject code")
    score: float | None = Field(default=None, ge=0, description="Correct answers")
    total_questions: int | None = Field(default=None, ge=0, description="Questions scored")
    accuracy: float | None = Field(default=None, ge=0, le=100, description="Accuracy percent")
    error: str | None = Field(default=None, description="Error message")
    warning: str | None = Field(default=None, description="Non-fatal warning")


class DetailedResult(BaseModel):
    """Per-question comparison reported by the oracle."""

    question: int = Field(..., ge=1, description="1-based question number")
    extracted: str = Field(..., description="Answer read from the sheet")
    correct: str = Field(..., description="Answer from the key")
    is_correct: bool = Field(..., alias="isCorrect", description="Whether the answers match")
    confidence: str = Field(default="unknown", description="high, medium, low or unknown")
    note: str = Field(default="", description="Ambiguity note")

    model_config = ConfigDict(populate_by_name=True)


class OracleResult(BaseModel):
    """
    Strict schema for a successful oracle response.

    Accepts the camelCase keys of the oracle's JSON contract as well as the
    snake_case field names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    extracted_answers: list[str] = Field(..., description="Answers read from the sheet")
    correct_answers: list[str] = Field(..., description="Answer key used for scoring")
    roll_number: str | None = Field(default=None, description="Detected roll number")
    subject_code: str | None = Field(default=None, description="Detected subject code")
    score: float = Field(..., ge=0, description="Correct answers")
    total_questions: int = Field(..., ge=0, description="Questions scored")
    accuracy: float = Field(..., ge=0, le=100, description="Accuracy percent")
    confidence: Literal["high", "medium", "low"] | None = Field(default=None, description="Overall confidence")
    low_confidence_count: int | None = Field(default=None, ge=0, description="Low-confidence answers")
    detailed_results: list[DetailedResult] = Field(default_factory=list, description="Per-question results")
    quality_issues: list[str] = Field(default_factory=list, description="Image quality issues")
    image_quality: Literal["poor", "fair", "good"] | None = Field(default=None, description="Image quality")

    @field_validator("extracted_answers", mode="before")
    @classmethod
    def _coerce_answers(cls, value):
        if value is None:
            return []
        return ["" if answer is None else str(answer).strip() for answer in value]

    @field_validator("roll_number", "subject_code", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("confidence", "image_quality", mode="before")
    @classmethod
    def _lower(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or None
        return value


class EvaluationRecord(BaseModel):
    """
    Persisted result of one successfully evaluated sheet. Never mutated.
    """

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Record identifier")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    file_name: str = Field(..., description="Source image file name")
    image_ref: str | None = Field(default=None, description="Where the source image lives")
    answer_key: list[str] = Field(default_factory=list, description="Answer key submitted")
    extracted_answers: list[str] = Field(default_factory=list, description="Answers read")
    correct_answers: list[str] = Field(default_factory=list, description="Answers compared against")
    roll_number: str | None = Field(default=None, description="Detected roll number")
    subject_code: str | None = Field(default=None, description="Detected subject code")
    grid_rows: int | None = Field(default=None, description="Grid rows")
    grid_columns: int | None = Field(default=None, description="Grid columns")
    score: float = Field(..., ge=0, description="Correct answers")
    total_questions: int = Field(..., ge=0, description="Questions scored")
    accuracy: float = Field(..., ge=0, le=100, description="Accuracy percent")
    confidence: str | None = Field(default=None, description="Overall confidence")
    low_confidence_count: int | None = Field(default=None, description="Low-confidence answers")
    image_quality: str | None = Field(default=None, description="Image quality")
    detailed_results: list[DetailedResult] = Field(default_factory=list, description="Per-question results")

    @property
    def status(self) -> ItemStatus:
        return ItemStatus.COMPLETED


class ExportSettings(BaseModel):
    """
    Styling options for Excel exports.

    Attributes:
        header_color: Hex fill color of column-header rows.
        font_family: Font used for header cells and footer.
        include_header: Prepend school name, title and timestamp rows.
        include_logo: Embed the school logo when it is a local file.
        school_name: School name shown in the header block.
        school_logo_url: Path or URL of the school logo.
        footer_text: Text shown two rows below the data.
    """

    header_color: str = Field(default=DEFAULT_HEADER_COLOR, pattern=r"^#?[0-9a-fA-F]{6}$")
    font_family: str = Field(default=DEFAULT_FONT_FAMILY)
    include_header: bool = Field(default=True)
    include_logo: bool = Field(default=True)
    school_name: str | None = Field(default=None)
    school_logo_url: str | None = Field(default=None)
    footer_text: str | None = Field(default=None)


class ScoreEntry(BaseModel):
    """A scored item as seen by the aggregator."""

    score: float
    total: int
    accuracy: float
    roll_number: str | None = None
    file_name: str


class GradeDistribution(BaseModel):
    excellent: int = 0
    good: int = 0
    average: int = 0
    needs_improvement: int = 0

    @property
    def total(self) -> int:
        return self.excellent + self.good + self.average + self.needs_improvement


class AggregatedStats(BaseModel):
    """
    Summary statistics derived from completed items. Never persisted.
    """

    scored_count: int = Field(..., ge=0)
    avg_accuracy: float
    avg_score: float
    total_questions: int
    highest_score: ScoreEntry
    lowest_score: ScoreEntry
    grade_distribution: GradeDistribution
    pass_rate: float = Field(..., description="Percent of scored items with accuracy >= 50")


class BatchProgress(BaseModel):
    completed_count: int
    error_count: int
    total_target: int


class BatchRunSummary(BaseModel):
    """
    Outcome of one processor run.

    Attributes:
        success_count: Items completed during this run.
        error_count: Items that failed during this run.
        total_attempted: Items submitted to the oracle during this run.
        current_index: Index the processor stopped at.
        cancelled: Whether the run stopped on a cancel signal.
        items: Snapshot of all items after the run.
    """

    success_count: int = 0
    error_count: int = 0
    total_attempted: int = 0
    current_index: int = 0
    cancelled: bool = False
    items: tuple[BatchItem, ...] = ()

"""
Styled multi-sheet Excel reports for single evaluations and whole batches.

Built on openpyxl. Each sheet gets an optional header block (school name,
title, generation time), a styled column-header row and an optional footer.
"""

import logging
import re
from collections.abc import Collection, Sequence
from datetime import datetime
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .aggregator import (
    aggregate,
    completed_items,
    median_score,
    pass_tiers,
    score_range_distribution,
    summary_counts,
)
from .config import (
    BAR_CHAR,
    EMPTY_BAR_CHAR,
    LOW_CONFIDENCE_REVIEW_THRESHOLD,
    MAX_SHEET_NAME_LENGTH,
    NO_SUBJECT_SHEET,
    TOP_MISTAKES,
    UNATTEMPTED,
    VALID_OPTIONS,
)
from .errors import ExportError
from .models import BatchItem, EvaluationRecord, ExportSettings, ItemStatus
from .scoring import is_correct, is_unattempted

logger = logging.getLogger(__name__)

CONFIDENCE_BARS: dict[str, str] = {
    "high": BAR_CHAR * 12,
    "medium": BAR_CHAR * 8 + EMPTY_BAR_CHAR * 4,
    "low": BAR_CHAR * 4 + EMPTY_BAR_CHAR * 8,
}

_THIN = Side(style="thin", color="000000")

# Characters Excel rejects in sheet names
_INVALID_SHEET_CHARS = re.compile(r"[\\/?*\[\]:]")

BATCH_SHEET_NAMES: tuple[str, ...] = (
    "Batch Summary",
    "All Results",
    "Answer Key",
    "Failed Sheets",
    "Batch Analytics",
    "Score Distribution",
)


def _num(value: float | int | None) -> float | int | str:
    if value is None:
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _pct(part: float, whole: float, digits: int = 1) -> str:
    if whole <= 0:
        return "N/A"
    return f"{part / whole * 100:.{digits}f}%"


def bar(percentage: float, scale: float = 0.5) -> str:
    """Textual bar: one block per 1/scale percentage points, rounded down."""
    return BAR_CHAR * int(max(percentage, 0) * scale)


class ReportBuilder:
    """
    Assembles a workbook sheet by sheet, styled per ExportSettings.
    """

    def __init__(self, settings: ExportSettings, generated_at: datetime | None = None) -> None:
        """
        Initialize an empty workbook.

        Args:
            settings: Styling options.
            generated_at: Timestamp printed in header blocks. Defaults to now.
        """
        self.settings = settings
        self.generated_at = generated_at or datetime.now()
        self.workbook = Workbook()
        self.workbook.remove(self.workbook.active)
        self.row_counts: dict[str, int] = {}
        self.header_rows: dict[str, int] = {}

    @property
    def sheet_names(self) -> list[str]:
        return self.workbook.sheetnames

    def sheet_title(self, name: str, reserved: Collection[str] = ()) -> str:
        """
        Sanitize a sheet name, truncate it to the Excel limit and make it unique.

        Characters Excel forbids (\\ / ? * [ ] :) become underscores. A name
        already taken after truncation, or listed in reserved, gets a " (n)"
        suffix, cut so the result still fits in 31 characters.
        """
        base = (_INVALID_SHEET_CHARS.sub("_", name).strip() or "Sheet")[:MAX_SHEET_NAME_LENGTH]
        taken = {title.lower() for title in self.workbook.sheetnames}
        taken.update(title.lower() for title in reserved)
        if base.lower() not in taken:
            return base

        n = 2
        while True:
            suffix = f" ({n})"
            candidate = base[:MAX_SHEET_NAME_LENGTH - len(suffix)] + suffix
            if candidate.lower() not in taken:
                logger.info("Sheet name '%s' already used, writing '%s'", name, candidate)
                return candidate
            n += 1

    def add_sheet(
        self,
        name: str,
        headers: Sequence[str],
        rows: Sequence[Sequence],
        column_widths: Sequence[int] | None = None,
        style_header: bool = True,
        reserved: Collection[str] = (),
    ) -> Worksheet:
        """
        Add a sheet with a header block, column headers, data and footer.

        Args:
            name: Sheet name (truncated and de-duplicated).
            headers: Column header labels.
            rows: Data rows.
            column_widths: Optional widths, one per column.
            style_header: Apply the header color to the column-header row.
            reserved: Names kept free for sheets added later.

        Returns:
            The new worksheet.
        """
        title = self.sheet_title(name, reserved)
        ws = self.workbook.create_sheet(title)
        row = self._write_header_block(ws, title)

        for col, label in enumerate(headers, start=1):
            ws.cell(row=row, column=col, value=label)
        if style_header:
            self._style_header_row(ws, row, len(headers))
        self.header_rows[title] = row

        for values in rows:
            row += 1
            for col, value in enumerate(values, start=1):
                ws.cell(row=row, column=col, value=value)
        self.row_counts[title] = len(rows)

        if column_widths:
            for col, width in enumerate(column_widths, start=1):
                ws.column_dimensions[get_column_letter(col)].width = width

        self._write_footer(ws, row, max(len(headers), 1))
        return ws

    def _write_header_block(self, ws: Worksheet, title: str) -> int:
        """Write the optional header block; return the column-header row."""
        if not self.settings.include_header:
            return 1

        row = 1
        if self.settings.school_name:
            ws.cell(row=row, column=1, value=self.settings.school_name).font = Font(
                name=self.settings.font_family, size=14, bold=True
            )
            row += 2
        ws.cell(row=row, column=1, value=title).font = Font(name=self.settings.font_family, size=12, bold=True)
        ws.cell(row=row + 1, column=1, value=f"Generated: {self.generated_at:%Y-%m-%d %H:%M:%S}")
        return row + 3

    def _style_header_row(self, ws: Worksheet, row: int, columns: int) -> None:
        color = self.settings.header_color.lstrip("#").upper()
        fill = PatternFill(fill_type="solid", fgColor=color)
        font = Font(name=self.settings.font_family, size=12, bold=True, color="FFFFFF")
        alignment = Alignment(horizontal="center", vertical="center")
        border = Border(top=_THIN, bottom=_THIN, left=_THIN, right=_THIN)
        for col in range(1, columns + 1):
            cell = ws.cell(row=row, column=col)
            cell.fill = fill
            cell.font = font
            cell.alignment = alignment
            cell.border = border

    def _write_footer(self, ws: Worksheet, last_row: int, columns: int) -> None:
        if not self.settings.footer_text:
            return
        footer_row = last_row + 2
        cell = ws.cell(row=footer_row, column=1, value=self.settings.footer_text)
        cell.font = Font(name=self.settings.font_family, size=9, italic=True, color="666666")
        cell.alignment = Alignment(horizontal="center")
        if columns > 1:
            ws.merge_cells(start_row=footer_row, start_column=1, end_row=footer_row, end_column=columns)

    def add_logo(self, ws: Worksheet) -> None:
        """Embed the school logo when it is a readable local image."""
        url = self.settings.school_logo_url
        if not (self.settings.include_logo and url):
            return
        if "://" in url:
            logger.info("Skipping remote logo %s; only local files are embedded", url)
            return
        logo_path = Path(url)
        if not logo_path.exists():
            logger.warning("Logo file not found: %s", logo_path)
            return

        from openpyxl.drawing.image import Image

        logo = Image(str(logo_path))
        logo.height, logo.width = 60, 60 * logo.width / max(logo.height, 1)
        anchor_col = ws.max_column + 2
        ws.add_image(logo, f"{get_column_letter(anchor_col)}1")

    def to_bytes(self) -> bytes:
        buffer = BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        self.workbook.save(path)
        logger.info("Saved report %s", path)
        return path


# ---------------------------------------------------------------------------
# Batch export
# ---------------------------------------------------------------------------


def batch_report_filename(completed_count: int, generated_at: datetime) -> str:
    return f"Batch_Results_{generated_at:%Y-%m-%d}_{completed_count}students.xlsx"


def build_batch_report(
    items: Sequence[BatchItem],
    settings: ExportSettings,
    answer_key: Sequence[str] | None = None,
    records: Sequence[EvaluationRecord] | None = None,
    generated_at: datetime | None = None,
) -> tuple[str, ReportBuilder]:
    """
    Build the batch workbook.

    Args:
        items: All batch items, any status.
        settings: Styling options.
        answer_key: Key used for the batch, for the reference sheet.
        records: Saved records, used for per-question answers in subject sheets.
        generated_at: Report timestamp. Defaults to now.

    Returns:
        Tuple of (file name, ReportBuilder holding the workbook).

    Raises:
        ExportError: If no item is completed.
    """
    completed = completed_items(items)
    if not completed:
        raise ExportError("No completed evaluations to export. Process at least one sheet first.")

    builder = ReportBuilder(settings, generated_at=generated_at)
    counts = summary_counts(items)
    stats = aggregate(items)

    avg_score = "N/A"
    avg_accuracy = "N/A"
    if stats is not None:
        avg_score = f"{stats.avg_score:.2f}/{stats.total_questions}"
        avg_accuracy = f"{stats.avg_accuracy:.2f}%"

    summary_rows = [
        ["Batch Date", f"{builder.generated_at:%Y-%m-%d %H:%M:%S}"],
        ["Total Sheets Processed", counts["processed"]],
        ["Successful", counts["successful"]],
        ["Failed", counts["failed"]],
        ["", ""],
        ["Average Score", avg_score],
        ["Average Accuracy", avg_accuracy],
        ["Pass Rate", f"{stats.pass_rate:.1f}%" if stats else "N/A"],
        ["Unique Students", counts["unique_students"]],
        ["Unique Subjects", counts["unique_subjects"]],
    ]
    if stats is not None:
        grades = stats.grade_distribution
        summary_rows += [
            ["", ""],
            ["Excellent (>= 90%)", grades.excellent],
            ["Good (75-89%)", grades.good],
            ["Average (50-74%)", grades.average],
            ["Needs Improvement (< 50%)", grades.needs_improvement],
        ]
    summary_ws = builder.add_sheet("Batch Summary", ["Metric", "Value"], summary_rows, [28, 30])
    builder.add_logo(summary_ws)

    builder.add_sheet(
        "All Results",
        ["File Name", "Roll Number", "Subject Code", "Score", "Total", "Accuracy %"],
        [
            [
                item.file_name,
                item.roll_number or "N/A",
                item.subject_code or "N/A",
                _num(item.score or 0),
                item.total_questions or 0,
                f"{item.accuracy:.2f}" if item.accuracy is not None else "N/A",
            ]
            for item in completed
        ],
        [30, 15, 15, 8, 8, 12],
    )

    _add_subject_sheets(builder, completed, records)

    if answer_key:
        builder.add_sheet(
            "Answer Key",
            ["Info"] + [f"Q{i}" for i in range(1, len(answer_key) + 1)],
            [["Answer Key Used", *answer_key]],
            [15] + [5] * len(answer_key),
        )

    failed = [item for item in items if item.status == ItemStatus.ERROR]
    if failed:
        builder.add_sheet(
            "Failed Sheets",
            ["File Name", "Error"],
            [[item.file_name, item.error or "Unknown error"] for item in failed],
            [30, 50],
        )

    _add_batch_analytics(builder, items, completed)

    builder.add_sheet(
        "Score Distribution",
        ["Range", "Count", "Percentage", "Visual"],
        [
            [label, count, f"{percentage:.1f}%", bar(percentage)]
            for label, count, percentage in score_range_distribution(items)
        ],
        [15, 10, 12, 50],
    )

    return batch_report_filename(len(completed), builder.generated_at), builder


def _add_subject_sheets(
    builder: ReportBuilder,
    completed: Sequence[BatchItem],
    records: Sequence[EvaluationRecord] | None,
) -> None:
    groups: dict[str, list[BatchItem]] = {}
    for item in completed:
        groups.setdefault(item.subject_code or NO_SUBJECT_SHEET, []).append(item)

    answers_by_file = {record.file_name: record.extracted_answers for record in records or []}
    question_count = max((len(a) for a in answers_by_file.values()), default=0)

    for subject_code in sorted(groups):
        headers = ["REGD NO", "File Name", "Score", "Accuracy"]
        headers += [f"Q{i}" for i in range(1, question_count + 1)]
        rows = []
        for item in groups[subject_code]:
            answers = answers_by_file.get(item.file_name, [])
            answers = ["-" if a == UNATTEMPTED else a for a in answers]
            rows.append([
                item.roll_number or "N/A",
                item.file_name,
                f"{_num(item.score)}/{_num(item.total_questions)}",
                f"{item.accuracy:.1f}%" if item.accuracy is not None else "N/A",
                *answers,
                *[""] * (question_count - len(answers)),
            ])
        builder.add_sheet(
            subject_code, headers, rows, [15, 30, 10, 10] + [5] * question_count, reserved=BATCH_SHEET_NAMES
        )


def _add_batch_analytics(
    builder: ReportBuilder,
    items: Sequence[BatchItem],
    completed: Sequence[BatchItem],
) -> None:
    scores = [item.score or 0 for item in completed]
    highest = max(scores)
    lowest = min(scores)
    highest_owner = next(item for item in completed if (item.score or 0) == highest)
    lowest_owner = next(item for item in completed if (item.score or 0) == lowest)

    rows = [
        ["Highest Score", _num(highest), highest_owner.roll_number or "N/A"],
        ["Lowest Score", _num(lowest), lowest_owner.roll_number or "N/A"],
        ["Median Score", _num(median_score(items)), ""],
        ["", "", ""],
    ]
    rows += [[label, count, f"{percentage:.1f}%"] for label, count, percentage in pass_tiers(items)]
    builder.add_sheet("Batch Analytics", ["Metric", "Value", "Details"], rows, [25, 15, 30])


# ---------------------------------------------------------------------------
# Single evaluation export
# ---------------------------------------------------------------------------


def evaluation_report_filename(record: EvaluationRecord, generated_at: datetime) -> str:
    if record.roll_number:
        return f"Evaluation_{record.roll_number}_{record.subject_code or 'Unknown'}_{generated_at:%Y-%m-%d}.xlsx"
    return f"Evaluation_{generated_at:%Y-%m-%d}.xlsx"


def common_mistakes(record: EvaluationRecord, limit: int = TOP_MISTAKES) -> list[tuple[str, int]]:
    """
    Rank wrong answers by "<extracted> instead of <correct>" pattern.

    Sorted by frequency, most frequent first; equal counts keep the order
    in which the pattern first appeared.
    """
    patterns: dict[str, int] = {}
    for extracted, correct in zip(record.extracted_answers, record.correct_answers):
        if is_unattempted(extracted) or is_correct(extracted, correct):
            continue
        key = f"{extracted} instead of {correct}"
        patterns[key] = patterns.get(key, 0) + 1
    return sorted(patterns.items(), key=lambda kv: kv[1], reverse=True)[:limit]


def build_evaluation_report(
    record: EvaluationRecord | None,
    settings: ExportSettings,
    generated_at: datetime | None = None,
) -> tuple[str, ReportBuilder]:
    """
    Build the workbook for one evaluated sheet.

    Args:
        record: Saved evaluation.
        settings: Styling options.
        generated_at: Report timestamp. Defaults to now.

    Returns:
        Tuple of (file name, ReportBuilder holding the workbook).

    Raises:
        ExportError: If there is no evaluation or it has no questions.
    """
    if record is None or record.total_questions <= 0:
        raise ExportError("No evaluation to export. Evaluate an answer sheet first.")

    builder = ReportBuilder(settings, generated_at=generated_at)
    total = record.total_questions
    extracted = record.extracted_answers
    correct_answers = record.correct_answers
    details = record.detailed_results
    answered = min(len(extracted), len(correct_answers))

    def confidence_at(index: int) -> str:
        return details[index].confidence if index < len(details) else "unknown"

    def note_at(index: int) -> str:
        return (details[index].note if index < len(details) else "") or "-"

    def status_at(index: int) -> str:
        answer = extracted[index]
        if is_unattempted(answer):
            return "Unattempted"
        return "Correct" if is_correct(answer, correct_answers[index]) else "Wrong"

    grid = f"{record.grid_rows}×{record.grid_columns}" if record.grid_rows and record.grid_columns else "Sequential"
    summary_ws = builder.add_sheet(
        "Summary",
        ["Field", "Value"],
        [
            ["Roll Number", record.roll_number or "Not Detected"],
            ["Subject Code", record.subject_code or "Not Detected"],
            ["Date & Time", f"{builder.generated_at:%Y-%m-%d %H:%M:%S}"],
            ["Grid Configuration", grid],
            ["", ""],
            ["Score", f"{_num(record.score)}/{total}"],
            ["Accuracy", f"{record.accuracy:.2f}%"],
            ["Confidence", (record.confidence or "N/A").upper()],
            ["Image Quality", (record.image_quality or "N/A").upper()],
            ["Low Confidence Answers", record.low_confidence_count or 0],
        ],
        [25, 30],
    )
    builder.add_logo(summary_ws)

    result_marks = {"Unattempted": "○ Unattempted", "Correct": "✓ Correct", "Wrong": "✗ Wrong"}
    builder.add_sheet(
        "Detailed Answers",
        ["Question", "Extracted", "Correct", "Result", "Confidence", "Notes"],
        [
            [i + 1, extracted[i], correct_answers[i], result_marks[status_at(i)], confidence_at(i).upper(), note_at(i)]
            for i in range(answered)
        ],
        [10, 14, 10, 15, 12, 40],
    )

    statuses = [status_at(i) for i in range(answered)]
    unattempted = statuses.count("Unattempted")
    correct_count = statuses.count("Correct")
    wrong_count = total - correct_count - unattempted
    attempted = total - unattempted
    confidence_counts = {
        level: sum(1 for r in details if r.confidence == level) for level in ("high", "medium", "low")
    }

    builder.add_sheet(
        "Statistics",
        ["Category", "Count", "Percentage"],
        [
            ["Total Questions", total, "100%"],
            ["Attempted", attempted, _pct(attempted, total, 2)],
            ["Unattempted", unattempted, _pct(unattempted, total, 2)],
            ["", "", ""],
            ["Correct Answers", correct_count, _pct(correct_count, attempted, 2)],
            ["Wrong Answers", wrong_count, _pct(wrong_count, attempted, 2)],
            ["", "", ""],
            ["High Confidence", confidence_counts["high"], ""],
            ["Medium Confidence", confidence_counts["medium"], ""],
            ["Low Confidence", confidence_counts["low"], ""],
        ],
        [20, 10, 15],
    )

    key_frequency = {option: 0 for option in VALID_OPTIONS}
    for answer in correct_answers:
        key_frequency[answer.upper()] = key_frequency.get(answer.upper(), 0) + 1
    chosen_frequency = {option: 0 for option in VALID_OPTIONS}
    for answer in extracted:
        if not is_unattempted(answer):
            chosen_frequency[answer.upper()] = chosen_frequency.get(answer.upper(), 0) + 1
    builder.add_sheet(
        "Answer Distribution",
        ["Option", "In Answer Key", "Chosen on Sheet", "Chart"],
        [
            [option, key_frequency[option], chosen_frequency.get(option, 0), bar(key_frequency[option] / total * 100)]
            for option in VALID_OPTIONS
        ],
        [15, 14, 16, 50],
    )

    builder.add_sheet(
        "Question Analysis",
        ["Q#", "Student Answer", "Correct Answer", "Status", "Confidence", "Confidence Bar", "Notes"],
        [
            [
                i + 1,
                extracted[i],
                correct_answers[i],
                statuses[i],
                confidence_at(i).upper(),
                CONFIDENCE_BARS.get(confidence_at(i), EMPTY_BAR_CHAR * 12),
                note_at(i),
            ]
            for i in range(answered)
        ],
        [5, 15, 15, 12, 12, 15, 40],
    )

    wrong_questions = [i + 1 for i, status in enumerate(statuses) if status == "Wrong"]
    mistake_rows = [
        ["Total Wrong Answers", len(wrong_questions), ""],
        ["Most Common Errors", "", ""],
        ["", "", ""],
    ]
    for rank, (pattern, count) in enumerate(common_mistakes(record), start=1):
        mistake_rows.append([f"#{rank}: {pattern}", count, _pct(count, len(wrong_questions))])
    if wrong_questions:
        mistake_rows.append(["", "", ""])
        mistake_rows.append(["Wrong Questions", ", ".join(f"Q{q}" for q in wrong_questions), ""])
    builder.add_sheet("Common Mistakes", ["Metric", "Value", "Percentage"], mistake_rows, [30, 10, 12])

    unknown_count = total - sum(confidence_counts.values())
    confidence_rows = [
        [level.capitalize(), confidence_counts[level], _pct(confidence_counts[level], total), bar(confidence_counts[level] / total * 100)]
        for level in ("high", "medium", "low")
    ]
    if unknown_count > 0:
        confidence_rows.append(["Unknown", unknown_count, _pct(unknown_count, total), bar(unknown_count / total * 100)])
    confidence_rows += [
        ["", "", "", ""],
        ["Confidence vs Accuracy", "", "", ""],
        ["Confidence Level", "Total", "Correct", "Accuracy"],
    ]
    for level in ("high", "medium", "low"):
        level_correct = sum(1 for r in details if r.confidence == level and r.is_correct)
        confidence_rows.append(
            [level.capitalize(), confidence_counts[level], level_correct, _pct(level_correct, confidence_counts[level])]
        )
    builder.add_sheet("Confidence Analysis", ["Confidence", "Count", "Percentage", "Chart"], confidence_rows, [22, 10, 12, 50])

    builder.add_sheet(
        "Performance Insights",
        ["Insight", "Value", "Recommendation"],
        _insight_rows(record, attempted, unattempted, wrong_questions, confidence_counts["low"]),
        [25, 20, 60],
    )

    return evaluation_report_filename(record, builder.generated_at), builder


def performance_level(accuracy: float) -> str:
    if accuracy >= 90:
        return "Excellent"
    if accuracy >= 75:
        return "Good"
    if accuracy >= 60:
        return "Average"
    if accuracy >= 50:
        return "Below Average"
    return "Poor"


def _insight_rows(
    record: EvaluationRecord,
    attempted: int,
    unattempted: int,
    wrong_questions: list[int],
    low_confidence: int,
) -> list[list]:
    if low_confidence > LOW_CONFIDENCE_REVIEW_THRESHOLD:
        confidence_tip = "High number of low-confidence answers. Review fundamentals."
    else:
        confidence_tip = "Good confidence overall."

    if record.image_quality == "poor":
        quality_tip = "Poor image quality detected. Use better lighting and avoid shadows."
    elif record.image_quality == "fair":
        quality_tip = "Image quality is fair. Ensure sheets are flat and well-lit for best results."
    else:
        quality_tip = "Good image quality."

    rows: list[list] = [
        ["Overall Performance", performance_level(record.accuracy), ""],
        ["Score", f"{_num(record.score)}/{record.total_questions}", ""],
        ["Accuracy", f"{record.accuracy:.2f}%", ""],
        ["", "", ""],
        [
            "Attempted Questions",
            attempted,
            f"{unattempted} questions left unattempted. Recommend practicing time management."
            if unattempted > 0 else "All questions attempted.",
        ],
        ["Confidence Level", (record.confidence or "unknown").upper(), confidence_tip],
        ["Image Quality", (record.image_quality or "unknown").upper(), quality_tip],
        ["", "", ""],
        ["Areas for Improvement", "", ""],
    ]

    if wrong_questions:
        more = "..." if len(wrong_questions) > 5 else ""
        rows.append([
            "Most errors",
            len(wrong_questions),
            f"Review questions: {', '.join(str(q) for q in wrong_questions[:5])}{more}",
        ])

    if low_confidence > 0:
        low_questions = [r.question for r in record.detailed_results if r.confidence == "low"][:5]
        more = "..." if low_confidence > 5 else ""
        rows.append([
            "Low Confidence Areas",
            low_confidence,
            f"Focus on questions: {', '.join(str(q) for q in low_questions)}{more}",
        ])
    return rows


# ---------------------------------------------------------------------------
# File output
# ---------------------------------------------------------------------------


def export_batch_report(
    items: Sequence[BatchItem],
    settings: ExportSettings,
    output_dir: Path,
    answer_key: Sequence[str] | None = None,
    records: Sequence[EvaluationRecord] | None = None,
) -> Path:
    """
    Build and save the batch workbook.

    Raises:
        ExportError: If no item is completed. Nothing is written.
    """
    filename, builder = build_batch_report(items, settings, answer_key=answer_key, records=records)
    return builder.save(output_dir / filename)


def export_evaluation_report(
    record: EvaluationRecord | None,
    settings: ExportSettings,
    output_dir: Path,
) -> Path:
    """
    Build and save the single-evaluation workbook.

    Raises:
        ExportError: If there is no evaluation. Nothing is written.
    """
    filename, builder = build_evaluation_report(record, settings)
    return builder.save(output_dir / filename)

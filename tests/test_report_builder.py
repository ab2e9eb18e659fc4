from datetime import datetime

import pytest
from openpyxl import load_workbook

from conftest import KEY
from sheetgrader.config import BAR_CHAR, NO_SUBJECT_SHEET
from sheetgrader.errors import ExportError
from sheetgrader.models import BatchItem, EvaluationRecord, ExportSettings, ItemStatus
from sheetgrader.report_builder import (
    ReportBuilder,
    bar,
    batch_report_filename,
    build_batch_report,
    build_evaluation_report,
    common_mistakes,
    evaluation_report_filename,
    export_batch_report,
)
from sheetgrader.scoring import score_answers

GENERATED_AT = datetime(2024, 5, 17, 9, 30, 0)


def completed(name, score=8, subject=None, roll=None):
    return BatchItem(
        file_name=name,
        status=ItemStatus.COMPLETED,
        score=score,
        total_questions=10,
        accuracy=score * 10.0,
        roll_number=roll,
        subject_code=subject,
    )


def make_record(extracted, confidences=None, **overrides):
    score, accuracy, detailed = score_answers(extracted, KEY, confidences=confidences)
    fields = dict(
        file_name="sheet.jpg",
        answer_key=KEY,
        extracted_answers=extracted,
        correct_answers=KEY,
        roll_number="R-17",
        subject_code="M1",
        score=score,
        total_questions=len(KEY),
        accuracy=accuracy,
        confidence="high",
        detailed_results=detailed,
    )
    fields.update(overrides)
    return EvaluationRecord(**fields)


def test_subject_grouping():
    items = [
        completed("a.jpg", subject="M1"),
        completed("b.jpg", subject="M1"),
        completed("c.jpg", subject="S2"),
        completed("d.jpg"),
    ]

    _, builder = build_batch_report(items, ExportSettings(), generated_at=GENERATED_AT)

    subject_sheets = ["M1", "S2", NO_SUBJECT_SHEET]
    for name in subject_sheets:
        assert name in builder.sheet_names
    assert builder.row_counts["M1"] == 2
    assert builder.row_counts["S2"] == 1
    assert builder.row_counts[NO_SUBJECT_SHEET] == 1
    assert sum(builder.row_counts[name] for name in subject_sheets) == 4


def test_batch_sheets_and_failed_sheet():
    items = [completed("a.jpg"), BatchItem(file_name="b.jpg", status=ItemStatus.ERROR, error="Invalid image")]

    filename, builder = build_batch_report(items, ExportSettings(), answer_key=KEY, generated_at=GENERATED_AT)

    assert builder.sheet_names == [
        "Batch Summary",
        "All Results",
        NO_SUBJECT_SHEET,
        "Answer Key",
        "Failed Sheets",
        "Batch Analytics",
        "Score Distribution",
    ]
    assert builder.row_counts["Failed Sheets"] == 1
    assert filename == "Batch_Results_2024-05-17_1students.xlsx"


def test_no_failed_sheet_without_failures():
    _, builder = build_batch_report([completed("a.jpg")], ExportSettings(), generated_at=GENERATED_AT)

    assert "Failed Sheets" not in builder.sheet_names


def test_export_without_completed_items_writes_nothing(tmp_path):
    items = [BatchItem(file_name="a.jpg", status=ItemStatus.ERROR, error="x"), BatchItem(file_name="b.jpg")]

    with pytest.raises(ExportError):
        export_batch_report(items, ExportSettings(), tmp_path)

    assert list(tmp_path.iterdir()) == []


def test_export_saves_readable_workbook(tmp_path):
    path = export_batch_report([completed("a.jpg", roll="R1")], ExportSettings(school_name="Springfield High"), tmp_path)

    workbook = load_workbook(path)
    sheet = workbook["All Results"]
    assert sheet.cell(row=6, column=1).value == "File Name"
    assert sheet.cell(row=7, column=2).value == "R1"


def test_sheet_names_are_truncated_and_unique():
    builder = ReportBuilder(ExportSettings())
    long_name = "Mathematics-Paper-One-Section-A-Morning"

    first = builder.add_sheet(long_name, ["A"], [])
    second = builder.add_sheet(long_name, ["A"], [])
    third = builder.add_sheet(long_name.lower(), ["A"], [])

    assert first.title == long_name[:31]
    assert len(second.title) <= 31
    assert second.title.endswith(" (2)")
    assert third.title.endswith(" (3)")


def test_header_row_styling():
    builder = ReportBuilder(ExportSettings(header_color="#1e40af"))
    ws = builder.add_sheet("Scores", ["Name", "Score"], [["a", 1]])

    cell = ws.cell(row=builder.header_rows["Scores"], column=2)
    assert cell.fill.fgColor.rgb.endswith("1E40AF")
    assert cell.font.bold
    assert cell.font.color.rgb.endswith("FFFFFF")


@pytest.mark.parametrize(
    "settings, header_row",
    [
        (ExportSettings(include_header=False), 1),
        (ExportSettings(), 4),
        (ExportSettings(school_name="Springfield High"), 6),
    ],
)
def test_header_block_positions(settings, header_row):
    builder = ReportBuilder(settings, generated_at=GENERATED_AT)
    ws = builder.add_sheet("Scores", ["Name"], [["a"]])

    assert builder.header_rows["Scores"] == header_row
    assert ws.cell(row=header_row, column=1).value == "Name"
    if settings.include_header:
        assert ws.cell(row=header_row - 2, column=1).value == "Generated: 2024-05-17 09:30:00"


def test_footer_is_merged_below_data():
    builder = ReportBuilder(ExportSettings(include_header=False, footer_text="Confidential"))
    ws = builder.add_sheet("Scores", ["Name", "Score", "Total"], [["a", 1, 2], ["b", 2, 2]])

    assert ws.cell(row=5, column=1).value == "Confidential"
    assert ws.cell(row=5, column=1).font.italic
    assert "A5:C5" in {str(r) for r in ws.merged_cells.ranges}


def test_bar_length():
    assert bar(100) == BAR_CHAR * 50
    assert bar(45) == BAR_CHAR * 22
    assert bar(0) == ""


def test_common_mistakes_keep_first_seen_order_on_ties():
    extracted = list(KEY)
    extracted[0] = "B"  # B instead of A
    extracted[1] = "C"  # C instead of B
    extracted[4] = "B"  # B instead of A
    extracted[2] = "UNATTEMPTED"
    record = make_record(extracted)

    assert common_mistakes(record) == [("B instead of A", 2), ("C instead of B", 1)]


def test_evaluation_report_sheets():
    record = make_record(list(KEY))

    filename, builder = build_evaluation_report(record, ExportSettings(), generated_at=GENERATED_AT)

    assert builder.sheet_names == [
        "Summary",
        "Detailed Answers",
        "Statistics",
        "Answer Distribution",
        "Question Analysis",
        "Common Mistakes",
        "Confidence Analysis",
        "Performance Insights",
    ]
    assert builder.row_counts["Detailed Answers"] == len(KEY)
    assert filename == "Evaluation_R-17_M1_2024-05-17.xlsx"


def test_many_low_confidence_answers_suggest_review():
    record = make_record(list(KEY), confidences=["low"] * 6 + ["high"] * 4, low_confidence_count=6)

    _, builder = build_evaluation_report(record, ExportSettings(include_header=False))

    ws = builder.workbook["Performance Insights"]
    recommendations = [ws.cell(row=row, column=3).value for row in range(2, ws.max_row + 1)]
    assert any(text and "Review fundamentals." in text for text in recommendations)


def test_evaluation_report_needs_a_record():
    with pytest.raises(ExportError):
        build_evaluation_report(None, ExportSettings())


def test_filenames():
    record = make_record(list(KEY), roll_number=None)

    assert evaluation_report_filename(record, GENERATED_AT) == "Evaluation_2024-05-17.xlsx"
    assert batch_report_filename(12, GENERATED_AT) == "Batch_Results_2024-05-17_12students.xlsx"


@pytest.mark.parametrize("subject, title", [("CS/101", "CS_101"), ("PHY:2", "PHY_2"), ("[Q?]*\\", "_Q____")])
def test_subject_codes_with_forbidden_characters(subject, title):
    items = [completed("a.jpg", subject=subject), completed("b.jpg", subject="M1")]

    _, builder = build_batch_report(items, ExportSettings(), generated_at=GENERATED_AT)

    assert title in builder.sheet_names
    assert builder.row_counts[title] == 1
    assert builder.to_bytes()


def test_blank_sheet_name_after_sanitizing():
    builder = ReportBuilder(ExportSettings())

    assert builder.add_sheet("  ", ["A"], []).title == "Sheet"


def test_subject_sheets_carry_answers_from_records():
    items = [completed("a.jpg", subject="M1", roll="R1"), completed("b.jpg", subject="M1", roll="R2")]
    answers = list(KEY)
    answers[2] = "UNATTEMPTED"
    records = [make_record(answers, file_name="a.jpg")]

    _, builder = build_batch_report(
        items, ExportSettings(include_header=False), records=records, generated_at=GENERATED_AT
    )

    ws = builder.workbook["M1"]
    headers = [cell.value for cell in ws[1]]
    assert headers[:5] == ["REGD NO", "File Name", "Score", "Accuracy", "Q1"]
    assert headers[-1] == f"Q{len(KEY)}"
    first = [cell.value for cell in ws[2]]
    assert first[4:7] == ["A", "B", "-"]
    # b.jpg has no saved record
    second = [cell.value for cell in ws[3]]
    assert second[1] == "b.jpg"
    assert all(value in (None, "") for value in second[4:])


def test_subject_named_like_a_fixed_sheet():
    items = [completed("a.jpg", subject="Answer Key")]

    _, builder = build_batch_report(
        items, ExportSettings(include_header=False), answer_key=KEY, generated_at=GENERATED_AT
    )

    assert builder.workbook["Answer Key"].cell(row=1, column=1).value == "Info"
    assert builder.row_counts["Answer Key (2)"] == 1

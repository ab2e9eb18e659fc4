import asyncio

import pytest

from conftest import FakeOracle
from sheetgrader.aggregator import (
    aggregate,
    grade_bucket,
    median_score,
    pass_tiers,
    score_range_distribution,
    summary_counts,
)
from sheetgrader.errors import InvalidImageError
from sheetgrader.models import BatchItem, ItemStatus
from sheetgrader.processor import SequentialBatchProcessor


def completed(name, score, total=10, accuracy=None, roll=None, subject=None):
    return BatchItem(
        file_name=name,
        status=ItemStatus.COMPLETED,
        score=score,
        total_questions=total,
        accuracy=accuracy if accuracy is not None else score / total * 100,
        roll_number=roll,
        subject_code=subject,
    )


def test_worked_example(make_store, answer_key):
    store, images = make_store(3)
    oracle = FakeOracle(scores={"img-0": 8, "img-1": 10}, failures={"img-2": InvalidImageError()})
    asyncio.run(SequentialBatchProcessor(oracle).run(store, images, answer_key))

    progress = store.progress()
    stats = aggregate(store.items)

    assert progress.completed_count == 2
    assert progress.error_count == 1
    assert stats.avg_accuracy == pytest.approx(90.0)
    assert stats.highest_score.file_name == "sheet-1.jpg"
    assert stats.lowest_score.file_name == "sheet-0.jpg"
    assert stats.grade_distribution.excellent == 1
    assert stats.grade_distribution.good == 1
    assert stats.total_questions == 10


def test_means_ignore_unscored_and_failed_items():
    items = [
        completed("a", 6),
        BatchItem(file_name="b", status=ItemStatus.ERROR, error="x"),
        BatchItem(file_name="c", status=ItemStatus.PENDING),
        BatchItem(file_name="d", status=ItemStatus.COMPLETED),
        completed("e", 9),
    ]

    stats = aggregate(items)

    assert stats.scored_count == 2
    assert stats.avg_score == pytest.approx(7.5)
    assert stats.avg_accuracy == pytest.approx(75.0)


def test_extremes_keep_first_item_in_input_order():
    items = [completed("a", 5), completed("b", 9), completed("c", 9), completed("d", 5)]

    stats = aggregate(items)

    assert stats.highest_score.file_name == "b"
    assert stats.lowest_score.file_name == "a"


@pytest.mark.parametrize(
    "accuracy, bucket",
    [(100, "excellent"), (90, "excellent"), (89.9, "good"), (75, "good"), (74.9, "average"),
     (50, "average"), (49.9, "needs_improvement"), (0, "needs_improvement")],
)
def test_grade_bucket_lower_bounds_are_inclusive(accuracy, bucket):
    assert grade_bucket(accuracy) == bucket


def test_buckets_sum_to_scored_count_and_pass_rate():
    items = [completed(str(i), s) for i, s in enumerate([10, 9, 8, 7, 5, 4, 2])]

    stats = aggregate(items)

    assert stats.grade_distribution.total == stats.scored_count == 7
    assert stats.grade_distribution.excellent == 2
    assert stats.grade_distribution.needs_improvement == 2
    assert stats.pass_rate == pytest.approx(5 / 7 * 100)


def test_accuracy_falls_back_to_score_ratio():
    item = BatchItem(file_name="a", status=ItemStatus.COMPLETED, score=3, total_questions=4)

    assert aggregate([item]).avg_accuracy == pytest.approx(75.0)


def test_no_scored_items_gives_none():
    assert aggregate([BatchItem(file_name="a")]) is None


def test_median_and_distributions():
    items = [completed("a", 10), completed("b", 6), completed("c", 8), completed("d", 4, roll="R4")]

    assert median_score(items) == 8
    distribution = {label: count for label, count, _ in score_range_distribution(items)}
    assert distribution == {"90-100%": 1, "75-89%": 1, "60-74%": 1, "50-59%": 0, "Below 50%": 1}
    tiers = {label: count for label, count, _ in pass_tiers(items)}
    assert tiers == {"Students >= 90%": 1, "Students >= 75%": 2, "Students >= 60%": 3, "Students < 60%": 1}


def test_summary_counts():
    items = [
        completed("a", 5, roll="R1", subject="M1"),
        completed("b", 5, roll="R1", subject="S2"),
        BatchItem(file_name="c", status=ItemStatus.ERROR),
    ]

    assert summary_counts(items) == {
        "processed": 3,
        "successful": 2,
        "failed": 1,
        "unique_students": 1,
        "unique_subjects": 2,
    }

"""
Batch statistics derived from completed items.

All functions are pure: they read a sequence of items and never keep state,
so the numbers always reflect the current collection.
"""

from collections.abc import Sequence

from .config import EXCELLENT_THRESHOLD, GOOD_THRESHOLD, PASS_THRESHOLD
from .models import AggregatedStats, BatchItem, GradeDistribution, ItemStatus, ScoreEntry

# (label, lower bound inclusive, upper bound exclusive)
SCORE_RANGES: list[tuple[str, float, float]] = [
    ("90-100%", 90.0, float("inf")),
    ("75-89%", 75.0, 90.0),
    ("60-74%", 60.0, 75.0),
    ("50-59%", 50.0, 60.0),
    ("Below 50%", float("-inf"), 50.0),
]


def completed_items(items: Sequence[BatchItem]) -> list[BatchItem]:
    return [item for item in items if item.status == ItemStatus.COMPLETED]


def scored_entries(items: Sequence[BatchItem]) -> list[ScoreEntry]:
    """
    Collect completed items that carry a score and a question count.

    Accuracy falls back to score / total when the item has none.
    """
    entries: list[ScoreEntry] = []
    for item in completed_items(items):
        if item.score is None or item.total_questions is None:
            continue
        accuracy = item.accuracy
        if accuracy is None:
            accuracy = item.score / item.total_questions * 100 if item.total_questions > 0 else 0.0
        entries.append(
            ScoreEntry(
                score=item.score,
                total=item.total_questions,
                accuracy=accuracy,
                roll_number=item.roll_number,
                file_name=item.file_name,
            )
        )
    return entries


def grade_bucket(accuracy: float) -> str:
    if accuracy >= EXCELLENT_THRESHOLD:
        return "excellent"
    if accuracy >= GOOD_THRESHOLD:
        return "good"
    if accuracy >= PASS_THRESHOLD:
        return "average"
    return "needs_improvement"


def aggregate(items: Sequence[BatchItem]) -> AggregatedStats | None:
    """
    Compute batch summary statistics.

    Highest and lowest scores keep the first item reaching the extreme, in
    input order. total_questions comes from the first scored item.

    Args:
        items: Batch items in any state; only completed, scored ones count.

    Returns:
        AggregatedStats, or None when no item is scored.
    """
    entries = scored_entries(items)
    if not entries:
        return None

    highest = entries[0]
    lowest = entries[0]
    buckets = {"excellent": 0, "good": 0, "average": 0, "needs_improvement": 0}
    for entry in entries:
        if entry.score > highest.score:
            highest = entry
        if entry.score < lowest.score:
            lowest = entry
        buckets[grade_bucket(entry.accuracy)] += 1

    passed = sum(1 for e in entries if e.accuracy >= PASS_THRESHOLD)

    return AggregatedStats(
        scored_count=len(entries),
        avg_accuracy=sum(e.accuracy for e in entries) / len(entries),
        avg_score=sum(e.score for e in entries) / len(entries),
        total_questions=entries[0].total,
        highest_score=highest,
        lowest_score=lowest,
        grade_distribution=GradeDistribution(**buckets),
        pass_rate=passed / len(entries) * 100,
    )


def median_score(items: Sequence[BatchItem]) -> float | None:
    """Upper median of completed scores (element at len // 2 once sorted)."""
    scores = sorted(item.score or 0 for item in completed_items(items))
    if not scores:
        return None
    return scores[len(scores) // 2]


def score_range_distribution(items: Sequence[BatchItem]) -> list[tuple[str, int, float]]:
    """
    Count completed items per accuracy range.

    Returns:
        List of (range label, count, percentage of completed items).
    """
    completed = completed_items(items)
    if not completed:
        return [(label, 0, 0.0) for label, _, _ in SCORE_RANGES]

    rows = []
    for label, low, high in SCORE_RANGES:
        count = sum(1 for item in completed if low <= (item.accuracy or 0) < high)
        rows.append((label, count, count / len(completed) * 100))
    return rows


def pass_tiers(items: Sequence[BatchItem]) -> list[tuple[str, int, float]]:
    """Cumulative tiers: >= 90, >= 75, >= 60 and < 60 percent accuracy."""
    completed = completed_items(items)
    total = len(completed) or 1
    tiers = []
    for threshold in (90, 75, 60):
        count = sum(1 for item in completed if (item.accuracy or 0) >= threshold)
        tiers.append((f"Students >= {threshold}%", count, count / total * 100))
    below = sum(1 for item in completed if (item.accuracy or 0) < 60)
    tiers.append(("Students < 60%", below, below / total * 100))
    return tiers


def summary_counts(items: Sequence[BatchItem]) -> dict[str, int]:
    completed = completed_items(items)
    return {
        "processed": len(items),
        "successful": len(completed),
        "failed": sum(1 for item in items if item.status == ItemStatus.ERROR),
        "unique_students": len({item.roll_number for item in completed if item.roll_number}),
        "unique_subjects": len({item.subject_code for item in completed if item.subject_code}),
    }

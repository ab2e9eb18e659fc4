"""
Answer normalization and scoring shared by the oracle client and processor.
"""

from collections.abc import Sequence

from .config import UNATTEMPTED, UNATTEMPTED_MARKERS
from .models import DetailedResult


def is_unattempted(answer: str | None) -> bool:
    """Return True for blank, illegible or explicitly unattempted answers."""
    if answer is None:
        return True
    return answer.strip().upper() in UNATTEMPTED_MARKERS


def normalize_answers(extracted: Sequence[str], expected_length: int) -> list[str]:
    """
    Pad or truncate extracted answers to the answer-key length.

    Missing answers are padded with the UNATTEMPTED marker so score
    denominators always equal the number of configured questions.

    Args:
        extracted: Answers read from the sheet.
        expected_length: Number of questions in the answer key.

    Returns:
        List of exactly expected_length answers.
    """
    answers = [UNATTEMPTED if is_unattempted(a) else a.strip() for a in extracted[:expected_length]]
    answers.extend([UNATTEMPTED] * (expected_length - len(answers)))
    return answers


def is_correct(extracted: str, correct: str) -> bool:
    if is_unattempted(extracted):
        return False
    return extracted.strip().lower() == correct.strip().lower()


def score_answers(
    extracted: Sequence[str],
    answer_key: Sequence[str],
    confidences: Sequence[str] | None = None,
    notes: Sequence[str] | None = None,
) -> tuple[int, float, list[DetailedResult]]:
    """
    Score normalized answers against the key.

    Args:
        extracted: Answers already normalized to the key length.
        answer_key: Expected answers.
        confidences: Optional per-question confidence labels.
        notes: Optional per-question notes.

    Returns:
        Tuple of (correct count, accuracy rounded to one decimal, detailed results).
    """
    confidences = confidences or []
    notes = notes or []
    detailed: list[DetailedResult] = []
    correct_count = 0

    for index, (answer, correct) in enumerate(zip(extracted, answer_key)):
        matched = is_correct(answer, correct)
        if matched:
            correct_count += 1
        confidence = confidences[index] if index < len(confidences) else "unknown"
        note = notes[index] if index < len(notes) else ""
        detailed.append(
            DetailedResult(
                question=index + 1,
                extracted=answer,
                correct=correct,
                is_correct=matched,
                confidence=str(confidence or "unknown").lower(),
                note=str(note or ""),
            )
        )

    total = len(answer_key)
    accuracy = round(correct_count / total * 100, 1) if total > 0 else 0.0
    return correct_count, accuracy, detailed


def overall_confidence(low_confidence_count: int, total_questions: int) -> str:
    """Collapse per-answer confidence into a single high/medium/low band."""
    if low_confidence_count == 0:
        return "high"
    if low_confidence_count < total_questions / 2:
        return "medium"
    return "low"

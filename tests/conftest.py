"""
Shared fixtures for the Sheet Grader tests.
"""

import pytest

from sheetgrader.item_store import BatchItemStore
from sheetgrader.models import AnswerKeyConfig, OracleResult
from sheetgrader.scoring import score_answers

KEY = ["A", "B", "C", "D", "A", "B", "C", "D", "A", "B"]


def _wrong(answer: str) -> str:
    return "C" if answer != "C" else "D"


class FakeOracle:
    """
    Oracle double returning a chosen number of correct answers per image.

    Attributes:
        scores: image -> number of correct answers (default: all correct).
        failures: image -> exception, or list of exceptions raised in turn.
        subject_codes: image -> subject code to report.
        calls: Images submitted, in order.
    """

    def __init__(self, scores=None, failures=None, subject_codes=None, on_call=None):
        self.scores = scores or {}
        self.failures = failures or {}
        self.subject_codes = subject_codes or {}
        self.on_call = on_call
        self.calls: list[str] = []

    async def evaluate(self, image, config):
        self.calls.append(image)
        if self.on_call:
            self.on_call(image)

        failure = self.failures.get(image)
        if isinstance(failure, list):
            if failure:
                raise failure.pop(0)
        elif failure is not None:
            raise failure

        key = list(config.answers)
        correct = self.scores.get(image, len(key))
        extracted = key[:correct] + [_wrong(a) for a in key[correct:]]
        score, accuracy, detailed = score_answers(extracted, key)
        return OracleResult(
            extracted_answers=extracted,
            correct_answers=key,
            roll_number=f"R-{image}",
            subject_code=self.subject_codes.get(image),
            score=score,
            total_questions=len(key),
            accuracy=accuracy,
            confidence="high",
            low_confidence_count=0,
            detailed_results=detailed,
        )


class RecordingNotifier:
    def __init__(self):
        self.messages: list[tuple[str, str, str]] = []

    def _record(self, level, title, description):
        self.messages.append((level, title, description))

    def info(self, title, description=""):
        self._record("info", title, description)

    def success(self, title, description=""):
        self._record("success", title, description)

    def warning(self, title, description=""):
        self._record("warning", title, description)

    def error(self, title, description=""):
        self._record("error", title, description)

    def levels(self) -> list[str]:
        return [level for level, _, _ in self.messages]


class MemoryPersistence:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.records = []

    async def insert(self, record):
        if self.fail:
            raise OSError("disk full")
        self.records.append(record)


@pytest.fixture
def answer_key() -> AnswerKeyConfig:
    return AnswerKeyConfig(answers=KEY, detect_roll_number=True, detect_subject_code=True)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_store():
    def _make(count: int, expected_count: int | None = None):
        store = BatchItemStore(expected_count=expected_count)
        store.seed(f"sheet-{i}.jpg" for i in range(count))
        images = [f"img-{i}" for i in range(count)]
        return store, images

    return _make

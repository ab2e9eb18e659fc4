import pytest

from sheetgrader.errors import InvalidTransitionError
from sheetgrader.item_store import BatchItemStore
from sheetgrader.models import EvaluationRecord, ItemStatus
from sheetgrader.persistence import latest_records


def test_seed_creates_pending_items():
    store = BatchItemStore()
    store.seed(["a.jpg", "b.jpg"])

    assert [item.file_name for item in store.items] == ["a.jpg", "b.jpg"]
    assert all(item.status == ItemStatus.PENDING for item in store.items)
    assert store.has_pending_sheets()


def test_full_lifecycle_and_patch():
    store = BatchItemStore()
    store.seed(["a.jpg"])

    store.set_status(0, ItemStatus.PROCESSING)
    item = store.set_status(0, ItemStatus.COMPLETED, score=7, total_questions=10, accuracy=70.0)

    assert item.status == ItemStatus.COMPLETED
    assert item.score == 7
    assert store[0] == item
    assert not store.has_pending_sheets()


@pytest.mark.parametrize("terminal", [ItemStatus.COMPLETED, ItemStatus.ERROR])
def test_terminal_states_cannot_be_left(terminal):
    store = BatchItemStore()
    store.seed(["a.jpg"])
    store.set_status(0, ItemStatus.PROCESSING)
    store.set_status(0, terminal)

    for target in ItemStatus:
        with pytest.raises(InvalidTransitionError):
            store.set_status(0, target)


def test_pending_cannot_jump_to_terminal():
    store = BatchItemStore()
    store.seed(["a.jpg"])

    with pytest.raises(InvalidTransitionError):
        store.set_status(0, ItemStatus.COMPLETED)


def test_append_keeps_existing_items():
    store = BatchItemStore()
    store.seed(["a.jpg", "b.jpg"])
    store.set_status(0, ItemStatus.PROCESSING)
    store.set_status(0, ItemStatus.COMPLETED, score=5)
    before = store.items

    store.append(["c.jpg", "d.jpg"])

    assert store.items[:2] == before
    assert [item.status for item in store.items[2:]] == [ItemStatus.PENDING, ItemStatus.PENDING]
    assert store.first_pending_index() == 1


def test_mutations_replace_snapshot():
    store = BatchItemStore()
    store.seed(["a.jpg"])
    snapshots = []
    store.subscribe(snapshots.append)
    old = store.items

    store.set_status(0, ItemStatus.PROCESSING)

    assert old[0].status == ItemStatus.PENDING
    assert store.items is not old
    assert snapshots == [store.items]


def test_progress_uses_expected_count():
    store = BatchItemStore(expected_count=5)
    store.seed(["a.jpg", "b.jpg", "c.jpg"])
    store.set_status(0, ItemStatus.PROCESSING)
    store.set_status(0, ItemStatus.COMPLETED)
    store.set_status(1, ItemStatus.PROCESSING)
    store.set_status(1, ItemStatus.ERROR, error="bad")

    progress = store.progress()
    assert (progress.completed_count, progress.error_count, progress.total_target) == (1, 1, 5)

    store.append(["d.jpg", "e.jpg", "f.jpg"])
    assert store.progress().total_target == 6


def test_progress_without_expected_count():
    store = BatchItemStore()
    store.seed(["a.jpg", "b.jpg"])
    assert store.progress().total_target == 2
    assert store.first_pending_index() == 0


def make_saved(file_name, answers=("A", "B"), score=1, **fields):
    return EvaluationRecord(
        file_name=file_name,
        answer_key=list(answers),
        score=score,
        total_questions=len(answers),
        accuracy=score / len(answers) * 100,
        **fields,
    )


def test_restore_marks_saved_sheets_completed():
    store = BatchItemStore()
    store.seed(["a.jpg", "b.jpg", "c.jpg"])
    records = [
        make_saved("a.jpg", score=1, subject_code="M1"),
        make_saved("a.jpg", score=2, subject_code="M1"),
        make_saved("c.jpg", answers=("C", "D")),
        make_saved("old.jpg"),
    ]

    restored = store.restore(records, ("A", "B"))

    assert restored == 1
    assert store[0].status == ItemStatus.COMPLETED
    assert store[0].score == 2
    assert store[0].subject_code == "M1"
    # c.jpg was graded against another key
    assert store[2].status == ItemStatus.PENDING
    assert store.first_pending_index() == 1


def test_restore_leaves_decided_items_alone():
    store = BatchItemStore()
    store.seed(["a.jpg"])
    store.set_status(0, ItemStatus.PROCESSING)
    store.set_status(0, ItemStatus.ERROR, error="bad")

    assert store.restore([make_saved("a.jpg")], ("A", "B")) == 0
    assert store[0].status == ItemStatus.ERROR


def test_latest_records_follow_batch_order():
    records = [make_saved("b.jpg", score=0), make_saved("a.jpg"), make_saved("b.jpg", score=2), make_saved("x.jpg")]

    latest = latest_records(records, ["a.jpg", "b.jpg", "c.jpg"])

    assert [r.file_name for r in latest] == ["a.jpg", "b.jpg"]
    assert latest[1].score == 2

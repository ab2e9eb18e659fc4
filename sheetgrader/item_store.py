"""
Ordered store of batch items with a pending -> processing -> terminal state machine.

Every mutation replaces the whole item tuple, so a snapshot taken by an
observer is never partially updated.
"""

import logging
from collections.abc import Callable, Iterable, Sequence

from .errors import InvalidTransitionError
from .models import BatchItem, BatchProgress, EvaluationRecord, ItemStatus

logger = logging.getLogger(__name__)

Listener = Callable[[tuple[BatchItem, ...]], None]

_ALLOWED_TRANSITIONS: dict[ItemStatus, set[ItemStatus]] = {
    ItemStatus.PENDING: {ItemStatus.PROCESSING},
    ItemStatus.PROCESSING: {ItemStatus.COMPLETED, ItemStatus.ERROR},
    ItemStatus.COMPLETED: set(),
    ItemStatus.ERROR: set(),
}


class BatchItemStore:
    """
    Holds the batch items of one session.

    Items are never removed: failed sheets stay visible for diagnosis.
    """

    def __init__(self, expected_count: int | None = None) -> None:
        """
        Initialize an empty store.

        Args:
            expected_count: Number of sheets the operator declared up front.
        """
        self.expected_count = expected_count
        self._items: tuple[BatchItem, ...] = ()
        self._listeners: list[Listener] = []

    @property
    def items(self) -> tuple[BatchItem, ...]:
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> BatchItem:
        return self._items[index]

    def subscribe(self, listener: Listener) -> None:
        """Register a callback receiving every new snapshot."""
        self._listeners.append(listener)

    def _replace(self, items: tuple[BatchItem, ...]) -> None:
        self._items = items
        for listener in self._listeners:
            listener(items)

    def seed(self, file_names: Iterable[str]) -> tuple[BatchItem, ...]:
        """
        Replace the collection with fresh pending items (first upload).

        Args:
            file_names: Names of the uploaded images, in upload order.

        Returns:
            The new snapshot.
        """
        self._replace(tuple(BatchItem(file_name=name) for name in file_names))
        logger.info("Seeded batch with %d items", len(self._items))
        return self._items

    def append(self, file_names: Iterable[str]) -> tuple[BatchItem, ...]:
        """
        Append pending items without touching existing ones.

        Args:
            file_names: Names of the additional images.

        Returns:
            The new snapshot.
        """
        new_items = tuple(BatchItem(file_name=name) for name in file_names)
        self._replace(self._items + new_items)
        logger.info("Appended %d items, batch now has %d", len(new_items), len(self._items))
        return self._items

    def set_status(self, index: int, status: ItemStatus, **patch) -> BatchItem:
        """
        Move one item to a new status, applying extra field updates.

        Args:
            index: Position of the item.
            status: Target status.
            **patch: Other BatchItem fields to set (score, error, ...).

        Returns:
            The updated item.

        Raises:
            IndexError: If index is out of range.
            InvalidTransitionError: If the move is not allowed.
        """
        current = self._items[index]
        if status != current.status and status not in _ALLOWED_TRANSITIONS[current.status]:
            raise InvalidTransitionError(
                f"Item {index} ({current.file_name}) cannot move from {current.status.value} to {status.value}"
            )
        if status == current.status and current.status.is_terminal:
            raise InvalidTransitionError(f"Item {index} ({current.file_name}) is already {current.status.value}")

        updated = current.model_copy(update={**patch, "status": status})
        self._replace(self._items[:index] + (updated,) + self._items[index + 1:])
        return updated

    def restore(self, records: Sequence[EvaluationRecord], answer_key: Sequence[str]) -> int:
        """
        Mark pending items already evaluated in an earlier run as completed.

        Only records graded against the same answer key count; the latest
        record wins when a file was evaluated more than once.

        Args:
            records: Saved records, oldest first.
            answer_key: Key of the current run.

        Returns:
            Number of items restored.
        """
        latest = {r.file_name: r for r in records if list(r.answer_key) == list(answer_key)}
        restored = 0
        for index, item in enumerate(self._items):
            record = latest.get(item.file_name)
            if record is None or item.status != ItemStatus.PENDING:
                continue
            self.set_status(index, ItemStatus.PROCESSING)
            self.set_status(
                index,
                ItemStatus.COMPLETED,
                roll_number=record.roll_number,
                subject_code=record.subject_code,
                score=record.score,
                total_questions=record.total_questions,
                accuracy=record.accuracy,
            )
            restored += 1
        if restored:
            logger.info("Restored %d items from earlier runs", restored)
        return restored

    def has_pending_sheets(self) -> bool:
        return any(item.status == ItemStatus.PENDING for item in self._items)

    def first_pending_index(self) -> int | None:
        for index, item in enumerate(self._items):
            if item.status == ItemStatus.PENDING:
                return index
        return None

    def progress(self) -> BatchProgress:
        completed = sum(1 for item in self._items if item.status == ItemStatus.COMPLETED)
        errors = sum(1 for item in self._items if item.status == ItemStatus.ERROR)
        total = len(self._items)
        if self.expected_count is not None:
            total = max(self.expected_count, total)
        return BatchProgress(completed_count=completed, error_count=errors, total_target=total)

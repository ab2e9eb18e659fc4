"""
Append-only storage of evaluation records.

Saves one JSON file per evaluated sheet plus a JSON-lines index, and loads
them back for single-sheet exports and the dashboard.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .config import DEFAULT_RECORDS_DIR, RECORDS_INDEX_FILENAME
from .models import EvaluationRecord

logger = logging.getLogger(__name__)


class PersistenceClient(Protocol):
    async def insert(self, record: EvaluationRecord) -> None:
        ...


class JsonRecordStore:
    """
    Writes evaluation records to a directory.

    Records are never rewritten: inserting an existing record_id fails.
    """

    def __init__(self, output_dir: Path | None = None) -> None:
        """
        Initialize the record store.

        Args:
            output_dir: Directory holding the records. Defaults to ./records/
        """
        self.output_dir = output_dir or DEFAULT_RECORDS_DIR

    async def insert(self, record: EvaluationRecord) -> None:
        """
        Save a record.

        Args:
            record: EvaluationRecord to save.

        Raises:
            FileExistsError: If a record with the same id was already saved.
            OSError: If the directory is not writable.
        """
        await asyncio.to_thread(self._write, record)

    def _write(self, record: EvaluationRecord) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        record_path = self.output_dir / f"{record.record_id}.json"

        # "x" mode keeps history append-only
        with open(record_path, "x", encoding="utf-8") as f:
            f.write(record.model_dump_json(indent=2))

        with open(self.output_dir / RECORDS_INDEX_FILENAME, "a", encoding="utf-8") as f:
            f.write(json.dumps({
                "record_id": record.record_id,
                "file_name": record.file_name,
                "roll_number": record.roll_number,
                "subject_code": record.subject_code,
                "created_at": record.created_at.isoformat(),
            }) + "\n")
        logger.info("Saved evaluation record %s for %s", record.record_id, record.file_name)


def load_record(record_path: Path) -> EvaluationRecord:
    """
    Load a single evaluation record.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValidationError: If the file is not a valid record.
    """
    with open(record_path, "r", encoding="utf-8") as f:
        return EvaluationRecord.model_validate_json(f.read())


def load_records(records_dir: Path) -> list[EvaluationRecord]:
    """
    Load all evaluation records from a directory, oldest first.

    Unreadable files are skipped with a warning.

    Args:
        records_dir: Directory written by JsonRecordStore.

    Returns:
        List of EvaluationRecord objects.
    """
    records: list[EvaluationRecord] = []
    if not records_dir.exists():
        return records

    for json_file in records_dir.glob("*.json"):
        try:
            records.append(load_record(json_file))
        except (OSError, ValidationError) as e:
            logger.warning("Skipping unreadable record %s: %s", json_file, e)

    records.sort(key=lambda r: r.created_at)
    return records


def latest_records(records: list[EvaluationRecord], file_names: list[str]) -> list[EvaluationRecord]:
    """
    Keep the newest record for each of file_names, in file_names order.

    Args:
        records: Records sorted oldest first, as load_records returns them.
        file_names: Files of the current batch.

    Returns:
        At most one record per file name.
    """
    latest = {record.file_name: record for record in records}
    return [latest[name] for name in file_names if name in latest]

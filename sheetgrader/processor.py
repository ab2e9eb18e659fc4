"""
Sequential batch processor.

Submits pending sheets to the oracle one at a time, in order, recording each
outcome on the item store. A failed sheet never stops the batch, and
re-running over the same store only touches items still pending.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_BACKOFF_SECONDS
from .errors import (
    ConfigurationError,
    OracleError,
    OracleResponseError,
    OracleTransportError,
    PersistenceWarning,
    RateLimitedError,
)
from .item_store import BatchItemStore
from .models import AnswerKeyConfig, BatchRunSummary, EvaluationRecord, ItemStatus, OracleResult
from .notifier import LoggingNotifier, Notifier
from .oracle_client import OracleClient, encode_image
from .persistence import PersistenceClient
from .scoring import normalize_answers, score_answers

logger = logging.getLogger(__name__)

ImageSource = str | Path


class CancelToken:
    """Cooperative cancel flag, checked by the processor between items."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class SequentialBatchProcessor:
    """
    Drives a batch of sheets through the oracle, one sheet at a time.

    The processor is the only writer of item statuses. Suspension points are
    the oracle call and the persistence call; everything in between runs
    synchronously, so item i is fully decided before item i + 1 starts.
    """

    def __init__(
        self,
        oracle: OracleClient,
        persistence: PersistenceClient | None = None,
        notifier: Notifier | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        on_progress: Callable[[int], None] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the processor.

        Args:
            oracle: Client evaluating one image against the answer key.
            persistence: Optional store receiving an EvaluationRecord per success.
            notifier: Receives user-facing messages. Defaults to logging.
            max_retries: Extra attempts for rate-limited oracle calls.
            retry_backoff_seconds: First backoff delay, doubled on each retry.
            on_progress: Called with the new current index whenever it moves.
            sleep: Awaitable sleep used for backoff.
        """
        self.oracle = oracle
        self.persistence = persistence
        self.notifier = notifier or LoggingNotifier()
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.on_progress = on_progress
        self._sleep = sleep
        self.current_index = 0
        self.is_processing = False

    def _set_index(self, index: int) -> None:
        self.current_index = index
        if self.on_progress:
            self.on_progress(index)

    async def run(
        self,
        store: BatchItemStore,
        images: Sequence[ImageSource],
        config: AnswerKeyConfig,
        start_index: int = 0,
        cancel: CancelToken | None = None,
    ) -> BatchRunSummary:
        """
        Process every pending item from start_index to the end of the store.

        The end bound is captured when the call starts: items appended while
        the run is in flight need a new run starting at their index.

        Args:
            store: Item store holding the batch.
            images: Image per item, as a data URL or a file path.
            config: Answer key and detection flags for this run.
            start_index: First index to consider.
            cancel: Optional cancel flag polled between items.

        Returns:
            BatchRunSummary for the items decided during this run.

        Raises:
            ConfigurationError: If the answer key is unusable or images are missing.
        """
        config.validate_for_run()
        end_index = len(store)
        if len(images) < end_index:
            raise ConfigurationError(
                f"{end_index} sheets in the batch but only {len(images)} images supplied"
            )
        if start_index < 0:
            raise ConfigurationError(f"Invalid start index {start_index}")

        success_count = 0
        error_count = 0
        attempted = 0
        cancelled = False

        self.is_processing = True
        self._set_index(start_index)
        try:
            for index in range(start_index, end_index):
                if cancel is not None and cancel.cancelled:
                    cancelled = True
                    self._set_index(index)
                    logger.info("Batch cancelled before item %d", index)
                    break

                self._set_index(index)
                item = store[index]
                if item.status.is_terminal:
                    continue

                store.set_status(index, ItemStatus.PROCESSING)
                attempted += 1
                logger.info("[%d/%d] Processing %s", index + 1, end_index, item.file_name)

                try:
                    result = await self._evaluate(images[index], config)
                except OracleError as e:
                    logger.warning("Oracle failed for %s: %s", item.file_name, e)
                    store.set_status(index, ItemStatus.ERROR, error=e.user_message)
                    self.notifier.error(f"Failed to process {item.file_name}", e.user_message)
                    error_count += 1
                    continue

                record = EvaluationRecord(
                    file_name=item.file_name,
                    image_ref=str(images[index]) if isinstance(images[index], Path) else None,
                    answer_key=list(config.answers),
                    extracted_answers=result.extracted_answers,
                    correct_answers=result.correct_answers,
                    roll_number=result.roll_number,
                    subject_code=result.subject_code,
                    grid_rows=config.grid_config.rows if config.grid_config else None,
                    grid_columns=config.grid_config.columns if config.grid_config else None,
                    score=result.score,
                    total_questions=result.total_questions,
                    accuracy=result.accuracy,
                    confidence=result.confidence,
                    low_confidence_count=result.low_confidence_count,
                    image_quality=result.image_quality,
                    detailed_results=result.detailed_results,
                )
                warning = await self._persist(record)

                store.set_status(
                    index,
                    ItemStatus.COMPLETED,
                    roll_number=result.roll_number,
                    subject_code=result.subject_code,
                    score=result.score,
                    total_questions=result.total_questions,
                    accuracy=result.accuracy,
                    warning=str(warning) if warning else None,
                )
                success_count += 1
            else:
                self._set_index(end_index)
        finally:
            self.is_processing = False

        return BatchRunSummary(
            success_count=success_count,
            error_count=error_count,
            total_attempted=attempted,
            current_index=self.current_index,
            cancelled=cancelled,
            items=store.items,
        )

    async def process(
        self,
        store: BatchItemStore,
        images: Sequence[ImageSource],
        config: AnswerKeyConfig,
        start_index: int = 0,
        cancel: CancelToken | None = None,
    ) -> BatchRunSummary:
        """
        Run the batch and announce the outcome through the notifier.
        """
        summary = await self.run(store, images, config, start_index=start_index, cancel=cancel)
        completed = store.progress().completed_count
        if summary.cancelled:
            self.notifier.info(
                "Batch processing paused",
                f"{completed} of {len(store)} answer sheets processed. Resume to continue.",
            )
        else:
            self.notifier.success(
                "Batch processing complete!",
                f"Successfully processed {completed} of {len(store)} answer sheets",
            )
        return summary

    async def _evaluate(self, image: ImageSource, config: AnswerKeyConfig) -> OracleResult:
        image_data = encode_image(image) if isinstance(image, Path) else image

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_backoff_seconds),
            retry=retry_if_exception_type(RateLimitedError),
            before_sleep=before_sleep_log(logger, logging.INFO),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    raw = await self.oracle.evaluate(image_data, config)
        except OracleError:
            raise
        except Exception as e:
            logger.exception("Unexpected oracle failure")
            raise OracleTransportError(str(e)) from e

        return coerce_result(raw, config)

    async def _persist(self, record: EvaluationRecord) -> PersistenceWarning | None:
        if self.persistence is None:
            return None
        try:
            await self.persistence.insert(record)
        except Exception as e:
            logger.warning("Failed to save evaluation for %s: %s", record.file_name, e)
            warning = PersistenceWarning("Result not saved to history")
            self.notifier.warning(
                f"Evaluated {record.file_name} but could not save it",
                "The result is shown here but will not appear in your history.",
            )
            return warning
        return None


def coerce_result(raw: OracleResult | dict[str, Any], config: AnswerKeyConfig) -> OracleResult:
    """
    Validate an oracle response and align it with the configured key.

    When the extracted answers do not match the key length they are padded
    with the UNATTEMPTED marker or truncated, then rescored, so every score
    is out of the configured number of questions.

    Args:
        raw: OracleResult or its JSON dict form.
        config: Answer key used for the run.

    Returns:
        OracleResult consistent with config.answers.

    Raises:
        OracleResponseError: If the response does not fit the schema.
    """
    if isinstance(raw, OracleResult):
        result = raw
    else:
        try:
            result = OracleResult.model_validate(raw)
        except ValidationError as e:
            raise OracleResponseError(f"Malformed oracle response: {e}") from e

    key = list(config.answers)
    if len(result.extracted_answers) == len(key) and result.total_questions == len(key):
        return result

    logger.warning(
        "Oracle returned %d answers for a %d-question key; normalizing",
        len(result.extracted_answers),
        len(key),
    )
    extracted = normalize_answers(result.extracted_answers, len(key))
    by_question = {r.question: r for r in result.detailed_results}
    confidences = [by_question[q].confidence if q in by_question else "unknown" for q in range(1, len(key) + 1)]
    notes = [by_question[q].note if q in by_question else "" for q in range(1, len(key) + 1)]
    score, accuracy, detailed = score_answers(extracted, key, confidences, notes)

    return result.model_copy(update={
        "extracted_answers": extracted,
        "correct_answers": key,
        "score": score,
        "total_questions": len(key),
        "accuracy": accuracy,
        "low_confidence_count": sum(1 for r in detailed if r.confidence == "low"),
        "detailed_results": detailed,
    })

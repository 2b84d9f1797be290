"""
Batch Processor Module
Grades many answer sheets in order, isolating per-sheet failures
"""
import copy
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, Union
import logging

from ..core.constants import Messages
from ..core.exceptions import OperationCancelledError, check_cancelled
from .grading_engine import GradingEngine, GradingOptions, GradingResult
from .models import AnswerKey, AnswerSheet

logger = logging.getLogger(__name__)


@dataclass
class BatchProgress:
    """Running snapshot of a batch; observers receive copies"""
    total_students: int = 0
    processed_students: int = 0
    success_count: int = 0
    error_count: int = 0
    current_student_name: str = ""
    status_message: str = ""

    @property
    def percent_complete(self) -> float:
        if self.total_students <= 0:
            return 0.0
        return round(self.processed_students / self.total_students * 100, 1)

    @property
    def is_complete(self) -> bool:
        return self.processed_students >= self.total_students


@dataclass
class BatchError:
    """A sheet that could not be graded"""
    student_id: str = ""
    student_name: str = ""
    error_message: str = ""
    exception: Optional[BaseException] = None


@dataclass
class PendingSheet:
    """
    A sheet whose answers still have to be read, e.g. from OCR output.

    load runs inside the batch; if it raises, the exception is recorded as
    that sheet's BatchError like any grading failure.
    """
    load: Callable[[], AnswerSheet]
    student_id: str = ""
    student_name: str = ""


BatchItem = Union[AnswerSheet, PendingSheet]


@dataclass
class SheetOutcome:
    """
    Per-sheet result of a batch run: exactly one of result or error is set.
    """
    sheet: AnswerSheet
    result: Optional[GradingResult] = None
    error: Optional[BatchError] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


@dataclass
class BatchResult:
    batch_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_processed: int = 0
    success_count: int = 0
    error_count: int = 0
    outcomes: List[SheetOutcome] = field(default_factory=list)
    results: List[GradingResult] = field(default_factory=list)
    errors: List[BatchError] = field(default_factory=list)

    @property
    def duration(self) -> float:
        """Elapsed seconds, 0 until the batch has completed"""
        if self.started_at is None or self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def summary(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration": self.duration,
            "total_processed": self.total_processed,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "errors": [
                {
                    "student_id": e.student_id,
                    "student_name": e.student_name,
                    "error_message": e.error_message,
                }
                for e in self.errors
            ],
        }


ProgressCallback = Callable[[BatchProgress], None]


class BatchProcessor:
    """
    Applies the grading engine to a list of answer sheets.

    Sheets are graded strictly in input order, one at a time. A failure on
    one sheet is recorded as a BatchError and the run continues; every
    input sheet ends up in exactly one of results or errors.
    """

    def __init__(
        self,
        grading_engine: Optional[GradingEngine] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        self.grading_engine = grading_engine or GradingEngine()
        self.progress_callback = progress_callback

    def process_batch(
        self,
        sheets: List[BatchItem],
        answer_key: AnswerKey,
        options: Optional[GradingOptions] = None
    ) -> BatchResult:
        """
        Grade every sheet.

        Args:
            sheets: Answer sheets carrying parsed answers and identity, or
                PendingSheets to be read first
            answer_key: Key to grade against
            options: Scoring policy

        Returns:
            BatchResult with results, errors and per-sheet outcomes
        """
        batch, progress = self._start(sheets)
        logger.info(f"Starting batch processing of {len(sheets)} answer sheets")

        for item in sheets:
            self._grade_sheet(item, answer_key, options, batch, progress)

        return self._finish(batch, progress)

    async def process_batch_async(
        self,
        sheets: List[BatchItem],
        answer_key: AnswerKey,
        options: Optional[GradingOptions] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> BatchResult:
        """
        Same as process_batch, but checks cancel_event before each sheet.

        Raises:
            OperationCancelledError: If cancel_event is set; sheets not yet
                graded are neither graded nor recorded as errors
        """
        batch, progress = self._start(sheets)
        logger.info(f"Starting async batch processing of {len(sheets)} answer sheets")

        for item in sheets:
            try:
                check_cancelled(cancel_event)
            except OperationCancelledError:
                logger.warning(f"Batch processing cancelled at student {item.student_name}")
                raise

            sheet, result = self._load(item)
            if result is None:
                result = await self._grade_sheet_async(sheet, answer_key, options, cancel_event)
            self._record(sheet, result, batch, progress)

        return self._finish(batch, progress)

    def _start(self, sheets: List[BatchItem]):
        batch = BatchResult(
            started_at=datetime.now(timezone.utc),
            total_processed=len(sheets)
        )
        progress = BatchProgress(total_students=len(sheets))
        return batch, progress

    @staticmethod
    def _load(item: BatchItem) -> Tuple[AnswerSheet, Optional[Exception]]:
        """Resolve a PendingSheet; returns the sheet and the exception that stopped it, if any"""
        if not isinstance(item, PendingSheet):
            return item, None
        try:
            return item.load(), None
        except OperationCancelledError:
            raise
        except Exception as e:
            logger.exception(f"Error reading sheet for student {item.student_id}: {item.student_name}")
            return AnswerSheet(student_id=item.student_id, student_name=item.student_name), e

    def _grade_sheet(
        self,
        item: BatchItem,
        answer_key: AnswerKey,
        options: Optional[GradingOptions],
        batch: BatchResult,
        progress: BatchProgress
    ) -> None:
        sheet, result = self._load(item)
        if result is None:
            try:
                result = self.grading_engine.grade_student(sheet.answers, answer_key, options)
            except Exception as e:
                logger.exception(f"Error grading student {sheet.student_id}: {sheet.student_name}")
                result = e
        self._record(sheet, result, batch, progress)

    async def _grade_sheet_async(
        self,
        sheet: AnswerSheet,
        answer_key: AnswerKey,
        options: Optional[GradingOptions],
        cancel_event: Optional[threading.Event]
    ):
        try:
            return await self.grading_engine.grade_student_async(
                sheet.answers, answer_key, options, cancel_event
            )
        except OperationCancelledError:
            logger.warning(f"Batch processing cancelled at student {sheet.student_name}")
            raise
        except Exception as e:
            logger.exception(f"Error grading student {sheet.student_id}: {sheet.student_name}")
            return e

    def _record(self, sheet, result, batch: BatchResult, progress: BatchProgress) -> None:
        """Fold one sheet's result (or the exception it raised) into the batch"""
        if isinstance(result, Exception):
            error = BatchError(
                student_id=sheet.student_id,
                student_name=sheet.student_name,
                error_message=str(result),
                exception=result
            )
            batch.errors.append(error)
            batch.error_count += 1
            batch.outcomes.append(SheetOutcome(sheet=sheet, error=error))
            progress.error_count += 1
        else:
            result.student_id = sheet.student_id
            result.student_name = sheet.student_name
            batch.results.append(result)
            batch.success_count += 1
            batch.outcomes.append(SheetOutcome(sheet=sheet, result=result))
            progress.success_count += 1
            logger.debug(f"Graded {sheet.student_name}: {result.percentage}%")

        progress.processed_students += 1
        progress.current_student_name = sheet.student_name
        if progress.is_complete:
            progress.status_message = self._completion_message(progress)
        else:
            progress.status_message = f"Graded {sheet.student_name}"
        self._notify(progress)

    def _finish(self, batch: BatchResult, progress: BatchProgress) -> BatchResult:
        batch.completed_at = datetime.now(timezone.utc)

        if progress.total_students == 0:
            progress.status_message = self._completion_message(progress)
            self._notify(progress)

        logger.info(
            f"Batch complete: {batch.success_count} succeeded, "
            f"{batch.error_count} failed in {batch.duration * 1000:.0f}ms"
        )
        return batch

    @staticmethod
    def _completion_message(progress: BatchProgress) -> str:
        if progress.error_count > 0:
            return Messages.BATCH_COMPLETE_WITH_ERRORS
        return Messages.BATCH_COMPLETE

    def _notify(self, progress: BatchProgress) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(copy.copy(progress))
        except Exception:
            logger.exception("Progress callback raised; continuing batch")

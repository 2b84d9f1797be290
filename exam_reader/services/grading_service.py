"""
Grading Service
Holds the current exam session and runs the parse/grade/analyze pipeline
"""
import threading
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from exam_reader.config import settings
from exam_reader.core import (
    BadRequestException,
    ExamFormat,
    ExamNotConfiguredError,
    Messages,
    NotFoundException,
    ReportFormat,
    SheetReadError,
)
from exam_reader.grader import (
    AnswerKey,
    AnswerSheet,
    AnswerSheetTemplate,
    BatchProcessor,
    BatchResult,
    DemoDataProvider,
    DemoOcrProvider,
    ExamAnalytics,
    ExamAnalyzer,
    GradingEngine,
    GradingOptions,
    GradingResult,
    OcrResult,
    ParserFactory,
    PendingSheet,
    Question,
    ReportData,
    StudentAnalytics,
    extract_student_id,
    extract_student_name,
    get_report_generator,
)
from exam_reader.utils import ensure_directory, generate_timestamp_id, safe_filename

logger = logging.getLogger(__name__)


class GradingService:
    """
    In-memory exam session.

    One answer key, template and set of grading options at a time; graded
    results are kept per student id, and analytics are recomputed from
    them on every request.
    """

    def __init__(self):
        self.exports_dir = settings.EXPORTS_DIR
        self.parser_factory = ParserFactory()
        self.grading_engine = GradingEngine()
        self.analyzer = ExamAnalyzer()
        self.batch_processor = BatchProcessor(self.grading_engine)

        self.answer_key: Optional[AnswerKey] = None
        self.template: Optional[AnswerSheetTemplate] = None
        self.options: Optional[GradingOptions] = None
        self._results: Dict[str, GradingResult] = {}

    # ===== Exam configuration =====

    def configure_exam(
        self,
        questions: List[Question],
        exam_id: str = "",
        exam_title: str = "",
        template: Optional[AnswerSheetTemplate] = None,
        options: Optional[GradingOptions] = None
    ) -> AnswerKey:
        """
        Start a new exam session; previous results are discarded.

        Raises:
            InvalidAnswerKeyError: If question numbers repeat or are below 1
        """
        answer_key = AnswerKey(questions, exam_id=exam_id, exam_title=exam_title)

        self.answer_key = answer_key
        self.template = template or self.default_template(answer_key)
        self.options = options or GradingOptions.from_settings()
        self._results.clear()

        logger.info(
            f"Exam configured: {exam_id or '(no id)'} with {answer_key.total_questions} questions, "
            f"format {self.template.format.value}"
        )
        return answer_key

    @staticmethod
    def default_template(answer_key: AnswerKey) -> AnswerSheetTemplate:
        highest = max((q.number for q in answer_key.questions), default=settings.DEFAULT_TOTAL_QUESTIONS)
        return AnswerSheetTemplate(
            total_questions=highest,
            answer_options=list(settings.DEFAULT_ANSWER_OPTIONS),
            format=ExamFormat(settings.DEFAULT_EXAM_FORMAT)
        )

    def require_exam(self) -> AnswerKey:
        if self.answer_key is None:
            raise ExamNotConfiguredError(Messages.EXAM_NOT_CONFIGURED)
        return self.answer_key

    def get_exam(self) -> Dict:
        answer_key = self.require_exam()
        return {
            "exam_id": answer_key.exam_id,
            "exam_title": answer_key.exam_title,
            "total_questions": answer_key.total_questions,
            "format": self.template.format.value,
            "answer_options": self.template.answer_options,
            "graded_students": len(self._results),
            "options": {
                "negative_marking": self.options.negative_marking,
                "negative_penalty": self.options.negative_penalty,
                "partial_credit": self.options.partial_credit,
                "weighted_questions": self.options.weighted_questions,
                "passing_score": self.options.passing_score,
                "grade_scale": self.options.grade_scale.value,
            },
        }

    # ===== Pipeline =====

    def parse_sheet(
        self,
        ocr_result: OcrResult,
        student_id: Optional[str] = None,
        student_name: Optional[str] = None
    ) -> AnswerSheet:
        """
        Parse OCR output into an answer sheet; identity falls back to the sheet header.

        Raises:
            SheetReadError: If the OCR result reports failure
        """
        self.require_exam()
        if not ocr_result.success:
            raise SheetReadError(ocr_result.error_message or Messages.OCR_FAILED)

        answers = self.parser_factory.parse(ocr_result, self.template)
        return AnswerSheet(
            student_id=student_id or extract_student_id(ocr_result.raw_text) or "",
            student_name=student_name or extract_student_name(ocr_result.raw_text) or "",
            answers=answers,
            template=self.template
        )

    def grade_sheet(self, sheet: AnswerSheet) -> GradingResult:
        answer_key = self.require_exam()

        result = self.grading_engine.grade_student(sheet.answers, answer_key, self.options)
        result.student_id = sheet.student_id
        result.student_name = sheet.student_name
        self._store(sheet, result)

        logger.info(f"Graded {sheet.student_name or sheet.student_id}: {result.percentage}% ({result.letter_grade})")
        return result

    async def grade_batch(
        self,
        sheets: List[Union[AnswerSheet, PendingSheet]],
        cancel_event: Optional[threading.Event] = None
    ) -> BatchResult:
        """
        Grade sheets through the batch processor and keep the successes.

        PendingSheet entries are parsed inside the batch; an unreadable sheet
        ends up in the batch errors.
        """
        answer_key = self.require_exam()

        batch = await self.batch_processor.process_batch_async(
            sheets, answer_key, self.options, cancel_event
        )
        for outcome in batch.outcomes:
            if outcome.succeeded:
                self._store(outcome.sheet, outcome.result)
        return batch

    def _store(self, sheet: AnswerSheet, result: GradingResult) -> None:
        self._results[sheet.student_id or sheet.sheet_id] = result

    def get_results(self) -> List[GradingResult]:
        return list(self._results.values())

    def get_student_result(self, student_id: str) -> GradingResult:
        result = self._results.get(student_id)
        if result is None:
            raise NotFoundException("Student result", student_id)
        return result

    def analyze(self) -> ExamAnalytics:
        return self.analyzer.analyze(self.get_results(), self.require_exam())

    def get_student_analytics(self, student_id: str) -> StudentAnalytics:
        self.get_student_result(student_id)
        for stats in self.analyze().student_stats:
            if stats.student_id == student_id:
                return stats
        raise NotFoundException("Student analytics", student_id)

    # ===== Reports =====

    def export_report(self, report_format: str, save: bool = False) -> Tuple[bytes, str, str]:
        """
        Render the current session as a report.

        Args:
            report_format: One of the ReportFormat values (json, csv, xlsx)
            save: Also write the report under the exports directory

        Returns:
            Tuple of (content, media type, file name)
        """
        try:
            generator = get_report_generator(ReportFormat(report_format.lower()))
        except ValueError:
            raise BadRequestException(f"{Messages.UNSUPPORTED_REPORT_FORMAT}: {report_format}")

        answer_key = self.require_exam()
        if not self._results:
            raise NotFoundException(Messages.NO_GRADING_RESULTS)

        data = ReportData(
            answer_key=answer_key,
            results=self.get_results(),
            analytics=self.analyze(),
            report_title=answer_key.exam_title or "Exam Report"
        )
        content = generator.generate(data)

        stem = safe_filename(answer_key.exam_id or "exam")
        filename = f"{generate_timestamp_id(f'exam_report_{stem}')}.{generator.extension}"

        if save:
            path = Path(ensure_directory(self.exports_dir)) / filename
            path.write_bytes(content)
            logger.info(f"Exported report: {path}")

        return content, generator.media_type, filename

    # ===== Session =====

    def load_demo(self, use_ocr: bool = False) -> BatchResult:
        """
        Replace the session with the sample exam and grade its students.

        With use_ocr, sheets are rendered by the demo OCR provider and run
        through the parser instead of being built directly.
        """
        provider = DemoDataProvider(self.grading_engine, self.analyzer)
        answer_key = provider.get_answer_key()
        self.configure_exam(
            list(answer_key.questions),
            exam_id=answer_key.exam_id,
            exam_title=answer_key.exam_title,
            template=provider.get_template(),
            options=provider.get_grading_options()
        )

        if use_ocr:
            ocr = DemoOcrProvider()
            sheets = [self.parse_sheet(ocr.process_image(b"")) for _ in ocr.students]
        else:
            sheets = provider.get_answer_sheets()

        batch = self.batch_processor.process_batch(sheets, answer_key, self.options)
        for outcome in batch.outcomes:
            if outcome.succeeded:
                self._store(outcome.sheet, outcome.result)

        logger.info(f"Demo exam loaded with {batch.success_count} graded students")
        return batch

    def clear(self) -> None:
        self.answer_key = None
        self.template = None
        self.options = None
        self._results.clear()
        logger.info("Grading session cleared")


# Singleton instance
grading_service = GradingService()

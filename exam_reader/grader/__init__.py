"""
Grader Module
Turns OCR output for answer sheets into grades and class analytics

Usage:
    from exam_reader.grader import ParserFactory, GradingEngine, ExamAnalyzer

    answers = ParserFactory().parse(ocr_result, template)
    result = GradingEngine().grade_student(answers, answer_key, options)

    # Grade many sheets, isolating per-sheet failures
    batch = BatchProcessor(progress_callback=print).process_batch(sheets, answer_key, options)

    # Class statistics
    analytics = ExamAnalyzer().analyze(batch.results, answer_key)
"""

from .models import (
    AnswerKey,
    AnswerSheet,
    AnswerSheetTemplate,
    BoundingBox,
    OcrRegion,
    OcrResult,
    Question,
    StudentAnswer,
)

from .answer_parsing import (
    AnswerSheetParser,
    BubbleSheetParser,
    GridParser,
    WrittenAnswerParser,
    ParserFactory,
    extract_student_id,
    extract_student_name,
)

from .grading_engine import (
    GradingEngine,
    GradingOptions,
    GradingResult,
    QuestionResult,
    get_letter_grade,
    is_passing,
    save_results,
    load_results,
)

from .exam_analyzer import (
    ExamAnalyzer,
    ExamAnalytics,
    QuestionAnalytics,
    StudentAnalytics,
    ScoreDistribution,
    DistributionBucket,
)

from .processor import (
    BatchProcessor,
    BatchProgress,
    BatchResult,
    BatchError,
    PendingSheet,
    SheetOutcome,
)

from .ocr import OcrProvider, DemoOcrProvider
from .demo_data import DemoDataProvider

from .reports import (
    ReportData,
    ReportGenerator,
    JsonReportGenerator,
    CsvReportGenerator,
    ExcelReportGenerator,
    get_report_generator,
)

__all__ = [
    # Models
    "AnswerKey",
    "AnswerSheet",
    "AnswerSheetTemplate",
    "BoundingBox",
    "OcrRegion",
    "OcrResult",
    "Question",
    "StudentAnswer",
    # Parsing
    "AnswerSheetParser",
    "BubbleSheetParser",
    "GridParser",
    "WrittenAnswerParser",
    "ParserFactory",
    "extract_student_id",
    "extract_student_name",
    # Grading
    "GradingEngine",
    "GradingOptions",
    "GradingResult",
    "QuestionResult",
    "get_letter_grade",
    "is_passing",
    "save_results",
    "load_results",
    # Analytics
    "ExamAnalyzer",
    "ExamAnalytics",
    "QuestionAnalytics",
    "StudentAnalytics",
    "ScoreDistribution",
    "DistributionBucket",
    # Batch
    "BatchProcessor",
    "BatchProgress",
    "BatchResult",
    "BatchError",
    "PendingSheet",
    "SheetOutcome",
    # OCR / demo
    "OcrProvider",
    "DemoOcrProvider",
    "DemoDataProvider",
    # Reports
    "ReportData",
    "ReportGenerator",
    "JsonReportGenerator",
    "CsvReportGenerator",
    "ExcelReportGenerator",
    "get_report_generator",
]

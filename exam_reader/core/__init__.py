# Core package
from .constants import (
    AnswerStatus,
    QuestionType,
    ExamFormat,
    LetterGradeScale,
    ReportFormat,
    ParseConfidence,
    AnalyticsThresholds,
    Messages,
)
from .exceptions import (
    BaseAPIException,
    NotFoundException,
    BadRequestException,
    ExamReaderError,
    InvalidAnswerKeyError,
    ExamNotConfiguredError,
    SheetReadError,
    OperationCancelledError,
    check_cancelled,
)
from .logger import logger, setup_logger, grading_logger

__all__ = [
    # Constants
    "AnswerStatus",
    "QuestionType",
    "ExamFormat",
    "LetterGradeScale",
    "ReportFormat",
    "ParseConfidence",
    "AnalyticsThresholds",
    "Messages",
    # Exceptions
    "BaseAPIException",
    "NotFoundException",
    "BadRequestException",
    "ExamReaderError",
    "InvalidAnswerKeyError",
    "ExamNotConfiguredError",
    "SheetReadError",
    "OperationCancelledError",
    "check_cancelled",
    # Logging
    "logger",
    "setup_logger",
    "grading_logger",
]

"""
Application constants
"""
from enum import Enum


class AnswerStatus(str, Enum):
    """Read status of a single answer on a sheet"""
    ANSWERED = "Answered"
    UNANSWERED = "Unanswered"
    MULTIPLE_MARKS = "MultipleMarks"
    UNCLEAR = "Unclear"


class QuestionType(str, Enum):
    """Question types supported by an answer key"""
    MULTIPLE_CHOICE = "MultipleChoice"
    MULTI_SELECT = "MultiSelect"
    WRITTEN_ANSWER = "WrittenAnswer"
    TRUE_FALSE = "TrueFalse"


class ExamFormat(str, Enum):
    """Answer sheet layouts"""
    BUBBLE_SHEET = "BubbleSheet"
    GRID_BASED = "GridBased"
    WRITTEN_ANSWER = "WrittenAnswer"
    MIXED = "Mixed"


class LetterGradeScale(str, Enum):
    """Letter grade scales"""
    STANDARD = "Standard"
    PLUS_MINUS = "PlusMinus"
    PASS_FAIL = "PassFail"


class ReportFormat(str, Enum):
    """Supported report export formats"""
    JSON = "json"
    CSV = "csv"
    EXCEL = "xlsx"


# Heuristic read confidences per extraction strategy
class ParseConfidence:
    """Confidence assigned to text-based matches"""
    BUBBLE_ANSWERED = 0.95
    BUBBLE_EMPTY = 0.80
    BUBBLE_UNCLEAR = 0.40
    BUBBLE_INVALID_OPTION = 0.50
    NUMBERED_LINE = 0.90

    GRID_LABELED_SELECTED = 0.90
    GRID_LABELED_EMPTY = 0.70
    GRID_MARK_SELECTED = 0.85
    GRID_MARK_EMPTY = 0.60

    WRITTEN_EMPTY = 0.50
    WRITTEN_ANSWER_BLOCK = 0.80
    WRITTEN_NUMBERED = 0.75
    WRITTEN_SHORT = 0.60
    WRITTEN_LONG = 0.70
    WRITTEN_DEFAULT = 0.80


# Item analysis thresholds
class AnalyticsThresholds:
    """Thresholds used by the exam analyzer"""
    DISCRIMINATION_GROUP_FRACTION = 0.27
    LOW_DISCRIMINATION = 0.2
    TOO_DIFFICULT = 0.2
    TOO_EASY = 0.95
    DISTRIBUTION_BUCKETS = 10


# API Response Messages
class Messages:
    """API response messages"""

    EXAM_CONFIGURED = "Exam configured"
    SHEET_PARSED = "Answer sheet parsed"
    SHEET_GRADED = "Answer sheet graded"
    BATCH_COMPLETE = "Batch processing complete."
    BATCH_COMPLETE_WITH_ERRORS = "Batch processing finished with errors."
    DEMO_LOADED = "Demo exam loaded"
    SESSION_CLEARED = "Session cleared"

    EXAM_NOT_CONFIGURED = "No exam has been configured"
    NO_GRADING_RESULTS = "No grading results yet"
    OCR_FAILED = "OCR failed for this sheet"
    UNSUPPORTED_REPORT_FORMAT = "Unsupported report format"

"""
Grader Data Models
Value types shared by the parser, grading engine and analyzer
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import uuid

from ..core.constants import AnswerStatus, ExamFormat, QuestionType
from ..core.exceptions import InvalidAnswerKeyError

DEFAULT_OPTIONS = ["A", "B", "C", "D"]


def enum_safe_dict(items) -> Dict:
    """dict_factory for dataclasses.asdict that renders enums by value"""
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in items}


@dataclass
class BoundingBox:
    """Region position on the scanned page"""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass
class OcrRegion:
    """One recognized line of text"""
    text: str = ""
    confidence: float = 0.0
    line_number: int = 0
    bounding_box: BoundingBox = field(default_factory=BoundingBox)


@dataclass
class OcrResult:
    """Output of an OCR provider for one answer sheet"""
    success: bool = True
    raw_text: str = ""
    regions: List[OcrRegion] = field(default_factory=list)
    overall_confidence: float = 0.0
    provider_used: str = ""
    processing_time: float = 0.0
    error_message: Optional[str] = None


@dataclass
class AnswerSheetTemplate:
    """Layout description of an answer sheet"""
    total_questions: int = 30
    columns: int = 1
    answer_options: List[str] = field(default_factory=lambda: list(DEFAULT_OPTIONS))
    format: ExamFormat = ExamFormat.BUBBLE_SHEET
    has_student_id_field: bool = True
    has_student_name_field: bool = True


@dataclass(frozen=True)
class Question:
    """
    A single answer key entry.

    Multi-select questions list their correct options comma-separated
    (e.g. "A,C").
    """
    number: int
    correct_answer: str
    weight: float = 1.0
    options: tuple = tuple(DEFAULT_OPTIONS)
    type: QuestionType = QuestionType.MULTIPLE_CHOICE


class AnswerKey:
    """
    Ordered collection of questions for one exam.

    Question numbers must be unique and start at 1 or above.
    """

    def __init__(
        self,
        questions: List[Question],
        exam_id: str = "",
        exam_title: str = ""
    ):
        seen = set()
        for q in questions:
            if q.number < 1:
                raise InvalidAnswerKeyError(f"Question number must be >= 1, got {q.number}")
            if q.number in seen:
                raise InvalidAnswerKeyError(f"Duplicate question number: {q.number}")
            seen.add(q.number)

        self._questions = tuple(questions)
        self.exam_id = exam_id
        self.exam_title = exam_title

    @classmethod
    def from_answers(
        cls,
        answers: List[str],
        exam_id: str = "",
        exam_title: str = ""
    ) -> "AnswerKey":
        """Build a single-choice key from a list of correct answers (Q1 first)"""
        questions = [
            Question(number=i + 1, correct_answer=answer)
            for i, answer in enumerate(answers)
        ]
        return cls(questions, exam_id=exam_id, exam_title=exam_title)

    @property
    def questions(self) -> tuple:
        return self._questions

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    def get(self, number: int) -> Optional[Question]:
        for q in self._questions:
            if q.number == number:
                return q
        return None

    def __iter__(self):
        return iter(self._questions)

    def __len__(self):
        return len(self._questions)

    def __repr__(self):
        return f"AnswerKey(exam_id={self.exam_id!r}, total_questions={self.total_questions})"


@dataclass(frozen=True)
class StudentAnswer:
    """Parsed answer for one question on one sheet"""
    question_number: int
    selected_answer: str = ""
    confidence: float = 1.0
    status: AnswerStatus = AnswerStatus.ANSWERED

    def __post_init__(self):
        # frozen dataclass: bypass __setattr__ to clamp
        object.__setattr__(self, "confidence", min(1.0, max(0.0, float(self.confidence))))

    @classmethod
    def unanswered(cls, question_number: int, confidence: float = 0.0) -> "StudentAnswer":
        return cls(
            question_number=question_number,
            selected_answer="",
            confidence=confidence,
            status=AnswerStatus.UNANSWERED
        )


@dataclass
class AnswerSheet:
    """One student's sheet: identity plus parsed answers"""
    student_id: str = ""
    student_name: str = ""
    answers: List[StudentAnswer] = field(default_factory=list)
    sheet_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    template: Optional[AnswerSheetTemplate] = None

"""
Shared fixtures for the exam reader tests
"""
import pytest

from exam_reader.core.constants import AnswerStatus, ExamFormat
from exam_reader.grader.grading_engine import GradingEngine, GradingOptions, GradingResult
from exam_reader.grader.models import (
    AnswerKey,
    AnswerSheet,
    AnswerSheetTemplate,
    BoundingBox,
    OcrRegion,
    OcrResult,
    StudentAnswer,
)


def _make_ocr(raw_text: str = "", regions=None) -> OcrResult:
    return OcrResult(success=True, raw_text=raw_text, regions=list(regions or []))


def _make_region(text: str, confidence: float = 0.9, x: float = 0.0, y: float = 0.0, line: int = 0) -> OcrRegion:
    return OcrRegion(
        text=text,
        confidence=confidence,
        line_number=line,
        bounding_box=BoundingBox(x=x, y=y, width=100, height=20)
    )


def _make_answers(tokens: str):
    """One StudentAnswer per character; '-' is left unanswered"""
    answers = []
    for number, token in enumerate(tokens, start=1):
        if token == "-":
            answers.append(StudentAnswer.unanswered(number))
        else:
            answers.append(StudentAnswer(number, token, 0.95, AnswerStatus.ANSWERED))
    return answers


@pytest.fixture
def make_ocr():
    return _make_ocr


@pytest.fixture
def make_region():
    return _make_region


@pytest.fixture
def make_answers():
    return _make_answers


@pytest.fixture
def engine():
    return GradingEngine()


@pytest.fixture
def answer_key():
    """Five single-choice questions: A B C D A"""
    return AnswerKey.from_answers(list("ABCDA"), exam_id="EX-1", exam_title="Unit Quiz")


@pytest.fixture
def bubble_template():
    return AnswerSheetTemplate(total_questions=5, format=ExamFormat.BUBBLE_SHEET)


@pytest.fixture
def grid_template():
    return AnswerSheetTemplate(total_questions=4, format=ExamFormat.GRID_BASED)


@pytest.fixture
def written_template():
    return AnswerSheetTemplate(total_questions=3, format=ExamFormat.WRITTEN_ANSWER)


@pytest.fixture
def grade(engine):
    """Grade answer tokens against a key and attach identity"""
    def _grade(key: AnswerKey, tokens: str, student_id: str = "", name: str = "",
               options: GradingOptions = None) -> GradingResult:
        result = engine.grade_student(_make_answers(tokens), key, options)
        result.student_id = student_id
        result.student_name = name
        return result
    return _grade


@pytest.fixture
def make_sheet():
    def _make_sheet(student_id: str, name: str, tokens: str) -> AnswerSheet:
        return AnswerSheet(student_id=student_id, student_name=name, answers=_make_answers(tokens))
    return _make_sheet


@pytest.fixture
def percentage_results():
    """Build bare GradingResults from (name, percentage) pairs"""
    def _results(pairs, passing_score: float = 60.0):
        return [
            GradingResult(
                student_id=f"S{i:03d}",
                student_name=name,
                percentage=pct,
                passed=pct >= passing_score,
                letter_grade="P" if pct >= passing_score else "F"
            )
            for i, (name, pct) in enumerate(pairs, start=1)
        ]
    return _results

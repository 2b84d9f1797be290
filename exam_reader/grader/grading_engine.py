"""
Grading Engine Module
Handles score calculation and result generation
"""
import json
import threading
from typing import Dict, List, Any, Optional, Union
from dataclasses import dataclass, field, asdict
from pathlib import Path
import logging

from ..config import settings
from ..core.constants import AnswerStatus, LetterGradeScale, QuestionType
from ..core.exceptions import check_cancelled
from .models import AnswerKey, Question, StudentAnswer, enum_safe_dict

logger = logging.getLogger(__name__)

STANDARD_GRADES = [(90, "A"), (80, "B"), (70, "C"), (60, "D")]
PLUS_MINUS_GRADES = [
    (90, "A"), (85, "A-"), (80, "B+"), (75, "B"),
    (70, "B-"), (65, "C+"), (60, "C"), (50, "D"),
]
PASS_FAIL_THRESHOLD = 60.0


@dataclass(frozen=True)
class GradingOptions:
    """Scoring policy for one exam run"""
    negative_marking: bool = False
    negative_penalty: float = 0.25
    partial_credit: bool = False
    weighted_questions: bool = False
    passing_score: float = 60.0
    grade_scale: LetterGradeScale = LetterGradeScale.STANDARD

    @classmethod
    def from_settings(cls) -> "GradingOptions":
        """Build options from application settings"""
        return cls(
            negative_marking=settings.NEGATIVE_MARKING,
            negative_penalty=settings.NEGATIVE_PENALTY,
            partial_credit=settings.PARTIAL_CREDIT,
            weighted_questions=settings.WEIGHTED_QUESTIONS,
            passing_score=settings.PASSING_SCORE,
            grade_scale=LetterGradeScale(settings.GRADE_SCALE)
        )


@dataclass
class QuestionResult:
    """Result for a single question"""
    question_number: int
    correct_answer: str
    student_answer: str
    is_correct: bool
    points_earned: float
    points_possible: float
    status: AnswerStatus


@dataclass
class GradingResult:
    """Complete grading result for one student"""
    student_id: str = ""
    student_name: str = ""
    total_questions: int = 0
    correct: int = 0
    incorrect: int = 0
    unanswered: int = 0
    raw_score: float = 0.0
    max_score: float = 0.0
    percentage: float = 0.0
    letter_grade: str = ""
    passed: bool = False
    question_results: List[QuestionResult] = field(default_factory=list)

    def to_dict(self) -> Dict:
        """Convert to a JSON-ready dictionary"""
        return asdict(self, dict_factory=enum_safe_dict)


def get_letter_grade(percentage: float, scale: LetterGradeScale = LetterGradeScale.STANDARD) -> str:
    """Map a percentage onto a letter grade scale"""
    if scale == LetterGradeScale.PASS_FAIL:
        return "P" if percentage >= PASS_FAIL_THRESHOLD else "F"

    table = PLUS_MINUS_GRADES if scale == LetterGradeScale.PLUS_MINUS else STANDARD_GRADES
    for threshold, grade in table:
        if percentage >= threshold:
            return grade
    return "F"


def is_passing(percentage: float, passing_score: float) -> bool:
    return percentage >= passing_score


def _split_tokens(value: str) -> set:
    return {token.strip().upper() for token in (value or "").split(",") if token.strip()}


class GradingEngine:
    """
    Engine for grading one student's answers against an answer key.

    Grading is a pure function of (answers, key, options); the engine keeps
    no state between calls.
    """

    def grade_student(
        self,
        answers: List[StudentAnswer],
        answer_key: AnswerKey,
        options: Optional[GradingOptions] = None
    ) -> GradingResult:
        """
        Grade one student.

        Args:
            answers: Parsed answers for the sheet
            answer_key: Correct answers
            options: Scoring policy (defaults to GradingOptions())

        Returns:
            GradingResult with per-question details; identity fields are left
            for the caller to fill in
        """
        options = options or GradingOptions()

        lookup: Dict[int, StudentAnswer] = {}
        for answer in answers:
            lookup.setdefault(answer.question_number, answer)

        result = GradingResult(
            total_questions=answer_key.total_questions,
            max_score=self.calculate_max_score(answer_key, options)
        )

        raw_score = 0.0
        for question in answer_key.questions:
            qr = self.grade_question(question, lookup.get(question.number), options)
            result.question_results.append(qr)

            if qr.status == AnswerStatus.ANSWERED and qr.is_correct:
                result.correct += 1
            elif qr.status == AnswerStatus.ANSWERED:
                result.incorrect += 1
            else:
                result.unanswered += 1

            raw_score += qr.points_earned

        # Clamp only the total; individual penalties stay negative
        result.raw_score = max(0.0, raw_score)
        result.percentage = (
            round(result.raw_score / result.max_score * 100, 2)
            if result.max_score > 0 else 0.0
        )
        result.letter_grade = get_letter_grade(result.percentage, options.grade_scale)
        result.passed = is_passing(result.percentage, options.passing_score)

        logger.debug(
            f"Graded: {result.correct}/{result.total_questions} correct, "
            f"{result.percentage}% ({result.letter_grade})"
        )
        return result

    async def grade_student_async(
        self,
        answers: List[StudentAnswer],
        answer_key: AnswerKey,
        options: Optional[GradingOptions] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> GradingResult:
        """Check for cancellation once, then grade synchronously"""
        check_cancelled(cancel_event)
        return self.grade_student(answers, answer_key, options)

    def grade_question(
        self,
        question: Question,
        answer: Optional[StudentAnswer],
        options: GradingOptions
    ) -> QuestionResult:
        points_possible = question.weight if options.weighted_questions else 1.0
        penalty = -options.negative_penalty * points_possible if options.negative_marking else 0.0

        if answer is None or answer.status == AnswerStatus.UNANSWERED:
            return QuestionResult(
                question_number=question.number,
                correct_answer=question.correct_answer,
                student_answer="",
                is_correct=False,
                points_earned=0.0,
                points_possible=points_possible,
                status=AnswerStatus.UNANSWERED
            )

        if answer.status in (AnswerStatus.MULTIPLE_MARKS, AnswerStatus.UNCLEAR):
            return QuestionResult(
                question_number=question.number,
                correct_answer=question.correct_answer,
                student_answer=answer.selected_answer,
                is_correct=False,
                points_earned=penalty,
                points_possible=points_possible,
                status=answer.status
            )

        if question.type == QuestionType.MULTI_SELECT and options.partial_credit:
            return self._grade_multi_select(question, answer, points_possible)

        is_correct = (
            answer.selected_answer.strip().casefold()
            == question.correct_answer.strip().casefold()
        )
        return QuestionResult(
            question_number=question.number,
            correct_answer=question.correct_answer,
            student_answer=answer.selected_answer,
            is_correct=is_correct,
            points_earned=points_possible if is_correct else penalty,
            points_possible=points_possible,
            status=AnswerStatus.ANSWERED
        )

    @staticmethod
    def _grade_multi_select(
        question: Question,
        answer: StudentAnswer,
        points_possible: float
    ) -> QuestionResult:
        correct = _split_tokens(question.correct_answer)
        selected = _split_tokens(answer.selected_answer)

        hits = len(correct & selected)
        misses = len(selected - correct)
        fraction = max(0, hits - misses) / len(correct) if correct else 0.0

        return QuestionResult(
            question_number=question.number,
            correct_answer=question.correct_answer,
            student_answer=answer.selected_answer,
            is_correct=bool(correct) and selected == correct,
            points_earned=fraction * points_possible,
            points_possible=points_possible,
            status=AnswerStatus.ANSWERED
        )

    @staticmethod
    def calculate_max_score(answer_key: AnswerKey, options: GradingOptions) -> float:
        if options.weighted_questions:
            return float(sum(q.weight for q in answer_key.questions))
        return float(answer_key.total_questions)


def save_results(results: List[GradingResult], output_path: Union[str, Path]) -> None:
    """
    Save grading results to JSON file.

    Args:
        results: List of GradingResult objects
        output_path: Path to output JSON file
    """
    passed = sum(1 for r in results if r.passed)

    output_data = {
        "total": len(results),
        "passed": passed,
        "failed": len(results) - passed,
        "results": [r.to_dict() for r in results]
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(output_data, f, ensure_ascii=False, indent=4)

    logger.info(f"Saved {len(results)} results to {output_path}")


def load_results(input_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Load grading results from JSON file.

    Args:
        input_path: Path to input JSON file

    Returns:
        List of result dictionaries
    """
    with open(input_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return data.get("results", [])

"""
Exam Analyzer Module
Class-level statistics and item analysis over graded results
"""
import math
import threading
from collections import Counter
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np

from ..core.constants import AnalyticsThresholds, AnswerStatus
from ..core.exceptions import check_cancelled
from .grading_engine import GradingResult
from .models import AnswerKey, enum_safe_dict

logger = logging.getLogger(__name__)


@dataclass
class DistributionBucket:
    range_start: int
    range_end: int
    label: str
    count: int = 0


@dataclass
class ScoreDistribution:
    """Ten fixed-width percentage buckets; 100 falls in the last one"""
    buckets: List[DistributionBucket] = field(default_factory=list)

    @classmethod
    def from_percentages(cls, percentages: Sequence[float]) -> "ScoreDistribution":
        n = AnalyticsThresholds.DISTRIBUTION_BUCKETS
        width = 100 // n
        counts = [0] * n
        for pct in percentages:
            index = min(n - 1, max(0, int(pct // width)))
            counts[index] += 1

        return cls(buckets=[
            DistributionBucket(
                range_start=i * width,
                range_end=(i + 1) * width,
                label=f"{i * width}-{(i + 1) * width}",
                count=counts[i]
            )
            for i in range(n)
        ])


@dataclass
class QuestionAnalytics:
    """
    Item statistics for one question.

    difficulty_index is the share of students answering correctly (higher
    means easier). discrimination_index is the correct rate of the top ~27%
    of students minus that of the bottom ~27%.
    """
    question_number: int
    correct_answer: str = ""
    total_attempts: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    unanswered_count: int = 0
    difficulty_index: float = 0.0
    discrimination_index: float = 0.0
    answer_distribution: Dict[str, int] = field(default_factory=dict)
    most_common_wrong_answer: str = ""
    flagged_for_review: bool = False
    flag_reason: str = ""


@dataclass
class StudentAnalytics:
    student_id: str = ""
    student_name: str = ""
    rank: int = 0
    percentage: float = 0.0
    letter_grade: str = ""
    passed: bool = False
    correct: int = 0
    incorrect: int = 0
    unanswered: int = 0
    raw_score: float = 0.0
    max_score: float = 0.0
    z_score: float = 0.0
    percentile: float = 0.0


@dataclass
class ExamAnalytics:
    """Snapshot of class results; recomputed from scratch on every analysis"""
    exam_id: str = ""
    exam_title: str = ""
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    total_students: int = 0
    class_average: float = 0.0
    median: float = 0.0
    standard_deviation: float = 0.0
    highest_score: float = 0.0
    lowest_score: float = 0.0
    pass_count: int = 0
    fail_count: int = 0
    pass_rate: float = 0.0

    grade_distribution: Dict[str, int] = field(default_factory=dict)
    distribution: ScoreDistribution = field(default_factory=ScoreDistribution)
    question_stats: List[QuestionAnalytics] = field(default_factory=list)
    student_stats: List[StudentAnalytics] = field(default_factory=list)

    def to_dict(self) -> Dict:
        data = asdict(self, dict_factory=enum_safe_dict)
        data["analyzed_at"] = self.analyzed_at.isoformat()
        return data


def calculate_median(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=float)))


def calculate_std_dev(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1); 0 for fewer than two values"""
    if len(values) <= 1:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))


def _format_percent(fraction: float) -> str:
    return f"{fraction * 100:.0f}%"


class ExamAnalyzer:
    """Computes ExamAnalytics from a list of grading results"""

    def analyze(self, results: List[GradingResult], answer_key: AnswerKey) -> ExamAnalytics:
        """
        Analyze graded results.

        Args:
            results: Grading results, one per student
            answer_key: Key the results were graded against

        Returns:
            ExamAnalytics; a zeroed structure when results is empty
        """
        if not results:
            return ExamAnalytics(exam_id=answer_key.exam_id, exam_title=answer_key.exam_title)

        percentages = sorted(r.percentage for r in results)
        total = len(results)
        pass_count = sum(1 for r in results if r.passed)

        analytics = ExamAnalytics(
            exam_id=answer_key.exam_id,
            exam_title=answer_key.exam_title,
            total_students=total,
            class_average=round(float(np.mean(percentages)), 2),
            median=round(calculate_median(percentages), 2),
            standard_deviation=round(calculate_std_dev(percentages), 2),
            highest_score=percentages[-1],
            lowest_score=percentages[0],
            pass_count=pass_count,
            fail_count=total - pass_count,
            pass_rate=round(pass_count / total * 100, 2),
            grade_distribution=dict(Counter(r.letter_grade for r in results)),
            distribution=ScoreDistribution.from_percentages(percentages),
        )

        analytics.question_stats = self.analyze_questions(results, answer_key)
        analytics.student_stats = self.analyze_students(
            results, analytics.class_average, analytics.standard_deviation
        )

        logger.info(
            f"Exam analysis complete: {analytics.total_students} students, "
            f"avg {analytics.class_average}%, pass rate {analytics.pass_rate}%"
        )
        return analytics

    async def analyze_async(
        self,
        results: List[GradingResult],
        answer_key: AnswerKey,
        cancel_event: Optional[threading.Event] = None
    ) -> ExamAnalytics:
        """Check for cancellation once, then analyze synchronously"""
        check_cancelled(cancel_event)
        return self.analyze(results, answer_key)

    @staticmethod
    def discrimination_groups(results: List[GradingResult]):
        """
        Top and bottom groups by percentage, each ceil(27%) of the class
        (at least one student). Groups overlap for very small classes.
        """
        ranked = sorted(results, key=lambda r: r.percentage, reverse=True)
        size = max(1, math.ceil(len(ranked) * AnalyticsThresholds.DISCRIMINATION_GROUP_FRACTION))
        return ranked[:size], ranked[-size:]

    def analyze_questions(
        self,
        results: List[GradingResult],
        answer_key: AnswerKey
    ) -> List[QuestionAnalytics]:
        top_group, bottom_group = self.discrimination_groups(results)
        stats = []

        for question in answer_key.questions:
            qa = QuestionAnalytics(
                question_number=question.number,
                correct_answer=question.correct_answer
            )

            question_results = [
                qr for r in results for qr in r.question_results
                if qr.question_number == question.number
            ]

            qa.total_attempts = len(question_results)
            qa.correct_count = sum(1 for qr in question_results if qr.is_correct)
            qa.incorrect_count = sum(
                1 for qr in question_results
                if not qr.is_correct and qr.status == AnswerStatus.ANSWERED
            )
            qa.unanswered_count = sum(
                1 for qr in question_results if qr.status == AnswerStatus.UNANSWERED
            )
            qa.difficulty_index = (
                round(qa.correct_count / qa.total_attempts, 3) if qa.total_attempts else 0.0
            )

            qa.answer_distribution = dict(Counter(
                qr.student_answer.upper() for qr in question_results if qr.student_answer
            ))

            wrong = Counter(
                qr.student_answer.upper() for qr in question_results
                if not qr.is_correct and qr.status == AnswerStatus.ANSWERED and qr.student_answer
            )
            if wrong:
                # Highest count first, ties resolved alphabetically
                qa.most_common_wrong_answer = min(wrong.items(), key=lambda kv: (-kv[1], kv[0]))[0]

            top_rate = self.group_correct_rate(top_group, question.number)
            bottom_rate = self.group_correct_rate(bottom_group, question.number)
            qa.discrimination_index = round(top_rate - bottom_rate, 3)

            self._flag(qa)
            stats.append(qa)

        return stats

    @staticmethod
    def _flag(qa: QuestionAnalytics) -> None:
        if qa.discrimination_index < AnalyticsThresholds.LOW_DISCRIMINATION:
            qa.flagged_for_review = True
            qa.flag_reason = f"Low discrimination index ({qa.discrimination_index:.2f})"
        elif qa.difficulty_index < AnalyticsThresholds.TOO_DIFFICULT:
            qa.flagged_for_review = True
            qa.flag_reason = f"Too difficult (only {_format_percent(qa.difficulty_index)} correct)"
        elif qa.difficulty_index > AnalyticsThresholds.TOO_EASY:
            qa.flagged_for_review = True
            qa.flag_reason = f"Too easy ({_format_percent(qa.difficulty_index)} correct)"

    @staticmethod
    def group_correct_rate(group: List[GradingResult], question_number: int) -> float:
        if not group:
            return 0.0
        correct = sum(
            1 for r in group for qr in r.question_results
            if qr.question_number == question_number and qr.is_correct
        )
        return correct / len(group)

    def analyze_students(
        self,
        results: List[GradingResult],
        class_average: float,
        standard_deviation: float
    ) -> List[StudentAnalytics]:
        ranked = sorted(results, key=lambda r: (-r.percentage, r.student_name))
        total = len(results)
        stats = []

        for rank, r in enumerate(ranked, start=1):
            below = sum(1 for other in results if other.percentage < r.percentage)
            percentile = round(below / (total - 1) * 100, 1) if total > 1 else 100.0
            z_score = (
                round((r.percentage - class_average) / standard_deviation, 2)
                if standard_deviation > 0 else 0.0
            )

            stats.append(StudentAnalytics(
                student_id=r.student_id,
                student_name=r.student_name,
                rank=rank,
                percentage=r.percentage,
                letter_grade=r.letter_grade,
                passed=r.passed,
                correct=r.correct,
                incorrect=r.incorrect,
                unanswered=r.unanswered,
                raw_score=r.raw_score,
                max_score=r.max_score,
                z_score=z_score,
                percentile=percentile
            ))

        return stats

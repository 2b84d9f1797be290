"""
Unit tests for negative marking
"""
import pytest

from exam_reader.core.constants import AnswerStatus
from exam_reader.grader.grading_engine import GradingOptions
from exam_reader.grader.models import AnswerKey, Question, StudentAnswer


@pytest.fixture
def key():
    return AnswerKey.from_answers(list("ABCD"))


class TestNegativeMarking:
    """Test cases for penalties on wrong answers"""

    def test_wrong_answer_penalized(self, engine, key, make_answers):
        """Test that one wrong answer costs the penalty fraction"""
        options = GradingOptions(negative_marking=True, negative_penalty=0.25)
        result = engine.grade_student(make_answers("ABCA"), key, options)

        assert result.question_results[3].points_earned == -0.25
        assert result.raw_score == 2.75
        assert result.percentage == 68.75

    def test_no_penalty_when_disabled(self, engine, key, make_answers):
        """Test that wrong answers earn zero without negative marking"""
        result = engine.grade_student(make_answers("ABCA"), key)
        assert result.question_results[3].points_earned == 0.0
        assert result.raw_score == 3.0

    def test_blank_answers_never_penalized(self, engine, key, make_answers):
        """Test that unanswered questions earn zero"""
        options = GradingOptions(negative_marking=True)
        result = engine.grade_student(make_answers("AB--"), key, options)

        assert result.raw_score == 2.0
        assert all(qr.points_earned == 0.0 for qr in result.question_results[2:])

    @pytest.mark.parametrize("status", [AnswerStatus.MULTIPLE_MARKS, AnswerStatus.UNCLEAR])
    def test_unreadable_answers_penalized(self, engine, key, status):
        """Test that multiple marks and unclear reads take the penalty"""
        options = GradingOptions(negative_marking=True, negative_penalty=0.5)
        answers = [StudentAnswer(1, "", 0.4, status)]
        result = engine.grade_student(answers, key, options)

        assert result.question_results[0].points_earned == -0.5
        assert result.question_results[0].status == status

    def test_penalty_scales_with_weight(self, engine, make_answers):
        """Test that the penalty is a fraction of the question's points"""
        key = AnswerKey([Question(1, "A", weight=4.0), Question(2, "B", weight=2.0)])
        options = GradingOptions(negative_marking=True, negative_penalty=0.25, weighted_questions=True)
        result = engine.grade_student(make_answers("BB"), key, options)

        assert result.question_results[0].points_earned == -1.0
        assert result.raw_score == 1.0
        assert result.max_score == 6.0

    def test_all_wrong_clamps_to_zero(self, engine, key, make_answers):
        """Test that a negative total is clamped to zero"""
        options = GradingOptions(negative_marking=True, negative_penalty=1.0)
        result = engine.grade_student(make_answers("BCDA"), key, options)

        assert result.raw_score == 0.0
        assert result.percentage == 0.0
        assert result.letter_grade == "F"
        assert result.passed is False

    def test_clamp_applies_to_total_only(self, engine, key, make_answers):
        """Test that per-question penalties stay negative after clamping"""
        options = GradingOptions(negative_marking=True, negative_penalty=1.0)
        result = engine.grade_student(make_answers("BCDA"), key, options)

        assert all(qr.points_earned == -1.0 for qr in result.question_results)

    def test_penalties_offset_correct_answers(self, engine, key, make_answers):
        """Test that penalties are summed before clamping"""
        options = GradingOptions(negative_marking=True, negative_penalty=1.0)
        result = engine.grade_student(make_answers("ABDA"), key, options)

        assert result.raw_score == 0.0
        assert result.correct == 2
        assert result.incorrect == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Configuration API routes
Exposes sheet and grading defaults
"""
from fastapi import APIRouter

from exam_reader.config import settings
from exam_reader.core import ReportFormat
from exam_reader.grader import GradingOptions
from exam_reader.grader.grading_engine import (
    PASS_FAIL_THRESHOLD,
    PLUS_MINUS_GRADES,
    STANDARD_GRADES,
)
from exam_reader.schemas import ConfigResponse, GradingOptionsSchema

router = APIRouter()


@router.get("/", response_model=ConfigResponse)
async def get_config():
    """
    Get default sheet layout and grading options
    """
    options = GradingOptions.from_settings()
    return ConfigResponse(
        default_total_questions=settings.DEFAULT_TOTAL_QUESTIONS,
        default_answer_options=settings.DEFAULT_ANSWER_OPTIONS,
        default_exam_format=settings.DEFAULT_EXAM_FORMAT,
        grading_options=GradingOptionsSchema(
            negative_marking=options.negative_marking,
            negative_penalty=options.negative_penalty,
            partial_credit=options.partial_credit,
            weighted_questions=options.weighted_questions,
            passing_score=options.passing_score,
            grade_scale=options.grade_scale
        ),
        report_formats=[f.value for f in ReportFormat]
    )


@router.get("/grade-scales")
async def get_grade_scales():
    """
    Letter grade thresholds for each scale
    """
    return {
        "Standard": [{"min": t, "grade": g} for t, g in STANDARD_GRADES],
        "PlusMinus": [{"min": t, "grade": g} for t, g in PLUS_MINUS_GRADES],
        "PassFail": [{"min": PASS_FAIL_THRESHOLD, "grade": "P"}]
    }

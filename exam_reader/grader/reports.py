"""
Report Generators Module
Renders graded results and analytics as JSON, CSV or Excel bytes
"""
import csv
import io
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List
import logging

from openpyxl import Workbook
from openpyxl.styles import Font

from ..core.constants import ReportFormat
from .exam_analyzer import ExamAnalytics
from .grading_engine import GradingResult
from .models import AnswerKey

logger = logging.getLogger(__name__)

BLANK_MARK = "-"
WRONG_MARK = "*"


@dataclass
class ReportData:
    """Everything a report needs; generators never recompute grades"""
    answer_key: AnswerKey
    results: List[GradingResult] = field(default_factory=list)
    analytics: ExamAnalytics = field(default_factory=ExamAnalytics)
    report_title: str = "Exam Report"
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ranked_results(self) -> List[GradingResult]:
        return sorted(self.results, key=lambda r: (-r.percentage, r.student_name))


def answer_cell(result: GradingResult, question_number: int) -> str:
    """Student answer for one question: `-` if blank, `*` suffix if wrong"""
    for qr in result.question_results:
        if qr.question_number == question_number:
            if not qr.student_answer:
                return BLANK_MARK
            return qr.student_answer if qr.is_correct else f"{qr.student_answer}{WRONG_MARK}"
    return BLANK_MARK


class ReportGenerator(ABC):
    """Base class for report generators"""

    format: ReportFormat
    media_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        return self.format.value

    @abstractmethod
    def generate(self, data: ReportData) -> bytes:
        """Render the report as file content"""
        pass


class JsonReportGenerator(ReportGenerator):
    format = ReportFormat.JSON
    media_type = "application/json"

    def generate(self, data: ReportData) -> bytes:
        analytics = data.analytics
        report = {
            "report_title": data.report_title,
            "generated_at": data.generated_at.isoformat(),
            "exam_id": data.answer_key.exam_id,
            "exam_title": data.answer_key.exam_title,
            "summary": {
                "total_students": analytics.total_students,
                "class_average": analytics.class_average,
                "median": analytics.median,
                "standard_deviation": analytics.standard_deviation,
                "highest_score": analytics.highest_score,
                "lowest_score": analytics.lowest_score,
                "pass_count": analytics.pass_count,
                "fail_count": analytics.fail_count,
                "pass_rate": analytics.pass_rate,
                "grade_distribution": analytics.grade_distribution,
            },
            "students": [r.to_dict() for r in data.results],
            "questions": [
                {
                    "question_number": q.question_number,
                    "correct_answer": q.correct_answer,
                    "difficulty_index": q.difficulty_index,
                    "discrimination_index": q.discrimination_index,
                    "answer_distribution": q.answer_distribution,
                    "most_common_wrong_answer": q.most_common_wrong_answer,
                    "flagged_for_review": q.flagged_for_review,
                    "flag_reason": q.flag_reason,
                }
                for q in analytics.question_stats
            ],
        }
        return json.dumps(report, ensure_ascii=False, indent=4).encode("utf-8")


class CsvReportGenerator(ReportGenerator):
    """
    One ranked row per student with per-question answers.
    Encoded as UTF-8 with BOM so spreadsheet apps detect the encoding.
    """
    format = ReportFormat.CSV
    media_type = "text/csv"

    def generate(self, data: ReportData) -> bytes:
        numbers = [q.number for q in data.answer_key.questions]

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(
            ["Rank", "StudentId", "StudentName", "Score", "Percentage", "Grade", "Status"]
            + [f"Q{n}" for n in numbers]
        )

        for rank, r in enumerate(data.ranked_results, start=1):
            writer.writerow(
                [
                    rank,
                    r.student_id,
                    r.student_name,
                    f"{r.raw_score:.2f}",
                    f"{r.percentage:.2f}",
                    r.letter_grade,
                    "Pass" if r.passed else "Fail",
                ]
                + [answer_cell(r, n) for n in numbers]
            )

        return buffer.getvalue().encode("utf-8-sig")


class ExcelReportGenerator(ReportGenerator):
    format = ReportFormat.EXCEL
    media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    def generate(self, data: ReportData) -> bytes:
        wb = Workbook()
        analytics = data.analytics

        # Summary sheet
        ws_summary = wb.active
        ws_summary.title = "Summary"
        rows = [
            ("Exam", data.answer_key.exam_title or data.answer_key.exam_id),
            ("Total Students", analytics.total_students),
            ("Class Average", analytics.class_average),
            ("Median", analytics.median),
            ("Standard Deviation", analytics.standard_deviation),
            ("Highest Score", analytics.highest_score),
            ("Lowest Score", analytics.lowest_score),
            ("Pass Count", analytics.pass_count),
            ("Fail Count", analytics.fail_count),
            ("Pass Rate", analytics.pass_rate),
        ]
        for row, (label, value) in enumerate(rows, start=1):
            ws_summary.cell(row=row, column=1, value=label).font = Font(bold=True)
            ws_summary.cell(row=row, column=2, value=value)

        # Results sheet
        numbers = [q.number for q in data.answer_key.questions]
        ws_results = wb.create_sheet("Results")
        headers = ["Rank", "Student ID", "Name", "Score", "Percentage", "Grade", "Status"]
        ws_results.append(headers + [f"Q{n}" for n in numbers])
        for col in range(1, len(headers) + 1):
            ws_results.cell(row=1, column=col).font = Font(bold=True)

        for rank, r in enumerate(data.ranked_results, start=1):
            ws_results.append(
                [rank, r.student_id, r.student_name, r.raw_score, r.percentage,
                 r.letter_grade, "Pass" if r.passed else "Fail"]
                + [answer_cell(r, n) for n in numbers]
            )

        # Questions sheet
        ws_questions = wb.create_sheet("Questions")
        headers = ["Question", "Correct", "Difficulty", "Discrimination",
                   "Most Common Wrong", "Flagged", "Reason"]
        ws_questions.append(headers)
        for col in range(1, len(headers) + 1):
            ws_questions.cell(row=1, column=col).font = Font(bold=True)

        for q in analytics.question_stats:
            ws_questions.append([
                q.question_number, q.correct_answer, q.difficulty_index,
                q.discrimination_index, q.most_common_wrong_answer,
                "Yes" if q.flagged_for_review else "No", q.flag_reason
            ])

        # Auto-adjust column width
        for ws in (ws_summary, ws_results, ws_questions):
            for col in ws.columns:
                max_len = max(len(str(cell.value)) if cell.value is not None else 0 for cell in col)
                ws.column_dimensions[col[0].column_letter].width = max_len + 2

        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()


REPORT_GENERATORS: Dict[ReportFormat, ReportGenerator] = {
    generator.format: generator
    for generator in (JsonReportGenerator(), CsvReportGenerator(), ExcelReportGenerator())
}


def get_report_generator(report_format: ReportFormat) -> ReportGenerator:
    return REPORT_GENERATORS[ReportFormat(report_format)]

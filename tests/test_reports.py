"""
Unit tests for report generation
"""
import csv
import io
import json

import pytest
from openpyxl import load_workbook

from exam_reader.core.constants import ReportFormat
from exam_reader.grader.exam_analyzer import ExamAnalyzer
from exam_reader.grader.reports import (
    CsvReportGenerator,
    ExcelReportGenerator,
    JsonReportGenerator,
    ReportData,
    ReportGenerator,
    answer_cell,
    get_report_generator,
)


@pytest.fixture
def report_data(grade, answer_key):
    results = [
        grade(answer_key, "ABD-A", "S2", "Ayşe"),
        grade(answer_key, "ABCDA", "S1", "Ali"),
        grade(answer_key, "DDDDD", "S3", "Can"),
    ]
    analytics = ExamAnalyzer().analyze(results, answer_key)
    return ReportData(answer_key=answer_key, results=results, analytics=analytics)


class TestAnswerCell:
    """Test cases for per-question cell text"""

    def test_marks(self, grade, answer_key):
        """Test blank and wrong markers"""
        result = grade(answer_key, "AC-DA")
        assert answer_cell(result, 1) == "A"
        assert answer_cell(result, 2) == "C*"
        assert answer_cell(result, 3) == "-"
        assert answer_cell(result, 9) == "-"


class TestJsonReport:
    """Test cases for the JSON report"""

    def test_structure(self, report_data):
        """Test summary, students and questions"""
        data = json.loads(JsonReportGenerator().generate(report_data).decode("utf-8"))

        assert data["exam_id"] == "EX-1"
        assert data["exam_title"] == "Unit Quiz"
        assert data["summary"]["total_students"] == 3
        assert data["summary"]["pass_count"] == 2
        assert len(data["students"]) == 3
        assert len(data["questions"]) == 5
        assert data["questions"][0]["question_number"] == 1

    def test_non_ascii_kept(self, report_data):
        """Test names are not escaped"""
        content = JsonReportGenerator().generate(report_data).decode("utf-8")
        assert "Ayşe" in content


class TestCsvReport:
    """Test cases for the CSV report"""

    def _rows(self, report_data):
        content = CsvReportGenerator().generate(report_data)
        return content, list(csv.reader(io.StringIO(content.decode("utf-8-sig"))))

    def test_bom_and_header(self, report_data):
        """Test encoding marker and column layout"""
        content, rows = self._rows(report_data)

        assert content.startswith(b"\xef\xbb\xbf")
        assert rows[0] == [
            "Rank", "StudentId", "StudentName", "Score", "Percentage", "Grade", "Status",
            "Q1", "Q2", "Q3", "Q4", "Q5",
        ]

    def test_rows_ranked(self, report_data):
        """Test rows are ordered by percentage"""
        _, rows = self._rows(report_data)

        assert [row[1] for row in rows[1:]] == ["S1", "S2", "S3"]
        assert [row[0] for row in rows[1:]] == ["1", "2", "3"]

    def test_row_values(self, report_data):
        """Test score formatting and answer markers"""
        _, rows = self._rows(report_data)
        second = rows[2]

        assert second[3] == "3.00"
        assert second[4] == "60.00"
        assert second[6] == "Pass"
        assert second[7:] == ["A", "B", "D*", "-", "A"]
        assert rows[3][6] == "Fail"


class TestExcelReport:
    """Test cases for the Excel report"""

    def test_sheets(self, report_data):
        """Test workbook layout"""
        content = ExcelReportGenerator().generate(report_data)
        wb = load_workbook(io.BytesIO(content))

        assert wb.sheetnames == ["Summary", "Results", "Questions"]
        assert wb["Results"].max_row == 4
        assert wb["Results"].cell(row=2, column=2).value == "S1"
        assert wb["Questions"].max_row == 6
        assert wb["Summary"].cell(row=2, column=2).value == 3


class TestReportRegistry:
    """Test cases for generator lookup"""

    @pytest.mark.parametrize("fmt, cls", [
        ("json", JsonReportGenerator),
        ("csv", CsvReportGenerator),
        ("xlsx", ExcelReportGenerator),
        (ReportFormat.CSV, CsvReportGenerator),
    ])
    def test_lookup(self, fmt, cls):
        """Test every supported format resolves"""
        generator = get_report_generator(fmt)
        assert isinstance(generator, cls)
        assert generator.extension == ReportFormat(fmt).value

    def test_base_class_is_abstract(self):
        """Test generators must implement generate"""
        with pytest.raises(TypeError):
            ReportGenerator()

        class NoOutput(ReportGenerator):
            format = ReportFormat.JSON

        with pytest.raises(TypeError):
            NoOutput()

    def test_unknown_format(self):
        """Test unsupported formats are rejected"""
        with pytest.raises(ValueError):
            get_report_generator("pdf")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

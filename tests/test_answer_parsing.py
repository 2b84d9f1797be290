"""
Unit tests for answer sheet parsing
"""
import logging
import threading

import pytest

from exam_reader.core.constants import AnswerStatus, ExamFormat, ParseConfidence
from exam_reader.core.exceptions import OperationCancelledError
from exam_reader.grader.answer_parsing import (
    BubbleSheetParser,
    GridParser,
    ParserFactory,
    WrittenAnswerParser,
    extract_student_id,
    extract_student_name,
)
from exam_reader.grader.models import AnswerSheetTemplate


class TestBubbleSheetParser:
    """Test cases for bubble sheet parsing"""

    def test_thirty_question_round_trip(self, make_ocr):
        """Test that a full synthetic sheet parses to exactly its answers"""
        expected = ["ABCD"[(n - 1) % 4] for n in range(1, 31)]
        text = "".join(f"Q{n}: [{expected[n - 1]}]\n" for n in range(1, 31))
        template = AnswerSheetTemplate(total_questions=30)

        answers = BubbleSheetParser().parse(make_ocr(text), template)

        assert len(answers) == 30
        assert [a.question_number for a in answers] == list(range(1, 31))
        assert [a.selected_answer for a in answers] == expected
        assert all(a.status == AnswerStatus.ANSWERED for a in answers)
        assert all(a.confidence == ParseConfidence.BUBBLE_ANSWERED for a in answers)

    def test_empty_and_question_mark_tokens(self, make_ocr):
        """Test that [ ] is unanswered and [?] is unclear"""
        template = AnswerSheetTemplate(total_questions=3)
        answers = BubbleSheetParser().parse(make_ocr("Q1: [A]\nQ2: [ ]\nQ3: [?]\n"), template)

        assert answers[0].status == AnswerStatus.ANSWERED
        assert answers[1].status == AnswerStatus.UNANSWERED
        assert answers[1].selected_answer == ""
        assert answers[1].confidence == ParseConfidence.BUBBLE_EMPTY
        assert answers[2].status == AnswerStatus.UNCLEAR
        assert answers[2].selected_answer == ""
        assert answers[2].confidence == ParseConfidence.BUBBLE_UNCLEAR

    def test_token_outside_options_is_unclear(self, make_ocr):
        """Test that a letter the template does not offer is unclear"""
        template = AnswerSheetTemplate(total_questions=2, answer_options=["A", "B", "C", "D"])
        answers = BubbleSheetParser().parse(make_ocr("Q1: [E]\nQ2: [b]\n"), template)

        assert answers[0].status == AnswerStatus.UNCLEAR
        assert answers[0].selected_answer == "E"
        assert answers[1].status == AnswerStatus.ANSWERED
        assert answers[1].selected_answer == "B"

    def test_missing_questions_are_gap_filled(self, make_ocr):
        """Test that unmatched question numbers become unanswered with zero confidence"""
        template = AnswerSheetTemplate(total_questions=4)
        answers = BubbleSheetParser().parse(make_ocr("Q1: [A]\nQ3: [C]\n"), template)

        assert len(answers) == 4
        for missing in (answers[1], answers[3]):
            assert missing.status == AnswerStatus.UNANSWERED
            assert missing.confidence == 0.0

    def test_out_of_range_numbers_are_discarded(self, make_ocr):
        """Test that Q0 and numbers beyond the template are dropped"""
        template = AnswerSheetTemplate(total_questions=3)
        answers = BubbleSheetParser().parse(make_ocr("Q0: [A]\nQ1: [B]\nQ9: [C]\n"), template)

        assert [a.question_number for a in answers] == [1, 2, 3]
        assert answers[0].selected_answer == "B"

    def test_output_sorted_and_first_match_wins(self, make_ocr):
        """Test ordering and duplicate handling"""
        template = AnswerSheetTemplate(total_questions=3)
        text = "Q3: [C]\nQ1: [A]\nQ1: [D]\nQ2: [B]\n"
        answers = BubbleSheetParser().parse(make_ocr(text), template)

        assert [a.question_number for a in answers] == [1, 2, 3]
        assert [a.selected_answer for a in answers] == ["A", "B", "C"]

    def test_crlf_line_endings(self, make_ocr):
        """Test Windows line endings"""
        template = AnswerSheetTemplate(total_questions=2)
        answers = BubbleSheetParser().parse(make_ocr("Q1: [A]\r\nQ2: [B]\r\n"), template)
        assert [a.selected_answer for a in answers] == ["A", "B"]

    def test_numbered_line_fallback(self, make_ocr):
        """Test the bare '1. A' pattern when no bubble lines exist"""
        template = AnswerSheetTemplate(total_questions=3)
        answers = BubbleSheetParser().parse(make_ocr("1. A\n2. c\n3. B\n"), template)

        assert [a.selected_answer for a in answers] == ["A", "C", "B"]
        assert all(a.confidence == ParseConfidence.NUMBERED_LINE for a in answers)

    def test_region_scan_wins_with_higher_yield(self, make_ocr, make_region):
        """Test that regions replace a text scan that under-produces"""
        template = AnswerSheetTemplate(total_questions=3)
        regions = [
            make_region("Q1: [A]", 0.91, y=10),
            make_region("Q2: [B]", 0.77, y=20),
            make_region("Q3: [C]", 0.83, y=30),
        ]
        answers = BubbleSheetParser().parse(make_ocr("Q1: [A]\n", regions), template)

        assert [a.selected_answer for a in answers] == ["A", "B", "C"]
        assert answers[1].confidence == pytest.approx(0.77)

    def test_text_scan_kept_when_regions_do_not_yield_more(self, make_ocr, make_region):
        """Test that regions are ignored when they find no more answers"""
        template = AnswerSheetTemplate(total_questions=3)
        regions = [make_region("Q1: [D]", 0.5)]
        answers = BubbleSheetParser().parse(make_ocr("Q1: [A]\nQ2: [B]\n", regions), template)

        assert answers[0].selected_answer == "A"
        assert answers[0].confidence == ParseConfidence.BUBBLE_ANSWERED

    def test_region_token_outside_options_is_unclear(self, make_ocr, make_region):
        """Test that the region scan also marks unoffered letters unclear"""
        template = AnswerSheetTemplate(total_questions=2, answer_options=["A", "B", "C", "D"])
        regions = [make_region("Q1: [A]", 0.91, y=10), make_region("Q2: [E]", 0.72, y=20)]
        answers = BubbleSheetParser().parse(make_ocr("", regions), template)

        assert answers[0].status == AnswerStatus.ANSWERED
        assert answers[1].status == AnswerStatus.UNCLEAR
        assert answers[1].selected_answer == "E"
        assert answers[1].confidence == pytest.approx(0.72)

    def test_empty_text_all_unanswered(self, make_ocr):
        """Test that an empty OCR result still yields one answer per question"""
        template = AnswerSheetTemplate(total_questions=5)
        answers = BubbleSheetParser().parse(make_ocr(""), template)

        assert len(answers) == 5
        assert all(a.status == AnswerStatus.UNANSWERED for a in answers)

    @pytest.mark.asyncio
    async def test_parse_async_honors_cancellation(self, make_ocr, bubble_template):
        """Test that a set cancel event aborts before parsing"""
        event = threading.Event()
        event.set()
        with pytest.raises(OperationCancelledError):
            await BubbleSheetParser().parse_async(make_ocr("Q1: [A]"), bubble_template, event)

    @pytest.mark.asyncio
    async def test_parse_async_without_cancellation(self, make_ocr, bubble_template):
        """Test the async wrapper returns the same answers"""
        answers = await BubbleSheetParser().parse_async(make_ocr("Q1: [A]"), bubble_template)
        assert len(answers) == 5
        assert answers[0].selected_answer == "A"


class TestGridParser:
    """Test cases for grid sheet parsing"""

    def test_labeled_rows(self, make_ocr, grid_template):
        """Test bracketed selections in labeled rows"""
        text = "1: A B [C] D\n2: [A] B C D\n3: A B C D\n4: A [b] C D\n"
        answers = GridParser().parse(make_ocr(text), grid_template)

        assert [a.selected_answer for a in answers] == ["C", "A", "", "B"]
        assert answers[0].confidence == ParseConfidence.GRID_LABELED_SELECTED
        assert answers[2].status == AnswerStatus.UNANSWERED
        assert answers[2].confidence == ParseConfidence.GRID_LABELED_EMPTY

    def test_labeled_row_with_two_brackets(self, make_ocr, grid_template):
        """Test that two bracketed options are multiple marks"""
        answers = GridParser().parse(make_ocr("1: [A] [B] C D\n"), grid_template)
        assert answers[0].status == AnswerStatus.MULTIPLE_MARKS

    def test_labeled_row_outside_options_is_unclear(self, make_ocr, grid_template):
        """Test that a bracketed letter the template does not offer is unclear"""
        answers = GridParser().parse(make_ocr("1: A B [E] D\n2: A [B] C D\n"), grid_template)

        assert answers[0].status == AnswerStatus.UNCLEAR
        assert answers[0].selected_answer == "E"
        assert answers[0].confidence == ParseConfidence.GRID_LABELED_EMPTY
        assert answers[1].status == AnswerStatus.ANSWERED

    def test_mark_rows(self, make_ocr, grid_template):
        """Test positional X/O marks"""
        text = "1 _ X _ _\n2 O _ _ _\n3 _ _ _ _\n4 X X _ _\n"
        answers = GridParser().parse(make_ocr(text), grid_template)

        assert answers[0].selected_answer == "B"
        assert answers[0].confidence == ParseConfidence.GRID_MARK_SELECTED
        assert answers[1].selected_answer == "A"
        assert answers[2].status == AnswerStatus.UNANSWERED
        assert answers[3].status == AnswerStatus.MULTIPLE_MARKS
        assert answers[3].confidence == ParseConfidence.GRID_MARK_EMPTY

    def test_mark_past_last_option_is_unanswered(self, make_ocr, grid_template):
        """Test that a single mark with no matching option is not read as an answer"""
        answers = GridParser().parse(make_ocr("1 _ _ _ _ X\n2 _ _ X _\n"), grid_template)

        assert answers[0].status == AnswerStatus.UNANSWERED
        assert answers[0].selected_answer == ""
        assert answers[0].confidence == ParseConfidence.GRID_MARK_EMPTY
        assert answers[1].selected_answer == "C"

    def test_find_marked_cells(self):
        """Test mark detection with pipe separators"""
        assert GridParser.find_marked_cells("_ | X | _ | _") == [1]
        assert GridParser.find_marked_cells("x o _ _") == [0, 1]
        assert GridParser.find_marked_cells("_ _ _ _") == []

    def test_region_fallback_sorted_by_position(self, make_ocr, make_region, grid_template):
        """Test that regions are read top-to-bottom when the text has no rows"""
        regions = [
            make_region("2: A [D] C D", 0.66, x=10, y=40),
            make_region("1: [C] B C D", 0.88, x=10, y=20),
            make_region("noise", 0.99, x=0, y=0),
        ]
        answers = GridParser().parse(make_ocr("", regions), grid_template)

        assert answers[0].selected_answer == "C"
        assert answers[0].confidence == pytest.approx(0.88)
        assert answers[1].selected_answer == "D"
        assert answers[2].status == AnswerStatus.UNANSWERED


    def test_region_outside_options_is_unclear(self, make_ocr, make_region, grid_template):
        """Test the region fallback applies the same option check"""
        regions = [make_region("1: A B C [F]", 0.81, x=10, y=20)]
        answers = GridParser().parse(make_ocr("", regions), grid_template)

        assert answers[0].status == AnswerStatus.UNCLEAR
        assert answers[0].selected_answer == "F"
        assert answers[0].confidence == pytest.approx(0.81)


class TestWrittenAnswerParser:
    """Test cases for written answer parsing"""

    def test_question_blocks(self, make_ocr, written_template):
        """Test Q<n>: blocks running up to the next marker"""
        text = "Q1: Photosynthesis\nQuestion 2) The cell's\npower house\nQ3:\n"
        answers = WrittenAnswerParser().parse(make_ocr(text), written_template)

        assert answers[0].selected_answer == "Photosynthesis"
        assert answers[1].selected_answer == "The cell's\npower house"
        assert answers[2].status == AnswerStatus.UNANSWERED

    def test_confidence_from_matching_regions(self, make_ocr, make_region, written_template):
        """Test that region confidence is averaged over matching regions"""
        regions = [
            make_region("Q1: Photosynthesis", 0.9),
            make_region("photosynthesis", 0.7),
            make_region("unrelated", 0.1),
        ]
        answers = WrittenAnswerParser().parse(make_ocr("Q1: Photosynthesis\n", regions), written_template)
        assert answers[0].confidence == pytest.approx(0.8)

    def test_answer_blocks(self, make_ocr, written_template):
        """Test the 'Answer n:' fallback"""
        text = "Answer 1: Paris\nAnswer 2:\nAnswer 3: Rome\n"
        answers = WrittenAnswerParser().parse(make_ocr(text), written_template)

        assert answers[0].selected_answer == "Paris"
        assert answers[0].confidence == ParseConfidence.WRITTEN_ANSWER_BLOCK
        assert answers[1].status == AnswerStatus.UNANSWERED
        assert answers[2].selected_answer == "Rome"

    def test_numbered_answers(self, make_ocr, written_template):
        """Test the bare numbered-line fallback"""
        answers = WrittenAnswerParser().parse(make_ocr("1. Paris\n2) Rome\n"), written_template)

        assert answers[0].selected_answer == "Paris"
        assert answers[1].selected_answer == "Rome"
        assert answers[1].confidence == ParseConfidence.WRITTEN_NUMBERED
        assert answers[2].status == AnswerStatus.UNANSWERED

    def test_length_heuristics(self):
        """Test confidence heuristics without matching regions"""
        estimate = WrittenAnswerParser.estimate_confidence
        assert estimate("", []) == ParseConfidence.WRITTEN_EMPTY
        assert estimate("A", []) == ParseConfidence.WRITTEN_SHORT
        assert estimate("x" * 201, []) == ParseConfidence.WRITTEN_LONG
        assert estimate("a normal answer", []) == ParseConfidence.WRITTEN_DEFAULT


class TestParserFactory:
    """Test cases for parser selection"""

    @pytest.mark.parametrize("fmt, parser_type", [
        (ExamFormat.BUBBLE_SHEET, BubbleSheetParser),
        (ExamFormat.GRID_BASED, GridParser),
        (ExamFormat.WRITTEN_ANSWER, WrittenAnswerParser),
        (ExamFormat.MIXED, WrittenAnswerParser),
    ])
    def test_selects_by_format(self, fmt, parser_type):
        """Test that each format maps to its parser"""
        parser = ParserFactory().get_parser(AnswerSheetTemplate(format=fmt))
        assert isinstance(parser, parser_type)

    def test_unknown_format_falls_back_to_bubble(self, caplog):
        """Test fallback with a warning for unsupported formats"""
        with caplog.at_level(logging.WARNING):
            parser = ParserFactory().get_parser(AnswerSheetTemplate(format="Unknown"))

        assert isinstance(parser, BubbleSheetParser)
        assert any("falling back" in r.message for r in caplog.records)

    def test_parse_delegates(self, make_ocr):
        """Test parsing through the factory"""
        template = AnswerSheetTemplate(total_questions=2, format=ExamFormat.GRID_BASED)
        answers = ParserFactory().parse(make_ocr("1: [B] C\n2: A [D]\n"), template)
        assert [a.selected_answer for a in answers] == ["B", "D"]


class TestStudentIdentity:
    """Test cases for header extraction"""

    def test_extracts_name_and_id(self):
        """Test reading the sheet header"""
        text = "Student Name: Ayşe Demir\nStudent ID: S002\n---\nQ1: [A]\n"
        assert extract_student_name(text) == "Ayşe Demir"
        assert extract_student_id(text) == "S002"

    def test_missing_header(self):
        """Test that absent fields return None"""
        assert extract_student_name("Q1: [A]") is None
        assert extract_student_id("") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

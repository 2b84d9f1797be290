"""
Answer Parsing Module
Turns OCR output into one StudentAnswer per question for each sheet layout
"""
import re
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence
import logging

from ..core.constants import AnswerStatus, ExamFormat, ParseConfidence
from ..core.exceptions import check_cancelled
from .models import AnswerSheetTemplate, OcrRegion, OcrResult, StudentAnswer

logger = logging.getLogger(__name__)

# Bubble sheet: "Q1: [A]", "Q2: [ ]", "Q3: [?]"
BUBBLE_LINE_PATTERN = re.compile(r"Q(\d+)\s*:\s*\[([A-Za-z?]|\s*)\]", re.IGNORECASE)
# Bare numbered line: "1. A"
NUMBERED_OPTION_PATTERN = re.compile(r"^(\d+)\.[ \t]*([A-Za-z])[ \t]*$", re.MULTILINE)

# Grid: "1: A B [C] D"
LABELED_ROW_PATTERN = re.compile(r"^(\d+)[ \t]*:[ \t]*(.+)$", re.MULTILINE)
BRACKETED_SELECTION_PATTERN = re.compile(r"\[([A-Za-z])\]")
# Grid: "1  _ X _ _"
MARK_ROW_PATTERN = re.compile(r"^(\d+)[ \t]+([ \tXxOo_.\-|]+)$", re.MULTILINE)
MARK_CELL_SEPARATORS = re.compile(r"[ \t|]+")

# Written: "Q1: text" / "Question 1: text" up to the next marker
QUESTION_BLOCK_PATTERN = re.compile(
    r"\b(?:Q|Question)[ \t]*(\d+)[ \t]*[:.)][ \t]*(.*?)"
    r"(?=\b(?:Q|Question)[ \t]*\d+[ \t]*[:.)]|$)",
    re.IGNORECASE | re.DOTALL
)
ANSWER_BLOCK_PATTERN = re.compile(r"^Answer[ \t]*(\d+)[ \t]*:[ \t]*(.*?)[ \t]*$", re.MULTILINE | re.IGNORECASE)
NUMBERED_TEXT_PATTERN = re.compile(r"^(\d+)[ \t]*[:.)][ \t]*(.+)$", re.MULTILINE)

STUDENT_NAME_PATTERN = re.compile(r"Student\s*Name\s*:\s*(.+)", re.IGNORECASE)
STUDENT_ID_PATTERN = re.compile(r"Student\s*ID\s*:\s*(\S+)", re.IGNORECASE)

Strategy = Callable[[str, List[OcrRegion], AnswerSheetTemplate], List[StudentAnswer]]


def extract_student_name(raw_text: str) -> Optional[str]:
    """Return the 'Student Name:' header value, if present"""
    match = STUDENT_NAME_PATTERN.search(raw_text or "")
    return match.group(1).strip() if match else None


def extract_student_id(raw_text: str) -> Optional[str]:
    """Return the 'Student ID:' header value, if present"""
    match = STUDENT_ID_PATTERN.search(raw_text or "")
    return match.group(1).strip() if match else None


def _question_number(value: str, template: AnswerSheetTemplate) -> Optional[int]:
    """Parse a captured question number; None if outside 1..total_questions"""
    try:
        number = int(value)
    except ValueError:
        return None
    if number < 1 or number > template.total_questions:
        return None
    return number


def _normalized_options(template: AnswerSheetTemplate) -> List[str]:
    return [opt.strip().upper() for opt in template.answer_options]


class AnswerSheetParser(ABC):
    """
    Base class for layout-specific parsers.

    Subclasses list their extraction strategies in order; the first one
    that yields answers wins. Whatever the strategy, the parser always
    returns exactly one answer per question, sorted by question number.
    """

    formats: Sequence[ExamFormat] = ()

    def can_parse(self, template: AnswerSheetTemplate) -> bool:
        return template.format in self.formats

    @property
    @abstractmethod
    def strategies(self) -> List[Strategy]:
        """Ordered extraction strategies"""

    def parse(self, ocr_result: OcrResult, template: AnswerSheetTemplate) -> List[StudentAnswer]:
        """
        Parse one OCR result into answers.

        Args:
            ocr_result: OCR output for a single sheet
            template: Sheet layout (question count, options, format)

        Returns:
            List of StudentAnswer of length template.total_questions
        """
        text = (ocr_result.raw_text or "").replace("\r\n", "\n").replace("\r", "\n")
        regions = list(ocr_result.regions or [])

        logger.info(
            f"{type(self).__name__}: parsing {len(text)} chars, {len(regions)} regions"
        )

        answers = self.extract(text, regions, template)
        completed = self._complete(answers, template)

        answered = sum(1 for a in completed if a.status == AnswerStatus.ANSWERED)
        logger.info(
            f"{type(self).__name__}: parsed {len(completed)} answers "
            f"({answered} answered, {len(completed) - answered} not answered)"
        )
        return completed

    async def parse_async(
        self,
        ocr_result: OcrResult,
        template: AnswerSheetTemplate,
        cancel_event: Optional[threading.Event] = None
    ) -> List[StudentAnswer]:
        """Check for cancellation once, then parse synchronously"""
        check_cancelled(cancel_event)
        return self.parse(ocr_result, template)

    def extract(
        self,
        text: str,
        regions: List[OcrRegion],
        template: AnswerSheetTemplate
    ) -> List[StudentAnswer]:
        """Run strategies in order and return the first non-empty result"""
        for strategy in self.strategies:
            answers = strategy(text, regions, template)
            if answers:
                logger.debug(f"{type(self).__name__}: {strategy.__name__} matched {len(answers)} answers")
                return answers
        return []

    @staticmethod
    def _complete(answers: List[StudentAnswer], template: AnswerSheetTemplate) -> List[StudentAnswer]:
        """Drop out-of-range and duplicate numbers, fill gaps, sort"""
        by_number: Dict[int, StudentAnswer] = {}
        for answer in answers:
            if 1 <= answer.question_number <= template.total_questions:
                by_number.setdefault(answer.question_number, answer)

        for number in range(1, template.total_questions + 1):
            if number not in by_number:
                by_number[number] = StudentAnswer.unanswered(number)

        return [by_number[n] for n in sorted(by_number)]


class BubbleSheetParser(AnswerSheetParser):
    """Parser for single-choice bubble sheets ("Q1: [A]")"""

    formats = (ExamFormat.BUBBLE_SHEET,)

    @property
    def strategies(self) -> List[Strategy]:
        return [self.parse_bubble_lines, self.parse_numbered_lines]

    def extract(self, text, regions, template):
        answers = super().extract(text, regions, template)

        # Regions are scanned independently; they win only with a higher yield
        if len(answers) < template.total_questions and regions:
            region_answers = self.parse_regions(text, regions, template)
            if len(region_answers) > len(answers):
                logger.debug(
                    f"BubbleSheetParser: region scan found {len(region_answers)} answers "
                    f"(text scan found {len(answers)})"
                )
                answers = region_answers

        return answers

    @staticmethod
    def _classify(token: str, options: List[str]):
        """Map a bracket token to (answer text, status)"""
        token = token.strip().upper()
        if not token:
            return "", AnswerStatus.UNANSWERED
        if token == "?":
            return "", AnswerStatus.UNCLEAR
        if token not in options:
            return token, AnswerStatus.UNCLEAR
        return token, AnswerStatus.ANSWERED

    def parse_bubble_lines(self, text, regions, template) -> List[StudentAnswer]:
        options = _normalized_options(template)
        confidences = {
            AnswerStatus.ANSWERED: ParseConfidence.BUBBLE_ANSWERED,
            AnswerStatus.UNANSWERED: ParseConfidence.BUBBLE_EMPTY,
        }
        answers = []

        for match in BUBBLE_LINE_PATTERN.finditer(text):
            number = _question_number(match.group(1), template)
            if number is None:
                continue

            answer_text, status = self._classify(match.group(2), options)
            if status == AnswerStatus.UNCLEAR:
                confidence = (
                    ParseConfidence.BUBBLE_INVALID_OPTION if answer_text
                    else ParseConfidence.BUBBLE_UNCLEAR
                )
            else:
                confidence = confidences[status]

            answers.append(StudentAnswer(number, answer_text, confidence, status))

        return answers

    def parse_numbered_lines(self, text, regions, template) -> List[StudentAnswer]:
        options = _normalized_options(template)
        answers = []
        for match in NUMBERED_OPTION_PATTERN.finditer(text):
            number = _question_number(match.group(1), template)
            if number is None:
                continue
            answer_text, status = self._classify(match.group(2), options)
            confidence = (
                ParseConfidence.NUMBERED_LINE if status == AnswerStatus.ANSWERED
                else ParseConfidence.BUBBLE_INVALID_OPTION
            )
            answers.append(StudentAnswer(number, answer_text, confidence, status))
        return answers

    def parse_regions(self, text, regions, template) -> List[StudentAnswer]:
        options = _normalized_options(template)
        answers = []

        for region in regions:
            match = BUBBLE_LINE_PATTERN.search(region.text or "")
            if not match:
                continue
            number = _question_number(match.group(1), template)
            if number is None:
                continue

            answer_text, status = self._classify(match.group(2), options)
            answers.append(StudentAnswer(number, answer_text, region.confidence, status))

        return answers


class GridParser(AnswerSheetParser):
    """Parser for tabular grid sheets ("1: A B [C] D" or "1  _ X _ _")"""

    formats = (ExamFormat.GRID_BASED,)

    @property
    def strategies(self) -> List[Strategy]:
        return [self.parse_labeled_rows, self.parse_mark_rows, self.parse_regions]

    @staticmethod
    def _read_labeled_row(row: str, options: List[str]):
        """Return (answer text, status) for a bracketed row"""
        selected = [m.group(1).upper() for m in BRACKETED_SELECTION_PATTERN.finditer(row)]
        if not selected:
            return "", AnswerStatus.UNANSWERED
        if len(selected) > 1:
            return "", AnswerStatus.MULTIPLE_MARKS
        if selected[0] not in options:
            return selected[0], AnswerStatus.UNCLEAR
        return selected[0], AnswerStatus.ANSWERED

    def parse_labeled_rows(self, text, regions, template) -> List[StudentAnswer]:
        options = _normalized_options(template)
        answers = []

        for match in LABELED_ROW_PATTERN.finditer(text):
            number = _question_number(match.group(1), template)
            if number is None:
                continue

            answer_text, status = self._read_labeled_row(match.group(2), options)
            confidence = (
                ParseConfidence.GRID_LABELED_SELECTED if status == AnswerStatus.ANSWERED
                else ParseConfidence.GRID_LABELED_EMPTY
            )
            answers.append(StudentAnswer(number, answer_text, confidence, status))

        return answers

    @staticmethod
    def find_marked_cells(cells: str) -> List[int]:
        """Positions of X/O marks among space-delimited cells"""
        parts = [p for p in MARK_CELL_SEPARATORS.split(cells.strip()) if p]
        return [i for i, part in enumerate(parts) if part.upper() in ("X", "O")]

    def parse_mark_rows(self, text, regions, template) -> List[StudentAnswer]:
        answers = []

        for match in MARK_ROW_PATTERN.finditer(text):
            number = _question_number(match.group(1), template)
            if number is None:
                continue

            marked = self.find_marked_cells(match.group(2))
            if len(marked) == 1 and marked[0] < len(template.answer_options):
                answers.append(StudentAnswer(
                    number,
                    template.answer_options[marked[0]].strip().upper(),
                    ParseConfidence.GRID_MARK_SELECTED,
                    AnswerStatus.ANSWERED
                ))
            else:
                status = AnswerStatus.MULTIPLE_MARKS if len(marked) > 1 else AnswerStatus.UNANSWERED
                answers.append(StudentAnswer(number, "", ParseConfidence.GRID_MARK_EMPTY, status))

        return answers

    def parse_regions(self, text, regions, template) -> List[StudentAnswer]:
        options = _normalized_options(template)
        answers = []

        ordered = sorted(
            (r for r in regions if r.text and r.text.strip()),
            key=lambda r: (r.bounding_box.y, r.bounding_box.x)
        )
        for region in ordered:
            match = LABELED_ROW_PATTERN.search(region.text)
            if not match:
                continue
            number = _question_number(match.group(1), template)
            if number is None:
                continue

            answer_text, status = self._read_labeled_row(match.group(2), options)
            answers.append(StudentAnswer(number, answer_text, region.confidence, status))

        return answers


class WrittenAnswerParser(AnswerSheetParser):
    """Parser for free-text written answers"""

    formats = (ExamFormat.WRITTEN_ANSWER, ExamFormat.MIXED)

    @property
    def strategies(self) -> List[Strategy]:
        return [self.parse_question_blocks, self.parse_answer_blocks, self.parse_numbered_answers]

    @staticmethod
    def estimate_confidence(answer_text: str, regions: List[OcrRegion]) -> float:
        """
        Average the confidence of OCR regions that contain (or are contained
        in) the answer text; fall back to length heuristics.
        """
        if not answer_text.strip():
            return ParseConfidence.WRITTEN_EMPTY

        needle = answer_text.lower()
        matching = [
            r.confidence for r in regions
            if r.text and r.text.strip()
            and (needle in r.text.lower() or r.text.lower() in needle)
        ]
        if matching:
            return sum(matching) / len(matching)

        if len(answer_text) < 2:
            return ParseConfidence.WRITTEN_SHORT
        if len(answer_text) > 200:
            return ParseConfidence.WRITTEN_LONG
        return ParseConfidence.WRITTEN_DEFAULT

    @staticmethod
    def _status(answer_text: str) -> AnswerStatus:
        return AnswerStatus.ANSWERED if answer_text else AnswerStatus.UNANSWERED

    def parse_question_blocks(self, text, regions, template) -> List[StudentAnswer]:
        answers = []
        for match in QUESTION_BLOCK_PATTERN.finditer(text):
            number = _question_number(match.group(1), template)
            if number is None:
                continue
            answer_text = match.group(2).strip()
            answers.append(StudentAnswer(
                number,
                answer_text,
                self.estimate_confidence(answer_text, regions),
                self._status(answer_text)
            ))
        return answers

    def parse_answer_blocks(self, text, regions, template) -> List[StudentAnswer]:
        answers = []
        for match in ANSWER_BLOCK_PATTERN.finditer(text):
            number = _question_number(match.group(1), template)
            if number is None:
                continue
            answer_text = match.group(2).strip()
            confidence = (
                ParseConfidence.WRITTEN_ANSWER_BLOCK if answer_text
                else ParseConfidence.WRITTEN_EMPTY
            )
            answers.append(StudentAnswer(number, answer_text, confidence, self._status(answer_text)))
        return answers

    def parse_numbered_answers(self, text, regions, template) -> List[StudentAnswer]:
        answers = []
        for match in NUMBERED_TEXT_PATTERN.finditer(text):
            number = _question_number(match.group(1), template)
            if number is None:
                continue
            answer_text = match.group(2).strip()
            answers.append(StudentAnswer(
                number,
                answer_text,
                ParseConfidence.WRITTEN_NUMBERED,
                self._status(answer_text)
            ))
        return answers


class ParserFactory:
    """
    Selects a parser for a template by its declared format.

    Falls back to the bubble sheet parser when no parser supports the format.
    """

    def __init__(self):
        self._parsers: List[AnswerSheetParser] = [
            BubbleSheetParser(),
            GridParser(),
            WrittenAnswerParser(),
        ]

    def get_parser(self, template: AnswerSheetTemplate) -> AnswerSheetParser:
        for parser in self._parsers:
            if parser.can_parse(template):
                logger.info(f"Selected {type(parser).__name__} for format {template.format}")
                return parser

        logger.warning(f"No parser supports format {template.format}, falling back to BubbleSheetParser")
        return self._parsers[0]

    def parse(self, ocr_result: OcrResult, template: AnswerSheetTemplate) -> List[StudentAnswer]:
        """Parse with whichever parser fits the template"""
        return self.get_parser(template).parse(ocr_result, template)

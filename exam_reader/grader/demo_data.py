"""
Demo Data Module
Sample exam (30 questions, 25 students) for trying the pipeline without scans
"""
from typing import List, NamedTuple
import logging

from ..core.constants import AnswerStatus, LetterGradeScale
from .exam_analyzer import ExamAnalytics, ExamAnalyzer
from .grading_engine import GradingEngine, GradingOptions, GradingResult
from .models import AnswerKey, AnswerSheet, AnswerSheetTemplate, StudentAnswer

logger = logging.getLogger(__name__)

DEMO_EXAM_ID = "DEMO-EXAM-001"
DEMO_EXAM_TITLE = "2024-2025 Matematik Final Sınavı"

# One character per question; "-" is a blank answer
CORRECT_ANSWERS = "BACDBACBDA" "CBADBCADBC" "ABDCABCDAB"

BLANK = "-"


class SampleStudent(NamedTuple):
    student_id: str
    name: str
    answers: str

    @property
    def answer_list(self) -> List[str]:
        return ["" if a == BLANK else a for a in self.answers]


SAMPLE_STUDENTS = [
    # A range
    SampleStudent("S001", "Ali Yılmaz", "BACDBACBDA" "CBADBCADBC" "ABDCABCDAB"),
    SampleStudent("S002", "Ayşe Demir", "BACDBACBDA" "CBADBCADBC" "ABDCABCD-B"),
    SampleStudent("S003", "Mehmet Kaya", "BACDBACBAA" "CBADBCADBC" "ABDCABCAAB"),
    # A- / B+ range
    SampleStudent("S004", "Zeynep Çelik", "BACDBACBAA" "CBADBCACBC" "ABDCABCDAD"),
    SampleStudent("S005", "Fatma Şahin", "BACDBACADA" "CAADBCADBA" "ABDCABCDAB"),
    SampleStudent("S006", "Mustafa Öztürk", "BACDBAABAA" "CBADBCADAC" "ABDCABCAAB"),
    SampleStudent("S007", "Emine Aydın", "BACDBACBAA" "CBAABCADBA" "ABDCADCDAD"),
    SampleStudent("S008", "Hasan Arslan", "BACDBACADA" "CBAABAADBC" "ABDCABADAD"),
    # B- / C+ range
    SampleStudent("S009", "Hüseyin Doğan", "BACDBACAAA" "ABADBCAABA" "ABDCABCDAD"),
    SampleStudent("S010", "İbrahim Kılıç", "BACDAACBAA" "CBADACAABC" "AADCABCAAD"),
    SampleStudent("S011", "Hatice Koç", "BACDBAAAAA" "CBADBCAAAC" "ABDCDBCDAD"),
    SampleStudent("S012", "Ahmet Yıldız", "BACABACBAA" "CAADACAABA" "ABDCABCDAD"),
    SampleStudent("S013", "Meryem Aslan", "BACDBDAAAA" "CBADBCADBC" "ABDCADADAD"),
    SampleStudent("S014", "Ömer Çetin", "BAADBACAAD" "CBADBAAABC" "ABDAABCDCB"),
    SampleStudent("S015", "Elif Karaca", "BACDBADBAA" "CAAABCDDAC" "ABDCADCAAD"),
    SampleStudent("S016", "Yusuf Polat", "BACDAAAAAA" "CBDDBCAABA" "ABDCABCDCD"),
    # C / D range
    SampleStudent("S017", "Rabia Kurt", "BACABDAAAD" "CADDACDABA" "ADDADBCDCD"),
    SampleStudent("S018", "Burak Özdemir", "DACDBDCAAD" "ABAABAAAAC" "ABDCADAAAB"),
    SampleStudent("S019", "Selin Erdoğan", "BAADAAAAAA" "AAAABCDAAA" "ABDCDBCDAB"),
    SampleStudent("S020", "Emre Tunç", "BACAADAAAD" "CBADAADAAA" "ABDCABCDAD"),
    # F range
    SampleStudent("S021", "Deniz Acar", "DDAAADAAAD" "AADAAADAAA" "DAAADDAACD"),
    SampleStudent("S022", "Ceren Yalçın", "BAAAADAAAA" "AADAAADAAA" "DAAADDAACD"),
    SampleStudent("S023", "Kaan Güneş", "BACDBAAAAD" "AAAAAAAAAA" "DDAADDAACD"),
    SampleStudent("S024", "Beren Aktaş", "BACDBACBAA" "CBAABAAAAA" "AAAAADAACD"),
    SampleStudent("S025", "Arda Korkmaz", "BACDBDCAAA" "CBADBCAAAA" "ABAADDAACD"),
]

DEMO_CONFIDENCE = 0.95


class DemoDataProvider:
    """Builds the sample exam, its sheets, results and analytics"""

    def __init__(self, grading_engine: GradingEngine = None, analyzer: ExamAnalyzer = None):
        self.grading_engine = grading_engine or GradingEngine()
        self.analyzer = analyzer or ExamAnalyzer()

    @staticmethod
    def get_template() -> AnswerSheetTemplate:
        return AnswerSheetTemplate(total_questions=len(CORRECT_ANSWERS))

    @staticmethod
    def get_grading_options() -> GradingOptions:
        return GradingOptions(passing_score=60.0, grade_scale=LetterGradeScale.PLUS_MINUS)

    @staticmethod
    def get_answer_key() -> AnswerKey:
        return AnswerKey.from_answers(
            list(CORRECT_ANSWERS),
            exam_id=DEMO_EXAM_ID,
            exam_title=DEMO_EXAM_TITLE
        )

    @staticmethod
    def get_answer_sheets() -> List[AnswerSheet]:
        sheets = []
        for student in SAMPLE_STUDENTS:
            answers = [
                StudentAnswer(
                    question_number=i + 1,
                    selected_answer=answer,
                    confidence=DEMO_CONFIDENCE,
                    status=AnswerStatus.ANSWERED
                ) if answer else StudentAnswer.unanswered(i + 1)
                for i, answer in enumerate(student.answer_list)
            ]
            sheets.append(AnswerSheet(
                student_id=student.student_id,
                student_name=student.name,
                answers=answers,
                sheet_id=student.student_id
            ))
        return sheets

    def get_results(self) -> List[GradingResult]:
        answer_key = self.get_answer_key()
        options = self.get_grading_options()

        results = []
        for sheet in self.get_answer_sheets():
            result = self.grading_engine.grade_student(sheet.answers, answer_key, options)
            result.student_id = sheet.student_id
            result.student_name = sheet.student_name
            results.append(result)

        logger.info(f"Generated {len(results)} demo grading results")
        return results

    def get_analytics(self) -> ExamAnalytics:
        return self.analyzer.analyze(self.get_results(), self.get_answer_key())

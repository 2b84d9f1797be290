"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field, model_validator
from typing import List, Dict, Optional, Any

from exam_reader.core.constants import AnswerStatus, ExamFormat, LetterGradeScale, QuestionType
from exam_reader.grader.grading_engine import GradingOptions
from exam_reader.grader.models import (
    DEFAULT_OPTIONS,
    AnswerSheet,
    AnswerSheetTemplate,
    BoundingBox,
    OcrRegion,
    OcrResult,
    Question,
    StudentAnswer,
)


# ===== Exam Schemas =====
class QuestionSchema(BaseModel):
    number: int = Field(..., ge=1, description="1-based question number")
    correct_answer: str = Field(..., description="Correct option; comma-separated for multi-select")
    weight: float = Field(default=1.0, ge=0)
    options: List[str] = Field(default_factory=lambda: list(DEFAULT_OPTIONS))
    type: QuestionType = QuestionType.MULTIPLE_CHOICE

    def to_domain(self) -> Question:
        return Question(
            number=self.number,
            correct_answer=self.correct_answer,
            weight=self.weight,
            options=tuple(self.options),
            type=self.type
        )


class TemplateSchema(BaseModel):
    total_questions: int = Field(default=30, ge=1)
    columns: int = Field(default=1, ge=1)
    answer_options: List[str] = Field(default_factory=lambda: list(DEFAULT_OPTIONS))
    format: ExamFormat = ExamFormat.BUBBLE_SHEET
    has_student_id_field: bool = True
    has_student_name_field: bool = True

    def to_domain(self) -> AnswerSheetTemplate:
        return AnswerSheetTemplate(
            total_questions=self.total_questions,
            columns=self.columns,
            answer_options=list(self.answer_options),
            format=self.format,
            has_student_id_field=self.has_student_id_field,
            has_student_name_field=self.has_student_name_field
        )


class GradingOptionsSchema(BaseModel):
    negative_marking: bool = False
    negative_penalty: float = Field(default=0.25, ge=0)
    partial_credit: bool = False
    weighted_questions: bool = False
    passing_score: float = Field(default=60.0, ge=0, le=100)
    grade_scale: LetterGradeScale = LetterGradeScale.STANDARD

    def to_domain(self) -> GradingOptions:
        return GradingOptions(**self.model_dump())


class ExamConfigRequest(BaseModel):
    exam_id: str = ""
    exam_title: str = ""
    questions: List[QuestionSchema] = Field(..., min_length=1)
    template: Optional[TemplateSchema] = Field(default=None, description="Defaults to one row per question")
    options: Optional[GradingOptionsSchema] = Field(default=None, description="Defaults to server settings")


# ===== OCR / Parsing Schemas =====
class BoundingBoxSchema(BaseModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class OcrRegionSchema(BaseModel):
    text: str = ""
    confidence: float = Field(default=0.0, ge=0, le=1)
    line_number: int = 0
    bounding_box: BoundingBoxSchema = Field(default_factory=BoundingBoxSchema)


class OcrResultSchema(BaseModel):
    success: bool = True
    raw_text: str = ""
    regions: List[OcrRegionSchema] = []
    overall_confidence: float = 0.0
    error_message: Optional[str] = None

    def to_domain(self) -> OcrResult:
        return OcrResult(
            success=self.success,
            raw_text=self.raw_text,
            regions=[
                OcrRegion(
                    text=r.text,
                    confidence=r.confidence,
                    line_number=r.line_number,
                    bounding_box=BoundingBox(**r.bounding_box.model_dump())
                )
                for r in self.regions
            ],
            overall_confidence=self.overall_confidence,
            error_message=self.error_message
        )


class StudentAnswerSchema(BaseModel):
    question_number: int = Field(..., ge=1)
    selected_answer: str = ""
    confidence: float = Field(default=1.0, ge=0, le=1)
    status: AnswerStatus = AnswerStatus.ANSWERED

    @classmethod
    def from_domain(cls, answer: StudentAnswer) -> "StudentAnswerSchema":
        return cls(
            question_number=answer.question_number,
            selected_answer=answer.selected_answer,
            confidence=answer.confidence,
            status=answer.status
        )

    def to_domain(self) -> StudentAnswer:
        return StudentAnswer(
            question_number=self.question_number,
            selected_answer=self.selected_answer,
            confidence=self.confidence,
            status=self.status
        )


class ParseRequest(BaseModel):
    ocr_result: OcrResultSchema
    student_id: Optional[str] = Field(default=None, description="Read from the sheet when omitted")
    student_name: Optional[str] = Field(default=None, description="Read from the sheet when omitted")


class ParseResponse(BaseModel):
    success: bool = True
    student_id: str = ""
    student_name: str = ""
    answers: List[StudentAnswerSchema] = []


# ===== Grading Schemas =====
class SheetRequest(BaseModel):
    """A sheet to grade: either parsed answers or raw OCR output"""
    student_id: str = ""
    student_name: str = ""
    answers: Optional[List[StudentAnswerSchema]] = None
    ocr_result: Optional[OcrResultSchema] = None

    @model_validator(mode="after")
    def require_answers_or_ocr(self) -> "SheetRequest":
        if self.answers is None and self.ocr_result is None:
            raise ValueError("Either answers or ocr_result is required")
        return self

    def to_domain(self) -> AnswerSheet:
        return AnswerSheet(
            student_id=self.student_id,
            student_name=self.student_name,
            answers=[a.to_domain() for a in self.answers or []]
        )


class BatchRequest(BaseModel):
    sheets: List[SheetRequest] = Field(..., min_length=1)


class BatchErrorSchema(BaseModel):
    student_id: str
    student_name: str
    error_message: str


class BatchResponse(BaseModel):
    success: bool
    message: str
    batch_id: str
    total_processed: int
    success_count: int
    error_count: int
    duration: float
    results: List[Dict[str, Any]] = []
    errors: List[BatchErrorSchema] = []


# ===== Config Schemas =====
class ConfigResponse(BaseModel):
    default_total_questions: int
    default_answer_options: List[str]
    default_exam_format: str
    grading_options: GradingOptionsSchema
    report_formats: List[str]

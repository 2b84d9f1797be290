"""
Grading API routes
Exam configuration, sheet parsing/grading, analytics and reports
"""
from fastapi import APIRouter, Query
from fastapi.responses import Response

from exam_reader.core import Messages
from exam_reader.grader import AnswerSheet, PendingSheet
from exam_reader.schemas import (
    BatchErrorSchema,
    BatchRequest,
    BatchResponse,
    ExamConfigRequest,
    ParseRequest,
    ParseResponse,
    SheetRequest,
    StudentAnswerSchema,
)
from exam_reader.services import grading_service

router = APIRouter()


def _to_sheet(request: SheetRequest) -> AnswerSheet:
    """Use supplied answers, or parse the OCR output when only that is given"""
    if request.answers is None and request.ocr_result is not None:
        return grading_service.parse_sheet(
            request.ocr_result.to_domain(),
            student_id=request.student_id or None,
            student_name=request.student_name or None
        )
    return request.to_domain()


def _to_batch_item(request: SheetRequest):
    """OCR-only sheets are parsed by the batch itself, one at a time"""
    if request.answers is None:
        return PendingSheet(
            load=lambda: _to_sheet(request),
            student_id=request.student_id,
            student_name=request.student_name
        )
    return request.to_domain()


@router.post("/exam")
async def configure_exam(request: ExamConfigRequest):
    """
    Configure the answer key, sheet template and grading options
    """
    grading_service.configure_exam(
        [q.to_domain() for q in request.questions],
        exam_id=request.exam_id,
        exam_title=request.exam_title,
        template=request.template.to_domain() if request.template else None,
        options=request.options.to_domain() if request.options else None
    )
    return {
        "success": True,
        "message": Messages.EXAM_CONFIGURED,
        "exam": grading_service.get_exam()
    }


@router.get("/exam")
async def get_exam():
    """
    Get the current exam configuration
    """
    return grading_service.get_exam()


@router.post("/parse", response_model=ParseResponse)
async def parse_sheet(request: ParseRequest):
    """
    Parse OCR output into per-question answers without grading
    """
    sheet = grading_service.parse_sheet(
        request.ocr_result.to_domain(),
        student_id=request.student_id,
        student_name=request.student_name
    )
    return ParseResponse(
        student_id=sheet.student_id,
        student_name=sheet.student_name,
        answers=[StudentAnswerSchema.from_domain(a) for a in sheet.answers]
    )


@router.post("/grade")
async def grade_sheet(request: SheetRequest):
    """
    Grade one answer sheet
    """
    result = grading_service.grade_sheet(_to_sheet(request))
    return {
        "success": True,
        "message": Messages.SHEET_GRADED,
        "result": result.to_dict()
    }


@router.post("/batch", response_model=BatchResponse)
async def grade_batch(request: BatchRequest):
    """
    Grade many sheets; failures are reported per sheet
    """
    sheets = [_to_batch_item(s) for s in request.sheets]
    batch = await grading_service.grade_batch(sheets)
    return BatchResponse(
        success=not batch.has_errors,
        message=Messages.BATCH_COMPLETE_WITH_ERRORS if batch.has_errors else Messages.BATCH_COMPLETE,
        batch_id=batch.batch_id,
        total_processed=batch.total_processed,
        success_count=batch.success_count,
        error_count=batch.error_count,
        duration=batch.duration,
        results=[r.to_dict() for r in batch.results],
        errors=[
            BatchErrorSchema(
                student_id=e.student_id,
                student_name=e.student_name,
                error_message=e.error_message
            )
            for e in batch.errors
        ]
    )


@router.get("/results")
async def get_results():
    """
    Get all graded results in the session
    """
    results = grading_service.get_results()
    return {
        "total": len(results),
        "results": [r.to_dict() for r in results]
    }


@router.get("/results/{student_id}")
async def get_student_result(student_id: str):
    """
    Get one student's result together with their rank and percentile
    """
    result = grading_service.get_student_result(student_id)
    stats = grading_service.get_student_analytics(student_id)
    return {
        "result": result.to_dict(),
        "rank": stats.rank,
        "percentile": stats.percentile,
        "z_score": stats.z_score
    }


@router.get("/analytics")
async def get_analytics():
    """
    Class statistics, item analysis and rankings
    """
    return grading_service.analyze().to_dict()


@router.get("/export/{fmt}")
async def export_report(fmt: str, save: bool = Query(default=False)):
    """
    Download a report (json, csv or xlsx)
    """
    content, media_type, filename = grading_service.export_report(fmt, save=save)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/demo")
async def load_demo(use_ocr: bool = Query(default=False)):
    """
    Load the sample exam and grade its students
    """
    batch = grading_service.load_demo(use_ocr=use_ocr)
    return {
        "success": True,
        "message": Messages.DEMO_LOADED,
        "exam": grading_service.get_exam(),
        "batch": batch.summary()
    }


@router.delete("/session")
async def clear_session():
    """
    Drop the current exam and all results
    """
    grading_service.clear()
    return {"success": True, "message": Messages.SESSION_CLEARED}

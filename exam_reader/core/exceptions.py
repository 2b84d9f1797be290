"""
Custom exceptions for the Exam Reader API and grading pipeline
"""
import threading
from typing import Optional

from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base exception for all API errors"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str = None,
        headers: dict = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundException(BaseAPIException):
    """Resource not found"""

    def __init__(self, resource: str, identifier: str = None):
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class BadRequestException(BaseAPIException):
    """Bad request - invalid input"""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
            error_code="BAD_REQUEST"
        )


class ExamReaderError(Exception):
    """Base class for grading pipeline errors"""


class InvalidAnswerKeyError(ExamReaderError, ValueError):
    """Answer key has duplicate or out-of-range question numbers"""


class ExamNotConfiguredError(ExamReaderError):
    """An operation needs an exam but none is configured"""


class SheetReadError(ExamReaderError):
    """OCR output for a sheet could not be read"""


class OperationCancelledError(Exception):
    """Raised when a cooperative cancellation signal has been set"""


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    """Raise OperationCancelledError if the given event is set"""
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError("Operation was cancelled")

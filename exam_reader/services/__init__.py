# Services package
from .grading_service import grading_service, GradingService

__all__ = [
    "grading_service",
    "GradingService",
]

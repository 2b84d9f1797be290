# Exam Reader package
"""
Exam Reader - answer sheet parsing, grading and exam analytics
"""

from .config import settings

__version__ = "1.0.0"

__all__ = [
    "settings",
]

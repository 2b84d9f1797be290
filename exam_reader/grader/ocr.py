"""
OCR Providers Module
Interface for text-recognition back-ends plus a deterministic demo provider
"""
import asyncio
import random
import threading
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
import logging

from ..core.exceptions import check_cancelled
from .demo_data import SAMPLE_STUDENTS, SampleStudent
from .models import BoundingBox, OcrRegion, OcrResult

logger = logging.getLogger(__name__)

DEMO_PROVIDER_NAME = "Demo OCR"

# Chance per answer line of an unreadable or empty read
UNCLEAR_READ_RATE = 0.02
EMPTY_READ_RATE = 0.03


class OcrProvider(ABC):
    """
    Abstract base class for OCR back-ends.
    Turns an answer sheet image into raw text plus per-line regions.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name"""
        pass

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    def process_image(self, image_data: bytes) -> OcrResult:
        """
        Recognize text on one answer sheet.

        Args:
            image_data: Encoded image bytes

        Returns:
            OcrResult with raw text and regions
        """
        pass

    async def process_image_async(
        self,
        image_data: bytes,
        cancel_event: Optional[threading.Event] = None
    ) -> OcrResult:
        check_cancelled(cancel_event)
        return await asyncio.to_thread(self.process_image, image_data)


def _confidence(rng: random.Random, low: float, high: float) -> float:
    return low + rng.random() * (high - low)


class DemoOcrProvider(OcrProvider):
    """
    Produces bubble-sheet OCR output for built-in sample students.

    Image bytes are ignored; each call renders the next student in turn.
    Output is seeded by student id, so a student always reads the same way.
    """

    def __init__(self, students: Optional[Sequence[SampleStudent]] = None):
        self.students = list(students) if students is not None else list(SAMPLE_STUDENTS)
        self._index = 0
        self._lock = threading.Lock()

    @property
    def provider_name(self) -> str:
        return DEMO_PROVIDER_NAME

    def process_image(self, image_data: bytes) -> OcrResult:
        with self._lock:
            student = self.students[self._index % len(self.students)]
            self._index += 1

        started = time.perf_counter()
        result = self.render_sheet(student.name, student.student_id, student.answer_list)
        result.processing_time = time.perf_counter() - started

        logger.info(f"Demo OCR generated result for student {student.name} ({student.student_id})")
        return result

    @staticmethod
    def render_sheet(name: str, student_id: str, answers: List[str]) -> OcrResult:
        """Render one student's answers as `Q<n>: [X]` lines with regions"""
        rng = random.Random(student_id)
        lines = []
        regions = []

        def add_line(text: str, confidence: float, box: BoundingBox):
            lines.append(text)
            regions.append(OcrRegion(
                text=text,
                confidence=confidence,
                line_number=len(lines),
                bounding_box=box
            ))

        add_line(f"Student Name: {name}", _confidence(rng, 0.92, 0.99),
                 BoundingBox(x=50, y=30, width=400, height=25))
        add_line(f"Student ID: {student_id}", _confidence(rng, 0.95, 0.99),
                 BoundingBox(x=50, y=60, width=300, height=25))
        add_line("---", 0.99, BoundingBox(x=50, y=95, width=500, height=5))

        y = 120.0
        for number, answer in enumerate(answers, start=1):
            confidence = _confidence(rng, 0.85, 0.99)
            if rng.random() < UNCLEAR_READ_RATE:
                text = f"Q{number}: [?]"
                confidence = _confidence(rng, 0.30, 0.50)
            elif rng.random() < EMPTY_READ_RATE or not answer:
                text = f"Q{number}: [ ]"
                confidence = _confidence(rng, 0.70, 0.85)
            else:
                text = f"Q{number}: [{answer}]"

            add_line(text, confidence, BoundingBox(x=60, y=y, width=200, height=20))
            y += 25

        return OcrResult(
            success=True,
            raw_text="\n".join(lines) + "\n",
            regions=regions,
            overall_confidence=sum(r.confidence for r in regions) / len(regions),
            provider_used=DEMO_PROVIDER_NAME
        )

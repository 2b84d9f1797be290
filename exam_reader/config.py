"""
Configuration settings for the Exam Reader backend
"""
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    """Application settings using pydantic-settings"""

    # Server settings
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    DEBUG: bool = True

    # CORS settings
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Project paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    EXPORTS_DIR: Path = PROJECT_ROOT / "exports"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False

    # Answer sheet defaults
    DEFAULT_TOTAL_QUESTIONS: int = 30
    DEFAULT_ANSWER_OPTIONS: List[str] = ["A", "B", "C", "D"]
    DEFAULT_EXAM_FORMAT: str = "BubbleSheet"

    # Grading defaults
    NEGATIVE_MARKING: bool = False
    NEGATIVE_PENALTY: float = 0.25
    PARTIAL_CREDIT: bool = False
    WEIGHTED_QUESTIONS: bool = False
    PASSING_SCORE: float = 60.0
    GRADE_SCALE: str = "Standard"

    class Config:
        env_file = ".env"
        extra = "allow"

    def ensure_directories(self) -> None:
        """Create data, log and export directories"""
        for directory in (self.DATA_DIR, self.LOGS_DIR, self.EXPORTS_DIR):
            directory.mkdir(parents=True, exist_ok=True)


settings = Settings()

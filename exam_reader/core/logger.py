"""
Logging utilities for the Exam Reader.
"""
import logging
import sys
from datetime import datetime
from ..config import settings


def setup_logger(name: str, log_file: str = None, level=None, console: bool = True) -> logging.Logger:
    """
    Setup logger with console and optional file handlers

    Args:
        name: Logger name
        log_file: Optional log file name, written under LOGS_DIR when LOG_TO_FILE is on
        level: Logging level (defaults to settings.LOG_LEVEL)
        console: Attach a stdout handler; child loggers leave this to their parent

    Returns:
        Configured logger
    """
    if level is None:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file and settings.LOG_TO_FILE:
        settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.LOGS_DIR / log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Package root logger; every module logs through a child of it
logger = setup_logger(
    'exam_reader',
    f'exam_reader_{datetime.now().strftime("%Y%m%d")}.log'
)

# Grader pipeline also gets its own log file; console output comes from the parent
grading_logger = setup_logger(
    'exam_reader.grader',
    f'grading_{datetime.now().strftime("%Y%m%d")}.log',
    console=False
)

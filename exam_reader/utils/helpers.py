"""
Utility functions for the application
"""
import logging
from pathlib import Path
from datetime import datetime
from typing import Union

logger = logging.getLogger(__name__)


def ensure_directory(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, create if not"""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def generate_timestamp_id(prefix: str = "") -> str:
    """Generate a unique ID based on timestamp"""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if prefix:
        return f"{prefix}_{timestamp}"
    return timestamp


def safe_filename(filename: str) -> str:
    """Make filename safe for filesystem"""
    unsafe_chars = '<>:"/\\|?* '
    for char in unsafe_chars:
        filename = filename.replace(char, "_")
    return filename

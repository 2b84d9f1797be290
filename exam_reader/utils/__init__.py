# Utils package
from .helpers import (
    ensure_directory,
    generate_timestamp_id,
    safe_filename,
)

__all__ = [
    "ensure_directory",
    "generate_timestamp_id",
    "safe_filename",
]

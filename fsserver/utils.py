"""
Utility functions for fsserver
"""

import re
import logging

logger = logging.getLogger(__name__)

_SIZE_UNITS = {
    "": 1,
    "K": 1024,
    "M": 1024 ** 2,
    "G": 1024 ** 3,
    "T": 1024 ** 4,
}

_SIZE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*([KMGT]?)B?\s*$', re.IGNORECASE)


def parse_size_to_bytes(size: str) -> int:
    """
    Parse a human readable size into bytes

    Accepts plain integers ("1024") and values with a binary unit suffix
    ("10M", "512k", "1.5G", "2GB").

    Raises:
        ValueError: If the value cannot be parsed
    """
    match = _SIZE_PATTERN.match(str(size))
    if not match:
        raise ValueError(f"Invalid size: {size!r}")

    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit.upper()])


def format_file_size(size_bytes: int) -> str:
    """Render a byte count with the same binary units parse_size_to_bytes accepts"""
    for unit in ("", "K", "M", "G"):
        if size_bytes < 1024:
            break
        size_bytes /= 1024
    else:
        unit = "T"
    if unit == "":
        return f"{int(size_bytes)}B"
    return f"{size_bytes:.1f}{unit}"


def validate_filename(filename: str) -> bool:
    """Check that a name refers to a single file and not a path"""
    if not filename or filename in ('.', '..'):
        return False

    # Path separators would escape the storage root
    if '/' in filename or '\\' in filename:
        return False

    # Check for control characters
    if any(ord(char) < 32 or ord(char) == 127 for char in filename):
        return False

    return True


def format_duration(seconds: float) -> str:
    """Request duration for access log lines, in milliseconds"""
    return f"{seconds * 1000:.1f}ms"

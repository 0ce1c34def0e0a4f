"""
Percent-tag placeholders for format strings.

A format string such as ``<a href="%file_url%">%file_name%</a>`` is rendered
by replacing each known tag with a value computed from the resolved file.
"""

import re
from typing import Dict, List

from ..models.file_query import ResolvedFile


FILE_DIRECTORY = '%file_directory%'
FILE_EXTENSION = '%file_extension%'
FILE_NAME = '%file_name%'
FILE_PATH = '%file_path%'
FILE_SIZE = '%file_size%'
FILE_SIZE_BYTES = '%file_size_bytes%'
FILE_URL = '%file_url%'

PLACEHOLDERS: List[str] = [
    FILE_DIRECTORY,
    FILE_EXTENSION,
    FILE_NAME,
    FILE_PATH,
    FILE_SIZE,
    FILE_SIZE_BYTES,
    FILE_URL,
]

# Tags are literals; a single pass keeps substituted values from being re-scanned.
_PLACEHOLDER_RE = re.compile('|'.join(re.escape(tag) for tag in PLACEHOLDERS))

SIZE_UNITS = [
    ('TB', 1024 ** 4),
    ('GB', 1024 ** 3),
    ('MB', 1024 ** 2),
    ('KB', 1024),
    ('B', 1),
]


def format_size(size_bytes: int, decimals: int = 2) -> str:
    """
    Format a byte count with binary units.

    The value is rounded to ``decimals`` places with thousands separators and
    a trailing ``.00`` is dropped, so 1048576 bytes renders as ``1 MB`` and
    1536 bytes as ``1.50 KB``.

    Args:
        size_bytes: Size in bytes
        decimals: Number of decimal places

    Returns:
        Human-readable size
    """
    if size_bytes < 0:
        raise ValueError(f"Size cannot be negative: {size_bytes}")

    for unit, magnitude in SIZE_UNITS:
        if size_bytes >= magnitude:
            text = f"{size_bytes / magnitude:,.{decimals}f} {unit}"
            break
    else:
        text = f"{0:,.{decimals}f} B"

    return text.replace('.' + '0' * decimals, '') if decimals else text


def build_placeholder_values(resolved: ResolvedFile, url: str) -> Dict[str, str]:
    """
    Compute the value of every placeholder for an existing file.

    Args:
        resolved: The resolved file, including its size
        url: Public URL of the file

    Returns:
        Mapping of placeholder tag to replacement text
    """
    if resolved.size_bytes is None:
        raise ValueError(f"Cannot describe a file that was not found: {resolved.full_path}")

    return {
        FILE_DIRECTORY: resolved.directory,
        FILE_EXTENSION: resolved.extension,
        FILE_NAME: resolved.basename,
        FILE_PATH: resolved.full_path,
        FILE_SIZE: format_size(resolved.size_bytes),
        FILE_SIZE_BYTES: str(resolved.size_bytes),
        FILE_URL: url,
    }


def render_format(format_string: str, values: Dict[str, str]) -> str:
    """
    Replace every known placeholder in a format string.

    Unknown percent tags are left alone.

    Args:
        format_string: Text containing placeholder tags
        values: Mapping of placeholder tag to replacement text

    Returns:
        Rendered text
    """
    if '%' not in format_string:
        return format_string
    return _PLACEHOLDER_RE.sub(lambda match: values.get(match.group(0), match.group(0)), format_string)


def find_placeholders(format_string: str) -> List[str]:
    """Get the placeholder tags used in a format string, in order of appearance."""
    return _PLACEHOLDER_RE.findall(format_string)

"""
Validation helpers for knowledge-base uploads.
"""
from dataclasses import dataclass
from typing import Optional

from autocrew_core.config import shared_settings

ALLOWED_MIME_TYPES = (
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",  # DOCX
    "text/plain",
    "text/markdown",
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # XLSX
)

MIME_TYPE_LABELS = {
    "application/pdf": "PDF",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
    "text/plain": "Text",
    "text/markdown": "Markdown",
    "text/csv": "CSV",
    "application/vnd.ms-excel": "Excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "Excel",
}


@dataclass
class FileValidationResult:
    valid: bool
    error: Optional[str] = None


def validate_file(
    filename: Optional[str],
    content_type: Optional[str],
    size: int,
    max_size: Optional[int] = None,
) -> FileValidationResult:
    """
    Validate an uploaded file by size and MIME type.

    Args:
        filename: Original filename
        content_type: MIME type reported by the client
        size: File size in bytes
        max_size: Override for the configured MAX_UPLOAD_FILE_SIZE

    Returns:
        FileValidationResult with an error message when invalid
    """
    if filename is None:
        return FileValidationResult(valid=False, error="No file provided")

    max_size = max_size if max_size is not None else shared_settings.MAX_UPLOAD_FILE_SIZE

    if size > max_size:
        size_mb = size / (1024 * 1024)
        max_mb = max_size / (1024 * 1024)
        return FileValidationResult(
            valid=False,
            error=f"File size ({size_mb:.2f} MB) exceeds maximum allowed size of {max_mb:.0f} MB",
        )

    if size == 0:
        return FileValidationResult(valid=False, error="File is empty")

    if content_type not in ALLOWED_MIME_TYPES:
        shown = content_type or get_file_extension(filename)
        return FileValidationResult(
            valid=False,
            error=f'File type "{shown}" is not supported. Allowed types: PDF, DOCX, TXT, MD, CSV, XLSX',
        )

    return FileValidationResult(valid=True)


def get_file_extension(filename: str) -> str:
    """Return the lowercase extension without the dot, or "" when there is none."""
    last_dot = filename.rfind(".")
    if last_dot == -1 or last_dot == len(filename) - 1:
        return ""
    return filename[last_dot + 1:].lower()


def format_file_size(size: int) -> str:
    """Format a byte count as e.g. "1.5 MB" or "245 KB"."""
    if size == 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    while size >= 1024 ** (index + 1) and index < len(units) - 1:
        index += 1
    value = round(size / (1024 ** index), 2)
    if value == int(value):
        value = int(value)
    return f"{value} {units[index]}"


def get_mime_type_label(mime_type: str) -> str:
    return MIME_TYPE_LABELS.get(mime_type, mime_type)

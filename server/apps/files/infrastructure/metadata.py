"""Metadata utilities for declared files."""

import mimetypes
from typing import Final

from django.core.exceptions import ValidationError

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_NAME_MAX_LENGTH: Final = 255
_FORBIDDEN_NAME_CHARS: Final = frozenset('/\\\x00')


def detect_mime_type(filename: str) -> str:
    """Guess MIME type from filename.

    Uses Python's built-in mimetypes module to guess MIME type
    from filename extension. The bytes never reach the server, so
    content sniffing is not possible.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def resolve_mime_type(filename: str, declared: str) -> str:
    """Pick the content type for an upload.

    Args:
        filename: Filename with extension.
        declared: Content type sent by the client, may be empty.

    Returns:
        The declared type, or a guess from the extension.
    """
    declared = declared.strip()
    if declared:
        return declared
    return detect_mime_type(filename)


def validate_file_name(name: str) -> str:
    """Validate a client-supplied file name.

    File names are display metadata only (the object key is the file
    ID), but they must be a single path component.

    Args:
        name: Proposed file name.

    Returns:
        The name stripped of surrounding whitespace.

    Raises:
        ValidationError: If the name is empty, too long or contains
            path separators.
    """
    name = name.strip()
    if not name:
        raise ValidationError('name is required')

    if len(name) > _NAME_MAX_LENGTH:
        raise ValidationError(
            f'name must be at most {_NAME_MAX_LENGTH} characters',
        )

    if _FORBIDDEN_NAME_CHARS.intersection(name) or name in {'.', '..'}:
        raise ValidationError('name must not contain path separators')

    return name


"""Choosing how a file gets uploaded.

Small files go up in a single presigned PUT. Files at or above the
multipart threshold are split into client-sized chunks, each with its
own presigned URL, within the object store's part ceiling.
"""

import enum
from dataclasses import dataclass
from typing import Final

from django.conf import settings
from django.core.exceptions import ValidationError

from server.apps.files.exceptions import PartLimitExceededError

_MIB: Final = 1024 * 1024

DEFAULT_MULTIPART_THRESHOLD: Final = 100 * _MIB
DEFAULT_MAX_PARTS: Final = 10000
DEFAULT_MAX_FILE_SIZE: Final = 1024 * 1024 * _MIB


class UploadStrategy(enum.StrEnum):
    """How the bytes of a file are transferred."""

    SINGLE = 'single'
    MULTIPART = 'multipart'


@dataclass(frozen=True, slots=True)
class UploadPlan:
    """Outcome of planning an upload."""

    strategy: UploadStrategy
    part_count: int
    chunk_size: int | None = None


def get_multipart_threshold() -> int:
    """Get the size at which uploads switch to multipart.

    Returns:
        Threshold in bytes from settings or default of 100 MiB.
    """
    return getattr(
        settings,
        'FILES_MULTIPART_THRESHOLD',
        DEFAULT_MULTIPART_THRESHOLD,
    )


def get_max_parts() -> int:
    """Get the maximum number of parts in one multipart upload.

    Returns:
        Part ceiling from settings or default of 10000.
    """
    return getattr(settings, 'FILES_MAX_PARTS', DEFAULT_MAX_PARTS)


def get_max_file_size() -> int:
    """Get the largest size a client may declare.

    Returns:
        Size in bytes from settings or default of 1 TiB.
    """
    return getattr(settings, 'FILES_MAX_FILE_SIZE', DEFAULT_MAX_FILE_SIZE)


def plan(declared_size: int, chunk_size: int | None = None) -> UploadPlan:
    """Decide between a single transfer and a multipart partition.

    Args:
        declared_size: File size declared by the client, in bytes.
        chunk_size: Part size chosen by the client, required for
            multipart uploads.

    Returns:
        UploadPlan with the strategy and number of parts.

    Raises:
        ValidationError: If the size is out of range or a multipart
            upload lacks a positive chunk size.
        PartLimitExceededError: If the partition needs too many parts.
    """
    if declared_size <= 0:
        raise ValidationError('declaredSize must be a positive integer')

    max_file_size = get_max_file_size()
    if declared_size > max_file_size:
        raise ValidationError(
            f'declaredSize exceeds the maximum of {max_file_size} bytes',
        )

    if declared_size < get_multipart_threshold():
        return UploadPlan(strategy=UploadStrategy.SINGLE, part_count=1)

    if chunk_size is None or chunk_size <= 0:
        raise ValidationError('chunkSize is required for multipart uploads')

    # Ceiling division in integers, floats lose precision near 1 TiB
    part_count = -(-declared_size // chunk_size)
    max_parts = get_max_parts()
    if part_count > max_parts:
        raise PartLimitExceededError(part_count, max_parts)

    return UploadPlan(
        strategy=UploadStrategy.MULTIPART,
        part_count=part_count,
        chunk_size=chunk_size,
    )

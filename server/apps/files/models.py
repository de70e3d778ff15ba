"""Database models for files app."""

import uuid
from pathlib import Path
from typing import ClassVar, Final, final, override

from django.db import models

# Constants for field max lengths
_OWNER_ID_MAX_LENGTH: Final = 255
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_UPLOAD_ID_MAX_LENGTH: Final = 1024


class FileStatus(models.TextChoices):
    """Lifecycle of a file record.

    Status lifecycle:
        pending → uploading → completed
        pending → completed (single-part, confirmed by the object store)
        pending | uploading → abandoned (stale, reclaimed by the sweeper)
    """

    PENDING = 'pending', 'Pending'
    UPLOADING = 'uploading', 'Uploading'
    COMPLETED = 'completed', 'Completed'
    ABANDONED = 'abandoned', 'Abandoned'


# Allowed forward transitions, status never moves backward
_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    FileStatus.PENDING: frozenset((
        FileStatus.UPLOADING,
        FileStatus.COMPLETED,
        FileStatus.ABANDONED,
    )),
    FileStatus.UPLOADING: frozenset((
        FileStatus.COMPLETED,
        FileStatus.ABANDONED,
    )),
    FileStatus.COMPLETED: frozenset(),
    FileStatus.ABANDONED: frozenset(),
}

# Statuses the sweeper may still reclaim
OPEN_STATUSES: Final = (FileStatus.PENDING, FileStatus.UPLOADING)


def can_transition(current: str, target: str) -> bool:
    """Check whether ``current`` may advance to ``target``.

    Args:
        current: Status the record is in.
        target: Status the caller wants to set.

    Returns:
        True if the transition moves forward in the lifecycle.
    """
    return target in _TRANSITIONS.get(current, frozenset())


@final
class File(models.Model):
    """Metadata for one logical file stored in S3-compatible storage.

    The bytes never pass through Django: clients upload and download
    directly with presigned URLs. The object key in the bucket is the
    ``file_id`` itself.
    """

    file_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    # Identity subject of the owner, set once at creation
    owner_id = models.CharField(
        max_length=_OWNER_ID_MAX_LENGTH,
        db_index=True,
        editable=False,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    # Client-declared until the object store reports the stored size
    declared_size = models.BigIntegerField(
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='Content type declared by the client',
    )

    status = models.CharField(
        max_length=16,
        choices=FileStatus.choices,
        default=FileStatus.PENDING,
        db_index=True,
    )

    # Multipart session handle, blank for single-part uploads
    upload_id = models.CharField(
        max_length=_UPLOAD_ID_MAX_LENGTH,
        blank=True,
        default='',
    )

    part_count = models.PositiveIntegerField(default=0)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at']

        indexes: ClassVar[list[models.Index]] = [
            # Optimize listing a user's files
            models.Index(
                fields=['owner_id', '-created_at'],
                name='files_owner_recent_idx',
            ),
            # Optimize stale upload sweeps
            models.Index(
                fields=['status', 'updated_at'],
                name='files_status_updated_idx',
            ),
        ]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.CheckConstraint(
                condition=models.Q(declared_size__gte=0),
                name='declared_size_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.name} ({self.status})'

    @property
    def storage_key(self) -> str:
        """Object key of the file's bytes in the bucket."""
        return str(self.file_id)

    @property
    def is_multipart(self) -> bool:
        """Whether the file is uploaded through a multipart session."""
        return bool(self.upload_id)

    def get_extension(self) -> str:
        """Extract file extension.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        extension = Path(self.name).suffix
        return extension.lstrip('.').lower()

    def to_dict(self) -> dict[str, object]:
        """Serialize the record for API responses.

        Returns:
            JSON-ready dictionary with ISO-8601 timestamps.
        """
        return {
            'fileID': self.storage_key,
            'ownerID': self.owner_id,
            'name': self.name,
            'declaredSize': self.declared_size,
            'mimeType': self.mime_type,
            'status': self.status,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }

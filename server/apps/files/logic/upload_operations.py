"""Business logic for presigned uploads.

An upload is a two-step conversation with the client:

1. ``UploadSessionManager.begin_upload`` stores a pending record and
   hands out one presigned PUT URL, or a multipart session with one
   presigned URL per part.
2. ``CompletionValidator.complete`` assembles the uploaded parts once
   the client reports their ETags, and marks the record completed.

Single-part uploads have no completion call; the object-created event
handled in ``reconcile_operations`` confirms them.
"""

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Final, final

from django.conf import settings
from django.core.exceptions import ValidationError

from server.apps.files.exceptions import (
    UploadAlreadyCompletedError,
    UploadStateError,
)
from server.apps.files.infrastructure.metadata import (
    resolve_mime_type,
    validate_file_name,
)
from server.apps.files.infrastructure.protocols import (
    MetadataRepository,
    ObjectStoreGateway,
)
from server.apps.files.logic.ownership import authorize
from server.apps.files.logic.upload_planner import UploadStrategy, plan
from server.apps.files.models import File, FileStatus

logger = logging.getLogger(__name__)

_DEFAULT_UPLOAD_URL_TTL: Final = 15 * 60
_DEFAULT_PART_URL_TTL: Final = 24 * 60 * 60

COMPLETED_MESSAGE: Final = 'Upload completed successfully'


@dataclass(frozen=True, slots=True)
class SingleUploadPlan:
    """Client-facing plan for a single-request upload."""

    file_id: str
    upload_url: str

    def to_dict(self) -> dict[str, object]:
        """Serialize for the API response."""
        return {'uploadURL': self.upload_url, 'fileID': self.file_id}


@dataclass(frozen=True, slots=True)
class UploadSession:
    """Client-facing plan for a multipart upload.

    ``part_urls[i]`` uploads part number ``i + 1``.
    """

    file_id: str
    upload_id: str
    part_count: int
    chunk_size: int
    part_urls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Serialize for the API response."""
        return {
            'uploadID': self.upload_id,
            'fileID': self.file_id,
            'partURLs': list(self.part_urls),
        }


@dataclass(frozen=True, slots=True, order=True)
class PartCompletion:
    """One uploaded part as reported by the client."""

    part_number: int
    etag: str


@dataclass(frozen=True, slots=True)
class Confirmation:
    """Result of a successful completion."""

    file_id: str
    message: str = COMPLETED_MESSAGE

    def to_dict(self) -> dict[str, object]:
        """Serialize for the API response."""
        return {'fileID': self.file_id, 'message': self.message}


def get_upload_url_ttl() -> int:
    """Get the lifetime of single-part upload URLs.

    Returns:
        Seconds from settings or default of 15 minutes.
    """
    return getattr(settings, 'FILES_UPLOAD_URL_TTL', _DEFAULT_UPLOAD_URL_TTL)


def get_part_url_ttl() -> int:
    """Get the lifetime of multipart part URLs.

    Returns:
        Seconds from settings or default of 24 hours.
    """
    return getattr(settings, 'FILES_PART_URL_TTL', _DEFAULT_PART_URL_TTL)


@final
class UploadSessionManager:
    """Creates file records and the URLs clients upload through."""

    def __init__(
        self,
        records: MetadataRepository,
        storage: ObjectStoreGateway,
    ) -> None:
        """Initialize the manager.

        Args:
            records: Record store for file metadata.
            storage: Object store gateway.
        """
        self._records = records
        self._storage = storage

    def begin_upload(  # noqa: WPS211
        self,
        owner_id: str,
        name: str,
        mime_type: str,
        declared_size: int,
        chunk_size: int | None = None,
    ) -> SingleUploadPlan | UploadSession:
        """Start an upload for a new file.

        The plan is computed before anything is written, so rejected
        requests leave no trace. The record is stored before any URL is
        issued; if the object store then fails, the pending record stays
        behind for the stale upload sweeper.

        Args:
            owner_id: Identity subject of the uploader.
            name: Display name of the file.
            mime_type: Declared content type, guessed from name if empty.
            declared_size: File size declared by the client, in bytes.
            chunk_size: Part size, required for multipart uploads.

        Returns:
            SingleUploadPlan or UploadSession for the client.

        Raises:
            ValidationError: If the request is malformed.
            PartLimitExceededError: If the partition needs too many parts.
            UpstreamError: If a collaborator call fails.
        """
        name = validate_file_name(name)
        content_type = resolve_mime_type(name, mime_type)
        upload_plan = plan(declared_size, chunk_size)

        record = self._records.put(File(
            file_id=uuid.uuid4(),
            owner_id=owner_id,
            name=name,
            declared_size=declared_size,
            mime_type=content_type,
            status=FileStatus.PENDING,
        ))
        file_id = record.storage_key

        if upload_plan.strategy == UploadStrategy.SINGLE:
            upload_url = self._storage.presign_put(
                file_id,
                content_type,
                get_upload_url_ttl(),
            )
            logger.info(
                'Single-part upload started: %s (%d bytes)',
                file_id,
                declared_size,
            )
            return SingleUploadPlan(file_id=file_id, upload_url=upload_url)

        return self._begin_multipart(
            record,
            upload_plan.part_count,
            upload_plan.chunk_size or 0,
        )

    def _begin_multipart(
        self,
        record: File,
        part_count: int,
        chunk_size: int,
    ) -> UploadSession:
        file_id = record.storage_key
        upload_id = self._storage.create_multipart_session(
            file_id,
            record.mime_type,
        )

        # Keep the upload ID so stale sessions can be aborted later
        started = self._records.update_fields(
            file_id,
            {
                'status': FileStatus.UPLOADING,
                'upload_id': upload_id,
                'part_count': part_count,
            },
            expected_status=FileStatus.PENDING,
        )
        if not started:
            raise UploadStateError(
                file_id,
                FileStatus.PENDING,
                message=f'File {file_id} changed before its session started',
            )

        ttl = get_part_url_ttl()
        part_urls = [
            self._storage.presign_upload_part(
                file_id,
                upload_id,
                part_number,
                ttl,
            )
            for part_number in range(1, part_count + 1)
        ]

        logger.info(
            'Multipart upload started: %s (%d parts of %d bytes)',
            file_id,
            part_count,
            chunk_size,
        )
        return UploadSession(
            file_id=file_id,
            upload_id=upload_id,
            part_count=part_count,
            chunk_size=chunk_size,
            part_urls=part_urls,
        )


def order_parts(parts: Iterable[PartCompletion]) -> list[PartCompletion]:
    """Validate and sort the parts reported by a client.

    Args:
        parts: Parts in whatever order the client sent them.

    Returns:
        Parts sorted by ascending part number.

    Raises:
        ValidationError: If the set is empty, has duplicate numbers,
            gaps, non-positive numbers or blank ETags.
    """
    ordered = sorted(parts)
    if not ordered:
        raise ValidationError('parts are required')

    for part in ordered:
        if part.part_number < 1:
            raise ValidationError('partNumber must be a positive integer')
        if not part.etag:
            raise ValidationError(
                f'eTag is required for part {part.part_number}',
            )

    numbers = [part.part_number for part in ordered]
    if len(set(numbers)) != len(numbers):
        raise ValidationError('partNumber values must be unique')

    if numbers[-1] != len(numbers):
        raise ValidationError('partNumber values must be contiguous from 1')

    return ordered


@final
class CompletionValidator:
    """Finalizes multipart uploads reported complete by the client."""

    def __init__(
        self,
        records: MetadataRepository,
        storage: ObjectStoreGateway,
    ) -> None:
        """Initialize the validator.

        Args:
            records: Record store for file metadata.
            storage: Object store gateway.
        """
        self._records = records
        self._storage = storage

    def complete(
        self,
        owner_id: str,
        file_id: str,
        upload_id: str,
        parts: Sequence[PartCompletion],
    ) -> Confirmation:
        """Assemble the parts and mark the file completed.

        Completion is not repeatable: once the object store closed the
        session, a second call fails instead of silently succeeding.

        Args:
            owner_id: Identity subject of the caller.
            file_id: File being completed.
            upload_id: Multipart session handle.
            parts: Parts with their ETags, in any order.

        Returns:
            Confirmation carrying the file ID.

        Raises:
            ValidationError: If input is missing or inconsistent.
            File.DoesNotExist: If no record exists for ``file_id``.
            OwnershipError: If the caller does not own the file.
            UploadAlreadyCompletedError: If the upload was completed.
            UploadStateError: If the record has no open session.
            UpstreamError: If a collaborator call fails.
        """
        if not file_id or not upload_id or not parts:
            raise ValidationError('fileID, uploadID and parts are required')
        ordered = order_parts(parts)

        record = self._records.get(file_id)
        if record is None:
            logger.warning('File not found: %s', file_id)
            raise File.DoesNotExist(f'File {file_id} not found')

        record = authorize(record, owner_id).enforce()
        self._check_completable(record, upload_id)

        self._storage.complete_multipart(
            record.storage_key,
            upload_id,
            [(part.part_number, part.etag) for part in ordered],
        )

        completed = self._records.update_fields(
            record.storage_key,
            {'status': FileStatus.COMPLETED},
            expected_status=FileStatus.UPLOADING,
        )
        if not completed:
            # Someone else completed, abandoned or deleted it meanwhile
            raise UploadStateError(
                record.storage_key,
                record.status,
                message=f'File {record.storage_key} changed during completion',
            )

        logger.info(
            'Multipart upload completed for file: %s (%d parts)',
            record.storage_key,
            len(ordered),
        )
        return Confirmation(file_id=record.storage_key)

    def _check_completable(self, record: File, upload_id: str) -> None:
        if record.status == FileStatus.COMPLETED:
            raise UploadAlreadyCompletedError(record.storage_key)

        if record.status != FileStatus.UPLOADING:
            raise UploadStateError(record.storage_key, record.status)

        if record.upload_id and record.upload_id != upload_id:
            raise ValidationError('uploadID does not match the file upload')

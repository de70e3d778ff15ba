"""Record store adapter for file metadata."""

import logging
import uuid
from datetime import datetime
from typing import Any, final

from django.db import DatabaseError, transaction
from django.utils import timezone

from server.apps.files.exceptions import UploadStateError, UpstreamError
from server.apps.files.models import OPEN_STATUSES, File, can_transition

logger = logging.getLogger(__name__)


def _as_uuid(file_id: str | uuid.UUID) -> uuid.UUID | None:
    """Parse a file ID, returning None for malformed values."""
    if isinstance(file_id, uuid.UUID):
        return file_id
    try:
        return uuid.UUID(str(file_id))
    except ValueError:
        return None


@final
class FileRecordRepository:
    """Keyed store of ``File`` records.

    Wraps the ORM so orchestration logic never touches querysets
    directly. Every database failure surfaces as ``UpstreamError``.
    """

    def get(self, file_id: str | uuid.UUID) -> File | None:
        """Fetch a record by its ID.

        Args:
            file_id: File ID (malformed IDs are treated as missing).

        Returns:
            File instance, or None if no record exists.

        Raises:
            UpstreamError: If the database query fails.
        """
        pk = _as_uuid(file_id)
        if pk is None:
            return None
        try:
            return File.objects.filter(pk=pk).first()
        except DatabaseError as error:
            logger.exception('Failed to get file record: %s', file_id)
            raise UpstreamError('get_file', str(error)) from error

    def put(self, record: File) -> File:
        """Insert a new record.

        Args:
            record: Unsaved File instance.

        Returns:
            The saved File instance.

        Raises:
            UpstreamError: If the insert fails.
        """
        try:
            with transaction.atomic():
                record.save(force_insert=True)
        except DatabaseError as error:
            logger.exception('Failed to create file record: %s', record.pk)
            raise UpstreamError('put_file', str(error)) from error
        logger.info(
            'File record created: %s (owner: %s)',
            record.pk,
            record.owner_id,
        )
        return record

    def update_fields(
        self,
        file_id: str | uuid.UUID,
        fields: dict[str, Any],
        expected_status: str | None = None,
    ) -> bool:
        """Conditionally update a record.

        The update is a single ``UPDATE ... WHERE`` statement, so two
        concurrent callers expecting the same status cannot both win.
        A status change without ``expected_status`` is made conditional
        on the status the record is in when read.

        Args:
            file_id: File to update.
            fields: Column values to set, ``updated_at`` is refreshed.
            expected_status: Only update if the record is in this status.

        Returns:
            True if a row was updated, False on conflict or missing row.

        Raises:
            UploadStateError: If the new status would move the record
                backward in its lifecycle.
            UpstreamError: If the update fails.
        """
        target_status = fields.get('status')
        if target_status is not None:
            if expected_status is None:
                expected_status = self._current_status(file_id)
                if expected_status is None:
                    return False
            if not can_transition(expected_status, target_status):
                raise UploadStateError(
                    str(file_id),
                    expected_status,
                    message=f'Cannot move file {file_id} from '
                    f'{expected_status} to {target_status}',
                )

        queryset = File.objects.filter(pk=_as_uuid(file_id))
        if expected_status is not None:
            queryset = queryset.filter(status=expected_status)

        try:
            updated = queryset.update(**fields, updated_at=timezone.now())
        except DatabaseError as error:
            logger.exception('Failed to update file record: %s', file_id)
            raise UpstreamError('update_file', str(error)) from error

        if not updated:
            logger.warning(
                'Conditional update did not apply: %s (expected: %s)',
                file_id,
                expected_status,
            )
        return updated > 0

    def delete(self, file_id: str | uuid.UUID) -> bool:
        """Delete a record.

        Deleting through the instance keeps the change feed signals
        firing.

        Args:
            file_id: File to delete.

        Returns:
            True if the record existed and was deleted.

        Raises:
            UpstreamError: If the delete fails.
        """
        try:
            with transaction.atomic():
                record = File.objects.select_for_update().filter(
                    pk=_as_uuid(file_id),
                ).first()
                if record is None:
                    return False
                record.delete()
        except DatabaseError as error:
            logger.exception('Failed to delete file record: %s', file_id)
            raise UpstreamError('delete_file', str(error)) from error
        logger.info('File record deleted: %s', file_id)
        return True

    def list_by_owner(self, owner_id: str) -> list[File]:
        """List an owner's records, newest first.

        Args:
            owner_id: Identity subject of the owner.

        Returns:
            The owner's files.

        Raises:
            UpstreamError: If the query fails.
        """
        try:
            return list(
                File.objects.filter(owner_id=owner_id).order_by('-created_at'),
            )
        except DatabaseError as error:
            logger.exception('Failed to list files of owner: %s', owner_id)
            raise UpstreamError('list_files', str(error)) from error

    def list_stale(self, cutoff: datetime, batch_size: int) -> list[File]:
        """List pending and uploading records idle since before ``cutoff``.

        Args:
            cutoff: Records updated before this moment are stale.
            batch_size: Maximum number of records to return.

        Returns:
            Stale records, oldest first.

        Raises:
            UpstreamError: If the query fails.
        """
        try:
            return list(
                File.objects.filter(
                    status__in=OPEN_STATUSES,
                    updated_at__lt=cutoff,
                ).order_by('updated_at')[:batch_size],
            )
        except DatabaseError as error:
            logger.exception('Failed to list stale uploads before %s', cutoff)
            raise UpstreamError('list_stale', str(error)) from error

    def _current_status(self, file_id: str | uuid.UUID) -> str | None:
        try:
            return File.objects.filter(pk=_as_uuid(file_id)).values_list(
                'status',
                flat=True,
            ).first()
        except DatabaseError as error:
            logger.exception('Failed to read file status: %s', file_id)
            raise UpstreamError('get_file', str(error)) from error

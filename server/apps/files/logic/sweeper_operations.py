"""Business logic for reclaiming uploads that never finished."""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Final, final

from django.conf import settings
from django.utils import timezone

from server.apps.files.exceptions import UpstreamError
from server.apps.files.infrastructure.protocols import (
    MetadataRepository,
    ObjectStoreGateway,
)
from server.apps.files.models import File, FileStatus

logger = logging.getLogger(__name__)

_DEFAULT_STALE_AFTER: Final = 7 * 24 * 60 * 60
_DEFAULT_BATCH_SIZE: Final = 1000


@dataclass(slots=True)
class SweepResult:
    """Counts of one sweep."""

    abandoned: int = 0
    skipped: int = 0
    file_ids: list[str] = field(default_factory=list)


def get_stale_after() -> timedelta:
    """Get how long an unfinished upload may sit idle.

    Returns:
        Idle period from settings or default of 7 days.
    """
    seconds = getattr(settings, 'FILES_UPLOAD_STALE_AFTER', _DEFAULT_STALE_AFTER)
    return timedelta(seconds=seconds)


@final
class StaleUploadSweeper:
    """Moves stale uploads to the terminal ``abandoned`` state."""

    def __init__(
        self,
        records: MetadataRepository,
        storage: ObjectStoreGateway,
    ) -> None:
        """Initialize the sweeper.

        Args:
            records: Record store for file metadata.
            storage: Object store gateway.
        """
        self._records = records
        self._storage = storage

    def sweep(
        self,
        older_than: timedelta | None = None,
        batch_size: int = _DEFAULT_BATCH_SIZE,
        dry_run: bool = False,
    ) -> SweepResult:
        """Abandon uploads idle for longer than ``older_than``.

        Args:
            older_than: Idle period, defaults to ``FILES_UPLOAD_STALE_AFTER``.
            batch_size: Maximum number of records to process.
            dry_run: Only report what would be abandoned.

        Returns:
            SweepResult with counts and affected file IDs.
        """
        cutoff = timezone.now() - (older_than or get_stale_after())
        result = SweepResult()

        for record in self._records.list_stale(cutoff, batch_size):
            if dry_run:
                result.abandoned += 1
                result.file_ids.append(record.storage_key)
                continue

            if self._abandon(record):
                result.abandoned += 1
                result.file_ids.append(record.storage_key)
            else:
                result.skipped += 1

        logger.info(
            'Stale upload sweep: %d abandoned, %d skipped (cutoff: %s)',
            result.abandoned,
            result.skipped,
            cutoff.isoformat(),
        )
        return result

    def _abandon(self, record: File) -> bool:
        # Conditional, a completion that got there first keeps the record
        abandoned = self._records.update_fields(
            record.storage_key,
            {'status': FileStatus.ABANDONED},
            expected_status=record.status,
        )
        if not abandoned:
            return False

        if record.status == FileStatus.UPLOADING and record.is_multipart:
            try:
                self._storage.abort_multipart(
                    record.storage_key,
                    record.upload_id,
                )
            except UpstreamError:
                # Session may be gone already
                logger.exception(
                    'Failed to abort stale multipart upload: %s',
                    record.storage_key,
                )

        logger.info('Upload abandoned: %s', record.storage_key)
        return True

"""Business logic for object-created events from the object store.

The object store is authoritative for the stored size of an object.
When it reports a new object, the declared size on the record is
replaced with the real one, and single-part uploads (which have no
completion call) are marked completed.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, final
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from server.apps.files.infrastructure.protocols import MetadataRepository
from server.apps.files.models import FileStatus

logger = logging.getLogger(__name__)


class MalformedEventError(ValueError):
    """Raised when an event record lacks the object key or size."""


class S3ObjectSchema(BaseModel):
    """``s3.object`` of an event record, URL-encoded key and size."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    size: int = Field(ge=0)


class S3EntitySchema(BaseModel):
    """``s3`` entity of an event record."""

    model_config = ConfigDict(frozen=True)

    s3_object: S3ObjectSchema = Field(alias='object')


class EventRecordSchema(BaseModel):
    """One entry of an S3 event notification's ``Records`` list."""

    model_config = ConfigDict(frozen=True)

    s3: S3EntitySchema


class EventNotificationSchema(BaseModel):
    """S3 event notification document.

    Entries stay raw so one malformed record does not reject the batch.
    """

    records: list[Any] = Field(alias='Records')


@dataclass(frozen=True, slots=True)
class ObjectCreated:
    """Object key and stored size taken from one event record."""

    key: str
    size: int


def parse_event_record(record: Mapping[str, Any]) -> ObjectCreated:
    """Extract the created object from an S3 event notification record.

    Args:
        record: One entry of the notification's ``Records`` list.

    Returns:
        ObjectCreated with the decoded key and size.

    Raises:
        MalformedEventError: If key or size is missing or invalid.
    """
    try:
        s3_object = EventRecordSchema.model_validate(record).s3.s3_object
    except ValidationError as error:
        raise MalformedEventError(f'Invalid event record: {error}') from error

    return ObjectCreated(key=unquote_plus(s3_object.key), size=s3_object.size)


@final
class UploadReconciler:
    """Applies object-created events to file records."""

    def __init__(self, records: MetadataRepository) -> None:
        """Initialize the reconciler.

        Args:
            records: Record store for file metadata.
        """
        self._records = records

    def apply_object_created(
        self,
        event_records: Iterable[Mapping[str, Any]],
    ) -> int:
        """Reconcile file records with created objects.

        Malformed event records and objects without a file record are
        logged and skipped. Record store failures propagate so the event
        can be redelivered.

        Args:
            event_records: ``Records`` list of an S3 event notification.

        Returns:
            Number of file records updated.

        Raises:
            UpstreamError: If the record store fails.
        """
        updated = 0
        for event_record in event_records:
            try:
                created = parse_event_record(event_record)
            except MalformedEventError:
                logger.exception('Skipping malformed object-created event')
                continue

            if self._apply(created):
                updated += 1

        logger.info('Reconciled %d file records', updated)
        return updated

    def _apply(self, created: ObjectCreated) -> bool:
        record = self._records.get(created.key)
        if record is None:
            logger.warning('No file record for object: %s', created.key)
            return False

        size_fields = {'declared_size': created.size}
        if record.status == FileStatus.PENDING and not record.upload_id:
            # Single-part upload landed, nothing else will complete it
            if self._records.update_fields(
                created.key,
                {**size_fields, 'status': FileStatus.COMPLETED},
                expected_status=FileStatus.PENDING,
            ):
                logger.info('Single-part upload completed: %s', created.key)
                return True

        if record.status == FileStatus.ABANDONED:
            logger.warning('Object created for abandoned file: %s', created.key)
            return False

        applied = self._records.update_fields(created.key, size_fields)
        if applied:
            logger.info(
                'Recorded stored size for file %s: %d bytes',
                created.key,
                created.size,
            )
        return applied

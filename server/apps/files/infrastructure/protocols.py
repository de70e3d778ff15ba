"""Collaborator contracts used by the upload orchestration.

``FileRecordRepository`` and ``FileStorage`` implement these for
production; tests substitute in-memory fakes.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from server.apps.files.models import File


class MetadataRepository(Protocol):
    """Durable keyed store of file records."""

    def get(self, file_id: str | uuid.UUID) -> File | None:
        """Fetch a record, None if missing."""

    def put(self, record: File) -> File:
        """Insert a new record."""

    def update_fields(
        self,
        file_id: str | uuid.UUID,
        fields: dict[str, Any],
        expected_status: str | None = None,
    ) -> bool:
        """Update a record if it is in ``expected_status``."""

    def delete(self, file_id: str | uuid.UUID) -> bool:
        """Delete a record, False if it did not exist."""

    def list_by_owner(self, owner_id: str) -> list[File]:
        """List the records of one owner, newest first."""

    def list_stale(self, cutoff: datetime, batch_size: int) -> list[File]:
        """List open uploads idle since before ``cutoff``, oldest first."""


class ObjectStoreGateway(Protocol):
    """Presigned URLs and multipart primitives of the object store."""

    def presign_put(self, key: str, content_type: str, ttl: int) -> str:
        """Issue a presigned PUT URL."""

    def presign_get(self, key: str, content_type: str, ttl: int) -> str:
        """Issue a presigned GET URL."""

    def create_multipart_session(self, key: str, content_type: str) -> str:
        """Start a multipart upload, returning its upload ID."""

    def presign_upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        ttl: int,
    ) -> str:
        """Issue a presigned URL for one part."""

    def complete_multipart(
        self,
        key: str,
        upload_id: str,
        parts: Sequence[tuple[int, str]],
    ) -> None:
        """Assemble ascending ``(part_number, etag)`` parts."""

    def abort_multipart(self, key: str, upload_id: str) -> None:
        """Abort a multipart upload."""

    def delete_object(self, key: str) -> None:
        """Delete an object."""

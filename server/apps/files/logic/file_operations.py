"""Business logic for file operations outside the upload flow."""

import logging
from dataclasses import dataclass
from typing import Final, final

from django.conf import settings

from server.apps.files.exceptions import UpstreamError
from server.apps.files.infrastructure.protocols import (
    MetadataRepository,
    ObjectStoreGateway,
)
from server.apps.files.logic.ownership import authorize
from server.apps.files.models import File, FileStatus

logger = logging.getLogger(__name__)

_DEFAULT_DOWNLOAD_URL_TTL: Final = 15 * 60


@dataclass(frozen=True, slots=True)
class DownloadLink:
    """Presigned download URL with the metadata a client shows."""

    download_url: str
    file_name: str
    content_type: str

    def to_dict(self) -> dict[str, object]:
        """Serialize for the API response."""
        return {
            'downloadUrl': self.download_url,
            'fileName': self.file_name,
            'contentType': self.content_type,
        }


def get_download_url_ttl() -> int:
    """Get the lifetime of download URLs.

    Returns:
        Seconds from settings or default of 15 minutes.
    """
    return getattr(
        settings,
        'FILES_DOWNLOAD_URL_TTL',
        _DEFAULT_DOWNLOAD_URL_TTL,
    )


def download_requires_owner() -> bool:
    """Whether download URLs are restricted to the file owner.

    Returns:
        Policy flag from settings, False by default.
    """
    return getattr(settings, 'FILES_DOWNLOAD_REQUIRES_OWNER', False)


@final
class FileOperations:
    """Deletion, download and read-only access to file records."""

    def __init__(
        self,
        records: MetadataRepository,
        storage: ObjectStoreGateway,
    ) -> None:
        """Initialize file operations.

        Args:
            records: Record store for file metadata.
            storage: Object store gateway.
        """
        self._records = records
        self._storage = storage

    def get_file(self, file_id: str) -> File:
        """Get a file record.

        Args:
            file_id: File to look up.

        Returns:
            File instance.

        Raises:
            File.DoesNotExist: If file not found.
        """
        record = self._records.get(file_id)
        if record is None:
            logger.warning('File not found: %s', file_id)
            raise File.DoesNotExist(f'File {file_id} not found')
        return record

    def delete_file(self, file_id: str, owner_id: str) -> None:
        """Delete a file record and its object.

        Transaction safety: Delete the record first, then the object.
        If the object delete fails, the error is raised but the record
        stays deleted; the orphaned object can be removed out-of-band.

        Args:
            file_id: File to delete.
            owner_id: Identity subject of the caller.

        Raises:
            File.DoesNotExist: If file not found.
            OwnershipError: If the caller does not own the file.
            UpstreamError: If the record or object delete fails.
        """
        record = authorize(self.get_file(file_id), owner_id).enforce()
        storage_key = record.storage_key

        logger.info('Deleting file: %s (status: %s)', storage_key, record.status)
        if not self._records.delete(storage_key):
            raise File.DoesNotExist(f'File {file_id} not found')

        if record.status == FileStatus.UPLOADING and record.is_multipart:
            self._abort_session(record)

        try:
            self._storage.delete_object(storage_key)
        except UpstreamError:
            logger.exception(
                'Failed to delete object from storage (orphaned): %s',
                storage_key,
            )
            raise

        logger.info('File %s deleted successfully', storage_key)

    def generate_download_url(
        self,
        file_id: str,
        owner_id: str | None = None,
    ) -> DownloadLink:
        """Issue a presigned download URL for a file.

        Only checks ownership when ``FILES_DOWNLOAD_REQUIRES_OWNER`` is
        enabled.

        Args:
            file_id: File to download.
            owner_id: Identity subject of the caller.

        Returns:
            DownloadLink with URL, name and content type.

        Raises:
            File.DoesNotExist: If file not found.
            OwnershipError: If the policy requires ownership and the
                caller is not the owner.
            UpstreamError: If the URL cannot be signed.
        """
        record = self.get_file(file_id)
        if download_requires_owner():
            record = authorize(record, owner_id or '').enforce()

        download_url = self._storage.presign_get(
            record.storage_key,
            record.mime_type,
            get_download_url_ttl(),
        )
        return DownloadLink(
            download_url=download_url,
            file_name=record.name,
            content_type=record.mime_type,
        )

    def list_files(self, owner_id: str) -> list[File]:
        """List the caller's files, newest first.

        Args:
            owner_id: Identity subject of the caller.

        Returns:
            The owner's file records.
        """
        logger.debug('Listing files for owner: %s', owner_id)
        return self._records.list_by_owner(owner_id)

    def _abort_session(self, record: File) -> None:
        # Best effort, the record is already gone
        try:
            self._storage.abort_multipart(record.storage_key, record.upload_id)
        except UpstreamError:
            logger.exception(
                'Failed to abort multipart upload for deleted file: %s',
                record.storage_key,
            )

"""Custom storage backend for S3-compatible storage."""

import logging
from collections.abc import Sequence
from typing import Any, Final, final, override

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

from server.apps.files.exceptions import UpstreamError

logger = logging.getLogger(__name__)

# Failures a client fixes by starting over or simply retrying later
_RETRYABLE_ERROR_CODES: Final = frozenset((
    'NoSuchUpload',
    'InvalidPart',
    'InvalidPartOrder',
    'ExpiredToken',
    'RequestExpired',
    'RequestTimeout',
    'SlowDown',
    'ServiceUnavailable',
    'InternalError',
))

# Connection level failures that go away on their own
_RETRYABLE_BOTOCORE_ERRORS: Final = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


def _to_upstream_error(
    operation: str,
    error: ClientError | BotoCoreError,
) -> UpstreamError:
    """Classify a boto3 failure.

    Args:
        operation: Gateway operation that failed.
        error: Error raised by boto3.

    Returns:
        UpstreamError flagged as retryable when the client can recover.
    """
    if isinstance(error, ClientError):
        code = error.response.get('Error', {}).get('Code', '')
        return UpstreamError(
            operation,
            str(error),
            retryable=code in _RETRYABLE_ERROR_CODES,
        )
    return UpstreamError(
        operation,
        str(error),
        retryable=isinstance(error, _RETRYABLE_BOTOCORE_ERRORS),
    )


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for user files.

    Extends django-storages S3Storage with the primitives needed to let
    clients move bytes directly to and from the bucket:
    - Presigned PUT/GET URLs
    - Multipart session create, part URLs, complete and abort
    - Enhanced error logging, boto3 errors surface as UpstreamError
    """

    @property
    def client(self) -> Any:
        """Low-level boto3 S3 client sharing the storage connection."""
        return self.connection.meta.client

    def presign_put(self, key: str, content_type: str, ttl: int) -> str:
        """Issue a presigned URL for a single-request upload.

        Args:
            key: Object key.
            content_type: Content type the client must send.
            ttl: URL lifetime in seconds.

        Returns:
            Presigned PUT URL.

        Raises:
            UpstreamError: If the URL cannot be signed.
        """
        return self._presign(
            'put_object',
            {'Key': self._object_key(key), 'ContentType': content_type},
            ttl,
        )

    def presign_get(self, key: str, content_type: str, ttl: int) -> str:
        """Issue a presigned URL for downloading an object.

        Args:
            key: Object key.
            content_type: Content type the response should carry.
            ttl: URL lifetime in seconds.

        Returns:
            Presigned GET URL.

        Raises:
            UpstreamError: If the URL cannot be signed.
        """
        return self._presign(
            'get_object',
            {
                'Key': self._object_key(key),
                'ResponseContentType': content_type,
            },
            ttl,
        )

    def create_multipart_session(self, key: str, content_type: str) -> str:
        """Start a multipart upload for an object.

        Args:
            key: Object key.
            content_type: Content type of the assembled object.

        Returns:
            Upload ID issued by the object store.

        Raises:
            UpstreamError: If the object store rejects the request.
        """
        try:
            logger.info('Creating multipart upload: %s', key)
            response = self.client.create_multipart_upload(
                Bucket=self.bucket_name,
                Key=self._object_key(key),
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as error:
            logger.exception('Failed to create multipart upload: %s', key)
            raise _to_upstream_error('create_multipart_upload', error) from error
        return response['UploadId']

    def presign_upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        ttl: int,
    ) -> str:
        """Issue a presigned URL for uploading one part.

        Args:
            key: Object key.
            upload_id: Multipart session handle.
            part_number: 1-based part number.
            ttl: URL lifetime in seconds.

        Returns:
            Presigned UploadPart URL.

        Raises:
            UpstreamError: If the URL cannot be signed.
        """
        return self._presign(
            'upload_part',
            {
                'Key': self._object_key(key),
                'UploadId': upload_id,
                'PartNumber': part_number,
            },
            ttl,
        )

    def complete_multipart(
        self,
        key: str,
        upload_id: str,
        parts: Sequence[tuple[int, str]],
    ) -> None:
        """Assemble the uploaded parts into the final object.

        Args:
            key: Object key.
            upload_id: Multipart session handle.
            parts: ``(part_number, etag)`` pairs in ascending order.

        Raises:
            UpstreamError: If the object store rejects the completion.
        """
        try:
            logger.info(
                'Completing multipart upload: %s (%d parts)',
                key,
                len(parts),
            )
            self.client.complete_multipart_upload(
                Bucket=self.bucket_name,
                Key=self._object_key(key),
                UploadId=upload_id,
                MultipartUpload={
                    'Parts': [
                        {'ETag': etag, 'PartNumber': part_number}
                        for part_number, etag in parts
                    ],
                },
            )
        except (ClientError, BotoCoreError) as error:
            logger.exception('Failed to complete multipart upload: %s', key)
            raise _to_upstream_error(
                'complete_multipart_upload',
                error,
            ) from error
        logger.info('Multipart upload completed: %s', key)

    def abort_multipart(self, key: str, upload_id: str) -> None:
        """Abort a multipart upload, freeing the stored parts.

        Args:
            key: Object key.
            upload_id: Multipart session handle.

        Raises:
            UpstreamError: If the object store rejects the request.
        """
        try:
            logger.info('Aborting multipart upload: %s', key)
            self.client.abort_multipart_upload(
                Bucket=self.bucket_name,
                Key=self._object_key(key),
                UploadId=upload_id,
            )
        except (ClientError, BotoCoreError) as error:
            logger.exception('Failed to abort multipart upload: %s', key)
            raise _to_upstream_error('abort_multipart_upload', error) from error

    def delete_object(self, key: str) -> None:
        """Delete an object, translating boto3 failures.

        Args:
            key: Object key.

        Raises:
            UpstreamError: If S3 delete fails.
        """
        try:
            self.delete(key)
        except (ClientError, BotoCoreError) as error:
            raise _to_upstream_error('delete_object', error) from error

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Args:
            name: Storage path of file to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def _object_key(self, key: str) -> str:
        return self._normalize_name(clean_name(key))

    def _presign(
        self,
        client_method: str,
        params: dict[str, Any],
        ttl: int,
    ) -> str:
        try:
            return self.client.generate_presigned_url(
                client_method,
                Params={'Bucket': self.bucket_name, **params},
                ExpiresIn=ttl,
            )
        except (ClientError, BotoCoreError) as error:
            logger.exception(
                'Failed to presign %s: %s',
                client_method,
                params.get('Key'),
            )
            raise _to_upstream_error(client_method, error) from error

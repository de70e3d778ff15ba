"""Shared fixtures for files app tests."""

import boto3
import pytest
from django.conf import settings
from django.core.files.storage import storages
from moto import mock_aws

from server.apps.files.container import build_services
from server.apps.files.exceptions import UpstreamError
from server.apps.files.infrastructure.repository import FileRecordRepository
from server.apps.files.models import File, FileStatus

OWNER_ID = 'u1'
OTHER_OWNER_ID = 'u2'

_BUCKET = settings.STORAGES['default']['OPTIONS']['bucket_name']


class FakeObjectStore:
    """In-memory object store gateway recording every call.

    Set ``fail_on`` to an operation name to make that call raise
    ``UpstreamError``.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self._sessions = 0

    def presign_put(self, key, content_type, ttl):
        self._record('presign_put', key, content_type, ttl)
        return f'https://bucket.test/{key}?op=put&ttl={ttl}'

    def presign_get(self, key, content_type, ttl):
        self._record('presign_get', key, content_type, ttl)
        return f'https://bucket.test/{key}?op=get&ttl={ttl}'

    def create_multipart_session(self, key, content_type):
        self._record('create_multipart_session', key, content_type)
        self._sessions += 1
        return f'upload-{self._sessions}'

    def presign_upload_part(self, key, upload_id, part_number, ttl):
        self._record('presign_upload_part', key, upload_id, part_number, ttl)
        return f'https://bucket.test/{key}?uploadId={upload_id}&part={part_number}'

    def complete_multipart(self, key, upload_id, parts):
        self._record('complete_multipart', key, upload_id, list(parts))

    def abort_multipart(self, key, upload_id):
        self._record('abort_multipart', key, upload_id)

    def delete_object(self, key):
        self._record('delete_object', key)

    def operations(self) -> list[str]:
        """Names of the operations called so far."""
        return [call[0] for call in self.calls]

    def _record(self, operation, *args):
        if operation in self.fail_on:
            raise UpstreamError(operation, 'simulated failure')
        self.calls.append((operation, *args))


@pytest.fixture
def owner_id():
    """Identity subject owning the test files."""
    return OWNER_ID


@pytest.fixture
def other_owner_id():
    """Identity subject of a second user for isolation tests."""
    return OTHER_OWNER_ID


@pytest.fixture
def records():
    """Record store backed by the test database."""
    return FileRecordRepository()


@pytest.fixture
def object_store():
    """Fake object store gateway."""
    return FakeObjectStore()


@pytest.fixture
def services(db, records, object_store):
    """Orchestrators wired to the database and the fake object store."""
    return build_services(records=records, storage=object_store)


@pytest.fixture
def mock_s3():
    """Mock S3 service with the files bucket.

    Yields:
        boto3 S3 resource with the files bucket created.
    """
    with mock_aws():
        # Create S3 resource
        conn = boto3.resource('s3', region_name='us-east-1')

        # Create bucket
        conn.create_bucket(Bucket=_BUCKET)

        yield conn


@pytest.fixture
def file_storage(mock_s3):
    """Storage gateway configured like the default backend, on mock S3.

    Returns:
        FileStorage instance.
    """
    return storages.create_storage(settings.STORAGES['default'])


@pytest.fixture
def make_file(db):
    """Factory creating file records directly in the database.

    Returns:
        Function accepting File field overrides.
    """
    def factory(**fields):
        defaults = {
            'owner_id': OWNER_ID,
            'name': 'a.txt',
            'declared_size': 100,
            'mime_type': 'text/plain',
            'status': FileStatus.PENDING,
        }
        defaults.update(fields)
        return File.objects.create(**defaults)

    return factory


@pytest.fixture
def uploading_file(make_file):
    """Multipart upload in flight, two parts.

    Returns:
        File instance in uploading status.
    """
    return make_file(
        name='big.bin',
        declared_size=200 * 1024 * 1024,
        mime_type='application/octet-stream',
        status=FileStatus.UPLOADING,
        upload_id='upload-1',
        part_count=2,
    )

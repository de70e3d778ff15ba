"""Tests for the file record repository."""

import uuid
from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone

from server.apps.files.exceptions import UploadStateError, UpstreamError
from server.apps.files.models import File, FileStatus


@pytest.mark.django_db
def test_put_and_get(records, owner_id):
    """Test a stored record can be read back by its ID."""
    record = records.put(File(
        owner_id=owner_id,
        name='a.txt',
        declared_size=5,
        mime_type='text/plain',
    ))

    fetched = records.get(record.storage_key)

    assert fetched == record
    assert fetched.status == FileStatus.PENDING


@pytest.mark.django_db
@pytest.mark.parametrize('file_id', ['not-a-uuid', '', str(uuid.uuid4())])
def test_get_missing(records, file_id):
    """Test unknown and malformed IDs read as missing."""
    assert records.get(file_id) is None


@pytest.mark.django_db
def test_put_duplicate_id(records, make_file, owner_id):
    """Test inserting an existing ID fails instead of overwriting."""
    existing = make_file()

    with pytest.raises(UpstreamError):
        records.put(File(
            file_id=existing.file_id,
            owner_id=owner_id,
            name='b.txt',
            declared_size=1,
            mime_type='text/plain',
        ))

    existing.refresh_from_db()
    assert existing.name == 'a.txt'


@pytest.mark.django_db
def test_update_fields_unconditional(records, make_file):
    """Test a plain update refreshes updated_at."""
    record = make_file()
    before = record.updated_at

    assert records.update_fields(record.storage_key, {'declared_size': 7})

    record.refresh_from_db()
    assert record.declared_size == 7
    assert record.updated_at >= before


@pytest.mark.django_db
def test_update_fields_expected_status(records, make_file):
    """Test a conditional update applies only in the expected status."""
    record = make_file(status=FileStatus.UPLOADING, upload_id='x')

    assert not records.update_fields(
        record.storage_key,
        {'status': FileStatus.UPLOADING},
        expected_status=FileStatus.PENDING,
    )
    assert records.update_fields(
        record.storage_key,
        {'status': FileStatus.COMPLETED},
        expected_status=FileStatus.UPLOADING,
    )

    record.refresh_from_db()
    assert record.status == FileStatus.COMPLETED


@pytest.mark.django_db
@pytest.mark.parametrize(('current', 'target'), [
    (FileStatus.COMPLETED, FileStatus.PENDING),
    (FileStatus.UPLOADING, FileStatus.PENDING),
    (FileStatus.ABANDONED, FileStatus.UPLOADING),
    (FileStatus.COMPLETED, FileStatus.ABANDONED),
])
def test_update_fields_rejects_backward_transition(
    records,
    make_file,
    current,
    target,
):
    """Test status never moves backward."""
    record = make_file(status=current)

    with pytest.raises(UploadStateError):
        records.update_fields(
            record.storage_key,
            {'status': target},
            expected_status=current,
        )

    record.refresh_from_db()
    assert record.status == current


@pytest.mark.django_db
def test_update_fields_missing_record(records):
    """Test updating a missing record reports no change."""
    assert not records.update_fields(str(uuid.uuid4()), {'declared_size': 1})


@pytest.mark.django_db
def test_delete(records, make_file):
    """Test delete reports whether a record was removed."""
    record = make_file()

    assert records.delete(record.storage_key)
    assert not records.delete(record.storage_key)
    assert not File.objects.filter(pk=record.pk).exists()


@pytest.mark.django_db
def test_list_by_owner(records, make_file, owner_id, other_owner_id):
    """Test listing is scoped to one owner."""
    own = make_file()
    make_file(owner_id=other_owner_id)

    assert list(records.list_by_owner(owner_id)) == [own]


@pytest.mark.django_db
def test_database_failure_is_upstream_error(records, make_file, monkeypatch):
    """Test database errors surface as UpstreamError."""
    record = make_file()

    def broken_update(*args, **kwargs):
        raise DatabaseError('connection lost')

    monkeypatch.setattr('django.db.models.QuerySet.update', broken_update)

    with pytest.raises(UpstreamError) as exc_info:
        records.update_fields(record.storage_key, {'declared_size': 1})

    assert exc_info.value.operation == 'update_file'


@pytest.mark.django_db
@pytest.mark.parametrize(('current', 'target'), [
    (FileStatus.COMPLETED, FileStatus.PENDING),
    (FileStatus.ABANDONED, FileStatus.UPLOADING),
    (FileStatus.UPLOADING, FileStatus.PENDING),
])
def test_update_fields_unconditional_status_cannot_move_backward(
    records,
    make_file,
    current,
    target,
):
    """Test a status change without an expected status is still checked."""
    record = make_file(status=current)

    with pytest.raises(UploadStateError):
        records.update_fields(record.storage_key, {'status': target})

    record.refresh_from_db()
    assert record.status == current


@pytest.mark.django_db
def test_update_fields_unconditional_status_moves_forward(records, make_file):
    """Test a forward status change without an expected status applies."""
    record = make_file(status=FileStatus.UPLOADING, upload_id='x')

    assert records.update_fields(
        record.storage_key,
        {'status': FileStatus.COMPLETED},
    )

    record.refresh_from_db()
    assert record.status == FileStatus.COMPLETED


@pytest.mark.django_db
def test_update_fields_unconditional_status_missing_record(records):
    """Test a status change on a missing record reports no change."""
    assert not records.update_fields(
        str(uuid.uuid4()),
        {'status': FileStatus.COMPLETED},
    )


@pytest.mark.django_db
def test_list_by_owner_database_failure(records, monkeypatch):
    """Test listing failures surface as UpstreamError, not while iterating."""
    def broken_fetch(*args, **kwargs):
        raise DatabaseError('connection lost')

    monkeypatch.setattr('django.db.models.QuerySet._fetch_all', broken_fetch)

    with pytest.raises(UpstreamError) as exc_info:
        records.list_by_owner('u1')

    assert exc_info.value.operation == 'list_files'


def _make_stale(file_instance, days=8):
    File.objects.filter(pk=file_instance.pk).update(
        updated_at=timezone.now() - timedelta(days=days),
    )


@pytest.mark.django_db
def test_list_stale(records, make_file):
    """Test stale lookup covers pending and uploading only, oldest first."""
    pending = make_file()
    uploading = make_file(status=FileStatus.UPLOADING, upload_id='x')
    abandoned = make_file(status=FileStatus.ABANDONED)
    recent = make_file()
    _make_stale(pending, days=9)
    _make_stale(uploading, days=8)
    _make_stale(abandoned)

    stale = records.list_stale(timezone.now() - timedelta(days=7), 10)

    assert [record.pk for record in stale] == [pending.pk, uploading.pk]
    assert recent.pk not in {record.pk for record in stale}


@pytest.mark.django_db
def test_list_stale_batch_size(records, make_file):
    """Test at most one batch is returned."""
    for _ in range(3):
        _make_stale(make_file())

    stale = records.list_stale(timezone.now(), 2)

    assert len(stale) == 2

"""Tests for the stale upload sweeper."""

from datetime import timedelta

import pytest
from django.utils import timezone

from server.apps.files.logic.sweeper_operations import get_stale_after
from server.apps.files.models import File, FileStatus


def _make_stale(file_instance, days=8):
    File.objects.filter(pk=file_instance.pk).update(
        updated_at=timezone.now() - timedelta(days=days),
    )


@pytest.mark.django_db
def test_sweep_abandons_stale_pending(services, object_store, make_file):
    """Test a stale pending upload is abandoned without store calls."""
    file_instance = make_file()
    _make_stale(file_instance)

    result = services.sweeper.sweep()

    assert result.abandoned == 1
    assert result.file_ids == [file_instance.storage_key]
    assert object_store.calls == []
    file_instance.refresh_from_db()
    assert file_instance.status == FileStatus.ABANDONED


@pytest.mark.django_db
def test_sweep_uploading_without_session(services, object_store, make_file):
    """Test an uploading record without a session is not aborted."""
    file_instance = make_file(status=FileStatus.UPLOADING, upload_id='')
    _make_stale(file_instance)

    result = services.sweeper.sweep()

    assert result.abandoned == 1
    assert object_store.calls == []


@pytest.mark.django_db
def test_sweep_aborts_stale_multipart(services, object_store, uploading_file):
    """Test a stale multipart upload has its session aborted."""
    _make_stale(uploading_file)

    result = services.sweeper.sweep()

    assert result.abandoned == 1
    assert object_store.calls == [
        ('abort_multipart', uploading_file.storage_key, 'upload-1'),
    ]
    uploading_file.refresh_from_db()
    assert uploading_file.status == FileStatus.ABANDONED


@pytest.mark.django_db
def test_sweep_abort_failure_still_abandons(
    services,
    object_store,
    uploading_file,
):
    """Test a failed abort is logged and the record still abandoned."""
    _make_stale(uploading_file)
    object_store.fail_on.add('abort_multipart')

    result = services.sweeper.sweep()

    assert result.abandoned == 1
    uploading_file.refresh_from_db()
    assert uploading_file.status == FileStatus.ABANDONED


@pytest.mark.django_db
def test_sweep_ignores_recent_and_finished(services, make_file):
    """Test recent uploads and terminal records are left alone."""
    recent = make_file()
    completed = make_file(status=FileStatus.COMPLETED)
    _make_stale(completed)

    result = services.sweeper.sweep()

    assert result.abandoned == 0
    recent.refresh_from_db()
    completed.refresh_from_db()
    assert recent.status == FileStatus.PENDING
    assert completed.status == FileStatus.COMPLETED


@pytest.mark.django_db
def test_sweep_dry_run(services, object_store, uploading_file):
    """Test dry run reports without changing anything."""
    _make_stale(uploading_file)

    result = services.sweeper.sweep(dry_run=True)

    assert result.abandoned == 1
    assert object_store.calls == []
    uploading_file.refresh_from_db()
    assert uploading_file.status == FileStatus.UPLOADING


@pytest.mark.django_db
def test_sweep_older_than(services, make_file):
    """Test a custom idle period."""
    file_instance = make_file()
    _make_stale(file_instance, days=2)

    assert services.sweeper.sweep().abandoned == 0
    assert services.sweeper.sweep(older_than=timedelta(days=1)).abandoned == 1


@pytest.mark.django_db
def test_sweep_batch_size(services, make_file):
    """Test a sweep processes at most one batch, oldest first."""
    oldest = make_file(name='oldest.txt')
    newer = make_file(name='newer.txt')
    _make_stale(oldest, days=10)
    _make_stale(newer, days=9)

    result = services.sweeper.sweep(batch_size=1)

    assert result.file_ids == [oldest.storage_key]


@pytest.mark.django_db
def test_sweep_loses_race_to_completion(
    services,
    records,
    uploading_file,
    monkeypatch,
):
    """Test a record completed mid-sweep is skipped, not abandoned."""
    _make_stale(uploading_file)
    original_update = records.update_fields

    def complete_first(file_id, fields, expected_status=None):
        File.objects.filter(pk=file_id).update(status=FileStatus.COMPLETED)
        return original_update(file_id, fields, expected_status)

    monkeypatch.setattr(records, 'update_fields', complete_first)

    result = services.sweeper.sweep()

    assert result.abandoned == 0
    assert result.skipped == 1
    uploading_file.refresh_from_db()
    assert uploading_file.status == FileStatus.COMPLETED


def test_get_stale_after(settings):
    """Test the idle period comes from settings."""
    settings.FILES_UPLOAD_STALE_AFTER = 60

    assert get_stale_after() == timedelta(seconds=60)


@pytest.mark.django_db
def test_sweep_reads_through_record_store(
    services,
    records,
    make_file,
    monkeypatch,
):
    """Test the sweep finds stale uploads through the injected store."""
    file_instance = make_file()
    _make_stale(file_instance)
    lookups = []

    def list_stale(cutoff, batch_size):
        lookups.append(batch_size)
        return []

    monkeypatch.setattr(records, 'list_stale', list_stale)

    result = services.sweeper.sweep(batch_size=5)

    assert lookups == [5]
    assert result.abandoned == 0
    file_instance.refresh_from_db()
    assert file_instance.status == FileStatus.PENDING

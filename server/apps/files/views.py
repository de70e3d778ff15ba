"""JSON views of the files API."""

import functools
import logging
from collections.abc import Callable
from typing import Any, Final

from django.core.exceptions import ValidationError
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_GET, require_http_methods
from pydantic import ValidationError as SchemaError

from server.apps.files.container import get_services
from server.apps.files.exceptions import FileOperationError
from server.apps.files.identity import current_owner_id
from server.apps.files.models import File
from server.apps.files.schemas import (
    BeginUploadRequest,
    CompleteUploadRequest,
    format_errors,
)

logger = logging.getLogger(__name__)

_HTTP_CREATED: Final = 201
_HTTP_BAD_REQUEST: Final = 400
_HTTP_NOT_FOUND: Final = 404

_View = Callable[..., HttpResponse]


def _error_response(
    status: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JsonResponse:
    return JsonResponse(
        {'error': error_code, 'message': message, 'details': details or {}},
        status=status,
    )


def json_api(view: _View) -> _View:
    """Turn the files app exceptions into structured JSON responses.

    Args:
        view: View function to wrap.

    Returns:
        Wrapped view.
    """
    @functools.wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except SchemaError as error:
            message = format_errors(error.errors())
            logger.info('Rejected malformed request body: %s', message)
            return _error_response(
                _HTTP_BAD_REQUEST,
                'VALIDATION_ERROR',
                message,
            )
        except ValidationError as error:
            logger.info('Rejected invalid request: %s', error.messages)
            return _error_response(
                _HTTP_BAD_REQUEST,
                'VALIDATION_ERROR',
                '; '.join(error.messages),
            )
        except File.DoesNotExist as error:
            return _error_response(
                _HTTP_NOT_FOUND,
                'FILE_NOT_FOUND',
                str(error) or 'File not found',
            )
        except FileOperationError as error:
            logger.info(
                'Request failed with %s: %s',
                error.error_code,
                error.message,
            )
            return JsonResponse(error.to_dict(), status=error.status_code)

    return wrapper


@require_http_methods(['POST'])
@json_api
def begin_upload(request: HttpRequest) -> HttpResponse:
    """Create a file record and return the URLs to upload it through."""
    owner_id = current_owner_id(request)
    body = BeginUploadRequest.model_validate_json(request.body or b'{}')

    upload_plan = get_services().uploads.begin_upload(
        owner_id=owner_id,
        name=body.name,
        mime_type=body.mime_type,
        declared_size=body.declared_size,
        chunk_size=body.chunk_size,
    )
    return JsonResponse(upload_plan.to_dict(), status=_HTTP_CREATED)


@require_http_methods(['POST'])
@json_api
def complete_upload(request: HttpRequest) -> HttpResponse:
    """Finalize a multipart upload from the parts the client uploaded."""
    owner_id = current_owner_id(request)
    body = CompleteUploadRequest.model_validate_json(request.body or b'{}')

    confirmation = get_services().completions.complete(
        owner_id=owner_id,
        file_id=body.file_id,
        upload_id=body.upload_id,
        parts=body.part_completions(),
    )
    return JsonResponse(confirmation.to_dict())


@require_GET
@json_api
def file_list(request: HttpRequest) -> HttpResponse:
    """List the caller's files."""
    owner_id = current_owner_id(request)
    records = get_services().files.list_files(owner_id)
    return JsonResponse({'files': [record.to_dict() for record in records]})


@require_http_methods(['GET', 'DELETE'])
@json_api
def file_detail(request: HttpRequest, file_id: str) -> HttpResponse:
    """Preview (GET) or delete (DELETE) one file."""
    owner_id = current_owner_id(request)
    files = get_services().files

    if request.method == 'DELETE':
        files.delete_file(file_id, owner_id)
        return JsonResponse(
            {'message': f'File {file_id} deleted successfully'},
        )

    return JsonResponse(files.get_file(file_id).to_dict())


@require_GET
@json_api
def download_url(request: HttpRequest) -> HttpResponse:
    """Issue a presigned download URL for ``?fileID=``."""
    owner_id = current_owner_id(request)
    file_id = request.GET.get('fileID', '')
    if not file_id:
        raise ValidationError('fileID is required')

    link = get_services().files.generate_download_url(file_id, owner_id)
    return JsonResponse(link.to_dict())

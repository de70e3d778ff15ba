"""Request bodies of the files API.

Bodies are JSON objects validated with pydantic; a malformed body raises
``pydantic.ValidationError``, which the views turn into a 400 response.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from server.apps.files.logic.upload_operations import PartCompletion


class RequestSchema(BaseModel):
    """Base schema for request bodies with camelCase wire names."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        strict=True,
    )


class BeginUploadRequest(RequestSchema):
    """Body of ``POST /uploads/``."""

    name: str = Field(default='', description='Display name of the file')
    mime_type: str = Field(
        default='',
        alias='mimeType',
        description='Content type, guessed from the name if empty',
    )
    declared_size: StrictInt = Field(
        alias='declaredSize',
        gt=0,
        description='File size in bytes',
    )
    chunk_size: StrictInt | None = Field(
        default=None,
        alias='chunkSize',
        gt=0,
        description='Part size in bytes, required for multipart uploads',
    )


class CompletedPart(RequestSchema):
    """One uploaded part reported by the client."""

    part_number: StrictInt = Field(alias='partNumber', ge=1)
    etag: str = Field(alias='eTag', min_length=1)


class CompleteUploadRequest(RequestSchema):
    """Body of ``POST /uploads/complete/``."""

    file_id: str = Field(alias='fileID')
    upload_id: str = Field(alias='uploadID')
    parts: list[CompletedPart] = Field(default_factory=list)

    def part_completions(self) -> list[PartCompletion]:
        """Convert the parts, in the order the client sent them."""
        return [
            PartCompletion(part_number=part.part_number, etag=part.etag)
            for part in self.parts
        ]


def format_errors(errors: list[Any]) -> str:
    """Render pydantic error entries as one message.

    Args:
        errors: Output of ``ValidationError.errors()``.

    Returns:
        Messages prefixed with the offending wire field.
    """
    messages = []
    for error in errors:
        location = '.'.join(str(part) for part in error.get('loc', ()))
        if location:
            messages.append(f'{location}: {error["msg"]}')
        else:
            messages.append(error['msg'])
    return '; '.join(messages)

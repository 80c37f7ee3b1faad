"""Data models for upload requests and the files returned by the service."""

from __future__ import annotations

import mimetypes
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    NonNegativeInt,
    ValidationError,
)
from pydantic.alias_generators import to_camel

from geminiai.exceptions import InvalidOptions, MalformedResponse

DEFAULT_MIME_TYPE = "application/octet-stream"
MAX_DISPLAY_NAME_LENGTH = 512

_MIME_TYPE_RE = re.compile(r"^[\w.+-]+/[\w.+-]+(\s*;.*)?$")
_DECIMAL_RE = re.compile(r"[0-9]+")


class FileState(str, Enum):
    """Lifecycle tag the service reports for an uploaded file."""

    STATE_UNSPECIFIED = "STATE_UNSPECIFIED"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class UploadOptions:
    """Per-upload overrides.

    Attributes:
        mime_type: Overrides the type inferred from the file extension.
        display_name: Overrides the default of the file's base name.
    """

    mime_type: str | None = None
    display_name: str | None = None

    def __post_init__(self) -> None:
        if self.mime_type is not None and not _MIME_TYPE_RE.match(self.mime_type):
            raise InvalidOptions(f"mime_type must look like 'type/subtype', got {self.mime_type!r}")
        if self.display_name is not None:
            if not self.display_name.strip():
                raise InvalidOptions("display_name must not be empty")
            if len(self.display_name) > MAX_DISPLAY_NAME_LENGTH:
                raise InvalidOptions(
                    f"display_name must be at most {MAX_DISPLAY_NAME_LENGTH} characters"
                )


@dataclass(frozen=True)
class UploadRequest:
    """A fully resolved upload: local path plus the type and name to declare."""

    path: Path
    mime_type: str
    display_name: str

    @classmethod
    def from_path(cls, path: str | Path, options: UploadOptions | None = None) -> UploadRequest:
        """Resolve defaults for *path*.

        The MIME type falls back to extension-based detection and then to
        ``application/octet-stream``; the display name falls back to the
        path's base name (truncated to the service limit).
        """
        path = Path(path)
        options = options or UploadOptions()

        mime_type = options.mime_type or guess_mime_type(path)
        display_name = options.display_name or path.name[:MAX_DISPLAY_NAME_LENGTH]
        return cls(path=path, mime_type=mime_type, display_name=display_name)


def guess_mime_type(path: str | Path) -> str:
    """Infer a MIME type from the file extension."""
    mime_type, _ = mimetypes.guess_type(str(path), strict=False)
    return mime_type or DEFAULT_MIME_TYPE


def _parse_size_bytes(value: Any) -> int:
    """Accept an int or a string of decimal digits, as the API encodes int64."""
    if isinstance(value, bool):
        raise ValueError("sizeBytes must be an integer, not a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _DECIMAL_RE.fullmatch(value):
        return int(value)
    raise ValueError(f"sizeBytes must be a decimal integer, got {value!r}")


SizeBytes = Annotated[NonNegativeInt, BeforeValidator(_parse_size_bytes)]


class FileDescriptor(BaseModel):
    """A file stored by the service, as confirmed by the service.

    Built from the camelCase JSON the API returns (``sizeBytes``,
    ``mimeType``...).  Timestamps are kept as the opaque strings the service
    sends.  Instances are immutable; re-fetch with
    :func:`geminiai.files.get_file` to observe a later state.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    name: str = Field(min_length=1)
    uri: str = Field(min_length=1)
    mime_type: str
    size_bytes: SizeBytes
    display_name: str | None = None
    state: str = FileState.STATE_UNSPECIFIED.value
    sha256_hash: str | None = None
    create_time: str | None = None
    update_time: str | None = None
    expiration_time: str | None = None

    @classmethod
    def from_api(cls, payload: Any) -> FileDescriptor:
        """Normalize a service payload into a descriptor.

        Raises:
            MalformedResponse: If *payload* is not an object, a required
                field is missing, or ``sizeBytes`` is not a non-negative
                integer.
        """
        if not isinstance(payload, Mapping):
            raise MalformedResponse(f"expected a file object, got {type(payload).__name__}")
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            raise MalformedResponse(f"invalid file object: {exc}") from exc

    @property
    def is_active(self) -> bool:
        return self.state == FileState.ACTIVE.value

    @property
    def is_processing(self) -> bool:
        return self.state == FileState.PROCESSING.value

    @property
    def is_failed(self) -> bool:
        return self.state == FileState.FAILED.value


@dataclass(frozen=True)
class FileList:
    """One page of :func:`geminiai.files.list_files` results."""

    files: list[FileDescriptor]
    next_page_token: str | None = None

"""Gemini Files API client: resumable uploads and file-grounded generation."""

__version__ = "0.1.0"

from geminiai.client import GeminiClient
from geminiai.config import ClientConfig, load_client_config
from geminiai.exceptions import (
    ConfigurationError,
    FileProcessingFailed,
    GeminiError,
    InvalidOptions,
    LocalIOError,
    MalformedResponse,
    ProtocolViolation,
    RemoteError,
    TransportError,
    UploadCrashed,
)
from geminiai.models import FileDescriptor, FileList, FileState, UploadOptions, UploadRequest
from geminiai.upload import upload_file, upload_files

__all__ = [
    "ClientConfig",
    "ConfigurationError",
    "FileDescriptor",
    "FileList",
    "FileProcessingFailed",
    "FileState",
    "GeminiClient",
    "GeminiError",
    "InvalidOptions",
    "LocalIOError",
    "MalformedResponse",
    "ProtocolViolation",
    "RemoteError",
    "TransportError",
    "UploadCrashed",
    "UploadOptions",
    "UploadRequest",
    "__version__",
    "load_client_config",
    "upload_file",
    "upload_files",
]

"""High-level client tying configuration, transport and operations together."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import Any

import httpx
from google import genai
from google.genai import types as genai_types

from geminiai import files as _files
from geminiai import generation as _generation
from geminiai.config import ClientConfig
from geminiai.models import FileDescriptor, FileList, UploadOptions
from geminiai.transport import HttpTransport
from geminiai.upload.batch import upload_files
from geminiai.upload.progress import UploadProgressTracker
from geminiai.upload.session import upload_file

logger = logging.getLogger(__name__)


class GeminiClient:
    """Client for the Gemini Files API and file-grounded generation.

    Usage::

        config = ClientConfig.from_environment()
        async with GeminiClient(config) as client:
            report = await client.upload_file("report.pdf")
            response = await client.generate_content(
                "Summarize this report.", files=[report]
            )

    Args:
        config: Client configuration, threaded through every call.
        transport: Optional prebuilt HttpTransport.
        http_transport: Optional httpx transport used when *transport* is
            not given (``httpx.MockTransport`` in tests).
        genai_client: Optional prebuilt ``google.genai.Client``; created
            lazily from *config* on first generation call otherwise.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: HttpTransport | None = None,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
        genai_client: genai.Client | None = None,
    ) -> None:
        self.config = config
        self.transport = transport or HttpTransport(config, transport=http_transport)
        self._genai = genai_client

    @property
    def genai(self) -> genai.Client:
        """The SDK client used for generation requests."""
        if self._genai is None:
            self._genai = genai.Client(api_key=self.config.api_key)
        return self._genai

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def upload_file(
        self, path: str | Path, options: UploadOptions | None = None
    ) -> FileDescriptor:
        """Upload one file. See :func:`geminiai.upload.upload_file`."""
        return await upload_file(self, path, options)

    async def upload_files(
        self,
        paths: Iterable[str | Path],
        options: UploadOptions | None = None,
        *,
        progress: UploadProgressTracker | None = None,
    ) -> list[FileDescriptor]:
        """Upload many files concurrently. See :func:`geminiai.upload.upload_files`."""
        return await upload_files(self, paths, options, progress=progress)

    # ------------------------------------------------------------------
    # Stored files
    # ------------------------------------------------------------------

    async def get_file(self, name: str) -> FileDescriptor:
        return await _files.get_file(self, name)

    async def list_files(
        self, page_size: int | None = None, page_token: str | None = None
    ) -> FileList:
        return await _files.list_files(self, page_size=page_size, page_token=page_token)

    def iter_files(self, page_size: int | None = None) -> AsyncIterator[FileDescriptor]:
        return _files.iter_files(self, page_size=page_size)

    async def delete_file(self, name: str) -> None:
        await _files.delete_file(self, name)

    async def wait_for_active(self, name: str, timeout: float = 300) -> FileDescriptor:
        return await _files.wait_for_active(self, name, timeout=timeout)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_content(
        self,
        prompt: str,
        files: Iterable[FileDescriptor] = (),
        model: str = _generation.DEFAULT_MODEL,
        config: genai_types.GenerateContentConfig | dict[str, Any] | None = None,
    ) -> genai_types.GenerateContentResponse:
        return await _generation.generate_content(
            self, prompt, files=files, model=model, config=config
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP transport and the SDK client, if one was created."""
        await self.transport.close()
        if self._genai is not None:
            aclose = getattr(self._genai.aio, "aclose", None)
            if aclose is not None:
                await aclose()

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

"""Resumable upload of a single file.

Implements the three-phase handshake of the Gemini upload endpoint:

  1. **Initiate** -- ``POST /upload/{version}/files`` with
     ``X-Goog-Upload-Command: start``; the service answers with a
     single-use URL in the ``X-Goog-Upload-URL`` header.
  2. **Transfer** -- ``POST`` the whole file to that URL with
     ``X-Goog-Upload-Command: upload, finalize`` at offset 0.
  3. **Finalize** -- a 200 response carries ``{"file": {...}}``, which is
     normalized into a :class:`~geminiai.models.FileDescriptor`.

The file is read into memory and sent in one request.  There is no
chunking and no offset-based resume: a failed session is simply discarded.
"""

from __future__ import annotations

import asyncio
import logging
import stat
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from geminiai.exceptions import LocalIOError, ProtocolViolation, RemoteError
from geminiai.models import FileDescriptor, UploadOptions, UploadRequest
from geminiai.upload.fsm import UploadPhaseSM

if TYPE_CHECKING:
    from geminiai.client import GeminiClient

logger = logging.getLogger(__name__)

UPLOAD_URL_HEADER = "X-Goog-Upload-URL"


class UploadSession:
    """One resumable upload, from ``start`` to the returned descriptor.

    A session is single-shot: :meth:`run` may be called once.

    Args:
        client: Client providing configuration and transport.
        request: Resolved upload request.
    """

    def __init__(self, client: GeminiClient, request: UploadRequest) -> None:
        self._client = client
        self.request = request
        self.upload_url: str | None = None
        self.size_bytes: int | None = None
        self._phases = UploadPhaseSM()

    @property
    def phase(self) -> str:
        """Current protocol phase (``created``, ``initiating``, ... ``failed``)."""
        return self._phases.current_state.value

    async def run(self) -> FileDescriptor:
        """Execute all phases and return the uploaded file's descriptor.

        Raises:
            LocalIOError: File missing, unreadable, or changed mid-upload.
            ProtocolViolation: Upload URL header absent/repeated, or the
                final body lacks the ``file`` wrapper.
            RemoteError: Any non-200 status.
            TransportError: The request could not be completed.
            MalformedResponse: The file object could not be normalized.
        """
        try:
            self.size_bytes = await self._stat()
            self._phases.initiate()
            self.upload_url = await self._initiate()

            self._phases.transfer()
            payload = await self._transfer()

            self._phases.finalize()
            descriptor = self._finalize(payload)
            self._phases.complete()
        except BaseException:
            if not self._phases.current_state.final:
                self._phases.fail()
            raise

        logger.info(
            "Uploaded %s -> %s (%d bytes)",
            self.request.path,
            descriptor.name,
            descriptor.size_bytes,
        )
        return descriptor

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _stat(self) -> int:
        path = self.request.path
        loop = asyncio.get_running_loop()
        try:
            st = await loop.run_in_executor(None, path.stat)
        except OSError as exc:
            raise LocalIOError(path, exc.strerror or str(exc)) from exc
        if not stat.S_ISREG(st.st_mode):
            raise LocalIOError(path, "not a regular file")
        return st.st_size

    async def _initiate(self) -> str:
        config = self._client.config
        request = self.request
        logger.debug(
            "Starting resumable upload for %s (%s, %d bytes)",
            request.path,
            request.mime_type,
            self.size_bytes,
        )

        response = await self._client.transport.request(
            "POST",
            f"/upload/{config.api_version}/files",
            headers={
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "start",
                "X-Goog-Upload-Header-Content-Length": str(self.size_bytes),
                "X-Goog-Upload-Header-Content-Type": request.mime_type,
            },
            json={"file": {"display_name": request.display_name}},
        )
        if response.status != 200:
            raise RemoteError(response.status, response.body, phase="initiate")

        urls = response.header_values(UPLOAD_URL_HEADER)
        if len(urls) != 1 or not urls[0]:
            raise ProtocolViolation(
                f"expected exactly one {UPLOAD_URL_HEADER} header, got {len(urls)}"
            )
        return urls[0]

    async def _transfer(self) -> object:
        path = self.request.path
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, path.read_bytes)
        except OSError as exc:
            raise LocalIOError(path, exc.strerror or str(exc)) from exc
        if len(data) != self.size_bytes:
            raise LocalIOError(
                path,
                f"file changed during upload ({self.size_bytes} bytes declared, "
                f"{len(data)} read)",
            )

        config = self._client.config
        response = await self._client.transport.request(
            "POST",
            self.upload_url,
            headers={
                "Content-Length": str(len(data)),
                "X-Goog-Upload-Offset": "0",
                "X-Goog-Upload-Command": "upload, finalize",
            },
            content=data,
            authenticated=config.forward_api_key_to_upload_url,
            # The upload URL is single-use and this request also finalizes.
            retry=False,
        )
        if response.status != 200:
            raise RemoteError(response.status, response.body, phase="transfer")
        return response.body

    def _finalize(self, body: object) -> FileDescriptor:
        if not isinstance(body, Mapping) or not isinstance(body.get("file"), Mapping):
            raise ProtocolViolation(
                "upload finalize response has no 'file' object in its body"
            )
        return FileDescriptor.from_api(body["file"])


async def upload_file(
    client: GeminiClient,
    path: str | Path,
    options: UploadOptions | None = None,
) -> FileDescriptor:
    """Upload one local file and return its descriptor.

    Args:
        client: Client providing configuration and transport.
        path: Local file to upload.
        options: Optional MIME type / display name overrides.

    Returns:
        The service-confirmed FileDescriptor.
    """
    request = UploadRequest.from_path(path, options)
    return await UploadSession(client, request).run()

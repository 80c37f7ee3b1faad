"""Read and delete operations on files already stored by the service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from typing import TYPE_CHECKING, Any

from tenacity import AsyncRetrying, retry_if_result, stop_after_delay, wait_exponential

from geminiai.exceptions import FileProcessingFailed, MalformedResponse, RemoteError
from geminiai.models import FileDescriptor, FileList

if TYPE_CHECKING:
    from geminiai.client import GeminiClient

logger = logging.getLogger(__name__)


def normalize_file_name(name: str) -> str:
    """Accept ``abc123`` as well as ``files/abc123``."""
    return name if "/" in name else f"files/{name}"


async def get_file(client: GeminiClient, name: str) -> FileDescriptor:
    """Fetch the current descriptor of a stored file.

    Args:
        client: Client providing configuration and transport.
        name: Resource name (``files/abc123``) or bare id.
    """
    name = normalize_file_name(name)
    response = await client.transport.request(
        "GET", f"/{client.config.api_version}/{name}"
    )
    if response.status != 200:
        raise RemoteError(response.status, response.body, phase="get")
    return FileDescriptor.from_api(response.body)


async def list_files(
    client: GeminiClient,
    page_size: int | None = None,
    page_token: str | None = None,
) -> FileList:
    """Fetch one page of stored files.

    Args:
        client: Client providing configuration and transport.
        page_size: Maximum number of files to return.
        page_token: Token from a previous page's ``next_page_token``.
    """
    params: dict[str, Any] = {}
    if page_size is not None:
        params["pageSize"] = page_size
    if page_token is not None:
        params["pageToken"] = page_token

    response = await client.transport.request(
        "GET", f"/{client.config.api_version}/files", params=params
    )
    if response.status != 200:
        raise RemoteError(response.status, response.body, phase="list")

    body = response.body
    if not isinstance(body, Mapping):
        raise MalformedResponse("list response is not a JSON object")
    # An empty store answers with ``{}``.
    raw_files = body.get("files", [])
    if not isinstance(raw_files, list):
        raise MalformedResponse("list response 'files' is not an array")

    return FileList(
        files=[FileDescriptor.from_api(item) for item in raw_files],
        next_page_token=body.get("nextPageToken") or None,
    )


async def iter_files(
    client: GeminiClient, page_size: int | None = None
) -> AsyncIterator[FileDescriptor]:
    """Yield every stored file, following page tokens."""
    page_token: str | None = None
    while True:
        page = await list_files(client, page_size=page_size, page_token=page_token)
        for descriptor in page.files:
            yield descriptor
        if not page.next_page_token:
            return
        page_token = page.next_page_token


async def delete_file(client: GeminiClient, name: str) -> None:
    """Delete a stored file.

    Args:
        client: Client providing configuration and transport.
        name: Resource name (``files/abc123``) or bare id.
    """
    name = normalize_file_name(name)
    response = await client.transport.request(
        "DELETE", f"/{client.config.api_version}/{name}"
    )
    if response.status != 200:
        raise RemoteError(response.status, response.body, phase="delete")
    logger.info("Deleted file %s", name)


async def wait_for_active(
    client: GeminiClient,
    name: str,
    timeout: float = 300,
    min_wait: float = 2,
    max_wait: float = 30,
) -> FileDescriptor:
    """Poll until an uploaded file leaves the ``PROCESSING`` state.

    Uses exponential backoff between polls: *min_wait* doubling up to
    *max_wait*.

    Args:
        client: Client providing configuration and transport.
        name: Resource name or bare id.
        timeout: Maximum seconds to wait.

    Returns:
        The descriptor once it is ``ACTIVE`` (or reports no state).

    Raises:
        FileProcessingFailed: If the file transitions to ``FAILED``.
        TimeoutError: If the file is still processing after *timeout*.
    """
    descriptor: FileDescriptor | None = None
    async for attempt in AsyncRetrying(
        wait=wait_exponential(min=min_wait, max=max_wait),
        stop=stop_after_delay(timeout),
        retry=retry_if_result(lambda d: d is not None and d.is_processing),
        retry_error_callback=lambda state: state.outcome.result(),
    ):
        with attempt:
            descriptor = await get_file(client, name)
            if descriptor.is_failed:
                raise FileProcessingFailed(descriptor)
            if descriptor.is_processing:
                logger.debug("File %s still processing", descriptor.name)
        if not attempt.retry_state.outcome.failed:
            attempt.retry_state.set_result(descriptor)

    if descriptor is None or descriptor.is_processing:
        raise TimeoutError(f"File {normalize_file_name(name)} still processing after {timeout}s")
    return descriptor

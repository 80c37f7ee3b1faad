"""Generation requests that reference uploaded files.

Request bodies and response types come from the ``google-genai`` SDK; this
module only turns :class:`~geminiai.models.FileDescriptor` objects into
content parts and maps SDK errors onto this package's error types.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from google.genai import errors as genai_errors
from google.genai import types as genai_types

from geminiai.exceptions import RemoteError
from geminiai.models import FileDescriptor

if TYPE_CHECKING:
    from geminiai.client import GeminiClient

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"


def file_part(descriptor: FileDescriptor) -> genai_types.Part:
    """Build a content part pointing at an uploaded file."""
    return genai_types.Part.from_uri(
        file_uri=descriptor.uri, mime_type=descriptor.mime_type
    )


def build_contents(
    prompt: str, files: Iterable[FileDescriptor] = ()
) -> list[genai_types.Part]:
    """File parts first, in the given order, then the text prompt."""
    parts = [file_part(descriptor) for descriptor in files]
    parts.append(genai_types.Part.from_text(text=prompt))
    return parts


async def generate_content(
    client: GeminiClient,
    prompt: str,
    files: Iterable[FileDescriptor] = (),
    model: str = DEFAULT_MODEL,
    config: genai_types.GenerateContentConfig | dict[str, Any] | None = None,
) -> genai_types.GenerateContentResponse:
    """Run a generation request over *prompt* and the referenced files.

    Args:
        client: Client whose SDK handle issues the request.
        prompt: Text prompt.
        files: Descriptors returned by an earlier upload.
        model: Model id, e.g. ``gemini-2.5-flash``.
        config: Optional SDK generation config.

    Returns:
        The SDK's GenerateContentResponse.

    Raises:
        RemoteError: If the service rejects the request.
    """
    contents = build_contents(prompt, files)
    logger.debug("generate_content model=%s parts=%d", model, len(contents))
    try:
        return await client.genai.aio.models.generate_content(
            model=model,
            contents=contents,
            config=config,
        )
    except genai_errors.APIError as exc:
        raise RemoteError(
            exc.code, exc.details or exc.message, phase="generate_content"
        ) from exc

"""Concurrent upload of many files with fail-fast semantics.

Every path gets its own :class:`~geminiai.upload.session.UploadSession`
running as an asyncio task.  Results are written into a slot list indexed
by input position, so the returned list follows the input order no matter
which upload finishes first.

The first failure ends the wait and is raised on its own; results already
collected are dropped.  Sessions still in flight are **not** cancelled: they
keep running in the background until they finish or fail, and their
outcomes are only logged.  This bounds how long the caller waits, not how
much work is done after a failure.

There is no cap on concurrent sessions.  Callers that need one should split
their input into chunks or limit the transport's connection pool.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from geminiai.exceptions import GeminiError, UploadCrashed
from geminiai.models import FileDescriptor, UploadOptions
from geminiai.upload.session import upload_file

if TYPE_CHECKING:
    from geminiai.client import GeminiClient
    from geminiai.upload.progress import UploadProgressTracker

logger = logging.getLogger(__name__)

# Strong references to sessions left running after a batch failed; the event
# loop only keeps weak references to tasks.
_orphaned_uploads: set[asyncio.Task] = set()


async def upload_files(
    client: GeminiClient,
    paths: Iterable[str | Path],
    options: UploadOptions | None = None,
    *,
    progress: UploadProgressTracker | None = None,
) -> list[FileDescriptor]:
    """Upload *paths* concurrently and return descriptors in input order.

    Args:
        client: Client providing configuration and transport.
        paths: Local files to upload.
        options: Overrides applied to every file.
        progress: Optional tracker advanced as each upload finishes.

    Returns:
        One FileDescriptor per input path, position for position.

    Raises:
        GeminiError: The first failure observed.  A session that died with
            anything other than a GeminiError is reported as
            :class:`~geminiai.exceptions.UploadCrashed`.
    """
    paths = list(paths)
    if not paths:
        return []

    tasks = [
        asyncio.create_task(upload_file(client, path, options), name=f"upload:{path}")
        for path in paths
    ]
    position = {task: i for i, task in enumerate(tasks)}
    slots: list[FileDescriptor | None] = [None] * len(tasks)
    pending: set[asyncio.Task] = set(tasks)

    logger.debug("Started %d upload sessions", len(tasks))

    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

            first_failure: tuple[int, BaseException] | None = None
            for task in sorted(done, key=position.__getitem__):
                i = position[task]
                error = _task_error(task)
                if error is None:
                    slots[i] = task.result()
                    if progress is not None:
                        progress.file_uploaded(str(paths[i]))
                    continue
                if progress is not None:
                    progress.file_failed(str(paths[i]), str(error))
                if first_failure is None:
                    first_failure = (i, error)

            if first_failure is not None:
                i, error = first_failure
                _orphan(pending)
                logger.error(
                    "Batch upload aborted: %s failed (%s); %d upload(s) left running",
                    paths[i],
                    error,
                    len(pending),
                )
                if isinstance(error, GeminiError):
                    raise error
                raise UploadCrashed(paths[i]) from error
    except asyncio.CancelledError:
        for task in pending:
            task.cancel()
        raise

    return slots  # type: ignore[return-value]


def _task_error(task: asyncio.Task) -> BaseException | None:
    """Return the task's exception, treating an external cancel as one."""
    if task.cancelled():
        return asyncio.CancelledError(f"{task.get_name()} was cancelled")
    return task.exception()


def _orphan(tasks: set[asyncio.Task]) -> None:
    for task in tasks:
        _orphaned_uploads.add(task)
        task.add_done_callback(_reap_orphan)


def _reap_orphan(task: asyncio.Task) -> None:
    _orphaned_uploads.discard(task)
    error = _task_error(task)
    if error is not None:
        logger.debug("Orphaned %s failed after batch abort: %s", task.get_name(), error)
    else:
        logger.debug("Orphaned %s finished after batch abort", task.get_name())

"""Rich progress display for batch uploads.

Opt-in: pass an :class:`UploadProgressTracker` to
:func:`geminiai.upload.upload_files` and it is advanced as each session
finishes.  Shows one bar for the batch plus the last file seen.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)


class UploadProgressTracker:
    """Rich progress tracker for one batch of uploads.

    Usage::

        tracker = UploadProgressTracker(total_files=len(paths))
        with tracker:
            files = await upload_files(client, paths, progress=tracker)

    Args:
        total_files: Number of sessions in the batch.
        console: Console to render to (defaults to stdout).
    """

    def __init__(self, total_files: int, console: Console | None = None) -> None:
        self._total_files = total_files
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            TextColumn("{task.fields[status]}", style="dim"),
            console=console,
        )
        self._task: TaskID | None = None
        self._stats: dict[str, int] = {"succeeded": 0, "failed": 0}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the Rich progress display."""
        self._progress.start()
        self._task = self._progress.add_task(
            "[green]Uploading",
            total=self._total_files,
            status="starting...",
        )

    def stop(self) -> None:
        """Stop the Rich progress display."""
        self._progress.stop()

    def __enter__(self) -> UploadProgressTracker:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # File-level events
    # ------------------------------------------------------------------

    def file_uploaded(self, file_path: str) -> None:
        """Record a successful upload."""
        self._stats["succeeded"] += 1
        self._advance(escape(_truncate_path(file_path)))

    def file_failed(self, file_path: str, error: str) -> None:
        """Record a failed upload."""
        self._stats["failed"] += 1
        self._advance(f"[red]FAIL[/red] {escape(_truncate_path(file_path))}: {escape(error)}")

    def _advance(self, status: str) -> None:
        if self._task is not None:
            self._progress.advance(self._task, 1)
            self._progress.update(self._task, status=status)

    @property
    def stats(self) -> dict[str, int]:
        """Return a copy of the current statistics."""
        return dict(self._stats)


def _truncate_path(file_path: str, max_len: int = 40) -> str:
    """Truncate a file path for display, keeping the end of the filename."""
    if len(file_path) <= max_len:
        return file_path
    return "..." + file_path[-(max_len - 3) :]

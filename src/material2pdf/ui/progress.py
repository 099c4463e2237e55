"""Rich progress display driven by pipeline events."""

from __future__ import annotations

from types import TracebackType
from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressReporter:
    """Translate ``(event, payload)`` callbacks into rich progress tasks.

    Tasks are tracked by name in ``_tasks``; ``_totals`` remembers the total
    each counted task was created with.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._tasks: dict[str, TaskID] = {}
        self._totals: dict[str, int] = {}
        self.failures: list[str] = []

    def __enter__(self) -> ProgressReporter:
        self.progress.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.progress.stop()

    def add_step(self, description: str, total: int | None = None) -> TaskID:
        return self.progress.add_task(description, total=total)

    def finish_task(self, task_id: TaskID) -> None:
        for task in self.progress.tasks:
            if task.id == task_id and task.total is not None:
                self.progress.update(task_id, completed=task.total)
        self.progress.remove_task(task_id)

    def _start(self, name: str, description: str, total: int | None) -> None:
        if name in self._tasks:
            return
        self._tasks[name] = self.add_step(description, total=total)
        if total is not None:
            self._totals[name] = total

    def _advance(self, name: str, description: str | None = None) -> None:
        task_id = self._tasks.get(name)
        if task_id is None:
            return
        if description is not None:
            self.progress.update(task_id, advance=1, description=description)
        else:
            self.progress.advance(task_id)

    def _finish(self, name: str) -> None:
        task_id = self._tasks.pop(name, None)
        if task_id is not None:
            self.finish_task(task_id)

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        if event == "render:start":
            self._start("blocks", "Rendering blocks", int(payload.get("blocks", 0)))
        elif event == "block:rendered":
            page = payload.get("page")
            self._advance("blocks", f"Rendering blocks (page {page})" if page else None)
        elif event == "block:failed":
            self.failures.append(f"block {payload.get('index')} ({payload.get('type')})")
            self._advance("blocks")
        elif event == "render:finalized":
            self._finish("blocks")


__all__ = ["ProgressReporter"]

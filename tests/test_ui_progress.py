from __future__ import annotations

from material2pdf.ui.progress import ProgressReporter


def test_progress_blocks_flow() -> None:
    with ProgressReporter() as pr:
        pr.emit("render:start", {"blocks": 3})
        assert "blocks" in pr._tasks
        assert pr._totals.get("blocks") == 3
        pr.emit("block:rendered", {"index": 1, "type": "h2", "path": "text", "page": 1})
        pr.emit("block:failed", {"index": 2, "type": "post_it", "error": "boom"})
        pr.emit("block:rendered", {"index": 3, "type": "paragrafo", "path": "text", "page": 2})
        pr.emit("render:finalized", {"blocks": 3, "pages": 2, "failures": 1})
        # blocks task finalized and removed
        assert "blocks" not in pr._tasks
        assert pr.failures == ["block 2 (post_it)"]


def test_progress_ignores_unknown_events() -> None:
    with ProgressReporter() as pr:
        pr.emit("something:else", {})
        pr.emit("block:rendered", {"index": 1})
        assert pr._tasks == {}


def test_progress_add_and_finish_step() -> None:
    with ProgressReporter() as pr:
        task = pr.add_step("Starting…", total=None)
        assert task in pr.progress.task_ids
        pr.finish_task(task)
        assert task not in pr.progress.task_ids

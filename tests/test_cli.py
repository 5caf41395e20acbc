"""
Tests for the command-line entry point.
"""

import sys
from concurrent.futures import TimeoutError as FuturesTimeoutError

from cli import main
from sketchforge.io.sketch_loader import ArtifactManager
from sketchforge.models import ImportStatusView, ImportTask, TaskStatus
from sketchforge.tasks.importer import ImportService


def test_status_prints_persisted_task(tmp_path, monkeypatch, capsys):
    ArtifactManager(tmp_path).save_record(
        ImportTask(id="abc123", user_id="alice", source_path="/tmp/a.png", status=TaskStatus.FAILED, error="boom")
    )
    monkeypatch.setattr(sys, "argv", ["sketchforge", "--data-dir", str(tmp_path), "status", "abc123"])

    assert main() == 0

    out = capsys.readouterr().out
    assert "Status: failed" in out
    assert "Error: boom" in out


def test_status_unknown_task(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["sketchforge", "--data-dir", str(tmp_path), "status", "missing"])

    assert main() == 1
    assert "Unknown task: missing" in capsys.readouterr().out


def test_import_rejects_unsupported_file(tmp_path, monkeypatch, capsys):
    notes = tmp_path / "notes.txt"
    notes.write_text("not a sketch")
    monkeypatch.setattr(sys, "argv", ["sketchforge", "--data-dir", str(tmp_path), "import", str(notes)])

    assert main() == 1
    assert "Sketch rejected" in capsys.readouterr().out


def test_no_command_prints_help(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["sketchforge"])

    assert main() == 1


def test_import_timeout_reports_pending_task(tmp_path, monkeypatch, capsys, sketch_bytes):
    sketch = tmp_path / "sketch.png"
    sketch.write_bytes(sketch_bytes)

    def slow_wait(self, task_id, timeout=None):
        raise FuturesTimeoutError()

    monkeypatch.setattr(ImportService, "submit", lambda self, path, user_id: "slow-task")
    monkeypatch.setattr(ImportService, "wait", slow_wait)
    monkeypatch.setattr(
        ImportService,
        "get_status",
        lambda self, task_id: ImportStatusView(task_id=task_id, status=TaskStatus.PROCESSING, progress=40),
    )
    monkeypatch.setattr(
        sys, "argv", ["sketchforge", "--data-dir", str(tmp_path), "import", str(sketch), "--timeout", "0.1"]
    )

    assert main() == 1

    out = capsys.readouterr().out
    assert "Task slow-task is still processing (40%)" in out
    assert "status slow-task" in out

"""Unit tests for carecomply.engine.logging — FileLogger, AsyncLogQueue, entry builders."""

import json
import time
from datetime import date, timedelta

import pytest

from carecomply.engine.config import LoggingConfig
from carecomply.engine.logging import (
    OBJECT_TYPE_CATEGORIES,
    AsyncLogQueue,
    FileLogger,
    LogEntry,
    get_log_queue,
    init_logging,
    init_logging_from_config,
    log,
    log_document_operation,
    log_override_change,
    log_status_evaluation,
    log_system_event,
    shutdown_logging,
)


class TestObjectTypeCategories:

    def test_expected_types(self):
        assert set(OBJECT_TYPE_CATEGORIES) == {
            "documents", "overrides", "compliance", "taxonomy", "system",
        }

    def test_every_type_has_execution(self):
        for obj_type, cats in OBJECT_TYPE_CATEGORIES.items():
            assert "execution" in cats, obj_type


class TestLogEntry:

    def test_to_json(self):
        entry = LogEntry("documents", "execution", {"document_id": "d-1"})
        assert json.loads(entry.to_json()) == {"document_id": "d-1"}

    def test_to_json_serializes_dates(self):
        entry = LogEntry("documents", "execution", {"when": date(2026, 1, 2)})
        assert json.loads(entry.to_json())["when"] == "2026-01-02"


class TestFileLogger:

    def test_creates_directory_tree(self, tmp_path):
        FileLogger(str(tmp_path / "logs"))
        for obj_type, cats in OBJECT_TYPE_CATEGORIES.items():
            for cat in cats:
                assert (tmp_path / "logs" / obj_type / cat).is_dir()

    def test_write_appends_jsonl(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        fl.write(LogEntry("documents", "execution", {"n": 1}))
        fl.write(LogEntry("documents", "execution", {"n": 2}))
        path = tmp_path / "documents" / "execution" / f"{date.today().isoformat()}.jsonl"
        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["n"] for line in lines] == [1, 2]

    def test_write_batch_groups_by_file(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        fl.write_batch([
            LogEntry("documents", "execution", {"n": 1}),
            LogEntry("overrides", "execution", {"n": 2}),
            LogEntry("documents", "execution", {"n": 3}),
        ])
        assert [e["n"] for e in fl.query("documents", "execution")] == [1, 3]
        assert [e["n"] for e in fl.query("overrides", "execution")] == [2]

    def test_query_filters(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        fl.write_batch([
            LogEntry("overrides", "execution", {"client_id": "a", "n": 1}),
            LogEntry("overrides", "execution", {"client_id": "b", "n": 2}),
        ])
        results = fl.query("overrides", "execution", filters={"client_id": "b"})
        assert [e["n"] for e in results] == [2]

    def test_query_limit(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        fl.write_batch([LogEntry("system", "execution", {"n": i}) for i in range(10)])
        assert len(fl.query("system", "execution", limit=3)) == 3

    def test_query_skips_malformed_lines(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        path = tmp_path / "system" / "execution" / f"{date.today().isoformat()}.jsonl"
        path.write_text('{"n": 1}\nnot json\n{"n": 2}\n', encoding="utf-8")
        assert [e["n"] for e in fl.query("system", "execution")] == [1, 2]

    def test_query_outside_range(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        fl.write(LogEntry("system", "execution", {"n": 1}))
        past = date.today() - timedelta(days=30)
        assert fl.query("system", "execution", start_date=past, end_date=past) == []


class TestAsyncLogQueue:

    def test_push_and_stop_drains(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        queue = AsyncLogQueue(fl, flush_interval_ms=10)
        queue.start()
        for i in range(5):
            assert queue.push(LogEntry("system", "execution", {"n": i}))
        queue.stop()
        assert len(fl.query("system", "execution")) == 5
        assert queue.pending_count == 0

    def test_drops_when_full(self, tmp_path):
        queue = AsyncLogQueue(FileLogger(str(tmp_path)), max_queue_size=2)
        assert queue.push(LogEntry("system", "execution", {}))
        assert queue.push(LogEntry("system", "execution", {}))
        assert not queue.push(LogEntry("system", "execution", {}))
        assert queue.dropped_count == 1

    def test_background_flush(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        queue = AsyncLogQueue(fl, flush_interval_ms=10, flush_batch_size=2)
        queue.start()
        try:
            queue.push(LogEntry("system", "execution", {"n": 1}))
            deadline = time.monotonic() + 2.0
            while time.monotonic() < deadline and not fl.query("system", "execution"):
                time.sleep(0.02)
            assert fl.query("system", "execution")
        finally:
            queue.stop()


class TestEntryBuilders:

    def test_document_operation(self):
        entry = log_document_operation(
            "archive", "d-1", "c-1", "Care Plan", user_id="u-1", folder_id="care-planning",
        )
        assert entry.object_type == "documents"
        assert entry.data["event"] == "document_archive"
        assert entry.data["object_ref"] == "documents.d-1"
        assert entry.data["folder_id"] == "care-planning"
        assert entry.data["success"] is True
        assert entry.data["level"] == "INFO"

    def test_document_operation_failure(self):
        entry = log_document_operation("upload", "d-1", "c-1", "Care Plan", success=False, error="x")
        assert entry.data["level"] == "ERROR"
        assert entry.data["error"] == "x"

    def test_override_change(self):
        entry = log_override_change("folder", "c-1", "risk", {"hidden": True})
        assert entry.object_type == "overrides"
        assert entry.data["event"] == "folder_override_changed"
        assert entry.data["object_ref"] == "overrides.folder.risk"
        assert entry.data["change"] == {"hidden": True}
        assert "user_id" not in entry.data

    def test_status_evaluation(self):
        entry = log_status_evaluation("c-1", "overall", "overdue", duration_ms=1.23456)
        assert entry.object_type == "compliance"
        assert entry.data["status"] == "overdue"
        assert entry.data["duration_ms"] == 1.235

    def test_system_event(self):
        entry = log_system_event("taxonomy_loaded", "ok", details={"version": "1"})
        assert entry.object_type == "system"
        assert entry.data["details"] == {"version": "1"}


class TestGlobalQueue:

    def test_log_without_init_is_noop(self):
        assert get_log_queue() is None
        assert log(log_system_event("startup", "hi")) is False

    def test_init_log_shutdown(self, tmp_path):
        queue = init_logging(str(tmp_path), flush_interval_ms=10)
        assert get_log_queue() is queue
        assert log(log_system_event("startup", "hi")) is True
        shutdown_logging()
        assert get_log_queue() is None
        assert FileLogger(str(tmp_path)).query("system", "execution")[0]["event"] == "startup"

    def test_init_from_config(self, tmp_path):
        config = LoggingConfig(directory=str(tmp_path / "audit"), async_queue={"flush_interval_ms": 10})
        queue = init_logging_from_config(config)
        assert get_log_queue() is queue
        shutdown_logging()
        events = FileLogger(str(tmp_path / "audit")).query("system", "execution")
        assert events[0]["event"] == "audit_trail_started"

    def test_init_from_config_replaces_running_queue(self, tmp_path):
        first = init_logging(str(tmp_path / "old"), flush_interval_ms=10)
        log(log_system_event("before", "old queue"))
        second = init_logging_from_config(LoggingConfig(directory=str(tmp_path / "new")))
        assert second is not first
        shutdown_logging()
        old_events = [e["event"] for e in FileLogger(str(tmp_path / "old")).query("system", "execution")]
        assert old_events == ["before"]

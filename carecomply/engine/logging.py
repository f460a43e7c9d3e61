"""
CareComply Logging System — Structured JSON audit trail with async queue.

Implements:
- FileLogger: Per-object-type, per-category log files (daily rotation)
- AsyncLogQueue: In-memory queue with background flush (100ms / 50 entries)
- Log entry builders for document lifecycle, override and status events

Files: {log_dir}/{object_type}/{category}/{YYYY-MM-DD}.jsonl
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from carecomply.engine.config import LoggingConfig

logger = logging.getLogger("carecomply.engine.logging")

# Valid object types and their permitted categories
OBJECT_TYPE_CATEGORIES = {
    "documents": ["execution", "security"],
    "overrides": ["execution", "security"],
    "compliance": ["execution"],
    "taxonomy": ["execution"],
    "system": ["execution", "security"],
}


class LogEntry:
    """A structured log entry destined for a specific file."""

    __slots__ = ("object_type", "category", "data")

    def __init__(self, object_type: str, category: str, data: Dict[str, Any]):
        self.object_type = object_type
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Writes structured JSON log entries to per-object-type, per-category files.
    Files rotate daily: logs/{object_type}/{category}/{YYYY-MM-DD}.jsonl

    Thread-safe — uses a lock per file path.
    """

    def __init__(self, log_dir: str = "logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create the full directory tree for all object types and categories."""
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                (self._log_dir / obj_type / cat).mkdir(parents=True, exist_ok=True)

    def write(self, entry: LogEntry) -> None:
        """Write a single log entry to the appropriate file."""
        file_path = self._resolve_path(entry.object_type, entry.category)
        key = str(file_path)

        with self._file_locks[key]:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "a", encoding="utf-8") as f:
                f.write(entry.to_json())
                f.write("\n")

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write a batch of log entries, grouping by file path."""
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            file_path = str(self._resolve_path(entry.object_type, entry.category))
            grouped[file_path].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                Path(file_path).parent.mkdir(parents=True, exist_ok=True)
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def _resolve_path(self, object_type: str, category: str) -> Path:
        """Resolve the log file path for today's date."""
        today = date.today().isoformat()
        return self._log_dir / object_type / category / f"{today}.jsonl"

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def query(
        self,
        object_type: str,
        category: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 500,
    ) -> List[Dict[str, Any]]:
        """
        Query log entries for a given object_type/category.

        Only entries whose top-level keys equal ALL of *filters* are returned.
        Results are ordered oldest first within the requested date range.
        """
        if end_date is None:
            end_date = date.today()
        if start_date is None:
            start_date = end_date - timedelta(days=7)

        log_base = self._log_dir / object_type / category
        if not log_base.exists():
            return []

        results: List[Dict[str, Any]] = []
        current = start_date
        while current <= end_date and len(results) < limit:
            file_path = log_base / f"{current.isoformat()}.jsonl"
            if file_path.exists():
                results.extend(self._read_jsonl(file_path, filters, limit - len(results)))
            current += timedelta(days=1)
        return results

    @staticmethod
    def _read_jsonl(
        path: Path,
        filters: Optional[Dict[str, Any]],
        remaining: int,
    ) -> List[Dict[str, Any]]:
        """Read up to *remaining* matching entries from a .jsonl file."""
        entries: List[Dict[str, Any]] = []
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning(f"Skipping malformed log line in {path}")
                    continue
                if filters and not all(data.get(k) == v for k, v in filters.items()):
                    continue
                entries.append(data)
                if len(entries) >= remaining:
                    break
        return entries


class AsyncLogQueue:
    """
    In-memory queue with a background flush thread.

    Entries are pushed non-blocking. A background thread flushes to FileLogger
    every flush_interval_ms OR when flush_batch_size entries accumulate,
    whichever comes first.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._running = False
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        """Start the background flush thread."""
        if self._running:
            return
        self._running = True
        self._flush_thread = threading.Thread(
            target=self._flush_loop,
            name="carecomply-log-flush",
            daemon=True,
        )
        self._flush_thread.start()
        logger.info("Async log queue started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread and drain remaining entries."""
        self._running = False
        if self._flush_thread and self._flush_thread.is_alive():
            self._flush_thread.join(timeout=timeout)
        self._drain()
        logger.info(f"Async log queue stopped (dropped: {self._dropped_count})")

    def push(self, entry: LogEntry) -> bool:
        """
        Push a log entry to the queue. Non-blocking.

        Returns:
            True if queued, False if dropped (queue full).
        """
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        """Background thread: flush on interval or batch size."""
        while self._running:
            batch = self._collect_batch()
            if batch:
                try:
                    self._logger.write_batch(batch)
                except OSError as e:
                    logger.error(f"Log flush error: {e}")
            else:
                time.sleep(self._flush_interval)

    def _collect_batch(self) -> List[LogEntry]:
        """Collect up to flush_batch_size entries from the queue."""
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self._flush_interval

        while len(batch) < self._flush_batch_size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch.append(self._queue.get(timeout=min(remaining, 0.01)))
            except Empty:
                if batch:
                    break
                continue

        return batch

    def _drain(self) -> None:
        """Drain all remaining entries from the queue."""
        batch: List[LogEntry] = []
        while not self._queue.empty():
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        if batch:
            try:
                self._logger.write_batch(batch)
            except OSError as e:
                logger.error(f"Log drain error: {e}")

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(
    event: str,
    level: str,
    object_ref: str,
    client_id: Optional[str] = None,
    user_id: Optional[Any] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a base log entry with common fields."""
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
        "object_ref": object_ref,
    }
    if client_id is not None:
        entry["client_id"] = client_id
    if user_id is not None:
        entry["user_id"] = user_id
    entry.update(extra)
    return entry


def log_document_operation(
    operation: str,
    document_id: str,
    client_id: str,
    document_type: str,
    user_id: Optional[Any] = None,
    folder_id: Optional[str] = None,
    success: bool = True,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a document lifecycle log entry (upload/edit/archive/unarchive/delete)."""
    data = _base_entry(
        event=f"document_{operation}",
        level="INFO" if success else "ERROR",
        object_ref=f"documents.{document_id}",
        client_id=client_id,
        user_id=user_id,
        operation=operation,
        document_type=document_type,
        success=success,
    )
    if folder_id:
        data["folder_id"] = folder_id
    if error:
        data["error"] = error
    return LogEntry("documents", "execution", data)


def log_override_change(
    kind: str,
    client_id: str,
    key: str,
    change: Dict[str, Any],
    user_id: Optional[Any] = None,
) -> LogEntry:
    """Build an override change log entry (kind: compliance/folder)."""
    data = _base_entry(
        event=f"{kind}_override_changed",
        level="INFO",
        object_ref=f"overrides.{kind}.{key}",
        client_id=client_id,
        user_id=user_id,
        change=change,
    )
    return LogEntry("overrides", "execution", data)


def log_status_evaluation(
    client_id: str,
    scope: str,
    status: str,
    duration_ms: Optional[float] = None,
) -> LogEntry:
    """Build a compliance evaluation log entry (scope: folder id or 'overall')."""
    data = _base_entry(
        event="status_evaluated",
        level="INFO",
        object_ref=f"compliance.{scope}",
        client_id=client_id,
        status=status,
    )
    if duration_ms is not None:
        data["duration_ms"] = round(duration_ms, 3)
    return LogEntry("compliance", "execution", data)


def log_system_event(
    event_type: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event log entry (startup, shutdown, taxonomy load)."""
    data = _base_entry(
        event=event_type,
        level="INFO",
        object_ref="system",
        message=message,
    )
    if details:
        data["details"] = details
    return LogEntry("system", "execution", data)


# ---------------------------------------------------------------------------
# Global queue
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = "logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AsyncLogQueue:
    """Initialize the global async log queue."""
    global _global_queue
    file_logger = FileLogger(log_dir=log_dir)
    _global_queue = AsyncLogQueue(
        file_logger=file_logger,
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def init_logging_from_config(config: "LoggingConfig") -> AsyncLogQueue:
    """
    Start the audit trail from the ``logging`` section of carecomply.yaml.
    A queue that is already running is flushed and replaced.
    """
    if _global_queue is not None:
        shutdown_logging()
    queue = init_logging(
        log_dir=config.directory,
        flush_interval_ms=config.async_queue.flush_interval_ms,
        flush_batch_size=config.async_queue.flush_batch_size,
        max_queue_size=config.async_queue.max_queue_size,
    )
    log(log_system_event(
        "audit_trail_started", f"Audit trail writing to {config.directory}",
    ))
    return queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    """Get the global async log queue."""
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push a log entry to the global queue. Non-blocking."""
    if _global_queue is None:
        logger.debug(f"Log queue not initialized — {entry.data.get('event')} dropped")
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the global log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None

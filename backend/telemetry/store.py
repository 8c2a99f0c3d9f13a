from __future__ import annotations

import json
import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb

from editor.commands import Command, command_summary
from editor.types import EditorState
from telemetry.sql import (
    CREATE_ACTIONS_TABLE_SQL,
    INSERT_ACTIONS_SQL,
    RECENT_SQL,
    SUMMARY_SQL_TEMPLATE,
)

logger = logging.getLogger(__name__)


def _safe_float(v) -> float | None:
    try:
        if v is None:
            return None
        return float(v)
    except (TypeError, ValueError):
        return None


@dataclass
class TelemetryStore:
    """
    Action log in DuckDB, fed by the editor session as an observer.

    `on_action` only enqueues; a single writer thread batches inserts so a
    dispatch never waits on disk.
    """

    path: Path
    conn: duckdb.DuckDBPyConnection
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _q: "queue.Queue[tuple]" = field(default_factory=queue.Queue, repr=False)
    _stop: threading.Event = field(default_factory=threading.Event, repr=False)
    _worker: threading.Thread | None = field(default=None, repr=False)

    def ensure_schema(self) -> None:
        with self._lock:
            self.conn.execute(CREATE_ACTIONS_TABLE_SQL)

    def start(self) -> None:
        if self._worker is not None:
            return
        self._stop.clear()
        self._worker = threading.Thread(
            target=self._run, name="telemetry-writer", daemon=True
        )
        self._worker.start()

    def stop(self, *, timeout_s: float = 2.0) -> None:
        """
        Stop the writer thread; it drains what is queued before exiting.
        """
        self._stop.set()
        w = self._worker
        if w is not None and w.is_alive():
            w.join(timeout=timeout_s)
        self._worker = None

    def on_action(
        self,
        command: Command,
        before: EditorState,
        after: EditorState,
        duration_ms: float,
    ) -> None:
        self.record(
            action=command.action,
            changed=before is not after,
            feature_count=len(after.features),
            loaded_count=len(after.loaded_features),
            deleted_count=len(after.deleted),
            status=after.status,
            duration_ms=duration_ms,
            payload=command_summary(command),
        )

    def record(
        self,
        *,
        action: str,
        changed: bool,
        feature_count: int,
        loaded_count: int,
        deleted_count: int,
        status: str,
        duration_ms: float,
        payload: dict[str, Any],
    ) -> None:
        # Non-blocking: enqueue and return.
        self.start()
        try:
            self._q.put_nowait(
                (
                    int(time.time() * 1000),
                    str(action),
                    bool(changed),
                    int(feature_count),
                    int(loaded_count),
                    int(deleted_count),
                    str(status),
                    float(duration_ms),
                    json.dumps(payload, ensure_ascii=False, default=str),
                )
            )
        except queue.Full:
            logger.debug("Telemetry queue full, dropping %s", action)

    def flush(self, *, timeout_s: float = 2.0) -> None:
        """
        Wait until queued actions are written (used by tests and on shutdown).
        """
        if self._worker is None:
            return
        deadline = time.time() + timeout_s
        while time.time() < deadline:
            if self._q.unfinished_tasks == 0:
                break
            time.sleep(0.01)

    def query(self, sql: str, params: list[Any] | None = None) -> list[tuple]:
        with self._lock:
            if params:
                return self.conn.execute(sql, params).fetchall()
            return self.conn.execute(sql).fetchall()

    def summary(
        self,
        *,
        action: str | None = None,
        since_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        where = []
        params: list[Any] = []
        if action:
            where.append("action = ?")
            params.append(action)
        if since_ms is not None:
            where.append("ts_ms >= ?")
            params.append(int(since_ms))

        where_sql = f"WHERE {' AND '.join(where)}" if where else ""
        rows = self.query(SUMMARY_SQL_TEMPLATE.format(where_sql=where_sql), params)

        out: list[dict[str, Any]] = []
        for action_v, n, changed_rate, avg_ms, p95_ms, last_ts_ms in rows:
            out.append(
                {
                    "action": action_v,
                    "n": int(n),
                    "changedRate": _safe_float(changed_rate),
                    "avgMs": _safe_float(avg_ms),
                    "p95Ms": _safe_float(p95_ms),
                    "lastTsMs": int(last_ts_ms) if last_ts_ms is not None else None,
                }
            )
        return out

    def recent(self, *, limit: int = 50) -> list[dict[str, Any]]:
        rows = self.query(RECENT_SQL, [int(max(1, min(500, limit)))])
        return [
            {
                "tsMs": int(ts_ms),
                "action": action,
                "changed": bool(changed),
                "status": status,
                "durationMs": _safe_float(duration_ms),
                "payload": json.loads(payload_json) if payload_json else {},
            }
            for ts_ms, action, changed, status, duration_ms, payload_json in rows
        ]

    def reset(self) -> None:
        # Stop the writer first so it cannot write to a closed connection.
        self.stop(timeout_s=2.0)
        with self._lock:
            try:
                self.conn.close()
            except duckdb.Error:
                logger.debug("Telemetry connection already closed")
            self.path.unlink(missing_ok=True)

    def _run(self) -> None:
        self.ensure_schema()
        batch: list[tuple] = []
        last_flush = time.time()

        def flush_batch() -> None:
            nonlocal batch
            if not batch:
                return
            with self._lock:
                self.conn.executemany(INSERT_ACTIONS_SQL, batch)
                # Make rows visible to readers immediately.
                self.conn.execute("CHECKPOINT;")
            for _ in batch:
                self._q.task_done()
            batch = []

        while not self._stop.is_set():
            try:
                batch.append(self._q.get(timeout=0.1))
            except queue.Empty:
                pass

            # Flush on size or time, or as soon as the queue is idle.
            now = time.time()
            if batch and (
                len(batch) >= 250 or (now - last_flush) >= 0.5 or self._q.empty()
            ):
                try:
                    flush_batch()
                except duckdb.Error:
                    logger.exception("Telemetry flush failed; dropping %d rows", len(batch))
                    for _ in batch:
                        self._q.task_done()
                    batch = []
                last_flush = now

        # Drain remaining
        try:
            while True:
                batch.append(self._q.get_nowait())
        except queue.Empty:
            pass
        try:
            flush_batch()
        except duckdb.Error:
            logger.exception("Telemetry flush failed on shutdown")


#
# NOTE: singleton accessors live in `telemetry/singleton.py` to keep this file smaller.

"""
Structured logging setup for the gateway.

- Rich console handler for humans
- JSON lines file sink written by a background thread so request handling
  never waits on disk
- Throttling for repetitive indexer / RPC warnings, per market
- Secret-looking fields are masked before they reach any handler
"""

from __future__ import annotations

import atexit
import json
import logging
import queue
import sys
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from rich.logging import RichHandler

SENSITIVE_FIELDS = ("private_key", "privateKey", "secret", "mnemonic")
_MASK = "***"


def _event_payload(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
    """Decoded log_event payload carried by `record`, or None for plain messages."""
    try:
        data = json.loads(record.getMessage())
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(data, dict) and "event" in data:
        return data
    return None


class JsonFormatter(logging.Formatter):
    """One JSON object per line; event payloads are lifted to top-level fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }
        event = _event_payload(record)
        if event is not None:
            payload.update(event)
        else:
            payload["msg"] = record.getMessage()
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


class BackgroundFileHandler(logging.Handler):
    """
    JSON lines file handler whose writes happen on a daemon thread.

    emit() never blocks: when the queue is full the record is dropped and
    counted, and the count is reported on close.
    """

    def __init__(self, path: str, max_queue_size: int = 10000):
        super().__init__()
        self._sink = logging.FileHandler(path, encoding="utf-8")
        self._sink.setFormatter(JsonFormatter())
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._closed = threading.Event()
        self._dropped = 0
        self._thread = threading.Thread(target=self._drain, daemon=True, name="log-writer")
        self._thread.start()
        atexit.register(self.close)

    def emit(self, record: logging.LogRecord) -> None:
        if self._closed.is_set():
            return
        try:
            self._queue.put_nowait(record)
        except queue.Full:
            self._dropped += 1

    def flush(self) -> None:
        self._queue.join()
        self._sink.flush()

    def _drain(self) -> None:
        while not (self._closed.is_set() and self._queue.empty()):
            try:
                record = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self._sink.emit(record)
            except Exception:
                self._sink.handleError(record)
            finally:
                self._queue.task_done()

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._thread.join(timeout=2.0)
        if self._dropped:
            sys.stderr.write(f"[logging] dropped {self._dropped} records, log queue was full\n")
        self._sink.close()
        super().close()


class ThrottledFilter(logging.Filter):
    """
    Lets the first occurrence of a throttled event through, then suppresses
    repeats for the same market for cooldown_sec.
    """

    def __init__(self, cooldown_sec: float = 30.0, throttled_events: Optional[Set[str]] = None):
        super().__init__()
        self._cooldown = cooldown_sec
        self._last_seen: Dict[str, float] = {}
        self._throttled_events = throttled_events or {
            "indexer_unavailable", "reconcile_skipped", "rpc_retry",
        }

    def filter(self, record: logging.LogRecord) -> bool:
        data = _event_payload(record)
        if data is None or data["event"] not in self._throttled_events:
            return True

        now = time.time()
        key = f"{data['event']}:{data.get('pool', '')}:{data.get('perpetual_index', '')}"
        if now - self._last_seen.get(key, 0) < self._cooldown:
            return False
        self._last_seen[key] = now
        return True


def build_logger(
    name: str = "perp_gateway",
    level: int = logging.INFO,
    file_path: Optional[str] = None,
    async_file: bool = True,
    throttle_warnings: bool = True,
) -> logging.Logger:
    """
    Build the gateway logger. Idempotent: a second call only adjusts levels.

    Args:
        name: Logger name
        level: Minimum log level
        file_path: JSON lines log file (None to disable file logging)
        async_file: Write the file from a background thread
        throttle_warnings: Throttle repetitive indexer/RPC warnings on the console
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        for h in logger.handlers:
            h.setLevel(level)
        return logger

    console = RichHandler(show_path=False, markup=False, rich_tracebacks=False)
    console.setFormatter(logging.Formatter("%(message)s"))
    if throttle_warnings:
        console.addFilter(ThrottledFilter(cooldown_sec=30.0))
    handlers: list[logging.Handler] = [console]

    if file_path:
        if async_file:
            handlers.append(BackgroundFileHandler(file_path))
        else:
            sink = logging.FileHandler(file_path, encoding="utf-8")
            sink.setFormatter(JsonFormatter())
            handlers.append(sink)

    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    level: int = logging.INFO,
    **data
) -> None:
    """
    Log a structured event. Values of secret-looking fields are masked.

    Usage:
        log_event(log, "trade_submitted", pool=pool, tx_hash=tx_hash)
    """
    payload = {"event": event}
    for key, value in data.items():
        payload[key] = _MASK if key in SENSITIVE_FIELDS else value
    logger.log(level, json.dumps(payload, default=str))

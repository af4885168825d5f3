"""
Corpus Relations - Logging Configuration
=========================================
Every engine module logs under the ``corel`` namespace
(``corel.tokenizer``, ``corel.tfidf``, ``corel.pairwise``, ``corel.graph``,
``corel.topics``); ``setup_logging`` attaches the handlers once per process.

What each level carries here:
  - DEBUG   : vocabulary and pair sizes, degenerate phi pairs resolved to 0
  - INFO    : corpus tokenized, tf-idf scored, pairs counted, graph built
  - WARNING : empty documents skipped by the tf-idf scorer, rejected requests
  - ERROR   : pairwise capacity exceeded, failed API tasks

Request task log
----------------
Each API route wraps its engine calls in ``task_event``. The resulting
event (task name, input sizes, output sizes, duration, error) is kept per
browser session and served by ``GET /api/pipeline-log``, so a client can see
which step of tokenize → tf-idf → pairwise → graph failed and why::

    with task_event(sid, "pairwise_correlation", inputs={"memberships": 840}) as ev:
        pairs = PairwiseEngine.pairwise_correlation(memberships)
        ev["outputs"] = {"pairs": len(pairs)}
"""

import os
import time
import logging
import logging.handlers
import traceback
from collections import deque
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
LOG_DIR = os.environ.get("COREL_LOG_DIR", os.path.join(BASE_DIR, "logs"))

# ── In-memory ring buffer for recent log messages ────────────────
_MAX_BUFFER = 200
_log_buffer: deque[dict] = deque(maxlen=_MAX_BUFFER)

# ── Per-session structured pipeline event log ─────────────────────
_MAX_PIPELINE_EVENTS = 100
PIPELINE_LOG: dict[str, deque] = {}


def _session_pipeline_log(session_id: str) -> deque:
    """Return (or create) the pipeline event deque for *session_id*."""
    if session_id not in PIPELINE_LOG:
        PIPELINE_LOG[session_id] = deque(maxlen=_MAX_PIPELINE_EVENTS)
    return PIPELINE_LOG[session_id]


@contextmanager
def task_event(
    session_id: str,
    task_name: str,
    inputs: dict | None = None,
) -> Generator[dict, None, None]:
    """
    Record one engine step of an API request as a task event.

    The yielded dict is filled in by the caller (``ev["outputs"]``), then
    appended to the session's PIPELINE_LOG and logged to ``corel.task.<name>``
    when the block exits. Exceptions are recorded with a short traceback
    and re-raised for the Flask error handlers.
    """
    event: dict = {
        "task": task_name,
        "started_at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "status": "running",
        "inputs": inputs or {},
        "outputs": {},
        "duration_sec": None,
        "error": None,
    }
    _t0 = time.perf_counter()
    _logger = logging.getLogger(f"corel.task.{task_name}")

    try:
        yield event
        event["duration_sec"] = round(time.perf_counter() - _t0, 3)
        event["status"] = "success"
        _logger.info(
            "TASK %-24s | status=%-7s | duration=%.3fs | inputs=%s | outputs=%s",
            task_name, "success", event["duration_sec"],
            _compact(event["inputs"]), _compact(event["outputs"]),
        )
    except Exception as exc:
        event["duration_sec"] = round(time.perf_counter() - _t0, 3)
        event["status"] = "error"
        event["error"] = str(exc)
        event["traceback"] = traceback.format_exc(limit=6)
        _logger.error(
            "TASK %-24s | status=%-7s | duration=%.3fs | error=%s",
            task_name, "error", event["duration_sec"], exc,
        )
        raise
    finally:
        _session_pipeline_log(session_id).append(event)


def _compact(d: dict) -> str:
    """Return a short string representation of a dict for log lines."""
    if not d:
        return "{}"
    parts = []
    for k, v in list(d.items())[:6]:
        if isinstance(v, (list, dict)):
            parts.append(f"{k}={type(v).__name__}[{len(v)}]")
        else:
            parts.append(f"{k}={v!r}"[:60])
    return "{" + ", ".join(parts) + ("…" if len(d) > 6 else "") + "}"


def get_pipeline_log(session_id: str, n: int = 30) -> list[dict]:
    """Return the most recent *n* pipeline events for *session_id*."""
    events = list(_session_pipeline_log(session_id))[-n:]
    result = []
    for ev in events:
        copy = dict(ev)
        if copy.get("traceback"):
            # last 3 lines only
            lines = copy["traceback"].strip().splitlines()
            copy["traceback"] = "\n".join(lines[-3:])
        result.append(copy)
    return result


def clear_pipeline_log(session_id: str) -> None:
    """Remove all pipeline events for *session_id*."""
    PIPELINE_LOG.pop(session_id, None)


class _BufferHandler(logging.Handler):
    """Captures INFO+ log records into an in-memory ring buffer."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            _log_buffer.append({
                "ts": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            })
        except Exception:
            self.handleError(record)


def get_recent_logs(n: int = 50, min_level: str = "INFO") -> list[dict]:
    """Return the most recent *n* log entries at or above *min_level*."""
    min_val = getattr(logging, min_level.upper(), logging.INFO)
    out = []
    for entry in reversed(_log_buffer):
        if logging.getLevelName(entry["level"]) >= min_val:
            out.append(entry)
            if len(out) >= n:
                break
    out.reverse()
    return out


def setup_logging(level: str = "DEBUG") -> None:
    """
    Configure the ``corel`` logger with console, rotating file and buffer
    handlers. Safe to call more than once.
    """
    log_level = getattr(logging, level.upper(), logging.DEBUG)

    root = logging.getLogger("corel")
    root.setLevel(log_level)

    # Prevent duplicate handlers on re-init
    if root.handlers:
        return

    os.makedirs(LOG_DIR, exist_ok=True)

    # ── Format ───────────────────────────────────────────────────────
    detailed_fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)-28s | %(funcName)-24s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
        datefmt="%H:%M:%S",
    )

    # ── Console Handler ──────────────────────────────────────────────
    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(console_fmt)
    root.addHandler(console)

    # ── Rotating File Handler (all logs) ─────────────────────────────
    all_log = logging.handlers.RotatingFileHandler(
        os.path.join(LOG_DIR, "corel.log"),
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    all_log.setLevel(logging.DEBUG)
    all_log.setFormatter(detailed_fmt)
    root.addHandler(all_log)

    # ── Error-only File Handler ──────────────────────────────────────
    error_log = logging.handlers.RotatingFileHandler(
        os.path.join(LOG_DIR, "corel_errors.log"),
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=3,
        encoding="utf-8",
    )
    error_log.setLevel(logging.ERROR)
    error_log.setFormatter(detailed_fmt)
    root.addHandler(error_log)

    # ── In-memory Buffer Handler ─────────────────────────────────────
    buf_handler = _BufferHandler()
    buf_handler.setLevel(logging.INFO)
    buf_handler.setFormatter(console_fmt)
    root.addHandler(buf_handler)

    # ── Task Log (corel.task.* loggers only) ─────────────────────────
    task_file = logging.handlers.RotatingFileHandler(
        os.path.join(LOG_DIR, "tasks.log"),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    task_file.setLevel(logging.DEBUG)
    task_file.setFormatter(detailed_fmt)
    task_file.addFilter(lambda r: r.name.startswith("corel.task."))
    root.addHandler(task_file)

    logging.getLogger("corel.startup").info(
        "Logging initialised  |  level=%s  |  log_dir=%s", level, LOG_DIR
    )


def get_logger(name: str) -> logging.Logger:
    """Return a named logger under the corel namespace."""
    return logging.getLogger(f"corel.{name}")

"""Structured logging: console and JSONL event file."""

import contextvars
import json
import logging
import os
import sys
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from nlweb.core.config import config


def _format_duration(seconds: float) -> str:
    if seconds < 0:
        return "0s"
    if seconds >= 60:
        m = int(seconds // 60)
        s = seconds % 60
        if s < 0.05:
            return f"{m}m"
        return f"{m}m {s:.0f}s" if s >= 1 else f"{m}m {s:.1f}s"
    if seconds >= 0.05:
        return f"{seconds:.1f}s"
    if seconds > 0:
        return "<0.1s"
    return "0s"


def _short_query(query: str | None, max_len: int = 80) -> str:
    """One-line query preview for console."""
    if not query or not query.strip():
        return ""
    s = query.strip().replace("\n", " ")
    return s[:max_len] + "..." if len(s) > max_len else s


_search_ctx: contextvars.ContextVar[tuple[float, str] | None] = contextvars.ContextVar(
    "search_request", default=None
)


def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    try:
        return sys.stdout.isatty()
    except Exception:
        return False


def _c(role: str) -> str:
    if not _use_color():
        return ""
    # 38;5;N = foreground 256-color
    codes = {
        "dim": "\033[38;5;239m",
        "query": "\033[38;5;81m",
        "done_ok": "\033[38;5;78m",
        "done_fail": "\033[38;5;203m",
        "duration": "\033[38;5;221m",
        "site": "\033[38;5;245m",
    }
    return codes.get(role, "")


def _reset() -> str:
    if not _use_color():
        return ""
    return "\033[0m"


@dataclass
class LogEvent:
    event_type: str
    timestamp: str
    data: dict[str, Any]

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class NLWebLogger:
    def __init__(self):
        config.logs_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = config.logs_dir / "client.log"
        self._file_lock = threading.Lock()
        self._log_file_handle = open(self.log_file, "a", encoding="utf-8")
        self._setup_console_logger()

    def _setup_console_logger(self):
        self.console = logging.getLogger("nlweb")
        self.console.setLevel(logging.DEBUG)
        self._console_formatter = logging.Formatter(
            "%(asctime)s │ %(message)s", datefmt="%H:%M:%S"
        )
        if not self.console.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(logging.INFO)
            handler.setFormatter(self._console_formatter)
            self.console.addHandler(handler)
        self._setup_third_party_console_logging()

    def _setup_third_party_console_logging(self):
        handler = logging.StreamHandler()
        handler.setLevel(logging.WARNING)
        handler.setFormatter(self._console_formatter)
        for name in ("httpx", "httpcore"):
            log = logging.getLogger(name)
            log.setLevel(logging.WARNING)
            log.propagate = False
            log.addHandler(handler)

    def log_event(self, event: LogEvent) -> None:
        with self._file_lock:
            self._log_file_handle.write(event.to_json() + "\n")
            self._log_file_handle.flush()

    def _timestamp(self) -> str:
        return datetime.now().isoformat()

    def search_request(
        self,
        query: str,
        site: str,
        *,
        offset: int = 0,
        history_length: int = 0,
    ) -> None:
        _search_ctx.set((time.monotonic(), query))
        event = LogEvent(
            event_type="SEARCH_REQUEST",
            timestamp=self._timestamp(),
            data={
                "query": query[:500],
                "site": site,
                "offset": offset,
                "history_length": history_length,
            },
        )
        self.log_event(event)
        turn = f"  turn {history_length + 1}" if history_length else ""
        page = f"  offset {offset}" if offset else ""
        self.console.info(
            f"Search: {_c('query')}{_short_query(query)}{_reset()}  "
            f"{_c('site')}[{site}]{_reset()}{turn}{page}"
        )

    def _elapsed(self) -> tuple[float, str]:
        pair = _search_ctx.get()
        if pair is None:
            return 0.0, "?"
        _search_ctx.set(None)
        start, query = pair
        return time.monotonic() - start, query

    def search_done(
        self,
        result_count: int,
        *,
        has_summary: bool,
        record_count: int,
        decontextualized_query: str | None = None,
    ) -> None:
        elapsed, query = self._elapsed()
        data: dict[str, Any] = {
            "query": query[:500],
            "result_count": result_count,
            "has_summary": has_summary,
            "record_count": record_count,
            "duration_seconds": round(elapsed, 3),
        }
        if decontextualized_query:
            data["decontextualized_query"] = decontextualized_query[:500]
        self.log_event(
            LogEvent(event_type="SEARCH_DONE", timestamp=self._timestamp(), data=data)
        )
        dur = f"{_c('duration')}{_format_duration(elapsed)}{_reset()}"
        summary = "  +summary" if has_summary else ""
        self.console.info(
            f"{_c('done_ok')}✓ Done{_reset()}  {result_count} results{summary}  "
            f"{record_count} records  in {dur}"
        )

    def search_cancelled(self, query: str, reason: str) -> None:
        self._elapsed()
        event = LogEvent(
            event_type="SEARCH_CANCELLED",
            timestamp=self._timestamp(),
            data={"query": query[:500], "reason": reason},
        )
        self.log_event(event)
        self.console.info(
            f"{_c('dim')}Cancelled ({reason}): {_short_query(query)}{_reset()}"
        )

    def search_failed(self, message: str, *, status_code: int | None = None) -> None:
        elapsed, query = self._elapsed()
        event = LogEvent(
            event_type="ERROR",
            timestamp=self._timestamp(),
            data={
                "query": query[:500],
                "message": message[:500],
                "status_code": status_code,
                "duration_seconds": round(elapsed, 3),
            },
        )
        self.log_event(event)
        self.console.error(
            f"{_c('done_fail')}[failed]{_reset()}  {_short_query(message)}"
        )

    def error(self, message: str, *args, exception: Exception | None = None, **kwargs):
        event = LogEvent(
            event_type="ERROR",
            timestamp=self._timestamp(),
            data={
                "message": message,
                "exception": str(exception) if exception else None,
            },
        )
        self.log_event(event)

        # Filter kwargs for standard logger
        allowed = {"exc_info", "stack_info", "stacklevel", "extra"}
        log_kwargs = {k: v for k, v in kwargs.items() if k in allowed}
        if exception and "exc_info" not in log_kwargs:
            log_kwargs["exc_info"] = exception

        self.console.error(f"❌ Error: {message}", *args, **log_kwargs)


logger = NLWebLogger()

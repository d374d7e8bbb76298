from __future__ import annotations

import json
import sys
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, TextIO

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate(text: str, *, limit: int) -> str:
    s = str(text or "")
    if limit <= 0:
        return ""
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 1)] + "…"


class _Sink:
    """Shared output target for a logger and all loggers bound from it."""

    def __init__(self, fp: TextIO, *, owned: bool) -> None:
        self._fp: TextIO | None = fp
        self._owned = owned
        self._lock = Lock()

    def write(self, line: str) -> None:
        with self._lock:
            if self._fp is None:
                return
            self._fp.write(line + "\n")
            self._fp.flush()

    def close(self) -> None:
        with self._lock:
            if self._fp is None:
                return
            try:
                self._fp.flush()
            finally:
                if self._owned:
                    self._fp.close()
                self._fp = None


class EventLogger:
    """
    JSON-lines event logger for aggregation queries.

    Each line is one JSON object (ts, level, event, session_id, plus any bound
    context and event data), so logs can be grepped or loaded for audits.
    """

    def __init__(
        self,
        sink: _Sink,
        *,
        session_id: str | None = None,
        min_level: str = "INFO",
        context: dict[str, Any] | None = None,
    ) -> None:
        self._sink = sink
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._min_level = _LEVELS.get((min_level or "").upper(), _LEVELS["INFO"])
        self._context = dict(context or {})

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        overwrite: bool = False,
        min_level: str = "INFO",
        session_id: str | None = None,
    ) -> "EventLogger":
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        fp = p.open("w" if overwrite else "a", encoding="utf-8", newline="\n")
        return cls(_Sink(fp, owned=True), session_id=session_id, min_level=min_level)

    @classmethod
    def to_stream(
        cls,
        stream: TextIO | None = None,
        *,
        min_level: str = "INFO",
        session_id: str | None = None,
    ) -> "EventLogger":
        return cls(
            _Sink(stream or sys.stderr, owned=False),
            session_id=session_id,
            min_level=min_level,
        )

    def close(self) -> None:
        self._sink.close()

    def __enter__(self) -> "EventLogger":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    @property
    def session_id(self) -> str:
        return self._session_id

    def bind(self, **context: Any) -> "EventLogger":
        """Return a logger sharing this sink whose lines also carry `context`."""
        merged = dict(self._context)
        merged.update({k: v for k, v in context.items() if v is not None})
        child = EventLogger(self._sink, session_id=self._session_id, context=merged)
        child._min_level = self._min_level
        return child

    def debug(self, event: str, **data: Any) -> None:
        self.log("DEBUG", event, **data)

    def info(self, event: str, **data: Any) -> None:
        self.log("INFO", event, **data)

    def warning(self, event: str, **data: Any) -> None:
        self.log("WARN", event, **data)

    def error(self, event: str, **data: Any) -> None:
        self.log("ERROR", event, **data)

    def exception(self, event: str, *, exc: BaseException, **data: Any) -> None:
        err = {
            "type": type(exc).__name__,
            "message": _truncate(str(exc), limit=2000),
            "traceback": _truncate(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                limit=12000,
            ),
        }
        self.log("ERROR", event, error=err, **data)

    def log(self, level: str, event: str, **data: Any) -> None:
        lvl = (level or "").strip().upper() or "INFO"
        if _LEVELS.get(lvl, _LEVELS["INFO"]) < self._min_level:
            return

        record: dict[str, Any] = {
            "ts": _utc_now_iso(),
            "level": lvl,
            "event": (event or "").strip() or "event",
            "session_id": self._session_id,
        }
        record.update(self._context)
        if data:
            record["data"] = data

        self._sink.write(
            json.dumps(
                record,
                ensure_ascii=False,
                sort_keys=True,
                separators=(",", ":"),
                default=str,
            )
        )

"""Stream merger: SSE line framing and the record fold.

The response body is UTF-8 text with one `data: <json>` event per line. Chunks
may split a line (or a multi-byte character) anywhere; the unterminated tail of
one chunk is carried into the next before splitting again.

apply_record() is a pure fold step: (state, record) -> state. StreamMerger
drives it over a byte stream and reports a snapshot after every parsed record.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterable, Callable, Iterable
from dataclasses import replace
from functools import reduce
from typing import Any

from nlweb.search.classifier import classify, coerce_legacy
from nlweb.search.errors import ApplicationFailure, ProtocolFrameError
from nlweb.search.models import (
    AccumulatedState,
    DomainResult,
    SearchResponse,
    SearchStatus,
    Summary,
)

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "

SnapshotCallback = Callable[[AccumulatedState], None]


class SSELineBuffer:
    """Reassembles complete lines from arbitrarily split byte chunks."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> list[str]:
        text = self._pending + self._decoder.decode(chunk)
        lines = text.split("\n")
        self._pending = lines.pop()
        return [line.removesuffix("\r") for line in lines]

    def flush(self) -> list[str]:
        """Return the final unterminated line, if any."""
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        tail = tail.removesuffix("\r")
        return [tail] if tail else []


def parse_event_line(line: str) -> dict[str, Any] | None:
    """Parse one `data: ` line. None for blank lines."""
    if not line.strip():
        return None
    if not line.startswith(DATA_PREFIX):
        raise ProtocolFrameError("line has no 'data: ' prefix", line)
    try:
        record = json.loads(line[len(DATA_PREFIX) :])
    except json.JSONDecodeError as e:
        raise ProtocolFrameError(f"invalid JSON payload: {e}", line) from e
    if not isinstance(record, dict):
        raise ProtocolFrameError("payload is not a JSON object", line)
    return record


# ---------------------------------------------------------------------------
# Merge rules
# ---------------------------------------------------------------------------


def same_result(a: DomainResult, b: DomainResult) -> bool:
    """Primary identity: `@id` equality."""
    return a.id is not None and a.id == b.id


def same_legacy_result(a: DomainResult, b: DomainResult) -> bool:
    """structuredData identity: `url` or `name` equality."""
    return bool(a.url and a.url == b.url) or bool(a.name and a.name == b.name)


def sort_by_score(results: Iterable[DomainResult]) -> list[DomainResult]:
    """Score descending; equal scores keep their current relative order."""
    return sorted(results, key=lambda r: -(r.score or 0))


def merge_results(
    existing: list[DomainResult],
    incoming: Iterable[DomainResult],
    identity: Callable[[DomainResult, DomainResult], bool] = same_result,
) -> list[DomainResult]:
    """Append unseen results (first occurrence wins) and re-sort."""
    merged = list(existing)
    for item in incoming:
        if any(identity(known, item) for known in merged):
            continue
        merged.append(item)
    return sort_by_score(merged)


def _raise_failure(record: dict[str, Any]) -> None:
    error = record.get("error")
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message")
        code = "unknown" if code is None else str(code)
        message = "Search failed" if message is None else str(message)
    else:
        code = "unknown"
        message = str(error) if error else "Search failed"
    raise ApplicationFailure(code, message)


def apply_record(state: AccumulatedState, record: dict[str, Any]) -> AccumulatedState:
    """Fold one parsed stream record into the state.

    Raises ApplicationFailure for `_meta.response_type == "Failure"` records.
    """
    meta = record.get("_meta")
    if isinstance(meta, dict) and meta.get("response_type") == "Failure":
        _raise_failure(record)

    updates: dict[str, Any] = {
        "raw_logs": [*state.raw_logs, record],
        "status": SearchStatus.STREAMING,
    }
    if isinstance(meta, dict) and meta.get("decontextualized_query"):
        updates["decontextualized_query"] = meta["decontextualized_query"]

    results = state.results
    raw_results = record.get("results")
    if isinstance(raw_results, list):
        summary = state.summary
        typed: list[DomainResult] = []
        for item in raw_results:
            parsed = classify(item)
            if parsed is None:
                continue
            if isinstance(parsed, Summary):
                summary = parsed.text
            else:
                typed.append(parsed)
        updates["summary"] = summary
        results = merge_results(results, typed, same_result)

    structured = record.get("structuredData")
    if isinstance(structured, list):
        legacy = [
            r for r in (coerce_legacy(item) for item in structured) if r is not None
        ]
        results = merge_results(results, legacy, same_legacy_result)

    updates["results"] = results
    return replace(state, **updates)


def replay(
    records: Iterable[dict[str, Any]], initial: AccumulatedState | None = None
) -> AccumulatedState:
    """Fold a recorded event sequence without a network stream."""
    return reduce(apply_record, records, initial or AccumulatedState())


class StreamMerger:
    """Consumes an SSE byte stream into an AccumulatedState."""

    def __init__(
        self,
        initial: AccumulatedState | None = None,
        on_snapshot: SnapshotCallback | None = None,
    ) -> None:
        self._state = initial or AccumulatedState(loading=True)
        self._on_snapshot = on_snapshot
        self._lines = SSELineBuffer()
        self._skipped_frames = 0

    @property
    def state(self) -> AccumulatedState:
        return self._state

    @property
    def skipped_frames(self) -> int:
        return self._skipped_frames

    def feed(self, chunk: bytes) -> None:
        for line in self._lines.feed(chunk):
            self._process_line(line)

    def finish(self) -> SearchResponse:
        for line in self._lines.flush():
            self._process_line(line)
        return SearchResponse.from_state(self._state)

    async def consume(self, chunks: AsyncIterable[bytes]) -> SearchResponse:
        async for chunk in chunks:
            self.feed(chunk)
        return self.finish()

    def _process_line(self, line: str) -> None:
        try:
            record = parse_event_line(line)
        except ProtocolFrameError as e:
            self._skipped_frames += 1
            if line.startswith(DATA_PREFIX):
                logger.warning("Stream: skipping frame: %s | %.200s", e, e.line)
            else:
                logger.debug("Stream: skipping non-data line: %.200s", e.line)
            return
        if record is None:
            return
        self._state = apply_record(self._state, record)
        if self._on_snapshot is not None:
            self._on_snapshot(self._state)

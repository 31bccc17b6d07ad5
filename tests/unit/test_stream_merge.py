from __future__ import annotations

import asyncio
import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from nlweb.search.errors import ApplicationFailure, ProtocolFrameError
from nlweb.search.models import AccumulatedState, Recipe, SearchStatus
from nlweb.search.stream import (
    SSELineBuffer,
    StreamMerger,
    apply_record,
    merge_results,
    parse_event_line,
    replay,
)


def recipe(id_: str, score: float, **extra) -> dict:
    return {"@type": "Recipe", "@id": id_, "score": score, "site": "example.com", **extra}


def frame(record: dict) -> str:
    return f"data: {json.dumps(record, ensure_ascii=False)}\n"


STREAM = (
    frame({"_meta": {"response_type": "Progress", "decontextualized_query": "vegetarian pasta"}})
    + frame({"results": [recipe("a", 0.4, name="Crème brûlée pasta"), recipe("b", 0.9)]})
    + "data: {not json\n"
    + ": keep-alive\n"
    + "\n"
    + frame({"results": [{"@type": "Summary", "text": "Try these, ciao 🍝"}, recipe("a", 0.99)]})
    + frame({"results": [recipe("c", 0.4), {"@type": "Unknown"}]})
).encode("utf-8")


def run(merger: StreamMerger, chunks: list[bytes]):
    for chunk in chunks:
        merger.feed(chunk)
    return merger.finish()


class TestLineBuffer:
    def test_partial_line_is_carried_over(self):
        buf = SSELineBuffer()
        assert buf.feed(b"data: {\"a\"") == []
        assert buf.feed(b": 1}\ndata: ") == ['data: {"a": 1}']
        assert buf.feed(b"{}\n") == ["data: {}"]

    def test_split_multibyte_character(self):
        encoded = "data: \"é\"\n".encode("utf-8")
        split = encoded.index(b"\xc3") + 1
        buf = SSELineBuffer()
        assert buf.feed(encoded[:split]) == []
        assert buf.feed(encoded[split:]) == ['data: "é"']

    def test_crlf_line_endings(self):
        buf = SSELineBuffer()
        assert buf.feed(b"data: 1\r") == []
        assert buf.feed(b"\ndata: 2\r\n") == ["data: 1", "data: 2"]

    def test_flush_returns_unterminated_tail(self):
        buf = SSELineBuffer()
        buf.feed(b"data: {}")
        assert buf.flush() == ["data: {}"]
        assert buf.flush() == []


class TestParseEventLine:
    def test_blank_line(self):
        assert parse_event_line("   ") is None

    def test_valid_line(self):
        assert parse_event_line('data: {"x": 1}') == {"x": 1}

    @pytest.mark.parametrize(
        "line", ['{"x": 1}', "data:{\"x\": 1}", "data: {oops", "data: [1, 2]", "event: message"]
    )
    def test_invalid_lines(self, line):
        with pytest.raises(ProtocolFrameError):
            parse_event_line(line)


class TestApplyRecord:
    def test_failure_record_raises(self):
        record = {
            "_meta": {"response_type": "Failure"},
            "error": {"code": "RATE_LIMIT", "message": "slow down"},
        }
        with pytest.raises(ApplicationFailure) as exc:
            apply_record(AccumulatedState(), record)
        assert exc.value.code == "RATE_LIMIT"
        assert str(exc.value) == "Error (RATE_LIMIT): slow down"

    def test_failure_without_error_block_still_fails(self):
        with pytest.raises(ApplicationFailure) as exc:
            apply_record(AccumulatedState(), {"_meta": {"response_type": "Failure"}})
        assert exc.value.code == "unknown"

    def test_fold_is_pure(self):
        before = AccumulatedState()
        after = apply_record(before, {"results": [recipe("a", 1)]})
        assert before.results == []
        assert before.raw_logs == []
        assert len(after.results) == 1
        assert after.status is SearchStatus.STREAMING

    def test_summary_replaces_previous(self):
        state = replay(
            [
                {"results": [{"@type": "Summary", "text": "first"}]},
                {"results": [{"@type": "Summary", "text": "second"}]},
            ]
        )
        assert state.summary == "second"
        assert state.results == []

    def test_records_without_results_keep_summary(self):
        state = replay(
            [
                {"results": [{"@type": "Summary", "text": "kept"}]},
                {"_meta": {"decontextualized_query": "dq"}},
            ]
        )
        assert state.summary == "kept"
        assert state.decontextualized_query == "dq"
        assert len(state.raw_logs) == 2

    def test_legacy_structured_data_dedups_by_url_or_name(self):
        state = replay(
            [
                {"structuredData": [{"name": "A", "url": "https://a", "score": 1}]},
                {
                    "structuredData": [
                        {"name": "A2", "url": "https://a", "score": 5},
                        {"name": "A", "url": "https://other", "score": 5},
                        {"name": "B", "url": "https://b", "score": 2},
                    ]
                },
            ]
        )
        assert [r.name for r in state.results] == ["B", "A"]

    def test_legacy_element_without_score_sorts_last(self):
        state = replay(
            [{"structuredData": [{"name": "no score"}, {"name": "scored", "score": 0.1}]}]
        )
        assert [r.name for r in state.results] == ["scored", "no score"]


class TestStreamMerger:
    def test_single_chunk(self):
        snapshots: list[AccumulatedState] = []
        merger = StreamMerger(on_snapshot=snapshots.append)
        response = run(merger, [STREAM])

        assert [r.id for r in response.results] == ["b", "a", "c"]
        assert response.results[1].name == "Crème brûlée pasta"
        assert response.summary == "Try these, ciao 🍝"
        assert response.decontextualized_query == "vegetarian pasta"
        assert len(response.raw_logs) == 4
        assert merger.skipped_frames == 2
        # one snapshot per parsed record, in stream order
        assert len(snapshots) == 4
        assert [len(s.results) for s in snapshots] == [0, 2, 2, 3]

    def test_first_occurrence_wins_on_duplicate_id(self):
        response = run(StreamMerger(), [STREAM])
        a = next(r for r in response.results if r.id == "a")
        assert a.score == 0.4

    def test_unterminated_final_line_is_processed(self):
        data = frame({"results": [recipe("a", 1)]}).rstrip("\n").encode()
        response = run(StreamMerger(), [data])
        assert [r.id for r in response.results] == ["a"]

    def test_failure_mid_stream_raises(self):
        data = (
            frame({"results": [recipe("a", 1)]})
            + frame({"_meta": {"response_type": "Failure"}, "error": {"code": "E", "message": "m"}})
            + frame({"results": [recipe("b", 1)]})
        ).encode()
        merger = StreamMerger()
        with pytest.raises(ApplicationFailure):
            run(merger, [data])

    def test_consume_async_iterable(self):
        async def chunks():
            for i in range(0, len(STREAM), 7):
                yield STREAM[i : i + 7]

        response = asyncio.run(StreamMerger().consume(chunks()))
        assert [r.id for r in response.results] == ["b", "a", "c"]

    @pytest.mark.property
    @settings(max_examples=200, deadline=None)
    @given(st.lists(st.integers(min_value=0, max_value=len(STREAM)), max_size=12))
    def test_reframing_at_arbitrary_offsets(self, cuts):
        bounds = [0, *sorted(cuts), len(STREAM)]
        chunks = [STREAM[a:b] for a, b in zip(bounds, bounds[1:])]
        assert run(StreamMerger(), chunks) == run(StreamMerger(), [STREAM])

    def test_reframing_at_every_single_offset(self):
        expected = run(StreamMerger(), [STREAM])
        for i in range(len(STREAM) + 1):
            assert run(StreamMerger(), [STREAM[:i], STREAM[i:]]) == expected


@pytest.mark.property
@settings(max_examples=150, deadline=None)
@given(
    st.lists(
        st.tuples(st.sampled_from("abcdef"), st.integers(min_value=0, max_value=4)),
        max_size=30,
    )
)
def test_merge_dedups_and_sorts_stably(items):
    arrivals = [Recipe.model_validate(recipe(id_, float(score))) for id_, score in items]
    merged: list = []
    for result in arrivals:
        merged = merge_results(merged, [result])

    ids = [r.id for r in merged]
    assert len(ids) == len(set(ids))
    assert set(ids) == {id_ for id_, _ in items}

    first_seen: dict[str, int] = {}
    for position, (id_, _) in enumerate(items):
        first_seen.setdefault(id_, position)
    for earlier, later in zip(merged, merged[1:]):
        assert earlier.score >= later.score
        if earlier.score == later.score:
            assert first_seen[earlier.id] < first_seen[later.id]


@pytest.mark.parametrize("code", [0, ""])
def test_falsy_failure_code_is_kept(code):
    record = {"_meta": {"response_type": "Failure"}, "error": {"code": code, "message": "m"}}
    with pytest.raises(ApplicationFailure) as exc:
        apply_record(AccumulatedState(), record)
    assert exc.value.code == str(code)
    assert str(exc.value) == f"Error ({code}): m"

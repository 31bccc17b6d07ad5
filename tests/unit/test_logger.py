import json

from nlweb.core.logger import _format_duration, _short_query, logger


def _events(n: int) -> list[dict]:
    lines = logger.log_file.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines[-n:]]


def test_search_events_are_written_as_jsonl():
    logger.search_request("best pasta recipe", "seriouseats.com", offset=9, history_length=1)
    logger.search_done(3, has_summary=True, record_count=5, decontextualized_query="pasta")

    request, done = _events(2)
    assert request["event_type"] == "SEARCH_REQUEST"
    assert request["data"] == {
        "query": "best pasta recipe",
        "site": "seriouseats.com",
        "offset": 9,
        "history_length": 1,
    }
    assert done["event_type"] == "SEARCH_DONE"
    assert done["data"]["query"] == "best pasta recipe"
    assert done["data"]["result_count"] == 3
    assert done["data"]["decontextualized_query"] == "pasta"
    assert done["data"]["duration_seconds"] >= 0


def test_failure_without_request_context():
    logger.search_failed("HTTP 503: Service Unavailable", status_code=503)
    (event,) = _events(1)
    assert event["event_type"] == "ERROR"
    assert event["data"]["query"] == "?"
    assert event["data"]["status_code"] == 503


def test_console_helpers():
    assert _short_query("  a\nb  ") == "a b"
    assert _short_query("x" * 100, max_len=10) == "x" * 10 + "..."
    assert _format_duration(0.5) == "0.5s"
    assert _format_duration(90) == "1m 30s"
    assert _format_duration(-1) == "0s"

"""Observability: LangSmith tracing (optional, env-controlled)."""

from nlweb.observability.langsmith import (
    flush,
    get_client,
    trace,
)

__all__ = ["trace", "flush", "get_client"]

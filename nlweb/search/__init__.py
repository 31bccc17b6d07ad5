"""Streaming conversational search: classifier, stream merger, session controller."""

from nlweb.search.classifier import classify, thumbnail_candidates
from nlweb.search.controller import SearchSessionController
from nlweb.search.conversation import (
    ConversationSession,
    InMemorySessionStore,
    SessionStore,
)
from nlweb.search.errors import (
    ApplicationFailure,
    NLWebError,
    ProtocolFrameError,
    TransportError,
)
from nlweb.search.models import (
    AccumulatedState,
    QueryResultSet,
    SearchResponse,
    SearchStatus,
)
from nlweb.search.pagination import ResultPages
from nlweb.search.stream import StreamMerger, apply_record

__all__ = [
    "AccumulatedState",
    "ApplicationFailure",
    "ConversationSession",
    "InMemorySessionStore",
    "NLWebError",
    "ProtocolFrameError",
    "QueryResultSet",
    "ResultPages",
    "SearchResponse",
    "SearchSessionController",
    "SearchStatus",
    "SessionStore",
    "StreamMerger",
    "TransportError",
    "apply_record",
    "classify",
    "thumbnail_candidates",
]

"""NLWeb contract v0.54: logical search params and the wire request."""

from nlweb.contracts.nlweb_v054 import (
    REQUEST_HEADERS,
    SearchParams,
    WireRequest,
    build_request,
)

__all__ = [
    "REQUEST_HEADERS",
    "SearchParams",
    "WireRequest",
    "build_request",
]

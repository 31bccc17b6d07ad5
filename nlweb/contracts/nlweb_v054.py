"""NLWeb conversational search contract v0.54.

Defines the canonical types for:
  - The logical search request a caller builds per query (SearchParams)
  - The wire request POSTed to the NLWeb endpoint (WireRequest and its blocks)

build_request() is the only place that maps one onto the other.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

API_VERSION = "0.54"
MAX_CONTEXT_TURNS = 5
DEFAULT_MAX_RESULTS = 9
DEFAULT_NUM_RETRIEVAL_RESULTS = 50

REQUEST_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "text/event-stream",
}


class ResponseFormat(StrEnum):
    CONV_SEARCH = "conv_search"
    CHATGPT_APP = "chatgpt_app"  # legacy structuredData stream


# ---------------------------------------------------------------------------
# Logical request
# ---------------------------------------------------------------------------


class SearchParams(BaseModel):
    """One query as issued by the caller."""

    query: str
    conversation_history: list[str] = Field(
        default_factory=list,
        description="Prior query texts in the same conversation, oldest first",
    )
    result_offset: int | None = Field(
        default=None, ge=0, description="Pagination cursor (start_num on the wire)"
    )
    user_id: str | None = Field(default=None)
    remember: bool = Field(default=False)


# ---------------------------------------------------------------------------
# Wire request
# ---------------------------------------------------------------------------


class QueryBlock(BaseModel):
    text: str
    site: str
    max_results: int = Field(description="Ranked results per page")
    num_results: int = Field(description="Retrieval candidates before ranking")


class PreferBlock(BaseModel):
    streaming: bool = True
    response_format: ResponseFormat = ResponseFormat.CONV_SEARCH
    mode: str = "list, summarize"


class UserRef(BaseModel):
    id: str


class MetaBlock(BaseModel):
    api_version: str = API_VERSION
    user: UserRef | None = None
    remember: Literal[True] | None = None
    start_num: int = 0


class ConversationalContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type_: Literal["ConversationalContext"] = Field(
        default="ConversationalContext", alias="@type"
    )
    prev: list[str]


class WireRequest(BaseModel):
    """Request body for the v0.54 streaming endpoint."""

    query: QueryBlock
    prefer: PreferBlock = Field(default_factory=PreferBlock)
    meta: MetaBlock = Field(default_factory=MetaBlock)
    context: ConversationalContext | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON body; optional blocks are omitted rather than sent as null."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def build_request(
    params: SearchParams,
    site: str,
    num_retrieval_results: int = DEFAULT_NUM_RETRIEVAL_RESULTS,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> WireRequest:
    meta = MetaBlock(start_num=params.result_offset or 0)
    if params.user_id:
        meta.user = UserRef(id=params.user_id)
    if params.remember:
        meta.remember = True

    context = None
    if params.conversation_history:
        context = ConversationalContext(
            prev=list(params.conversation_history[-MAX_CONTEXT_TURNS:])
        )

    return WireRequest(
        query=QueryBlock(
            text=params.query,
            site=site,
            max_results=max_results,
            num_results=num_retrieval_results,
        ),
        meta=meta,
        context=context,
    )

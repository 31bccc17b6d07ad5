"""Search session controller: one streaming NLWeb request at a time.

States:
  idle -> searching -> streaming* -> completed | errored | cancelled
  clear_results() is the only way back to idle.

A new search() cancels the request in flight before taking its place; the
superseded call returns an empty SearchResponse instead of raising.
"""

import asyncio
from collections.abc import Callable
from dataclasses import replace

import httpx

from nlweb.contracts.nlweb_v054 import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_NUM_RETRIEVAL_RESULTS,
    REQUEST_HEADERS,
    SearchParams,
    WireRequest,
    build_request,
)
from nlweb.core.config import Config
from nlweb.core.logger import logger
from nlweb.observability import trace
from nlweb.search.errors import NLWebError, TransportError
from nlweb.search.models import AccumulatedState, SearchResponse, SearchStatus
from nlweb.search.stream import SnapshotCallback, StreamMerger


class CancelToken:
    """Handle for one request; owned by the controller that issued it."""

    def __init__(self, query: str) -> None:
        self.query = query
        self.reason: str | None = None
        self._cancelled = False
        self._detached = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def publishing(self) -> bool:
        """Whether snapshots from this request may still reach the live state."""
        return not self._cancelled and not self._detached

    def bind(self, task: asyncio.Task) -> None:
        self._task = task

    def detach(self) -> None:
        self._detached = True

    def cancel(self, reason: str = "cancelled") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self.reason = reason
        if self._task is not None and not self._task.done():
            self._task.cancel()


class SearchSessionController:
    def __init__(
        self,
        endpoint: str,
        site: str,
        *,
        max_results: int = DEFAULT_MAX_RESULTS,
        num_retrieval_results: int = DEFAULT_NUM_RETRIEVAL_RESULTS,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        self.endpoint = endpoint
        self.max_results = max_results
        self.num_retrieval_results = num_retrieval_results
        self._site = site
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._state = AccumulatedState()
        self._active: CancelToken | None = None
        self._subscribers: list[SnapshotCallback] = []

    @classmethod
    def from_config(
        cls, cfg: Config, client: httpx.AsyncClient | None = None
    ) -> "SearchSessionController":
        return cls(
            cfg.endpoint,
            cfg.site,
            max_results=cfg.max_results,
            num_retrieval_results=cfg.num_retrieval_results,
            client=client,
            timeout=cfg.timeout_seconds,
        )

    @property
    def state(self) -> AccumulatedState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._active is not None

    @property
    def site(self) -> str:
        return self._site

    @site.setter
    def site(self, value: str) -> None:
        # Scores and identities from one corpus mean nothing against another.
        if value == self._site:
            return
        self._site = value
        self.clear_results()

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register for state snapshots; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _set_state(self, state: AccumulatedState) -> None:
        self._state = state
        for callback in list(self._subscribers):
            callback(state)

    def _publish(self, token: CancelToken, state: AccumulatedState) -> None:
        if token is self._active and token.publishing:
            self._set_state(state)

    async def search(self, params: SearchParams) -> SearchResponse:
        if self._active is not None:
            self._active.cancel("superseded")

        token = CancelToken(params.query)
        self._active = token
        streaming_index = len(params.conversation_history)
        offset = params.result_offset or 0
        initial = AccumulatedState(
            query=params.query,
            loading=True,
            streaming_index=streaming_index,
            result_offset=offset,
            status=SearchStatus.SEARCHING,
        )
        self._set_state(initial)

        request = build_request(
            params, self._site, self.num_retrieval_results, self.max_results
        )
        logger.search_request(
            params.query,
            self._site,
            offset=offset,
            history_length=streaming_index,
        )
        task = asyncio.create_task(self._stream(request, token, initial))
        token.bind(task)

        try:
            async with trace(
                "nlweb_search",
                "retriever",
                inputs={"query": params.query, "offset": offset},
                metadata={"site": self._site, "endpoint": self.endpoint},
            ) as run:
                response = await task
                run.end(
                    outputs={
                        "result_count": len(response.results),
                        "has_summary": bool(response.summary),
                    }
                )
        except asyncio.CancelledError:
            if not token.cancelled:
                # The caller was cancelled; still leave the live state terminal.
                self._publish(
                    token,
                    replace(
                        self._state,
                        query=None,
                        loading=False,
                        status=SearchStatus.CANCELLED,
                    ),
                )
                token.cancel("cancelled")
                logger.search_cancelled(params.query, "caller cancelled")
                raise
            logger.search_cancelled(params.query, token.reason or "cancelled")
            return SearchResponse()
        except NLWebError as e:
            if token.cancelled:
                logger.search_cancelled(params.query, token.reason or "cancelled")
                return SearchResponse()
            self._publish(
                token,
                AccumulatedState(
                    error=str(e),
                    streaming_index=streaming_index,
                    status=SearchStatus.ERRORED,
                ),
            )
            logger.search_failed(str(e), status_code=getattr(e, "status_code", None))
            raise
        finally:
            if self._active is token:
                self._active = None

        if token.cancelled:
            logger.search_cancelled(params.query, token.reason or "cancelled")
            return SearchResponse()

        if token.publishing:
            self._set_state(
                replace(
                    self._state,
                    results=list(response.results),
                    summary=response.summary,
                    decontextualized_query=response.decontextualized_query,
                    raw_logs=list(response.raw_logs),
                    loading=False,
                    status=SearchStatus.COMPLETED,
                )
            )
        logger.search_done(
            len(response.results),
            has_summary=bool(response.summary),
            record_count=len(response.raw_logs),
            decontextualized_query=response.decontextualized_query,
        )
        return response

    async def _stream(
        self, request: WireRequest, token: CancelToken, initial: AccumulatedState
    ) -> SearchResponse:
        merger = StreamMerger(
            initial=initial, on_snapshot=lambda state: self._publish(token, state)
        )
        try:
            async with self._client.stream(
                "POST",
                self.endpoint,
                json=request.to_payload(),
                headers=REQUEST_HEADERS,
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    if body:
                        logger.error(
                            f"Search request failed {response.status_code}: {body[:500]}"
                        )
                    raise TransportError(
                        f"HTTP {response.status_code}: {response.reason_phrase}",
                        status_code=response.status_code,
                    )
                return await merger.consume(response.aiter_bytes())
        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e

    def cancel_search(self) -> None:
        token = self._active
        if token is None:
            return
        publishing = token.publishing
        token.cancel("cancelled")
        self._active = None
        if not publishing:
            # Detached by clear_results(); the idle state stays as it is.
            return
        self._set_state(
            replace(self._state, query=None, loading=False, status=SearchStatus.CANCELLED)
        )

    def clear_results(self) -> None:
        """Reset to idle. An in-flight request keeps running but stops updating state."""
        if self._active is not None:
            self._active.detach()
        self._set_state(AccumulatedState())

    async def close(self) -> None:
        if self._active is not None:
            self._active.cancel("closed")
            self._active = None
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SearchSessionController":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

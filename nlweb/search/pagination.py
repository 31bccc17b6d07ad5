"""Offset-based "view more results" for one query on top of the controller."""

from nlweb.contracts.nlweb_v054 import SearchParams
from nlweb.search.controller import SearchSessionController
from nlweb.search.models import DomainResult, LegacyResult
from nlweb.search.stream import same_legacy_result, same_result


def _same_held(a: DomainResult, b: DomainResult) -> bool:
    if isinstance(a, LegacyResult) or isinstance(b, LegacyResult):
        return same_legacy_result(a, b)
    return same_result(a, b)


class ResultPages:
    """Pages of one query's ranked results, fetched only when not already held."""

    def __init__(
        self,
        controller: SearchSessionController,
        params: SearchParams,
        *,
        page_size: int | None = None,
        held: list[DomainResult] | None = None,
    ):
        self._controller = controller
        self._params = params
        self.page_size = page_size or controller.max_results
        self._held: list[DomainResult] = list(held or [])

    @property
    def held(self) -> list[DomainResult]:
        return list(self._held)

    def covers(self, offset: int) -> bool:
        return len(self._held) > offset

    async def load(self, offset: int = 0) -> list[DomainResult]:
        """Return the page at `offset`, searching only if held results fall short."""
        if self.covers(offset):
            return self.page(offset)
        params = self._params.model_copy(update={"result_offset": offset})
        response = await self._controller.search(params)
        for result in response.results:
            if not any(_same_held(known, result) for known in self._held):
                self._held.append(result)
        return self.page(offset)

    def page(self, offset: int) -> list[DomainResult]:
        return self._held[offset : offset + self.page_size]

    def view(self, offset: int) -> list[DomainResult]:
        """Live results while `offset` is the page streaming, held results otherwise."""
        state = self._controller.state
        if (
            state.loading
            and state.query == self._params.query
            and state.result_offset == offset
        ):
            return list(state.results)
        return self.page(offset)

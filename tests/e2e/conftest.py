from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from nlweb.core.config import config
from nlweb.search.controller import SearchSessionController


@pytest_asyncio.fixture
async def controller() -> AsyncIterator[SearchSessionController]:
    """Controller against the configured live endpoint, for e2e suites only."""
    errors = config.validate()
    if errors:
        pytest.skip("; ".join(errors))
    instance = SearchSessionController.from_config(config)
    try:
        yield instance
    finally:
        await instance.close()

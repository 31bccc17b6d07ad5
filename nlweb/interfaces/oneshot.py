"""One-shot interface: run a single query, print the response, exit."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from nlweb.contracts.nlweb_v054 import SearchParams
from nlweb.core.config import config
from nlweb.search.controller import SearchSessionController
from nlweb.search.errors import NLWebError
from nlweb.search.formatting import format_response_text


async def run_oneshot(query: str, site: str | None = None) -> int:
    text = (query or "").strip()
    if not text:
        print("Error: query must not be empty")
        return 2

    cfg = replace(config, site=site) if site else config
    errors = cfg.validate()
    if errors:
        for error in errors:
            print(f"Error: {error}")
        return 2

    controller = SearchSessionController.from_config(cfg)
    try:
        response = await controller.search(
            SearchParams(query=text, user_id=cfg.user_id or None)
        )
    except NLWebError as e:
        print(f"Search failed: {e}")
        return 1
    finally:
        await controller.close()
    if response.decontextualized_query and response.decontextualized_query != text:
        print(f"Searching for: {response.decontextualized_query}\n")
    print(format_response_text(response))
    return 0


def main(query: str, site: str | None = None) -> int:
    return asyncio.run(run_oneshot(query=query, site=site))

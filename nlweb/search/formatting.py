"""Plain-text rendering of a finished search, for agents and terminals."""

from nlweb.search.classifier import display_title, result_link
from nlweb.search.models import SearchResponse


def format_response_text(response: SearchResponse) -> str:
    parts: list[str] = []
    if response.summary:
        parts.append(response.summary)
    if response.results:
        parts.append(f"\nFound {len(response.results)} results:")
        for i, result in enumerate(response.results, start=1):
            url = result_link(result)
            parts.append(f"{i}. {display_title(result)}{f' - {url}' if url else ''}")
    return "\n".join(parts) or "No results found."

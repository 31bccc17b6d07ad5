from nlweb.search.classifier import classify, coerce_legacy
from nlweb.search.formatting import format_response_text
from nlweb.search.models import SearchResponse


def test_summary_and_numbered_results():
    results = [
        classify(
            {
                "@type": "Recipe",
                "@id": "r1",
                "score": 0.9,
                "site": "example.com",
                "name": "Carbonara",
                "url": "https://example.com/carbonara",
            }
        ),
        coerce_legacy({"name": "Old page"}),
    ]
    text = format_response_text(SearchResponse(results=results, summary="Two picks."))

    assert text == (
        "Two picks.\n"
        "\nFound 2 results:\n"
        "1. Carbonara - https://example.com/carbonara\n"
        "2. Old page"
    )


def test_summary_only():
    assert format_response_text(SearchResponse(summary="Nothing ranked.")) == "Nothing ranked."


def test_empty_response():
    assert format_response_text(SearchResponse()) == "No results found."

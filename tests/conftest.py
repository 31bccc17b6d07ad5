import os
import tempfile
from collections.abc import Sequence

import pytest

# Keep test runs from writing into the project's logs/ directory.
os.environ.setdefault("NLWEB_LOGS_DIR", tempfile.mkdtemp(prefix="nlweb-logs-"))


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that require a live NLWeb endpoint.",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "integration: requires a live NLWeb endpoint (NLWEB_ENDPOINT)"
    )
    config.addinivalue_line("markers", "property: property-based deterministic tests")


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: Sequence[pytest.Item],
) -> None:
    run_integration = config.getoption("--run-integration")
    skip_integration = pytest.mark.skip(
        reason="integration is opt-in; rerun with --run-integration"
    )

    for item in items:
        if "tests/e2e/" in item.nodeid:
            item.add_marker("integration")
        if item.get_closest_marker("integration") and not run_integration:
            item.add_marker(skip_integration)

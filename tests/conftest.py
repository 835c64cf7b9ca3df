import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the config overlay and pins every adapter to its fake, so no test
    reaches a real gateway or rate provider.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["FREIGHT_GATEWAY"] = "fake"
    os.environ["RATE_SOURCE"] = "fake"
    os.environ.pop("DEFAULT_EXCHANGE_RATE", None)
    os.environ.pop("COST_PER_KG", None)


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)

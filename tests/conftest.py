import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_configure(config):
    """Select the config environment before any domain module is imported."""
    os.environ["PROTEAN_ENV"] = config.getoption("env")


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
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session")
def recovery_bed():
    from recovery.domain import recovery

    bed = DomainFixture(recovery)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(recovery_bed):
    with recovery_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _clean_sessions(_ctx):
    """Stores persist through the recovery repository unless told otherwise."""
    from recovery.storage.repository import RepositorySessionStorage

    storage = RepositorySessionStorage()
    storage.clear()
    yield
    storage.clear()

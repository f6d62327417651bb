"""Shared fixtures and helpers for tests."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from gha_fix.models import ResolvedVersion
from gha_fix.resolver import InMemoryVersionResolver

_REPO_ROOT = Path(__file__).parent.parent

CHECKOUT_SHA = "11bd71901bbe5b1630ceea73d27597364c9af683"
SETUP_GO_SHA = "0aaccfd150d50ccaeb58ebd88d36e91967a5f35b"
CACHE_SHA = "5a3ec84eff668545956fd18022155c47e93e2684"
OASDIFF_SHA = "1234567890abcdef1234567890abcdef12345678"


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def testdata_dir() -> Path:
    """Return the path to the workflow fixtures."""
    return Path(__file__).parent / "testdata"


@pytest.fixture
def resolver() -> InMemoryVersionResolver:
    """A resolver knowing the versions used by the fixtures."""
    return InMemoryVersionResolver(
        {
            "actions/checkout@v4": ResolvedVersion(commit_sha=CHECKOUT_SHA, ref_comment="v4.2.2"),
            "actions/setup-go@v5": ResolvedVersion(commit_sha=SETUP_GO_SHA, ref_comment="v5.4.0"),
            "actions/cache@v4": ResolvedVersion(commit_sha=CACHE_SHA, ref_comment="v4.2.3"),
            "oasdiff/oasdiff-action@v0.0.21": ResolvedVersion(commit_sha=OASDIFF_SHA, ref_comment="v0.0.21"),
        }
    )


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    """Undo the logging setup done by CLI invocations."""
    package_logger = logging.getLogger("gha_fix")
    handlers = package_logger.handlers[:]
    level = package_logger.level
    propagate = package_logger.propagate
    yield
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate

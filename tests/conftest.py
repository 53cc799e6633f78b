"""Pytest configuration and fixtures for test suite."""

import logging
import os
import sys
from pathlib import Path

import pytest

# Set test environment BEFORE any other imports
os.environ.setdefault("APP_ENVIRONMENT", "test")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


class FakeClock:
    """Manually advanced time source for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Provide a fake clock for cache expiry."""
    return FakeClock()


@pytest.fixture
def registry(clock):
    """Provide a cache registry driven by the fake clock."""
    from cache import CacheRegistry

    reg = CacheRegistry.create(clock=clock)
    yield reg
    reg.shutdown()


@pytest.fixture
def married_inputs():
    """Minimal tracked inputs that pass the minimum-data gate."""
    from preview.models import TrackedInputSet

    return TrackedInputSet(marital_status_dec31="married", has_w2_income=True)


@pytest.fixture
def single_tax_input():
    """Normalized single filer request with $30,000 of wages."""
    from preview.models import VitaTaxInput

    return VitaTaxInput(
        tax_year=2024,
        filing_status="single",
        wages=3_000_000,
        maryland_county="baltimore_city",
    )


@pytest.fixture(autouse=True)
def restore_root_logging():
    """configure_logging() replaces root handlers; restore the previous ones."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)

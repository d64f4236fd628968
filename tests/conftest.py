"""
Pytest configuration file for Garment Ticketing tests.

Sets up the Python path so tests can import modules from 'src', and provides
shared fixtures: a controllable monotonic clock and mocked collaborators.
"""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Run Qt headless so the tests need no display server
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Get the repository root directory (parent of tests directory)
repo_root = Path(__file__).parent.parent

# Add src directory to sys.path (for src modules)
src_dir = repo_root / 'src'
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_order(customer_id="C1", items=("A", "B"), status="CREATED", customer_name=None):
    """Helper: order payload in the order source's dict format."""
    order = {
        "customerId": customer_id,
        "status": status,
        "items": [{"itemId": item_id, "displayName": f"Garment {item_id}"} for item_id in items],
    }
    if customer_name:
        order["customerName"] = customer_name
    return order


@pytest.fixture
def order_source():
    source = MagicMock()
    source.get_order.return_value = make_order()
    return source


@pytest.fixture
def status_sink():
    sink = MagicMock()
    sink.update_status.return_value = True
    return sink


@pytest.fixture
def printer():
    mock_printer = MagicMock()
    mock_printer.print_labels.return_value = True
    return mock_printer

"""
Pytest configuration and shared fixtures.
"""
import os
import sys

import pytest

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from offer_engine.excel.grid import CellGrid, Workbook
from offer_engine.ir import PricingRecord


@pytest.fixture
def hotel_rows():
    """Three months down column A, one Hotel / 2 nights / 2 pax price column."""
    return [
        [None, "Hotel - 2 Nights - 2 Pax"],
        ["January", "€150.00"],
        ["February", "€160.00"],
        ["March", "€170.00"],
    ]


@pytest.fixture
def hotel_grid(hotel_rows):
    return CellGrid.from_rows(hotel_rows)


@pytest.fixture
def offer_rows():
    """A small but complete resort offer sheet."""
    return [
        ["Resort: Paradise Bay"],
        ["Valid from 01/04/2025 to 31/10/2025"],
        [None, "Hotel - 2 Nights - 2 Pax", "Hotel - 7 Nights - 2 Pax"],
        ["January", "€150.00", "€450.00"],
        ["February", "€160.00", "€480.00"],
        ["March", "€170.00", "€510.00"],
        [],
        ["Package Includes"],
        ["• Daily breakfast buffet"],
        ["• Free wifi in all rooms"],
        ["• Airport transfer on arrival"],
    ]


@pytest.fixture
def offer_workbook(offer_rows):
    return Workbook.from_grids([("Paradise Bay 2025", offer_rows)])


@pytest.fixture
def make_record():
    """Factory for pricing records with sensible defaults."""
    def _make(**overrides):
        values = {
            "month": "January",
            "accommodation_type": "Hotel",
            "nights": 2,
            "pax": 2,
            "price": 150.0,
            "currency": "EUR",
            "available": True,
            "coordinate": "B2",
        }
        values.update(overrides)
        return PricingRecord(**values)
    return _make

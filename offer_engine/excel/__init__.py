"""
Spreadsheet recognition subpackage.

Public API:
  - Cell / CellGrid / Sheet / Workbook   (immutable grid snapshot, grid.py)
  - DetectorConfig / DEFAULT_CONFIG      (scan windows and thresholds)
  - WorkbookReader / read_workbook       (file I/O, reader.py)

The detectors (layout_detector, metadata_extractor, inclusions_detector,
pricing_extractor, price_validator) are imported from their own modules.
"""

from offer_engine.excel.config import DetectorConfig, DEFAULT_CONFIG
from offer_engine.excel.grid import Cell, CellGrid, CellKind, CellRange, MergeRange, Sheet, Workbook
from offer_engine.excel.reader import WorkbookReader, read_workbook

__all__ = [
    "DetectorConfig",
    "DEFAULT_CONFIG",
    "Cell",
    "CellGrid",
    "CellKind",
    "CellRange",
    "MergeRange",
    "Sheet",
    "Workbook",
    "WorkbookReader",
    "read_workbook",
]

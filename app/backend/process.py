"""
Batch front-end shared by the CLI: read offer files, analyze them, write JSON.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from offer_engine.config import get_settings
from offer_engine.excel.reader import WorkbookReader
from offer_engine.logger import get_logger
from offer_engine.pipeline import OfferAnalyzer

logger = get_logger(__name__)

SUPPORTED_SUFFIXES = (".xlsx", ".xlsm", ".xls", ".csv")


def collect_source_paths(inputs: List[str]) -> List[str]:
    collected: List[str] = []
    for raw in inputs:
        path = Path(raw).expanduser()
        if path.is_dir():
            for child in sorted(path.rglob("*")):
                if child.is_file() and child.suffix.lower() in SUPPORTED_SUFFIXES:
                    collected.append(str(child))
        elif path.is_file():
            collected.append(str(path))
        else:
            logger.warning("Input not found: %s", raw)
    return collected


def process_files(
    file_paths: List[str],
    sheet_name: Optional[str] = None,
    analyzer: Optional[OfferAnalyzer] = None,
) -> Dict[str, Any]:
    """
    Analyze every file and collect the reports.

    A file that cannot be read or analyzed is recorded under ``errors`` and
    the batch continues.
    """
    analyzer = analyzer or OfferAnalyzer()
    reader = WorkbookReader()
    results: List[Dict[str, Any]] = []
    errors: List[Dict[str, str]] = []

    for file_path in file_paths:
        try:
            workbook = reader.read(file_path)
            analysis = analyzer.analyze(workbook, sheet_name)
        except Exception as e:
            logger.error("Failed to process %s: %s", file_path, e, exc_info=True)
            errors.append({"source": file_path, "error": f"{type(e).__name__}: {e}"})
            continue
        results.append({
            "source": file_path,
            "summary": analyzer.quick_summary(analysis),
            "analysis": analysis.model_dump(mode="json"),
        })

    return {"results": results, "errors": errors}


def _resolve_output_json_name(output_filename: Optional[str] = None, timestamp: bool = False) -> str:
    if output_filename and output_filename.strip():
        return output_filename.strip()
    configured = (get_settings().OUTPUT_JSON_NAME or "").strip()
    if configured:
        return configured
    if timestamp:
        return f"result_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
    return "result.json"


def write_json_output(
    result: Dict[str, Any],
    output_dir: str,
    output_filename: Optional[str] = None,
    timestamp: bool = False,
) -> str:
    """Write *result* into *output_dir*; returns the JSON path."""
    output_path = Path(output_dir).resolve()
    output_path.mkdir(parents=True, exist_ok=True)
    json_path = output_path / _resolve_output_json_name(output_filename, timestamp)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(result, f, ensure_ascii=False, indent=2, default=str)
    return str(json_path)

import json

import pytest
from openpyxl import Workbook as XlsxWorkbook

from app.backend.process import collect_source_paths, process_files, write_json_output
from app.cli import main


@pytest.fixture
def offer_file(tmp_path, offer_rows):
    wb = XlsxWorkbook()
    ws = wb.active
    ws.title = "Paradise Bay 2025"
    for row in offer_rows:
        ws.append(row or [None])
    path = tmp_path / "inputs" / "paradise.xlsx"
    path.parent.mkdir()
    wb.save(path)
    return path


def test_cli_writes_report(tmp_path, offer_file):
    out_dir = tmp_path / "out"
    code = main([
        "--inputs", str(offer_file),
        "--output-dir", str(out_dir),
        "--output-json-name", "report.json",
    ])
    assert code == 0

    payload = json.loads((out_dir / "report.json").read_text(encoding="utf-8"))
    assert payload["errors"] == []
    [item] = payload["results"]
    assert item["source"] == str(offer_file)
    assert item["summary"]["currency"] == "EUR"
    assert item["summary"]["resort_name"] == "Paradise Bay"
    assert item["summary"]["records"] == 6
    assert len(item["analysis"]["records"]) == 6


def test_cli_missing_input(tmp_path):
    assert main(["--inputs", str(tmp_path / "missing.xlsx"), "--output-dir", str(tmp_path)]) == 1


def test_directory_inputs_are_expanded(tmp_path, offer_file):
    (offer_file.parent / "readme.txt").write_text("not a spreadsheet", encoding="utf-8")
    assert collect_source_paths([str(offer_file.parent)]) == [str(offer_file)]


def test_bad_file_does_not_abort_batch(tmp_path, offer_file):
    broken = tmp_path / "broken.xlsx"
    broken.write_bytes(b"this is not a zip archive")

    result = process_files([str(broken), str(offer_file)])

    assert [r["source"] for r in result["results"]] == [str(offer_file)]
    assert [e["source"] for e in result["errors"]] == [str(broken)]


def test_json_name_defaults(tmp_path):
    path = write_json_output({"results": [], "errors": []}, str(tmp_path))
    assert path.endswith("result.json")
    stamped = write_json_output({"results": [], "errors": []}, str(tmp_path), timestamp=True)
    assert stamped.rsplit("/", 1)[-1].startswith("result_")

import argparse
import sys
from pathlib import Path
from typing import List, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.backend.process import collect_source_paths, process_files, write_json_output


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recognize pricing, metadata and inclusions in resort offer spreadsheets."
    )
    parser.add_argument(
        "--inputs",
        nargs="+",
        required=True,
        help="Input spreadsheet paths or directories.",
    )
    parser.add_argument(
        "--sheet",
        default=None,
        help="Sheet to analyze (default: first sheet).",
    )
    parser.add_argument(
        "--output-dir",
        default=".",
        help="Directory to write the output JSON.",
    )
    parser.add_argument(
        "--output-json-name",
        default=None,
        help="Output JSON filename (default: result.json, or env OUTPUT_JSON_NAME).",
    )
    parser.add_argument(
        "--output-json-timestamp",
        action="store_true",
        help="Append timestamp to JSON output filename when no name is configured.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    file_paths = collect_source_paths(args.inputs)
    if not file_paths:
        print("[error] no valid input files found.")
        return 1

    result = process_files(file_paths, sheet_name=args.sheet)
    json_path = write_json_output(
        result,
        args.output_dir,
        output_filename=args.output_json_name,
        timestamp=args.output_json_timestamp,
    )

    print("JSON:", json_path)
    for item in result["results"]:
        s = item["summary"]
        print(
            f"{item['source']}: resort={s['resort_name'] or '-'} currency={s['currency']} "
            f"layout={s['layout_type']} records={s['records']} confidence={s['confidence']:.2f}"
        )
    for err in result["errors"]:
        print(f"[error] {err['source']}: {err['error']}")
    return 1 if result["errors"] and not result["results"] else 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Interchange files between test discovery and TestRail upload.

Two formats are supported:
- a six-column CSV without header: title, type id, priority id, estimate,
  platform code, description. Newlines, tabs and backslashes inside the
  title and the description are escaped so every case stays on one line.
- JSON lines, one add_case payload per line, keyed by TestRail field names.
"""

import csv
import io
import json
import logging
import re
from pathlib import Path
from typing import Iterable, Union

from .case_builder import build_from_directory
from .errors import InterchangeError
from .go_scanner import TEST_FILE_SUFFIX
from .models import CaseRecord, PlatformCode

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["title", "type_id", "priority_id", "estimate", "custom_operating_system",
               "custom_test_case_description"]

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "t": "\t", "r": "\r"}
_ESCAPE_RE = re.compile(r"[\\\n\t\r]")
_UNESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def escape_field(text: str) -> str:
    """Escape backslashes, newlines, tabs and carriage returns as two-character sequences."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], text)


def unescape_field(text: str) -> str:
    """Inverse of escape_field. Unknown escapes are kept as written."""
    return _UNESCAPE_RE.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(0)), text)


def encode_row(record: CaseRecord) -> str:
    """Encode a record as one CSV line (without line terminator)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([
        escape_field(record.title),
        record.type_id,
        record.priority_id,
        record.estimate,
        int(record.platform),
        escape_field(record.description),
    ])
    return buffer.getvalue().rstrip("\n")


def decode_row(row: list[str], path: str = "<row>", line: int = None) -> CaseRecord:
    """Decode one six-column CSV row into a CaseRecord."""
    if len(row) != len(CSV_COLUMNS):
        raise InterchangeError(path, f"expected {len(CSV_COLUMNS)} columns, found {len(row)}", line)
    title, type_id, priority_id, estimate, platform, description = row
    try:
        return CaseRecord(
            title=unescape_field(title),
            type_id=int(type_id),
            priority_id=int(priority_id),
            estimate=estimate,
            platform=PlatformCode(int(platform)),
            description=unescape_field(description),
        )
    except ValueError as e:
        raise InterchangeError(path, f"invalid value: {e}", line) from e


def write_case_csv(records: Iterable[CaseRecord], output_path: Union[str, Path]) -> int:
    """Write records as CSV lines; returns the number of rows written."""
    count = 0
    with open(output_path, "w", encoding="utf-8", newline="") as f:
        for record in records:
            f.write(encode_row(record) + "\n")
            count += 1
    logger.info(f"Wrote {count} test cases to {output_path}")
    return count


def write_case_jsonl(records: Iterable[CaseRecord], output_path: Union[str, Path]) -> int:
    """Write records as add_case JSON lines; returns the number of lines written."""
    count = 0
    with open(output_path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record.to_payload()) + "\n")
            count += 1
    logger.info(f"Wrote {count} test cases to {output_path}")
    return count


def read_case_csv(path: Union[str, Path]) -> list[CaseRecord]:
    """Read a case CSV. Blank lines are skipped; any malformed row raises InterchangeError."""
    records = []
    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.reader(f)
        # physical line where the next row starts; quoted fields may span lines
        line_no = 1
        for row in reader:
            if row:
                records.append(decode_row(row, str(path), line_no))
            line_no = reader.line_num + 1
    return records


def csv_to_json(path: Union[str, Path]) -> list[str]:
    """Convert each CSV row to a JSON add_case payload string."""
    return [json.dumps(record.to_payload()) for record in read_case_csv(path)]


def convert_csv_files(paths: Iterable[Union[str, Path]], output_path: Union[str, Path]) -> int:
    """Convert CSV files into one JSON lines file, file by file.

    A malformed file raises InterchangeError; lines already written for the
    files before it stay in the output.
    """
    total = 0
    with open(output_path, "w", encoding="utf-8") as out:
        for path in paths:
            lines = csv_to_json(path)
            for line in lines:
                out.write(line + "\n")
            out.flush()
            total += len(lines)
            logger.info(f"Converted {len(lines)} rows from {path}")
    return total


def export_test_cases(
    root: Union[str, Path],
    output_path: Union[str, Path],
    suffix: str = TEST_FILE_SUFFIX,
    subtest_depth: int = 1,
    qualify_description: bool = False,
    output_format: str = "csv",
) -> list[CaseRecord]:
    """Scan a Go source tree and write the discovered cases to `output_path`."""
    records = build_from_directory(
        root,
        suffix=suffix,
        subtest_depth=subtest_depth,
        qualify_description=qualify_description,
    )
    if output_format == "json":
        write_case_jsonl(records, output_path)
    else:
        write_case_csv(records, output_path)
    return records

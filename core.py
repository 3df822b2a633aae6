#!/usr/bin/env python3
"""
Core operations shared between MCP server and CLI.
Contains the business logic for scanning, exporting, uploading and reporting.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from testrail_sync.case_builder import build_case_records, find_duplicate_titles
from testrail_sync.case_index import load_case_index
from testrail_sync.config import TestRailConfig, get_testrail_config
from testrail_sync.go_scanner import TEST_FILE_SUFFIX, scan_directory
from testrail_sync.interchange import convert_csv_files, export_test_cases
from testrail_sync.run_orchestrator import create_run_with_case_ids, report_results
from testrail_sync.testrail_client import TestRailClient

logger = logging.getLogger(__name__)

# Global TestRail client (singleton)
_client = None


def get_client(config: Optional[TestRailConfig] = None) -> TestRailClient:
    """Get or create the TestRailClient singleton."""
    global _client
    if _client is None or config is not None:
        _client = TestRailClient(config or get_testrail_config())
    return _client


def scan_tests(directory: str, subtest_depth: int = 1, suffix: str = TEST_FILE_SUFFIX) -> dict:
    """
    Scan a Go source tree and describe every test found.

    Args:
        directory: Root of the source tree
        subtest_depth: Levels of nested t.Run calls to report
        suffix: File name suffix of test files

    Returns:
        dict with per-file tests, total count and duplicated titles
    """
    files = []
    all_records = []
    for scanned in scan_directory(directory, suffix=suffix, subtest_depth=subtest_depth):
        records = build_case_records(scanned)
        all_records.extend(records)
        files.append({
            "path": scanned.path,
            "tests": [
                {
                    "title": r.title,
                    "platform": r.platform.name.lower(),
                    "description": r.description,
                }
                for r in records
            ],
        })

    return {
        "directory": str(directory),
        "files": files,
        "total_tests": len(all_records),
        "duplicates": find_duplicate_titles(all_records),
    }


def export_cases(
    directory: str,
    output: str,
    output_format: str = "csv",
    qualify_description: bool = False,
    subtest_depth: int = 1,
) -> dict:
    """Scan a source tree and write the case interchange file."""
    records = export_test_cases(
        directory,
        output,
        subtest_depth=subtest_depth,
        qualify_description=qualify_description,
        output_format=output_format,
    )
    return {"output": str(output), "format": output_format, "cases_written": len(records)}


def convert_csv(paths: list[str], output: str) -> dict:
    """Convert case CSV files into one JSON lines file."""
    count = convert_csv_files(paths, output)
    return {"output": str(output), "files": len(paths), "cases_written": count}


def upload_cases(
    csv_path: str,
    section_name: str,
    project_id: Optional[int] = None,
    suite_id: Optional[int] = None,
) -> dict:
    """Create a TestRail case for every row of a case CSV."""
    client = get_client()
    summary = client.upload_cases_from_csv(csv_path, section_name, project_id, suite_id)
    return {
        "section": section_name,
        "section_id": summary.section_id,
        "total": summary.total,
        "created": summary.created,
        "failed": summary.failed,
        "failures": summary.failures,
    }


def list_suites(project_id: Optional[int] = None) -> dict:
    client = get_client()
    project_id = project_id or client.config.project_id
    suites = client.get_suites(project_id)
    return {"project_id": project_id, "suites": [{"id": s.id, "name": s.name} for s in suites]}


def list_sections(project_id: Optional[int] = None, suite_id: Optional[int] = None) -> dict:
    client = get_client()
    project_id = project_id or client.config.project_id
    suite_id = suite_id or client.config.suite_id
    sections = client.get_sections(project_id, suite_id)
    return {
        "project_id": project_id,
        "suite_id": suite_id,
        "sections": [{"id": s.id, "name": s.name} for s in sections],
    }


def list_cases(project_id: Optional[int] = None, suite_id: Optional[int] = None) -> dict:
    client = get_client()
    project_id = project_id or client.config.project_id
    suite_id = suite_id or client.config.suite_id
    cases = client.get_cases(project_id, suite_id)
    return {
        "project_id": project_id,
        "suite_id": suite_id,
        "cases": [{"id": c.id, "title": c.title} for c in cases],
    }


def create_run(
    titles: list[str],
    env_name: str = "",
    description: str = "",
    project_id: Optional[int] = None,
    suite_id: Optional[int] = None,
) -> dict:
    """
    Create a run containing the cases with the given titles.

    Titles are resolved against the current catalog; unknown titles are
    reported back and left out of the run.
    """
    client = get_client()
    project_id = project_id or client.config.project_id
    suite_id = suite_id or client.config.suite_id

    index = load_case_index(client, project_id, suite_id)
    case_ids, missing = index.resolve(titles)
    if not case_ids:
        return {"error": "None of the titles match a case", "missing": missing, "run_id": 0}

    run_id = create_run_with_case_ids(client, env_name, project_id, suite_id, case_ids, description)
    return {"run_id": run_id, "case_ids": case_ids, "missing": missing}


def load_results_file(path: str) -> dict[str, dict]:
    """
    Read a results file.

    Accepts either an object mapping case title to result fields, or a list
    of objects each carrying a `title` key next to the result fields.
    """
    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        return data
    if isinstance(data, list):
        results = {}
        for item in data:
            fields = dict(item)
            title = fields.pop("title", None)
            if not title:
                raise ValueError(f"Result entry without title in {path}: {item}")
            results[title] = fields
        return results
    raise ValueError(f"Unsupported results file layout in {path}")


def report_results_file(
    results_path: str,
    env_name: str = "",
    description: str = "",
    project_id: Optional[int] = None,
    suite_id: Optional[int] = None,
) -> dict:
    """Create a run for the results in a file and post them."""
    client = get_client()
    project_id = project_id or client.config.project_id
    suite_id = suite_id or client.config.suite_id

    results = load_results_file(results_path)
    index = load_case_index(client, project_id, suite_id)
    outcome = report_results(client, index, env_name, project_id, suite_id, results, description)
    logger.info(f"Reported {outcome['posted']} results to run {outcome['run_id']}")
    return outcome

"""Turn scanned Go test files into TestRail case records."""

import logging
from collections import Counter
from pathlib import Path
from typing import Iterable, Union

from .classifier import classify_platform
from .go_scanner import TEST_FILE_SUFFIX, scan_directory
from .models import CaseRecord, ScannedFile

logger = logging.getLogger(__name__)


def build_case_records(scanned: ScannedFile, qualify_description: bool = False) -> list[CaseRecord]:
    """Build one CaseRecord per test identifier in a scanned file.

    Sub-tests share the doc comment of the function they are declared in.
    With `qualify_description`, descriptions are written as
    `<fileName>:<doc>` so cases from different files stay distinguishable.
    """
    records = []
    for identifier in scanned.test_identifiers():
        base_name = identifier.split("/", 1)[0]
        doc = scanned.doc_for(base_name)
        description = f"{scanned.file_name}:{doc}" if qualify_description else doc
        records.append(CaseRecord(
            title=identifier,
            platform=classify_platform(doc),
            description=description,
        ))
    return records


def build_from_directory(
    root: Union[str, Path],
    suffix: str = TEST_FILE_SUFFIX,
    subtest_depth: int = 1,
    qualify_description: bool = False,
) -> list[CaseRecord]:
    """Scan `root` and build case records for every test found, in file order."""
    records = []
    for scanned in scan_directory(root, suffix=suffix, subtest_depth=subtest_depth):
        records.extend(build_case_records(scanned, qualify_description=qualify_description))

    duplicates = find_duplicate_titles(records)
    if duplicates:
        logger.warning(f"{len(duplicates)} test titles are defined more than once: {sorted(duplicates)}")
    return records


def find_duplicate_titles(records: Iterable[CaseRecord]) -> dict[str, int]:
    """Titles that appear more than once, mapped to their count."""
    counts = Counter(record.title for record in records)
    return {title: n for title, n in counts.items() if n > 1}

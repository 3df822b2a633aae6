"""Title to case ID index built from a TestRail catalog load."""

import logging
from typing import Iterable

from .errors import DuplicateTitleError
from .models import Case

logger = logging.getLogger(__name__)


class CaseIDIndex:
    """Maps case titles to TestRail case IDs.

    Built once per invocation and passed to whatever needs title lookups.
    When a title occurs more than once, strict lookups raise
    DuplicateTitleError and lenient lookups return the last ID loaded.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._ids: dict[str, list[int]] = {}

    @classmethod
    def from_cases(cls, cases: Iterable[Case], strict: bool = False) -> "CaseIDIndex":
        index = cls(strict=strict)
        for case in cases:
            index.add(case.title, case.id)
        duplicates = index.duplicates()
        if duplicates:
            logger.warning(f"{len(duplicates)} case titles are used by more than one case: {sorted(duplicates)}")
        return index

    def add(self, title: str, case_id: int):
        self._ids.setdefault(title, []).append(case_id)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, title: str) -> bool:
        return title in self._ids

    def duplicates(self) -> dict[str, list[int]]:
        return {title: ids for title, ids in self._ids.items() if len(ids) > 1}

    def lookup(self, title: str) -> tuple[int, bool]:
        """Return (case_id, True), or (0, False) when the title is unknown."""
        ids = self._ids.get(title)
        if not ids:
            return 0, False
        if len(ids) > 1 and self.strict:
            raise DuplicateTitleError(title, ids)
        return ids[-1], True

    def resolve(self, titles: Iterable[str]) -> tuple[list[int], list[str]]:
        """Look up many titles; returns (case IDs in order, titles not found)."""
        case_ids, missing = [], []
        for title in titles:
            case_id, found = self.lookup(title)
            if found:
                case_ids.append(case_id)
            else:
                missing.append(title)
        return case_ids, missing


def load_case_index(client, project_id: int, suite_id: int) -> CaseIDIndex:
    """Load every case of a project suite into a new CaseIDIndex."""
    cases = client.get_cases(project_id, suite_id)
    logger.info(f"Loaded {len(cases)} cases for project {project_id}, suite {suite_id}")
    return CaseIDIndex.from_cases(cases, strict=client.config.strict)

"""Create TestRail runs and post results against them."""

import logging
import time
from typing import Iterable, Optional

from .case_index import CaseIDIndex
from .config import DEFAULT_RUN_NAME_PREFIX
from .models import ApiResponse, ResultBatch, ResultRecord, RunDescriptor
from .testrail_client import TestRailClient

logger = logging.getLogger(__name__)


def build_run_name(env_name: str = "", now: Optional[float] = None,
                   prefix: str = DEFAULT_RUN_NAME_PREFIX) -> str:
    """`<prefix>-<env>-<unixSeconds>`, or `<prefix>-<unixSeconds>` without an environment."""
    timestamp = int(time.time() if now is None else now)
    if env_name:
        return f"{prefix}-{env_name}-{timestamp}"
    return f"{prefix}-{timestamp}"


def create_run_with_case_ids(
    client: TestRailClient,
    env_name: str,
    project_id: int,
    suite_id: int,
    case_ids: Iterable[int],
    description: str = "",
    now: Optional[float] = None,
) -> int:
    """Create a run limited to `case_ids` and return its ID.

    Returns 0 when the response could not be decoded; 0 is never a valid run ID.
    """
    descriptor = RunDescriptor(
        suite_id=suite_id,
        name=build_run_name(env_name, now, prefix=client.config.run_name_prefix),
        case_ids=list(case_ids),
        description=description,
    )
    run = client.add_run(project_id, descriptor)
    if run.id:
        logger.info(f"Created run {run.id} ({descriptor.name}) with {len(descriptor.case_ids)} cases")
    else:
        logger.error(f"Run {descriptor.name} was not created")
    return run.id


def add_results(client: TestRailClient, run_id: int, batch: ResultBatch) -> ApiResponse:
    """Post a batch of results to a run."""
    if batch.run_id and batch.run_id != run_id:
        logger.warning(f"Result batch for run {batch.run_id} posted to run {run_id}")
    response = client.add_results_for_cases(run_id, batch)
    if response.ok:
        logger.info(f"Posted {len(batch.results)} results to run {run_id}")
    else:
        logger.error(f"Posting results to run {run_id} failed with status {response.status_code}")
    return response


RESULT_FIELDS = ("status_id", "comment", "version", "elapsed", "defects", "assignedto_id")


def result_from_fields(case_id: int, fields: dict) -> ResultRecord:
    """Build a ResultRecord from a dict of result fields; status_id is required."""
    if "status_id" not in fields:
        raise ValueError(f"Result for case {case_id} has no status_id")
    unknown = set(fields) - set(RESULT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown result fields for case {case_id}: {sorted(unknown)}")
    return ResultRecord(case_id=case_id, **fields)


def report_results(
    client: TestRailClient,
    index: CaseIDIndex,
    env_name: str,
    project_id: int,
    suite_id: int,
    results: dict[str, dict],
    description: str = "",
) -> dict:
    """Create a run for the titles in `results` and post their outcomes.

    Args:
        results: case title -> result fields (`status_id` plus any of
            comment, version, elapsed, defects, assignedto_id)

    Returns:
        dict with run_id, posted count, missing titles and the post status code
    """
    records, missing = [], []
    for title, fields in results.items():
        case_id, found = index.lookup(title)
        if not found:
            missing.append(title)
            continue
        records.append(result_from_fields(case_id, fields))

    if missing:
        logger.warning(f"{len(missing)} results have no matching case: {missing}")
    if not records:
        return {"run_id": 0, "posted": 0, "missing": missing, "status_code": None}

    run_id = create_run_with_case_ids(
        client, env_name, project_id, suite_id,
        [r.case_id for r in records], description,
    )
    if not run_id:
        return {"run_id": 0, "posted": 0, "missing": missing, "status_code": None}

    response = add_results(client, run_id, ResultBatch(run_id=run_id, results=records))
    return {
        "run_id": run_id,
        "posted": len(records) if response.ok else 0,
        "missing": missing,
        "status_code": response.status_code,
    }

"""TestRail API client for resolving catalog names and creating cases, runs and results."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

import requests
import urllib3

from .config import TestRailConfig
from .errors import (
    ApiError,
    InterchangeError,
    NotFoundError,
    ProtocolError,
    TestRailError,
    TransportError,
)
from .interchange import read_case_csv
from .models import (
    ApiResponse,
    Case,
    CaseRecord,
    Project,
    ResultBatch,
    Run,
    RunDescriptor,
    Section,
    Suite,
    UploadSummary,
)

logger = logging.getLogger(__name__)

API_PREFIX = "index.php?/api/v2/"


class TestRailClient:
    """Client for the TestRail v2 API.

    In lenient mode (the default) non-success statuses and undecodable
    bodies are logged and the caller gets empty values: an ID of 0, an
    empty list, or `(-1, False)` for section lookups. With
    `config.strict` the same conditions raise ApiError / ProtocolError.
    Transport failures always raise TransportError.
    """
    __test__ = False

    def __init__(self, config: TestRailConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.auth = (config.user, config.password)
        self.session.headers.update({
            "User-Agent": "testrail-sync/0.1.0",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        self.session.verify = config.verify_tls
        if not config.verify_tls:
            # Certificate checks are off on purpose for self-hosted instances
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def url_for(self, endpoint: str) -> str:
        return f"{self.config.base_url}/{API_PREFIX}{endpoint}"

    def send(self, method: str, endpoint: str, payload: Optional[dict] = None) -> ApiResponse:
        """Execute one request and return its status code and raw body."""
        url = self.url_for(endpoint)
        logger.debug(f"{method} {url}")
        data = json.dumps(payload) if payload is not None else None
        try:
            response = self.session.request(method, url, data=data, timeout=self.config.timeout)
        except requests.RequestException as e:
            logger.error(f"Request {method} {endpoint} failed: {e}")
            raise TransportError(f"{method} {endpoint}: {e}") from e

        result = ApiResponse(status_code=response.status_code, body=response.content or b"")
        if not result.ok:
            logger.warning(f"Received non-2xx status code {result.status_code} from {endpoint}: {result.text[:200]}")
            if self.config.strict:
                raise ApiError(result.status_code, result.text, endpoint)
        return result

    def _decode(self, response: ApiResponse, endpoint: str):
        try:
            return json.loads(response.body)
        except ValueError as e:
            logger.error(f"Failed to decode response from {endpoint}: {e}")
            if self.config.strict:
                raise ProtocolError(f"{endpoint}: invalid JSON response: {e}") from e
            return None

    def _get_items(self, endpoint: str, key: str) -> list[dict]:
        """GET a collection; accepts both bare lists and `{key: [...]}` pages."""
        data = self._decode(self.send("GET", endpoint), endpoint)
        if isinstance(data, dict):
            data = data.get(key)
        if not isinstance(data, list):
            if data is not None:
                logger.warning(f"Unexpected response shape from {endpoint}")
                if self.config.strict:
                    raise ProtocolError(f"{endpoint}: expected a list of {key}")
            return []
        return [item for item in data if isinstance(item, dict)]

    @staticmethod
    def _last_match(entities: list, name: str, attr: str = "name"):
        matches = [e for e in entities if getattr(e, attr) == name]
        if len(matches) > 1:
            logger.warning(f"{len(matches)} entries named {name!r}, using the last one (id {matches[-1].id})")
        return matches[-1] if matches else None

    def get_project(self, project_id: int) -> Project:
        endpoint = f"get_project/{project_id}"
        data = self._decode(self.send("GET", endpoint), endpoint)
        if not isinstance(data, dict):
            return Project()
        return Project.from_dict(data)

    def get_suites(self, project_id: int) -> list[Suite]:
        return [Suite.from_dict(d) for d in self._get_items(f"get_suites/{project_id}", "suites")]

    def get_suite_id_by_name(self, suite_name: str, project_id: int) -> int:
        """Resolve a suite name to its ID.

        Raises:
            NotFoundError: no suite in the project carries that name
        """
        suites = self.get_suites(project_id)
        if not suites:
            raise NotFoundError(f"Suites list is empty for project {project_id}")
        suite = self._last_match(suites, suite_name)
        if suite is None or not suite.id:
            raise NotFoundError(f"Suite ID not found, for suite name {suite_name}")
        return suite.id

    def get_sections(self, project_id: int, suite_id: int) -> list[Section]:
        endpoint = f"get_sections/{project_id}&suite_id={suite_id}"
        return [Section.from_dict(d) for d in self._get_items(endpoint, "sections")]

    def get_section_id_by_name(self, section_name: str, project_id: int, suite_id: int) -> tuple[int, bool]:
        """Resolve a section name; returns (-1, False) when absent."""
        section = self._last_match(self.get_sections(project_id, suite_id), section_name)
        if section is None or not section.id:
            return -1, False
        return section.id, True

    def get_cases(self, project_id: int, suite_id: int) -> list[Case]:
        endpoint = f"get_cases/{project_id}&suite_id={suite_id}"
        return [Case.from_dict(d) for d in self._get_items(endpoint, "cases")]

    def add_case(self, section_id: int, case: Union[CaseRecord, dict]) -> ApiResponse:
        payload = case.to_payload() if isinstance(case, CaseRecord) else case
        return self.send("POST", f"add_case/{section_id}", payload)

    def add_run(self, project_id: int, descriptor: RunDescriptor) -> Run:
        """Create a run; the returned Run has id 0 if the response could not be read."""
        endpoint = f"add_run/{project_id}"
        response = self.send("POST", endpoint, descriptor.to_payload())
        data = self._decode(response, endpoint)
        if not isinstance(data, dict):
            return Run(id=0, name=descriptor.name)
        return Run.from_dict(data)

    def add_results_for_cases(self, run_id: int, batch: ResultBatch) -> ApiResponse:
        return self.send("POST", f"add_results_for_cases/{run_id}", batch.to_payload())

    def upload_cases_from_csv(
        self,
        csv_path: Union[str, Path],
        section_name: str,
        project_id: Optional[int] = None,
        suite_id: Optional[int] = None,
    ) -> UploadSummary:
        """Create a case for every row of a case CSV in the named section.

        A failed case is logged and counted, and the upload moves on to the
        next row unless the client is strict.

        Raises:
            InterchangeError: the CSV is malformed or empty
            NotFoundError: the section does not exist
        """
        project_id = project_id or self.config.project_id
        suite_id = suite_id or self.config.suite_id

        records = read_case_csv(csv_path)
        if not records:
            raise InterchangeError(str(csv_path), "no test cases to upload")

        section_id, found = self.get_section_id_by_name(section_name, project_id, suite_id)
        if not found:
            raise NotFoundError(f"Section {section_name!r} not found in project {project_id}, suite {suite_id}")

        summary = UploadSummary(section_id=section_id, total=len(records))
        for record in records:
            try:
                response = self.add_case(section_id, record)
            except TestRailError as e:
                if self.config.strict:
                    raise
                logger.error(f"Failed to create case {record.title!r}: {e}")
                response = None

            if response is not None and response.ok:
                summary.created += 1
            else:
                summary.failed += 1
                summary.failures.append(record.title)

        logger.info(f"Uploaded {summary.created}/{summary.total} cases to section {section_name} ({section_id})")
        return summary

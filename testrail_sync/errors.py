"""Exception types raised by the discovery and sync pipeline."""

from typing import Optional


class TestRailSyncError(Exception):
    """Base class for every error raised by testrail_sync."""

    pass


class ParseError(TestRailSyncError):
    """Raised when a Go source file cannot be parsed."""

    def __init__(self, path: str, line: int, column: int, detail: str):
        self.path = path
        self.line = line
        self.column = column
        self.detail = detail
        super().__init__(f"{path}:{line}:{column}: {detail}")


class InterchangeError(TestRailSyncError):
    """Raised when an interchange CSV file is malformed."""

    def __init__(self, path: str, message: str, line: Optional[int] = None):
        self.path = path
        self.line = line
        location = f"{path}:{line}" if line is not None else path
        super().__init__(f"{location}: {message}")


class TestRailError(TestRailSyncError):
    """Base class for errors talking to the TestRail API."""

    pass


class TransportError(TestRailError):
    """The request never produced a response (DNS, TLS, timeout, ...)."""

    pass


class ApiError(TestRailError):
    """TestRail answered with a non-success status code."""

    def __init__(self, status_code: int, body: str, endpoint: str = ""):
        self.status_code = status_code
        self.body = body
        self.endpoint = endpoint
        super().__init__(f"{endpoint}: HTTP {status_code}: {body[:200]}")


class ProtocolError(TestRailError):
    """TestRail answered with a body that is not the expected JSON."""

    pass


class NotFoundError(TestRailError):
    """A name lookup did not match any remote entity."""

    pass


class DuplicateTitleError(TestRailError):
    """A case title maps to more than one remote case."""

    def __init__(self, title: str, case_ids: list[int]):
        self.title = title
        self.case_ids = case_ids
        super().__init__(f"Case title {title!r} is ambiguous: ids {case_ids}")

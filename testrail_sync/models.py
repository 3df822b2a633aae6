"""
Data models for discovered tests and TestRail catalog entities.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

DEFAULT_TYPE_ID = 1
DEFAULT_PRIORITY_ID = 3
DEFAULT_ESTIMATE = "3m"


class PlatformCode(IntEnum):
    """Value of the custom_operating_system case field."""
    DEFAULT = 1  # unspecified, runs on Windows
    MAC = 2
    LINUX = 3


@dataclass
class FunctionDecl:
    """A function or method declaration found in a Go source file."""
    name: str
    doc: str = ""
    line: int = 0
    subtests: list[str] = field(default_factory=list)

    @property
    def is_test(self) -> bool:
        return self.name[:4] == "Test"


@dataclass
class ScannedFile:
    """Structured view of one parsed `_test.go` file."""
    path: str
    declarations: list[FunctionDecl] = field(default_factory=list)

    @property
    def file_name(self) -> str:
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]

    def test_functions(self) -> list[FunctionDecl]:
        return [decl for decl in self.declarations if decl.is_test]

    def test_identifiers(self) -> list[str]:
        """Test names in source order, each followed by its sub-tests."""
        identifiers = []
        for decl in self.test_functions():
            identifiers.append(decl.name)
            identifiers.extend(f"{decl.name}/{sub}" for sub in decl.subtests)
        return identifiers

    def doc_for(self, func_name: str) -> str:
        """Doc comment of the first declaration named exactly `func_name`."""
        for decl in self.declarations:
            if decl.name == func_name:
                return decl.doc
        return ""


@dataclass(frozen=True)
class CaseRecord:
    """One discovered test, ready to be created as a TestRail case."""
    title: str
    type_id: int = DEFAULT_TYPE_ID
    priority_id: int = DEFAULT_PRIORITY_ID
    estimate: str = DEFAULT_ESTIMATE
    platform: PlatformCode = PlatformCode.DEFAULT
    description: str = ""

    def to_payload(self) -> dict:
        return {
            "title": self.title,
            "type_id": self.type_id,
            "priority_id": self.priority_id,
            "estimate": self.estimate,
            "custom_operating_system": int(self.platform),
            "custom_test_case_description": self.description,
        }


@dataclass
class Project:
    """A TestRail project."""
    id: int = 0
    name: str = ""
    announcement: Optional[str] = None
    completed_on: Optional[int] = None
    is_completed: bool = False
    show_announcement: bool = False
    suite_mode: int = 0
    url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        return cls(
            id=data.get("id") or 0,
            name=data.get("name") or "",
            announcement=data.get("announcement"),
            completed_on=data.get("completed_on"),
            is_completed=bool(data.get("is_completed")),
            show_announcement=bool(data.get("show_announcement")),
            suite_mode=data.get("suite_mode") or 0,
            url=data.get("url") or "",
        )


@dataclass
class Suite:
    id: int
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> "Suite":
        return cls(id=data.get("id") or 0, name=data.get("name") or "")


@dataclass
class Section:
    id: int
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> "Section":
        return cls(id=data.get("id") or 0, name=data.get("name") or "")


@dataclass
class Case:
    id: int
    title: str

    @classmethod
    def from_dict(cls, data: dict) -> "Case":
        return cls(id=data.get("id") or 0, title=data.get("title") or "")


@dataclass
class Run:
    id: int
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> "Run":
        return cls(id=data.get("id") or 0, name=data.get("name") or "")


@dataclass
class RunDescriptor:
    """Body of an add_run request."""
    suite_id: int
    name: str
    case_ids: list[int] = field(default_factory=list)
    description: str = ""
    include_all: bool = False

    def to_payload(self) -> dict:
        return {
            "suite_id": self.suite_id,
            "name": self.name,
            "include_all": self.include_all,
            "case_ids": list(self.case_ids),
            "description": self.description,
        }


@dataclass
class ResultRecord:
    """Outcome of one test, reported against a case in a run."""
    case_id: int
    status_id: int
    comment: str = ""
    version: str = ""
    elapsed: str = ""
    defects: str = ""
    assignedto_id: int = 0

    def to_payload(self) -> dict:
        payload = {"case_id": self.case_id, "status_id": self.status_id}
        # Optional fields are left out entirely when unset
        for key in ("comment", "version", "elapsed", "defects", "assignedto_id"):
            value = getattr(self, key)
            if value:
                payload[key] = value
        return payload


@dataclass
class ResultBatch:
    """Results posted together to one run."""
    run_id: int
    results: list[ResultRecord] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {"results": [r.to_payload() for r in self.results]}


@dataclass
class ApiResponse:
    """Status code and raw body of one TestRail API exchange."""
    status_code: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass
class UploadSummary:
    """Outcome of uploading an interchange file to a section."""
    section_id: int
    created: int = 0
    failed: int = 0
    total: int = 0
    failures: list[str] = field(default_factory=list)

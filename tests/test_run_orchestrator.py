"""Tests for run creation, result posting and the case ID index."""

import json

import pytest

from testrail_sync import errors
from testrail_sync.case_index import CaseIDIndex, load_case_index
from testrail_sync.models import Case, ResultBatch, ResultRecord
from testrail_sync.run_orchestrator import (
    add_results,
    build_run_name,
    create_run_with_case_ids,
    report_results,
    result_from_fields,
)

NOW = 1700000000


def test_build_run_name():
    assert build_run_name("staging", now=NOW) == "orbitalqa-run-staging-1700000000"
    assert build_run_name("", now=NOW) == "orbitalqa-run-1700000000"
    assert build_run_name("qa", now=NOW, prefix="nightly") == "nightly-qa-1700000000"


def test_create_run_with_case_ids(client, session, make_response):
    session.request.return_value = make_response(200, {"id": 77, "name": "orbitalqa-run-qa-1700000000"})

    run_id = create_run_with_case_ids(client, "qa", 34, 5279, [3, 1, 2], "nightly\tsmoke", now=NOW)

    assert run_id == 77
    assert session.request.call_args.args[1].endswith("add_run/34")
    assert json.loads(session.request.call_args.kwargs["data"]) == {
        "suite_id": 5279,
        "name": "orbitalqa-run-qa-1700000000",
        "include_all": False,
        "case_ids": [3, 1, 2],
        "description": "nightly\tsmoke",
    }


def test_create_run_returns_zero_on_unreadable_response(client, session, make_response):
    session.request.return_value = make_response(500, b"")

    assert create_run_with_case_ids(client, "", 34, 5279, [1], now=NOW) == 0


def test_add_results_returns_typed_response(client, session, make_response):
    session.request.return_value = make_response(400, b'{"error": "bad status"}')

    response = add_results(client, 77, ResultBatch(run_id=77, results=[ResultRecord(case_id=1, status_id=9)]))

    assert not response.ok
    assert response.status_code == 400


def test_case_index_lookup_and_resolve():
    index = CaseIDIndex.from_cases([Case(1, "TestBar"), Case(2, "TestBar/case1")])

    assert len(index) == 2
    assert index.lookup("TestBar") == (1, True)
    assert index.lookup("TestMissing") == (0, False)
    assert index.resolve(["TestBar/case1", "TestMissing", "TestBar"]) == ([2, 1], ["TestMissing"])


def test_case_index_duplicates():
    cases = [Case(1, "TestSame"), Case(2, "TestSame")]

    lenient = CaseIDIndex.from_cases(cases)
    assert lenient.lookup("TestSame") == (2, True)
    assert lenient.duplicates() == {"TestSame": [1, 2]}

    strict = CaseIDIndex.from_cases(cases, strict=True)
    with pytest.raises(errors.DuplicateTitleError):
        strict.lookup("TestSame")


def test_load_case_index(client, session, make_response):
    session.request.return_value = make_response(200, {"cases": [{"id": 5, "title": "TestBar"}]})

    index = load_case_index(client, 34, 5279)

    assert "TestBar" in index
    assert index.lookup("TestBar") == (5, True)


def test_result_from_fields_validation():
    assert result_from_fields(4, {"status_id": 1, "comment": "ok"}) == ResultRecord(4, 1, comment="ok")
    with pytest.raises(ValueError):
        result_from_fields(4, {"comment": "no status"})
    with pytest.raises(ValueError):
        result_from_fields(4, {"status_id": 1, "color": "green"})


def test_report_results(client, session, make_response):
    index = CaseIDIndex.from_cases([Case(10, "TestBar"), Case(11, "TestBar/case1")])
    session.request.side_effect = [
        make_response(200, {"id": 77, "name": "orbitalqa-run-ci-1"}),
        make_response(200, []),
    ]

    outcome = report_results(
        client, index, "ci", 34, 5279,
        {
            "TestBar": {"status_id": 1},
            "TestBar/case1": {"status_id": 5, "comment": "assertion failed"},
            "TestUnknown": {"status_id": 1},
        },
    )

    assert outcome == {"run_id": 77, "posted": 2, "missing": ["TestUnknown"], "status_code": 200}
    run_call, results_call = session.request.call_args_list
    assert json.loads(run_call.kwargs["data"])["case_ids"] == [10, 11]
    assert results_call.args[1].endswith("add_results_for_cases/77")
    assert json.loads(results_call.kwargs["data"]) == {"results": [
        {"case_id": 10, "status_id": 1},
        {"case_id": 11, "status_id": 5, "comment": "assertion failed"},
    ]}


def test_report_results_without_known_cases_creates_nothing(client, session):
    outcome = report_results(client, CaseIDIndex(), "", 34, 5279, {"TestUnknown": {"status_id": 1}})

    assert outcome["run_id"] == 0
    assert outcome["missing"] == ["TestUnknown"]
    session.request.assert_not_called()

"""Tests for operations shared by the CLI and MCP server."""

import json

import pytest

import core


@pytest.fixture(autouse=True)
def use_mocked_client(monkeypatch, client):
    monkeypatch.setattr(core, "_client", client)


def test_get_client_returns_singleton(client):
    assert core.get_client() is client


def test_scan_tests_reports_duplicates(go_tree, tmp_path):
    go_tree("a/a_test.go", "package a\n\nfunc TestSame(t *testing.T) {}\n")
    go_tree("b/b_test.go", "package b\n\n// darwin\nfunc TestSame(t *testing.T) {}\n")

    result = core.scan_tests(str(tmp_path))

    assert result["total_tests"] == 2
    assert result["duplicates"] == {"TestSame": 2}
    assert [f["tests"][0]["platform"] for f in result["files"]] == ["default", "mac"]


def test_load_results_file_accepts_mapping_and_list(tmp_path):
    mapping = tmp_path / "mapping.json"
    mapping.write_text(json.dumps({"TestBar": {"status_id": 1}}))
    listing = tmp_path / "listing.json"
    listing.write_text(json.dumps([{"title": "TestBar", "status_id": 5, "comment": "x"}]))

    assert core.load_results_file(str(mapping)) == {"TestBar": {"status_id": 1}}
    assert core.load_results_file(str(listing)) == {"TestBar": {"status_id": 5, "comment": "x"}}


def test_load_results_file_rejects_entries_without_title(tmp_path):
    path = tmp_path / "results.json"
    path.write_text(json.dumps([{"status_id": 1}]))

    with pytest.raises(ValueError):
        core.load_results_file(str(path))


def test_create_run_resolves_titles(session, make_response):
    session.request.side_effect = [
        make_response(200, {"cases": [{"id": 1, "title": "TestBar"}, {"id": 2, "title": "TestBaz"}]}),
        make_response(200, {"id": 90, "name": "orbitalqa-run-1"}),
    ]

    result = core.create_run(["TestBaz", "TestGone"], env_name="ci")

    assert result == {"run_id": 90, "case_ids": [2], "missing": ["TestGone"]}


def test_create_run_without_matches(session, make_response):
    session.request.return_value = make_response(200, {"cases": []})

    result = core.create_run(["TestGone"])

    assert result["run_id"] == 0
    assert "error" in result


def test_list_sections_uses_configured_ids(client, session, make_response):
    session.request.return_value = make_response(200, {"sections": [{"id": 5, "name": "Smoke"}]})

    result = core.list_sections()

    assert result == {"project_id": 34, "suite_id": 5279, "sections": [{"id": 5, "name": "Smoke"}]}
    assert session.request.call_args.args[1] == client.url_for("get_sections/34&suite_id=5279")

"""Tests for building case records from scanned files."""

from testrail_sync.case_builder import build_case_records, build_from_directory, find_duplicate_titles
from testrail_sync.go_scanner import parse_source
from testrail_sync.models import (
    DEFAULT_ESTIMATE,
    DEFAULT_PRIORITY_ID,
    DEFAULT_TYPE_ID,
    CaseRecord,
    PlatformCode,
)

SOURCE = """package foo

import "testing"

// checks bar
func TestBar(t *testing.T) {
	t.Run("case1", func(t *testing.T) {})
}

func TestNoDocs(t *testing.T) {}

// Only runs on macosx runners.
func TestMacOnly(t *testing.T) {}
"""


def test_records_for_function_and_subtest():
    records = build_case_records(parse_source(SOURCE, path="pkg/foo_test.go"))

    assert [r.title for r in records] == ["TestBar", "TestBar/case1", "TestNoDocs", "TestMacOnly"]
    bar, sub = records[0], records[1]
    assert bar.description == "checks bar"
    assert sub.description == "checks bar"
    assert bar.platform == PlatformCode.DEFAULT
    assert (bar.type_id, bar.priority_id, bar.estimate) == (DEFAULT_TYPE_ID, DEFAULT_PRIORITY_ID, DEFAULT_ESTIMATE)


def test_docs_do_not_leak_between_functions():
    records = build_case_records(parse_source(SOURCE))
    by_title = {r.title: r for r in records}

    assert by_title["TestNoDocs"].description == ""
    assert by_title["TestNoDocs"].platform == PlatformCode.DEFAULT
    assert by_title["TestMacOnly"].platform == PlatformCode.MAC


def test_qualified_description_uses_file_name():
    records = build_case_records(parse_source(SOURCE, path="pkg/foo_test.go"), qualify_description=True)

    assert records[0].description == "foo_test.go:checks bar"
    assert records[2].description == "foo_test.go:"


def test_build_from_directory_keeps_duplicate_titles(go_tree, tmp_path):
    go_tree("a/x_test.go", "package a\n\n// from a\nfunc TestSame(t *testing.T) {}\n")
    go_tree("b/y_test.go", "package b\n\n// from b on linux\nfunc TestSame(t *testing.T) {}\n")

    records = build_from_directory(tmp_path)

    assert [r.description for r in records] == ["from a", "from b on linux"]
    assert [r.platform for r in records] == [PlatformCode.DEFAULT, PlatformCode.LINUX]
    assert find_duplicate_titles(records) == {"TestSame": 2}


def test_find_duplicate_titles_none():
    assert find_duplicate_titles([CaseRecord("TestA"), CaseRecord("TestB")]) == {}

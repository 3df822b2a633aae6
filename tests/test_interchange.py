"""Tests for the CSV and JSON lines interchange files."""

import json

import pytest

from testrail_sync.errors import InterchangeError
from testrail_sync.interchange import (
    convert_csv_files,
    csv_to_json,
    decode_row,
    encode_row,
    escape_field,
    export_test_cases,
    read_case_csv,
    unescape_field,
    write_case_csv,
)
from testrail_sync.models import CaseRecord, PlatformCode


def test_encode_plain_row():
    assert encode_row(CaseRecord("TestBar", description="checks bar")) == "TestBar,1,3,3m,1,checks bar"


def test_encode_doubles_quotes_and_escapes_whitespace():
    record = CaseRecord("TestX", platform=PlatformCode.LINUX, description='say "hi"\n\tthen leave')

    assert encode_row(record) == 'TestX,1,3,3m,3,"say ""hi""\\n\\tthen leave"'


@pytest.mark.parametrize(
    "text",
    ['quote " inside', "two\nlines", "tab\there", "back\\slash and \\n literal", "", 'mixed "a",\tb\r\nc'],
)
def test_description_escaping_is_reversible(text):
    assert unescape_field(escape_field(text)) == text


def test_row_round_trip(tmp_path):
    records = [
        CaseRecord("TestBar", description="checks bar"),
        CaseRecord("TestBar/case1", platform=PlatformCode.MAC, description='he said "go"\nthen\tleft'),
        CaseRecord("TestComma", estimate="10m", description="a, b, c"),
    ]
    path = tmp_path / "cases.csv"

    assert write_case_csv(records, path) == 3
    assert len(path.read_text().splitlines()) == 3
    assert read_case_csv(path) == records


def test_title_with_newline_stays_on_one_line(tmp_path):
    records = [
        CaseRecord("TestRaw/two\nlines", description="raw string sub-test"),
        CaseRecord("TestRaw/back\\slash"),
    ]
    path = tmp_path / "cases.csv"

    write_case_csv(records, path)

    assert path.read_text().splitlines() == [
        "TestRaw/two\\nlines,1,3,3m,1,raw string sub-test",
        "TestRaw/back\\\\slash,1,3,3m,1,",
    ]
    assert read_case_csv(path) == records


def test_read_case_csv_reports_physical_line_after_quoted_newline(tmp_path):
    path = tmp_path / "c.csv"
    path.write_text('TestA,1,3,3m,1,"spans\ntwo lines"\nTestB,1,3\n')

    with pytest.raises(InterchangeError) as exc_info:
        read_case_csv(path)

    assert exc_info.value.line == 3


def test_decode_row_rejects_wrong_column_count():
    with pytest.raises(InterchangeError):
        decode_row(["TestA", "1", "3", "3m", "1"])


def test_decode_row_rejects_bad_numbers():
    with pytest.raises(InterchangeError):
        decode_row(["TestA", "one", "3", "3m", "1", ""])


def test_reads_unquoted_rows():
    """Rows written without quoting still decode."""
    record = decode_row("TestFoo,1,3,3m,2,runs on macos".split(","))
    assert record == CaseRecord("TestFoo", platform=PlatformCode.MAC, description="runs on macos")


def test_csv_to_json_uses_testrail_field_names(tmp_path):
    path = tmp_path / "cases.csv"
    path.write_text("TestBar,1,3,3m,3,runs on ubuntu\n\n")

    rows = [json.loads(line) for line in csv_to_json(path)]

    assert rows == [{
        "title": "TestBar",
        "type_id": 1,
        "priority_id": 3,
        "estimate": "3m",
        "custom_operating_system": 3,
        "custom_test_case_description": "runs on ubuntu",
    }]


def test_convert_csv_files_keeps_earlier_files_on_failure(tmp_path):
    good = tmp_path / "good.csv"
    good.write_text("TestA,1,3,3m,1,first\nTestB,1,3,3m,1,second\n")
    bad = tmp_path / "bad.csv"
    bad.write_text("TestC,1,3,3m,1,ok\nTestD,1,3\n")
    output = tmp_path / "cases.jsonl"

    with pytest.raises(InterchangeError) as exc_info:
        convert_csv_files([good, bad], output)

    assert exc_info.value.line == 2
    titles = [json.loads(line)["title"] for line in output.read_text().splitlines()]
    assert titles == ["TestA", "TestB"]


def test_convert_csv_files_counts_rows(tmp_path):
    first = tmp_path / "a.csv"
    first.write_text("TestA,1,3,3m,1,first\n")
    second = tmp_path / "b.csv"
    second.write_text("TestB,1,3,3m,2,second\n")

    assert convert_csv_files([first, second], tmp_path / "out.jsonl") == 2


def test_export_test_cases_end_to_end(go_tree, tmp_path):
    go_tree(
        "src/foo_test.go",
        '// checks bar\nfunc TestBar(t *testing.T) { t.Run("case1", func(t *testing.T){}) }\n',
    )
    output = tmp_path / "cases.csv"

    records = export_test_cases(tmp_path / "src", output)

    assert [r.title for r in records] == ["TestBar", "TestBar/case1"]
    assert output.read_text().splitlines() == [
        "TestBar,1,3,3m,1,checks bar",
        "TestBar/case1,1,3,3m,1,checks bar",
    ]


def test_export_test_cases_json(go_tree, tmp_path):
    go_tree("src/foo_test.go", "package foo\n\n// on darwin\nfunc TestMac(t *testing.T) {}\n")
    output = tmp_path / "cases.jsonl"

    export_test_cases(tmp_path / "src", output, output_format="json")

    payload = json.loads(output.read_text())
    assert payload["title"] == "TestMac"
    assert payload["custom_operating_system"] == 2

"""
Go test source scanner.

Parses `_test.go` files with the tree-sitter Go grammar and extracts every
function declaration together with its doc comment and, for test functions,
the literal names passed to `t.Run(...)` sub-test calls.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Union

from tree_sitter_language_pack import get_parser

from .errors import ParseError
from .models import FunctionDecl, ScannedFile

logger = logging.getLogger(__name__)

TEST_FILE_SUFFIX = "_test.go"
TEST_NAME_PREFIX = "Test"

DEFAULT_IGNORE_DIRS = frozenset({
    ".git",
    "vendor",
    "node_modules",
})

DECLARATION_TYPES = ("function_declaration", "method_declaration")
STRING_LITERAL_TYPES = ("interpreted_string_literal", "raw_string_literal")

# Global Go parser (created on first use)
_go_parser = None


def get_go_parser():
    """Get or create the tree-sitter Go parser singleton."""
    global _go_parser
    if _go_parser is None:
        _go_parser = get_parser("go")
    return _go_parser


def _text(node) -> str:
    return node.text.decode("utf-8", errors="replace")


def _raise_walk_error(err: OSError):
    raise err


def find_test_files(
    root: Union[str, Path],
    suffix: str = TEST_FILE_SUFFIX,
    ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
) -> Iterator[Path]:
    """Yield test files below `root` in a stable, sorted order.

    Hidden directories and `ignore_dirs` are skipped. Errors raised while
    walking (missing root, permission denied) propagate to the caller.
    """
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error, followlinks=False):
        kept = []
        for d in sorted(dirnames):
            if d in ignore_dirs or d.startswith('.'):
                logger.debug(f"Skipping directory {os.path.join(dirpath, d)}")
            else:
                kept.append(d)
        dirnames[:] = kept
        for file_name in sorted(filenames):
            if file_name.endswith(suffix):
                yield Path(dirpath) / file_name


def _first_error_node(node):
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error_node(child)
            if found is not None:
                return found
    return None


def _check_syntax(root, path: str):
    if not root.has_error:
        return
    node = _first_error_node(root) or root
    row, column = node.start_point[0], node.start_point[1]
    if node.is_missing:
        detail = f"syntax error: missing {node.type}"
    else:
        snippet = _text(node).splitlines()[0][:40] if node.text else ""
        detail = f"syntax error near {snippet!r}"
    raise ParseError(path, row + 1, column + 1, detail)


def _comment_lines(comment) -> list[str]:
    text = _text(comment)
    if text.startswith("//"):
        body = text[2:]
        # Compiler directives such as //go:build are not documentation
        if body.startswith("go:") or body.startswith("line "):
            return []
        return [body.strip()]

    lines = [line.strip() for line in text[2:-2].splitlines()]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return lines


def _leading_doc(declaration) -> str:
    """Join the comment block that ends on the line right above `declaration`."""
    lines = []
    expected_row = declaration.start_point[0]
    comment = declaration.prev_named_sibling
    while comment is not None and comment.type == "comment":
        if comment.end_point[0] != expected_row - 1:
            break
        previous = comment.prev_named_sibling
        if previous is not None and previous.end_point[0] == comment.start_point[0]:
            # trailing comment of the preceding code
            break
        lines[0:0] = _comment_lines(comment)
        expected_row = comment.start_point[0]
        comment = previous
    return "\n".join(lines)


def _run_call(call) -> tuple[bool, Union[str, None]]:
    """Match `receiver.Run(<literal>, ...)`; returns (is_run_call, literal name)."""
    function = call.child_by_field_name("function")
    if function is None or function.type != "selector_expression":
        return False, None
    field = function.child_by_field_name("field")
    if field is None or _text(field) != "Run":
        return False, None

    arguments = call.child_by_field_name("arguments")
    args = [a for a in arguments.named_children if a.type != "comment"] if arguments is not None else []
    if args and args[0].type in STRING_LITERAL_TYPES:
        # Escape sequences are kept exactly as written
        return True, _text(args[0])[1:-1]
    return True, None


def _collect_subtests(node, prefix: str, depth: int, found: list[str]):
    for child in node.named_children:
        if child.type == "call_expression":
            is_run, name = _run_call(child)
            if is_run:
                if name is not None:
                    path = f"{prefix}{name}"
                    found.append(path)
                    if depth > 1:
                        arguments = child.child_by_field_name("arguments")
                        if arguments is not None:
                            _collect_subtests(arguments, f"{path}/", depth - 1, found)
                continue
        _collect_subtests(child, prefix, depth, found)


def parse_source(source: Union[str, bytes], path: str = "<source>", subtest_depth: int = 1) -> ScannedFile:
    """Parse Go source text into a ScannedFile.

    Args:
        source: Go source code
        path: File name used in error messages and for ScannedFile.path
        subtest_depth: How many levels of nested `t.Run` calls to follow.
            With the default of 1, only Run calls made directly from the
            test function are reported.

    Raises:
        ParseError: the source contains a syntax error
    """
    data = source.encode("utf-8") if isinstance(source, str) else source
    tree = get_go_parser().parse(data)
    root = tree.root_node
    _check_syntax(root, path)

    scanned = ScannedFile(path=path)
    for node in root.named_children:
        if node.type not in DECLARATION_TYPES:
            continue
        name_node = node.child_by_field_name("name")
        if name_node is None:
            continue
        decl = FunctionDecl(
            name=_text(name_node),
            doc=_leading_doc(node),
            line=node.start_point[0] + 1,
        )
        if decl.is_test and subtest_depth > 0:
            body = node.child_by_field_name("body")
            if body is not None:
                _collect_subtests(body, "", subtest_depth, decl.subtests)
        scanned.declarations.append(decl)
    return scanned


def scan_file(path: Union[str, Path], subtest_depth: int = 1) -> ScannedFile:
    """Read and parse one Go file. OSError and ParseError propagate."""
    source = Path(path).read_bytes()
    return parse_source(source, path=str(path), subtest_depth=subtest_depth)


def scan_directory(
    root: Union[str, Path],
    suffix: str = TEST_FILE_SUFFIX,
    subtest_depth: int = 1,
) -> list[ScannedFile]:
    """Scan every test file below `root`; the first failure aborts the scan."""
    scanned = []
    for path in find_test_files(root, suffix=suffix):
        logger.debug(f"Extracting tests from {path}")
        result = scan_file(path, subtest_depth=subtest_depth)
        logger.debug(f"Found {len(result.test_identifiers())} tests in {path}")
        scanned.append(result)
    logger.info(f"Scanned {len(scanned)} test files under {root}")
    return scanned


def extract_test_names(source: Union[str, bytes], subtest_depth: int = 1) -> list[str]:
    """Test identifiers (`TestFoo`, `TestFoo/sub`) defined in `source`."""
    return parse_source(source, subtest_depth=subtest_depth).test_identifiers()


def extract_doc_comment(source: Union[str, bytes], func_name: str) -> str:
    """Doc comment of the first function named `func_name`, or "" if none."""
    return parse_source(source).doc_for(func_name)

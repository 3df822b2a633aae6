#!/usr/bin/env python3
"""CLI for syncing Go tests with TestRail."""

import argparse
import json
import logging
import sys

import core
from testrail_sync.config import get_testrail_config
from testrail_sync.errors import TestRailSyncError


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(levelname)s: %(message)s'
    )


def _print_json(data: dict):
    print(json.dumps(data, indent=2, default=str))


def cmd_scan(args):
    """List tests found in a source tree."""
    result = core.scan_tests(args.directory, subtest_depth=args.subtest_depth)
    if args.format == 'json':
        _print_json(result)
        return 0

    for f in result["files"]:
        print(f"\n{f['path']}")
        for t in f["tests"]:
            print(f"  - {t['title']} [{t['platform']}]")
    print(f"\nTotal tests: {result['total_tests']}")
    if result["duplicates"]:
        print(f"Duplicate titles ({len(result['duplicates'])}):")
        for title, count in sorted(result["duplicates"].items()):
            print(f"  - {title} (x{count})")
    return 0


def cmd_export(args):
    """Write discovered tests to an interchange file."""
    result = core.export_cases(
        args.directory,
        args.output,
        output_format=args.format,
        qualify_description=args.qualify,
        subtest_depth=args.subtest_depth,
    )
    print(f"{result['cases_written']} test cases written to {result['output']}")
    return 0


def cmd_convert(args):
    """Convert case CSV files to JSON lines."""
    result = core.convert_csv(args.csv_files, args.output)
    print(f"{result['cases_written']} test cases from {result['files']} files written to {result['output']}")
    return 0


def cmd_upload(args):
    """Create cases from a CSV in a TestRail section."""
    result = core.upload_cases(args.csv_file, args.section, args.project_id, args.suite_id)
    if args.format == 'json':
        _print_json(result)
    else:
        print(f"Section: {result['section']} ({result['section_id']})")
        print(f"  Created: {result['created']}/{result['total']}")
        if result["failures"]:
            print(f"  Failed ({result['failed']}):")
            for title in result["failures"][:10]:
                print(f"    - {title}")
            if len(result["failures"]) > 10:
                print(f"    ... and {len(result['failures']) - 10} more")
    return 0 if result["failed"] == 0 else 1


def cmd_suites(args):
    """List suites of a project."""
    result = core.list_suites(args.project_id)
    if args.format == 'json':
        _print_json(result)
    else:
        print(f"Suites in project {result['project_id']} ({len(result['suites'])}):")
        for s in result["suites"]:
            print(f"  {s['id']:>8}  {s['name']}")
    return 0


def cmd_sections(args):
    """List sections of a suite."""
    result = core.list_sections(args.project_id, args.suite_id)
    if args.format == 'json':
        _print_json(result)
    else:
        print(f"Sections in suite {result['suite_id']} ({len(result['sections'])}):")
        for s in result["sections"]:
            print(f"  {s['id']:>8}  {s['name']}")
    return 0


def cmd_cases(args):
    """List cases of a suite."""
    result = core.list_cases(args.project_id, args.suite_id)
    if args.format == 'json':
        _print_json(result)
    else:
        print(f"Cases in suite {result['suite_id']} ({len(result['cases'])}):")
        for c in result["cases"]:
            print(f"  {c['id']:>8}  {c['title']}")
    return 0


def cmd_create_run(args):
    """Create a run from case titles."""
    titles = [t.strip() for t in args.titles.split(',') if t.strip()]
    result = core.create_run(titles, args.env, args.description, args.project_id, args.suite_id)
    if args.format == 'json':
        _print_json(result)
    else:
        if result.get("error"):
            print(f"Error: {result['error']}", file=sys.stderr)
        else:
            print(f"Run ID: {result['run_id']}")
        for title in result.get("missing", []):
            print(f"  not found: {title}")
    return 0 if result.get("run_id") else 1


def cmd_report(args):
    """Create a run and post results from a JSON file."""
    result = core.report_results_file(args.results_file, args.env, args.description,
                                      args.project_id, args.suite_id)
    if args.format == 'json':
        _print_json(result)
    else:
        print(f"Run ID: {result['run_id']}")
        print(f"Results posted: {result['posted']}")
        for title in result["missing"]:
            print(f"  not found: {title}")
    return 0 if result["run_id"] and result["posted"] else 1


def _add_catalog_args(p):
    p.add_argument('--project-id', type=int, help='TestRail project ID (default: TESTRAIL_PROJECT_ID)')
    p.add_argument('--suite-id', type=int, help='TestRail suite ID (default: TESTRAIL_SUITE_ID)')


def main(argv=None):
    parser = argparse.ArgumentParser(description='Sync Go tests with TestRail')
    parser.add_argument('-v', '--verbose', action='store_true')
    parser.add_argument('--env-file', help='.env file with TESTRAIL_* settings')
    parser.add_argument('--strict', action='store_true',
                        help='Fail on unexpected TestRail responses instead of logging them')

    sub = parser.add_subparsers(dest='command')

    p = sub.add_parser('scan', help='List tests found in a Go source tree')
    p.add_argument('directory', help='Root of the source tree')
    p.add_argument('--subtest-depth', type=int, default=1, help='Levels of t.Run nesting to follow (default: 1)')
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    p = sub.add_parser('export', help='Write discovered tests to a case file')
    p.add_argument('directory', help='Root of the source tree')
    p.add_argument('--output', '-o', required=True, help='Output file')
    p.add_argument('--format', '-f', choices=['csv', 'json'], default='csv')
    p.add_argument('--qualify', action='store_true', help='Prefix descriptions with the file name')
    p.add_argument('--subtest-depth', type=int, default=1, help='Levels of t.Run nesting to follow (default: 1)')

    p = sub.add_parser('convert', help='Convert case CSV files to JSON lines')
    p.add_argument('csv_files', nargs='+', help='Case CSV files')
    p.add_argument('--output', '-o', required=True, help='Output JSON lines file')

    p = sub.add_parser('upload', help='Create cases from a CSV in a section')
    p.add_argument('csv_file', help='Case CSV file')
    p.add_argument('--section', '-s', required=True, help='Section name')
    _add_catalog_args(p)
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    for name, help_text in (('suites', 'List suites'), ('sections', 'List sections'), ('cases', 'List cases')):
        p = sub.add_parser(name, help=help_text)
        _add_catalog_args(p)
        p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    p = sub.add_parser('create-run', help='Create a run from case titles')
    p.add_argument('--titles', '-t', required=True, help='Comma-separated case titles')
    p.add_argument('--env', '-e', default='', help='Environment label used in the run name')
    p.add_argument('--description', '-d', default='', help='Run description')
    _add_catalog_args(p)
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    p = sub.add_parser('report', help='Create a run and post results from a JSON file')
    p.add_argument('results_file', help='JSON file mapping case titles to result fields')
    p.add_argument('--env', '-e', default='', help='Environment label used in the run name')
    p.add_argument('--description', '-d', default='', help='Run description')
    _add_catalog_args(p)
    p.add_argument('--format', '-f', choices=['text', 'json'], default='text')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    cmds = {
        'scan': cmd_scan,
        'export': cmd_export,
        'convert': cmd_convert,
        'upload': cmd_upload,
        'suites': cmd_suites,
        'sections': cmd_sections,
        'cases': cmd_cases,
        'create-run': cmd_create_run,
        'report': cmd_report,
    }
    try:
        if args.command in ('upload', 'suites', 'sections', 'cases', 'create-run', 'report'):
            config = get_testrail_config(args.env_file, strict=True if args.strict else None)
            core.get_client(config)
        return cmds[args.command](args)
    except (TestRailSyncError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

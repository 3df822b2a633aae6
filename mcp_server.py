#!/usr/bin/env python3
"""
MCP Server for testrail-sync.
Provides tools for discovering Go tests and syncing them with TestRail.
"""

import os
import logging
import json
import asyncio
from fastmcp import FastMCP

import core

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# FastMCP server
mcp = FastMCP("testrail-sync")


@mcp.tool(
    name="scan_tests",
    description="""List Go tests (including t.Run sub-tests) found in a source tree.
        Args:
            directory: Root directory to scan for *_test.go files
            subtest_depth: Levels of nested t.Run calls to report (default: 1)
    """
)
async def scan_tests(directory: str, subtest_depth: int = 1) -> str:
    try:
        result = core.scan_tests(directory, subtest_depth=subtest_depth)
        return json.dumps(result, indent=2, default=str)
    except Exception as e:
        logger.error(f"Error in scan_tests: {str(e)}")
        return json.dumps({"error": str(e), "files": [], "total_tests": 0})


@mcp.tool(
    name="list_sections",
    description="""List sections of the configured TestRail project suite.
    Args:
        project_id: TestRail project ID (optional, uses TESTRAIL_PROJECT_ID)
        suite_id: TestRail suite ID (optional, uses TESTRAIL_SUITE_ID)
    """
)
async def list_sections(project_id: int = None, suite_id: int = None) -> str:
    try:
        result = core.list_sections(project_id, suite_id)
        return json.dumps(result, indent=2)
    except Exception as e:
        logger.error(f"Error in list_sections: {str(e)}")
        return json.dumps({"error": str(e), "sections": []})


@mcp.tool(
    name="list_cases",
    description="""List cases (id and title) of the configured TestRail project suite.
    Args:
        project_id: TestRail project ID (optional)
        suite_id: TestRail suite ID (optional)
    """
)
async def list_cases(project_id: int = None, suite_id: int = None) -> str:
    try:
        result = core.list_cases(project_id, suite_id)
        return json.dumps(result, indent=2)
    except Exception as e:
        logger.error(f"Error in list_cases: {str(e)}")
        return json.dumps({"error": str(e), "cases": []})


@mcp.tool(
    name="create_run",
    description="""Create a TestRail run containing the cases with the given titles.

    Titles not present in the suite are returned under "missing" and left out of the run.

    Args:
        titles: Comma-separated case titles (e.g., "TestLogin,TestLogin/bad_password")
        env_name: Environment label used in the run name (optional)
        description: Run description (optional)
    """
)
async def create_run(titles: str, env_name: str = "", description: str = "") -> str:
    try:
        title_list = [t.strip() for t in titles.split(',') if t.strip()]
        result = core.create_run(title_list, env_name, description)
        return json.dumps(result, indent=2)
    except Exception as e:
        logger.error(f"Error in create_run: {str(e)}")
        return json.dumps({"error": str(e), "run_id": 0})


@mcp.tool(
    name="report_results",
    description="""Create a run for the results in a JSON file and post them.

    The file maps case titles to result fields, e.g.
    {"TestLogin": {"status_id": 1, "elapsed": "12s"}}.

    Args:
        results_path: Path to the results JSON file
        env_name: Environment label used in the run name (optional)
        description: Run description (optional)
    """
)
async def report_results(results_path: str, env_name: str = "", description: str = "") -> str:
    try:
        result = core.report_results_file(results_path, env_name, description)
        return json.dumps(result, indent=2)
    except Exception as e:
        logger.error(f"Error in report_results: {str(e)}")
        return json.dumps({"error": str(e), "run_id": 0, "posted": 0})


async def main():
    port = int(os.getenv("FASTMCP_PORT", "8979"))
    logger.info(f"Starting testrail-sync MCP server on port {port}")
    await mcp.run_async(transport="sse", host="0.0.0.0", port=port)


if __name__ == "__main__":
    asyncio.run(main())

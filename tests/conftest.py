"""Shared fixtures for testrail_sync tests."""

import dataclasses
import json
from unittest.mock import Mock

import pytest
import requests

from testrail_sync import config as config_module
from testrail_sync import testrail_client


def _make_response(status_code=200, body=b""):
    """Build a stand-in for requests.Response with the attributes the client reads."""
    response = Mock()
    response.status_code = status_code
    response.content = body if isinstance(body, bytes) else json.dumps(body).encode()
    return response


@pytest.fixture
def testrail_config():
    return config_module.TestRailConfig(
        base_url="https://testrail.example.com",
        user="qa-bot",
        password="secret",
    )


@pytest.fixture
def session():
    session = requests.Session()
    session.request = Mock()
    return session


@pytest.fixture
def client(testrail_config, session):
    return testrail_client.TestRailClient(testrail_config, session=session)


@pytest.fixture
def strict_client(testrail_config, session):
    strict_config = dataclasses.replace(testrail_config, strict=True)
    return testrail_client.TestRailClient(strict_config, session=session)


@pytest.fixture
def go_tree(tmp_path):
    """Write Go files below tmp_path; returns a writer taking (relative path, source)."""
    def write(relative: str, source: str):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source)
        return path
    return write


@pytest.fixture
def make_response():
    return _make_response

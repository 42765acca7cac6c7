"""Shared fixtures for the BDIO tests."""
import json

import pytest

from bdio.context import Context
from bdio.model import file_node


@pytest.fixture
def latest_context():
    """A writing context for the latest specification."""
    return Context.for_writing()


@pytest.fixture
def baseline_context():
    """A reading context for documents without a version."""
    return Context.for_reading()


@pytest.fixture
def sample_file():
    """A File node with a path and a byte count."""
    return (
        file_node("http://example.com/files/1")
        .put("path", "./foo/bar")
        .put("byteCount", 10)
        .build()
    )


@pytest.fixture
def entry():
    """Serialize wire nodes as a JSON array entry."""
    def _entry(*nodes):
        return json.dumps(list(nodes))
    return _entry

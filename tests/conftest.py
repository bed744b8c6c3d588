#!/usr/bin/env python3
"""
SQLGrid Test Configuration - PyTest Configuration and Fixtures

Shared fixtures for the engine, host and server tests: sample documents,
editor instances and document stores.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import ConfigManager, SQLGridConfig
from core.ast_adapter import SQLASTAdapter
from core.document import Document
from core.edit_operations import DocumentEditor
from core.errors import ASTParseError
from core.extractor import StatementExtractor
from interface.document_store import InMemoryDocumentStore

USERS_INSERT = "INSERT INTO users (name, age) VALUES ('Al', 30);"

MIXED_DOCUMENT = """-- seed data
INSERT INTO users (name, age) VALUES ('Al', 30), ('Bo', 41);

/* bump */
UPDATE users SET age=31, name='Al B' WHERE id = 1;

SELECT name, age FROM users;

DELETE FROM users WHERE id < 3;
"""


class RejectingAdapter(SQLASTAdapter):
    """Adapter that refuses any fragment containing a marker word"""

    def __init__(self, marker: str = "BROKEN"):
        super().__init__()
        self.marker = marker

    def astify(self, sql):
        if self.marker in sql:
            raise ASTParseError(f"Syntax error near {self.marker}", sql)
        return super().astify(sql)


@pytest.fixture
def adapter():
    return SQLASTAdapter()

@pytest.fixture
def extractor():
    return StatementExtractor()

@pytest.fixture
def editor():
    return DocumentEditor()

@pytest.fixture
def rejecting_extractor():
    return StatementExtractor(adapter=RejectingAdapter())

@pytest.fixture
def users_document():
    return Document(USERS_INSERT, version=1)

@pytest.fixture
def mixed_document():
    return Document(MIXED_DOCUMENT, version=1)

@pytest.fixture
def memory_store():
    return InMemoryDocumentStore(USERS_INSERT, name="users.sql")

@pytest.fixture
def test_config(monkeypatch, tmp_path):
    """Configuration isolated from the developer's environment"""
    for key in list(os.environ):
        if key.startswith("SQLGRID_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("SQLGRID_HOME", str(tmp_path))
    return SQLGridConfig(poll_interval=0)

@pytest.fixture(autouse=True)
def reset_config():
    """Drop the cached global configuration between tests"""
    yield
    ConfigManager.reset()

# Custom markers for test organization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interaction"
    )
    config.addinivalue_line(
        "markers", "api: REST and WebSocket API tests"
    )

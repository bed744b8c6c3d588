#!/usr/bin/env python3
"""
Message Host Tests

The view protocol: message validation, in-order non-reentrant processing,
hash-gated re-rendering and edit error reporting.
"""

import pytest
from pydantic import ValidationError

from core.edit_operations import DocumentEditor
from interface.document_store import InMemoryDocumentStore
from interface.message_host import (
    SQLViewerHost, parse_message, CellEditMessage, EditWhereMessage, ReadyMessage,
)

from conftest import USERS_INSERT


@pytest.fixture
def outbox():
    return []

@pytest.fixture
def host(memory_store, outbox):
    return SQLViewerHost(memory_store, outbox.append)


class TestParseMessage:
    """Inbound message validation."""

    def test_camel_case_fields(self):
        message = parse_message({"type": "cellEdit", "statementIndex": 0, "rowIndex": 1,
                                 "columnIndex": 2, "value": "31"})
        assert isinstance(message, CellEditMessage)
        assert (message.statement_index, message.row_index, message.column_index) == (0, 1, 2)
        assert message.value == "31"

    def test_scalar_values_keep_their_type(self):
        for value in (None, True, 7, 2.5, "text"):
            message = parse_message({"type": "cellEdit", "statementIndex": 0, "rowIndex": 0,
                                     "columnIndex": 0, "value": value})
            assert message.value == value
            assert type(message.value) is type(value)

    def test_message_without_payload(self):
        assert isinstance(parse_message({"type": "ready"}), ReadyMessage)

    def test_where_clause_defaults_to_empty(self):
        message = parse_message({"type": "editWhere", "statementIndex": 0})
        assert isinstance(message, EditWhereMessage)
        assert message.where_clause == ""

    @pytest.mark.parametrize("raw", [
        {"type": "dropTable"},
        {"type": "cellEdit", "statementIndex": 0},
        {"type": "addRow", "statementIndex": "first"},
        {"sql": "SELECT 1"},
        ["ready"],
    ])
    def test_invalid_messages(self, raw):
        with pytest.raises(ValidationError):
            parse_message(raw)


class TestViewProtocol:
    """Render → host messages and their replies."""

    def test_ready_sends_update_data(self, host, outbox):
        host.receive({"type": "ready"})
        assert len(outbox) == 1
        message = outbox[0]
        assert message["type"] == "updateData"
        assert message["fileName"] == "users.sql"
        assert message["data"]["success"] is True
        assert message["data"]["statements"][0]["values"] == [["Al", 30]]

    def test_get_current_sql(self, host, outbox):
        host.receive({"type": "getCurrentSQL"})
        assert outbox == [{"type": "currentSQL", "sql": USERS_INSERT}]

    def test_update_sql_replaces_document(self, host, outbox, memory_store):
        host.receive({"type": "updateSQL", "sql": "SELECT name FROM users;"})
        assert memory_store.read().text == "SELECT name FROM users;"
        assert outbox[-1]["type"] == "updateData"
        assert outbox[-1]["data"]["statements"][0]["type"] == "select"

    def test_cell_edit_writes_and_rerenders(self, host, outbox, memory_store):
        host.receive({"type": "cellEdit", "statementIndex": 0, "rowIndex": 0,
                      "columnIndex": 1, "value": "31"})
        assert memory_store.read().text == "INSERT INTO users (name, age) VALUES ('Al', 31);"
        assert [m["type"] for m in outbox] == ["updateData"]
        assert outbox[0]["data"]["statements"][0]["values"] == [["Al", 31]]
        assert host.stats["edits_applied"] == 1

    def test_each_edit_operation_is_routed(self, host, memory_store):
        host.receive({"type": "addRow", "statementIndex": 0})
        host.receive({"type": "addColumn", "statementIndex": 0})
        host.receive({"type": "editColumnName", "statementIndex": 0, "columnIndex": 2,
                      "newName": "city"})
        host.receive({"type": "deleteRow", "statementIndex": 0, "rowIndex": 1})
        host.receive({"type": "deleteColumn", "statementIndex": 0, "columnIndex": 0})
        assert memory_store.read().text == "INSERT INTO users (age, city) VALUES (30, '');"

    def test_rejected_where_reports_error(self, outbox):
        store = InMemoryDocumentStore("UPDATE users SET age=31 WHERE id = 1;")
        host = SQLViewerHost(store, outbox.append)
        host.receive({"type": "editWhere", "statementIndex": 0, "whereClause": "age >"})

        assert store.read().text == "UPDATE users SET age=31 WHERE id = 1;"
        assert len(outbox) == 1
        error = outbox[0]
        assert error["type"] == "editError"
        assert error["operation"] == "editWhere"
        assert error["statementIndex"] == 0
        assert "Invalid WHERE clause" in error["error"]
        assert host.stats["edits_failed"] == 1

    def test_index_error_reported(self, host, outbox):
        host.receive({"type": "deleteRow", "statementIndex": 3, "rowIndex": 0})
        assert outbox[0]["type"] == "editError"
        assert outbox[0]["statementIndex"] == 3

    def test_invalid_message_ignored(self, host, outbox, memory_store):
        host.receive({"type": "cellEdit", "statementIndex": 0})
        assert outbox == []
        assert host.stats["messages_rejected"] == 1
        assert memory_store.read().text == USERS_INSERT


class TestRenderGating:
    """Document change notifications skip identical text."""

    def test_identical_text_not_rerendered(self, host, outbox):
        assert host.document_changed(USERS_INSERT) is True
        assert host.document_changed(USERS_INSERT) is False
        assert len(outbox) == 1

    def test_own_write_does_not_trigger_second_render(self, host, outbox, memory_store):
        host.receive({"type": "addRow", "statementIndex": 0})
        assert host.document_changed(memory_store.read().text) is False
        assert len(outbox) == 1

    def test_external_change_rerenders(self, host, outbox, memory_store):
        host.receive({"type": "ready"})
        memory_store.replace("SELECT 1;")
        assert host.document_changed() is True
        assert outbox[-1]["data"]["raw"] == "SELECT 1;"

    def test_ready_always_renders(self, host, outbox):
        host.receive({"type": "ready"})
        host.receive({"type": "ready"})
        assert len(outbox) == 2


class TestOrdering:
    """Messages are handled one at a time, in arrival order."""

    def test_message_sent_during_processing_is_queued(self, memory_store):
        log = []

        def post(message):
            log.append(("out", message["type"]))
            if message["type"] == "updateData" and len(log) == 1:
                host.receive({"type": "getCurrentSQL"})
                log.append(("returned", None))

        host = SQLViewerHost(memory_store, post)
        host.receive({"type": "ready"})

        assert log == [("out", "updateData"), ("returned", None), ("out", "currentSQL")]

    def test_edits_apply_in_sequence(self, host, memory_store):
        host.receive({"type": "cellEdit", "statementIndex": 0, "rowIndex": 0,
                      "columnIndex": 1, "value": 31})
        host.receive({"type": "cellEdit", "statementIndex": 0, "rowIndex": 0,
                      "columnIndex": 1, "value": 32})
        assert memory_store.read().text == "INSERT INTO users (name, age) VALUES ('Al', 32);"
        assert memory_store.read().version == 3


class TestConflicts:
    """A concurrent change between read and write is never overwritten."""

    def test_conflicting_edit_reported_and_view_refreshed(self, memory_store, outbox):
        class TypingEditor(DocumentEditor):
            """Simulates a keystroke landing while an edit is in flight"""
            def apply(self, document, operation, **arguments):
                edited = super().apply(document, operation, **arguments)
                memory_store.replace(document.text + "\n-- typed")
                return edited

        host = SQLViewerHost(memory_store, outbox.append, TypingEditor())
        host.receive({"type": "addRow", "statementIndex": 0})

        assert memory_store.read().text == USERS_INSERT + "\n-- typed"
        assert [m["type"] for m in outbox] == ["editError", "updateData"]
        assert outbox[0]["operation"] == "addRow"
        assert outbox[1]["data"]["raw"] == USERS_INSERT + "\n-- typed"

    def test_last_writer_wins_overwrites(self, outbox):
        store = InMemoryDocumentStore(USERS_INSERT, last_writer_wins=True)

        class TypingEditor(DocumentEditor):
            def apply(self, document, operation, **arguments):
                edited = super().apply(document, operation, **arguments)
                store.replace("-- typed")
                return edited

        host = SQLViewerHost(store, outbox.append, TypingEditor())
        host.receive({"type": "addRow", "statementIndex": 0})
        assert store.read().text == "INSERT INTO users (name, age) VALUES ('Al', 30), ('', '');"
        assert [m["type"] for m in outbox] == ["updateData"]

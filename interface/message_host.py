#!/usr/bin/env python3
"""
SQLGrid Message Host

Owns the SQL document on behalf of a table view. The view talks to the host
with JSON-shaped messages; the host answers with updateData / currentSQL (and
editError when an edit is rejected). There is no request/response correlation:
every message is fire-and-forget, but inbound messages are handled strictly in
arrival order and never reentrantly.

Inbound:  updateSQL, ready, getCurrentSQL, cellEdit, addRow, deleteRow,
          addColumn, deleteColumn, editColumnName, editWhere
Outbound: updateData{data, fileName}, currentSQL{sql},
          editError{operation, statementIndex, error}
"""

import logging
from collections import deque
from typing import Annotated, Any, Callable, Deque, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from core.document import content_hash
from core.edit_operations import DocumentEditor
from core.errors import DocumentConflictError, SQLGridError
from core.extractor import StatementExtractor
from core.sql_types import Scalar
from interface.document_store import DocumentStore

logger = logging.getLogger(__name__)

PostMessage = Callable[[Dict[str, Any]], None]


# Pydantic models for render → host messages
class ViewMessage(BaseModel):
    """Base for inbound messages; wire fields are camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class UpdateSQLMessage(ViewMessage):
    type: Literal["updateSQL"]
    sql: str

class ReadyMessage(ViewMessage):
    type: Literal["ready"]

class GetCurrentSQLMessage(ViewMessage):
    type: Literal["getCurrentSQL"]

class CellEditMessage(ViewMessage):
    type: Literal["cellEdit"]
    statement_index: int
    row_index: int
    column_index: int
    value: Scalar = None

class AddRowMessage(ViewMessage):
    type: Literal["addRow"]
    statement_index: int

class DeleteRowMessage(ViewMessage):
    type: Literal["deleteRow"]
    statement_index: int
    row_index: int

class AddColumnMessage(ViewMessage):
    type: Literal["addColumn"]
    statement_index: int

class DeleteColumnMessage(ViewMessage):
    type: Literal["deleteColumn"]
    statement_index: int
    column_index: int

class EditColumnNameMessage(ViewMessage):
    type: Literal["editColumnName"]
    statement_index: int
    column_index: int
    new_name: str

class EditWhereMessage(ViewMessage):
    type: Literal["editWhere"]
    statement_index: int
    where_clause: str = ""


InboundMessage = Annotated[
    Union[
        UpdateSQLMessage, ReadyMessage, GetCurrentSQLMessage, CellEditMessage,
        AddRowMessage, DeleteRowMessage, AddColumnMessage, DeleteColumnMessage,
        EditColumnNameMessage, EditWhereMessage,
    ],
    Field(discriminator="type"),
]

_INBOUND = TypeAdapter(InboundMessage)


def parse_message(raw: Dict[str, Any]) -> ViewMessage:
    """Validate a raw inbound message (raises pydantic.ValidationError)"""
    return _INBOUND.validate_python(raw)


class SQLViewerHost:
    """
    Host side of the table view channel.

    Every edit reads the current Document from the store, applies the
    operation through the DocumentEditor and commits the result against the
    version it started from. A conflicting external change is never silently
    overwritten: the edit is reported and the view is re-rendered from the
    current text.
    """

    def __init__(self, store: DocumentStore, post_message: PostMessage,
                 editor: Optional[DocumentEditor] = None):
        self.store = store
        self.post_message = post_message
        self.editor = editor or DocumentEditor()
        self._inbox: Deque[Dict[str, Any]] = deque()
        self._processing = False
        self._last_hash: Optional[str] = None

        self.stats = {
            'messages_processed': 0,
            'messages_rejected': 0,
            'edits_applied': 0,
            'edits_failed': 0,
            'renders': 0,
        }

    @property
    def extractor(self) -> StatementExtractor:
        return self.editor.extractor

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def receive(self, message: Dict[str, Any]) -> None:
        """Queue a message and drain the inbox unless a drain is already running"""
        self._inbox.append(message)
        if self._processing:
            return

        self._processing = True
        try:
            while self._inbox:
                self._dispatch(self._inbox.popleft())
        finally:
            self._processing = False

    def _dispatch(self, raw: Dict[str, Any]) -> None:
        try:
            message = parse_message(raw)
        except ValidationError as e:
            self.stats['messages_rejected'] += 1
            logger.warning(f"Ignoring invalid message {raw!r}: {e.error_count()} validation error(s)")
            return

        self.stats['messages_processed'] += 1
        logger.debug(f"Processing {message.type} message")

        if isinstance(message, ReadyMessage):
            self.refresh()
        elif isinstance(message, GetCurrentSQLMessage):
            self.post_message({'type': 'currentSQL', 'sql': self.store.read().text})
        elif isinstance(message, UpdateSQLMessage):
            self._replace_text(message.sql)
        else:
            self._apply_edit(message)

    def _replace_text(self, sql: str) -> None:
        base = self.store.read()
        # The view sends the full text it wants on disk; it wins over the file
        committed = self.store.commit(sql, base, force=True)
        self.document_changed(committed.text)

    def _apply_edit(self, message: ViewMessage) -> None:
        operation = message.type
        arguments = message.model_dump(exclude={'type'})
        statement_index = arguments.get('statement_index')
        base = self.store.read()

        try:
            edited = self.editor.apply(base, operation, **arguments)
            self.store.commit(edited.text, base)
        except DocumentConflictError as e:
            self.stats['edits_failed'] += 1
            logger.warning(f"{operation} discarded: {e.message}")
            self._post_error(operation, statement_index, e)
            self.refresh()
            return
        except SQLGridError as e:
            self.stats['edits_failed'] += 1
            logger.info(f"{operation} rejected: {e.message}")
            self._post_error(operation, statement_index, e)
            return

        self.stats['edits_applied'] += 1
        self.document_changed(edited.text)

    def _post_error(self, operation: str, statement_index: Optional[int], error: SQLGridError) -> None:
        self.post_message({
            'type': 'editError',
            'operation': operation,
            'statementIndex': statement_index,
            'error': error.message,
        })

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    def document_changed(self, text: Optional[str] = None) -> bool:
        """
        Notify the host that the document text changed.

        Re-renders only when the text differs from the last rendered version,
        so an edit's own write does not trigger a second parse. Returns True
        if an updateData message was posted.
        """
        if text is None:
            text = self.store.read().text
        digest = content_hash(text)
        if digest == self._last_hash:
            logger.debug("Document unchanged, skipping render")
            return False
        self._render(text, digest)
        return True

    def refresh(self) -> None:
        """Unconditionally re-render the current document"""
        text = self.store.read().text
        self._render(text, content_hash(text))

    def _render(self, text: str, digest: str) -> None:
        model = self.extractor.parse_document(text)
        self._last_hash = digest
        self.stats['renders'] += 1
        self.post_message({
            'type': 'updateData',
            'data': model.to_dict(),
            'fileName': self.store.name,
        })


__all__ = [
    'SQLViewerHost', 'parse_message', 'ViewMessage',
    'UpdateSQLMessage', 'ReadyMessage', 'GetCurrentSQLMessage', 'CellEditMessage',
    'AddRowMessage', 'DeleteRowMessage', 'AddColumnMessage', 'DeleteColumnMessage',
    'EditColumnNameMessage', 'EditWhereMessage',
]

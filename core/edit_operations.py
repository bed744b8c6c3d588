#!/usr/bin/env python3
"""
SQLGrid Edit Operations

Every operation is a complete parse → mutate → serialize cycle over a
versioned Document: the text is re-parsed, the target statement is mutated
in place, the whole statement list is regenerated and a new Document (version
+ 1) is returned. The input Document is never changed, so a failed edit
leaves the caller holding the original text.

Update statements are edited through their assignments: columns[i] mirrors
assignments[i], row i of the table view is assignment i, and its two cells
are the column name (0) and the value (1).

An edit is only returned when the edited statement passes the AST adapter
and the regenerated text re-splits into one fragment per written statement.
Statements with clauses the model cannot carry (ON DUPLICATE KEY UPDATE,
UPDATE ... LIMIT) are refused outright.
"""

import copy
import logging
import re
from typing import Callable, Dict, List, Optional

from core.ast_adapter import SQLASTAdapter
from core.document import Document
from core.errors import (
    ASTParseError, DocumentParseError, EditError, ErrorCode, StatementIndexError,
    UnsupportedEditError, WhereValidationError,
)
from core.extractor import StatementExtractor
from core.regenerator import SQLRegenerator, RegenerationPolicy, STATEMENT_SEPARATOR
from core.splitter import split_statements, strip_comments
from core.sql_types import Scalar, StatementKind
from core.statement_model import StatementModel, Assignment

logger = logging.getLogger(__name__)

# Wire operation name → editor method
OPERATIONS: Dict[str, str] = {
    "cellEdit": "cell_edit",
    "addRow": "add_row",
    "deleteRow": "delete_row",
    "addColumn": "add_column",
    "deleteColumn": "delete_column",
    "editColumnName": "edit_column_name",
    "editWhere": "edit_where",
}

_WHERE_KEYWORD_RE = re.compile(r'^\s*where\s+', re.IGNORECASE)
_TABULAR_KINDS = (StatementKind.INSERT, StatementKind.UPDATE)


def next_column_name(columns: List[str]) -> str:
    """First of column1, column2, ... not already present"""
    index = 1
    while f"column{index}" in columns:
        index += 1
    return f"column{index}"


def _check_index(index: int, length: int, what: str) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < length:
        raise StatementIndexError(f"{what} index {index!r} out of range (0..{length - 1})",
                                  {'index': index, 'length': length})
    return index


class DocumentEditor:
    """Applies table edits to SQL documents"""

    def __init__(self, extractor: Optional[StatementExtractor] = None,
                 regenerator: Optional[SQLRegenerator] = None):
        self.extractor = extractor or StatementExtractor()
        self.regenerator = regenerator or SQLRegenerator()

    @classmethod
    def create(cls, dialect: str = "mysql", regeneration: str = "preserve") -> 'DocumentEditor':
        """Build an editor from setting values"""
        extractor = StatementExtractor(adapter=SQLASTAdapter(dialect=dialect))
        return cls(extractor, SQLRegenerator(RegenerationPolicy(regeneration)))

    def apply(self, document: Document, operation: str, **arguments) -> Document:
        """Apply an operation by its wire name (cellEdit, addRow, ...)"""
        method = OPERATIONS.get(operation)
        if method is None:
            raise UnsupportedEditError(f"Unknown edit operation: {operation}")
        return getattr(self, method)(document, **arguments)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def cell_edit(self, document: Document, statement_index: int, row_index: int,
                  column_index: int, value: Scalar) -> Document:
        def mutate(statement: StatementModel):
            if statement.kind == StatementKind.INSERT:
                row = statement.rows[_check_index(row_index, len(statement.rows), "Row")]
                row[_check_index(column_index, len(statement.columns), "Column")] = value
            else:
                assignment = statement.assignments[
                    _check_index(row_index, len(statement.assignments), "Row")]
                if _check_index(column_index, 2, "Column") == 0:
                    assignment.column = self._column_name(value)
                else:
                    assignment.value = value

        return self._edit(document, statement_index, mutate, _TABULAR_KINDS, "cellEdit")

    def add_row(self, document: Document, statement_index: int) -> Document:
        def mutate(statement: StatementModel):
            if statement.kind == StatementKind.INSERT:
                statement.rows.append([''] * len(statement.columns))
            else:
                if not statement.columns:
                    raise EditError("UPDATE statement has no column to copy for a new row")
                statement.assignments.append(Assignment(statement.columns[0], ''))

        return self._edit(document, statement_index, mutate, _TABULAR_KINDS, "addRow")

    def delete_row(self, document: Document, statement_index: int, row_index: int) -> Document:
        def mutate(statement: StatementModel):
            if statement.kind == StatementKind.INSERT:
                statement.rows.pop(_check_index(row_index, len(statement.rows), "Row"))
            else:
                statement.assignments.pop(_check_index(row_index, len(statement.assignments), "Row"))

        return self._edit(document, statement_index, mutate, _TABULAR_KINDS, "deleteRow")

    def add_column(self, document: Document, statement_index: int) -> Document:
        def mutate(statement: StatementModel):
            name = next_column_name(statement.columns)
            if statement.kind == StatementKind.INSERT:
                statement.columns.append(name)
                for row in statement.rows:
                    row.append('')
            else:
                statement.assignments.append(Assignment(name, ''))

        return self._edit(document, statement_index, mutate, _TABULAR_KINDS, "addColumn")

    def delete_column(self, document: Document, statement_index: int, column_index: int) -> Document:
        def mutate(statement: StatementModel):
            index = _check_index(column_index, len(statement.columns), "Column")
            if statement.kind == StatementKind.INSERT:
                statement.columns.pop(index)
                for row in statement.rows:
                    if index < len(row):
                        row.pop(index)
            else:
                statement.assignments.pop(index)

        return self._edit(document, statement_index, mutate, _TABULAR_KINDS, "deleteColumn")

    def edit_column_name(self, document: Document, statement_index: int, column_index: int,
                         new_name: str) -> Document:
        def mutate(statement: StatementModel):
            index = _check_index(column_index, len(statement.columns), "Column")
            name = self._column_name(new_name)
            if statement.kind == StatementKind.INSERT:
                statement.columns[index] = name
            else:
                statement.assignments[index].column = name

        return self._edit(document, statement_index, mutate, _TABULAR_KINDS, "editColumnName")

    def edit_where(self, document: Document, statement_index: int, where_clause: str) -> Document:
        """
        Replace the WHERE clause of an UPDATE or DELETE.

        The candidate statement is rendered and submitted to the AST adapter
        first; a rejection raises WhereValidationError and nothing is written.
        An empty clause removes the WHERE clause.
        """
        where = strip_comments(where_clause or '')
        where = _WHERE_KEYWORD_RE.sub('', where).strip().rstrip(';').strip()

        def mutate(statement: StatementModel):
            if where:
                self._validate_where(statement, where)
            statement.where_text = where or None

        return self._edit(document, statement_index, mutate,
                          (StatementKind.UPDATE, StatementKind.DELETE), "editWhere")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _edit(self, document: Document, statement_index: int,
              mutate: Callable[[StatementModel], None], kinds, operation: str) -> Document:
        model = self.extractor.parse_document(document.text)
        if not model.success:
            raise DocumentParseError(f"Document could not be parsed: {model.error}")

        statement = model.statements[_check_index(statement_index, len(model.statements), "Statement")]
        if statement.kind not in kinds:
            raise UnsupportedEditError(
                f"{operation} is not supported for {statement.kind.value.upper()} statements",
                {'operation': operation, 'kind': statement.kind.value})

        if statement.unmodeled_clauses:
            raise UnsupportedEditError(
                f"{operation} would drop the {', '.join(statement.unmodeled_clauses).upper()} "
                f"clause(s) of statement {statement_index}",
                {'operation': operation, 'clauses': list(statement.unmodeled_clauses)})

        mutate(statement)
        statement.sync_columns()
        statement.modified = True
        self._validate_statement(statement, operation)

        rendered = self.regenerator.render_all(model.statements)
        text = STATEMENT_SEPARATOR.join(rendered)
        # Every written statement must come back as its own fragment
        fragments = len(split_statements(text))
        if fragments != len(rendered):
            logger.warning(f"{operation} rejected: {len(rendered)} statements re-split into {fragments}")
            raise EditError(f"{operation} would produce text that re-parses as {fragments} "
                            f"statement(s) instead of {len(rendered)}",
                            ErrorCode.VALIDATION_ERROR, {'operation': operation})

        logger.info(f"{operation} applied to statement {statement_index} "
                    f"(document version {document.version} -> {document.version + 1})")
        return document.with_text(text)

    def _validate_where(self, statement: StatementModel, where: str) -> None:
        candidate = copy.deepcopy(statement)
        candidate.where_text = where
        candidate.modified = True
        sql = SQLRegenerator(RegenerationPolicy.PRESERVE).render(candidate)
        if sql is None:
            sql = f"DELETE FROM {statement.table_name or 't'} WHERE {where};"
        try:
            self.extractor.adapter.validate(sql)
        except ASTParseError as e:
            logger.warning(f"Rejected WHERE clause {where!r}: {e.message}")
            raise WhereValidationError(f"Invalid WHERE clause: {e.message}", where) from e

    def _validate_statement(self, statement: StatementModel, operation: str) -> None:
        """Submit the edited statement to the adapter before anything is written"""
        sql = self.regenerator.render(statement)
        if sql is None:
            return
        try:
            self.extractor.adapter.validate(sql)
        except ASTParseError as e:
            logger.warning(f"{operation} produced invalid SQL {sql!r}: {e.message}")
            if operation == "editWhere":
                raise WhereValidationError(f"Invalid WHERE clause: {e.message}",
                                           statement.where_text) from e
            raise EditError(f"{operation} would produce invalid SQL: {e.message}",
                            ErrorCode.VALIDATION_ERROR, {'operation': operation, 'sql': sql}) from e

    @staticmethod
    def _column_name(value) -> str:
        name = '' if value is None else str(value).strip()
        if not name:
            raise EditError("Column name cannot be empty")
        return name

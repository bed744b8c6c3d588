#!/usr/bin/env python3
"""
SQLGrid Statement Extractor

Builds the document model for a full SQL text:

    Raw Text → Splitter → [AST Adapter → Extractor → Value Normalizer
                          → Row Reconciler] per statement → DocumentModel

A statement the adapter rejects is dropped, except for an INSERT rejected
with a column/value count mismatch, which is rebuilt by the fallback lexical
parser instead.
"""

import logging
from typing import Dict, Any, List, Optional

from core.ast_adapter import SQLASTAdapter
from core.ast_shapes import (
    read_values, read_table_name, read_column_name, read_projection_name,
)
from core.errors import ASTParseError
from core.fallback_parser import FallbackInsertParser
from core.reconciler import reconcile_rows
from core.splitter import split_statements, find_where_clause
from core.sql_types import StatementKind
from core.statement_model import StatementModel, DocumentModel, Assignment
from core.value_normalizer import normalize

logger = logging.getLogger(__name__)


class StatementExtractor:
    """
    Turns SQL documents into statement models.

    Example:
        >>> extractor = StatementExtractor()
        >>> doc = extractor.parse_document("INSERT INTO users (name, age) VALUES ('Al', 30);")
        >>> doc.statements[0].rows
        [['Al', 30]]
    """

    def __init__(self, adapter: Optional[SQLASTAdapter] = None,
                 fallback: Optional[FallbackInsertParser] = None):
        self.adapter = adapter or SQLASTAdapter()
        self.fallback = fallback or FallbackInsertParser()

    def parse_document(self, text: str) -> DocumentModel:
        """Parse a whole document; never raises"""
        try:
            fragments = split_statements(text)
            statements: List[StatementModel] = []
            skipped = []
            for index, fragment in enumerate(fragments):
                try:
                    model = self.parse_statement(fragment)
                except ASTParseError as e:
                    logger.warning(f"Dropping statement {index}: {e.message}")
                    skipped.append((index, fragment, e.message))
                    continue
                statements.append(model)
        except Exception as e:
            logger.exception("SQL document parsing failed")
            return DocumentModel(statements=[], raw=text, success=False, error=str(e))

        if fragments and not statements:
            return DocumentModel(statements=[], raw=text, success=False,
                                 error=skipped[0][2], skipped=skipped)
        return DocumentModel(statements=statements, raw=text, skipped=skipped)

    def parse_statement(self, statement: str) -> StatementModel:
        """
        Parse one fragment.

        Raises:
            ASTParseError: if the adapter rejects the fragment and no
                fallback applies
        """
        try:
            ast = self.adapter.astify(statement)
        except ASTParseError as e:
            if e.is_count_mismatch and statement.lstrip()[:6].upper() == 'INSERT':
                model = self.fallback.parse(statement, e.message)
                if model is not None:
                    return model
            raise

        model = self.from_ast(ast)
        model.source_text = statement
        model.unmodeled_clauses = list(ast.get("clauses") or [])
        if model.kind in (StatementKind.UPDATE, StatementKind.DELETE) and ast.get("where"):
            model.where_text = find_where_clause(statement) or ast["where"].get("raw")
        return model

    def from_ast(self, ast: Dict[str, Any]) -> StatementModel:
        """Dispatch on the declared statement kind"""
        kind = StatementKind.from_ast_type(ast.get("type"))
        if kind == StatementKind.SELECT:
            return self._select(ast)
        if kind == StatementKind.INSERT:
            return self._insert(ast)
        if kind == StatementKind.UPDATE:
            return self._update(ast)
        if kind == StatementKind.DELETE:
            return self._delete(ast)
        return StatementModel(kind=StatementKind.UNKNOWN,
                              unknown_type=str(ast.get("type") or "unknown"))

    def _select(self, ast: Dict[str, Any]) -> StatementModel:
        columns = [read_projection_name(col) for col in ast.get("columns") or []]
        return StatementModel(kind=StatementKind.SELECT,
                              table_name=read_table_name(ast.get("from")),
                              columns=columns)

    def _insert(self, ast: Dict[str, Any]) -> StatementModel:
        columns = []
        for raw in ast.get("columns") or []:
            name = read_column_name(raw)
            if name is not None:
                columns.append(name)

        rows = []
        for group in read_values(ast.get("values")):
            row = [normalize(item) for item in group.items]
            if row:
                rows.append(row)

        return StatementModel(kind=StatementKind.INSERT,
                              table_name=read_table_name(ast.get("table")),
                              columns=columns,
                              rows=reconcile_rows(columns, rows))

    def _update(self, ast: Dict[str, Any]) -> StatementModel:
        assignments = []
        for item in ast.get("set") or []:
            if isinstance(item, dict) and item.get("column"):
                assignments.append(Assignment(str(item["column"]), normalize(item.get("value"))))

        model = StatementModel(kind=StatementKind.UPDATE,
                               table_name=read_table_name(ast.get("table")),
                               assignments=assignments)
        model.sync_columns()
        return model

    def _delete(self, ast: Dict[str, Any]) -> StatementModel:
        return StatementModel(kind=StatementKind.DELETE,
                              table_name=read_table_name(ast.get("from")))


def parse_sql(text: str, adapter: Optional[SQLASTAdapter] = None) -> DocumentModel:
    """Parse a document with a fresh extractor"""
    return StatementExtractor(adapter=adapter).parse_document(text)

#!/usr/bin/env python3
"""
SQLGrid SQL Regenerator

Serializes statement models back into SQL text. Two policies exist:

- PRESERVE (default): every statement kind round-trips. Statements that were
  not edited are written back exactly as they were read (comments aside);
  edited Update and Delete statements keep their WHERE clause.
- CANONICAL: only Insert, Update and Select are written, in their canonical
  form without WHERE clauses; Delete and Unknown statements are dropped.

Column names that are not plain words are written backtick-quoted.
"""

import logging
import math
import re
from enum import Enum
from typing import List, Optional

from core.sql_types import Scalar, StatementKind, is_numeric_text
from core.statement_model import StatementModel

logger = logging.getLogger(__name__)

STATEMENT_SEPARATOR = "\n\n"

_PLAIN_IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_$]*$')


class RegenerationPolicy(Enum):
    PRESERVE = "preserve"
    CANONICAL = "canonical"


def format_value(value: Scalar) -> str:
    """
    Render a scalar as a SQL literal.

    Strings are re-classified: text already wrapped in single quotes passes
    through, double-quoted text is re-quoted with single quotes, null/true/false
    (any case) become keywords, numeric text stays unquoted and everything else
    is single-quoted with embedded quotes doubled.
    """
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return 'NULL'
        return str(value)

    text = str(value)
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text
    if len(text) >= 2 and text[0] == text[-1] == '"':
        inner = text[1:-1].replace('""', '"')
        return _quote(inner)

    stripped = text.strip()
    lowered = stripped.lower()
    if lowered == 'null':
        return 'NULL'
    if lowered in ('true', 'false'):
        return lowered.upper()
    if is_numeric_text(stripped):
        return stripped
    return _quote(text)


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def quote_identifier(name: str) -> str:
    """Backtick-quote a column name unless it is a plain word or already quoted"""
    if _PLAIN_IDENTIFIER_RE.match(name):
        return name
    if len(name) >= 2 and name[0] == name[-1] == '`':
        return name
    return '`' + name.replace('`', '``') + '`'


class SQLRegenerator:
    """Turns an ordered list of statement models into document text"""

    def __init__(self, policy: RegenerationPolicy = RegenerationPolicy.PRESERVE):
        self.policy = policy

    def regenerate(self, statements: List[StatementModel]) -> str:
        return STATEMENT_SEPARATOR.join(self.render_all(statements))

    def render_all(self, statements: List[StatementModel]) -> List[str]:
        """Render every statement that can be written, in document order"""
        rendered = []
        for index, statement in enumerate(statements):
            sql = self.render(statement)
            if sql:
                rendered.append(sql)
            else:
                logger.debug(f"Statement {index} ({statement.kind.value}) not rendered")
        return rendered

    def render(self, statement: StatementModel) -> Optional[str]:
        """Render one statement, or None when it cannot or must not be written"""
        verbatim = self._verbatim(statement)
        if verbatim:
            return verbatim
        if statement.kind == StatementKind.INSERT:
            return self._insert(statement)
        if statement.kind == StatementKind.UPDATE:
            return self._update(statement)
        if statement.kind == StatementKind.SELECT:
            return self._select(statement)
        if statement.kind == StatementKind.DELETE:
            return self._delete(statement)
        return None

    @property
    def preserving(self) -> bool:
        return self.policy == RegenerationPolicy.PRESERVE

    def _insert(self, statement: StatementModel) -> Optional[str]:
        if not statement.table_name or not statement.rows:
            return None
        rows = ", ".join(
            "(" + ", ".join(format_value(v) for v in row) + ")" for row in statement.rows
        )
        target = statement.table_name
        if statement.columns:
            target += f" ({', '.join(quote_identifier(c) for c in statement.columns)})"
        return f"INSERT INTO {target} VALUES {rows};"

    def _update(self, statement: StatementModel) -> Optional[str]:
        if not statement.table_name or not statement.assignments:
            return None
        sets = ", ".join(f"{quote_identifier(a.column)}={format_value(a.value)}"
                         for a in statement.assignments)
        return f"UPDATE {statement.table_name} SET {sets}{self._where(statement)};"

    def _select(self, statement: StatementModel) -> Optional[str]:
        columns = ", ".join(statement.columns) or "*"
        if not statement.table_name:
            return f"SELECT {columns};"
        return f"SELECT {columns} FROM {statement.table_name}{self._where(statement)};"

    def _delete(self, statement: StatementModel) -> Optional[str]:
        if not self.preserving or not statement.table_name:
            return None
        return f"DELETE FROM {statement.table_name}{self._where(statement)};"

    def _verbatim(self, statement: StatementModel) -> Optional[str]:
        if self.preserving and statement.source_text and not statement.modified:
            return f"{statement.source_text};"
        return None

    def _where(self, statement: StatementModel) -> str:
        if self.preserving and statement.where_text:
            return f" WHERE {statement.where_text}"
        return ""


def regenerate(statements: List[StatementModel],
               policy: RegenerationPolicy = RegenerationPolicy.PRESERVE) -> str:
    return SQLRegenerator(policy).regenerate(statements)

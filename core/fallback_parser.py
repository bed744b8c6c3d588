#!/usr/bin/env python3
"""
SQLGrid Fallback Lexical Parser

Recovery path for INSERT statements the AST adapter rejects because the
column list and the VALUES tuples disagree in length. The statement is
re-read directly from its text: a pattern picks out the table, the column
list and every parenthesized row, and a quote-aware scanner splits each row
into fields. Rows then go through the same reconciliation as the primary path.

The scanner is a small finite-state machine:

    NORMAL ──'──▶ IN_SINGLE_QUOTE ──'──▶ NORMAL      ('' stays in string)
    NORMAL ──"──▶ IN_DOUBLE_QUOTE ──"──▶ NORMAL      ("" stays in string)
    NORMAL ──,──▶ field boundary (outside nested parentheses)
"""

import logging
import re
from enum import Enum, auto
from typing import List, Optional

from core.reconciler import reconcile_rows
from core.sql_types import Scalar, StatementKind, is_numeric_text, parse_number
from core.statement_model import StatementModel

logger = logging.getLogger(__name__)

_INSERT_RE = re.compile(r"""
    INSERT \s+ INTO \s+
    (?P<table> [`"\[]? [\w.$]+ [`"\]]? ) \s*
    \( (?P<columns> [^)]+ ) \) \s*
    VALUES \s* (?P<tail> .+ )
""", re.IGNORECASE | re.DOTALL | re.VERBOSE)

# One row group; literals may hold parentheses, calls may nest one level.
_ROW_GROUP_RE = re.compile(r"""
    \(
    (?P<inner>
        (?: ' (?: [^'] | '' )* '
          | " (?: [^"] | "" )* "
          | \( [^'"()]* \)
          | [^'"()]
        )*
    )
    \)
""", re.VERBOSE)

_NAME_QUOTES_RE = re.compile(r'[\'"`]')


class ScanState(Enum):
    """States of the row value scanner"""
    NORMAL = auto()
    IN_SINGLE_QUOTE = auto()
    IN_DOUBLE_QUOTE = auto()

_OPENING_QUOTES = {"'": ScanState.IN_SINGLE_QUOTE, '"': ScanState.IN_DOUBLE_QUOTE}
_CLOSING_QUOTES = {state: quote for quote, state in _OPENING_QUOTES.items()}


class ValueScanner:
    """Quote-aware splitter for the inside of one VALUES row"""

    def __init__(self):
        self.text = ""
        self.position = 0
        self.state = ScanState.NORMAL
        self.depth = 0

    def split(self, text: str) -> List[str]:
        """
        Split a row body into raw field texts.

        A comma ends a field only in the NORMAL state and outside nested
        parentheses. Inside a string a doubled quote of the active kind is an
        escaped quote; a single one closes the string. A trailing blank field
        is dropped.
        """
        self.text = text
        self.position = 0
        self.state = ScanState.NORMAL
        self.depth = 0

        fields: List[str] = []
        current: List[str] = []
        while self.position < len(self.text):
            char = self._current_char()
            if self.state == ScanState.NORMAL:
                if char in _OPENING_QUOTES:
                    self.state = _OPENING_QUOTES[char]
                    current.append(char)
                elif char == ',' and self.depth == 0:
                    fields.append(''.join(current))
                    current = []
                else:
                    if char == '(':
                        self.depth += 1
                    elif char == ')' and self.depth:
                        self.depth -= 1
                    current.append(char)
            else:
                quote = _CLOSING_QUOTES[self.state]
                current.append(char)
                if char == quote:
                    if self._peek_char() == quote:
                        current.append(quote)
                        self._advance()
                    else:
                        self.state = ScanState.NORMAL
            self._advance()

        tail = ''.join(current)
        if tail.strip():
            fields.append(tail)
        return fields

    def _current_char(self) -> Optional[str]:
        if self.position >= len(self.text):
            return None
        return self.text[self.position]

    def _peek_char(self, offset: int = 1) -> Optional[str]:
        peek_pos = self.position + offset
        if peek_pos >= len(self.text):
            return None
        return self.text[peek_pos]

    def _advance(self, count: int = 1) -> None:
        self.position = min(self.position + count, len(self.text))


def classify_field(text: str) -> Scalar:
    """
    Turn one raw field into a scalar.

    Precedence: quoted literal (unquoted, doubled quotes collapsed), then
    true/false, then number, then NULL; anything else stays text.
    """
    text = text.strip()
    if not text:
        return ''
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        quote = text[0]
        return text[1:-1].replace(quote * 2, quote)
    lowered = text.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    if is_numeric_text(text):
        return parse_number(text)
    if lowered == 'null':
        return None
    return text


class FallbackInsertParser:
    """Re-derives an INSERT model straight from statement text"""

    def __init__(self):
        self.scanner = ValueScanner()

    def parse(self, statement: str, reason: str = "") -> Optional[StatementModel]:
        """Return an INSERT model, or None when the text is not a recognizable INSERT"""
        match = _INSERT_RE.match(statement.strip())
        if not match:
            logger.debug("Fallback parser: statement does not look like INSERT ... VALUES")
            return None

        table_name = match.group('table').strip('`"[]')
        columns = [_NAME_QUOTES_RE.sub('', col).strip() for col in match.group('columns').split(',')]
        rows = self.extract_rows(match.group('tail'))

        logger.info(f"Recovered INSERT into {table_name} via lexical fallback "
                    f"({len(columns)} columns, {len(rows)} rows)")
        return StatementModel(
            kind=StatementKind.INSERT,
            table_name=table_name,
            columns=columns,
            rows=reconcile_rows(columns, rows),
            raw_fallback_info=f"lexical fallback: {reason}" if reason else "lexical fallback",
            source_text=statement,
        )

    def extract_rows(self, tail: str) -> List[List[Scalar]]:
        """Every parenthesized group after VALUES becomes one row"""
        rows = []
        for group in _ROW_GROUP_RE.finditer(tail):
            inner = group.group('inner')
            if not inner.strip():
                continue
            rows.append([classify_field(field) for field in self.scanner.split(inner)])
        return rows

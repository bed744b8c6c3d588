#!/usr/bin/env python3
"""
SQLGrid Statement Splitter

Divides raw document text into statement fragments. Comments are removed and
statements are split on top-level semicolons. String literals, quoted
identifiers and backtick names are recognized first, so comment markers and
semicolons inside them survive untouched.

Raw Text → Splitter → AST Adapter → Extractor → Statement Models
"""

import logging
import re
from typing import List, Optional, Iterator, Tuple

logger = logging.getLogger(__name__)

# Order matters: quoted text wins over comment markers and terminators.
_TOKEN_RE = re.compile(r"""
      (?P<string>
          ' (?: [^'] | '' )* '?
        | " (?: [^"] | "" )* "?
        | ` (?: [^`] | `` )* `?
      )
    | (?P<block_comment> /\* .*? \*/ )
    | (?P<line_comment> -- [^\n]* )
    | (?P<semicolon> ; )
    | (?P<text> [^'"`/;-]+ | [/-] )
""", re.VERBOSE | re.DOTALL)

_BLANK_LINE_RE = re.compile(r'\n[ \t\r]*(?=\n)')
_WHERE_SCAN_RE = re.compile(r'\(|\)|\bwhere\b', re.IGNORECASE)


def tokenize(text: str) -> Iterator[Tuple[str, str, int]]:
    """Yield (kind, text, offset) for every lexical chunk of the document"""
    for match in _TOKEN_RE.finditer(text):
        yield match.lastgroup, match.group(), match.start()


def strip_comments(text: str) -> str:
    """Remove block and line comments outside quoted text"""
    return ''.join(chunk for kind, chunk, _ in tokenize(text)
                   if kind not in ('block_comment', 'line_comment'))


def split_statements(text: str) -> List[str]:
    """
    Split a document into trimmed, non-empty statement fragments.

    Blank lines left behind by comment removal are dropped; quoted text is
    never rewritten. Fragment order is the statement index used by edits.
    """
    fragments: List[str] = []
    current: List[str] = []
    pending: List[str] = []

    def flush_pending():
        if pending:
            current.append(_BLANK_LINE_RE.sub('', ''.join(pending)))
            pending.clear()

    for kind, chunk, _ in tokenize(text):
        if kind in ('block_comment', 'line_comment'):
            continue
        if kind == 'string':
            flush_pending()
            current.append(chunk)
        elif kind == 'semicolon':
            flush_pending()
            fragments.append(''.join(current))
            current = []
        else:
            pending.append(chunk)
    flush_pending()
    fragments.append(''.join(current))

    statements = [f.strip() for f in fragments if f.strip()]
    logger.debug(f"Split document into {len(statements)} statement(s)")
    return statements


def find_where_clause(statement: str) -> Optional[str]:
    """
    Return the opaque text following the top-level WHERE keyword.

    WHERE inside literals, quoted names or parentheses (subqueries) is
    ignored. Returns None when the statement has no WHERE clause.
    """
    depth = 0
    for kind, chunk, offset in tokenize(statement):
        if kind != 'text':
            continue
        for match in _WHERE_SCAN_RE.finditer(chunk):
            token = match.group()
            if token == '(':
                depth += 1
            elif token == ')':
                depth = max(depth - 1, 0)
            elif depth == 0:
                where = statement[offset + match.end():].strip()
                return where.rstrip(';').strip() or None
    return None

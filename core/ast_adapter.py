#!/usr/bin/env python3
"""
SQLGrid AST Adapter

Turns one statement's text into a loosely-typed syntax tree (plain dicts and
lists) or raises ASTParseError. This is the only module that imports sqlglot;
everything downstream consumes the dict tree through core.ast_shapes.

Tree shapes produced here:
- insert: {type, table: [{db, table, as}], columns: [str], values: {type: "values",
  values: [{type: "expr_list", value: [literal, ...]}]}, clauses?}
- update: {type, table: [...], set: [{column, value: literal}], where?, clauses?}
- delete: {type, from: [...], where?}
- select: {type, columns: [{expr, as}], from: [...]}
- anything else: {type: <statement keyword>}

Literal nodes are tagged single_quote_string, number, bool or null; any other
value expression becomes {type: "expr", raw: <sql text>}.
"""

import logging
from typing import Dict, List, Any, Optional

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from core.errors import ASTParseError
from core.sql_types import parse_number

logger = logging.getLogger(__name__)

COUNT_MISMATCH_MESSAGE = "column count doesn't match value count"

# Statement clauses the table model has no place for; present ones are listed
# under "clauses" so edits can refuse to drop them
_UNMODELED_CLAUSES = {
    "insert": ("conflict", "returning", "ignore", "alternative", "partition"),
    "update": ("from", "from_", "order", "limit", "returning"),
}


class SQLASTAdapter:
    """
    sqlglot-backed statement parser.

    sqlglot happily accepts an INSERT whose VALUES tuples disagree with its
    column list; the adapter rejects those itself with the count mismatch
    message so that callers can route them to the lexical fallback.
    """

    def __init__(self, dialect: str = "mysql"):
        self.dialect = dialect

    def astify(self, sql: str) -> Dict[str, Any]:
        """Parse one statement into a dict tree"""
        text = sql.strip().rstrip(';').strip()
        try:
            nodes = [node for node in sqlglot.parse(text, read=self.dialect) if node is not None]
        except SqlglotError as e:
            raise ASTParseError(str(e), sql) from e
        if not nodes:
            raise ASTParseError("No statement found", sql)
        if len(nodes) > 1:
            raise ASTParseError(f"Expected a single statement, found {len(nodes)}", sql)
        return self._statement(nodes[0], sql)

    def validate(self, sql: str) -> None:
        """Raise ASTParseError if sql is not an acceptable statement"""
        self.astify(sql)

    def _statement(self, node: exp.Expression, sql: str) -> Dict[str, Any]:
        if isinstance(node, exp.Insert):
            return self._insert(node, sql)
        if isinstance(node, exp.Update):
            return self._update(node)
        if isinstance(node, exp.Delete):
            return self._delete(node)
        if isinstance(node, exp.Select):
            return self._select(node)
        if isinstance(node, exp.Command):
            return {"type": str(node.this).lower()}
        return {"type": node.key}

    def _insert(self, node: exp.Insert, sql: str) -> Dict[str, Any]:
        target = node.this
        columns: List[str] = []
        if isinstance(target, exp.Schema):
            columns = [col.name for col in target.expressions]
            target = target.this

        ast: Dict[str, Any] = {
            "type": "insert",
            "table": [self._table(target)],
            "columns": columns or None,
            "values": None,
        }

        source = node.expression
        if isinstance(source, exp.Values):
            groups = []
            for row_number, row in enumerate(source.expressions, start=1):
                items = row.expressions if isinstance(row, exp.Tuple) else [row]
                if columns and len(items) != len(columns):
                    raise ASTParseError(f"{COUNT_MISMATCH_MESSAGE} at row {row_number}", sql)
                groups.append({"type": "expr_list", "value": [self._literal(item) for item in items]})
            ast["values"] = {"type": "values", "values": groups}
        self._attach_clauses(node, ast)
        return ast

    def _update(self, node: exp.Update) -> Dict[str, Any]:
        items = []
        for entry in node.expressions:
            if not isinstance(entry, exp.EQ):
                continue
            target = entry.this
            column = target.name if isinstance(target, exp.Column) else target.sql(dialect=self.dialect)
            items.append({"column": column, "value": self._literal(entry.expression)})

        ast = {"type": "update", "table": [self._table(node.this)], "set": items}
        self._attach_where(node, ast)
        self._attach_clauses(node, ast)
        return ast

    def _delete(self, node: exp.Delete) -> Dict[str, Any]:
        ast = {"type": "delete", "from": [self._table(node.this)]}
        self._attach_where(node, ast)
        return ast

    def _select(self, node: exp.Select) -> Dict[str, Any]:
        columns = []
        for projection in node.expressions:
            alias = None
            inner = projection
            if isinstance(projection, exp.Alias):
                alias = projection.alias
                inner = projection.this
            columns.append({"expr": self._projection(inner), "as": alias})

        # newer sqlglot releases store the FROM clause under "from_"
        from_clause = node.args.get("from") or node.args.get("from_")
        tables = []
        if from_clause is not None and isinstance(from_clause.this, exp.Table):
            tables.append(self._table(from_clause.this))

        ast = {"type": "select", "columns": columns, "from": tables}
        self._attach_where(node, ast)
        return ast

    def _projection(self, node: exp.Expression) -> Dict[str, Any]:
        if isinstance(node, exp.Column):
            return {"type": "column_ref", "table": node.table or None, "column": node.name}
        if isinstance(node, exp.Star):
            return {"type": "star"}
        return {"type": "expr", "raw": node.sql(dialect=self.dialect)}

    def _table(self, node: Optional[exp.Expression]) -> Dict[str, Any]:
        if isinstance(node, exp.Table):
            return {"db": node.db or None, "table": node.name, "as": node.alias or None}
        if node is None:
            return {}
        return {"table": node.sql(dialect=self.dialect)}

    def _attach_where(self, node: exp.Expression, ast: Dict[str, Any]) -> None:
        where = node.args.get("where")
        if where is not None:
            ast["where"] = {"type": "expr", "raw": where.this.sql(dialect=self.dialect)}

    def _attach_clauses(self, node: exp.Expression, ast: Dict[str, Any]) -> None:
        clauses = [key.rstrip('_') for key in _UNMODELED_CLAUSES[ast["type"]] if node.args.get(key)]
        if clauses:
            ast["clauses"] = clauses

    def _literal(self, node: exp.Expression) -> Dict[str, Any]:
        if isinstance(node, exp.Null):
            return {"type": "null", "value": None}
        if isinstance(node, exp.Boolean):
            return {"type": "bool", "value": node.this}
        if isinstance(node, exp.Literal):
            if node.is_string:
                return {"type": "single_quote_string", "value": node.this}
            return self._number(node.this, node)
        if isinstance(node, exp.Neg) and isinstance(node.this, exp.Literal) and not node.this.is_string:
            return self._number(f"-{node.this.this}", node)
        return {"type": "expr", "raw": node.sql(dialect=self.dialect)}

    def _number(self, text: str, node: exp.Expression) -> Dict[str, Any]:
        try:
            return {"type": "number", "value": parse_number(text)}
        except ValueError:
            return {"type": "expr", "raw": node.sql(dialect=self.dialect)}

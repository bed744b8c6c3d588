#!/usr/bin/env python3
"""
SQLGrid AST Shapes

Tagged variants for the fragments of the adapter's dict tree that the
extractor has to understand. The tree is shape-varying: a table may be a bare
string, an object or a list of objects, and a VALUES row may arrive in one of
four wrappers. Everything is normalized here so the extractor never inspects
raw dicts itself.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

# =============================================================================
# Literal nodes
# =============================================================================

@dataclass(frozen=True)
class NullLiteral:
    pass

@dataclass(frozen=True)
class BoolLiteral:
    value: bool

@dataclass(frozen=True)
class StringLiteral:
    value: str

@dataclass(frozen=True)
class NumberLiteral:
    value: Any

@dataclass(frozen=True)
class GenericValue:
    """Node carrying a value field the other variants do not classify"""
    value: Any

@dataclass(frozen=True)
class OpaqueNode:
    """Anything else; only its text survives"""
    text: str

LiteralNode = Union[NullLiteral, BoolLiteral, StringLiteral, NumberLiteral, GenericValue, OpaqueNode]

_TRUE_VALUES = (True, "true", "TRUE", 1)
_STRING_TAGS = ("single_quote_string", "double_quote_string")


def read_literal(raw: Any) -> LiteralNode:
    """Classify one literal fragment of the tree"""
    if raw is None:
        return NullLiteral()
    if isinstance(raw, bool):
        return BoolLiteral(raw)
    if isinstance(raw, (int, float)):
        return NumberLiteral(raw)
    if isinstance(raw, str):
        return StringLiteral(raw)
    if not isinstance(raw, dict):
        return OpaqueNode(str(raw))

    tag = raw.get("type")
    if tag == "null":
        return NullLiteral()
    if tag == "bool":
        return BoolLiteral(raw.get("value") in _TRUE_VALUES)
    if tag in _STRING_TAGS:
        return StringLiteral(raw.get("value") or "")
    if tag == "number":
        return NumberLiteral(raw.get("value"))
    if "value" in raw:
        return GenericValue(raw["value"])
    return OpaqueNode(str(raw.get("raw", raw)))

# =============================================================================
# VALUES row groups
# =============================================================================

class RowGroupShape(Enum):
    VALUE_ARRAY = "value"
    EXPR_ARRAY = "expr"
    BARE_ARRAY = "array"
    EXPR_LIST = "expr_list"

@dataclass(frozen=True)
class RowGroup:
    shape: RowGroupShape
    items: Tuple[Any, ...]


def read_row_group(raw: Any) -> Optional[RowGroup]:
    """Recognize one row of a VALUES clause, or None for an unknown shape"""
    if isinstance(raw, list):
        return RowGroup(RowGroupShape.BARE_ARRAY, tuple(raw))
    if not isinstance(raw, dict):
        return None
    if isinstance(raw.get("value"), list):
        shape = RowGroupShape.EXPR_LIST if raw.get("type") == "expr_list" else RowGroupShape.VALUE_ARRAY
        return RowGroup(shape, tuple(raw["value"]))
    if isinstance(raw.get("expr"), list):
        return RowGroup(RowGroupShape.EXPR_ARRAY, tuple(raw["expr"]))
    return None


def read_values(raw: Any) -> List[RowGroup]:
    """Normalize a VALUES structure (grouped object or array of groups) into row groups"""
    if raw is None:
        return []
    if isinstance(raw, list):
        candidates = raw
    elif isinstance(raw, dict):
        if raw.get("type") == "values" and isinstance(raw.get("values"), list):
            candidates = raw["values"]
        elif isinstance(raw.get("value"), list):
            candidates = [raw]
        else:
            return []
    else:
        return []

    groups = []
    for candidate in candidates:
        group = read_row_group(candidate)
        if group is not None:
            groups.append(group)
    return groups

# =============================================================================
# Names
# =============================================================================

def read_table_name(raw: Any) -> Optional[str]:
    """Table name from a string, an object or a list of objects (first entry wins)"""
    if isinstance(raw, list):
        return read_table_name(raw[0]) if raw else None
    if isinstance(raw, str):
        return raw or None
    if isinstance(raw, dict):
        table = raw.get("table")
        if not isinstance(table, str) or not table:
            return None
        db = raw.get("db")
        return f"{db}.{table}" if db else table
    return None


def read_column_name(raw: Any) -> Optional[str]:
    """Declared column: bare string or object with a column field"""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict) and raw.get("column"):
        return str(raw["column"])
    return None


def read_projection_name(raw: Any) -> str:
    """Projected column: column reference, then alias, then '*'"""
    if isinstance(raw, dict):
        expr = raw.get("expr")
        if isinstance(expr, dict) and expr.get("column"):
            return str(expr["column"])
        if raw.get("as"):
            return str(raw["as"])
    return "*"

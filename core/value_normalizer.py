"""Map literal nodes of the AST onto the four canonical scalar kinds."""

from typing import Any

from core.ast_shapes import (
    read_literal, LiteralNode, NullLiteral, BoolLiteral, StringLiteral,
    NumberLiteral, GenericValue, OpaqueNode,
)
from core.sql_types import Scalar, is_numeric_text, parse_number


def normalize_literal(node: LiteralNode) -> Scalar:
    """Convert a classified literal node to a scalar; never raises"""
    if isinstance(node, NullLiteral):
        return None
    if isinstance(node, BoolLiteral):
        return node.value
    if isinstance(node, StringLiteral):
        return node.value
    if isinstance(node, NumberLiteral):
        return _as_number(node.value)
    if isinstance(node, GenericValue):
        value = node.value
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        return str(value)
    if isinstance(node, OpaqueNode):
        return node.text
    return str(node)


def normalize(raw: Any) -> Scalar:
    """Convert one raw literal fragment of the tree to a scalar"""
    return normalize_literal(read_literal(raw))


def _as_number(value: Any) -> Scalar:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and is_numeric_text(value):
        return parse_number(value)
    # numeric tag without a usable number; keep the text
    return None if value is None else str(value)

import math
import re
from enum import Enum
from typing import Union

# Scalar values travel as plain Python values: None, bool, int/float, str
Scalar = Union[None, bool, int, float, str]

_NUMBER_RE = re.compile(r'^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$')
_INTEGER_RE = re.compile(r'^[+-]?\d+$')

class StatementKind(Enum):
    """Statement kinds a model can carry"""
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    UNKNOWN = "unknown"

    @classmethod
    def from_ast_type(cls, ast_type) -> 'StatementKind':
        try:
            return cls(str(ast_type).lower())
        except ValueError:
            return cls.UNKNOWN

class ScalarKind(Enum):
    """Canonical scalar kinds"""
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"

def scalar_kind(value: Scalar) -> ScalarKind:
    """Classify a scalar; bool is checked before number since it subclasses int."""
    if value is None:
        return ScalarKind.NULL
    if isinstance(value, bool):
        return ScalarKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ScalarKind.NUMBER
    return ScalarKind.STRING

def is_numeric_text(text: str) -> bool:
    """True when text is a plain SQL numeric literal (surrounding whitespace ignored)"""
    if not isinstance(text, str):
        return False
    return bool(_NUMBER_RE.match(text.strip()))

class ExactNumber(float):
    """A float that keeps the literal text it was read from (1.50 stays 1.50)"""

    def __new__(cls, text: str):
        number = super().__new__(cls, text)
        number.text = str(text)
        return number

    def __getnewargs__(self):
        return (self.text,)

    def __str__(self) -> str:
        return self.text

def parse_number(text: str) -> Union[int, float]:
    """int for integer text, float otherwise; ExactNumber when float() would reformat it"""
    text = text.strip()
    if _INTEGER_RE.match(text):
        return int(text)
    number = float(text)
    if str(number) != text and math.isfinite(number):
        return ExactNumber(text)
    return number

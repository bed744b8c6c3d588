#!/usr/bin/env python3
"""
SQLGrid Error Hierarchy
Canonical exception classes for the extraction/regeneration engine.
"""

from enum import Enum

class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    DOCUMENT_ERROR = "DOCUMENT_ERROR"
    EDIT_ERROR = "EDIT_ERROR"
    INDEX_ERROR = "INDEX_ERROR"
    UNSUPPORTED = "UNSUPPORTED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"

class SQLGridError(Exception):
    """Base class for all SQLGrid exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

class ASTParseError(SQLGridError):
    """Raised by the AST adapter when a statement cannot be parsed"""
    def __init__(self, message: str, sql: str = None):
        super().__init__(message, ErrorCode.SYNTAX_ERROR, {'sql': sql})
        self.sql = sql

    @property
    def is_count_mismatch(self) -> bool:
        return "column count doesn't match value count" in self.message

class DocumentParseError(SQLGridError):
    """Raised when a whole document yields no usable statement model"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.DOCUMENT_ERROR, details)

class EditError(SQLGridError):
    """Raised when an edit operation cannot be applied"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.EDIT_ERROR, details: dict = None):
        super().__init__(message, code, details)

class StatementIndexError(EditError):
    """Raised when a statement, row or column index is out of range"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.INDEX_ERROR, details)

class UnsupportedEditError(EditError):
    """Raised when an operation is not defined for a statement kind"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.UNSUPPORTED, details)

class WhereValidationError(EditError):
    """Raised when a replacement WHERE clause is rejected by the parser"""
    def __init__(self, message: str, where_text: str = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, {'where': where_text})

class DocumentConflictError(SQLGridError):
    """Raised when the stored document changed after it was read for an edit"""
    def __init__(self, message: str, base_version: int = None, current_version: int = None):
        details = {'base_version': base_version, 'current_version': current_version}
        super().__init__(message, ErrorCode.CONFLICT, details)

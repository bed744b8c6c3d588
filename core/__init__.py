#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SQLGrid Core Package Initialization
Exports the extraction, reconciliation and regeneration engine

Raw Text → Splitter → AST Adapter → Extractor → Statement Models
Statement Models → Edit Operations → Regenerator → Raw Text
"""

from .errors import (
    ErrorCode, SQLGridError, ASTParseError, DocumentParseError, EditError,
    StatementIndexError, UnsupportedEditError, WhereValidationError,
    DocumentConflictError,
)
from .sql_types import StatementKind, ScalarKind, Scalar, ExactNumber, scalar_kind
from .statement_model import StatementModel, DocumentModel, Assignment
from .splitter import split_statements, strip_comments, find_where_clause
from .ast_adapter import SQLASTAdapter
from .value_normalizer import normalize
from .reconciler import reconcile_rows
from .fallback_parser import FallbackInsertParser, ValueScanner, ScanState, classify_field
from .extractor import StatementExtractor, parse_sql
from .regenerator import SQLRegenerator, RegenerationPolicy, format_value, quote_identifier, regenerate
from .document import Document
from .edit_operations import DocumentEditor, OPERATIONS, next_column_name

__all__ = [
    # Errors
    'ErrorCode',
    'SQLGridError',
    'ASTParseError',
    'DocumentParseError',
    'EditError',
    'StatementIndexError',
    'UnsupportedEditError',
    'WhereValidationError',
    'DocumentConflictError',

    # Model and types
    'StatementKind',
    'ScalarKind',
    'Scalar',
    'scalar_kind',
    'ExactNumber',
    'StatementModel',
    'DocumentModel',
    'Assignment',
    'Document',

    # Pipeline
    'split_statements',
    'strip_comments',
    'find_where_clause',
    'SQLASTAdapter',
    'normalize',
    'reconcile_rows',
    'FallbackInsertParser',
    'ValueScanner',
    'ScanState',
    'classify_field',
    'StatementExtractor',
    'parse_sql',
    'SQLRegenerator',
    'RegenerationPolicy',
    'format_value',
    'quote_identifier',
    'regenerate',

    # Editing
    'DocumentEditor',
    'OPERATIONS',
    'next_column_name',
]

__version__ = '0.1.0'

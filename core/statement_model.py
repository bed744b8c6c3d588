#!/usr/bin/env python3
"""
SQLGrid Statement Model

The flat, table-friendly representation of parsed statements. Insert rows
are index-aligned with the declared columns; Update assignments double as
the column list. Models serialize to the wire shape the table view consumes.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple

from core.sql_types import Scalar, StatementKind

@dataclass
class Assignment:
    """One SET clause entry of an UPDATE statement"""
    column: str
    value: Scalar

@dataclass
class StatementModel:
    """One parsed (and possibly edited) statement"""
    kind: StatementKind
    table_name: Optional[str] = None
    columns: List[str] = field(default_factory=list)
    rows: List[List[Scalar]] = field(default_factory=list)
    assignments: List[Assignment] = field(default_factory=list)
    where_text: Optional[str] = None
    raw_fallback_info: Optional[str] = None

    # Source fragment and edit marker, used by the regenerator
    source_text: Optional[str] = None
    modified: bool = False

    # Diagnostic row for statement kinds the table view cannot edit
    unknown_type: Optional[str] = None

    # Clauses of the source statement the model cannot regenerate
    unmodeled_clauses: List[str] = field(default_factory=list)

    def sync_columns(self) -> None:
        """Re-derive UPDATE columns from the assignments"""
        if self.kind == StatementKind.UPDATE:
            self.columns = [a.column for a in self.assignments]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire shape sent to the rendering side"""
        data: Dict[str, Any] = {"type": self.kind.value}
        if self.kind == StatementKind.UNKNOWN:
            data["data"] = [["Type", self.unknown_type or "unknown"]]
            return data

        data["tableName"] = self.table_name or ""
        if self.kind in (StatementKind.SELECT, StatementKind.INSERT, StatementKind.UPDATE):
            data["columns"] = list(self.columns)
        if self.kind == StatementKind.INSERT:
            data["values"] = [list(row) for row in self.rows]
        if self.kind == StatementKind.UPDATE:
            data["data"] = [[a.column, a.value] for a in self.assignments]
        if self.kind in (StatementKind.UPDATE, StatementKind.DELETE):
            data["where"] = self.where_text
        if self.raw_fallback_info:
            data["fallback"] = self.raw_fallback_info
        return data

@dataclass
class DocumentModel:
    """Ordered statement models for one parse of a full document"""
    statements: List[StatementModel]
    raw: str
    success: bool = True
    error: Optional[str] = None
    # (fragment index, fragment text, failure message) for dropped statements
    skipped: List[Tuple[int, str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "statements": [s.to_dict() for s in self.statements],
            "raw": self.raw,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

#!/usr/bin/env python3
"""
SQLGrid - Production Entry Point
This is the canonical way to use SQLGrid programmatically

Also supports command-line usage:
    python sqlgrid.py data.sql
    python sqlgrid.py data.sql --json
    python sqlgrid.py data.sql --op cellEdit --statement 0 --row 0 --column 1 --value 31
    python sqlgrid.py data.sql --serve
"""

from pathlib import Path
from typing import Optional, Dict, Any, List, Union
import sys
import argparse
import json
import logging

from config.settings import SQLGridConfig, get_config, configure_logging
from core import __version__
from core.document import Document
from core.edit_operations import DocumentEditor, OPERATIONS
from core.errors import SQLGridError
from core.sql_types import StatementKind
from core.statement_model import DocumentModel, StatementModel
from interface.document_store import SQLFileStore

logger = logging.getLogger(__name__)


class SQLGrid:
    """
    Blessed API for SQLGrid

    Example:
        >>> from sqlgrid import SQLGrid
        >>>
        >>> grid = SQLGrid("seed.sql")
        >>> grid.parse().statements[0].rows
        [['Al', 30]]
        >>>
        >>> # Edits are written straight back to the file
        >>> grid.apply("cellEdit", statement_index=0, row_index=0, column_index=1, value="31")
        >>> grid.sql
        "INSERT INTO users (name, age) VALUES ('Al', 31);"
    """

    def __init__(self, path: Union[str, Path], config: Optional[SQLGridConfig] = None):
        """
        Open a SQL file (it does not need to exist yet)

        Args:
            path: Path to the SQL file
            config: Settings (default: environment / .env via get_config)
        """
        self.config = config or get_config()
        self.store = SQLFileStore(path, last_writer_wins=self.config.last_writer_wins)
        self.editor = DocumentEditor.create(dialect=self.config.dialect,
                                            regeneration=self.config.regeneration)
        self.edits_applied = 0

    @property
    def document(self) -> Document:
        """Current versioned snapshot of the file"""
        return self.store.read()

    @property
    def sql(self) -> str:
        return self.document.text

    def parse(self) -> DocumentModel:
        """Parse the file into statement models"""
        return self.editor.extractor.parse_document(self.document.text)

    def apply(self, operation: str, **arguments) -> Document:
        """
        Apply an edit operation and save the result

        Args:
            operation: Wire name (cellEdit, addRow, deleteRow, addColumn,
                       deleteColumn, editColumnName, editWhere)
            **arguments: statement_index, row_index, column_index, value,
                         new_name, where_clause as the operation requires

        Returns:
            The committed Document

        Raises:
            EditError, DocumentParseError, DocumentConflictError
        """
        base = self.store.read()
        edited = self.editor.apply(base, operation, **arguments)
        committed = self.store.commit(edited.text, base)
        self.edits_applied += 1
        return committed

    def get_stats(self) -> Dict[str, Any]:
        model = self.parse()
        return {
            'file': self.store.name,
            'version': self.document.version,
            'statements': len(model.statements),
            'skipped': len(model.skipped),
            'edits_applied': self.edits_applied,
        }


def format_statement(index: int, statement: StatementModel) -> List[str]:
    """Render one statement model as plain-text table lines"""
    title = f"[{index}] {statement.kind.value.upper()}"
    if statement.table_name:
        title += f" {statement.table_name}"
    if statement.raw_fallback_info:
        title += " (recovered)"
    lines = [title]

    if statement.kind == StatementKind.INSERT:
        header = list(statement.columns)
        rows = [["NULL" if v is None else str(v) for v in row] for row in statement.rows]
    elif statement.kind == StatementKind.UPDATE:
        header = ["column", "value"]
        rows = [[a.column, "NULL" if a.value is None else str(a.value)] for a in statement.assignments]
    elif statement.kind == StatementKind.SELECT:
        header = list(statement.columns)
        rows = []
    elif statement.kind == StatementKind.UNKNOWN:
        header = ["Type"]
        rows = [[statement.unknown_type or "unknown"]]
    else:
        header, rows = [], []

    if header:
        widths = [len(h) for h in header]
        for row in rows:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(cell))
        lines.append("  " + " | ".join(h.ljust(w) for h, w in zip(header, widths)))
        lines.append("  " + "-+-".join("-" * w for w in widths))
        for row in rows:
            lines.append("  " + " | ".join(c.ljust(w) for c, w in zip(row, widths)))

    if statement.where_text:
        lines.append(f"  WHERE {statement.where_text}")
    return lines


# CLI Interface
def main(argv: Optional[List[str]] = None):
    """Command-line interface for SQLGrid."""
    parser = argparse.ArgumentParser(
        description='SQLGrid - view and edit SQL statements as tables',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python sqlgrid.py seed.sql
  python sqlgrid.py seed.sql --json
  python sqlgrid.py seed.sql --op addColumn --statement 0
  python sqlgrid.py seed.sql --op editWhere --statement 1 --where "id = 3"
  python sqlgrid.py seed.sql --serve
        """
    )

    parser.add_argument('file', nargs='?', help='SQL file to open')

    # Output options
    parser.add_argument('--json', '-j', action='store_true', help='Output the parsed document as JSON')
    parser.add_argument('--stats', action='store_true', help='Show document statistics')
    parser.add_argument('--version', action='store_true', help='Show version')

    # Edit options
    parser.add_argument('--op', choices=sorted(OPERATIONS), help='Edit operation to apply')
    parser.add_argument('--statement', type=int, help='Statement index')
    parser.add_argument('--row', type=int, help='Row index')
    parser.add_argument('--column', type=int, help='Column index')
    parser.add_argument('--value', help='New cell value')
    parser.add_argument('--name', help='New column name')
    parser.add_argument('--where', help='New WHERE clause (empty to remove)')

    # Mode options
    parser.add_argument('--serve', action='store_true', help='Serve the file to a table view')

    args = parser.parse_args(argv)

    if args.version:
        print(f"SQLGrid {__version__}")
        return

    if not args.file:
        parser.error("a SQL file is required")

    config = get_config()
    configure_logging(config)

    if args.serve:
        import uvicorn
        from interface.sqlgrid_server import create_app
        uvicorn.run(create_app(args.file, config), host=config.host, port=config.port,
                    log_level=config.log_level.lower())
        return

    grid = SQLGrid(args.file, config)

    if args.op:
        if args.statement is None:
            parser.error("--op requires --statement")
        arguments: Dict[str, Any] = {'statement_index': args.statement}
        for option, name in (('row', 'row_index'), ('column', 'column_index'), ('value', 'value'),
                             ('name', 'new_name'), ('where', 'where_clause')):
            if getattr(args, option) is not None:
                arguments[name] = getattr(args, option)
        try:
            document = grid.apply(args.op, **arguments)
        except (SQLGridError, TypeError) as e:
            print(f"Error: {getattr(e, 'message', e)}", file=sys.stderr)
            sys.exit(1)
        logger.info(f"Saved {grid.store.name} (version {document.version})")

    if args.stats:
        stats = grid.get_stats()
        if args.json:
            print(json.dumps(stats, indent=2))
        else:
            print("SQLGrid Statistics:")
            for key, value in stats.items():
                print(f"  {key}: {value}")
        return

    model = grid.parse()
    if args.json:
        print(json.dumps(model.to_dict(), indent=2, default=str))
        return

    if not model.success:
        print(f"Error: {model.error}", file=sys.stderr)
        print(model.raw)
        sys.exit(1)

    for index, statement in enumerate(model.statements):
        print("\n".join(format_statement(index, statement)))
        print()
    for fragment_index, _, message in model.skipped:
        print(f"Skipped statement {fragment_index}: {message}", file=sys.stderr)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
SQLGrid Document Stores

The SQL file is both the parse input and the regeneration output. A store
hands out versioned Document snapshots and commits new text against the
snapshot an edit started from: when the stored text changed in between (a
keystroke, another writer) the commit is refused with DocumentConflictError,
unless the store is configured for last-writer-wins.
"""

import logging
from pathlib import Path
from typing import Union

from core.document import Document
from core.errors import DocumentConflictError

logger = logging.getLogger(__name__)


class DocumentStore:
    """Base class: subclasses provide _load/_save"""

    def __init__(self, name: str, last_writer_wins: bool = False):
        self.name = name
        self.last_writer_wins = last_writer_wins
        self._current = Document(text="", version=0)
        self._loaded = False

    def read(self) -> Document:
        """Current snapshot; the version advances whenever the content changed"""
        text = self._load()
        if not self._loaded:
            self._current = Document(text=text, version=1)
            self._loaded = True
        elif text != self._current.text:
            self._current = self._current.with_text(text)
        return self._current

    def commit(self, text: str, base: Document, force: bool = False) -> Document:
        """
        Write text produced from the base snapshot.

        Raises:
            DocumentConflictError: if the stored content no longer matches base
        """
        current = self.read()
        if not current.same_content(base):
            if not (force or self.last_writer_wins):
                raise DocumentConflictError(
                    f"{self.name} changed since version {base.version} was read",
                    base_version=base.version, current_version=current.version)
            logger.warning(f"Overwriting concurrent change to {self.name} (version {current.version})")

        self._save(text)
        self._current = current.with_text(text)
        return self._current

    def _load(self) -> str:
        raise NotImplementedError

    def _save(self, text: str) -> None:
        raise NotImplementedError


class InMemoryDocumentStore(DocumentStore):
    """Holds the document text in memory"""

    def __init__(self, text: str = "", name: str = "untitled.sql", last_writer_wins: bool = False):
        super().__init__(name, last_writer_wins)
        self._text = text

    def replace(self, text: str) -> None:
        """Change the text outside of any edit cycle"""
        self._text = text

    def _load(self) -> str:
        return self._text

    def _save(self, text: str) -> None:
        self._text = text


class SQLFileStore(DocumentStore):
    """Reads and writes a SQL file on disk, byte-for-byte newline preserving"""

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8", last_writer_wins: bool = False):
        self.path = Path(path)
        self.encoding = encoding
        super().__init__(str(self.path), last_writer_wins)

    def _load(self) -> str:
        if not self.path.exists():
            return ""
        with open(self.path, 'r', encoding=self.encoding, newline='') as f:
            return f.read()

    def _save(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding=self.encoding, newline='') as f:
            f.write(text)
        logger.debug(f"Wrote {len(text)} characters to {self.path}")

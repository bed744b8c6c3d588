"""Immutable, versioned handle on the text of one SQL document."""

import hashlib
from dataclasses import dataclass


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


@dataclass(frozen=True)
class Document:
    """Document text plus a monotonic version; edits produce new handles"""
    text: str
    version: int = 0

    @property
    def content_hash(self) -> str:
        return content_hash(self.text)

    def with_text(self, text: str) -> 'Document':
        return Document(text=text, version=self.version + 1)

    def same_content(self, other: 'Document') -> bool:
        return self.content_hash == other.content_hash

# docmemory/memory/keys.py
"""
Memory-record key encoding.

Chunks of an ingested document are stored under ``{document}-{index}-{total}``
with a 1-based index. The key is the only ordering information persisted for
a chunk, so it is built and parsed here and nowhere else.
"""

import re
from dataclasses import dataclass
from typing import Optional


_KEY_PATTERN = re.compile(r"^(?P<document>.+)-(?P<index>\d+)-(?P<total>\d+)$")


@dataclass(frozen=True)
class ChunkKey:

    document: str
    index: int
    total: int

    def __post_init__(self):

        if not self.document:
            raise ValueError("Chunk key needs a document name")

        if self.total < 1 or not 1 <= self.index <= self.total:
            raise ValueError(
                f"Chunk index out of range (index={self.index}, total={self.total})"
            )

    def __str__(self) -> str:
        return f"{self.document}-{self.index}-{self.total}"

    @classmethod
    def parse(cls, key: str) -> Optional["ChunkKey"]:
        """Recover the structured key, or None for keys not in chunk form."""

        match = _KEY_PATTERN.match(key or "")

        if not match:
            return None

        try:
            return cls(
                document=match.group("document"),
                index=int(match.group("index")),
                total=int(match.group("total")),
            )
        except ValueError:
            return None


def doc_id_of(key: str) -> str:
    """Provenance id stored with every record: the first ``-`` segment."""
    return key.split("-")[0]


def document_of(key: str) -> str:
    """Source document name of a chunk key, or the key itself."""

    parsed = ChunkKey.parse(key)

    return parsed.document if parsed else key

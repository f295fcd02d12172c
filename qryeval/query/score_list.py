"""
Result list of (document, score) pairs for one query.
"""

from typing import Callable, Iterator, List, Optional
from dataclasses import dataclass


@dataclass
class ScoreEntry:
    """
    One scored document.

    Attributes:
        doc_id: Internal document identifier
        score: Retrieval model score
        external_id: External document identifier, resolved when sorting
    """
    doc_id: int
    score: float
    external_id: Optional[str] = None

    def __repr__(self):
        return f"ScoreEntry(doc_id={self.doc_id}, score={self.score:.4f})"


class ScoreList:
    """
    Accumulates scored documents and orders them by
    (score descending, external id ascending).
    """

    def __init__(self, resolve_external_id: Callable[[int], str]):
        """
        Initialize an empty result list.

        Args:
            resolve_external_id: Maps an internal doc id to its external id
        """
        self._resolve = resolve_external_id
        self.entries: List[ScoreEntry] = []

    def add(self, doc_id: int, score: float):
        self.entries.append(ScoreEntry(doc_id, float(score)))

    def sort(self):
        """Sort by score descending, ties broken by ascending external id."""
        for entry in self.entries:
            if entry.external_id is None:
                entry.external_id = self._resolve(entry.doc_id)
        self.entries.sort(key=lambda e: (-e.score, e.external_id))

    def truncate(self, n: int):
        """
        Keep only the first n entries.

        Args:
            n: Number of entries to keep; negative means keep everything
        """
        if n >= 0:
            del self.entries[n:]

    def get_doc_id(self, i: int) -> int:
        return self.entries[i].doc_id

    def get_score(self, i: int) -> float:
        return self.entries[i].score

    def get_external_id(self, i: int) -> str:
        entry = self.entries[i]
        if entry.external_id is None:
            entry.external_id = self._resolve(entry.doc_id)
        return entry.external_id

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ScoreEntry]:
        return iter(self.entries)

    def __getitem__(self, i: int) -> ScoreEntry:
        return self.entries[i]

"""
Postings list data structures for the read-only index.
"""

from typing import List, Tuple, Optional, Iterable
import bisect

from ..errors import IndexFormatError


class PostingsList:
    """
    Immutable postings list for a single (term, field).
    Document ids are kept in a flat list so cursors can seek with bisect.
    """

    def __init__(self, doc_ids: Optional[List[int]] = None, term_freqs: Optional[List[int]] = None):
        """
        Initialize postings list.

        Args:
            doc_ids: Strictly increasing internal document ids
            term_freqs: Term frequency for each document id
        """
        self.doc_ids: List[int] = list(doc_ids or [])
        self.term_freqs: List[int] = list(term_freqs or [])

        if len(self.doc_ids) != len(self.term_freqs):
            raise IndexFormatError("Postings doc_ids and term_freqs differ in length")

        self._ctf = sum(self.term_freqs)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, int]], term: str = '') -> 'PostingsList':
        """
        Create from (doc_id, tf) pairs, validating the ordering invariant.

        Args:
            pairs: Iterable of (doc_id, tf) pairs in ascending doc_id order
            term: Term name used in error messages

        Returns:
            New PostingsList
        """
        doc_ids = []
        term_freqs = []
        previous = -1

        for pair in pairs:
            try:
                doc_id, tf = int(pair[0]), int(pair[1])
            except (TypeError, ValueError, IndexError):
                raise IndexFormatError(f"Malformed posting {pair!r} for term '{term}'")

            if doc_id <= previous:
                raise IndexFormatError(
                    f"Postings for term '{term}' are not strictly increasing at doc {doc_id}"
                )
            if tf <= 0:
                raise IndexFormatError(f"Non-positive tf {tf} for term '{term}' in doc {doc_id}")

            doc_ids.append(doc_id)
            term_freqs.append(tf)
            previous = doc_id

        return cls(doc_ids, term_freqs)

    def seek(self, doc_id: int, lo: int = 0) -> int:
        """
        Find the first position at or after lo whose document id is >= doc_id.

        Args:
            doc_id: Target document id
            lo: Position to start searching from

        Returns:
            Position in the list (len(self) if every id is smaller)
        """
        return bisect.bisect_left(self.doc_ids, doc_id, lo)

    def document_frequency(self) -> int:
        """Get number of documents containing this term."""
        return len(self.doc_ids)

    def total_term_frequency(self) -> int:
        """Get total occurrences of term across all documents."""
        return self._ctf

    def __len__(self) -> int:
        return len(self.doc_ids)


EMPTY_POSTINGS = PostingsList()

"""
Cursor over the postings of one (term, field).
"""

from ..errors import IteratorStateError


class TermIterator:
    """
    Monotonic cursor over a postings list.

    Seeking uses binary search from the current position, so aligning several
    iterators on a common document is a merge-advance rather than a rescan.
    Documents whose field is empty are never reported as matches.
    """

    def __init__(self, index, term: str, field: str):
        """
        Initialize iterator.

        Args:
            index: IndexReader handle (shared, read-only)
            term: Normalized term
            field: Field the term is scoped to
        """
        self.term = term
        self.field = field
        self.postings = index.postings(term, field)
        self._lengths = index.field_stats[field].document_lengths
        self._cursor = 0
        self._skip_empty_documents()

    def _skip_empty_documents(self):
        doc_ids = self.postings.doc_ids
        while self._cursor < len(doc_ids) and self._lengths[doc_ids[self._cursor]] == 0:
            self._cursor += 1

    def has_match(self) -> bool:
        """True while the cursor points at a posting."""
        return self._cursor < len(self.postings)

    def has_match_at_or_after(self, min_doc_id: int) -> bool:
        """
        Move the cursor to the first posting with doc_id >= min_doc_id.

        Args:
            min_doc_id: Smallest acceptable document id

        Returns:
            True if such a posting exists
        """
        if self.has_match() and self.postings.doc_ids[self._cursor] < min_doc_id:
            self._cursor = self.postings.seek(min_doc_id, self._cursor)
            self._skip_empty_documents()
        return self.has_match()

    def advance_past(self, doc_id: int):
        """Move the cursor beyond doc_id. Never moves backwards."""
        self.has_match_at_or_after(doc_id + 1)

    def current_doc_id(self) -> int:
        if not self.has_match():
            raise IteratorStateError(f"Iterator for {self.term}.{self.field} is exhausted")
        return self.postings.doc_ids[self._cursor]

    def current_term_frequency(self) -> int:
        if not self.has_match():
            raise IteratorStateError(f"Iterator for {self.term}.{self.field} is exhausted")
        return self.postings.term_freqs[self._cursor]

    def __repr__(self):
        return f"TermIterator(term={self.term!r}, field={self.field!r}, cursor={self._cursor})"

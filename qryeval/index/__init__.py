"""
Read-only index access layer.
"""

from .postings import PostingsList
from .index_reader import IndexReader, DocumentStore, FieldStatistics

__all__ = [
    'PostingsList',
    'IndexReader',
    'DocumentStore',
    'FieldStatistics',
]

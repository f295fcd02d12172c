"""
Read-only index access layer.

Loads a serialized index dump and exposes per-field postings together with
the document and collection statistics needed by the retrieval models.
"""

from typing import Dict, List, Iterable
from pathlib import Path
import gzip
import json
import logging

from .postings import PostingsList, EMPTY_POSTINGS
from ..errors import IndexFormatError

logger = logging.getLogger(__name__)

INDEX_FILE_NAMES = ('index.json', 'index.json.gz')


class DocumentStore:
    """
    Maps internal document ids to external document ids.
    Internal ids are dense: 0 .. N-1.
    """

    def __init__(self, external_ids: Iterable[str]):
        self._internal_to_doc_id: List[str] = [str(doc_id) for doc_id in external_ids]

        seen = set()
        for doc_id in self._internal_to_doc_id:
            if doc_id in seen:
                raise IndexFormatError(f"Duplicate external document id: {doc_id}")
            seen.add(doc_id)

    def get_external_id(self, internal_id: int) -> str:
        """Get external document ID from internal ID."""
        if not 0 <= internal_id < len(self._internal_to_doc_id):
            raise KeyError(f"Unknown internal document id: {internal_id}")
        return self._internal_to_doc_id[internal_id]

    def get_document_count(self) -> int:
        """Get total number of documents."""
        return len(self._internal_to_doc_id)


class FieldStatistics:
    """
    Collection-level statistics for one indexed field.
    """

    def __init__(self, name: str, lengths: List[int], num_documents: int):
        """
        Initialize field statistics.

        Args:
            name: Field name
            lengths: Field length for every internal document id
            num_documents: Number of documents in the collection
        """
        if len(lengths) != num_documents:
            raise IndexFormatError(
                f"Field '{name}' has {len(lengths)} lengths for {num_documents} documents"
            )
        if any(length < 0 for length in lengths):
            raise IndexFormatError(f"Field '{name}' has a negative document length")

        self.name = name
        self.document_lengths = lengths
        self.total_tokens = sum(lengths)

        # Average over documents that actually have the field
        self.doc_count = sum(1 for length in lengths if length > 0)
        self.avg_document_length = self.total_tokens / self.doc_count if self.doc_count > 0 else 0.0


class IndexReader:
    """
    Read-only handle over a fielded inverted index.

    One instance is opened per run and shared by every query; nothing in the
    evaluation engine mutates it.
    """

    def __init__(self, documents: DocumentStore, field_stats: Dict[str, FieldStatistics],
                 postings: Dict[str, Dict[str, PostingsList]]):
        self.documents = documents
        self.field_stats = field_stats
        self._postings = postings

    @classmethod
    def from_dict(cls, data: dict) -> 'IndexReader':
        """
        Create an index handle from a deserialized index dump.

        Args:
            data: Dictionary with 'external_ids' and 'fields'

        Returns:
            IndexReader
        """
        try:
            external_ids = data['external_ids']
            fields_data = data['fields']
        except (KeyError, TypeError):
            raise IndexFormatError("Index dump must contain 'external_ids' and 'fields'")

        documents = DocumentStore(external_ids)
        num_documents = documents.get_document_count()

        field_stats: Dict[str, FieldStatistics] = {}
        postings: Dict[str, Dict[str, PostingsList]] = {}

        for field_name, field_data in fields_data.items():
            lengths = [int(length) for length in field_data.get('lengths', [])]
            field_stats[field_name] = FieldStatistics(field_name, lengths, num_documents)

            field_postings = {}
            for term, pairs in field_data.get('postings', {}).items():
                pl = PostingsList.from_pairs(pairs, term=term)
                if pl.doc_ids and pl.doc_ids[-1] >= num_documents:
                    raise IndexFormatError(
                        f"Term '{term}' in field '{field_name}' references unknown doc {pl.doc_ids[-1]}"
                    )
                field_postings[term] = pl
            postings[field_name] = field_postings

        return cls(documents, field_stats, postings)

    @classmethod
    def open(cls, index_path: str) -> 'IndexReader':
        """
        Load an index dump from disk.

        Args:
            index_path: Path to index.json, index.json.gz, or a directory containing one

        Returns:
            IndexReader
        """
        path = Path(index_path)

        if path.is_dir():
            candidates = [path / name for name in INDEX_FILE_NAMES if (path / name).exists()]
            if not candidates:
                raise FileNotFoundError(f"No index file found in {path}")
            path = candidates[0]

        if not path.exists():
            logger.error(f"Index not found at {path}")
            raise FileNotFoundError(f"Index not found at {path}")

        logger.info(f"Loading index from: {path}")

        opener = gzip.open if path.suffix == '.gz' else open
        with opener(path, 'rt', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise IndexFormatError(f"Index file {path} is not valid JSON: {e}")

        index = cls.from_dict(data)
        stats = index.get_statistics()
        logger.info(f"Documents: {stats['num_documents']}, fields: {', '.join(index.fields())}")
        for name, field_stats in stats['fields'].items():
            logger.info(f"  {name}: {field_stats['vocabulary_size']} terms, "
                        f"{field_stats['total_tokens']} tokens, "
                        f"avg length {field_stats['avg_document_length']:.1f}")
        return index

    def fields(self) -> List[str]:
        """Names of the indexed fields."""
        return list(self.field_stats.keys())

    def has_field(self, field: str) -> bool:
        return field in self.field_stats

    def _field(self, field: str) -> FieldStatistics:
        try:
            return self.field_stats[field]
        except KeyError:
            raise KeyError(f"Unknown field: {field}")

    def postings(self, term: str, field: str) -> PostingsList:
        """Get the postings for a term in a field (empty if the term is absent)."""
        self._field(field)
        return self._postings[field].get(term, EMPTY_POSTINGS)

    def field_length(self, doc_id: int, field: str) -> int:
        """Number of tokens in the given field of a document."""
        return self._field(field).document_lengths[doc_id]

    def average_field_length(self, field: str) -> float:
        return self._field(field).avg_document_length

    def document_count(self) -> int:
        return self.documents.get_document_count()

    def document_frequency(self, term: str, field: str) -> int:
        return self.postings(term, field).document_frequency()

    def collection_frequency(self, term: str, field: str) -> int:
        return self.postings(term, field).total_term_frequency()

    def total_tokens(self, field: str) -> int:
        return self._field(field).total_tokens

    def external_id(self, doc_id: int) -> str:
        return self.documents.get_external_id(doc_id)

    def get_statistics(self) -> Dict:
        """Get index statistics."""
        return {
            'num_documents': self.document_count(),
            'fields': {
                name: {
                    'vocabulary_size': len(self._postings[name]),
                    'total_tokens': stats.total_tokens,
                    'avg_document_length': stats.avg_document_length,
                }
                for name, stats in self.field_stats.items()
            }
        }

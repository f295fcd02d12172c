"""
Unit tests for the read-only index access layer.
Run with: pytest tests/test_index_access.py -v
"""

import gzip
import json
import logging
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from qryeval.errors import IndexFormatError
from qryeval.index import IndexReader, DocumentStore, FieldStatistics, PostingsList
from tests.helpers import build_index, build_index_dump


class TestPostingsList:
    """Test postings list construction and lookups."""

    def setup_method(self):
        """Setup test data before each test."""
        self.postings = PostingsList.from_pairs([[1, 2], [4, 1], [7, 3]], term="dog")

    def test_from_pairs(self):
        """Test building a postings list from [doc, tf] pairs."""
        assert self.postings.doc_ids == [1, 4, 7]
        assert self.postings.term_freqs == [2, 1, 3]
        assert len(self.postings) == 3

    def test_statistics(self):
        """Test df and ctf."""
        assert self.postings.document_frequency() == 3
        assert self.postings.total_term_frequency() == 6

    def test_seek(self):
        """Test binary search for the first doc id >= target."""
        assert self.postings.seek(0) == 0
        assert self.postings.seek(4) == 1
        assert self.postings.seek(5) == 2
        assert self.postings.seek(8) == 3
        # Never moves before lo
        assert self.postings.seek(1, lo=2) == 2

    def test_rejects_unsorted(self):
        """Test that decreasing doc ids are rejected."""
        with pytest.raises(IndexFormatError):
            PostingsList.from_pairs([[3, 1], [2, 1]], term="cat")

    def test_rejects_duplicates(self):
        """Test that repeated doc ids are rejected."""
        with pytest.raises(IndexFormatError):
            PostingsList.from_pairs([[2, 1], [2, 4]], term="cat")

    def test_rejects_non_positive_tf(self):
        """Test that tf must be positive."""
        with pytest.raises(IndexFormatError):
            PostingsList.from_pairs([[0, 0]], term="cat")

    def test_rejects_malformed_pair(self):
        """Test that a posting must be a [doc, tf] pair."""
        with pytest.raises(IndexFormatError):
            PostingsList.from_pairs([[0]], term="cat")


class TestDocumentStore:
    """Test external/internal id mapping."""

    def test_mapping(self):
        """Test both directions of the id mapping."""
        store = DocumentStore(["D1", "D2", "D3"])
        assert store.get_document_count() == 3
        assert store.get_external_id(1) == "D2"

    def test_unknown_internal_id(self):
        """Test out-of-range internal ids."""
        store = DocumentStore(["D1"])
        with pytest.raises(KeyError):
            store.get_external_id(1)
        with pytest.raises(KeyError):
            store.get_external_id(-1)

    def test_duplicate_external_id(self):
        """Test duplicate external ids are rejected."""
        with pytest.raises(IndexFormatError):
            DocumentStore(["D1", "D1"])


class TestFieldStatistics:
    """Test per-field collection statistics."""

    def test_average_ignores_empty_fields(self):
        """Test that the average length only counts documents having the field."""
        stats = FieldStatistics("title", [4, 0, 2], 3)
        assert stats.total_tokens == 6
        assert stats.doc_count == 2
        assert stats.avg_document_length == 3.0

    def test_all_empty(self):
        """Test a field no document has."""
        stats = FieldStatistics("url", [0, 0], 2)
        assert stats.avg_document_length == 0.0

    def test_length_count_mismatch(self):
        """Test one length per document is required."""
        with pytest.raises(IndexFormatError):
            FieldStatistics("body", [1, 2], 3)


class TestIndexReader:
    """Test the index handle."""

    def setup_method(self):
        """Setup test data before each test."""
        self.index = build_index({
            "D1": {"body": ["dog", "cat", "dog"], "title": ["dog"]},
            "D2": {"body": ["dog", "bird"]},
            "D3": {"body": ["fish"], "title": ["cat", "fish"]},
        })

    def test_fields(self):
        """Test field listing."""
        assert sorted(self.index.fields()) == ["body", "title"]
        assert self.index.has_field("body")
        assert not self.index.has_field("url")

    def test_statistics(self):
        """Test document and collection statistics."""
        assert self.index.document_count() == 3
        assert self.index.document_frequency("dog", "body") == 2
        assert self.index.collection_frequency("dog", "body") == 3
        assert self.index.total_tokens("body") == 6
        assert self.index.field_length(0, "body") == 3
        assert self.index.field_length(1, "title") == 0
        assert self.index.average_field_length("body") == 2.0
        assert self.index.average_field_length("title") == 1.5

    def test_missing_term(self):
        """Test an absent term has empty postings."""
        assert len(self.index.postings("zebra", "body")) == 0
        assert self.index.document_frequency("zebra", "body") == 0
        assert self.index.collection_frequency("zebra", "body") == 0

    def test_unknown_field(self):
        """Test an unknown field raises KeyError."""
        with pytest.raises(KeyError):
            self.index.postings("dog", "inlink")

    def test_id_mapping(self):
        """Test external id lookups."""
        assert self.index.external_id(2) == "D3"
        assert self.index.external_id(0) == "D1"

    def test_get_statistics(self):
        """Test statistics summary."""
        stats = self.index.get_statistics()
        assert stats["num_documents"] == 3
        assert stats["fields"]["body"]["vocabulary_size"] == 4
        assert stats["fields"]["title"]["total_tokens"] == 3

    def test_missing_sections(self):
        """Test a dump without the required sections."""
        with pytest.raises(IndexFormatError):
            IndexReader.from_dict({"fields": {}})

    def test_posting_beyond_collection(self):
        """Test postings referencing a document that does not exist."""
        dump = {
            "external_ids": ["D1"],
            "fields": {"body": {"lengths": [1], "postings": {"dog": [[0, 1], [5, 1]]}}},
        }
        with pytest.raises(IndexFormatError):
            IndexReader.from_dict(dump)


class TestIndexLoading:
    """Test loading index dumps from disk."""

    def setup_method(self):
        """Setup test data before each test."""
        self.dump = build_index_dump({
            "D1": {"body": ["dog", "cat"]},
            "D2": {"body": ["dog"]},
        })

    def test_open_json(self, tmp_path):
        """Test loading a plain JSON dump."""
        path = tmp_path / "index.json"
        path.write_text(json.dumps(self.dump), encoding="utf-8")

        index = IndexReader.open(str(path))
        assert index.document_count() == 2
        assert index.document_frequency("dog", "body") == 2

    def test_open_gzip(self, tmp_path):
        """Test loading a gzip-compressed dump."""
        path = tmp_path / "index.json.gz"
        with gzip.open(path, "wt", encoding="utf-8") as f:
            json.dump(self.dump, f)

        index = IndexReader.open(str(path))
        assert index.external_id(1) == "D2"

    def test_open_directory(self, tmp_path):
        """Test loading from a directory containing index.json."""
        (tmp_path / "index.json").write_text(json.dumps(self.dump), encoding="utf-8")

        index = IndexReader.open(str(tmp_path))
        assert index.document_count() == 2

    def test_open_logs_statistics(self, tmp_path, caplog):
        """Test loading logs the collection statistics."""
        path = tmp_path / "index.json"
        path.write_text(json.dumps(self.dump), encoding="utf-8")

        with caplog.at_level(logging.INFO, logger="qryeval.index.index_reader"):
            IndexReader.open(str(path))
        assert "Documents: 2, fields: body" in caplog.text
        assert "body: 2 terms, 3 tokens, avg length 1.5" in caplog.text

    def test_missing_file(self, tmp_path):
        """Test a missing index path."""
        with pytest.raises(FileNotFoundError):
            IndexReader.open(str(tmp_path / "nope.json"))

    def test_empty_directory(self, tmp_path):
        """Test a directory without an index file."""
        with pytest.raises(FileNotFoundError):
            IndexReader.open(str(tmp_path))

    def test_invalid_json(self, tmp_path):
        """Test a file that is not JSON."""
        path = tmp_path / "index.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(IndexFormatError):
            IndexReader.open(str(path))

    def test_unsorted_postings_on_disk(self, tmp_path):
        """Test the loader rejects unsorted postings."""
        self.dump["fields"]["body"]["postings"]["dog"] = [[1, 1], [0, 1]]
        path = tmp_path / "index.json"
        path.write_text(json.dumps(self.dump), encoding="utf-8")
        with pytest.raises(IndexFormatError):
            IndexReader.open(str(path))

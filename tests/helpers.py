"""
Shared test helpers: small in-memory indexes and the default configuration.
"""

from collections import Counter
from pathlib import Path
from typing import Dict, List, Mapping

from omegaconf import OmegaConf

from qryeval.index import IndexReader

CONFIG_PATH = Path(__file__).parent.parent / "conf" / "config.yaml"


def build_index_dump(documents: Mapping[str, Mapping[str, List[str]]]) -> Dict:
    """
    Build an index dump from already-analyzed documents.

    Args:
        documents: {external_id: {field: [tokens]}} in internal id order

    Returns:
        Dictionary in the JSON index format
    """
    external_ids = list(documents.keys())
    field_names = sorted({name for fields in documents.values() for name in fields})

    fields = {}
    for name in field_names:
        lengths = []
        postings: Dict[str, List[List[int]]] = {}
        for doc_id, ext_id in enumerate(external_ids):
            tokens = documents[ext_id].get(name, [])
            lengths.append(len(tokens))
            for term, tf in sorted(Counter(tokens).items()):
                postings.setdefault(term, []).append([doc_id, tf])
        fields[name] = {"lengths": lengths, "postings": postings}

    return {"external_ids": external_ids, "fields": fields}


def build_index(documents: Mapping[str, Mapping[str, List[str]]]) -> IndexReader:
    """Build an IndexReader from {external_id: {field: [tokens]}}."""
    return IndexReader.from_dict(build_index_dump(documents))


def body_index(documents: Mapping[str, str]) -> IndexReader:
    """Build an index with a single body field from whitespace-separated text."""
    return build_index({ext_id: {"body": text.split()} for ext_id, text in documents.items()})


def load_config(**sections):
    """
    Load conf/config.yaml and merge per-section overrides.

    Example:
        load_config(model={"name": "bm25"}, output={"length": 5})
    """
    config = OmegaConf.load(CONFIG_PATH)
    if sections:
        config = OmegaConf.merge(config, OmegaConf.create(sections))
    return config

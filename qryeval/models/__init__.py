"""
Retrieval models and their scoring rules.
"""

from .retrieval_model import (
    ModelKind,
    RetrievalModel,
    UnrankedBooleanModel,
    RankedBooleanModel,
    BM25Model,
    IndriModel,
    build_retrieval_model
)
from .scoring import bm25_idf

__all__ = [
    'ModelKind',
    'RetrievalModel',
    'UnrankedBooleanModel',
    'RankedBooleanModel',
    'BM25Model',
    'IndriModel',
    'build_retrieval_model',
    'bm25_idf',
]

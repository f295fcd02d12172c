"""
Query trees, document iterators and the evaluation loop.
"""

from .term_iterator import TermIterator
from .nodes import NodeKind, MatchPolicy, QryNode, TermNode, OperatorNode
from .score_list import ScoreEntry, ScoreList
from .evaluator import QueryEvaluator

__all__ = [
    'TermIterator',
    'NodeKind',
    'MatchPolicy',
    'QryNode',
    'TermNode',
    'OperatorNode',
    'ScoreEntry',
    'ScoreList',
    'QueryEvaluator',
]

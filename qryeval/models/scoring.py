"""
Scoring rules for every (node kind, retrieval model) pair.

Scores are looked up in a dispatch table instead of being spread over node
subclasses; a pair missing from the table is an operator the model does not
support.
"""

from typing import Callable, Dict, Tuple
import math

from ..query.nodes import NodeKind, QryNode
from .retrieval_model import ModelKind
from ..errors import UnsupportedOperatorError

Scorer = Callable[[QryNode, object, int], float]


# Unranked Boolean

def _unranked_constant(node, model, doc_id: int) -> float:
    return 1.0


# Ranked Boolean

def _ranked_term(node, model, doc_id: int) -> float:
    return float(node.term_frequency())


def _ranked_and(node, model, doc_id: int) -> float:
    return min(model.score(child, doc_id) for child, _ in node.scored_children())


def _ranked_or(node, model, doc_id: int) -> float:
    return max(model.score(child, doc_id)
               for child in node.children if child.matches(model, doc_id))


# BM25

def bm25_idf(num_documents: int, df: int) -> float:
    """Robertson-Sparck Jones idf, floored at 0."""
    return max(0.0, math.log((num_documents - df + 0.5) / (df + 0.5)))


def _bm25_term(node, model, doc_id: int) -> float:
    """
    BM25 = IDF * ((k1 + 1) * TF) / (k1 * (1 - b + b * DL / avgDL) + TF)
              * ((k3 + 1) * QTF) / (k3 + QTF)
    """
    index = node.index
    tf = node.term_frequency()
    df = index.document_frequency(node.term, node.field)
    doc_length = index.field_length(doc_id, node.field)
    avg_length = index.average_field_length(node.field)

    idf = bm25_idf(index.document_count(), df)
    tf_weight = ((model.k1 + 1.0) * tf) / (model.k1 * (1.0 - model.b + model.b * doc_length / avg_length) + tf)
    qtf = node.query_frequency
    user_weight = ((model.k3 + 1.0) * qtf) / (model.k3 + qtf)

    return idf * tf_weight * user_weight


def _bm25_sum(node, model, doc_id: int) -> float:
    return sum(model.score(child, doc_id)
               for child in node.children if child.matches(model, doc_id))


def _bm25_wsum(node, model, doc_id: int) -> float:
    total = node.total_weight()
    return sum(weight / total * model.score(child, doc_id)
               for child, weight in node.scored_children()
               if child.matches(model, doc_id))


def _bm25_and(node, model, doc_id: int) -> float:
    return sum(model.score(child, doc_id) for child, _ in node.scored_children())


# Indri (Dirichlet smoothing with collection interpolation)

def _indri_term_probability(node, model, doc_id: int, tf: int) -> float:
    """
    p(t|d) = (1 - lambda) * (tf + mu * P_c) / (len + mu) + lambda * P_c
    where P_c = ctf / total tokens of the field
    """
    index = node.index
    total_tokens = index.total_tokens(node.field)
    p_coll = index.collection_frequency(node.term, node.field) / total_tokens if total_tokens > 0 else 0.0
    doc_length = index.field_length(doc_id, node.field)

    return ((1.0 - model.lambda_) * (tf + model.mu * p_coll) / (doc_length + model.mu)
            + model.lambda_ * p_coll)


def _indri_term(node, model, doc_id: int) -> float:
    return _indri_term_probability(node, model, doc_id, node.term_frequency())


def _indri_term_default(node, model, doc_id: int) -> float:
    return _indri_term_probability(node, model, doc_id, 0)


def _indri_combine(kind: NodeKind, weights, scores) -> float:
    """Combine child beliefs for an Indri operator."""
    if kind is NodeKind.AND:
        n = len(scores)
        return math.prod(s ** (1.0 / n) for s in scores)
    if kind is NodeKind.WAND:
        total = sum(weights)
        return math.prod(s ** (w / total) for s, w in zip(scores, weights))
    if kind is NodeKind.OR:
        return 1.0 - math.prod(1.0 - s for s in scores)
    if kind is NodeKind.WSUM:
        total = sum(weights)
        return sum(w / total * s for s, w in zip(scores, weights))
    raise UnsupportedOperatorError(kind.value, ModelKind.INDRI.display_name)


def _indri_child_score(child, model, doc_id: int) -> float:
    if child.matches(model, doc_id):
        return model.score(child, doc_id)
    return model.default_score(child, doc_id)


def _indri_operator(node, model, doc_id: int) -> float:
    children = node.scored_children()
    scores = [_indri_child_score(child, model, doc_id) for child, _ in children]
    return _indri_combine(node.kind, [weight for _, weight in children], scores)


def _indri_operator_default(node, model, doc_id: int) -> float:
    children = node.scored_children()
    scores = [model.default_score(child, doc_id) for child, _ in children]
    return _indri_combine(node.kind, [weight for _, weight in children], scores)


SCORERS: Dict[Tuple[NodeKind, ModelKind], Scorer] = {
    (NodeKind.TERM, ModelKind.UNRANKED_BOOLEAN): _unranked_constant,
    (NodeKind.AND, ModelKind.UNRANKED_BOOLEAN): _unranked_constant,
    (NodeKind.OR, ModelKind.UNRANKED_BOOLEAN): _unranked_constant,

    (NodeKind.TERM, ModelKind.RANKED_BOOLEAN): _ranked_term,
    (NodeKind.AND, ModelKind.RANKED_BOOLEAN): _ranked_and,
    (NodeKind.OR, ModelKind.RANKED_BOOLEAN): _ranked_or,

    (NodeKind.TERM, ModelKind.BM25): _bm25_term,
    (NodeKind.SUM, ModelKind.BM25): _bm25_sum,
    (NodeKind.WSUM, ModelKind.BM25): _bm25_wsum,
    (NodeKind.AND, ModelKind.BM25): _bm25_and,

    (NodeKind.TERM, ModelKind.INDRI): _indri_term,
    (NodeKind.AND, ModelKind.INDRI): _indri_operator,
    (NodeKind.WAND, ModelKind.INDRI): _indri_operator,
    (NodeKind.OR, ModelKind.INDRI): _indri_operator,
    (NodeKind.WSUM, ModelKind.INDRI): _indri_operator,
}

# Scores for documents a node does not match (only Indri smooths)
DEFAULT_SCORERS: Dict[Tuple[NodeKind, ModelKind], Scorer] = {
    (NodeKind.TERM, ModelKind.INDRI): _indri_term_default,
    (NodeKind.AND, ModelKind.INDRI): _indri_operator_default,
    (NodeKind.WAND, ModelKind.INDRI): _indri_operator_default,
    (NodeKind.OR, ModelKind.INDRI): _indri_operator_default,
    (NodeKind.WSUM, ModelKind.INDRI): _indri_operator_default,
}


def score(node: QryNode, model, doc_id: int) -> float:
    """
    Score a node's match on doc_id under a retrieval model.

    Raises:
        UnsupportedOperatorError: If the model has no rule for the node kind
    """
    scorer = SCORERS.get((node.kind, model.kind))
    if scorer is None:
        raise UnsupportedOperatorError(node.kind.value, model.name)
    return scorer(node, model, doc_id)


def default_score(node: QryNode, model, doc_id: int) -> float:
    """Score for a document the node does not match; 0 for unsmoothed models."""
    scorer = DEFAULT_SCORERS.get((node.kind, model.kind))
    if scorer is None:
        return 0.0
    return scorer(node, model, doc_id)


def supports(kind: NodeKind, model_kind: ModelKind) -> bool:
    return (kind, model_kind) in SCORERS

"""
Query operator tree and the document-iterator protocol.

Every node, leaf or operator, exposes the same iteration interface:

    has_match(model) -> bool     candidate document exists
    get_match() -> int           the candidate (stable until an advance)
    advance_past(doc_id)         move every child beyond doc_id
    advance_to(doc_id)           move to the first candidate >= doc_id

How an operator synchronizes its children depends on the (node kind,
retrieval model) pair, which the model reports as a MatchPolicy.
"""

from enum import Enum
from typing import List, Optional, Tuple

from .term_iterator import TermIterator
from ..errors import IteratorStateError, QuerySyntaxError, UnsupportedOperatorError


class NodeKind(Enum):
    TERM = '#TERM'
    AND = '#AND'
    OR = '#OR'
    SUM = '#SUM'
    WSUM = '#WSUM'
    WAND = '#WAND'

    @property
    def is_weighted(self) -> bool:
        return self in (NodeKind.WSUM, NodeKind.WAND)

    @classmethod
    def from_operator(cls, name: str) -> 'NodeKind':
        """
        Look up an operator kind by its query-language name (e.g. '#and').

        Raises:
            QuerySyntaxError: If the name is not a known operator
        """
        name = name.upper()
        for kind in cls:
            if kind.value == name and kind is not cls.TERM:
                return kind
        raise QuerySyntaxError(f"Unknown query operator: {name}")


class MatchPolicy(Enum):
    ALL = 'all'  # every child on the same document
    MIN = 'min'  # smallest document of any child


class QryNode:
    """Base class for query tree nodes."""

    kind: NodeKind = None

    @property
    def children(self) -> List['QryNode']:
        return []

    def has_match(self, model) -> bool:
        raise NotImplementedError

    def get_match(self) -> int:
        raise NotImplementedError

    def advance_past(self, doc_id: int):
        raise NotImplementedError

    def advance_to(self, doc_id: int):
        self.advance_past(doc_id - 1)

    @property
    def is_empty(self) -> bool:
        """True for an operator with no argument that can match; it never matches."""
        return False

    def matches(self, model, doc_id: int) -> bool:
        """True if the node's current candidate is doc_id."""
        return self.has_match(model) and self.get_match() == doc_id

    def score(self, model) -> float:
        """Score the current candidate under the given retrieval model."""
        return model.score(self, self.get_match())

    def validate(self, model):
        """
        Check the tree can be evaluated under a model.

        Raises:
            UnsupportedOperatorError: If the model cannot score some node
            QuerySyntaxError: If a weighted operator's weights sum to 0
        """
        if not model.supports(self.kind):
            raise UnsupportedOperatorError(self.kind.value, model.name)
        for child in self.children:
            child.validate(model)


class TermNode(QryNode):
    """
    Leaf node: one term scoped to one field.
    """

    kind = NodeKind.TERM

    def __init__(self, index, term: str, field: str = 'body', query_frequency: int = 1):
        """
        Initialize term leaf.

        Args:
            index: IndexReader handle, referenced not owned
            term: Normalized term
            field: Field name
            query_frequency: Occurrences of the term in the query (qtf)
        """
        self.index = index
        self.term = term
        self.field = field
        self.query_frequency = query_frequency
        self.iterator = TermIterator(index, term, field)

    def has_match(self, model=None) -> bool:
        return self.iterator.has_match()

    def get_match(self) -> int:
        return self.iterator.current_doc_id()

    def advance_past(self, doc_id: int):
        self.iterator.advance_past(doc_id)

    def advance_to(self, doc_id: int):
        self.iterator.has_match_at_or_after(doc_id)

    def term_frequency(self) -> int:
        """Term frequency in the current candidate document."""
        return self.iterator.current_term_frequency()

    def __str__(self):
        return f"{self.term}.{self.field}"

    def __repr__(self):
        return f"TermNode({self.term!r}, field={self.field!r})"


class OperatorNode(QryNode):
    """
    Internal node combining an ordered list of children.

    Weights are parallel to children; unweighted operators use 1.0 for every
    child.
    """

    def __init__(self, kind: NodeKind, children: Optional[List[QryNode]] = None,
                 weights: Optional[List[float]] = None):
        if kind is NodeKind.TERM:
            raise ValueError("OperatorNode cannot have kind TERM")

        self.kind = kind
        self._children: List[QryNode] = list(children or [])
        if weights is None:
            weights = [1.0] * len(self._children)
        if len(weights) != len(self._children):
            raise ValueError(f"{kind.value} has {len(self._children)} children but {len(weights)} weights")
        self.weights: List[float] = [float(w) for w in weights]

        self._match: Optional[int] = None
        self._match_valid = False

    @property
    def children(self) -> List[QryNode]:
        return self._children

    def add_child(self, child: QryNode, weight: float = 1.0):
        """Append a child. Only valid while the tree is being built."""
        self._children.append(child)
        self.weights.append(float(weight))
        self._match_valid = False

    @property
    def is_empty(self) -> bool:
        return all(child.is_empty for child in self._children)

    def scored_children(self) -> List[Tuple[QryNode, float]]:
        """(child, weight) pairs, skipping arguments that can never match."""
        return [(child, weight) for child, weight in zip(self._children, self.weights)
                if not child.is_empty]

    def total_weight(self) -> float:
        """Sum of the weights of the scored children."""
        return sum(weight for _, weight in self.scored_children())

    def has_match(self, model) -> bool:
        if not self._match_valid:
            if model.match_policy(self.kind) is MatchPolicy.ALL:
                self._match = self._match_all(model)
            else:
                self._match = self._match_min(model)
            self._match_valid = True
        return self._match is not None

    def _match_all(self, model) -> Optional[int]:
        """
        Align every child on a common document.

        Take the largest current document, move every lagging child up to
        it, repeat until all agree or some child runs out. Arguments that
        can never match are ignored, as if the parser had pruned them.
        """
        children = [child for child, _ in self.scored_children()]
        if not children:
            return None

        while True:
            target = None
            for child in children:
                if not child.has_match(model):
                    return None
                doc_id = child.get_match()
                if target is None or doc_id > target:
                    target = doc_id

            aligned = True
            for child in children:
                if child.get_match() < target:
                    child.advance_to(target)
                    aligned = False

            if aligned:
                return target

    def _match_min(self, model) -> Optional[int]:
        """Smallest current document over the children that still have one."""
        best = None
        for child in self._children:
            if child.has_match(model):
                doc_id = child.get_match()
                if best is None or doc_id < best:
                    best = doc_id
        return best

    def get_match(self) -> int:
        if not self._match_valid:
            raise IteratorStateError(f"{self.kind.value}: has_match() must be called before get_match()")
        if self._match is None:
            raise IteratorStateError(f"{self.kind.value} has no current match")
        return self._match

    def advance_past(self, doc_id: int):
        for child in self._children:
            child.advance_past(doc_id)
        self._match_valid = False

    def advance_to(self, doc_id: int):
        for child in self._children:
            child.advance_to(doc_id)
        self._match_valid = False

    def validate(self, model):
        # An operator without arguments is valid and matches nothing
        if self.kind.is_weighted and self.scored_children() and self.total_weight() <= 0:
            raise QuerySyntaxError(f"{self.kind.value} weights must not all be 0")
        super().validate(model)

    def __str__(self):
        if self.kind.is_weighted:
            args = ' '.join(f"{w:g} {child}" for w, child in zip(self.weights, self._children))
        else:
            args = ' '.join(str(child) for child in self._children)
        return f"{self.kind.value}( {args} )"

    def __repr__(self):
        return f"OperatorNode({self.kind.name}, children={len(self._children)})"

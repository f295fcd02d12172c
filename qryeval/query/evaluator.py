"""
Document-at-a-time evaluation of a query tree under a retrieval model.
"""

import logging

from .nodes import QryNode
from .score_list import ScoreList

logger = logging.getLogger(__name__)


class QueryEvaluator:
    """
    Drives the root of a query tree over its matching documents.

    Algorithm:
    1. If the root has no argument that can match, return an empty list
    2. Check every node can be scored by the model
    3. While the root has a match:
        a. Read the matched document
        b. Score it (children keep their current positions)
        c. Advance the root past it
    4. Sort the results
    """

    def __init__(self, index, model):
        """
        Initialize evaluator.

        Args:
            index: IndexReader shared by all queries
            model: RetrievalModel used for matching and scoring
        """
        self.index = index
        self.model = model

    def evaluate(self, root: QryNode) -> ScoreList:
        """
        Evaluate a freshly built query tree. The tree is consumed.

        Args:
            root: Root node, usually the model's default operator

        Returns:
            Sorted ScoreList
        """
        results = ScoreList(self.index.external_id)

        if root.is_empty:
            logger.debug("Empty query, no results")
            return results

        root.validate(self.model)

        while root.has_match(self.model):
            doc_id = root.get_match()
            results.add(doc_id, root.score(self.model))
            root.advance_past(doc_id)

        results.sort()
        return results

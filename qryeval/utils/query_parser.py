import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import QuerySyntaxError
from ..query.nodes import NodeKind, OperatorNode, QryNode, TermNode

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = ('body', 'title', 'url', 'inlink')


class QueryParser:
    """
    Parse structured queries into operator trees.
    Supports: #AND, #OR, #SUM, #WSUM, #WAND, nesting, and term.field scoping.

    Example:
        #AND( obama #OR( family.title tree ) )
        #WAND( 0.7 obama 0.3 family.title )
    """

    def __init__(self, index, preprocessor, fields: Sequence[str] = DEFAULT_FIELDS,
                 default_field: str = 'body'):
        """
        Initialize parser.

        Args:
            index: IndexReader the term leaves will iterate over
            preprocessor: TextPreprocessor used to normalize query terms
            fields: Field names accepted as a term suffix
            default_field: Field used when a term has no suffix
        """
        self.index = index
        self.preprocessor = preprocessor
        self.fields = {f.lower() for f in fields}
        self.default_field = default_field

        if default_field not in self.fields:
            raise ValueError(f"Default field {default_field} is not one of {sorted(self.fields)}")

    def parse_query(self, query: str, model) -> OperatorNode:
        """
        Wrap a raw query in the model's default operator and parse it.

        Args:
            query: Query text, e.g. "obama family tree"
            model: RetrievalModel providing the default operator

        Returns:
            Root operator node (possibly without arguments)
        """
        return self.parse(f"{model.default_operator_name()}( {query} )")

    def parse(self, query: str) -> OperatorNode:
        """
        Parse a query whose outermost element is an operator.

        The root is returned even when all of its arguments were dropped;
        nested operators left without arguments are pruned.

        Raises:
            QuerySyntaxError: On malformed query text
        """
        tokens = self._tokenize(query)
        if not tokens or not tokens[0].startswith('#'):
            raise QuerySyntaxError(f"Query must start with an operator: {query!r}")

        root, pos = self._parse_operator(tokens, 0)
        if pos != len(tokens):
            raise QuerySyntaxError(f"Unexpected token after end of query: {tokens[pos]}")

        logger.debug(f"Parsed query tree: {root}")
        return root

    def _tokenize(self, query: str) -> List[str]:
        """Tokenize query string preserving operators and parentheses."""
        tokens = []
        current_token = []

        for char in query:
            if char in '()':
                if current_token:
                    tokens.append(''.join(current_token))
                    current_token = []
                tokens.append(char)
            elif char.isspace():
                if current_token:
                    tokens.append(''.join(current_token))
                    current_token = []
            else:
                current_token.append(char)

        if current_token:
            tokens.append(''.join(current_token))

        return tokens

    def _parse_operator(self, tokens: List[str], pos: int) -> Tuple[OperatorNode, int]:
        """Parse '#OP( args )' starting at pos."""
        kind = NodeKind.from_operator(tokens[pos])
        pos += 1

        if pos >= len(tokens) or tokens[pos] != '(':
            raise QuerySyntaxError(f"Missing '(' after {kind.value}")
        pos += 1

        node = OperatorNode(kind)
        leaves: Dict[Tuple[str, str], TermNode] = {}

        while True:
            if pos >= len(tokens):
                raise QuerySyntaxError(f"Missing closing parenthesis for {kind.value}")
            if tokens[pos] == ')':
                if kind.is_weighted and node.children and node.total_weight() <= 0:
                    raise QuerySyntaxError(f"{kind.value} weights must not all be 0")
                return node, pos + 1

            weight = 1.0
            if kind.is_weighted:
                weight = self._parse_weight(tokens[pos], kind)
                pos += 1
                if pos >= len(tokens) or tokens[pos] == ')':
                    raise QuerySyntaxError(f"Weight {weight:g} in {kind.value} has no argument")

            children, pos = self._parse_argument(tokens, pos)
            for child in children:
                # Repeated terms of a #SUM become one leaf with a query term frequency
                if kind is NodeKind.SUM and isinstance(child, TermNode):
                    key = (child.term, child.field)
                    if key in leaves:
                        leaves[key].query_frequency += 1
                        continue
                    leaves[key] = child
                node.add_child(child, weight)

    def _parse_weight(self, token: str, kind: NodeKind) -> float:
        try:
            weight = float(token)
        except ValueError:
            raise QuerySyntaxError(f"Expected a weight in {kind.value}, got '{token}'")
        if weight < 0:
            raise QuerySyntaxError(f"Negative weight {token} in {kind.value}")
        return weight

    def _parse_argument(self, tokens: List[str], pos: int) -> Tuple[List[QryNode], int]:
        """
        Parse one operator argument.

        Returns:
            (nodes, next position); a term can produce zero or several nodes
        """
        token = tokens[pos]

        if token == '(':
            raise QuerySyntaxError("Unexpected '(' without an operator")

        if token.startswith('#'):
            child, pos = self._parse_operator(tokens, pos)
            if not child.children:
                logger.warning(f"Dropping {child.kind.value} with no arguments")
                return [], pos
            return [child], pos

        return self._parse_term(token), pos + 1

    def _parse_term(self, token: str) -> List[TermNode]:
        """Split off an optional field suffix and normalize the term."""
        text, field = token, self.default_field

        if '.' in token:
            base, suffix = token.rsplit('.', 1)
            if suffix.lower() in self.fields:
                text, field = base, suffix.lower()

        if not self.index.has_field(field):
            raise QuerySyntaxError(f"Field '{field}' is not in the index")

        terms = self.preprocessor.preprocess(text)
        if not terms:
            logger.debug(f"Query term '{token}' normalized to nothing")

        return [TermNode(self.index, term, field) for term in terms]

    def format_tree(self, node: Optional[QryNode], indent: int = 0) -> str:
        """Format expression tree for display."""
        spaces = "  " * indent

        if node is None:
            return f"{spaces}<empty>\n"
        if node.kind is NodeKind.TERM:
            return f"{spaces}TERM: {node}\n"

        result = f"{spaces}{node.kind.name}:\n"
        for child in node.children:
            result += self.format_tree(child, indent + 1)
        return result

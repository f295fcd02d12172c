"""
Retrieval models: parameters, default query operator and matching policy.

The scoring rules themselves live in scoring.py, keyed by (node kind, model
kind).
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Mapping
import logging

from ..query.nodes import NodeKind, MatchPolicy, QryNode
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class ModelKind(Enum):
    UNRANKED_BOOLEAN = 'unrankedboolean'
    RANKED_BOOLEAN = 'rankedboolean'
    BM25 = 'bm25'
    INDRI = 'indri'

    @property
    def display_name(self) -> str:
        return {
            ModelKind.UNRANKED_BOOLEAN: 'UnrankedBoolean',
            ModelKind.RANKED_BOOLEAN: 'RankedBoolean',
            ModelKind.BM25: 'BM25',
            ModelKind.INDRI: 'Indri',
        }[self]

    @classmethod
    def from_name(cls, name: str) -> 'ModelKind':
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unknown retrieval model {name}")


# Operators that require every argument to match; everything else is a soft union
ALL_MATCH = {
    (NodeKind.AND, ModelKind.UNRANKED_BOOLEAN),
    (NodeKind.AND, ModelKind.RANKED_BOOLEAN),
    (NodeKind.AND, ModelKind.BM25),
}

DEFAULT_OPERATORS = {
    ModelKind.UNRANKED_BOOLEAN: NodeKind.AND,
    ModelKind.RANKED_BOOLEAN: NodeKind.AND,
    ModelKind.BM25: NodeKind.SUM,
    ModelKind.INDRI: NodeKind.AND,
}


@dataclass(frozen=True)
class RetrievalModel:
    """
    Base retrieval model. Subclasses only add (validated) parameters.
    """

    kind: ModelKind = field(init=False, default=None)

    @property
    def name(self) -> str:
        return self.kind.display_name

    @property
    def default_operator(self) -> NodeKind:
        return DEFAULT_OPERATORS[self.kind]

    def default_operator_name(self) -> str:
        """Operator a bare query is wrapped in, e.g. '#AND'."""
        return self.default_operator.value

    def match_policy(self, kind: NodeKind) -> MatchPolicy:
        if (kind, self.kind) in ALL_MATCH:
            return MatchPolicy.ALL
        return MatchPolicy.MIN

    def supports(self, kind: NodeKind) -> bool:
        return scoring.supports(kind, self.kind)

    def score(self, node: QryNode, doc_id: int) -> float:
        return scoring.score(node, self, doc_id)

    def default_score(self, node: QryNode, doc_id: int) -> float:
        return scoring.default_score(node, self, doc_id)

    def parameters(self) -> Dict[str, Any]:
        params = asdict(self)
        params.pop('kind', None)
        return params

    def __str__(self):
        params = ', '.join(f"{k}={v}" for k, v in self.parameters().items())
        return f"{self.name}({params})"


@dataclass(frozen=True)
class UnrankedBooleanModel(RetrievalModel):
    kind: ModelKind = field(init=False, default=ModelKind.UNRANKED_BOOLEAN)


@dataclass(frozen=True)
class RankedBooleanModel(RetrievalModel):
    kind: ModelKind = field(init=False, default=ModelKind.RANKED_BOOLEAN)


@dataclass(frozen=True)
class BM25Model(RetrievalModel):
    """
    Okapi BM25.

    Attributes:
        k1: Term frequency saturation (>= 0)
        b: Length normalization (0 <= b <= 1)
        k3: Query term frequency saturation (>= 0)
    """
    k1: float = 1.2
    b: float = 0.75
    k3: float = 0.0
    kind: ModelKind = field(init=False, default=ModelKind.BM25)

    def __post_init__(self):
        if self.k1 < 0:
            raise ConfigurationError(f"BM25 k1 must be >= 0, got {self.k1}")
        if self.k3 < 0:
            raise ConfigurationError(f"BM25 k3 must be >= 0, got {self.k3}")
        if not 0.0 <= self.b <= 1.0:
            raise ConfigurationError(f"BM25 b must be in [0, 1], got {self.b}")


@dataclass(frozen=True)
class IndriModel(RetrievalModel):
    """
    Query likelihood with Dirichlet smoothing interpolated with the
    collection model.

    Attributes:
        mu: Dirichlet prior (> 0)
        lambda_: Collection interpolation weight (0 <= lambda <= 1)
    """
    mu: float = 2500.0
    lambda_: float = 0.4
    kind: ModelKind = field(init=False, default=ModelKind.INDRI)

    def __post_init__(self):
        if self.mu <= 0:
            raise ConfigurationError(f"Indri mu must be > 0, got {self.mu}")
        if not 0.0 <= self.lambda_ <= 1.0:
            raise ConfigurationError(f"Indri lambda must be in [0, 1], got {self.lambda_}")


def _number(params: Mapping, key: str, model: str) -> float:
    """Read a required numeric model parameter."""
    value = params.get(key) if params is not None else None
    if value is None:
        raise ConfigurationError(f"Missing parameter '{key}' for the {model} retrieval model")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parameter '{key}' for {model} must be a number, got {value!r}")


def build_retrieval_model(model_cfg: Mapping) -> RetrievalModel:
    """
    Create a retrieval model from the 'model' section of the configuration.

    Args:
        model_cfg: Mapping with 'name' and, for BM25/Indri, a 'bm25' or
                   'indri' sub-mapping of parameters

    Returns:
        Validated RetrievalModel

    Raises:
        ConfigurationError: Unknown name, missing or out-of-range parameters
    """
    if model_cfg is None or model_cfg.get('name') in (None, ''):
        raise ConfigurationError("No retrieval model configured")

    kind = ModelKind.from_name(model_cfg.get('name'))

    if kind is ModelKind.UNRANKED_BOOLEAN:
        model = UnrankedBooleanModel()
    elif kind is ModelKind.RANKED_BOOLEAN:
        model = RankedBooleanModel()
    elif kind is ModelKind.BM25:
        params = model_cfg.get('bm25')
        model = BM25Model(
            k1=_number(params, 'k1', 'BM25'),
            b=_number(params, 'b', 'BM25'),
            k3=_number(params, 'k3', 'BM25'),
        )
    else:
        params = model_cfg.get('indri')
        model = IndriModel(
            mu=_number(params, 'mu', 'Indri'),
            lambda_=_number(params, 'lambda', 'Indri'),
        )

    logger.info(f"Retrieval model: {model}")
    return model


from . import scoring  # noqa: E402  (scoring imports ModelKind from this module)

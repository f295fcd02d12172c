"""
Unit tests for retrieval model parameters and scoring rules.
Run with: pytest tests/test_retrieval_models.py -v
"""

import math
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from omegaconf import OmegaConf

from qryeval.errors import ConfigurationError
from qryeval.models import (
    ModelKind, UnrankedBooleanModel, RankedBooleanModel, BM25Model, IndriModel,
    build_retrieval_model, bm25_idf
)
from qryeval.query import NodeKind, TermNode, OperatorNode, QueryEvaluator
from tests.helpers import body_index


def scores(index, model, root):
    return {e.external_id: e.score for e in QueryEvaluator(index, model).evaluate(root)}


class TestModelConfiguration:
    """Test model construction and validation."""

    def test_defaults(self):
        """Test default operators per model."""
        assert UnrankedBooleanModel().default_operator_name() == "#AND"
        assert RankedBooleanModel().default_operator_name() == "#AND"
        assert BM25Model().default_operator_name() == "#SUM"
        assert IndriModel().default_operator_name() == "#AND"

    def test_names(self):
        """Test model display names."""
        assert BM25Model().name == "BM25"
        assert IndriModel().name == "Indri"
        assert ModelKind.from_name("RankedBoolean") is ModelKind.RANKED_BOOLEAN

    def test_unknown_model_name(self):
        """Test an unknown model name."""
        with pytest.raises(ConfigurationError):
            ModelKind.from_name("tfidf")

    @pytest.mark.parametrize("params", [
        {"k1": -0.1},
        {"k3": -1.0},
        {"b": 1.5},
        {"b": -0.1},
    ])
    def test_bm25_out_of_range(self, params):
        """Test BM25 parameter constraints."""
        with pytest.raises(ConfigurationError):
            BM25Model(**params)

    @pytest.mark.parametrize("params", [
        {"mu": 0.0},
        {"mu": -5.0},
        {"lambda_": 1.1},
        {"lambda_": -0.2},
    ])
    def test_indri_out_of_range(self, params):
        """Test Indri parameter constraints."""
        with pytest.raises(ConfigurationError):
            IndriModel(**params)

    def test_build_bm25(self):
        """Test building BM25 from configuration."""
        cfg = OmegaConf.create({"name": "BM25", "bm25": {"k1": "0.9", "b": 0.4, "k3": 2}})
        model = build_retrieval_model(cfg)
        assert isinstance(model, BM25Model)
        assert (model.k1, model.b, model.k3) == (0.9, 0.4, 2.0)

    def test_build_indri(self):
        """Test building Indri from configuration."""
        cfg = OmegaConf.create({"name": "indri", "indri": {"mu": 1500, "lambda": 0.1}})
        model = build_retrieval_model(cfg)
        assert isinstance(model, IndriModel)
        assert model.mu == 1500.0
        assert model.lambda_ == 0.1

    def test_build_boolean(self):
        """Test building the boolean models."""
        assert isinstance(build_retrieval_model({"name": "unrankedboolean"}), UnrankedBooleanModel)
        assert isinstance(build_retrieval_model({"name": "RANKEDBOOLEAN"}), RankedBooleanModel)

    def test_build_missing_name(self):
        """Test a configuration without a model name."""
        with pytest.raises(ConfigurationError):
            build_retrieval_model({"name": None})

    def test_build_non_numeric_parameter(self):
        """Test a non-numeric model parameter."""
        cfg = {"name": "bm25", "bm25": {"k1": "fast", "b": 0.75, "k3": 0}}
        with pytest.raises(ConfigurationError):
            build_retrieval_model(cfg)

    def test_build_missing_parameter(self):
        """Test a missing model parameter."""
        cfg = {"name": "indri", "indri": {"mu": 2500}}
        with pytest.raises(ConfigurationError):
            build_retrieval_model(cfg)

    def test_supports(self):
        """Test the operator support table."""
        assert BM25Model().supports(NodeKind.WSUM)
        assert not BM25Model().supports(NodeKind.OR)
        assert not BM25Model().supports(NodeKind.WAND)
        assert IndriModel().supports(NodeKind.WAND)
        assert not IndriModel().supports(NodeKind.SUM)
        assert not RankedBooleanModel().supports(NodeKind.WSUM)

    def test_str(self):
        """Test the printed form of a model."""
        assert str(BM25Model()) == "BM25(k1=1.2, b=0.75, k3=0.0)"
        assert str(UnrankedBooleanModel()) == "UnrankedBoolean()"


class TestBM25Scoring:
    """Test the BM25 term and operator scores."""

    def setup_method(self):
        """Setup test data before each test."""
        self.index = body_index({
            "D1": "apple apple banana",
            "D2": "apple cherry cherry cherry cherry",
            "D3": "banana cherry",
            "D4": "durian",
            "D5": "elderberry fig",
        })
        self.model = BM25Model(k1=1.2, b=0.75, k3=0.0)

    def expected(self, tf, df, doc_length):
        n = self.index.document_count()
        avg_length = self.index.average_field_length("body")
        idf = math.log((n - df + 0.5) / (df + 0.5))
        k1, b = self.model.k1, self.model.b
        return idf * (k1 + 1) * tf / (k1 * (1 - b + b * doc_length / avg_length) + tf)

    def test_idf_floor(self):
        """Test idf never goes negative for common terms."""
        assert bm25_idf(10, 9) == 0.0
        assert bm25_idf(10, 1) == pytest.approx(math.log(9.5 / 1.5))

    def test_term_score(self):
        """Test a single-term BM25 score against the formula."""
        root = OperatorNode(NodeKind.SUM, [TermNode(self.index, "apple")])
        result = scores(self.index, self.model, root)

        assert result["D1"] == pytest.approx(self.expected(tf=2, df=2, doc_length=3))
        assert result["D2"] == pytest.approx(self.expected(tf=1, df=2, doc_length=5))

    def test_monotonic_in_tf(self):
        """Test the score grows with tf at fixed length and df."""
        index = body_index({
            "A": "t t t u",
            "B": "t u u u",
            "C": "u u u u",
            "D": "v v v v",
            "E": "w w w w",
        })
        root = OperatorNode(NodeKind.SUM, [TermNode(index, "t")])
        result = scores(index, self.model, root)
        assert result["A"] > result["B"] > 0

    def test_sum_adds_matching_children(self):
        """Test SUM is the sum over matching children."""
        root = OperatorNode(NodeKind.SUM, [TermNode(self.index, "apple"), TermNode(self.index, "banana")])
        result = scores(self.index, self.model, root)

        expected_d1 = self.expected(tf=2, df=2, doc_length=3) + self.expected(tf=1, df=2, doc_length=3)
        assert result["D1"] == pytest.approx(expected_d1)
        assert result["D3"] == pytest.approx(self.expected(tf=1, df=2, doc_length=2))

    def test_wsum_normalizes_weights(self):
        """Test WSUM weights are normalized by their total."""
        apple = OperatorNode(NodeKind.SUM, [TermNode(self.index, "apple")])
        banana = OperatorNode(NodeKind.SUM, [TermNode(self.index, "banana")])
        single_apple = scores(self.index, self.model, apple)
        single_banana = scores(self.index, self.model, banana)

        root = OperatorNode(
            NodeKind.WSUM,
            [TermNode(self.index, "apple"), TermNode(self.index, "banana")],
            weights=[3.0, 1.0]
        )
        result = scores(self.index, self.model, root)

        assert result["D1"] == pytest.approx(0.75 * single_apple["D1"] + 0.25 * single_banana["D1"])
        assert result["D2"] == pytest.approx(0.75 * single_apple["D2"])

    def test_and_requires_all(self):
        """Test BM25 AND only scores documents matching every child."""
        root = OperatorNode(NodeKind.AND, [TermNode(self.index, "apple"), TermNode(self.index, "banana")])
        result = scores(self.index, self.model, root)
        assert list(result) == ["D1"]

    def test_query_term_frequency(self):
        """Test k3 saturation of repeated query terms."""
        model = BM25Model(k1=1.2, b=0.75, k3=8.0)
        once = OperatorNode(NodeKind.SUM, [TermNode(self.index, "apple", query_frequency=1)])
        twice = OperatorNode(NodeKind.SUM, [TermNode(self.index, "apple", query_frequency=2)])

        base = scores(self.index, model, once)["D1"]
        repeated = scores(self.index, model, twice)["D1"]
        assert repeated == pytest.approx(base * (9.0 * 2 / 10.0))


class TestIndriScoring:
    """Test the Indri term probabilities and belief operators."""

    def setup_method(self):
        """Setup test data before each test."""
        self.index = body_index({
            "D1": "apple apple banana cherry",
            "D2": "banana banana banana durian",
            "D3": "cherry cherry",
        })
        self.model = IndriModel(mu=10.0, lambda_=0.3)
        self.total = self.index.total_tokens("body")

    def term_prob(self, term, tf, doc_length):
        p_c = self.index.collection_frequency(term, "body") / self.total
        mu, lam = self.model.mu, self.model.lambda_
        return (1 - lam) * (tf + mu * p_c) / (doc_length + mu) + lam * p_c

    def test_term_score(self):
        """Test a single-term probability against the formula."""
        root = OperatorNode(NodeKind.AND, [TermNode(self.index, "apple")])
        result = scores(self.index, self.model, root)
        assert list(result) == ["D1"]
        assert result["D1"] == pytest.approx(self.term_prob("apple", 2, 4))

    def test_and_geometric_mean_with_default_scores(self):
        """Test AND uses the default score for children missing from a document."""
        root = OperatorNode(NodeKind.AND, [TermNode(self.index, "apple"), TermNode(self.index, "banana")])
        result = scores(self.index, self.model, root)

        d1 = math.sqrt(self.term_prob("apple", 2, 4) * self.term_prob("banana", 1, 4))
        d2 = math.sqrt(self.term_prob("apple", 0, 4) * self.term_prob("banana", 3, 4))
        assert result["D1"] == pytest.approx(d1)
        assert result["D2"] == pytest.approx(d2)
        assert "D3" not in result

    def test_wand(self):
        """Test WAND is the weighted geometric mean."""
        root = OperatorNode(
            NodeKind.WAND,
            [TermNode(self.index, "apple"), TermNode(self.index, "cherry")],
            weights=[1.0, 3.0]
        )
        result = scores(self.index, self.model, root)

        d3 = self.term_prob("apple", 0, 2) ** 0.25 * self.term_prob("cherry", 2, 2) ** 0.75
        assert result["D3"] == pytest.approx(d3)

    def test_or(self):
        """Test OR is the complement of every child missing."""
        root = OperatorNode(NodeKind.OR, [TermNode(self.index, "apple"), TermNode(self.index, "durian")])
        result = scores(self.index, self.model, root)

        a, d = self.term_prob("apple", 0, 4), self.term_prob("durian", 1, 4)
        assert result["D2"] == pytest.approx(1 - (1 - a) * (1 - d))

    def test_wsum(self):
        """Test WSUM is the weighted mean of child beliefs."""
        root = OperatorNode(
            NodeKind.WSUM,
            [TermNode(self.index, "banana"), TermNode(self.index, "cherry")],
            weights=[1.0, 1.0]
        )
        result = scores(self.index, self.model, root)

        d1 = 0.5 * self.term_prob("banana", 1, 4) + 0.5 * self.term_prob("cherry", 1, 4)
        assert result["D1"] == pytest.approx(d1)

    def test_nested_default_score(self):
        """Test a nested operator missing a document contributes its default belief."""
        inner = OperatorNode(NodeKind.AND, [TermNode(self.index, "durian")])
        root = OperatorNode(NodeKind.AND, [TermNode(self.index, "apple"), inner])
        result = scores(self.index, self.model, root)

        d1 = math.sqrt(self.term_prob("apple", 2, 4) * self.term_prob("durian", 0, 4))
        assert result["D1"] == pytest.approx(d1)

    def test_converges_to_collection_model(self):
        """Test the default score approaches lambda * P_c for long documents."""
        index = body_index({"L": " ".join(["filler"] * 100000) + " rare", "S": "rare other"})
        model = IndriModel(mu=10.0, lambda_=0.4)
        node = TermNode(index, "rare")

        p_c = index.collection_frequency("rare", "body") / index.total_tokens("body")
        assert model.default_score(node, 0) == pytest.approx(0.4 * p_c, rel=1e-3)

    def test_unsmoothed_models_default_to_zero(self):
        """Test boolean and BM25 models give missing documents no score."""
        node = TermNode(self.index, "apple")
        assert BM25Model().default_score(node, 1) == 0.0
        assert RankedBooleanModel().default_score(node, 1) == 0.0

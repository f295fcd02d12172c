"""
Batch query evaluation: query file in, TREC run file out.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from tqdm import tqdm

from .errors import ConfigurationError
from .index import IndexReader
from .models import RetrievalModel, build_retrieval_model
from .preprocessing import TextPreprocessor
from .query import OperatorNode, QueryEvaluator, ScoreList
from .utils.query_parser import QueryParser
from .utils.query_file import read_query_file
from .utils.trec_writer import write_results
from .utils.parameters import parse_output_length
from .utils.diagnostics import BatchStatistics, Timer, memory_usage_mb

logger = logging.getLogger(__name__)


class BatchRunner:
    """
    Evaluates queries one at a time against a shared index.

    Every query gets a freshly parsed tree; nothing but the read-only index
    is shared between queries.
    """

    def __init__(self, index: IndexReader, model: RetrievalModel, parser: QueryParser,
                 output_length: int = 100, run_tag: str = 'qryeval',
                 show_progress: bool = False, log_memory: bool = False):
        """
        Initialize runner.

        Args:
            index: Open index handle
            model: Retrieval model
            parser: Query parser bound to the same index
            output_length: Results kept per query; negative keeps all
            run_tag: Last column of the run file
            show_progress: Show a progress bar over the query file
            log_memory: Log process memory after every query
        """
        self.index = index
        self.model = model
        self.parser = parser
        self.output_length = output_length
        self.run_tag = run_tag
        self.show_progress = show_progress
        self.log_memory = log_memory
        self.statistics: Optional[BatchStatistics] = None

    @classmethod
    def from_config(cls, config, index: Optional[IndexReader] = None) -> 'BatchRunner':
        """
        Build a runner from configuration.

        Args:
            config: Composed configuration (Hydra + parameter file)
            index: Already opened index; opened from config.paths.index if None

        Returns:
            BatchRunner
        """
        model = build_retrieval_model(config.model)

        if index is None:
            if not config.paths.index:
                raise ConfigurationError("No index path configured (indexPath or QRYEVAL_INDEX_PATH)")
            index = IndexReader.open(config.paths.index)

        preprocessor = TextPreprocessor(config)
        parser = QueryParser(
            index,
            preprocessor,
            fields=list(config.query.fields),
            default_field=config.query.default_field
        )

        return cls(
            index,
            model,
            parser,
            output_length=parse_output_length(config.output.length),
            run_tag=config.output.run_tag,
            show_progress=config.diagnostics.show_progress,
            log_memory=config.diagnostics.log_memory
        )

    def parse(self, query: str) -> OperatorNode:
        """
        Parse a raw query under the model's default operator and check the
        model can score it.
        """
        root = self.parser.parse_query(query, self.model)
        if root.children:
            root.validate(self.model)
        return root

    def evaluate(self, root: OperatorNode) -> ScoreList:
        """Evaluate a parsed tree and truncate to the output length."""
        results = QueryEvaluator(self.index, self.model).evaluate(root)
        results.truncate(self.output_length)
        return results

    def process_query(self, query: str) -> ScoreList:
        """
        Evaluate one raw query.

        Args:
            query: Query text without the query id

        Returns:
            Sorted, truncated ScoreList
        """
        root = self.parse(query)
        logger.info(f"    --> {root}")
        logger.debug("Query tree:\n" + self.parser.format_tree(root))
        return self.evaluate(root)

    def process_query_file(self, query_file: str, output_file: str) -> BatchStatistics:
        """
        Evaluate every query of a query file and write a TREC run file.

        All queries are read and parsed before the output file is opened, so
        a syntax error anywhere aborts the batch without partial output.

        Args:
            query_file: Path to 'qid: text' lines
            output_file: Path of the run file to write

        Returns:
            BatchStatistics for the run
        """
        queries = read_query_file(query_file)
        parsed: List[Tuple[str, OperatorNode]] = [(qid, self.parse(text)) for qid, text in queries]

        self.statistics = BatchStatistics(Path(output_file).stem)

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as writer:
            for qid, root in tqdm(parsed, desc="Evaluating queries", disable=not self.show_progress):
                logger.info(f"Query {qid}: {root}")

                # Left untruncated: the placeholder marks only queries that matched nothing
                with Timer() as timer:
                    results = QueryEvaluator(self.index, self.model).evaluate(root)
                written = write_results(writer, qid, results, self.run_tag, self.output_length)

                memory_mb = memory_usage_mb()
                if self.log_memory:
                    logger.info(f"Memory used: {memory_mb:.1f} MB")

                if len(results) == 0:
                    logger.warning(f"Query {qid} matched nothing; writing placeholder result")

                logger.info(f"Query {qid} matched {len(results)} documents, wrote {written} lines in {timer}")
                self.statistics.add_query_result(qid, timer.elapsed * 1000, memory_mb, min(len(results), written))

        logger.info(f"Wrote results for {len(parsed)} queries to {output_path}")
        return self.statistics

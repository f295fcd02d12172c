#!/usr/bin/env python
"""
Main entry point for batch query evaluation.
Uses Fire for CLI and Hydra for configuration management.

    python main.py run params.txt
    python main.py query "obama family tree" --index_path index.json.gz --model bm25
    python main.py show_config params.txt
"""

import sys
import logging
from pathlib import Path
from typing import List, Optional
import fire
import hydra
from omegaconf import DictConfig, OmegaConf
from dotenv import load_dotenv

# Load .env variables (e.g. QRYEVAL_INDEX_PATH)
load_dotenv()

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from qryeval.errors import QryEvalError
from qryeval.runner import BatchRunner
from qryeval.utils.parameters import read_parameter_file, apply_parameters


class QryEvalCLI:
    """CLI for batch query evaluation."""

    def __init__(self, config_path: str = "conf", config_name: str = "config"):
        """
        Initialize CLI with configuration.

        Args:
            config_path: Path to config directory (relative to this file)
            config_name: Name of main config file
        """
        self.config_path = config_path
        self.config_name = config_name
        self.config: Optional[DictConfig] = None
        self.logger = logging.getLogger(__name__)

    def _init_config(self, param_file: Optional[str] = None, overrides: Optional[List[str]] = None):
        """Compose Hydra configuration and merge the parameter file into it."""
        with hydra.initialize(version_base=None, config_path=self.config_path):
            config = hydra.compose(config_name=self.config_name, overrides=list(overrides or []))

        if param_file is not None:
            config = apply_parameters(config, read_parameter_file(param_file))

        self.config = config

        # Setup logging
        logging.basicConfig(
            level=getattr(logging, self.config.logging.level),
            format=self.config.logging.format
        )
        self.logger = logging.getLogger(__name__)
        return self.config

    def run(self, param_file: str, *overrides: str):
        """
        Evaluate every query in the query file named by a parameter file.

        Args:
            param_file: key=value parameter file
            overrides: Hydra-style overrides, e.g. output.run_tag=run1
        """
        try:
            self._init_config(param_file, overrides)

            self.logger.info("=" * 60)
            self.logger.info("QUERY EVALUATION")
            self.logger.info("=" * 60)
            self.logger.info(f"Index: {self.config.paths.index}")
            self.logger.info(f"Queries: {self.config.paths.queries}")
            self.logger.info(f"Output: {self.config.paths.output}")

            runner = BatchRunner.from_config(self.config)
            statistics = runner.process_query_file(self.config.paths.queries, self.config.paths.output)

        except QryEvalError as e:
            self.logger.error(f"Evaluation aborted: {e}")
            raise

        statistics.log_summary()
        if self.config.diagnostics.save_stats:
            statistics.save(Path(self.config.paths.results_dir))

        return str(self.config.paths.output)

    def query(self, query: str, index_path: str = None, model: str = "bm25",
              max_results: int = 10, *overrides: str):
        """
        Evaluate a single query and log the ranked list.

        Args:
            query: Query text (wrapped in the model's default operator)
            index_path: Index dump to search (defaults to paths.index)
            model: Retrieval model name (unrankedboolean, rankedboolean, bm25, indri)
            max_results: Number of results to show
            overrides: Hydra-style overrides, e.g. model.bm25.k1=0.9
        """
        overrides = [f"model.name={model}", f"output.length={max_results}", *overrides]
        if index_path is not None:
            overrides.append(f"paths.index={index_path}")

        try:
            self._init_config(overrides=overrides)
            runner = BatchRunner.from_config(self.config)
            results = runner.process_query(query)
        except QryEvalError as e:
            self.logger.error(f"Query failed: {e}")
            raise

        self.logger.info("=" * 60)
        self.logger.info("QUERY RESULTS")
        self.logger.info("=" * 60)
        self.logger.info(f"Query: {query}")
        self.logger.info(f"Model: {runner.model}")

        if len(results) == 0:
            self.logger.info("No results.")

        ranked = []
        for i, entry in enumerate(results, 1):
            self.logger.info(f"{i}. {entry.external_id}  score={entry.score:.4f}")
            ranked.append((entry.external_id, entry.score))

        return ranked

    def show_config(self, param_file: str = None, *overrides: str):
        """
        Print the effective configuration.

        Args:
            param_file: Optional parameter file to merge
            overrides: Hydra-style overrides
        """
        self._init_config(param_file, overrides)
        print(OmegaConf.to_yaml(self.config))


def main():
    fire.Fire(QryEvalCLI)


if __name__ == "__main__":
    main()

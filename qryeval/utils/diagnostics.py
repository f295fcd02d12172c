import time
import psutil
import logging
import json
from typing import List, Dict, Any
from pathlib import Path
import numpy as np
from datetime import datetime

logger = logging.getLogger(__name__)


def memory_usage_mb() -> float:
    """Resident memory of the current process in MB."""
    return psutil.Process().memory_info().rss / 1024 / 1024


class Timer:
    """Wall-clock timer usable as a context manager."""

    def __init__(self):
        self.start_time = None
        self.end_time = None

    def start(self):
        self.start_time = time.perf_counter()
        self.end_time = None
        return self

    def stop(self) -> float:
        self.end_time = time.perf_counter()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        """Elapsed seconds (up to now if still running)."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return end - self.start_time

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    def __str__(self):
        return f"{self.elapsed:.3f}s"


class BatchStatistics:
    """Per-query latency, memory and result counts for one batch run."""

    def __init__(self, run_name: str):
        self.run_name = run_name
        self.timestamp = datetime.now().isoformat()
        self.query_ids: List[str] = []
        self.latencies: List[float] = []
        self.memory_usage: List[float] = []
        self.results_count: List[int] = []

    def add_query_result(self, qid: str, latency_ms: float, memory_mb: float, num_results: int):
        """Add a single query result."""
        self.query_ids.append(qid)
        self.latencies.append(latency_ms)
        self.memory_usage.append(memory_mb)
        self.results_count.append(num_results)

    def get_statistics(self) -> Dict[str, Any]:
        """Calculate and return statistics."""
        stats = {
            "run_name": self.run_name,
            "timestamp": self.timestamp,
            "total_queries": len(self.query_ids),
        }
        if not self.query_ids:
            return stats

        latencies = np.array(self.latencies)
        total_ms = float(np.sum(latencies))

        stats.update({
            "latency_ms": {
                "mean": float(np.mean(latencies)),
                "median": float(np.median(latencies)),
                "min": float(np.min(latencies)),
                "max": float(np.max(latencies)),
                "p95": float(np.percentile(latencies, 95)),
                "p99": float(np.percentile(latencies, 99))
            },
            "memory_mb": {
                "mean": float(np.mean(self.memory_usage)),
                "max": float(np.max(self.memory_usage))
            },
            "results": {
                "total": int(np.sum(self.results_count)),
                "empty_queries": int(sum(1 for n in self.results_count if n == 0))
            },
            "throughput_qps": len(self.query_ids) / total_ms * 1000 if total_ms > 0 else 0
        })
        return stats

    def log_summary(self):
        stats = self.get_statistics()
        logger.info("=" * 50)
        logger.info(f"Run: {self.run_name}")
        logger.info(f"Total Queries: {stats['total_queries']}")
        if 'latency_ms' in stats:
            logger.info(f"Mean Latency: {stats['latency_ms']['mean']:.2f} ms")
            logger.info(f"P95 Latency: {stats['latency_ms']['p95']:.2f} ms")
            logger.info(f"Throughput: {stats['throughput_qps']:.2f} queries/sec")
            logger.info(f"Max Memory: {stats['memory_mb']['max']:.2f} MB")
        logger.info("=" * 50)

    def save(self, output_dir: Path) -> Path:
        """Save statistics to disk."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        stats_path = output_dir / f"{self.run_name}_stats.json"
        data = self.get_statistics()
        data["queries"] = [
            {"qid": qid, "latency_ms": latency, "memory_mb": memory, "results": count}
            for qid, latency, memory, count in zip(
                self.query_ids, self.latencies, self.memory_usage, self.results_count)
        ]

        with open(stats_path, 'w') as f:
            json.dump(data, f, indent=2)

        logger.info(f"Saved run statistics to {stats_path}")
        return stats_path

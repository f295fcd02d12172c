"""
Query file reading: one 'queryId: query text' line per query.
"""

from pathlib import Path
from typing import List, Tuple
import logging

from ..errors import QuerySyntaxError

logger = logging.getLogger(__name__)


def parse_query_line(line: str) -> Tuple[str, str]:
    """
    Split a query line at its first ':'.

    Raises:
        QuerySyntaxError: If the line has no ':' or an empty query id
    """
    d = line.find(':')
    if d < 0:
        raise QuerySyntaxError(f"Syntax error: Missing ':' in query line: {line!r}")

    qid = line[:d].strip()
    if not qid:
        raise QuerySyntaxError(f"Syntax error: Empty query id in query line: {line!r}")

    return qid, line[d + 1:].strip()


def read_query_file(query_file: str) -> List[Tuple[str, str]]:
    """
    Read every query of a query file.

    The whole file is validated before any query is evaluated, so a
    malformed line aborts the batch without producing partial output.

    Args:
        query_file: Path to the query file

    Returns:
        List of (query id, query text) in file order
    """
    path = Path(query_file)
    queries = []

    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            queries.append(parse_query_line(line))

    logger.info(f"Read {len(queries)} queries from {path}")
    return queries

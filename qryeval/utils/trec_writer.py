"""
TREC run file output.

Each line is: queryId Q0 externalDocId rank score runTag
"""

from typing import TextIO

from ..query.score_list import ScoreList

PLACEHOLDER_DOC_ID = 'dummy'


def format_results(qid: str, results: ScoreList, run_tag: str, max_results: int = -1):
    """
    Yield TREC lines for one query, best first.

    Args:
        qid: Query identifier
        results: Sorted, untruncated ScoreList
        run_tag: Run identifier written in the last column
        max_results: Maximum number of lines; negative means all. With 0, a
                     query that matched documents writes no lines; only an
                     empty result list writes the placeholder.

    Yields:
        Output lines without trailing newline
    """
    if len(results) == 0:
        yield f"{qid} Q0 {PLACEHOLDER_DOC_ID} 1 0 {run_tag}"
        return

    limit = len(results) if max_results < 0 else min(max_results, len(results))
    for i in range(limit):
        yield f"{qid} Q0 {results.get_external_id(i)} {i + 1} {results.get_score(i)} {run_tag}"


def write_results(writer: TextIO, qid: str, results: ScoreList, run_tag: str, max_results: int = -1) -> int:
    """
    Write TREC lines for one query.

    Returns:
        Number of lines written
    """
    count = 0
    for line in format_results(qid, results, run_tag, max_results):
        writer.write(line + '\n')
        count += 1
    return count

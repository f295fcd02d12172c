"""Utility functions."""

from .query_parser import QueryParser
from .parameters import read_parameter_file, apply_parameters, parse_output_length
from .query_file import read_query_file, parse_query_line
from .trec_writer import format_results, write_results
from .diagnostics import Timer, BatchStatistics, memory_usage_mb

__all__ = [
    'QueryParser',
    'read_parameter_file',
    'apply_parameters',
    'parse_output_length',
    'read_query_file',
    'parse_query_line',
    'format_results',
    'write_results',
    'Timer',
    'BatchStatistics',
    'memory_usage_mb',
]

"""
QryEval - structured query evaluation over a read-only inverted index.
"""

__version__ = "1.0.0"

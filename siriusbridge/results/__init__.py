"""
siriusbridge results module.

Fetches formula, structure, compound class, spectral match, de novo and
fragmentation tree results and shapes them as tables or nested dicts.
"""

from .retrieval import ResultRetriever, RESULT_KINDS, CHILD_KEYS
from .shaping import flatten_results

__all__ = [
    'ResultRetriever',
    'RESULT_KINDS',
    'CHILD_KEYS',
    'flatten_results',
]

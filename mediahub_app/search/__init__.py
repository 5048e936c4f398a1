"""
================================================================================
MediaHub v1.0 - Search Package
================================================================================
Multi-provider search with scoring, clustering and merging.

Components:
  - scorer.py - Completeness score per candidate
  - matcher.py - Decides whether two candidates are the same title
  - merger.py - Folds equivalent candidates into one record
  - aggregator.py - Parallel provider fan-out feeding the merger
================================================================================
"""

from .aggregator import SearchAggregator, parse_search_kind
from .matcher import are_same_media, normalize_title
from .merger import merge_and_deduplicate, merge_items
from .scorer import calculate_completeness_score

__all__ = [
    'SearchAggregator', 'parse_search_kind',
    'are_same_media', 'normalize_title',
    'merge_and_deduplicate', 'merge_items',
    'calculate_completeness_score',
]

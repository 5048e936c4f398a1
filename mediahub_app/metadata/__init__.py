"""
Candidate models and provider adapters for multi-source media search.
"""

from .models import CandidateItem, MediaType, ProviderType, SearchKind

__all__ = ['CandidateItem', 'MediaType', 'ProviderType', 'SearchKind']

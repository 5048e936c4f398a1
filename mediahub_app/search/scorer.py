"""
Completeness scoring for search candidates.

The score only decides which candidate leads a cluster during merging;
it is never persisted.
"""

from ..metadata.models import CandidateItem, ProviderType, PRIMARY_PROVIDER

# Tunable weights
POSTER_WEIGHT = 20
SUMMARY_WEIGHT = 15
RATING_WEIGHTS = {
    'rating_imdb': 10,
    'rating_douban': 10,
    'rating_bangumi': 10,
    'rating_maoyan': 8,
}
DIRECTORS_WEIGHT = 8
PRIMARY_PROVIDER_BONUS = 10

MIN_SUMMARY_LENGTH = 10


def calculate_completeness_score(item: CandidateItem) -> int:
    """Weighted additive data-richness score for one candidate."""
    score = 0

    if item.poster_url:
        score += POSTER_WEIGHT

    if item.has_summary() and len(item.summary) > MIN_SUMMARY_LENGTH:
        score += SUMMARY_WEIGHT

    for slot, weight in RATING_WEIGHTS.items():
        if getattr(item, slot) > 0:
            score += weight

    if item.directors:
        score += DIRECTORS_WEIGHT

    if ProviderType(item.source_type) == PRIMARY_PROVIDER:
        score += PRIMARY_PROVIDER_BONUS

    return score

"""
================================================================================
MediaHub v1.0 - Search Aggregator
================================================================================
Orchestrates parallel provider queries and the merge pipeline.

Flow:
  1. Pick providers for the kind filter (movie/all -> movie providers,
     anime/all -> anime providers)
  2. Query every selected provider in parallel, each under its own deadline
  3. Failed or timed-out providers contribute nothing (logged, not raised)
  4. Score, cluster and merge the combined hits

The aggregator holds no cache and no shared client: build one per request,
it closes every provider it used when the search finishes.
================================================================================
"""

import asyncio
import logging
import os
import time
from typing import List, Optional

from ..metadata.models import CandidateItem, MediaType, SearchKind, MAX_RESULTS_PER_PROVIDER
from ..metadata.providers import BaseMediaProvider, default_providers
from ..services.errors import ValidationError
from .merger import merge_and_deduplicate

logger = logging.getLogger(__name__)

DEFAULT_ADAPTER_DEADLINE = 20.0

# Provider kinds selected by each search kind
KIND_SELECTION = {
    SearchKind.MOVIE: (MediaType.MOVIE,),
    SearchKind.ANIME: (MediaType.ANIME,),
    SearchKind.ALL: (MediaType.MOVIE, MediaType.ANIME),
}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, 'false').lower() in ('1', 'true', 'yes')


def parse_search_kind(kind) -> SearchKind:
    """Validate a kind filter value."""
    try:
        return SearchKind(kind)
    except ValueError:
        allowed = ', '.join(k.value for k in SearchKind)
        raise ValidationError(f"Invalid search type '{kind}'. Must be one of: {allowed}")


class SearchAggregator:
    """
    Multi-provider search with fault isolation.

    Usage:
        aggregator = SearchAggregator()
        results = await aggregator.search("星际穿越", "movie")
    """

    def __init__(
        self,
        providers: Optional[List[BaseMediaProvider]] = None,
        deadline: Optional[float] = None,
        strict_kinds: Optional[bool] = None
    ):
        """
        Args:
            providers: Provider instances in discovery order (None = all four)
            deadline: Seconds each provider may take, detail lookups included
            strict_kinds: Require compatible media kinds when merging
        """
        self.providers = providers if providers is not None else default_providers()

        if deadline is None:
            deadline = float(os.environ.get('SEARCH_ADAPTER_DEADLINE', DEFAULT_ADAPTER_DEADLINE))
        self.deadline = deadline

        if strict_kinds is None:
            strict_kinds = _env_flag('SEARCH_STRICT_KINDS')
        self.strict_kinds = strict_kinds

    def select_providers(self, kind: SearchKind) -> List[BaseMediaProvider]:
        wanted = KIND_SELECTION[kind]
        return [
            provider for provider in self.providers
            if any(provider.serves(media_type) for media_type in wanted)
        ]

    async def search(self, query: str, kind="all") -> List[CandidateItem]:
        """
        Search all providers serving `kind` and merge the results.

        Args:
            query: Free-text title query
            kind: "movie", "anime" or "all"

        Returns:
            Merged candidates, best-scored first

        Raises:
            ValidationError: Unknown kind filter
        """
        search_kind = parse_search_kind(kind)
        query = (query or "").strip()
        if not query:
            return []

        selected = self.select_providers(search_kind)
        if not selected:
            logger.warning(f"No providers available for kind '{search_kind.value}'")
            return []

        start_time = time.time()
        logger.info(f"Searching '{query}' ({search_kind.value}) across {len(selected)} providers")

        try:
            raw_results = await self._parallel_search(query, selected)
        finally:
            await self._close(selected)

        logger.info(f"Got {len(raw_results)} raw results from providers")

        merged = merge_and_deduplicate(raw_results, strict_kinds=self.strict_kinds)

        elapsed = time.time() - start_time
        logger.info(f"Search for '{query}' completed in {elapsed:.2f}s ({len(merged)} results)")
        return merged

    async def _parallel_search(
        self,
        query: str,
        providers: List[BaseMediaProvider]
    ) -> List[CandidateItem]:
        tasks = [
            asyncio.wait_for(provider.search(query), timeout=self.deadline)
            for provider in providers
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # Flatten in discovery order and drop failures
        all_results: List[CandidateItem] = []
        for provider, result in zip(providers, results):
            if isinstance(result, asyncio.TimeoutError):
                logger.error(f"Search timed out for {provider.id} after {self.deadline}s")
                continue
            if isinstance(result, Exception):
                logger.error(f"Search failed for {provider.id}: {result!r}")
                continue

            if result:
                all_results.extend(result[:MAX_RESULTS_PER_PROVIDER])

        return all_results

    async def _close(self, providers: List[BaseMediaProvider]):
        for provider in providers:
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"Failed to close {provider.id}: {e}")

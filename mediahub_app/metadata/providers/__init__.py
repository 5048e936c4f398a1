"""Media search providers."""

from .base import BaseMediaProvider, ProviderError, RateLimiter
from .tmdb import TMDbProvider
from .bangumi import BangumiProvider
from .douban import DoubanProvider
from .maoyan import MaoyanProvider


def default_providers():
    """Fresh provider instances, in discovery order."""
    return [TMDbProvider(), MaoyanProvider(), DoubanProvider(), BangumiProvider()]


__all__ = [
    'BaseMediaProvider', 'ProviderError', 'RateLimiter',
    'TMDbProvider', 'BangumiProvider', 'DoubanProvider', 'MaoyanProvider',
    'default_providers',
]

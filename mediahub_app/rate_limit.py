"""
Rate limiting for the MediaHub API (Flask-Limiter).

Tiers:
- heavy:  /api/search, /api/tmdb     every call fans out to external providers
- medium: collection writes           resolver + upsert transactions
- light:  catalog and list reads

Each tier can be overridden from the environment, e.g.
RATE_LIMIT_HEAVY="10 per minute".
"""

import os
from flask import jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

DEFAULT_TIER_LIMITS = {
    'heavy': "20 per minute",
    'medium': "60 per minute",
    'light': "120 per minute",
}

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    storage_uri=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),
    strategy="fixed-window",
    headers_enabled=True,
)


def tier_limit(tier: str) -> str:
    return os.environ.get(f"RATE_LIMIT_{tier.upper()}", DEFAULT_TIER_LIMITS[tier])


def _tier_decorator(tier: str):
    def decorator(f):
        return limiter.limit(lambda: tier_limit(tier))(f)
    decorator.__name__ = f"limit_{tier}"
    decorator.__doc__ = f"Apply the {tier} rate limit ({DEFAULT_TIER_LIMITS[tier]} by default)."
    return decorator


limit_heavy = _tier_decorator('heavy')
limit_medium = _tier_decorator('medium')
limit_light = _tier_decorator('light')


def rate_limit_exceeded_handler(e):
    retry_after = getattr(e, 'retry_after', None) or 60
    response = jsonify({
        'error': 'Rate limit exceeded',
        'code': 'rate_limited',
        'message': str(e.description),
        'retry_after': retry_after,
    })
    response.status_code = 429
    response.headers['Retry-After'] = str(retry_after)
    return response


def init_rate_limiting(app):
    """Attach the limiter; DISABLE_RATE_LIMITING in config switches it off (tests)."""
    limiter.init_app(app)
    app.errorhandler(429)(rate_limit_exceeded_handler)

    if app.config.get('DISABLE_RATE_LIMITING'):
        limiter.enabled = False

    return limiter

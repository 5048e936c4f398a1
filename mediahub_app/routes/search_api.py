"""
================================================================================
MediaHub v1.0 - Search API Routes
================================================================================
  GET /api/search?q=<query>&type=movie|anime|all

Each request builds its own SearchAggregator (fresh provider clients on a
fresh event loop); nothing is cached between requests.
================================================================================
"""

import asyncio
import logging

from flask import Blueprint, jsonify, request

from mediahub_app.log import log
from mediahub_app.rate_limit import limit_heavy
from mediahub_app.search import SearchAggregator, parse_search_kind
from mediahub_app.services.errors import ServiceError
from .validators import clean_query, error_response, service_error_response

logger = logging.getLogger(__name__)

search_bp = Blueprint('search_api', __name__, url_prefix='/api/search')


def run_async(coro):
    """
    Run async coroutine in sync Flask context.

    A new event loop per call; provider clients never outlive it.
    """
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def build_aggregator() -> SearchAggregator:
    return SearchAggregator()


@search_bp.route('', methods=['GET'])
@limit_heavy
def search():
    """
    Search all providers and return merged results.

    Returns:
        {
            "query": "星际穿越",
            "type": "movie",
            "results": [{"sourceType": "tmdb", "titleZh": ..., "matchCount": 2, ...}],
            "count": 1
        }
    """
    query = clean_query(request.args.get('q'))
    kind_value = request.args.get('type', 'all')

    try:
        kind = parse_search_kind(kind_value)
    except ServiceError as e:
        return service_error_response(e)

    if not query:
        return jsonify({'query': '', 'type': kind.value, 'results': [], 'count': 0})

    try:
        aggregator = build_aggregator()
        results = run_async(aggregator.search(query, kind))
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.error(f"Search failed for '{query}': {e}")
        return error_response('Search failed', code='search_failed', status=500)

    log(f"🔍 Search '{query}' ({kind.value}): {len(results)} results")
    return jsonify({
        'query': query,
        'type': kind.value,
        'results': [item.to_dict() for item in results],
        'count': len(results)
    })

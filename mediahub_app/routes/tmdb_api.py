"""TMDb API proxy.

Forwards calls to the TMDb v3 API with the server-side bearer token so the
token never reaches clients. Missing "language" defaults to zh-CN.

  GET|POST /api/tmdb/<path>   ->   https://api.themoviedb.org/3/<path>
"""

import os
import re

import requests
from flask import Blueprint, jsonify, request

from mediahub_app.csrf import csrf_protect
from mediahub_app.log import log
from mediahub_app.rate_limit import limit_heavy

tmdb_bp = Blueprint('tmdb_api', __name__, url_prefix='/api/tmdb')

TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_LANGUAGE = "zh-CN"
PROXY_TIMEOUT = 15

# TMDb paths are plain segments like "movie/157336/credits"
SAFE_PATH = re.compile(r'^[A-Za-z0-9_\-/.]+$')

session = requests.Session()
session.headers.update({
    'Content-Type': 'application/json',
    'Accept': 'application/json',
})


@tmdb_bp.route('/<path:path>', methods=['GET', 'POST'])
@limit_heavy
@csrf_protect
def proxy(path):
    token = os.environ.get('TMDB_ACCESS_TOKEN')
    if not token:
        log("⚠️ TMDb proxy called but TMDB_ACCESS_TOKEN is not set")
        return jsonify({'error': 'TMDb proxy not configured'}), 503

    if not SAFE_PATH.match(path) or '..' in path:
        return jsonify({'error': 'Invalid TMDb path'}), 400

    params = {key: value for key, value in request.args.items() if value is not None}
    params.setdefault('language', DEFAULT_LANGUAGE)

    target_url = f"{TMDB_BASE_URL}/{path.lstrip('/')}"
    body = request.get_json(silent=True) if request.method == 'POST' else None
    if isinstance(body, dict):
        body.pop('_csrf_token', None)

    try:
        response = session.request(
            request.method,
            target_url,
            params=params,
            json=body,
            headers={'Authorization': f'Bearer {token}'},
            timeout=PROXY_TIMEOUT,
        )
    except requests.RequestException as e:
        log(f"❌ TMDb proxy request failed: {e}")
        return jsonify({'error': 'TMDb request failed'}), 502

    if not response.ok:
        log(f"❌ TMDb API error {response.status_code} for /{path}")
        return jsonify({
            'error': f'TMDb API Error: {response.status_code}',
            'upstream_status': response.status_code
        }), 502

    try:
        return jsonify(response.json())
    except ValueError:
        return jsonify({'error': 'TMDb returned invalid JSON'}), 502

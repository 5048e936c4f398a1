from flask import Blueprint, jsonify

from mediahub_app.database import check_database_connection
from mediahub_app.metadata.providers import default_providers

main_bp = Blueprint('main_api', __name__)


@main_bp.route('/api/health')
def health():
    """Liveness plus database reachability and configured providers."""
    database_ok = check_database_connection()
    providers = [
        {
            'id': provider.id,
            'name': provider.name,
            'kinds': sorted(kind.value for kind in provider.media_kinds),
        }
        for provider in default_providers()
    ]
    return jsonify({
        'status': 'ok' if database_ok else 'degraded',
        'database': database_ok,
        'providers': providers,
    }), 200 if database_ok else 503

"""
Collections API Blueprint

Per-user watch lists. Collecting an item resolves it to the canonical
catalog first, so the same title collected from two providers lands on
one row.

  POST   /api/collections                  collect (upsert)
  GET    /api/collections?status=          list, newest first
  GET    /api/collections/check            status by provider identity
  POST   /api/collections/<id>/status      change status
  DELETE /api/collections/<id>             remove
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required

from mediahub_app.csrf import csrf_protect
from mediahub_app.database import get_db_session
from mediahub_app.log import log
from mediahub_app.rate_limit import limit_light, limit_medium
from mediahub_app.services import collections as collection_service
from mediahub_app.services.errors import ServiceError
from mediahub_app.services.resolver import MediaPayload
from .auth_api import current_user_id
from .validators import error_response, json_body, service_error_response

logger = logging.getLogger(__name__)

collections_bp = Blueprint('collections_api', __name__, url_prefix='/api/collections')


@collections_bp.route('', methods=['POST'])
@login_required
@limit_medium
@csrf_protect
def collect():
    """
    Collect an item from search results.

    Request: the search result fields (camelCase) plus "status".
    """
    data = json_body()
    status = data.get('status', 'wish')

    try:
        collection_service.validate_status(status)
        payload = MediaPayload.from_dict(data)
        with get_db_session() as session:
            result = collection_service.collect(session, current_user_id(), payload, status)
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.error(f"Collect failed: {e}")
        return error_response('Collect failed', code='internal_error', status=500)

    log(f"📌 Collected {payload.source_type}:{payload.source_id} as {status}")
    return jsonify({'status': 'ok', **result})


@collections_bp.route('', methods=['GET'])
@login_required
@limit_light
def list_collections():
    status = request.args.get('status') or None
    with get_db_session() as session:
        items = collection_service.list_for_user(session, current_user_id(), status)
    return jsonify({'collections': items, 'count': len(items)})


@collections_bp.route('/check', methods=['GET'])
@login_required
@limit_light
def check_collection():
    source_type = request.args.get('source_type', '')
    source_id = request.args.get('source_id', '')
    if not source_type or not source_id:
        return error_response('source_type and source_id are required')

    with get_db_session() as session:
        result = collection_service.check_status(session, current_user_id(), source_type, source_id)
    return jsonify({'collection': result})


@collections_bp.route('/<collection_id>/status', methods=['POST'])
@login_required
@limit_medium
@csrf_protect
def update_collection_status(collection_id):
    data = json_body()

    try:
        with get_db_session() as session:
            result = collection_service.update_status(
                session, current_user_id(), collection_id, data.get('status')
            )
    except ServiceError as e:
        return service_error_response(e)

    return jsonify(result)


@collections_bp.route('/<collection_id>', methods=['DELETE'])
@login_required
@limit_medium
@csrf_protect
def delete_collection(collection_id):
    try:
        with get_db_session() as session:
            collection_service.remove_collection(session, current_user_id(), collection_id)
    except ServiceError as e:
        return service_error_response(e)

    return jsonify({'status': 'ok'})

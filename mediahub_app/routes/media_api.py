"""
Media API Blueprint

Read-only catalog lookups. Anonymous requests get the media without
collection state; logged-in requests also see their own status.

  GET /api/media/<id>
  GET /api/media/by-source?source_type=&source_id=
  GET /api/media/<id>/sources
"""

from flask import Blueprint, jsonify, request

from mediahub_app.database import get_db_session
from mediahub_app.rate_limit import limit_light
from mediahub_app.services import media as media_service
from .auth_api import current_user_id
from .validators import error_response

media_bp = Blueprint('media_api', __name__, url_prefix='/api/media')


@media_bp.route('/by-source', methods=['GET'])
@limit_light
def get_by_source():
    source_type = request.args.get('source_type', '')
    source_id = request.args.get('source_id', '')
    if not source_type or not source_id:
        return error_response('source_type and source_id are required')

    with get_db_session() as session:
        media = media_service.get_media_by_source(session, source_type, source_id, current_user_id())

    if media is None:
        return error_response('Media not found', code='not_found', status=404)
    return jsonify(media)


@media_bp.route('/<media_id>', methods=['GET'])
@limit_light
def get_media(media_id):
    with get_db_session() as session:
        media = media_service.get_media(session, media_id, current_user_id())

    if media is None:
        return error_response('Media not found', code='not_found', status=404)
    return jsonify(media)


@media_bp.route('/<media_id>/sources', methods=['GET'])
@limit_light
def get_sources(media_id):
    with get_db_session() as session:
        sources = media_service.get_media_sources(session, media_id)
    return jsonify({'sources': sources, 'count': len(sources)})

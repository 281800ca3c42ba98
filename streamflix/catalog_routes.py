# streamflix/catalog_routes.py
from flask import Blueprint, request, jsonify, g
from .auth import token_required
from .config import MAX_PAGE_SIZE
from .errors import ValidationError
from .utils import parse_pagination, parse_int
from .video_handler import play_video
from . import catalog, profiles

catalog_bp = Blueprint('catalog', __name__)


def _requested_profile(required=False):
    """?profile_id= 로 지정된 본인 프로필"""
    profile_id = request.args.get('profile_id', '').strip()
    if not profile_id:
        if required:
            raise ValidationError('profile_id가 필요합니다.')
        return None
    return profiles.get_profile(g.current_user['id'], profile_id)


def _maturity_limit():
    profile = _requested_profile()
    return profile['maturity_limit'] if profile else None


@catalog_bp.route('/categories', methods=['GET'])
@token_required
def list_categories():
    return jsonify({'categories': catalog.list_categories()}), 200


@catalog_bp.route('/categories/<category_id>', methods=['GET'])
@token_required
def get_category(category_id):
    return jsonify(catalog.get_category(category_id)), 200


@catalog_bp.route('/videos', methods=['GET'])
@token_required
def list_videos():
    """카탈로그 목록 (category, q, sort, limit, offset, profile_id)"""
    limit, offset = parse_pagination(request.args)
    result = catalog.list_videos(
        category=request.args.get('category', '').strip() or None,
        q=request.args.get('q', ''),
        sort=request.args.get('sort', 'newest'),
        limit=limit,
        offset=offset,
        maturity_limit=_maturity_limit()
    )
    return jsonify(result), 200


@catalog_bp.route('/videos/trending', methods=['GET'])
@token_required
def trending():
    limit = parse_int(request.args.get('limit'), 'limit', 10, 1, MAX_PAGE_SIZE)
    return jsonify({'videos': catalog.trending(limit, _maturity_limit())}), 200


@catalog_bp.route('/videos/<video_id>', methods=['GET'])
@token_required
def get_video_detail(video_id):
    """비디오 상세 정보"""
    video = catalog.get_video(video_id, _maturity_limit())
    return jsonify(catalog.serialize_video(video_id, video)), 200


@catalog_bp.route('/videos/<video_id>/play', methods=['GET'])
@token_required
def play(video_id):
    """재생용 스트림 URL 발급"""
    profile = _requested_profile(required=True)
    return jsonify(play_video(video_id, profile)), 200

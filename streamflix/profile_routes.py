# streamflix/profile_routes.py
from flask import Blueprint, request, jsonify, g
from .auth import token_required
from .config import MAX_PAGE_SIZE
from .utils import get_json_body, parse_int, parse_bool
from . import catalog, profiles
from .recommendations import recommend_for_profile

profile_bp = Blueprint('profiles', __name__)


def _current_profile(profile_id):
    return profiles.get_profile(g.current_user['id'], profile_id)


def _with_videos(entries, profile):
    """기록 항목에 비디오 요약 정보 붙이기 (볼 수 없는 비디오는 제외)"""
    videos = catalog.get_videos_by_ids([e['video_id'] for e in entries], profile['maturity_limit'])
    result = []
    for entry in entries:
        data = videos.get(entry['video_id'])
        if data is None:
            continue
        item = dict(entry)
        item['video'] = catalog.serialize_video(entry['video_id'], data)
        result.append(item)
    return result


@profile_bp.route('/profiles', methods=['GET'])
@token_required
def list_profiles():
    return jsonify({'profiles': profiles.list_profiles(g.current_user['id'])}), 200


@profile_bp.route('/profiles', methods=['POST'])
@token_required
def create_profile():
    data = get_json_body()
    profile = profiles.create_profile(
        g.current_user['id'],
        data.get('name'),
        avatar=data.get('avatar', ''),
        is_kids=data.get('is_kids', False),
        language=data.get('language') or None,
        maturity_limit=data.get('maturity_limit')
    )
    return jsonify(profile), 201


@profile_bp.route('/profiles/<profile_id>', methods=['GET'])
@token_required
def get_profile(profile_id):
    return jsonify(_current_profile(profile_id)), 200


@profile_bp.route('/profiles/<profile_id>', methods=['PATCH'])
@token_required
def update_profile(profile_id):
    profile = profiles.update_profile(g.current_user['id'], profile_id, get_json_body())
    return jsonify(profile), 200


@profile_bp.route('/profiles/<profile_id>', methods=['DELETE'])
@token_required
def delete_profile(profile_id):
    profiles.delete_profile(g.current_user['id'], profile_id)
    return '', 204


# ==== 시청 기록 ====

@profile_bp.route('/profiles/<profile_id>/history', methods=['GET'])
@token_required
def get_history(profile_id):
    """이어보기 목록 (include_completed=true면 전체 기록)"""
    profile = _current_profile(profile_id)
    include_completed = parse_bool(request.args.get('include_completed'), 'include_completed')
    entries = profiles.list_history(profile_id, include_completed=include_completed)
    return jsonify({'history': _with_videos(entries, profile)}), 200


@profile_bp.route('/profiles/<profile_id>/history/<video_id>', methods=['PUT'])
@token_required
def update_progress(profile_id, video_id):
    profile = _current_profile(profile_id)
    video = catalog.get_video(video_id, profile['maturity_limit'])
    data = get_json_body()
    entry = profiles.record_progress(
        profile_id, video, data.get('position_seconds'), data.get('duration_seconds')
    )
    return jsonify(entry), 200


@profile_bp.route('/profiles/<profile_id>/history/<video_id>', methods=['DELETE'])
@token_required
def delete_history(profile_id, video_id):
    _current_profile(profile_id)
    profiles.remove_history(profile_id, video_id)
    return '', 204


# ==== 내가 찜한 콘텐츠 ====

@profile_bp.route('/profiles/<profile_id>/watchlist', methods=['GET'])
@token_required
def get_watchlist(profile_id):
    profile = _current_profile(profile_id)
    entries = profiles.list_watchlist(profile_id)
    return jsonify({'watchlist': _with_videos(entries, profile)}), 200


@profile_bp.route('/profiles/<profile_id>/watchlist/<video_id>', methods=['PUT'])
@token_required
def add_watchlist(profile_id, video_id):
    profile = _current_profile(profile_id)
    catalog.get_video(video_id, profile['maturity_limit'])
    return jsonify(profiles.add_to_watchlist(profile_id, video_id)), 200


@profile_bp.route('/profiles/<profile_id>/watchlist/<video_id>', methods=['DELETE'])
@token_required
def remove_watchlist(profile_id, video_id):
    _current_profile(profile_id)
    profiles.remove_from_watchlist(profile_id, video_id)
    return '', 204


# ==== 평가 ====

@profile_bp.route('/profiles/<profile_id>/ratings/<video_id>', methods=['PUT'])
@token_required
def rate(profile_id, video_id):
    profile = _current_profile(profile_id)
    catalog.get_video(video_id, profile['maturity_limit'])
    entry = profiles.rate_video(profile_id, video_id, get_json_body().get('rating'))
    return jsonify(entry), 200


@profile_bp.route('/profiles/<profile_id>/ratings/<video_id>', methods=['DELETE'])
@token_required
def clear_rating(profile_id, video_id):
    _current_profile(profile_id)
    profiles.clear_rating(profile_id, video_id)
    return '', 204


# ==== 추천 ====

@profile_bp.route('/profiles/<profile_id>/recommendations', methods=['GET'])
@token_required
def get_recommendations(profile_id):
    profile = _current_profile(profile_id)
    limit = parse_int(request.args.get('limit'), 'limit', 20, 1, MAX_PAGE_SIZE)
    return jsonify(recommend_for_profile(profile, limit=limit)), 200

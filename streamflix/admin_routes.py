# streamflix/admin_routes.py
import threading
import logging
from flask import Blueprint, request, jsonify
from .auth import admin_required
from .database import stream_collection, USERS, PROFILES
from .utils import get_json_body
from .video_handler import process_video_upload, request_upload, confirm_upload
from .scheduler import refresh_expiring_urls, scheduler_status
from . import catalog

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


# ==== 카테고리 관리 ====

@admin_bp.route('/categories', methods=['POST'])
@admin_required
def create_category():
    data = get_json_body()
    category = catalog.create_category(data.get('name'), data.get('description', ''), data.get('order', 0))
    return jsonify(category), 201


@admin_bp.route('/categories/<category_id>', methods=['PATCH'])
@admin_required
def update_category(category_id):
    return jsonify(catalog.update_category(category_id, get_json_body())), 200


@admin_bp.route('/categories/<category_id>', methods=['DELETE'])
@admin_required
def delete_category(category_id):
    catalog.delete_category(category_id)
    return '', 204


# ==== 비디오 관리 ====

@admin_bp.route('/videos', methods=['GET'])
@admin_required
def list_videos():
    """관리자용 영상 목록 (status 필터 가능)"""
    videos = catalog.list_all_videos(request.args.get('status') or None)
    return jsonify({'videos': videos, 'total_count': len(videos)}), 200


@admin_bp.route('/videos', methods=['POST'])
@admin_required
def upload_video():
    """서버 경유 비디오 업로드 (multipart/form-data)"""
    metadata = {key: request.form.get(key) for key in request.form}
    video = process_video_upload(
        request.files.get('file'), metadata, request.files.get('thumbnail')
    )
    return jsonify(video), 201


@admin_bp.route('/videos/upload-url', methods=['POST'])
@admin_required
def request_upload_url():
    """S3 직접 업로드용 presigned POST 발급"""
    return jsonify(request_upload(get_json_body())), 201


@admin_bp.route('/videos/<video_id>/confirm', methods=['POST'])
@admin_required
def confirm_video_upload(video_id):
    return jsonify(confirm_upload(video_id)), 200


@admin_bp.route('/videos/<video_id>', methods=['PATCH'])
@admin_required
def update_video(video_id):
    return jsonify(catalog.update_video(video_id, get_json_body())), 200


@admin_bp.route('/videos/<video_id>', methods=['DELETE'])
@admin_required
def delete_video(video_id):
    catalog.delete_video(video_id)
    return '', 204


# ==== 운영 ====

@admin_bp.route('/stats', methods=['GET'])
@admin_required
def get_stats():
    stats = catalog.catalog_stats()
    stats['users'] = sum(1 for _ in stream_collection(USERS))
    stats['profiles'] = sum(1 for _ in stream_collection(PROFILES))
    return jsonify(stats), 200


@admin_bp.route('/scheduler-status', methods=['GET'])
@admin_required
def get_scheduler_status():
    """스케줄러 상태 확인"""
    return jsonify(scheduler_status()), 200


@admin_bp.route('/refresh-urls', methods=['POST'])
@admin_required
def manual_refresh_urls():
    """수동 URL 갱신 (백그라운드)"""
    thread = threading.Thread(target=refresh_expiring_urls, daemon=True)
    thread.start()
    logger.info("수동 URL 갱신 요청")
    return jsonify({
        'message': 'URL 갱신 작업이 백그라운드에서 시작되었습니다.',
        'status': 'started'
    }), 202

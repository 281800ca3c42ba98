# streamflix/video_handler.py
import io
import uuid
import tempfile
import mimetypes
import logging
from pathlib import Path
from datetime import datetime, timedelta
from moviepy.video.io.VideoFileClip import VideoFileClip
from PIL import Image, UnidentifiedImageError
from .config import (
    ALLOWED_VIDEO_EXTENSIONS, ALLOWED_IMAGE_EXTENSIONS, THUMBNAIL_MAX_SIZE,
    MAX_DIRECT_UPLOAD_BYTES, UPLOAD_URL_EXPIRES
)
from .database import get_db, create_document, update_document, VIDEOS, UPLOAD_SESSIONS
from .errors import ValidationError, NotFoundError, ConflictError
from .storage import (
    upload_file, upload_bytes, generate_presigned_url, generate_presigned_post,
    head_object, refresh_url_if_needed, delete_objects
)
from .utils import utcnow_iso, format_duration, parse_int
from . import catalog, profiles

logger = logging.getLogger(__name__)


def get_video_duration(file_path):
    """비디오 길이(초) 가져오기, 실패하면 0"""
    try:
        with VideoFileClip(str(file_path)) as clip:
            return int(clip.duration or 0)
    except Exception as e:
        logger.warning(f"비디오 길이 가져오기 실패: {e}")
        return 0


def is_allowed_file(filename, allowed_extensions):
    """파일 확장자 확인"""
    return Path(filename or '').suffix.lower() in allowed_extensions


def make_thumbnail(image_file):
    """업로드된 이미지를 JPEG 썸네일 바이트로 변환"""
    if not is_allowed_file(image_file.filename, ALLOWED_IMAGE_EXTENSIONS):
        raise ValidationError(f"지원하지 않는 이미지 형식입니다. 지원 형식: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}")
    try:
        with Image.open(image_file.stream) as image:
            image = image.convert('RGB')
            image.thumbnail(THUMBNAIL_MAX_SIZE)
            buffer = io.BytesIO()
            image.save(buffer, format='JPEG', quality=85)
            return buffer.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"썸네일 변환 실패: {e}")
        raise ValidationError('썸네일 이미지를 읽을 수 없습니다.')


def _new_video_document(metadata, video_key, status, upload_method):
    now = utcnow_iso()
    doc = dict(metadata)
    doc.update({
        'status': status,
        'video_key': video_key,
        'thumbnail_key': '',
        'thumbnail_url': '',
        'stream_url': '',
        'duration_seconds': 0,
        'time': '0:00',
        'file_size': 0,
        'view_count': 0,
        'upload_method': upload_method,
        'created_at': now,
        'updated_at': now
    })
    return doc


def process_video_upload(file, metadata, thumbnail_file=None):
    """서버 경유 비디오 업로드 처리"""
    if not file or not file.filename:
        raise ValidationError('파일이 필요합니다.')
    if not is_allowed_file(file.filename, ALLOWED_VIDEO_EXTENSIONS):
        raise ValidationError(f"지원하지 않는 비디오 형식입니다. 지원 형식: {', '.join(sorted(ALLOWED_VIDEO_EXTENSIONS))}")

    cleaned = catalog.validate_video_metadata(metadata)
    thumbnail_bytes = None
    if thumbnail_file and thumbnail_file.filename:
        thumbnail_bytes = make_thumbnail(thumbnail_file)

    video_id = uuid.uuid4().hex
    folder = f"videos/{video_id}"
    ext = Path(file.filename).suffix.lower()
    video_key = f"{folder}/video{ext}"

    with tempfile.NamedTemporaryFile(suffix=ext, delete=False) as tmp_file:
        tmp_path = Path(tmp_file.name)
    try:
        file.save(tmp_path)
        duration_sec = get_video_duration(tmp_path)
        file_size = tmp_path.stat().st_size
        logger.info(f"비디오 길이: {format_duration(duration_sec)} (총 {duration_sec}초)")

        upload_file(tmp_path, video_key, content_type=file.mimetype or 'video/mp4')
    finally:
        tmp_path.unlink(missing_ok=True)

    doc = _new_video_document(cleaned, video_key, 'ready', 'server')
    doc.update({
        'duration_seconds': duration_sec,
        'time': format_duration(duration_sec),
        'file_size': file_size
    })

    try:
        if thumbnail_bytes:
            thumbnail_key = f"{folder}/thumbnail.jpg"
            upload_bytes(thumbnail_bytes, thumbnail_key, content_type='image/jpeg')
            doc['thumbnail_key'] = thumbnail_key
            doc['thumbnail_url'] = generate_presigned_url(thumbnail_key)
            logger.info(f"썸네일 업로드 완료: {thumbnail_key}")

        create_document(VIDEOS, video_id, doc)
    except Exception as e:
        # 문서가 없으면 업로드한 객체도 남기지 않음
        logger.error(f"❌ 비디오 등록 실패, 업로드 객체 삭제: {video_id} - {e}")
        delete_objects([video_key, doc['thumbnail_key']])
        raise

    logger.info(f"✅ 비디오 업로드 완료: {video_id}")
    return catalog.serialize_admin_video(video_id, doc)


def request_upload(data):
    """클라이언트가 S3에 직접 업로드할 수 있는 권한 발급

    비디오 문서는 pending 상태로 만들어지고 confirm_upload 이후에 카탈로그에 노출됩니다.
    """
    file_name = str(data.get('file_name') or '').strip()
    if not file_name:
        raise ValidationError('file_name이 필요합니다.')
    if not is_allowed_file(file_name, ALLOWED_VIDEO_EXTENSIONS):
        raise ValidationError(f"지원하지 않는 비디오 형식입니다. 지원 형식: {', '.join(sorted(ALLOWED_VIDEO_EXTENSIONS))}")

    content_type = data.get('content_type') or mimetypes.guess_type(file_name)[0] or 'video/mp4'
    if not content_type.startswith('video/'):
        raise ValidationError('비디오 파일만 업로드할 수 있습니다.')
    file_size = parse_int(data.get('file_size'), 'file_size', None, 1, MAX_DIRECT_UPLOAD_BYTES)
    duration_sec = parse_int(data.get('duration_seconds'), 'duration_seconds', 0, 0)
    cleaned = catalog.validate_video_metadata(data)

    video_id = uuid.uuid4().hex
    ext = Path(file_name).suffix.lower()
    video_key = f"videos/{video_id}/video{ext}"

    presigned_post = generate_presigned_post(video_key, content_type, MAX_DIRECT_UPLOAD_BYTES)

    doc = _new_video_document(cleaned, video_key, 'pending', 'direct')
    doc.update({'duration_seconds': duration_sec, 'time': format_duration(duration_sec)})
    create_document(VIDEOS, video_id, doc)

    upload_id = uuid.uuid4().hex
    create_document(UPLOAD_SESSIONS, upload_id, {
        'upload_id': upload_id,
        'video_id': video_id,
        'video_key': video_key,
        'file_name': file_name,
        'file_size': file_size,
        'content_type': content_type,
        'status': 'pending',
        'created_at': utcnow_iso()
    })

    logger.info(f"📤 직접 업로드 권한 발급: {video_id} ({file_name})")
    return {
        'upload_id': upload_id,
        'video_id': video_id,
        'upload_url': presigned_post['url'],
        'fields': presigned_post['fields'],
        'key': video_key,
        'expires_at': (datetime.utcnow() + timedelta(seconds=UPLOAD_URL_EXPIRES)).isoformat()
    }


def confirm_upload(video_id):
    """직접 업로드 완료 확인 후 비디오를 ready로 전환"""
    video = catalog.get_video_document(video_id)
    if video.get('status') == 'ready':
        raise ConflictError('이미 업로드가 완료된 비디오입니다.')

    session_doc = None
    for doc in get_db().collection(UPLOAD_SESSIONS).where('video_id', '==', video_id).stream():
        if doc.to_dict().get('status') == 'pending':
            session_doc = doc
            break
    if session_doc is None:
        raise NotFoundError('유효하지 않은 업로드 세션입니다.')

    obj_info = head_object(video['video_key'])
    if obj_info is None:
        raise NotFoundError('업로드된 파일을 찾을 수 없습니다.')
    actual_size = obj_info['ContentLength']

    now = utcnow_iso()
    update_data = {'status': 'ready', 'file_size': actual_size, 'updated_at': now}
    update_document(VIDEOS, video_id, update_data)
    session_doc.reference.update({'status': 'completed', 'completed_at': now})
    video.update(update_data)

    logger.info(f"✅ 직접 업로드 완료: {video_id} ({actual_size / 1024 / 1024:.1f}MB)")
    return catalog.serialize_admin_video(video_id, video)


def play_video(video_id, profile):
    """재생 정보 (presigned 스트림 URL + 이어보기 위치)"""
    video = catalog.get_video(video_id, profile['maturity_limit'])
    stream_url, changed = refresh_url_if_needed(video.get('stream_url'), video.get('video_key'))
    if not stream_url:
        raise NotFoundError('재생할 수 있는 파일이 없습니다.')

    catalog.increment_view_count(video_id, video, {'stream_url': stream_url} if changed else None)

    history = profiles.get_history_entry(profile['id'], video_id)
    resume_position = 0
    if history and not history.get('completed'):
        resume_position = history.get('position_seconds', 0)

    return {
        'video_id': video_id,
        'profile_id': profile['id'],
        'title': video.get('title', ''),
        'video_url': stream_url,
        'duration_seconds': video.get('duration_seconds', 0),
        'resume_position_seconds': resume_position
    }

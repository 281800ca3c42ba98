# streamflix/catalog.py
import logging
from datetime import datetime
from .config import MATURITY_RATINGS
from .database import (
    get_db, get_document, create_document, update_document, delete_document,
    CATEGORIES, VIDEOS, UPLOAD_SESSIONS
)
from .errors import ValidationError, NotFoundError, ConflictError
from .storage import refresh_url_if_needed, delete_objects
from .utils import utcnow_iso, slugify, parse_csv_list, parse_int, maturity_allows, maturity_level

logger = logging.getLogger(__name__)

SORT_OPTIONS = ('newest', 'popular', 'title')
DEFAULT_VIDEO_MATURITY = 'PG-13'
TITLE_MAX_LENGTH = 200


# ==== 카테고리 ====

def serialize_category(category_id, data):
    return {
        'id': category_id,
        'name': data.get('name', ''),
        'description': data.get('description', ''),
        'order': data.get('order', 0)
    }


def list_categories():
    """카테고리 목록 (order, 이름 순)"""
    result = [serialize_category(doc.id, doc.to_dict()) for doc in get_db().collection(CATEGORIES).stream()]
    result.sort(key=lambda c: (c['order'], c['name'].lower()))
    return result


def get_category(category_id):
    data = get_document(CATEGORIES, category_id)
    if data is None:
        raise NotFoundError('카테고리를 찾을 수 없습니다.')
    return serialize_category(category_id, data)


def create_category(name, description='', order=0):
    """카테고리 생성 (ID는 이름의 slug)"""
    name = str(name or '').strip()
    category_id = slugify(name)
    if not name or not category_id:
        raise ValidationError('카테고리 이름이 필요합니다.')
    if get_document(CATEGORIES, category_id) is not None:
        raise ConflictError('이미 존재하는 카테고리입니다.')

    data = {
        'name': name,
        'description': str(description or ''),
        'order': parse_int(order, 'order', 0),
        'created_at': utcnow_iso()
    }
    create_document(CATEGORIES, category_id, data)
    logger.info(f"📂 카테고리 생성: {category_id}")
    return serialize_category(category_id, data)


def update_category(category_id, data):
    category = get_category(category_id)
    update_data = {}
    if 'name' in data:
        name = str(data['name'] or '').strip()
        if not name:
            raise ValidationError('카테고리 이름이 필요합니다.')
        update_data['name'] = name
    if 'description' in data:
        update_data['description'] = str(data['description'] or '')
    if 'order' in data:
        update_data['order'] = parse_int(data['order'], 'order', 0)
    if not update_data:
        raise ValidationError('변경할 항목이 없습니다.')

    update_document(CATEGORIES, category_id, update_data)
    category.update(update_data)
    return category


def delete_category(category_id):
    """카테고리 삭제 (비디오가 참조 중이면 409)"""
    get_category(category_id)
    in_use = list(get_db().collection(VIDEOS).where('category_ids', 'array_contains', category_id).limit(1).stream())
    if in_use:
        raise ConflictError('이 카테고리를 사용하는 비디오가 있습니다.')
    delete_document(CATEGORIES, category_id)
    logger.info(f"🗑️ 카테고리 삭제: {category_id}")


# ==== 비디오 메타데이터 ====

def validate_video_metadata(data, partial=False):
    """비디오 메타데이터 검증 및 정리"""
    cleaned = {}

    if 'title' in data or not partial:
        title = str(data.get('title') or '').strip()
        if not title or len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(f"제목은 1~{TITLE_MAX_LENGTH}자여야 합니다.")
        cleaned['title'] = title

    if 'description' in data or not partial:
        cleaned['description'] = str(data.get('description') or '').strip()

    if 'category_ids' in data or not partial:
        category_ids = parse_csv_list(data.get('category_ids'))
        for category_id in category_ids:
            if get_document(CATEGORIES, category_id) is None:
                raise ValidationError(f"존재하지 않는 카테고리입니다: {category_id}")
        cleaned['category_ids'] = category_ids

    if 'tags' in data or not partial:
        cleaned['tags'] = [tag.lower() for tag in parse_csv_list(data.get('tags'))]

    if 'maturity_rating' in data or not partial:
        rating = data.get('maturity_rating') or DEFAULT_VIDEO_MATURITY
        maturity_level(rating)
        cleaned['maturity_rating'] = rating

    if 'release_year' in data or not partial:
        cleaned['release_year'] = parse_int(
            data.get('release_year'), 'release_year', None, 1888, datetime.utcnow().year + 1
        )

    return cleaned


def serialize_video(video_id, data, refresh_urls=True):
    """비디오 요약 정보 (썸네일 URL 갱신 포함)"""
    thumbnail_url = data.get('thumbnail_url', '')
    if refresh_urls and data.get('thumbnail_key'):
        thumbnail_url, changed = refresh_url_if_needed(thumbnail_url, data['thumbnail_key'])
        if changed:
            update_document(VIDEOS, video_id, {'thumbnail_url': thumbnail_url})

    return {
        'id': video_id,
        'title': data.get('title', ''),
        'description': data.get('description', ''),
        'category_ids': data.get('category_ids', []),
        'tags': data.get('tags', []),
        'maturity_rating': data.get('maturity_rating', DEFAULT_VIDEO_MATURITY),
        'release_year': data.get('release_year'),
        'duration_seconds': data.get('duration_seconds', 0),
        'time': data.get('time', '0:00'),
        'view_count': data.get('view_count', 0),
        'thumbnail_url': thumbnail_url,
        'created_at': data.get('created_at')
    }


def serialize_admin_video(video_id, data):
    """관리자용 (상태, 파일 정보 포함)"""
    result = serialize_video(video_id, data)
    result.update({
        'status': data.get('status'),
        'video_key': data.get('video_key', ''),
        'file_size': data.get('file_size', 0),
        'updated_at': data.get('updated_at')
    })
    return result


# ==== 카탈로그 조회 ====

def load_visible_videos(maturity_limit=None):
    """재생 가능한(ready) 비디오 중 관람 등급 허용 대상 [(id, data), ...]"""
    items = []
    for doc in get_db().collection(VIDEOS).where('status', '==', 'ready').stream():
        data = doc.to_dict()
        if maturity_allows(maturity_limit, data.get('maturity_rating')):
            items.append((doc.id, data))
    return items


def _matches_query(data, query):
    query = query.lower()
    fields = [data.get('title', ''), data.get('description', '')] + list(data.get('tags', []))
    return any(query in (field or '').lower() for field in fields)


def sort_videos(items, sort='newest'):
    """items: [(id, data), ...]"""
    if sort not in SORT_OPTIONS:
        raise ValidationError(f"sort 값은 {', '.join(SORT_OPTIONS)} 중 하나여야 합니다.")
    if sort == 'title':
        return sorted(items, key=lambda item: item[1].get('title', '').lower())
    items = sorted(items, key=lambda item: item[1].get('created_at') or '', reverse=True)
    if sort == 'popular':
        items = sorted(items, key=lambda item: item[1].get('view_count', 0), reverse=True)
    return items


def list_videos(category=None, q=None, sort='newest', limit=20, offset=0, maturity_limit=None):
    """카탈로그 목록 (필터, 검색, 정렬, 페이지네이션)"""
    if category:
        get_category(category)
    q = (q or '').strip()

    items = load_visible_videos(maturity_limit)
    if category:
        items = [item for item in items if category in item[1].get('category_ids', [])]
    if q:
        items = [item for item in items if _matches_query(item[1], q)]
    items = sort_videos(items, sort)

    page = items[offset:offset + limit]
    return {
        'videos': [serialize_video(video_id, data) for video_id, data in page],
        'total': len(items),
        'limit': limit,
        'offset': offset
    }


def trending(limit=10, maturity_limit=None):
    items = sort_videos(load_visible_videos(maturity_limit), 'popular')
    return [serialize_video(video_id, data) for video_id, data in items[:limit]]


def get_video_document(video_id):
    """상태와 무관하게 비디오 문서 조회"""
    data = get_document(VIDEOS, video_id)
    if data is None:
        raise NotFoundError('비디오를 찾을 수 없습니다.')
    data['id'] = video_id
    return data


def get_video(video_id, maturity_limit=None):
    """시청 가능한 비디오 조회 (준비 중이거나 등급 초과면 404)"""
    data = get_document(VIDEOS, video_id)
    if data is None or data.get('status') != 'ready':
        raise NotFoundError('비디오를 찾을 수 없습니다.')
    if not maturity_allows(maturity_limit, data.get('maturity_rating')):
        raise NotFoundError('비디오를 찾을 수 없습니다.')
    data['id'] = video_id
    return data


def get_videos_by_ids(video_ids, maturity_limit=None):
    """id 목록 → {id: data} (없거나 볼 수 없는 비디오 제외)"""
    result = {}
    for video_id in video_ids:
        data = get_document(VIDEOS, video_id)
        if data and data.get('status') == 'ready' and maturity_allows(maturity_limit, data.get('maturity_rating')):
            result[video_id] = data
    return result


def increment_view_count(video_id, data, extra=None):
    """조회수 증가 (read-modify-write)"""
    update_data = {'view_count': int(data.get('view_count', 0)) + 1}
    if extra:
        update_data.update(extra)
    update_document(VIDEOS, video_id, update_data)
    data.update(update_data)


# ==== 관리자 ====

def list_all_videos(status=None):
    """관리자용 전체 목록 (최신 순)"""
    items = []
    for doc in get_db().collection(VIDEOS).stream():
        data = doc.to_dict()
        if status and data.get('status') != status:
            continue
        items.append((doc.id, data))
    items.sort(key=lambda item: item[1].get('created_at') or '', reverse=True)
    return [serialize_admin_video(video_id, data) for video_id, data in items]


def update_video(video_id, data):
    video = get_video_document(video_id)
    update_data = validate_video_metadata(data, partial=True)
    if not update_data:
        raise ValidationError('변경할 항목이 없습니다.')
    update_data['updated_at'] = utcnow_iso()
    update_document(VIDEOS, video_id, update_data)
    video.update(update_data)
    logger.info(f"✏️ 비디오 수정: {video_id}")
    return serialize_admin_video(video_id, video)


def delete_video(video_id):
    """비디오 삭제 (S3 객체 → 업로드 세션 → 문서 순)"""
    video = get_video_document(video_id)
    delete_objects([video.get('video_key'), video.get('thumbnail_key')])

    sessions = get_db().collection(UPLOAD_SESSIONS).where('video_id', '==', video_id).stream()
    for session_doc in sessions:
        session_doc.reference.delete()

    delete_document(VIDEOS, video_id)
    logger.info(f"🗑️ 비디오 삭제: {video_id}")


def catalog_stats():
    """관리자 통계"""
    total = ready = pending = views = 0
    for doc in get_db().collection(VIDEOS).stream():
        data = doc.to_dict()
        total += 1
        views += int(data.get('view_count', 0))
        if data.get('status') == 'ready':
            ready += 1
        elif data.get('status') == 'pending':
            pending += 1
    return {
        'videos': total,
        'ready_videos': ready,
        'pending_videos': pending,
        'total_views': views,
        'categories': len(list_categories()),
        'maturity_ratings': MATURITY_RATINGS
    }

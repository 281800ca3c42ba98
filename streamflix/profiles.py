# streamflix/profiles.py
import math
import uuid
import logging
from .config import (
    MAX_PROFILES_PER_USER, PROFILE_NAME_MAX_LENGTH, KIDS_MATURITY_LIMIT,
    DEFAULT_MATURITY_LIMIT, SUPPORTED_LANGUAGES, DEFAULT_LANGUAGE, COMPLETION_THRESHOLD
)
from .database import (
    get_db, get_document, create_document, update_document, delete_document,
    profile_subcollection, delete_collection_docs,
    PROFILES, HISTORY, WATCHLIST, RATINGS
)
from .errors import ValidationError, NotFoundError, ConflictError
from .utils import utcnow_iso, maturity_level, parse_bool

logger = logging.getLogger(__name__)

RATING_VALUES = ('up', 'down')


def serialize_profile(profile_id, data):
    return {
        'id': profile_id,
        'name': data.get('name', ''),
        'avatar': data.get('avatar', ''),
        'is_kids': data.get('is_kids', False),
        'maturity_limit': data.get('maturity_limit', DEFAULT_MATURITY_LIMIT),
        'language': data.get('language', DEFAULT_LANGUAGE),
        'created_at': data.get('created_at')
    }


def list_profiles(user_id):
    """사용자의 프로필 목록 (생성 순)"""
    docs = get_db().collection(PROFILES).where('user_id', '==', user_id).stream()
    result = [serialize_profile(doc.id, doc.to_dict()) for doc in docs]
    result.sort(key=lambda p: p.get('created_at') or '')
    return result


def get_profile(user_id, profile_id):
    """본인 소유 프로필 조회 (다른 사용자의 프로필은 404)"""
    data = get_document(PROFILES, profile_id)
    if data is None or data.get('user_id') != user_id:
        raise NotFoundError('프로필을 찾을 수 없습니다.')
    return serialize_profile(profile_id, data)


def _clean_name(name):
    name = str(name or '').strip()
    if not name or len(name) > PROFILE_NAME_MAX_LENGTH:
        raise ValidationError(f"프로필 이름은 1~{PROFILE_NAME_MAX_LENGTH}자여야 합니다.")
    return name


def _ensure_unique_name(user_id, name, exclude_id=None):
    for profile in list_profiles(user_id):
        if profile['id'] != exclude_id and profile['name'].lower() == name.lower():
            raise ConflictError('같은 이름의 프로필이 이미 있습니다.')


def _clean_language(language):
    if not isinstance(language, str) or language not in SUPPORTED_LANGUAGES:
        raise ValidationError(f"지원하지 않는 언어입니다: {language}")
    return language


def _resolve_maturity(is_kids, maturity_limit):
    """키즈 프로필은 PG 이하로 제한"""
    if maturity_limit is None:
        maturity_limit = KIDS_MATURITY_LIMIT if is_kids else DEFAULT_MATURITY_LIMIT
    maturity_level(maturity_limit)
    if is_kids and maturity_level(maturity_limit) > maturity_level(KIDS_MATURITY_LIMIT):
        maturity_limit = KIDS_MATURITY_LIMIT
    return maturity_limit


def create_profile(user_id, name, avatar='', is_kids=False, language=DEFAULT_LANGUAGE, maturity_limit=None):
    """프로필 생성"""
    name = _clean_name(name)
    existing = list_profiles(user_id)
    if len(existing) >= MAX_PROFILES_PER_USER:
        raise ConflictError(f"프로필은 최대 {MAX_PROFILES_PER_USER}개까지 만들 수 있습니다.")
    _ensure_unique_name(user_id, name)

    is_kids = parse_bool(is_kids, 'is_kids')
    profile_id = uuid.uuid4().hex
    data = {
        'user_id': user_id,
        'name': name,
        'avatar': str(avatar or ''),
        'is_kids': is_kids,
        'maturity_limit': _resolve_maturity(is_kids, maturity_limit),
        'language': _clean_language(language or DEFAULT_LANGUAGE),
        'created_at': utcnow_iso()
    }
    create_document(PROFILES, profile_id, data)
    logger.info(f"👤 프로필 생성: {user_id} / {name}")
    return serialize_profile(profile_id, data)


def update_profile(user_id, profile_id, data):
    """프로필 수정"""
    profile = get_profile(user_id, profile_id)
    update_data = {}

    if 'name' in data:
        name = _clean_name(data['name'])
        _ensure_unique_name(user_id, name, exclude_id=profile_id)
        update_data['name'] = name
    if 'avatar' in data:
        update_data['avatar'] = str(data['avatar'] or '')
    if 'language' in data:
        update_data['language'] = _clean_language(data['language'])

    is_kids = parse_bool(data['is_kids'], 'is_kids') if 'is_kids' in data else profile['is_kids']
    if 'is_kids' in data or 'maturity_limit' in data:
        requested = data.get('maturity_limit', profile['maturity_limit'])
        if 'is_kids' in data and not is_kids and 'maturity_limit' not in data:
            requested = DEFAULT_MATURITY_LIMIT
        update_data['is_kids'] = is_kids
        update_data['maturity_limit'] = _resolve_maturity(is_kids, requested)

    if not update_data:
        raise ValidationError('변경할 항목이 없습니다.')

    update_document(PROFILES, profile_id, update_data)
    profile.update(update_data)
    return profile


def delete_profile_data(profile_id):
    """프로필 문서와 하위 컬렉션 삭제"""
    for name in (HISTORY, WATCHLIST, RATINGS):
        delete_collection_docs(profile_subcollection(profile_id, name))
    delete_document(PROFILES, profile_id)


def delete_profile(user_id, profile_id):
    """프로필 삭제 (마지막 프로필은 삭제 불가)"""
    get_profile(user_id, profile_id)
    if len(list_profiles(user_id)) <= 1:
        raise ConflictError('마지막 프로필은 삭제할 수 없습니다.')
    delete_profile_data(profile_id)
    logger.info(f"🗑️ 프로필 삭제: {profile_id}")


# ==== 시청 기록 ====

def get_history_entry(profile_id, video_id):
    doc = profile_subcollection(profile_id, HISTORY).document(video_id).get()
    return doc.to_dict() if doc.exists else None


def record_progress(profile_id, video, position_seconds, duration_seconds=None):
    """시청 위치 저장"""
    try:
        position = float(position_seconds)
    except (TypeError, ValueError):
        raise ValidationError('position_seconds 값은 숫자여야 합니다.')
    if not math.isfinite(position) or position < 0:
        raise ValidationError('position_seconds 값은 0 이상의 유한한 숫자여야 합니다.')

    duration = duration_seconds if duration_seconds is not None else video.get('duration_seconds')
    try:
        duration = float(duration or 0)
    except (TypeError, ValueError):
        raise ValidationError('duration_seconds 값은 숫자여야 합니다.')
    if not math.isfinite(duration) or duration < 0:
        raise ValidationError('duration_seconds 값은 0 이상의 유한한 숫자여야 합니다.')
    if duration > 0:
        position = min(position, duration)

    entry = {
        'video_id': video['id'],
        'position_seconds': position,
        'duration_seconds': duration,
        'completed': duration > 0 and position >= duration * COMPLETION_THRESHOLD,
        'updated_at': utcnow_iso()
    }
    profile_subcollection(profile_id, HISTORY).document(video['id']).set(entry)
    return entry


def list_history(profile_id, include_completed=False):
    """시청 기록 (최근 순)"""
    entries = []
    for doc in profile_subcollection(profile_id, HISTORY).stream():
        entry = doc.to_dict()
        entry['video_id'] = doc.id
        if include_completed or not entry.get('completed'):
            entries.append(entry)
    entries.sort(key=lambda e: e.get('updated_at') or '', reverse=True)
    return entries


def remove_history(profile_id, video_id):
    ref = profile_subcollection(profile_id, HISTORY).document(video_id)
    if not ref.get().exists:
        raise NotFoundError('시청 기록이 없습니다.')
    ref.delete()


# ==== 내가 찜한 콘텐츠 ====

def add_to_watchlist(profile_id, video_id):
    """찜 목록에 추가 (이미 있으면 그대로)"""
    ref = profile_subcollection(profile_id, WATCHLIST).document(video_id)
    doc = ref.get()
    if doc.exists:
        return doc.to_dict()
    entry = {'video_id': video_id, 'added_at': utcnow_iso()}
    ref.set(entry)
    return entry


def remove_from_watchlist(profile_id, video_id):
    ref = profile_subcollection(profile_id, WATCHLIST).document(video_id)
    if not ref.get().exists:
        raise NotFoundError('찜 목록에 없는 비디오입니다.')
    ref.delete()


def list_watchlist(profile_id):
    entries = []
    for doc in profile_subcollection(profile_id, WATCHLIST).stream():
        entry = doc.to_dict()
        entry['video_id'] = doc.id
        entries.append(entry)
    entries.sort(key=lambda e: e.get('added_at') or '', reverse=True)
    return entries


# ==== 평가 ====

def rate_video(profile_id, video_id, rating):
    """좋아요/싫어요"""
    if rating not in RATING_VALUES:
        raise ValidationError("rating 값은 'up' 또는 'down'이어야 합니다.")
    entry = {'video_id': video_id, 'rating': rating, 'rated_at': utcnow_iso()}
    profile_subcollection(profile_id, RATINGS).document(video_id).set(entry)
    return entry


def clear_rating(profile_id, video_id):
    ref = profile_subcollection(profile_id, RATINGS).document(video_id)
    if not ref.get().exists:
        raise NotFoundError('평가 기록이 없습니다.')
    ref.delete()


def list_ratings(profile_id):
    """video_id → 'up' | 'down'"""
    return {
        doc.id: doc.to_dict().get('rating')
        for doc in profile_subcollection(profile_id, RATINGS).stream()
    }

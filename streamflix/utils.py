# streamflix/utils.py
import re
from datetime import datetime
from flask import request
from .config import MATURITY_RATINGS, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .errors import ValidationError

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def utcnow_iso():
    """현재 UTC 시각 (ISO 문자열)"""
    return datetime.utcnow().isoformat()


def format_duration(duration_sec):
    """초 → m:ss 형식"""
    duration_sec = int(duration_sec or 0)
    minutes = duration_sec // 60
    seconds = duration_sec % 60
    return f"{minutes}:{seconds:02d}"


def slugify(text):
    """카테고리 ID용 slug 생성"""
    slug = re.sub(r'[^\w가-힣]+', '-', text.strip().lower())
    return slug.strip('-_')


def parse_csv_list(value):
    """'a, b,c' 또는 리스트 → 정리된 리스트"""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(',')
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ValidationError('목록 형식이 올바르지 않습니다.')
    result = []
    for item in items:
        item = str(item).strip()
        if item and item not in result:
            result.append(item)
    return result


def optional_text(value, name):
    """문자열 필드 (None이면 빈 문자열, 문자열이 아니면 ValidationError)"""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f"{name} 값은 문자열이어야 합니다.")
    return value.strip()


def parse_bool(value, name, default=False):
    """bool 또는 'true'/'false' 형태의 문자열 파싱"""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('1', 'true', 'yes'):
            return True
        if lowered in ('0', 'false', 'no', ''):
            return False
    raise ValidationError(f"{name} 값은 true 또는 false여야 합니다.")


def is_valid_email(email):
    return bool(EMAIL_PATTERN.match(email or ''))


def maturity_level(rating):
    """관람 등급 순위 (알 수 없는 등급은 ValidationError)"""
    try:
        return MATURITY_RATINGS.index(rating)
    except ValueError:
        raise ValidationError(f"관람 등급은 {', '.join(MATURITY_RATINGS)} 중 하나여야 합니다.")


def maturity_allows(limit, rating):
    """limit 등급의 프로필이 rating 등급 콘텐츠를 볼 수 있는지"""
    if not limit:
        return True
    return maturity_level(rating or MATURITY_RATINGS[0]) <= maturity_level(limit)


def parse_int(value, name, default=None, minimum=None, maximum=None):
    """쿼리/바디의 정수 파라미터 파싱"""
    if value is None or value == '':
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} 값은 정수여야 합니다.")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{name} 값은 {minimum} 이상이어야 합니다.")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{name} 값은 {maximum} 이하여야 합니다.")
    return number


def parse_pagination(args):
    """limit / offset 파싱"""
    limit = parse_int(args.get('limit'), 'limit', DEFAULT_PAGE_SIZE, 1, MAX_PAGE_SIZE)
    offset = parse_int(args.get('offset'), 'offset', 0, 0)
    return limit, offset


def get_json_body():
    """JSON 요청 바디 (없거나 객체가 아니면 빈 dict)"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

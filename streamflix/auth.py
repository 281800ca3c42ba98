# streamflix/auth.py
import uuid
import logging
import jwt
from datetime import datetime, timedelta
from functools import wraps
from flask import request, g
from werkzeug.security import generate_password_hash, check_password_hash
from .config import (
    ADMIN_EMAIL, ADMIN_PASSWORD, JWT_SECRET, JWT_ALGORITHM,
    JWT_ACCESS_EXPIRES_MINUTES, JWT_REFRESH_EXPIRES_DAYS, MIN_PASSWORD_LENGTH
)
from .database import (
    get_db, get_document, create_document, update_document, delete_document,
    USERS, REVOKED_TOKENS
)
from .errors import AuthError, ForbiddenError, ConflictError, ValidationError
from .utils import utcnow_iso, is_valid_email, optional_text
from . import profiles

logger = logging.getLogger(__name__)

TOKEN_LIFETIMES = {
    'access': timedelta(minutes=JWT_ACCESS_EXPIRES_MINUTES),
    'refresh': timedelta(days=JWT_REFRESH_EXPIRES_DAYS),
}


# ==== 비밀번호 ====

def hash_password(password):
    return generate_password_hash(password)


def check_password(password_hash, password):
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def _validate_password(password):
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"비밀번호는 {MIN_PASSWORD_LENGTH}자 이상이어야 합니다.")


# ==== 사용자 ====

def normalize_email(email):
    return optional_text(email, 'email').lower()


def public_user(user):
    """외부 응답용 사용자 정보 (비밀번호 해시 제외)"""
    return {
        'id': user['id'],
        'email': user.get('email'),
        'display_name': user.get('display_name', ''),
        'role': user.get('role', 'user'),
        'created_at': user.get('created_at')
    }


def get_user(user_id):
    data = get_document(USERS, user_id)
    if data is None:
        return None
    data['id'] = user_id
    return data


def find_user_by_email(email):
    """이메일로 사용자 조회"""
    docs = get_db().collection(USERS).where('email', '==', normalize_email(email)).limit(1).stream()
    for doc in docs:
        user = doc.to_dict()
        user['id'] = doc.id
        return user
    return None


def register_user(email, password, display_name=None, role='user'):
    """회원가입 + 기본 프로필 생성"""
    email = normalize_email(email)
    if not is_valid_email(email):
        raise ValidationError('올바른 이메일 주소를 입력하세요.')
    _validate_password(password)

    display_name = optional_text(display_name, 'display_name') or email.split('@')[0]
    if len(display_name) > 50:
        raise ValidationError('이름은 50자 이하여야 합니다.')

    if find_user_by_email(email):
        raise ConflictError('이미 가입된 이메일입니다.')

    user_id = uuid.uuid4().hex
    now = utcnow_iso()
    user = {
        'email': email,
        'password_hash': hash_password(password),
        'display_name': display_name,
        'role': role,
        'created_at': now,
        'updated_at': now
    }
    create_document(USERS, user_id, user)
    profiles.create_profile(user_id, display_name[:30])

    logger.info(f"✅ 회원가입 완료: {email} ({role})")
    user['id'] = user_id
    return user


def authenticate(email, password):
    """이메일/비밀번호 확인"""
    user = find_user_by_email(email)
    if not isinstance(password, str) or not user or not check_password(user.get('password_hash'), password):
        raise AuthError('이메일 또는 비밀번호가 올바르지 않습니다.')
    return user


def update_user(user, data):
    """표시 이름 변경"""
    if 'display_name' not in data:
        raise ValidationError('변경할 항목이 없습니다.')
    display_name = optional_text(data.get('display_name'), 'display_name')
    if not display_name or len(display_name) > 50:
        raise ValidationError('이름은 1~50자여야 합니다.')

    update_data = {'display_name': display_name, 'updated_at': utcnow_iso()}
    update_document(USERS, user['id'], update_data)
    user.update(update_data)
    return user


def change_password(user, current_password, new_password):
    """비밀번호 변경 (현재 비밀번호 필요)"""
    if not isinstance(current_password, str) or not check_password(user.get('password_hash'), current_password):
        raise ValidationError('현재 비밀번호가 올바르지 않습니다.')
    _validate_password(new_password)
    update_document(USERS, user['id'], {
        'password_hash': hash_password(new_password),
        'updated_at': utcnow_iso()
    })
    logger.info(f"🔑 비밀번호 변경: {user['id']}")


def delete_user(user):
    """계정 삭제 (프로필과 시청 데이터 포함)"""
    for profile in profiles.list_profiles(user['id']):
        profiles.delete_profile_data(profile['id'])
    delete_document(USERS, user['id'])
    logger.info(f"🗑️ 계정 삭제: {user['id']}")


def ensure_admin_account():
    """환경변수에 지정된 관리자 계정 보장"""
    if not ADMIN_EMAIL or not ADMIN_PASSWORD:
        return None

    existing = find_user_by_email(ADMIN_EMAIL)
    if existing:
        if existing.get('role') != 'admin':
            update_document(USERS, existing['id'], {'role': 'admin', 'updated_at': utcnow_iso()})
            existing['role'] = 'admin'
            logger.info(f"관리자 권한 부여: {ADMIN_EMAIL}")
        return existing

    return register_user(ADMIN_EMAIL, ADMIN_PASSWORD, 'Admin', role='admin')


# ==== JWT ====

def create_token(user, token_type='access'):
    """JWT 토큰 생성"""
    now = datetime.utcnow()
    payload = {
        'sub': user['id'],
        'role': user.get('role', 'user'),
        'type': token_type,
        'jti': uuid.uuid4().hex,
        'iat': now,
        'exp': now + TOKEN_LIFETIMES[token_type]
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def issue_tokens(user):
    return {
        'access_token': create_token(user, 'access'),
        'refresh_token': create_token(user, 'refresh'),
        'token_type': 'Bearer',
        'expires_in': int(TOKEN_LIFETIMES['access'].total_seconds())
    }


def is_token_revoked(jti):
    return get_document(REVOKED_TOKENS, jti) is not None


def decode_token(token, expected_type='access'):
    """JWT 토큰 검증"""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError('만료된 토큰입니다.')
    except jwt.InvalidTokenError:
        raise AuthError('유효하지 않은 토큰입니다.')

    if payload.get('type') != expected_type:
        raise AuthError('토큰 종류가 올바르지 않습니다.')
    if not payload.get('jti') or is_token_revoked(payload['jti']):
        raise AuthError('로그아웃된 토큰입니다.')
    return payload


def revoke_token(payload):
    """토큰 폐기 (로그아웃)"""
    expires_at = datetime.utcfromtimestamp(payload['exp']).isoformat() if payload.get('exp') else None
    create_document(REVOKED_TOKENS, payload['jti'], {
        'user_id': payload.get('sub'),
        'type': payload.get('type'),
        'revoked_at': utcnow_iso(),
        'expires_at': expires_at
    })


def refresh_access_token(refresh_token):
    """refresh 토큰으로 access 토큰 재발급"""
    payload = decode_token(refresh_token, expected_type='refresh')
    user = get_user(payload['sub'])
    if not user:
        raise AuthError('사용자를 찾을 수 없습니다.')
    return {
        'access_token': create_token(user, 'access'),
        'token_type': 'Bearer',
        'expires_in': int(TOKEN_LIFETIMES['access'].total_seconds())
    }


def get_bearer_token():
    auth_header = request.headers.get('Authorization', None)
    if not auth_header or not auth_header.startswith('Bearer '):
        raise AuthError('인증이 필요합니다.')
    return auth_header.split(' ', 1)[1].strip()


def token_required(f):
    """사용자 인증 데코레이터"""
    @wraps(f)
    def decorated(*args, **kwargs):
        payload = decode_token(get_bearer_token())
        user = get_user(payload['sub'])
        if not user:
            raise AuthError('사용자를 찾을 수 없습니다.')
        g.current_user = user
        g.token_payload = payload
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """관리자 인증 데코레이터"""
    @wraps(f)
    @token_required
    def decorated(*args, **kwargs):
        if g.current_user.get('role') != 'admin':
            raise ForbiddenError('관리자 권한이 필요합니다.')
        return f(*args, **kwargs)
    return decorated

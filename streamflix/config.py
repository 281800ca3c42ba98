# streamflix/config.py

import os

# 환경변수 설정
ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', '')
ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', '')
JWT_SECRET = os.environ.get('JWT_SECRET', 'supersecretjwt')
JWT_ALGORITHM = 'HS256'
JWT_ACCESS_EXPIRES_MINUTES = int(os.environ.get('JWT_ACCESS_EXPIRES_MINUTES', 60))
JWT_REFRESH_EXPIRES_DAYS = int(os.environ.get('JWT_REFRESH_EXPIRES_DAYS', 14))
SECRET_KEY = os.environ.get('FLASK_SECRET_KEY', 'supersecret')

# S3 호환 스토리지 설정 (S3_ENDPOINT_URL이 비어 있으면 AWS 사용)
AWS_ACCESS_KEY = os.environ.get('AWS_ACCESS_KEY', '')
AWS_SECRET_KEY = os.environ.get('AWS_SECRET_KEY', '')
REGION_NAME = os.environ.get('REGION_NAME', 'us-east-1')
BUCKET_NAME = os.environ.get('BUCKET_NAME', 'streamflix-media')
S3_ENDPOINT_URL = os.environ.get('S3_ENDPOINT_URL') or None

PRESIGNED_URL_EXPIRES = int(os.environ.get('PRESIGNED_URL_EXPIRES', 6 * 3600))  # 6시간
UPLOAD_URL_EXPIRES = int(os.environ.get('UPLOAD_URL_EXPIRES', 3600))  # 1시간

# Firebase 설정 (project_id가 없으면 기본 자격 증명 사용)
FIREBASE_CREDS = None
if os.environ.get('project_id') and os.environ.get('private_key'):
    FIREBASE_CREDS = {
        "type": os.environ.get("type", "service_account"),
        "project_id": os.environ["project_id"],
        "private_key_id": os.environ.get("private_key_id", ""),
        "private_key": os.environ["private_key"].replace('\\n', '\n'),
        "client_email": os.environ.get("client_email", ""),
        "client_id": os.environ.get("client_id", ""),
        "auth_uri": os.environ.get("auth_uri", "https://accounts.google.com/o/oauth2/auth"),
        "token_uri": os.environ.get("token_uri", "https://oauth2.googleapis.com/token"),
        "auth_provider_x509_cert_url": os.environ.get("auth_provider_x509_cert_url", "https://www.googleapis.com/oauth2/v1/certs"),
        "client_x509_cert_url": os.environ.get("client_x509_cert_url", "")
    }

# 업로드 설정
MAX_CONTENT_LENGTH = 2 * 1024 * 1024 * 1024  # 2GB (서버 경유 업로드)
MAX_DIRECT_UPLOAD_BYTES = 10 * 1024 * 1024 * 1024  # 10GB (S3 직접 업로드)
ALLOWED_VIDEO_EXTENSIONS = {'.mp4', '.mov', '.mkv', '.webm', '.m4v', '.avi'}
ALLOWED_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp'}
THUMBNAIL_MAX_SIZE = (1280, 720)

# 프로필 설정
MAX_PROFILES_PER_USER = 5
PROFILE_NAME_MAX_LENGTH = 30
MIN_PASSWORD_LENGTH = 8

# 관람 등급 (낮은 등급 → 높은 등급 순서)
MATURITY_RATINGS = ['G', 'PG', 'PG-13', 'R', 'NC-17']
KIDS_MATURITY_LIMIT = 'PG'
DEFAULT_MATURITY_LIMIT = 'NC-17'

# 지원 언어
SUPPORTED_LANGUAGES = {
    'en': 'English',
    'ko': '한국어',
    'ja': '日本語',
    'es': 'Español',
    'fr': 'Français',
    'de': 'Deutsch'
}
DEFAULT_LANGUAGE = 'en'

# 카탈로그 페이지네이션
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# 시청 완료 판정 비율
COMPLETION_THRESHOLD = 0.95

# 스케줄러 설정
URL_REFRESH_INTERVAL_HOURS = int(os.environ.get('URL_REFRESH_INTERVAL_HOURS', 3))
URL_REFRESH_MARGIN_MINUTES = 120
STALE_UPLOAD_HOURS = 24

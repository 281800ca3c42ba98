# streamflix/storage.py
import logging
import threading
from datetime import datetime, timedelta
from urllib.parse import urlparse, parse_qs
import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from .config import (
    AWS_ACCESS_KEY, AWS_SECRET_KEY, REGION_NAME, BUCKET_NAME, S3_ENDPOINT_URL,
    PRESIGNED_URL_EXPIRES, UPLOAD_URL_EXPIRES
)

logger = logging.getLogger(__name__)

# 대용량 파일 업로드 설정
s3_config = TransferConfig(
    multipart_threshold=1024 * 1024 * 25,
    multipart_chunksize=1024 * 1024 * 50,
    max_concurrency=5,
    use_threads=True
)

_s3 = None
_s3_lock = threading.Lock()


def get_s3():
    """S3 클라이언트 (지연 생성)"""
    global _s3
    if _s3 is None:
        with _s3_lock:
            if _s3 is None:
                _s3 = boto3.client(
                    's3',
                    aws_access_key_id=AWS_ACCESS_KEY or None,
                    aws_secret_access_key=AWS_SECRET_KEY or None,
                    region_name=REGION_NAME,
                    endpoint_url=S3_ENDPOINT_URL,
                    config=Config(signature_version='s3v4')
                )
    return _s3


def reset_s3_client():
    """S3 클라이언트 재생성 강제"""
    global _s3
    _s3 = None


def generate_presigned_url(key, expires_in=PRESIGNED_URL_EXPIRES):
    """S3 객체에 대해 presigned URL 생성"""
    return get_s3().generate_presigned_url(
        ClientMethod='get_object',
        Params={'Bucket': BUCKET_NAME, 'Key': key},
        ExpiresIn=expires_in
    )


def generate_presigned_post(key, content_type, max_bytes, expires_in=UPLOAD_URL_EXPIRES):
    """클라이언트 직접 업로드용 presigned POST 생성"""
    return get_s3().generate_presigned_post(
        Bucket=BUCKET_NAME,
        Key=key,
        Fields={'Content-Type': content_type},
        Conditions=[
            {'Content-Type': content_type},
            ['content-length-range', 1, max_bytes]
        ],
        ExpiresIn=expires_in
    )


def upload_file(file_path, key, content_type=None):
    """파일을 S3에 업로드"""
    extra_args = {'ContentType': content_type} if content_type else None
    get_s3().upload_file(str(file_path), BUCKET_NAME, key, ExtraArgs=extra_args, Config=s3_config)


def upload_bytes(data, key, content_type=None):
    """바이트 데이터를 S3에 업로드"""
    params = {'Bucket': BUCKET_NAME, 'Key': key, 'Body': data}
    if content_type:
        params['ContentType'] = content_type
    get_s3().put_object(**params)


def head_object(key):
    """객체 메타데이터 조회, 없으면 None"""
    try:
        return get_s3().head_object(Bucket=BUCKET_NAME, Key=key)
    except ClientError as e:
        code = e.response.get('Error', {}).get('Code')
        if code in ('404', 'NoSuchKey', 'NotFound'):
            return None
        raise


def delete_objects(keys):
    """여러 객체 삭제 (빈 키는 무시)"""
    objects = [{'Key': key} for key in keys if key]
    if not objects:
        return 0
    get_s3().delete_objects(Bucket=BUCKET_NAME, Delete={'Objects': objects, 'Quiet': True})
    logger.info(f"🗑️ S3 객체 {len(objects)}개 삭제")
    return len(objects)


def bucket_is_healthy():
    """버킷 접근 가능 여부"""
    try:
        get_s3().head_bucket(Bucket=BUCKET_NAME)
        return True
    except (BotoCoreError, ClientError) as e:
        logger.warning(f"S3 상태 확인 실패: {e}")
        return False


def is_presigned_url_expired(url, safety_margin_minutes=60):
    """Presigned URL 만료 확인 (파싱할 수 없으면 만료로 간주)"""
    try:
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        if 'X-Amz-Date' not in query or 'X-Amz-Expires' not in query:
            return True
        issued_str = query['X-Amz-Date'][0]
        expires_in = int(query['X-Amz-Expires'][0])
        issued_time = datetime.strptime(issued_str, '%Y%m%dT%H%M%SZ')
        expiry_time = issued_time + timedelta(seconds=expires_in)
        margin_time = datetime.utcnow() + timedelta(minutes=safety_margin_minutes)
        return margin_time >= expiry_time
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"URL 검사 중 오류: {e}")
        return True


def refresh_url_if_needed(stored_url, key, safety_margin_minutes=60):
    """저장된 URL이 유효하면 그대로, 만료 임박이면 새로 발급

    (url, changed) 튜플을 반환합니다. key가 없으면 ('', False).
    """
    if not key:
        return '', False
    if stored_url and not is_presigned_url_expired(stored_url, safety_margin_minutes):
        return stored_url, False
    return generate_presigned_url(key), True

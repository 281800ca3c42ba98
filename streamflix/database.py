# streamflix/database.py
import logging
import threading
import firebase_admin
from firebase_admin import credentials, firestore
from .config import FIREBASE_CREDS

logger = logging.getLogger(__name__)

USERS = 'users'
PROFILES = 'profiles'
CATEGORIES = 'categories'
VIDEOS = 'videos'
UPLOAD_SESSIONS = 'upload_sessions'
REVOKED_TOKENS = 'revoked_tokens'

# 프로필 하위 컬렉션
HISTORY = 'history'
WATCHLIST = 'watchlist'
RATINGS = 'ratings'

_db = None
_db_lock = threading.Lock()


def initialize_firebase():
    """Firebase Admin SDK 초기화"""
    if firebase_admin._apps:
        return
    if FIREBASE_CREDS:
        cred = credentials.Certificate(FIREBASE_CREDS)
    else:
        cred = credentials.ApplicationDefault()
    firebase_admin.initialize_app(cred)
    logger.info("✅ Firebase 초기화 완료")


def get_db():
    """Thread-safe Firestore 클라이언트 가져오기"""
    global _db
    if _db is None:
        with _db_lock:
            if _db is None:
                initialize_firebase()
                _db = firestore.client()
    return _db


def set_db(client):
    """Firestore 클라이언트 교체 (테스트, 에뮬레이터용)"""
    global _db
    _db = client


def get_document(collection, doc_id):
    """문서 조회"""
    if not doc_id:
        return None
    doc = get_db().collection(collection).document(doc_id).get()
    return doc.to_dict() if doc.exists else None


def create_document(collection, doc_id, data):
    """문서 생성"""
    get_db().collection(collection).document(doc_id).set(data)


def update_document(collection, doc_id, data):
    """문서 업데이트"""
    get_db().collection(collection).document(doc_id).update(data)


def delete_document(collection, doc_id):
    """문서 삭제"""
    get_db().collection(collection).document(doc_id).delete()


def stream_collection(collection):
    """컬렉션 전체 문서를 (id, dict) 형태로 순회"""
    for doc in get_db().collection(collection).stream():
        yield doc.id, doc.to_dict()


def profile_subcollection(profile_id, name):
    """프로필 하위 컬렉션 참조"""
    return get_db().collection(PROFILES).document(profile_id).collection(name)


def delete_collection_docs(collection_ref):
    """하위 컬렉션 문서 일괄 삭제 (Firestore는 연쇄 삭제를 하지 않음)"""
    deleted = 0
    for doc in collection_ref.stream():
        doc.reference.delete()
        deleted += 1
    return deleted

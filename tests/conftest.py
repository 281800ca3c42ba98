"""
Pytest configuration for streamflix tests.

Firestore is replaced by an in-memory client injected with database.set_db(),
S3 is mocked with moto.
"""

import os
import copy
import itertools
import uuid

# 설정은 임포트 시점에 읽히므로 streamflix 임포트 전에 환경변수 지정
os.environ['AWS_ACCESS_KEY'] = 'testing'
os.environ['AWS_SECRET_KEY'] = 'testing'
os.environ['REGION_NAME'] = 'us-east-1'
os.environ['BUCKET_NAME'] = 'streamflix-test'
os.environ['JWT_SECRET'] = 'test-jwt-secret'
os.environ.pop('S3_ENDPOINT_URL', None)
os.environ.pop('ADMIN_EMAIL', None)
os.environ.pop('ADMIN_PASSWORD', None)

import pytest
from google.api_core.exceptions import NotFound
from moto import mock_aws

from streamflix import auth, config, database, storage
from streamflix.app import create_app


# ============================================================================
# In-memory Firestore
# ============================================================================

def _field_matches(data, field, op, value):
    if field not in data:
        return False
    actual = data[field]
    if op == '==':
        return actual == value
    if op == '!=':
        return actual != value
    if op == '<':
        return actual < value
    if op == '<=':
        return actual <= value
    if op == '>':
        return actual > value
    if op == '>=':
        return actual >= value
    if op == 'in':
        return actual in value
    if op == 'array_contains':
        return isinstance(actual, list) and value in actual
    raise ValueError(f"unsupported operator: {op}")


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self._data = data

    @property
    def id(self):
        return self.reference.id

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, client, path):
        self._client = client
        self._path = path

    @property
    def id(self):
        return self._path[-1]

    def get(self):
        return FakeSnapshot(self, self._client.docs.get(self._path))

    def set(self, data, merge=False):
        if merge and self._path in self._client.docs:
            self._client.docs[self._path].update(copy.deepcopy(data))
        else:
            self._client.docs[self._path] = copy.deepcopy(data)

    def update(self, data):
        if self._path not in self._client.docs:
            raise NotFound(f"No document to update: {'/'.join(self._path)}")
        self._client.docs[self._path].update(copy.deepcopy(data))

    def delete(self):
        self._client.docs.pop(self._path, None)

    def collection(self, name):
        return FakeCollectionReference(self._client, self._path + (name,))


class FakeQuery:
    def __init__(self, collection, filters=(), limit_count=None):
        self._collection = collection
        self._filters = filters
        self._limit = limit_count

    def where(self, field, op, value):
        return FakeQuery(self._collection, self._filters + ((field, op, value),), self._limit)

    def limit(self, count):
        return FakeQuery(self._collection, self._filters, count)

    def stream(self):
        snapshots = [
            snap for snap in self._collection.stream()
            if all(_field_matches(snap._data, *f) for f in self._filters)
        ]
        if self._limit is not None:
            snapshots = snapshots[:self._limit]
        return iter(snapshots)


class FakeCollectionReference:
    def __init__(self, client, path):
        self._client = client
        self._path = path

    def document(self, document_id=None):
        return FakeDocumentReference(self._client, self._path + (document_id or uuid.uuid4().hex,))

    def where(self, field, op, value):
        return FakeQuery(self).where(field, op, value)

    def limit(self, count):
        return FakeQuery(self).limit(count)

    def stream(self):
        depth = len(self._path) + 1
        paths = sorted(
            path for path in self._client.docs
            if len(path) == depth and path[:-1] == self._path
        )
        return iter([FakeDocumentReference(self._client, path).get() for path in paths])


class FakeFirestore:
    def __init__(self):
        self.docs = {}

    def collection(self, name):
        return FakeCollectionReference(self, (name,))


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def db():
    fake = FakeFirestore()
    database.set_db(fake)
    yield fake
    database.set_db(None)


@pytest.fixture
def s3():
    with mock_aws():
        storage.reset_s3_client()
        client = storage.get_s3()
        client.create_bucket(Bucket=config.BUCKET_NAME)
        yield client
    storage.reset_s3_client()


@pytest.fixture
def app(db, s3):
    return create_app({'TESTING': True})


@pytest.fixture
def client(app):
    return app.test_client()


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def register(client):
    """API로 회원가입 후 토큰/기본 프로필 반환"""
    counter = itertools.count(1)

    def _register(email=None, password='password123', display_name=None):
        email = email or f"user{next(counter)}@example.com"
        response = client.post('/api/auth/register', json={
            'email': email, 'password': password, 'display_name': display_name
        })
        assert response.status_code == 201, response.get_json()
        body = response.get_json()
        body['headers'] = auth_header(body['access_token'])
        body['profile_id'] = body['profiles'][0]['id']
        return body

    return _register


@pytest.fixture
def user(register):
    return register('viewer@example.com', display_name='Viewer')


@pytest.fixture
def admin(db):
    admin_user = auth.register_user('admin@example.com', 'adminpass123', 'Admin', role='admin')
    tokens = auth.issue_tokens(admin_user)
    return {'user': admin_user, 'headers': auth_header(tokens['access_token'])}


@pytest.fixture
def make_category(db):
    def _make(category_id, name=None, order=0):
        db.collection('categories').document(category_id).set({
            'name': name or category_id.title(),
            'description': '',
            'order': order,
            'created_at': '2026-01-01T00:00:00'
        })
        return category_id
    return _make


@pytest.fixture
def make_video(db):
    """카탈로그 비디오 문서 직접 생성 (created_at은 생성 순서대로 증가)"""
    counter = itertools.count(1)

    def _make(title='Video', category_ids=(), tags=(), maturity_rating='PG-13', view_count=0,
              status='ready', duration_seconds=600, description='', thumbnail_key=''):
        video_id = uuid.uuid4().hex
        created_at = f"2026-01-01T00:{next(counter):02d}:00"
        db.collection('videos').document(video_id).set({
            'title': title,
            'description': description,
            'category_ids': list(category_ids),
            'tags': list(tags),
            'maturity_rating': maturity_rating,
            'release_year': 2020,
            'status': status,
            'video_key': f"videos/{video_id}/video.mp4",
            'thumbnail_key': thumbnail_key,
            'thumbnail_url': '',
            'stream_url': '',
            'duration_seconds': duration_seconds,
            'time': '10:00',
            'file_size': 1024,
            'view_count': view_count,
            'upload_method': 'server',
            'created_at': created_at,
            'updated_at': created_at
        })
        return video_id

    return _make

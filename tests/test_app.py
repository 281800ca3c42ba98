"""
Tests for the application factory, health check and error rendering.
"""

from streamflix import storage
from streamflix.errors import APIError, NotFoundError


class TestHealth:

    def test_healthy(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'healthy'
        assert body['services']['firestore'] == 'healthy'
        assert body['services']['s3'] == 'healthy'

    def test_missing_bucket_is_unhealthy(self, client, s3):
        s3.delete_bucket(Bucket='streamflix-test')
        response = client.get('/health')
        assert response.status_code == 503
        assert response.get_json()['services']['s3'] == 'unhealthy'


class TestErrorRendering:

    def test_unknown_api_route_is_json(self, client):
        response = client.get('/api/does-not-exist')
        assert response.status_code == 404
        assert 'error' in response.get_json()

    def test_wrong_method_is_json(self, client):
        response = client.put('/api/auth/login')
        assert response.status_code == 405
        assert 'error' in response.get_json()

    def test_non_json_body_is_treated_as_empty(self, client):
        response = client.post('/api/auth/login', data='not json', content_type='text/plain')
        assert response.status_code == 400

    def test_unexpected_error_is_500(self, client, user, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError('database exploded')
        monkeypatch.setattr('streamflix.catalog_routes.catalog.list_categories', boom)
        response = client.get('/api/categories', headers=user['headers'])
        assert response.status_code == 500
        assert 'exploded' not in response.get_json()['error']

    def test_api_error_defaults(self):
        assert APIError('bad').status_code == 400
        assert NotFoundError('gone').status_code == 404
        assert APIError('teapot', 418).to_dict() == {'error': 'teapot'}


class TestHeaders:

    def test_security_and_cors_headers(self, client):
        response = client.get('/health')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['Access-Control-Allow-Origin'] == '*'
        assert 'Authorization' in response.headers['Access-Control-Allow-Headers']


def test_s3_client_is_reused(s3):
    assert storage.get_s3() is storage.get_s3()

"""
Tests for registration, login, JWT handling and account management.
"""

from datetime import datetime, timedelta

import jwt
import pytest

from streamflix import auth, config
from streamflix.errors import AuthError, ConflictError, ValidationError
from conftest import auth_header


# ============================================================================
# Service level
# ============================================================================

class TestPasswords:

    def test_hash_is_not_plain_text(self):
        hashed = auth.hash_password('password123')
        assert hashed != 'password123'
        assert auth.check_password(hashed, 'password123')
        assert not auth.check_password(hashed, 'wrong-password')

    def test_missing_hash_never_matches(self):
        assert not auth.check_password(None, 'password123')


class TestRegisterUser:

    def test_creates_user_and_default_profile(self, db):
        user = auth.register_user('New@Example.com ', 'password123', 'Newbie')
        assert user['email'] == 'new@example.com'
        assert user['role'] == 'user'
        stored = db.collection('users').document(user['id']).get().to_dict()
        assert stored['password_hash'] != 'password123'

        profiles = list(db.collection('profiles').where('user_id', '==', user['id']).stream())
        assert len(profiles) == 1
        assert profiles[0].to_dict()['name'] == 'Newbie'

    def test_duplicate_email_is_rejected(self, db):
        auth.register_user('dup@example.com', 'password123')
        with pytest.raises(ConflictError):
            auth.register_user('DUP@example.com', 'password456')

    @pytest.mark.parametrize('email,password', [
        ('not-an-email', 'password123'),
        ('short@example.com', 'short'),
        ('', 'password123'),
    ])
    def test_invalid_input(self, db, email, password):
        with pytest.raises(ValidationError):
            auth.register_user(email, password)

    def test_display_name_defaults_to_email_local_part(self, db):
        user = auth.register_user('moviefan@example.com', 'password123')
        assert user['display_name'] == 'moviefan'

    @pytest.mark.parametrize('email,password,display_name', [
        (123, 'password123', None),
        ('typed@example.com', 12345678, None),
        ('typed@example.com', 'password123', ['Name']),
    ])
    def test_non_string_fields(self, db, email, password, display_name):
        with pytest.raises(ValidationError):
            auth.register_user(email, password, display_name)

    def test_authenticate_rejects_non_string_password(self, db):
        auth.register_user('typed@example.com', 'password123')
        with pytest.raises(AuthError):
            auth.authenticate('typed@example.com', 12345678)


class TestTokens:

    def test_access_token_round_trip(self, db):
        user = auth.register_user('token@example.com', 'password123')
        token = auth.create_token(user, 'access')
        payload = auth.decode_token(token)
        assert payload['sub'] == user['id']
        assert payload['type'] == 'access'

    def test_refresh_token_is_not_an_access_token(self, db):
        user = auth.register_user('token@example.com', 'password123')
        refresh = auth.create_token(user, 'refresh')
        with pytest.raises(AuthError):
            auth.decode_token(refresh, expected_type='access')

    def test_expired_token(self, db):
        past = datetime.utcnow() - timedelta(hours=2)
        token = jwt.encode({
            'sub': 'someone', 'type': 'access', 'jti': 'abc',
            'iat': past, 'exp': past + timedelta(minutes=5)
        }, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
        with pytest.raises(AuthError, match='만료'):
            auth.decode_token(token)

    def test_token_signed_with_other_secret(self, db):
        token = jwt.encode({'sub': 'x', 'type': 'access', 'jti': 'j'}, 'other-secret', algorithm='HS256')
        with pytest.raises(AuthError):
            auth.decode_token(token)

    def test_revoked_token(self, db):
        user = auth.register_user('token@example.com', 'password123')
        token = auth.create_token(user)
        auth.revoke_token(auth.decode_token(token))
        with pytest.raises(AuthError):
            auth.decode_token(token)


class TestEnsureAdminAccount:

    def test_noop_without_configuration(self, db, monkeypatch):
        monkeypatch.setattr(auth, 'ADMIN_EMAIL', '')
        assert auth.ensure_admin_account() is None

    def test_creates_admin(self, db, monkeypatch):
        monkeypatch.setattr(auth, 'ADMIN_EMAIL', 'boss@example.com')
        monkeypatch.setattr(auth, 'ADMIN_PASSWORD', 'bosspassword')
        admin = auth.ensure_admin_account()
        assert admin['role'] == 'admin'
        assert auth.authenticate('boss@example.com', 'bosspassword')['id'] == admin['id']

    def test_promotes_existing_user(self, db, monkeypatch):
        existing = auth.register_user('boss@example.com', 'password123')
        monkeypatch.setattr(auth, 'ADMIN_EMAIL', 'boss@example.com')
        monkeypatch.setattr(auth, 'ADMIN_PASSWORD', 'bosspassword')
        admin = auth.ensure_admin_account()
        assert admin['id'] == existing['id']
        assert auth.get_user(existing['id'])['role'] == 'admin'


# ============================================================================
# HTTP API
# ============================================================================

class TestAuthAPI:

    def test_register_returns_tokens_and_profile(self, client):
        response = client.post('/api/auth/register', json={
            'email': 'api@example.com', 'password': 'password123', 'display_name': 'Api'
        })
        assert response.status_code == 201
        body = response.get_json()
        assert body['token_type'] == 'Bearer'
        assert body['user']['email'] == 'api@example.com'
        assert 'password_hash' not in body['user']
        assert [p['name'] for p in body['profiles']] == ['Api']

    def test_register_duplicate(self, client, user):
        response = client.post('/api/auth/register', json={
            'email': 'viewer@example.com', 'password': 'password123'
        })
        assert response.status_code == 409
        assert 'error' in response.get_json()

    def test_login(self, client, user):
        response = client.post('/api/auth/login', json={
            'email': 'VIEWER@example.com', 'password': 'password123'
        })
        assert response.status_code == 200
        assert response.get_json()['access_token']

    def test_login_wrong_password(self, client, user):
        response = client.post('/api/auth/login', json={
            'email': 'viewer@example.com', 'password': 'nope-nope'
        })
        assert response.status_code == 401

    def test_login_missing_fields(self, client):
        response = client.post('/api/auth/login', json={})
        assert response.status_code == 400

    @pytest.mark.parametrize('payload', [
        {'email': 123, 'password': 'password123'},
        {'email': 'viewer@example.com', 'password': 12345678},
    ])
    def test_login_non_string_fields(self, client, user, payload):
        response = client.post('/api/auth/login', json=payload)
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_register_non_string_email(self, client):
        response = client.post('/api/auth/register', json={'email': 123, 'password': 'password123'})
        assert response.status_code == 400

    def test_me_requires_token(self, client):
        assert client.get('/api/users/me').status_code == 401
        response = client.get('/api/users/me', headers={'Authorization': 'Token abc'})
        assert response.status_code == 401

    def test_me(self, client, user):
        response = client.get('/api/users/me', headers=user['headers'])
        assert response.status_code == 200
        assert response.get_json()['display_name'] == 'Viewer'

    def test_refresh(self, client, user):
        response = client.post('/api/auth/refresh', json={'refresh_token': user['refresh_token']})
        assert response.status_code == 200
        new_token = response.get_json()['access_token']
        assert client.get('/api/users/me', headers=auth_header(new_token)).status_code == 200

    def test_refresh_rejects_access_token(self, client, user):
        response = client.post('/api/auth/refresh', json={'refresh_token': user['access_token']})
        assert response.status_code == 401

    def test_logout_revokes_tokens(self, client, user):
        response = client.post('/api/auth/logout', headers=user['headers'],
                               json={'refresh_token': user['refresh_token']})
        assert response.status_code == 200
        assert client.get('/api/users/me', headers=user['headers']).status_code == 401
        response = client.post('/api/auth/refresh', json={'refresh_token': user['refresh_token']})
        assert response.status_code == 401

    def test_logout_with_bad_refresh_token_keeps_session(self, client, user):
        response = client.post('/api/auth/logout', headers=user['headers'], json={'refresh_token': 'garbage'})
        assert response.status_code == 401
        # 실패한 로그아웃은 아무 토큰도 폐기하지 않음
        assert client.get('/api/users/me', headers=user['headers']).status_code == 200
        response = client.post('/api/auth/refresh', json={'refresh_token': user['refresh_token']})
        assert response.status_code == 200

    def test_logout_with_other_users_refresh_token(self, client, register, user):
        other = register('other@example.com')
        response = client.post('/api/auth/logout', headers=user['headers'],
                               json={'refresh_token': other['refresh_token']})
        assert response.status_code == 401
        assert client.get('/api/users/me', headers=user['headers']).status_code == 200
        response = client.post('/api/auth/refresh', json={'refresh_token': other['refresh_token']})
        assert response.status_code == 200


class TestAccountAPI:

    def test_update_display_name(self, client, user):
        response = client.patch('/api/users/me', headers=user['headers'], json={'display_name': 'Renamed'})
        assert response.status_code == 200
        assert response.get_json()['display_name'] == 'Renamed'

    def test_update_without_fields(self, client, user):
        response = client.patch('/api/users/me', headers=user['headers'], json={})
        assert response.status_code == 400

    def test_change_password(self, client, user):
        response = client.post('/api/users/me/password', headers=user['headers'], json={
            'current_password': 'password123', 'new_password': 'newpassword456'
        })
        assert response.status_code == 200
        login = client.post('/api/auth/login', json={
            'email': 'viewer@example.com', 'password': 'newpassword456'
        })
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client, user):
        response = client.post('/api/users/me/password', headers=user['headers'], json={
            'current_password': 'wrong-password', 'new_password': 'newpassword456'
        })
        assert response.status_code == 400

    def test_change_password_non_string_current(self, client, user):
        response = client.post('/api/users/me/password', headers=user['headers'], json={
            'current_password': 12345678, 'new_password': 'newpassword456'
        })
        assert response.status_code == 400

    def test_update_non_string_display_name(self, client, user):
        response = client.patch('/api/users/me', headers=user['headers'], json={'display_name': 42})
        assert response.status_code == 400

    def test_delete_account_removes_profiles(self, client, db, user, make_video):
        video_id = make_video('Saved')
        added = client.put(
            f"/api/profiles/{user['profile_id']}/watchlist/{video_id}", headers=user['headers']
        )
        assert added.status_code == 200

        response = client.delete('/api/users/me', headers=user['headers'])
        assert response.status_code == 204
        assert not [path for path in db.docs if path[0] == 'profiles']
        assert list(db.collection('users').stream()) == []
        login = client.post('/api/auth/login', json={
            'email': 'viewer@example.com', 'password': 'password123'
        })
        assert login.status_code == 401

    def test_admin_route_forbidden_for_users(self, client, user):
        response = client.get('/api/admin/stats', headers=user['headers'])
        assert response.status_code == 403

    def test_admin_route_allowed_for_admin(self, client, admin):
        response = client.get('/api/admin/stats', headers=admin['headers'])
        assert response.status_code == 200
        assert response.get_json()['users'] == 1

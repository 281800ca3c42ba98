# streamflix/auth_routes.py
from flask import Blueprint, jsonify, g
from .auth import (
    register_user, authenticate, issue_tokens, refresh_access_token, revoke_token, decode_token,
    token_required, public_user, update_user, change_password, delete_user
)
from .errors import ValidationError, AuthError
from .utils import get_json_body, optional_text
from . import profiles
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/auth/register', methods=['POST'])
def register():
    """회원가입 API"""
    data = get_json_body()
    user = register_user(data.get('email'), data.get('password'), data.get('display_name'))
    response = issue_tokens(user)
    response['user'] = public_user(user)
    response['profiles'] = profiles.list_profiles(user['id'])
    return jsonify(response), 201


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """로그인 API"""
    data = get_json_body()
    email = optional_text(data.get('email'), 'email')
    password = data.get('password') or ''
    if not isinstance(password, str):
        raise ValidationError('password 값은 문자열이어야 합니다.')
    if not email or not password:
        raise ValidationError('email과 password가 필요합니다.')

    user = authenticate(email, password)
    response = issue_tokens(user)
    response['user'] = public_user(user)
    logger.info(f"로그인: {user['email']}")
    return jsonify(response), 200


@auth_bp.route('/auth/refresh', methods=['POST'])
def refresh():
    """access 토큰 재발급"""
    data = get_json_body()
    refresh_token = data.get('refresh_token')
    if not refresh_token:
        raise ValidationError('refresh_token이 필요합니다.')
    return jsonify(refresh_access_token(refresh_token)), 200


@auth_bp.route('/auth/logout', methods=['POST'])
@token_required
def logout():
    """로그아웃 (access 토큰 폐기, refresh 토큰이 있으면 함께 폐기)"""
    # refresh 토큰 검증이 끝난 뒤에만 폐기
    refresh_payload = None
    refresh_token = get_json_body().get('refresh_token')
    if refresh_token:
        refresh_payload = decode_token(refresh_token, expected_type='refresh')
        if refresh_payload.get('sub') != g.current_user['id']:
            raise AuthError('본인의 refresh 토큰이 아닙니다.')

    revoke_token(g.token_payload)
    if refresh_payload:
        revoke_token(refresh_payload)

    return jsonify({'message': '로그아웃되었습니다.'}), 200


@auth_bp.route('/users/me', methods=['GET'])
@token_required
def get_me():
    return jsonify(public_user(g.current_user)), 200


@auth_bp.route('/users/me', methods=['PATCH'])
@token_required
def update_me():
    user = update_user(g.current_user, get_json_body())
    return jsonify(public_user(user)), 200


@auth_bp.route('/users/me/password', methods=['POST'])
@token_required
def change_my_password():
    data = get_json_body()
    change_password(g.current_user, data.get('current_password'), data.get('new_password'))
    return jsonify({'message': '비밀번호가 변경되었습니다.'}), 200


@auth_bp.route('/users/me', methods=['DELETE'])
@token_required
def delete_me():
    delete_user(g.current_user)
    revoke_token(g.token_payload)
    return '', 204

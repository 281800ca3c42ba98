# streamflix/errors.py
import logging
from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    """API 응답으로 변환되는 기본 예외"""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(APIError):
    status_code = 400


class AuthError(APIError):
    status_code = 401


class ForbiddenError(APIError):
    status_code = 403


class NotFoundError(APIError):
    status_code = 404


class ConflictError(APIError):
    status_code = 409


def register_error_handlers(app):
    """앱 전역 에러 핸들러 등록"""

    @app.errorhandler(APIError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        # /api 경로는 JSON으로 응답
        if request.path.startswith('/api'):
            return jsonify({'error': error.description}), error.code
        return error

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"❌ 처리되지 않은 오류 ({request.method} {request.path}): {error}")
        return jsonify({'error': '서버 내부 오류가 발생했습니다.'}), 500

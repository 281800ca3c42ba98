# streamflix/app.py (메인 애플리케이션)
import os
import logging
from datetime import datetime
from flask import Flask
from .config import SECRET_KEY, MAX_CONTENT_LENGTH
from .errors import register_error_handlers
from .auth_routes import auth_bp
from .profile_routes import profile_bp
from .catalog_routes import catalog_bp
from .admin_routes import admin_bp
from .database import get_db, VIDEOS
from .storage import bucket_is_healthy
from .scheduler import scheduler, start_scheduler
from .auth import ensure_admin_account
from . import __version__

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    """Flask 앱 생성"""
    app = Flask(__name__)
    app.secret_key = SECRET_KEY
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    app.json.ensure_ascii = False
    if test_config:
        app.config.update(test_config)

    # Blueprint 등록
    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(profile_bp, url_prefix='/api')
    app.register_blueprint(catalog_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    register_error_handlers(app)

    @app.after_request
    def after_request(response):
        """보안 헤더 + CORS"""
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
        return response

    # 헬스체크
    @app.route('/health', methods=['GET'])
    def health_check():
        """서비스 상태 확인"""
        try:
            list(get_db().collection(VIDEOS).limit(1).stream())
            firestore_status = 'healthy'
        except Exception as e:
            logger.warning(f"Firestore 상태 확인 실패: {e}")
            firestore_status = 'unhealthy'

        s3_status = 'healthy' if bucket_is_healthy() else 'unhealthy'
        overall_status = 'healthy' if (firestore_status == 'healthy' and s3_status == 'healthy') else 'unhealthy'

        return {
            'status': overall_status,
            'timestamp': datetime.utcnow().isoformat(),
            'services': {
                'firestore': firestore_status,
                's3': s3_status,
                'scheduler': scheduler.running
            },
            'version': __version__
        }, 200 if overall_status == 'healthy' else 503

    return app


def initialize_app():
    """앱 초기화 (관리자 계정 보장)"""
    try:
        ensure_admin_account()
        logger.info("✅ 앱 초기화 완료")
        return True
    except Exception as e:
        logger.error(f"❌ 앱 초기화 실패: {e}")
        return False


def main():
    app = create_app()
    initialize_app()

    # 스케줄러 시작
    start_scheduler()

    # 서버 시작
    port = int(os.environ.get("PORT", 8080))
    debug = os.environ.get('FLASK_DEBUG', '').lower() in ('1', 'true')
    app.run(host="0.0.0.0", port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()

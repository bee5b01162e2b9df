# cityscope/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from flask_cors import CORS
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정 및 공용 모듈
from cityscope.core.config import config_by_name
from cityscope.core.exceptions import CityScopeError
from cityscope.core.responses import error_response, validation_error_response
from cityscope.core.security import init_jwt

# - API 블루프린트
from cityscope.api.auth.routes import auth_bp
from cityscope.api.users.routes import users_bp
from cityscope.api.posts.routes import posts_bp
from cityscope.api.replies.routes import replies_bp

# - 서비스 모듈
from cityscope.services.storage_service import StorageService
from cityscope.api.auth.services import AuthService
from cityscope.api.users.services import UserService
from cityscope.api.posts.services import PostService
from cityscope.api.replies.services import ReplyService


def create_app(config_name=None, firestore_client=None, storage_service=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production'. 생략하면 FLASK_ENV 값을 사용합니다.
    :param firestore_client: 사용할 Firestore 클라이언트. 생략하면 firebase_admin 을 초기화하여 사용합니다.
    :param storage_service: 사용할 StorageService. 생략하면 FIREBASE_STORAGE_BUCKET 설정으로 생성합니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    logging.basicConfig(
        level=str(app.config.get('LOG_LEVEL') or 'INFO').upper(),
        format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
    )

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    init_jwt(app)
    CORS(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}}, supports_credentials=True)

    if firestore_client is None:
        _init_firebase(app)
        firestore_client = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 공용 서비스 먼저 생성
    if storage_service is None:
        storage_service = StorageService()
        if app.config.get('FIREBASE_STORAGE_BUCKET'):
            storage_service.init_app(app)
        else:
            logging.warning("FIREBASE_STORAGE_BUCKET 설정이 없어 이미지 업로드가 비활성화됩니다.")
    app.services['storage'] = storage_service
    app.services['users'] = UserService(db=firestore_client)

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['auth'] = AuthService(db=firestore_client, user_service=app.services['users'])
    app.services['posts'] = PostService(
        db=firestore_client,
        user_service=app.services['users'],
        storage_service=app.services['storage']
    )
    app.services['replies'] = ReplyService(db=firestore_client, user_service=app.services['users'])

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    # 댓글은 게시글 하위 경로(/api/posts/<post_id>/replies)를 사용합니다.
    app.register_blueprint(replies_bp, url_prefix='/api/posts')

    @app.route('/')
    def index():
        return jsonify({
            "message": "CityScope API Server",
            "endpoints": {
                "auth": "/api/auth",
                "posts": "/api/posts",
                "users": "/api/users",
            },
        })

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        return validation_error_response(err)

    @app.errorhandler(CityScopeError)
    def handle_cityscope_error(err):
        return error_response(err.error_code, err.message, err.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        # 404(없는 경로), 405(메서드 불일치), 413(본문 크기 초과) 등도 공통 에러 형식으로 응답
        error_code = err.name.upper().replace(' ', '_')
        return error_response(error_code, err.description, err.code)

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        return error_response("INTERNAL_SERVER_ERROR", "Internal server error", 500)

    # =====================================================================================
    # 8. 앱 반환
    # =====================================================================================
    logging.info(f"Flask app created for '{config_name}' environment.")

    return app


def _init_firebase(app: Flask):
    """firebase_admin 기본 앱을 한 번만 초기화합니다."""
    if firebase_admin._apps:
        return

    cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })

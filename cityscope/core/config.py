# cityscope/core/config.py

import os
from datetime import timedelta


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. .env 파일에서 읽어옵니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES_HOURS', 168)))
    JWT_TOKEN_LOCATION = ['headers']

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # 프론트엔드 주소. flask-cors 허용 목록으로 사용됩니다.
    CORS_ORIGINS = os.getenv('CLIENT_URL', 'http://localhost:3000')

    # 요청 본문 전체 크기 제한(10MB)과 게시글 이미지 크기 제한(5MB)
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024
    MAX_IMAGE_SIZE = 5 * 1024 * 1024
    IMAGE_UPLOAD_FOLDER = os.getenv('IMAGE_UPLOAD_FOLDER', 'cityscope/posts')

    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 50
    USER_SEARCH_LIMIT = 10

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다. Firestore/Storage는 테스트에서 직접 주입합니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('TEST_JWT_SECRET_KEY', 'cityscope-test-secret-key-0123456789')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    IMAGE_UPLOAD_FOLDER = 'test/posts'


class ProductionConfig(Config):
    """운영 환경 설정 클래스입니다."""
    DEBUG = False


# FLASK_ENV 값에 따라 create_app에서 적절한 설정을 선택하는 데 사용됩니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)

# cityscope/core/exceptions.py
"""
서비스 계층에서 발생시키고 라우트/전역 핸들러에서 HTTP 응답으로 변환하는 예외 클래스 모음.
입력값 검증 오류는 marshmallow.ValidationError를 그대로 사용합니다.
"""


class CityScopeError(Exception):
    """애플리케이션 예외의 기반 클래스. 상태 코드와 에러 코드를 함께 가집니다."""
    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str = "", error_code: str = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


class NotFoundError(CityScopeError):
    """대상 문서가 없거나 비활성(is_active=False) 상태인 경우."""
    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"


class AuthenticationError(CityScopeError):
    """자격 증명이 없거나 올바르지 않은 경우."""
    status_code = 401
    error_code = "UNAUTHORIZED"


class ConflictError(CityScopeError):
    """사용자명/이메일 중복 등 고유성 제약 위반."""
    status_code = 409
    error_code = "CONFLICT"


class UploadError(CityScopeError):
    """Blob 스토리지(Firebase Storage) 업로드 실패. 게시글 생성 전체가 중단됩니다."""
    status_code = 502
    error_code = "UPLOAD_FAILED"

# cityscope/core/responses.py
from typing import Any, Optional
from flask import jsonify


def success_response(data: Any, status: int = 200, message: Optional[str] = None):
    """성공 응답 공통 형식: {success: true, message?, data}"""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def error_response(error_code: str, message: str, status: int, errors: Any = None):
    """에러 응답 공통 형식: {success: false, error_code, message, errors?}"""
    body = {"success": False, "error_code": error_code, "message": message}
    if errors is not None:
        body["errors"] = errors
    return jsonify(body), status


def validation_error_response(err):
    """marshmallow ValidationError를 필드별 메시지가 담긴 400 응답으로 변환합니다."""
    return error_response("VALIDATION_ERROR", "Validation errors", 400, errors=err.messages)

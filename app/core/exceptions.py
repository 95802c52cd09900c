# app/core/exceptions.py
"""
블로그 서비스 계층에서 사용하는 예외 계층 정의

모든 예외는 BlogError를 상속하며 error_code(응답 코드 문자열)와
status_code(HTTP 상태 코드)를 가집니다. 라우트에 등록된 전역 에러 핸들러가
이 값을 그대로 JSON 응답으로 변환합니다.
"""

import functools
import logging
from typing import Any, Optional

from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions


class BlogError(Exception):
    """서비스 계층 예외의 기반 클래스."""
    error_code = "BLOG_ERROR"
    status_code = 500
    default_message = "요청을 처리하지 못했습니다."

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"error_code": self.error_code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# --- 입력값 검증 ---
class ValidationError(BlogError):
    """필드의 타입/길이/형식이 잘못된 경우. 입력을 고치면 복구 가능합니다."""
    error_code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "입력값이 올바르지 않습니다."

    def __init__(self, message: Optional[str] = None, details: Any = None, field: Optional[str] = None):
        super().__init__(message, details)
        self.field = field


class RequiredFieldMissing(ValidationError):
    error_code = "REQUIRED_FIELD_MISSING"
    default_message = "필수 항목이 비어 있습니다."


class InvalidURL(ValidationError):
    error_code = "INVALID_URL"
    default_message = "유효한 http(s) URL이 아닙니다."


class InvalidStatus(ValidationError):
    error_code = "INVALID_STATUS"
    default_message = "상태는 draft 또는 published 여야 합니다."


class InvalidSlug(ValidationError):
    error_code = "INVALID_SLUG"
    default_message = "URL 식별자는 영문, 숫자, 하이픈만 사용할 수 있으며 하이픈으로 시작하거나 끝날 수 없습니다."


# --- 게시글/권한 ---
class SlugConflict(BlogError):
    """같은 slug를 쓰는 게시글이 이미 있는 경우. 다른 slug로 다시 시도할 수 있습니다."""
    error_code = "SLUG_CONFLICT"
    status_code = 409
    default_message = "이미 사용 중인 URL 식별자입니다. 다른 식별자를 사용해주세요."


class Unauthenticated(BlogError):
    error_code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "로그인이 필요합니다."


class Forbidden(BlogError):
    error_code = "FORBIDDEN"
    status_code = 403
    default_message = "권한이 없습니다."


class NotFound(BlogError):
    error_code = "NOT_FOUND"
    status_code = 404
    default_message = "대상을 찾을 수 없습니다."


# --- 업로드 ---
class InvalidFile(BlogError):
    error_code = "INVALID_FILE"
    status_code = 400
    default_message = "지원하지 않는 파일입니다."


class FileTooLarge(BlogError):
    error_code = "FILE_TOO_LARGE"
    status_code = 413
    default_message = "파일 크기가 너무 큽니다."


class UploadFailed(BlogError):
    error_code = "UPLOAD_FAILED"
    status_code = 502
    default_message = "이미지 업로드에 실패했습니다."


# --- 외부 백엔드(Firestore / Firebase Auth) ---
# 백엔드 오류 코드 -> 사용자 메시지. 등록되지 않은 코드는 원본 메시지 또는 기본 메시지를 사용합니다.
BACKEND_ERROR_MESSAGES = {
    'auth/user-not-found': '존재하지 않는 사용자입니다.',
    'auth/wrong-password': '비밀번호가 올바르지 않습니다.',
    'auth/invalid-credential': '이메일 또는 비밀번호가 올바르지 않습니다.',
    'auth/email-already-in-use': '이미 사용 중인 이메일입니다.',
    'auth/weak-password': '비밀번호가 너무 약합니다.',
    'auth/invalid-email': '이메일 형식이 올바르지 않습니다.',
    'auth/user-disabled': '비활성화된 계정입니다.',
    'auth/too-many-requests': '요청이 너무 많습니다. 잠시 후 다시 시도해주세요.',
    'auth/invalid-id-token': '로그인 세션이 유효하지 않습니다.',
    'permission-denied': '권한이 부족합니다.',
    'unavailable': '서비스를 일시적으로 사용할 수 없습니다.',
    'failed-precondition': '색인(index) 생성이 필요합니다.',
    'not-found': '문서가 존재하지 않습니다.',
}

GENERIC_BACKEND_MESSAGE = '작업에 실패했습니다.'


class BackendError(BlogError):
    """Firestore 또는 인증 제공자에서 발생한 오류를 감싸는 예외."""
    error_code = "BACKEND_ERROR"
    status_code = 502

    def __init__(self, code: str, message: Optional[str] = None, details: Any = None):
        self.code = code
        super().__init__(message or backend_error_message(code), details)


def backend_error_message(code: Optional[str], fallback: Optional[str] = None) -> str:
    """백엔드 오류 코드를 사용자 메시지로 변환합니다."""
    return BACKEND_ERROR_MESSAGES.get(code) or fallback or GENERIC_BACKEND_MESSAGE


_GOOGLE_ERROR_CODES = (
    (google_exceptions.PermissionDenied, 'permission-denied'),
    (google_exceptions.ServiceUnavailable, 'unavailable'),
    (google_exceptions.FailedPrecondition, 'failed-precondition'),
    (google_exceptions.NotFound, 'not-found'),
)


def to_backend_error(error: Exception) -> BackendError:
    """google.api_core / firebase_admin 예외를 BackendError로 변환합니다."""
    code = 'unknown'
    if isinstance(error, firebase_exceptions.FirebaseError):
        code = str(error.code).lower().replace('_', '-')
    else:
        for exc_type, mapped in _GOOGLE_ERROR_CODES:
            if isinstance(error, exc_type):
                code = mapped
                break
    return BackendError(code, backend_error_message(code, getattr(error, 'message', None) or str(error) or None))


def translate_backend_errors(func):
    """서비스 메서드에서 발생한 백엔드 예외를 BackendError로 바꿔 다시 던지는 데코레이터."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BlogError:
            raise
        except (google_exceptions.GoogleAPIError, firebase_exceptions.FirebaseError) as e:
            logging.error(f"백엔드 호출 실패 ({func.__qualname__}): {e}", exc_info=True)
            raise to_backend_error(e) from e
    return wrapper

from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.logging import get_logger, mask_sensitive_data
from app.core.middleware import CORS_HEADERS

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    """에러 코드 열거형"""

    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    BAD_CONTENT_TYPE = "BAD_CONTENT_TYPE"
    MALFORMED_BODY = "MALFORMED_BODY"
    MISSING_FILE = "MISSING_FILE"
    EMPTY_FILE = "EMPTY_FILE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_DIFFICULTY = "INVALID_DIFFICULTY"
    INVALID_INPUT = "INVALID_INPUT"

    UPSTREAM_NOT_FOUND = "UPSTREAM_NOT_FOUND"
    UPSTREAM_UNAUTHORIZED = "UPSTREAM_UNAUTHORIZED"
    UPSTREAM_RATE_LIMITED = "UPSTREAM_RATE_LIMITED"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"

    REPOSITORY_PROVISIONING_FAILED = "REPOSITORY_PROVISIONING_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class CustomException(Exception):
    def __init__(
        self,
        status_code: int,
        error_code: ErrorCode | str,
        message: str,
        detail: str | None = None,
        extra: dict | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail
        self.extra = extra or {}
        super().__init__(message)

    @property
    def expose_detail(self) -> bool:
        """응답 본문에 detail 포함 여부"""
        return not settings.is_production


class ClientInputError(CustomException):
    """잘못된 요청 - 내부 재시도 없이 4xx로 응답"""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        detail: str | None = None,
        extra: dict | None = None,
    ):
        super().__init__(
            status_code=status_code,
            error_code=error_code,
            message=message,
            detail=detail,
            extra=extra,
        )


class UpstreamCompletionError(CustomException):
    """LLM 프로바이더 오류 - 분류된 상태 코드 그대로 전달"""


class RepositoryProvisioningError(CustomException):
    def __init__(self, detail: str | None = None):
        super().__init__(
            status_code=500,
            error_code=ErrorCode.REPOSITORY_PROVISIONING_FAILED,
            message="Unexpected server error while generating challenge.",
            detail=detail,
        )

    @property
    def expose_detail(self) -> bool:
        return True


class InternalError(CustomException):
    def __init__(self, detail: str | None = None):
        super().__init__(
            status_code=500,
            error_code=ErrorCode.INTERNAL_ERROR,
            message="Unexpected server error while generating challenge.",
            detail=detail,
        )

    @property
    def expose_detail(self) -> bool:
        return True


def build_error_content(exc: CustomException) -> dict:
    """에러 응답 본문 생성"""
    content = {
        "error": exc.message,
        "error_code": exc.error_code,
    }
    if exc.detail and exc.expose_detail:
        content["details"] = mask_sensitive_data(exc.detail)
    content.update(exc.extra)
    return content


def register_exception_handlers(app):
    @app.exception_handler(CustomException)
    async def custom_exception_handler(request: Request, exc: CustomException):
        return JSONResponse(
            status_code=exc.status_code,
            content=build_error_content(exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            error_code = ErrorCode.METHOD_NOT_ALLOWED
            message = "Method not allowed. Use POST."
        else:
            error_code = ErrorCode.INVALID_INPUT
            message = str(exc.detail)

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message, "error_code": error_code},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("처리되지 않은 예외 error=%s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=build_error_content(InternalError(detail=str(exc))),
            headers=CORS_HEADERS,
        )

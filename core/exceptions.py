"""
进程级致命异常、业务码到HTTP状态码的映射，以及全局异常处理器
"""
from __future__ import annotations

from enum import Enum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette import status as http_status

from core.logging_config import get_logger
from core.response import error_response
from shared.codes import BusinessCode


logger = get_logger(__name__)


class KeyLoadReason(str, Enum):
    UNREADABLE = "unreadable"
    BAD_ENCODING = "bad-encoding"
    PARSE_FAILED = "parse-failed"
    WRONG_ALGORITHM = "wrong-algorithm"
    MISMATCH = "mismatch"


class StartupError(Exception):
    """启动阶段的致命错误：进程不开始服务，直接以非零状态退出"""


class KeyLoadError(StartupError):
    def __init__(self, reason: KeyLoadReason, path: str, message: str):
        self.reason = reason
        self.path = path
        self.message = message
        super().__init__(f"{message} ({path})")


class StoreConnectError(StartupError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ListenerFatal(Exception):
    """HTTP 或 gRPC 监听器的绑定/接收失败，整个进程随之退出"""

    def __init__(self, transport: str, message: str):
        self.transport = transport
        self.message = message
        super().__init__(f"{transport} listener failed: {message}")


_HTTP_STATUS_BY_CODE = {
    BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.UNSUPPORTED_VERSION: http_status.HTTP_400_BAD_REQUEST,

    BusinessCode.BUSINESS_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.USER_ALREADY_EXISTS: http_status.HTTP_409_CONFLICT,
    BusinessCode.PASSWORD_ERROR: http_status.HTTP_401_UNAUTHORIZED,
    BusinessCode.TOKEN_INVALID: http_status.HTTP_401_UNAUTHORIZED,
    BusinessCode.TOKEN_EXPIRED: http_status.HTTP_401_UNAUTHORIZED,
    BusinessCode.UNAUTHORIZED: http_status.HTTP_401_UNAUTHORIZED,

    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def business_code_to_http_status(code: int) -> int:
    """根据业务码映射HTTP状态码（未知业务码视为内部错误）。"""
    try:
        bc = BusinessCode(code)
    except ValueError:
        return http_status.HTTP_500_INTERNAL_SERVER_ERROR
    return _HTTP_STATUS_BY_CODE.get(bc, http_status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    """
    注册全局异常处理器

    业务路由的错误由 api.adapter 在路由内部转换；这里只兜底框架层面的错误
    （未匹配路由、方法不允许等），保证错误体统一为 {"error": ...}。
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        return error_response(http_status.HTTP_400_BAD_REQUEST, str(first_error.get("msg", "invalid request")))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            exc_info=True,
        )
        return error_response(http_status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error")

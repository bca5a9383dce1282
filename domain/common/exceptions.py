"""领域层业务异常定义，供领域、应用与基础设施使用。

每个异常携带一个 BusinessCode，传输层（HTTP / gRPC）据此映射状态码，
领域层不感知具体传输协议。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class BadRequestException(BusinessException):
    """请求体格式错误或无法解析"""

    def __init__(self, message: str, *, field: str | None = None, details: dict | None = None):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR if field else BusinessCode.PARAM_ERROR,
            message=message,
            error_type="BadRequest",
            details=details,
            field=field,
        )


class UnsupportedVersionException(BusinessException):
    def __init__(self, version: str):
        super().__init__(
            code=BusinessCode.UNSUPPORTED_VERSION,
            message=f"Unsupported API version: {version}",
            error_type="UnsupportedVersion",
            details={"version": version},
        )


class UnauthorizedException(BusinessException):
    """未认证：缺少或无效的凭据"""

    def __init__(self, message: str = "Unauthorized", *, code: int = BusinessCode.UNAUTHORIZED):
        super().__init__(
            code=code,
            message=message,
            error_type="Unauthorized",
        )


class TokenExpiredException(BusinessException):
    def __init__(self):
        super().__init__(
            code=BusinessCode.TOKEN_EXPIRED,
            message="Token expired",
            error_type="TokenExpired",
        )


class PasswordErrorException(BusinessException):
    def __init__(self):
        super().__init__(
            code=BusinessCode.PASSWORD_ERROR,
            message="Invalid username or password",
            error_type="PasswordError",
        )


class UsernameAlreadyExistsException(BusinessException):
    def __init__(self, username: str):
        super().__init__(
            code=BusinessCode.USER_ALREADY_EXISTS,
            message=f"Username {username} already exists",
            error_type="UsernameAlreadyExists",
            details={"username": username},
            field="username",
        )


class TempLogNotFoundException(BusinessException):
    def __init__(self, log_id: Optional[int] = None):
        details = {"id": log_id} if log_id is not None else None
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message="Temperature log not found",
            error_type="TempLogNotFound",
            details=details,
        )


class InternalServerErrorException(BusinessException):
    """存储失败或处理器内部序列化失败"""

    def __init__(self, message: str = "Internal server error", *, code: int = BusinessCode.SYSTEM_ERROR):
        super().__init__(
            code=code,
            message=message,
            error_type="InternalServerError",
        )

"""
Shared business codes used across layers (Domain/Core/API/gRPC).

This module provides a single source of truth to avoid drift between
the HTTP and gRPC status mappings.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """业务状态码定义（单一来源）"""

    # 参数错误 (1xxxx)
    PARAM_ERROR = 10000
    PARAM_VALIDATION_ERROR = 10003
    UNSUPPORTED_VERSION = 10004

    # 业务错误 (2xxxx)
    BUSINESS_ERROR = 20000
    USER_ALREADY_EXISTS = 20002
    PASSWORD_ERROR = 20003
    TOKEN_INVALID = 20004
    TOKEN_EXPIRED = 20005
    NOT_FOUND = 20006

    # 权限错误 (3xxxx)
    UNAUTHORIZED = 30001

    # 系统错误 (4xxxx)
    SYSTEM_ERROR = 40000


__all__ = ["BusinessCode"]

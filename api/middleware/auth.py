"""
用户认证检查（必须在版本检查之后执行）

每次都根据 Authorization 头重新校验，不信任请求上已附带的身份。
"""
from __future__ import annotations

import dataclasses

from api.middleware.chain import GatewayRequest
from application.dto import Identity
from application.services.token_service import TokenService
from domain.common.exceptions import UnauthorizedException


BEARER_PREFIX = "bearer "


class UserStep:
    """
    - 未携带 Authorization：身份置空（匿名），由需要身份的处理器自行拒绝
    - 携带 Bearer 令牌：用公钥校验，成功后附加 Identity，失败则 401
    """

    def __init__(self, token_service: TokenService):
        self._token_service = token_service

    async def apply(self, request: GatewayRequest) -> GatewayRequest:
        auth = request.header("Authorization")
        if auth is None:
            return dataclasses.replace(request, identity=None)

        if not auth.lower().startswith(BEARER_PREFIX) or not auth[len(BEARER_PREFIX):].strip():
            raise UnauthorizedException("Malformed Authorization header")

        identity = self._token_service.verify_access_token(auth[len(BEARER_PREFIX):].strip())
        return dataclasses.replace(request, identity=identity)


def require_identity(request: GatewayRequest) -> Identity:
    if request.identity is None:
        raise UnauthorizedException("Missing credentials")
    return request.identity

"""
协议版本检查（链中第一个 Step）
"""
from __future__ import annotations

import dataclasses

from api.middleware.chain import GatewayRequest
from core.config import HttpSettings
from domain.common.exceptions import UnsupportedVersionException


class VersionStep:
    """
    读取版本请求头：未声明时使用默认版本；声明了不受支持的版本则拒绝（400）。
    """

    def __init__(self, settings: HttpSettings):
        self._header = settings.version_header
        self._default = settings.default_version
        self._supported = frozenset(settings.supported_versions)

    async def apply(self, request: GatewayRequest) -> GatewayRequest:
        declared = request.header(self._header)
        version = declared.strip() if declared is not None else self._default
        if version not in self._supported:
            raise UnsupportedVersionException(version)
        return dataclasses.replace(request, api_version=version)

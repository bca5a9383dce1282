"""
处理器结果 → HTTP 响应

处理器返回响应体字符串即成功；抛出 BusinessException 即失败，按业务码映射状态码。
无论哪种情况，每个请求都恰好得到一个完整响应。
"""
from __future__ import annotations

from typing import Awaitable, Callable

from starlette import status as http_status
from starlette.requests import Request
from starlette.responses import Response

from api.middleware.chain import GatewayRequest, Handler
from core.exceptions import business_code_to_http_status
from core.logging_config import get_logger
from core.response import error_response, success_response
from domain.common.exceptions import BusinessException


logger = get_logger(__name__)

Endpoint = Callable[[Request], Awaitable[Response]]


def adapt(handler: Handler) -> Endpoint:
    async def endpoint(request: Request) -> Response:
        try:
            body = await handler(await GatewayRequest.from_starlette(request))
        except BusinessException as exc:
            status_code = business_code_to_http_status(exc.code)
            log = logger.error if status_code >= http_status.HTTP_500_INTERNAL_SERVER_ERROR else logger.info
            log(
                "request_rejected",
                code=int(exc.code),
                error_type=exc.error_type,
                status_code=status_code,
                message=exc.message,
            )
            return error_response(status_code, exc.message)
        except Exception as exc:
            logger.error("unhandled_exception", error=str(exc), exc_info=True)
            return error_response(http_status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error")
        return success_response(body)

    return endpoint

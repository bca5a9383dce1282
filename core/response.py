"""
统一响应格式定义

成功响应体由处理器自行决定（JSON 字符串原样写出）；错误响应体固定为 {"error": <message>}。
"""
import json
from typing import Any, Mapping, Optional

from starlette import status as http_status
from starlette.responses import Response

from core.logging_config import get_logger


logger = get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"

# 错误体自身序列化失败时的兜底响应，保证每个请求都能得到回复
GENERIC_ERROR_BODY = '{"error": "internal server error"}'


def success_response(body: str, status_code: int = http_status.HTTP_200_OK) -> Response:
    return Response(content=body, status_code=status_code, media_type=JSON_MEDIA_TYPE)


def error_body(message: Any) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def error_response(
    status_code: int,
    message: Any,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """
    创建错误响应

    Args:
        status_code: HTTP状态码
        message: 错误消息
        headers: 额外响应头

    Returns:
        Response: 一次性写出的完整响应
    """
    try:
        content = error_body(message)
    except (TypeError, ValueError) as exc:
        logger.error("error_body_serialization_failed", error=str(exc))
        return Response(
            content=GENERIC_ERROR_BODY,
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            media_type=JSON_MEDIA_TYPE,
        )
    if headers is None and status_code == http_status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return Response(
        content=content,
        status_code=status_code,
        media_type=JSON_MEDIA_TYPE,
        headers=dict(headers) if headers else None,
    )

"""
访问日志中间件
记录每个HTTP请求的方法、路径、状态码与耗时
"""
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging_config import get_logger


logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        client = request.client.host if request.client else "unknown"
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                client=client,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error=str(exc),
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - start_time
        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            "request_completed",
            client=client,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

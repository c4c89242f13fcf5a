"""LoggingMiddleware

为每个 HTTP 请求生成 request_id 并绑定到 structlog contextvars，
记录耗时；5xx 响应以 warning 级别输出。健康检查路径不记录。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

_SILENT_PATHS = {"/health", "/ready"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(ULID())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        log = structlog.get_logger()
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - started) * 1000)

        if request.url.path not in _SILENT_PATHS:
            if response.status_code >= 500:
                await log.awarning(
                    "request_failed",
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )
            else:
                await log.ainfo(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )

        response.headers["X-Request-ID"] = request_id
        return response

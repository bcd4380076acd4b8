"""API中间件"""

import time
from typing import Callable
from fastapi import Request, Response

from src.utils.logger import get_logger


async def request_logging_middleware(request: Request, call_next: Callable) -> Response:
    """记录请求与响应耗时"""
    logger = get_logger("http")
    start_time = time.time()

    logger.info(
        "HTTP request",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        "HTTP response",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        process_time=process_time
    )
    response.headers["X-Process-Time"] = str(process_time)

    return response


async def security_headers_middleware(request: Request, call_next: Callable) -> Response:
    """安全头中间件"""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    return response

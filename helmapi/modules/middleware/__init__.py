"""
Request Logging Middleware Module - Black Box Interface

Purpose: Record every inbound request before it is handled
Interface: RequestLoggingMiddleware (call_next style, use with app.middleware("http"))
Hidden: Caller address extraction

Completely independent and replaceable.
"""

import logging

from fastapi import Request

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """
    Log caller address, method and path for each request, then delegate.
    """

    @staticmethod
    def remote_addr(request: Request) -> str:
        """Caller address as host:port, or '-' when the transport has none."""
        client = request.client
        if not client:
            return "-"
        return f"{client.host}:{client.port}"

    async def __call__(self, request: Request, call_next):
        logger.info(f"{self.remote_addr(request)} {request.method} {request.url.path}")
        return await call_next(request)


__all__ = ["RequestLoggingMiddleware"]

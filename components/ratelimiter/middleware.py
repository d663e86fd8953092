from __future__ import annotations

import math
import re
from typing import List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import PlainTextResponse

from .contracts import Policy
from .service import RateLimiterService

TOO_MANY_REQUESTS = "Too many requests, please try again later."


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that applies the first matching policy per client IP."""

    def __init__(
        self,
        app,
        policies: List[Policy],
        service: Optional[RateLimiterService] = None,
        skip_paths: Optional[List[str]] = None,
    ):
        super().__init__(app)
        self.policies = policies
        self.service = service or RateLimiterService()
        self.skip_paths = skip_paths or [r"^/health$"]

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        method = request.method.upper()

        for pat in self.skip_paths:
            if re.search(pat, path):
                return await call_next(request)

        policy = self._select_policy(method, path)
        if not policy:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        result = self.service.consume(key=f"ip:{client}", policy=policy)

        headers = {
            "X-RateLimit-Limit": str(policy.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(math.ceil(result.reset_after)),
        }

        if not result.allowed:
            headers["Retry-After"] = str(math.ceil(result.reset_after))
            return PlainTextResponse(TOO_MANY_REQUESTS, status_code=429, headers=headers)

        response = await call_next(request)
        for k, v in headers.items():
            response.headers[k] = v
        return response

    def _select_policy(self, method: str, path: str) -> Optional[Policy]:
        for p in self.policies:
            if p.matches(method, path):
                return p
        return None

from __future__ import annotations
from typing import Iterable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import PlainTextResponse

ALLOW_METHODS = "GET,PUT,POST,DELETE,OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization, Content-Length, X-Requested-With"


def origin_allowed(origin: Optional[str], domains: Iterable[str], hosts: Iterable[str]) -> bool:
    if not isinstance(origin, str) or not origin:
        return False
    for domain in domains:
        if origin == domain or origin.endswith("://" + domain) or origin.endswith("." + domain):
            return True
    return any(origin.endswith(host) for host in hosts)


class OriginAllowListMiddleware(BaseHTTPMiddleware):
    """Credentialed CORS for allow-listed origins; pre-flights from anyone else get 403."""

    def __init__(self, app, domains: Iterable[str] = (), hosts: Iterable[str] = ()):
        super().__init__(app)
        self.domains = tuple(domains)
        self.hosts = tuple(hosts)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        origin = request.headers.get("origin")
        allowed = origin_allowed(origin, self.domains, self.hosts)

        if request.method == "OPTIONS":
            if not allowed:
                return PlainTextResponse("Forbidden", status_code=403)
            response: Response = PlainTextResponse("OK", status_code=200)
            response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
            response.headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
        else:
            response = await call_next(request)

        if allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
        return response

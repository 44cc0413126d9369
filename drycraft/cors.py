"""
CORS handling for the Dry Craft API.

Starlette's CORSMiddleware only short-circuits real browser preflights and
answers them with a text body. The web app (and the serverless handlers it
grew up on) expect every OPTIONS request to be a header-only 200, so the
subclass below answers OPTIONS itself and defers to the stock behavior for
everything else.
"""

from __future__ import annotations

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization"]

_BODY_HEADERS = {"content-length", "content-type"}


class PreflightCORSMiddleware(CORSMiddleware):
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "OPTIONS":
            await super().__call__(scope, receive, send)
            return

        request_headers = Headers(scope=scope)
        origin = request_headers.get("origin")
        if origin and "access-control-request-method" in request_headers:
            preflight = self.preflight_response(request_headers=request_headers)
            headers = {
                key: value
                for key, value in preflight.headers.items()
                if key.lower() not in _BODY_HEADERS
            }
        else:
            headers = dict(self.preflight_headers)
            if origin and self.is_allowed_origin(origin=origin):
                headers["Access-Control-Allow-Origin"] = (
                    origin if self.preflight_explicit_allow_origin else "*"
                )
            elif origin is None and self.allow_all_origins:
                headers["Access-Control-Allow-Origin"] = "*"

        response = Response(status_code=200, headers=headers)
        await response(scope, receive, send)


def error_cors_headers(request: Request, allowed_origins: list[str]) -> dict:
    """
    Headers for responses produced outside the middleware stack (unhandled
    500s are rendered by the outermost error middleware).
    """
    origin = request.headers.get("origin")
    allow_all = "*" in allowed_origins
    if origin and (allow_all or origin in allowed_origins):
        allow_origin = origin
    elif origin is None and allow_all:
        allow_origin = "*"
    else:
        return {}
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": ", ".join(CORS_METHODS),
        "Access-Control-Allow-Headers": ", ".join(CORS_HEADERS),
        "Access-Control-Allow-Credentials": "true",
    }

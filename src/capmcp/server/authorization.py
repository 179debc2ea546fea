# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""HTTP Basic authorization for the HTTP transports.

:class:`AuthorizationManager` wraps an ASGI app with middleware that checks
the ``Authorization: Basic ...`` header against the configured credentials
and answers ``401`` with a ``WWW-Authenticate`` challenge otherwise.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Awaitable, Callable, Iterable
import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..config import AuthConfig
from ..utils import get_logger


class AuthorizationError(Exception):
    """Raised when credentials are missing or wrong."""


class AuthorizationManager:
    """Validates Basic credentials and wraps ASGI apps with enforcement."""

    REALM = "capmcp"

    def __init__(self, config: AuthConfig) -> None:
        self.config = config
        self._logger = get_logger("capmcp.authorization")

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def authenticate(self, header: str | None) -> str:
        """Return the username for a valid ``Authorization`` header."""
        if not header or not header.lower().startswith("basic "):
            raise AuthorizationError("missing basic credentials")
        try:
            decoded = base64.b64decode(header[6:].strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise AuthorizationError("malformed basic credentials") from exc

        username, sep, password = decoded.partition(":")
        if not sep:
            raise AuthorizationError("malformed basic credentials")
        user_ok = secrets.compare_digest(username.encode(), self.config.username.encode())
        password_ok = secrets.compare_digest(password.encode(), self.config.password.encode())
        if not (user_ok and password_ok):
            raise AuthorizationError("invalid credentials")
        return username

    def wrap_asgi(self, app: Callable, *, exempt_paths: Iterable[str] = ()) -> Callable:
        manager = self
        exempt = frozenset(exempt_paths)

        class _Middleware(BaseHTTPMiddleware):
            async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:  # type: ignore[override]
                if request.url.path in exempt or request.method == "OPTIONS":
                    return await call_next(request)

                try:
                    username = manager.authenticate(request.headers.get("authorization"))
                except AuthorizationError as exc:
                    manager._logger.warning(
                        "authorization failed",
                        extra={"event": "auth.basic.reject", "reason": str(exc)},
                    )
                    return manager._challenge_response(str(exc))

                request.scope["capmcp.auth"] = username
                return await call_next(request)

        return _Middleware(app)

    def _challenge_response(self, reason: str | None = None) -> Response:
        headers = {"WWW-Authenticate": f'Basic realm="{self.REALM}"'}
        payload = {"error": "unauthorized", "detail": reason}
        return JSONResponse(payload, status_code=401, headers=headers)


__all__ = ["AuthorizationError", "AuthorizationManager"]

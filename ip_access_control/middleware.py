"""IP access control middleware for Starlette / FastAPI applications.

Registration:
    app.add_middleware(
        IPAccessControlMiddleware,
        allow=["10.0.0.0/8", "127.0.0.1", "::1"],
    )

Lifecycle:
  - __init__: options are packed once. Malformed static allow lists, a
    missing allow source or an unusable on_blocked handler raise here.
    Starlette builds the middleware stack lazily, so with add_middleware()
    the error surfaces when the stack is built (lifespan startup or the
    first ASGI call), never per request once the stack exists.
  - HTTP: options are unpacked (dynamic allow sources are called in the
    threadpool so provider I/O never blocks the event loop), the client
    address is checked, and the request either continues down the stack or
    is answered by the on_blocked handler.
  - WebSocket: the same check runs before the handshake reaches the
    application; a blocked client is closed with 1008 (policy violation).

A blocked connection never reaches the application. Other scope types
(lifespan) pass through untouched.

The client address is ``scope["client"]`` as set by the ASGI server.
Proxy headers are not consulted; run behind a trusted proxy-headers
middleware if the server sits behind a load balancer.
"""

from __future__ import annotations

import inspect
from typing import Any, Mapping, Optional

from starlette import status
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocket

from ip_access_control.engine import allowed
from ip_access_control.options.resolver import (
    Configuration,
    ResolvedConfiguration,
    pack,
    unpack,
)
from ip_access_control.utils.logger import get_logger

logger = get_logger(__name__)


class IPAccessControlMiddleware(BaseHTTPMiddleware):
    """Reject requests whose client address is not in the allow list.

    Keyword options (see ip_access_control.options.pack):
      module, allow, on_blocked, response_code_on_blocked,
      response_body_on_blocked

    ``options`` may also be a mapping (e.g. from load_options()) and
    ``configuration`` an already packed Configuration.
    """

    def __init__(
        self,
        app: ASGIApp,
        options: Optional[Mapping[str, Any]] = None,
        *,
        configuration: Optional[Configuration] = None,
        optimize: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(app)
        if configuration is None:
            configuration = pack(options, optimize=optimize, **kwargs)
        self.configuration = configuration
        logger.info(
            "IP access control enabled",
            allow_source=type(configuration.allow).__name__,
            on_blocked=type(configuration.on_blocked).__name__,
        )

    async def resolve(self) -> ResolvedConfiguration:
        """Unpack the configuration for the current request."""
        if not self.configuration.is_dynamic:
            return unpack(self.configuration)
        try:
            return await run_in_threadpool(unpack, self.configuration)
        except Exception as exc:
            logger.error(
                "Dynamic allow list could not be resolved",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        # BaseHTTPMiddleware only intercepts "http" scopes.
        if scope["type"] != "websocket":
            await super().__call__(scope, receive, send)
            return

        websocket = WebSocket(scope, receive=receive, send=send)
        options = await self.resolve()

        if allowed(websocket, options):
            await self.app(scope, receive, send)
            return

        logger.warning(
            "WebSocket blocked: client address not allowed",
            client_host=websocket.client.host if websocket.client else None,
            path=scope.get("path"),
        )
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        options = await self.resolve()

        if allowed(request, options):
            return await call_next(request)

        client_host = request.client.host if request.client else None
        logger.warning(
            "Request blocked: client address not allowed",
            client_host=client_host,
            path=request.url.path,
            method=request.method,
        )

        response = options.on_blocked(request, options)
        if inspect.isawaitable(response):
            response = await response
        return response

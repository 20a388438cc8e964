"""Default blocked response for ip_access_control.

When no ``on_blocked`` handler is configured the middleware answers a blocked
request with a plain-text response built from the resolved options:

  status: response_code_on_blocked  (default 401)
  body:   response_body_on_blocked  (default "Not Authenticated")

The downstream application is never called for a blocked request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from starlette.responses import PlainTextResponse, Response

if TYPE_CHECKING:
    from ip_access_control.options.resolver import ResolvedConfiguration


def build_blocked_response(options: "ResolvedConfiguration") -> PlainTextResponse:
    """Build the plain-text response for a blocked request.

    No validation is applied: any integer status and any string body are
    sent as configured.

    Args:
        options: Resolved options for the current request.

    Returns:
        PlainTextResponse with the configured status code and body.
    """
    return PlainTextResponse(
        content=options.response_body_on_blocked,
        status_code=options.response_code_on_blocked,
    )


def ip_access_on_blocked(request: Any, options: "ResolvedConfiguration") -> Response:
    """Default ``on_blocked`` handler: ignore the request, send the configured response."""
    return build_blocked_response(options)

"""Error handling pipeline for perch requests.

Maps HTTPError exceptions and unexpected failures to responses, using
registered error handlers or minimal defaults. Unexpected failures are
always logged with their traceback before a 500 is produced.
"""

import html
import inspect
import logging
from collections.abc import Callable
from typing import Any

from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import AnyResponse, Response
from perch.server.negotiation import negotiate

logger = logging.getLogger("perch.server")


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> AnyResponse:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc) args.
    Supports both sync and async error handlers.
    """
    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result
    return negotiate(result)


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
) -> AnyResponse:
    """Map an HTTPError to a response using registered error handlers.

    Without a handler the body is a minimal page carrying the status,
    e.g. ``404 - Page not found logo.png``.
    """
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        # Keep the exception's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    body = f"{exc.status} - {html.escape(exc.detail)}" if exc.detail else str(exc.status)
    response = Response(body=body, status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> AnyResponse:
    """Log an unexpected exception and answer 500."""
    logger.exception("500 %s %s", request.method, request.path)

    handler = error_handlers.get(type(exc)) or error_handlers.get(500)
    if handler is not None:
        return await call_error_handler(handler, request, exc)

    if debug:
        body = f"500 - {html.escape(type(exc).__name__)}: {html.escape(str(exc))}"
        return Response(body=body, status=500)
    return Response(body="Internal Server Error", status=500)

"""ASGI handler — translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly. Converts the scope to
a Request, dispatches through routing, and sends the response back
through ASGI send().
"""

import inspect
from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import AnyResponse, FileResponse
from perch.routing.route import RouteMatch
from perch.routing.router import Router
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.negotiation import negotiate
from perch.server.sender import send_file_response, send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
    file_chunk_size: int,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    try:
        match = router.match(request.method, request.path)
        response = await _invoke_handler(match, request)
    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)

    if isinstance(response, FileResponse):
        try:
            await send_file_response(response, send, chunk_size=file_chunk_size)
            return
        except HTTPError as exc:
            # The file went away before the first byte was sent
            response = await handle_http_error(exc, request, error_handlers)

    if isinstance(response, FileResponse):
        await send_file_response(response, send, chunk_size=file_chunk_size)
    else:
        await send_response(response, send)


async def _invoke_handler(match: RouteMatch, request: Request) -> AnyResponse:
    """Call the matched route handler and negotiate its return value."""
    handler = match.route.handler
    request = request.with_path_params(match.path_params)
    kwargs = _build_handler_kwargs(handler, request, match.path_params)
    result = await invoke(handler, **kwargs)
    return negotiate(result)


def _build_handler_kwargs(
    handler: Callable[..., Any],
    request: Request,
    path_params: dict[str, str],
) -> dict[str, Any]:
    """Inspect handler signature and build kwargs from request + path params.

    A parameter named ``request`` (or annotated ``Request``) receives the
    request; other parameters are filled from path parameters by name,
    converted to their annotated type when possible.
    """
    sig = inspect.signature(handler, eval_str=True)
    kwargs: dict[str, Any] = {}

    for name, param in sig.parameters.items():
        if name == "request" or param.annotation is Request:
            kwargs[name] = request
        elif name in path_params:
            value = path_params[name]
            if param.annotation is not inspect.Parameter.empty:
                try:
                    kwargs[name] = param.annotation(value)
                except (ValueError, TypeError):
                    kwargs[name] = value
            else:
                kwargs[name] = value

    return kwargs

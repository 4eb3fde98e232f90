"""Call sync or async handlers uniformly.

Perch handlers can be ``def``, ``async def``, or callable objects such as
``StaticSite``. Anything that calls a user-provided handler goes through
``invoke`` so the sync/async check lives in one place.
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

"""Invoke helpers — call sync or async page collaborators uniformly.

Page functions (``load_data``, ``list_params``) can be ``def`` or
``async def``. Anything that calls them goes through this module so the
sync/async check lives in exactly one place.

Usage::

    from perch._internal.invoke import invoke

    data = await invoke(page.load_data, offload=True, **params)
"""

import functools
import inspect
from typing import Any

import anyio.to_thread


async def invoke(func: Any, *args: Any, offload: bool = False, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    With ``offload=True`` a plain ``def`` function runs in anyio's worker
    thread pool so a blocking loader does not stall the event loop::

        def load_data(slug):          # blocking I/O, offloaded
            return PageData(props=db.fetch(slug))

        async def load_data(slug):    # awaited in place
            return PageData(props=await api.fetch(slug))
    """
    if offload and not inspect.iscoroutinefunction(func):
        result = await anyio.to_thread.run_sync(functools.partial(func, *args, **kwargs))
    else:
        result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

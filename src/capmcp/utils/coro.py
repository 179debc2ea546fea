# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Helpers for calling handlers that may be sync or async."""

from __future__ import annotations

import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Resolve *value*: call it when callable, await it when awaitable."""
    if callable(value):
        value = value()
    if inspect.isawaitable(value):
        return await value
    return value


async def maybe_await_with_args(target: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *target* with the given arguments and await the result if needed.

    Non-callable targets (plain values or already-created coroutines) ignore
    the arguments.
    """
    result = target(*args, **kwargs) if callable(target) else target
    if inspect.isawaitable(result):
        return await result
    return result


__all__ = ["maybe_await", "maybe_await_with_args"]

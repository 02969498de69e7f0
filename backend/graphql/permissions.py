"""
Resolver authorization gate.

Usage:
    @strawberry.field
    @require_auth
    async def my_events(self, info: strawberry.Info) -> EventConnection:
        ...
"""

import functools
import inspect
from typing import Any, Callable, Optional, TypeVar

from .errors import AuthenticationRequired

F = TypeVar("F", bound=Callable[..., Any])


def _find_context(args: tuple, kwargs: dict) -> Optional[Any]:
    info = kwargs.get("info")
    if info is None:
        info = next((arg for arg in args if hasattr(arg, "context")), None)
    return getattr(info, "context", None)


def _check_authenticated(args: tuple, kwargs: dict) -> None:
    context = _find_context(args, kwargs)
    if getattr(context, "user", None) is None:
        raise AuthenticationRequired()


def require_auth(resolver: F) -> F:
    """
    Wrap a resolver so it only runs for an authenticated caller.

    Raises AuthenticationRequired before the resolver is called when the
    request context carries no user. Otherwise all arguments are passed
    through unchanged and the resolver's result or exception is returned
    as-is. The wrapper keeps the resolver's signature, so strawberry builds
    the same field arguments.
    """
    if inspect.iscoroutinefunction(resolver):
        @functools.wraps(resolver)
        async def async_wrapper(*args, **kwargs):
            _check_authenticated(args, kwargs)
            return await resolver(*args, **kwargs)

        return async_wrapper

    @functools.wraps(resolver)
    def wrapper(*args, **kwargs):
        _check_authenticated(args, kwargs)
        return resolver(*args, **kwargs)

    return wrapper

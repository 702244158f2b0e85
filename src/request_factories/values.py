"""
Tagged field values for factory definitions.

A definition maps keys to one of:

- a literal (anything not listed below, or anything wrapped in :class:`Literal`)
- a lazy value (:class:`Lazy`, or a bare function/lambda/partial)
- a nested builder (a ``RequestFactory`` instance or subclass)
- a model factory (any other object with a callable ``create``)

Resolution turns every non-literal into plain data; see :mod:`request_factories.resolver`.
"""

import functools
import inspect
import logging
import types
from dataclasses import dataclass
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)

LAZY_CALLABLE_TYPES = (types.FunctionType, types.MethodType, functools.partial)


@dataclass(frozen=True)
class Literal:
    """Wrap a value so resolution passes it through untouched."""

    value: Any


@dataclass(frozen=True)
class Lazy:
    """
    A value computed at resolve time from its sibling values.

    ``func`` receives the sibling :class:`~request_factories.resolver.Attributes`
    when it accepts a positional argument, and is called with no arguments
    otherwise.
    """

    func: Callable[..., Any]

    def __call__(self, attributes: Mapping[str, Any]) -> Any:
        if accepts_positional(self.func):
            return self.func(attributes)
        return self.func()


def lazy(func: Callable[..., Any]) -> Lazy:
    """Mark ``func`` as a lazy value. Usable as a decorator."""
    return func if isinstance(func, Lazy) else Lazy(func)


def literal(value: Any) -> Literal:
    """Mark ``value`` as a literal even if it looks resolvable."""
    return Literal(value)


def accepts_positional(func: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(func)
    except (ValueError, TypeError):
        # No introspectable signature (C callables); pass the attributes
        return True

    for param in signature.parameters.values():
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            return True
    return False


def coerce_lazy(value: Any) -> Any:
    """Wrap bare functions in :class:`Lazy`; return everything else unchanged."""
    if isinstance(value, LAZY_CALLABLE_TYPES):
        return Lazy(value)
    return value


def is_nested_builder(value: Any) -> bool:
    """Check if value is a request factory instance or subclass."""
    # Imported inline to avoid a circular import with factory.py
    from request_factories.factory import RequestFactory

    if isinstance(value, RequestFactory):
        return True
    return isinstance(value, type) and issubclass(value, RequestFactory)


def is_model_factory(value: Any) -> bool:
    """
    Check if value is a side-effecting model factory.

    Anything exposing a callable ``create`` qualifies (factory_boy factories,
    hand-written model factories), except request factories and tagged values.
    """
    if isinstance(value, (Lazy, Literal, str, bytes, Mapping, list, tuple)):
        return False
    if is_nested_builder(value):
        return False
    return callable(getattr(value, "create", None))


def model_key(model: Any) -> Any:
    """Reduce a created model to the value a request would carry for it."""
    get_key = getattr(model, "get_key", None)
    if callable(get_key):
        return get_key()
    for attr_name in ("pk", "id"):
        key = getattr(model, attr_name, None)
        if key is not None:
            return key
    logger.debug(f"Created model {type(model).__name__} exposes no key, using the model itself")
    return model


def is_file_like(value: Any) -> bool:
    """Check if value should travel as an upload instead of request data."""
    if isinstance(value, (str, bytes, Mapping, list, tuple, type)):
        return False
    return callable(getattr(value, "read", None))

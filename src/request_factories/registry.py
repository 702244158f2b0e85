"""
Context-scoped registry of faked request factories.

``fake()`` stores a factory here under its target; the request boundary pops
it the next time a request for that target is prepared. The active registry
lives in a contextvar, so each test (or each worker task) can run inside its
own :func:`fake_scope` without leaking fakes into the next one. Outside any
scope a process-wide default registry is used.
"""

import contextvars
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from request_factories.locator import target_key

logger = logging.getLogger(__name__)


class FakeRegistry:
    """
    Faked factories keyed by target name. Last set wins.
    """

    def __init__(self) -> None:
        self._fakes: Dict[str, Any] = {}

    def set(self, target: Any, factory: Any) -> None:
        key = target_key(target)
        if key in self._fakes:
            logger.warning(f"Replacing fake for {key}")
        self._fakes[key] = factory
        logger.debug(f"Registered {type(factory).__name__} as fake for {key}")

    def get(self, target: Any, default: Any = None) -> Any:
        return self._fakes.get(target_key(target), default)

    def pop(self, target: Any, default: Any = None) -> Any:
        """Remove and return the fake for ``target``."""
        return self._fakes.pop(target_key(target), default)

    def clear(self, target: Any = None) -> None:
        """Clear the fake for ``target``, or every fake when no target is given."""
        if target is None:
            self._fakes.clear()
        else:
            self._fakes.pop(target_key(target), None)

    def targets(self) -> List[str]:
        return list(self._fakes)

    def __contains__(self, target: Any) -> bool:
        return target_key(target) in self._fakes

    def __len__(self) -> int:
        return len(self._fakes)

    def __repr__(self) -> str:
        return f"FakeRegistry({self.targets()})"


# Fallback when no scope is active
_default_registry = FakeRegistry()

# Registry for the current execution context
current_registry = contextvars.ContextVar("current_registry")


def get_current_registry() -> FakeRegistry:
    """Get the registry of the innermost active scope, or the process-wide default."""
    registry = current_registry.get(None)
    return registry if registry is not None else _default_registry


def get_default_registry() -> FakeRegistry:
    return _default_registry


def set_current_registry(registry: Optional[FakeRegistry]) -> contextvars.Token:
    """
    Set the active registry directly (for testing/debugging).

    Normal code should use :func:`fake_scope` instead.

    Returns:
        Token for resetting the context
    """
    return current_registry.set(registry)


@contextmanager
def fake_scope(registry: Optional[FakeRegistry] = None) -> Iterator[FakeRegistry]:
    """
    Run a block with its own fake registry.

    Args:
        registry: Registry to activate; a fresh one is created when omitted

    Usage:
        with fake_scope() as fakes:
            SignupRequestFactory.new().fake()
            ...
    """
    if registry is None:
        registry = FakeRegistry()
    token = current_registry.set(registry)
    try:
        yield registry
    finally:
        current_registry.reset(token)

"""Exceptions for request-factories."""

from typing import Any, Sequence, Tuple


def format_path(path: Sequence[Any]) -> str:
    """Render a path tuple the way users write it (``address.line_one``)."""
    return ".".join(str(segment) for segment in path) or "<root>"


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class RequestFactoryError(Exception):
    """
    Base exception for all request-factories errors.

    All exceptions raised by this library inherit from this class,
    so a test helper can catch every library error with one except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Configuration Errors
# ---------------------------------------------------------------------------


class ConfigurationError(RequestFactoryError):
    """
    Base exception for misconfigured factories.

    Raised while merging or resolving a factory, never deferred to assertion
    time. No partial result is returned when one of these is raised.
    """

    pass


class MalformedPath(ConfigurationError):  # noqa: N818
    """Raised when a dot path has an empty segment (``"a..b"``, ``".a"``, ``""``)."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Malformed dot path {path!r}: path segments must not be empty")


class CircularLazyDependency(ConfigurationError):  # noqa: N818
    """
    Raised when lazy values read each other in a cycle.

    Attributes:
        level: Path of the mapping the cycle lives in
        cycle: Keys in the order they were entered, ending with the repeated key
    """

    def __init__(self, level: Tuple[Any, ...], cycle: Sequence[str]) -> None:
        self.level = tuple(level)
        self.cycle = list(cycle)
        chain = " -> ".join(format_path(self.level + (key,)) for key in self.cycle)
        super().__init__(f"Circular lazy dependency: {chain}")


class UnresolvableReference(ConfigurationError):  # noqa: N818
    """
    Raised in strict mode when a path does not address an existing location.

    Attributes:
        path: The offending path as a tuple of segments
        reason: Why the path could not be addressed
    """

    def __init__(self, path: Sequence[Any], reason: str) -> None:
        self.path = tuple(path)
        self.reason = reason
        super().__init__(f"Cannot address {format_path(self.path)!r}: {reason}")


# ---------------------------------------------------------------------------
# Lookup Errors
# ---------------------------------------------------------------------------


class CouldNotLocateRequestFactory(RequestFactoryError, LookupError):  # noqa: N818
    """Raised when no factory is mapped, declared or found by convention for a target."""

    def __init__(self, target: Any, searched: Sequence[str] = ()) -> None:
        self.target = target
        self.searched = list(searched)
        message = f"Could not locate a request factory for {target!r}"
        if self.searched:
            message += f" (searched: {', '.join(self.searched)})"
        super().__init__(message)


class CouldNotLocateRequest(RequestFactoryError, LookupError):  # noqa: N818
    """Raised when a factory declares no target and its name does not carry the factory suffix."""

    def __init__(self, factory: type, suffix: str) -> None:
        self.factory = factory
        self.suffix = suffix
        super().__init__(
            f"{factory.__name__} does not declare a target and its name does not end "
            f"with {suffix!r}; set `target` on the factory class"
        )


# ---------------------------------------------------------------------------
# Usage Errors
# ---------------------------------------------------------------------------


class FactoryUsageError(RequestFactoryError, TypeError):
    """Raised when a factory method is called with an argument it cannot use."""

    pass

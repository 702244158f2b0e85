"""
Registration entrypoints and the simulated request boundary.

A host framework adapter (a test client wrapper, a request-validation hook)
calls :func:`prepare_request` right before handling a request for some target
type. If a test faked that target, the faked factory is consumed and resolved
with the request's own data on top, so explicitly sent fields always win.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from request_factories.exceptions import FactoryUsageError
from request_factories.factory import RequestFactory, ResolvedRequest
from request_factories.locator import ConventionLocator, FactoryLocator
from request_factories.paths import merge, undot
from request_factories.registry import FakeRegistry, get_current_registry

logger = logging.getLogger(__name__)


def as_factory(subject: Any, locator: Optional[FactoryLocator] = None) -> RequestFactory:
    """
    Turn whatever a test handed us into a factory builder.

    Accepts a builder, a factory class, a zero-argument callable returning
    either, or a target (request type or dotted name) to locate.
    """
    if isinstance(subject, RequestFactory):
        return subject
    if isinstance(subject, type) and issubclass(subject, RequestFactory):
        return subject.new()
    if isinstance(subject, (type, str)):
        locator = locator if locator is not None else ConventionLocator()
        return locator.locate_factory(subject).new()
    if callable(subject):
        produced = subject()
        if isinstance(produced, RequestFactory):
            return produced
        if isinstance(produced, type) and issubclass(produced, RequestFactory):
            return produced.new()
        raise FactoryUsageError(
            f"Factory callable returned {type(produced).__name__}, expected a RequestFactory"
        )
    raise FactoryUsageError(f"Cannot build a request factory from {subject!r}")


def fake(
    subject: Any,
    *,
    registry: Optional[FakeRegistry] = None,
    locator: Optional[FactoryLocator] = None,
) -> RequestFactory:
    """
    Fake the next request for a target.

    Args:
        subject: Builder, factory class, callable producing one, or target to locate
        registry: Registry to use; defaults to the active one
        locator: Locator for targets; defaults to :class:`ConventionLocator`

    Returns:
        The registered builder
    """
    return as_factory(subject, locator).fake(registry=registry)


def prepare_request(
    target: Any,
    data: Optional[Mapping] = None,
    files: Optional[Mapping] = None,
    *,
    registry: Optional[FakeRegistry] = None,
) -> ResolvedRequest:
    """
    Build the payload of a request about to be handled for ``target``.

    Consumes the fake registered for ``target``, if any, and resolves it with
    ``data`` as request data. Explicit ``files`` win over the factory's files.
    Without a fake the inputs come back unchanged.
    """
    registry = registry if registry is not None else get_current_registry()
    factory = registry.pop(target)
    if factory is None:
        return ResolvedRequest(data=dict(data or {}), files=dict(files or {}))

    logger.debug(f"Injecting {type(factory).__name__} into request for {target!r}")
    resolved = factory.resolve(data)
    return ResolvedRequest(data=resolved.data, files=merge(resolved.files, undot(files or {})))

"""
request_factories: default request payloads for tests.

Factories declare plausible default fields once; tests override only the
fields under examination, with dot-path nesting, lazy fields computed from
their siblings, nested factories and context-scoped request fakes.
"""

__version__ = "0.1.0"

from .boundary import (
    as_factory,
    fake,
    prepare_request,
)
from .config import (
    FactoryConfig,
    configure,
    get_factory_config,
    reset_factory_config,
    set_factory_config,
)
from .exceptions import (
    CircularLazyDependency,
    ConfigurationError,
    CouldNotLocateRequest,
    CouldNotLocateRequestFactory,
    FactoryUsageError,
    MalformedPath,
    RequestFactoryError,
    UnresolvableReference,
)
from .factory import (
    RequestFactory,
    ResolvedRequest,
    get_faker,
)
from .locator import (
    ConventionLocator,
    FactoryLocator,
    register_factory,
    unregister_factory,
)
from .registry import (
    FakeRegistry,
    fake_scope,
    get_current_registry,
)
from .resolver import (
    Attributes,
    resolve_pending,
)
from .values import (
    Lazy,
    Literal,
    lazy,
    literal,
)

__all__ = [
    # Factory
    "RequestFactory",
    "ResolvedRequest",
    "get_faker",
    # Values
    "Lazy",
    "Literal",
    "lazy",
    "literal",
    "Attributes",
    "resolve_pending",
    # Registration and request boundary
    "fake",
    "as_factory",
    "prepare_request",
    "FakeRegistry",
    "fake_scope",
    "get_current_registry",
    # Locator
    "FactoryLocator",
    "ConventionLocator",
    "register_factory",
    "unregister_factory",
    # Configuration
    "FactoryConfig",
    "configure",
    "get_factory_config",
    "set_factory_config",
    "reset_factory_config",
    # Errors
    "RequestFactoryError",
    "ConfigurationError",
    "CircularLazyDependency",
    "UnresolvableReference",
    "MalformedPath",
    "CouldNotLocateRequestFactory",
    "CouldNotLocateRequest",
    "FactoryUsageError",
]

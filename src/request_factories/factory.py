"""
Request factories: default request payloads that tests override piecemeal.

Subclass :class:`RequestFactory`, return the default fields from
``definition()`` and let tests change only what they care about::

    class SignupRequestFactory(RequestFactory):
        def definition(self):
            return {
                "name": self.faker.name(),
                "email": lambda p: slugify(p.name) + "@example.com",
                "address": AddressFactory,
            }

        def unverified(self):
            return self.state({"verified": False})

    SignupRequestFactory.new().state({"address.line_one": "1 Main St"}).create()

Precedence, highest first: request data passed to ``resolve``/``create``,
``state`` patches (last call wins), then ``definition()``/``files()``.
``without`` paths are deleted from the result last, whichever layer set them.
"""

import copy
import logging
from abc import ABCMeta, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple, Union

from faker import Faker

from request_factories.config import get_factory_config
from request_factories.exceptions import CouldNotLocateRequest, FactoryUsageError, UnresolvableReference
from request_factories.locator import register_declared_factory, target_key
from request_factories.paths import forget, merge, split_files, split_path, undot
from request_factories.resolver import FILES, Resolution
from request_factories.values import accepts_positional

logger = logging.getLogger(__name__)

StatePatch = Union[Mapping, Callable[..., Mapping]]

# Faker instances keyed by (locale, seed)
_fakers: Dict[Tuple[Optional[str], Optional[int]], Faker] = {}


def get_faker(locale: Optional[str] = None) -> Faker:
    """
    Get the shared Faker for a locale.

    The configured ``faker_seed`` is applied when the instance is created, so
    every factory sharing a locale draws from one seeded sequence.
    """
    config = get_factory_config()
    locale = locale or config.faker_locale
    cache_key = (locale, config.faker_seed)
    if cache_key not in _fakers:
        faker = Faker(locale) if locale else Faker()
        if config.faker_seed is not None:
            faker.seed_instance(config.faker_seed)
        _fakers[cache_key] = faker
    return _fakers[cache_key]


def reset_fakers() -> None:
    """Drop cached Faker instances so the next lookup re-reads the config."""
    _fakers.clear()


@dataclass(frozen=True)
class ResolvedRequest:
    """
    Fully resolved request payload.

    ``data`` holds plain values only; ``files`` holds file-like uploads with
    the same nesting. Unpacks as ``data, files = factory.resolve()``.
    """

    data: Dict[Any, Any] = field(default_factory=dict)
    files: Dict[Any, Any] = field(default_factory=dict)

    def __iter__(self) -> Iterator[Dict[Any, Any]]:
        return iter((self.data, self.files))


class RequestFactoryMeta(ABCMeta):
    """Metaclass recording factories that declare a ``target`` in their class body."""

    def __new__(mcs, name, bases, namespace, **kwargs):
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)
        if namespace.get("target") is not None:
            register_declared_factory(cls)
        return cls


class RequestFactory(metaclass=RequestFactoryMeta):
    """
    Base class for request factories.

    Builders are immutable: ``state``, ``without`` and ``strict`` return a new
    builder and leave the receiver untouched, so a partially configured
    factory can be shared between tests.

    Class attributes:
        target: Request type (or dotted name) this factory fakes. When unset,
            the target name is the class name minus the configured factory
            suffix.
        strict_paths: Strict path checking default for this factory; falls
            back to the configured default when None.
        faker_locale: Locale for ``self.faker``; falls back to the configured one.
    """

    target: Any = None
    strict_paths: Optional[bool] = None
    faker_locale: Optional[str] = None

    def __init__(self) -> None:
        self._states: Tuple[Any, ...] = ()
        self._without: Tuple[Tuple[str, ...], ...] = ()
        self._strict: Optional[bool] = None

    @classmethod
    def new(cls, attributes: Optional[Mapping] = None, **fields: Any) -> "RequestFactory":
        """Create a builder, applying ``attributes``/``fields`` as the first state patch."""
        factory = cls()
        if attributes or fields:
            factory = factory.state(attributes, **fields)
        return factory

    # -- hooks ---------------------------------------------------------------

    @abstractmethod
    def definition(self) -> Dict[str, Any]:
        """Default request fields. Called once per resolution; must not keep state."""

    def files(self) -> Dict[str, Any]:
        """Default uploads. Resolved separately from ``definition()``."""
        return {}

    # -- chainable modifiers -------------------------------------------------

    def state(self, patch: Optional[StatePatch] = None, **fields: Any) -> "RequestFactory":
        """
        Override fields.

        Args:
            patch: Mapping of (possibly dotted) keys to values, or a callable
                that receives the resolved data accumulated so far and returns
                such a mapping
            **fields: Extra top-level overrides, applied after ``patch``

        Returns:
            New builder with the override recorded
        """
        patches = []
        if patch is not None:
            if isinstance(patch, Mapping):
                patches.append(undot(patch))
            elif callable(patch) and not isinstance(patch, type):
                patches.append(patch)
            else:
                raise FactoryUsageError(
                    f"state() takes a mapping or a callable, got {type(patch).__name__}"
                )
        if fields:
            patches.append(undot(fields))
        return self._derive(_states=self._states + tuple(patches))

    def without(self, *paths: Union[str, Iterable[str]]) -> "RequestFactory":
        """Remove dot paths from the resolved data and files."""
        omitted = []
        for entry in paths:
            if isinstance(entry, str):
                omitted.append(split_path(entry))
            else:
                omitted.extend(split_path(path) for path in entry)
        return self._derive(_without=self._without + tuple(omitted))

    def strict(self, enabled: bool = True) -> "RequestFactory":
        """Toggle strict path checking for this builder."""
        return self._derive(_strict=enabled)

    def _derive(self, **changes: Any) -> "RequestFactory":
        clone = copy.copy(self)
        for name, value in changes.items():
            setattr(clone, name, value)
        return clone

    # -- properties ----------------------------------------------------------

    @property
    def is_strict(self) -> bool:
        if self._strict is not None:
            return self._strict
        if self.strict_paths is not None:
            return self.strict_paths
        return get_factory_config().strict_paths

    @property
    def faker(self) -> Faker:
        return get_faker(self.faker_locale)

    @classmethod
    def target_name(cls) -> str:
        """
        Registry key of the request type this factory fakes.

        Raises:
            CouldNotLocateRequest: If no target is declared and the class name
                does not end with the factory suffix
        """
        if cls.target is not None:
            return target_key(cls.target)
        suffix = get_factory_config().factory_suffix
        name = cls.__name__
        if suffix and name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
        raise CouldNotLocateRequest(cls, suffix)

    # -- terminal operations -------------------------------------------------

    def resolve(self, request_data: Optional[Mapping] = None) -> ResolvedRequest:
        """
        Resolve the factory into request data and files.

        Args:
            request_data: Data supplied at the request boundary; wins over
                every state patch and the definition

        Raises:
            CircularLazyDependency: If lazy values read each other in a cycle
            UnresolvableReference: In strict mode, for paths that address nothing
        """
        return self.resolve_within(Resolution(), request_data)

    def resolve_within(
        self,
        resolution: Resolution,
        request_data: Optional[Mapping] = None,
        path: Tuple[Any, ...] = (),
        files_only: bool = False,
    ) -> ResolvedRequest:
        """
        Resolve as part of an ongoing resolution (nested builders, snapshots).

        With ``files_only`` only ``files()`` is resolved and the data layers
        are never touched, so nothing in ``definition()`` runs. Omissions still
        apply to the files.
        """
        if files_only:
            files = resolution.resolve_tree(
                undot(resolution.hook_result(self, "files", path)), path, section=FILES
            )
            for omitted in self._without:
                forget(files, omitted)
            return ResolvedRequest(data={}, files=files)

        strict = self.is_strict
        request_layer = undot(request_data or {})
        pending = undot(resolution.hook_result(self, "definition", path))

        for patch in self._states:
            if callable(patch):
                snapshot = resolution.resolve_tree(merge(pending, request_layer, path=path), path)
                patch = self._call_state(patch, snapshot)
            pending = merge(pending, patch, strict=strict, path=path)

        pending = merge(pending, request_layer, path=path)
        data = resolution.resolve_tree(pending, path)

        files = resolution.resolve_tree(
            undot(resolution.hook_result(self, "files", path)), path, section=FILES
        )
        data, uploads = split_files(data)
        files = merge(files, uploads)

        for omitted in self._without:
            removed_data = forget(data, omitted)
            removed_files = forget(files, omitted)
            if strict and not (removed_data or removed_files):
                raise UnresolvableReference(path + omitted, "nothing to remove")

        logger.debug(
            f"Resolved {type(self).__name__}: {len(data)} fields, {len(files)} file fields"
        )
        return ResolvedRequest(data=data, files=files)

    def _call_state(self, patch: Callable[..., Mapping], snapshot: Dict[Any, Any]) -> Dict[Any, Any]:
        result = patch(snapshot) if accepts_positional(patch) else patch()
        if not isinstance(result, Mapping):
            raise FactoryUsageError(
                f"State callable on {type(self).__name__} must return a mapping, "
                f"got {type(result).__name__}"
            )
        return undot(result)

    def create(self, attributes: Optional[Mapping] = None, **fields: Any) -> Dict[Any, Any]:
        """Resolve and return the request data only. ``attributes`` act as request data."""
        request_data = dict(attributes or {})
        request_data.update(fields)
        return self.resolve(request_data).data

    def fake(self, registry: Any = None) -> "RequestFactory":
        """
        Register this builder as the fake for its target.

        The next request prepared for the target resolves this builder with
        that request's data. Uses the active fake registry unless one is given.
        """
        from request_factories.registry import get_current_registry

        registry = registry if registry is not None else get_current_registry()
        registry.set(self.target_name(), self)
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}(states={len(self._states)}, without={len(self._without)})"

"""
Depth-first resolution of pending factory trees.

A pending tree is what a factory holds after merging its definition, its state
patches and the request data: nested dicts whose leaves may still be lazy
values, nested builders or model factories. Resolution walks that tree one
mapping level at a time and turns every leaf into plain data.

Within a level, keys resolve left to right in insertion order. A lazy value
that reads a sibling resolves that sibling on demand, so declaration order only
matters for lazy values that do not read each other. Reading a sibling that is
itself still being resolved is a cycle and raises ``CircularLazyDependency``.

One :class:`Resolution` covers one top-level ``resolve`` call. It remembers
hook results, lazy values and created models per path, so a snapshot taken for
a callable state patch and the final pass agree on generated values and run
every side effect once. A remembered lazy value is reused only while the
siblings it read still resolve to what it saw.
"""

import logging
import types
from collections.abc import Mapping
from typing import Any, Dict, Iterator, List, Optional, Tuple

from request_factories.exceptions import CircularLazyDependency, FactoryUsageError, format_path
from request_factories.paths import get_path, split_path, undot
from request_factories.values import (
    Lazy,
    Literal,
    coerce_lazy,
    is_model_factory,
    is_nested_builder,
    model_key,
)

logger = logging.getLogger(__name__)

Path = Tuple[Any, ...]

DATA = "data"
FILES = "files"

_MISSING = object()

# Kinds of sibling reads a lazy value can make
_GET = "get"
_HAS = "has"
_KEYS = "keys"


class Attributes(Mapping):
    """
    Read-only view of the sibling values a lazy value can see.

    Looking up a key resolves it on demand. Keys may be dotted to reach into a
    nested sibling (``attributes["address.postcode"]``) and plain keys can be
    read as attributes (``attributes.name``). Iteration skips siblings that are
    currently being resolved, so ``dict(attributes)`` never trips over the
    lazy value asking for it. Membership tests never resolve anything for
    plain keys.
    """

    def __init__(self, level: "_Level") -> None:
        self._level = level

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, str) and "." in key:
            first, *rest = split_path(key)
            value = get_path(self._read(first), tuple(rest), _MISSING)
            if value is _MISSING:
                raise KeyError(key)
            return value
        return self._read(key)

    def __contains__(self, key: Any) -> bool:
        if isinstance(key, str) and "." in key:
            try:
                self[key]
            except KeyError:
                return False
            return True
        present = key in self._level.keys()
        self._level.note(_HAS, key, present)
        return present

    def __iter__(self) -> Iterator[Any]:
        visible = self._level.visible_keys()
        self._level.note(_KEYS, None, visible)
        return iter(visible)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(
                f"No sibling {name!r} at {format_path(self._level.path)}"
            ) from None

    def __repr__(self) -> str:
        return f"Attributes({format_path(self._level.path)}: {list(self._level.keys())})"

    def _read(self, key: Any) -> Any:
        try:
            value = self._level.resolve_key(key)
        except KeyError:
            self._level.note(_GET, key, _MISSING)
            raise
        self._level.note(_GET, key, value)
        return value


class _Level:
    """One mapping of the pending tree, resolved key by key."""

    def __init__(self, resolution: "Resolution", pending: Dict[Any, Any], path: Path, section: str) -> None:
        self.resolution = resolution
        self.pending = pending
        self.path = path
        self.section = section
        self.resolved: Dict[Any, Any] = {}
        self.stack: List[Any] = []
        # One list of sibling reads per lazy value currently running here
        self.trackers: List[List[Tuple[str, Any, Any]]] = []
        self.attributes = Attributes(self)

    def keys(self):
        return self.pending.keys()

    def in_progress(self, key: Any) -> bool:
        return key in self.stack

    def visible_keys(self) -> Tuple[Any, ...]:
        return tuple(key for key in self.pending if not self.in_progress(key))

    def note(self, kind: str, key: Any, observed: Any) -> None:
        if self.trackers:
            self.trackers[-1].append((kind, key, observed))

    def still_sees(self, reads: List[Tuple[str, Any, Any]]) -> bool:
        """Check that every recorded sibling read would observe the same thing now."""
        for kind, key, observed in reads:
            if kind == _GET:
                try:
                    current = self.resolve_key(key)
                except KeyError:
                    current = _MISSING
            elif kind == _HAS:
                current = key in self.pending
            else:
                current = self.visible_keys()
            if current is observed:
                continue
            if current is _MISSING or observed is _MISSING or current != observed:
                return False
        return True

    def resolve_key(self, key: Any) -> Any:
        if key in self.resolved:
            return self.resolved[key]
        if key in self.stack:
            cycle = self.stack[self.stack.index(key):] + [key]
            raise CircularLazyDependency(self.path, cycle)
        if key not in self.pending:
            raise KeyError(key)

        self.stack.append(key)
        try:
            value = self.resolution.resolve_value(self.pending[key], self.path + (key,), self)
        finally:
            self.stack.pop()

        self.resolved[key] = value
        return value

    def resolve_all(self) -> Dict[Any, Any]:
        return {key: self.resolve_key(key) for key in self.pending}


class Resolution:
    """
    State shared by everything resolved during one top-level ``resolve`` call.

    Caches hook results, lazy values and created models keyed by path.
    """

    def __init__(self) -> None:
        self._hooks: Dict[Tuple[Any, ...], Any] = {}
        self._lazies: Dict[Tuple[Any, ...], Tuple[Any, List[Tuple[str, Any, Any]], Any]] = {}
        self._models: Dict[Tuple[Any, ...], Tuple[Any, Any]] = {}

    def hook_result(self, factory: Any, hook: str, path: Path) -> Dict[Any, Any]:
        """Call ``factory.<hook>()`` once per factory class and path."""
        cache_key = (type(factory), hook, path)
        if cache_key not in self._hooks:
            result = getattr(factory, hook)()
            if not isinstance(result, Mapping):
                raise FactoryUsageError(
                    f"{type(factory).__name__}.{hook}() must return a mapping, "
                    f"got {type(result).__name__}"
                )
            self._hooks[cache_key] = result
        return self._hooks[cache_key]

    def resolve_tree(self, pending: Dict[Any, Any], path: Path = (), section: str = DATA) -> Dict[Any, Any]:
        """Resolve an undotted pending tree into plain data."""
        return _Level(self, pending, path, section).resolve_all()

    def resolve_value(self, value: Any, path: Path, level: _Level) -> Any:
        """
        Resolve one pending value.

        Args:
            value: The pending value
            path: Its location in the full tree
            level: The mapping level it belongs to (gives lazy values their siblings)

        Returns:
            Plain data for ``value``
        """
        if isinstance(value, Literal):
            return value.value

        source = value
        value = coerce_lazy(value)
        if isinstance(value, Lazy):
            return self.resolve_lazy(source, value, path, level)

        if is_nested_builder(value):
            builder = value.new() if isinstance(value, type) else value
            logger.debug(f"Resolving nested {type(builder).__name__} at {format_path(path)}")
            if level.section == FILES:
                return builder.resolve_within(self, path=path, files_only=True).files
            return builder.resolve_within(self, path=path).data

        if isinstance(value, Mapping):
            return self.resolve_tree(undot(value), path, level.section)

        if isinstance(value, list):
            return [self.resolve_value(item, path + (index,), level) for index, item in enumerate(value)]
        if type(value) is tuple:
            return tuple(self.resolve_value(item, path + (index,), level) for index, item in enumerate(value))

        if is_model_factory(value):
            return self.create_model(value, path, level.section)

        return value

    def resolve_lazy(self, source: Any, value: Lazy, path: Path, level: _Level) -> Any:
        """Run a lazy value, or reuse its result while its sibling reads still hold."""
        cache_key = (level.section, path)
        cached = self._lazies.get(cache_key)
        if cached is not None:
            cached_source, reads, result = cached
            if _same_source(cached_source, source) and level.still_sees(reads):
                logger.debug(f"Reusing lazy value at {format_path(path)}")
                return _copy_tree(result)

        logger.debug(f"Resolving lazy value at {format_path(path)}")
        level.trackers.append([])
        try:
            produced = value(level.attributes)
        finally:
            reads = level.trackers.pop()

        result = self.resolve_value(produced, path, level)
        self._lazies[cache_key] = (source, reads, _copy_tree(result))
        return result

    def create_model(self, factory: Any, path: Path, section: str = DATA) -> Any:
        """Run a model factory once per path and return the created model's key."""
        cache_key = (section, path, id(factory))
        if cache_key in self._models:
            return self._models[cache_key][1]

        model = factory.create()
        key = model_key(model)
        # Keep the factory referenced so its id stays unique for this resolution
        self._models[cache_key] = (factory, key)
        logger.debug(f"Created {type(model).__name__} for {format_path(path)} -> {key!r}")
        return key


def _same_source(cached: Any, current: Any) -> bool:
    if cached is current:
        return True
    if type(cached) is not type(current):
        return False
    return isinstance(cached, (Lazy, types.MethodType)) and cached == current


def _copy_tree(value: Any) -> Any:
    """Copy the dicts and lists of a resolved tree, sharing the leaves."""
    if isinstance(value, dict):
        return {key: _copy_tree(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy_tree(item) for item in value]
    return value


def resolve_pending(pending: Dict[Any, Any], resolution: Optional[Resolution] = None) -> Dict[Any, Any]:
    """
    Resolve a pending tree outside of a factory.

    Useful for ad-hoc payloads: ``resolve_pending({"a": 1, "b": lambda p: p.a + 1})``.
    """
    resolution = resolution or Resolution()
    return resolution.resolve_tree(undot(pending))

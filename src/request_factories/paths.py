"""
Dot-path helpers for nested request data.

Keys such as ``"address.line_one"`` address nested mappings. These helpers
expand dotted keys into nested dicts, merge override layers onto a base tree,
and look up or delete paths after resolution. All of them return new dicts and
never mutate their inputs, except :func:`forget` which works on a tree the
caller owns.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from request_factories.exceptions import FactoryUsageError, MalformedPath, UnresolvableReference
from request_factories.values import Lazy, Literal, coerce_lazy, is_file_like, is_nested_builder

logger = logging.getLogger(__name__)

Path = Tuple[Any, ...]

_MISSING = object()


def split_path(path: str) -> Tuple[str, ...]:
    """
    Split a dot path into its segments.

    Raises:
        MalformedPath: If any segment is empty
    """
    if not isinstance(path, str):
        raise FactoryUsageError(f"Dot paths must be strings, got {type(path).__name__}")
    segments = tuple(path.split("."))
    if any(segment == "" for segment in segments):
        raise MalformedPath(path)
    return segments


def undot(mapping: Mapping[Any, Any]) -> Dict[Any, Any]:
    """
    Expand dotted keys into nested dicts.

    ``{"address.line_one": "X", "name": "Y"}`` becomes
    ``{"address": {"line_one": "X"}, "name": "Y"}``. Plain nested mappings are
    expanded too. Later keys win when two keys address the same location.
    """
    result: Dict[Any, Any] = {}
    for key, value in mapping.items():
        if isinstance(value, Mapping):
            value = undot(value)

        if not isinstance(key, str):
            result[key] = value
            continue

        *parents, leaf = split_path(key)
        node = result
        for segment in parents:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child

        existing = node.get(leaf)
        if isinstance(existing, dict) and isinstance(value, dict):
            node[leaf] = merge(existing, value)
        else:
            node[leaf] = value
    return result


def merge(
    base: Mapping[Any, Any],
    patch: Mapping[Any, Any],
    *,
    strict: bool = False,
    path: Path = (),
) -> Dict[Any, Any]:
    """
    Merge an undotted override layer onto a base tree.

    For each key in patch:
    - mapping onto mapping: merge recursively
    - mapping onto a nested builder: becomes a ``state`` call on that builder
    - mapping onto a lazy value: merged onto whatever the lazy value resolves to
    - mapping onto a literal mapping: merged, keeping the original entries literal
    - anything else: replaces the base value

    In strict mode a mapping that would have to replace a non-mapping, or
    create a missing intermediate mapping, raises ``UnresolvableReference``.

    Args:
        base: Tree with lower precedence
        patch: Tree with higher precedence (already undotted)
        strict: Refuse to create or replace intermediate mappings
        path: Location of ``base`` in the full tree, for error messages

    Returns:
        New merged tree
    """
    result = dict(base)
    for key, value in patch.items():
        result[key] = _merge_value(result.get(key, _MISSING), value, strict, path + (key,))
    return result


def _merge_value(current: Any, value: Any, strict: bool, path: Path) -> Any:
    if not isinstance(value, Mapping):
        return value

    if current is _MISSING:
        if strict and value:
            raise UnresolvableReference(path, "no such key in the definition")
        return dict(value)
    if isinstance(current, Mapping):
        return merge(current, value, strict=strict, path=path)
    if is_nested_builder(current):
        builder = current.new() if isinstance(current, type) else current
        logger.debug(f"Forwarded override at {'.'.join(map(str, path))} to {type(builder).__name__}")
        return builder.state(value)
    if isinstance(current, Literal) and isinstance(current.value, Mapping):
        kept = {key: Literal(item) for key, item in current.value.items()}
        return merge(kept, value, strict=strict, path=path)

    deferred = coerce_lazy(current)
    if isinstance(deferred, Lazy):
        return Lazy(MergeOntoLazy(deferred, dict(value), strict, path))

    if strict:
        raise UnresolvableReference(path, f"existing {type(current).__name__} value is not a mapping")
    return dict(value)


@dataclass(frozen=True)
class MergeOntoLazy:
    """
    Lazy value that merges an override onto another lazy value's result.

    Built when a dotted override reaches into a field that is only known at
    resolve time. A result that is not a mapping is replaced by the override,
    or raises ``UnresolvableReference`` in strict mode.
    """

    base: Lazy
    patch: Dict[Any, Any] = field(hash=False)
    strict: bool = False
    path: Path = ()

    def __call__(self, attributes: Mapping[Any, Any]) -> Any:
        produced = self.base(attributes)
        if isinstance(produced, Mapping):
            produced = undot(produced)
        return _merge_value(produced, self.patch, self.strict, self.path)


def get_path(tree: Any, path: Path, default: Any = None) -> Any:
    """Look up a path in a resolved tree. Digit segments index into lists."""
    node = tree
    for segment in path:
        if isinstance(node, Mapping) and segment in node:
            node = node[segment]
        elif isinstance(node, list) and _is_index(segment, node):
            node = node[int(segment)]
        else:
            return default
    return node


def forget(tree: Any, path: Path) -> bool:
    """
    Delete a path from a resolved tree in place.

    Returns:
        True if something was deleted, False if the path did not exist
    """
    *parents, leaf = path
    parent = get_path(tree, tuple(parents), _MISSING)
    if isinstance(parent, dict) and leaf in parent:
        del parent[leaf]
        return True
    if isinstance(parent, list) and _is_index(leaf, parent):
        del parent[int(leaf)]
        return True
    return False


def _is_index(segment: Any, node: List[Any]) -> bool:
    if isinstance(segment, int):
        return 0 <= segment < len(node)
    return isinstance(segment, str) and segment.isdigit() and int(segment) < len(node)


def split_files(data: Mapping[Any, Any]) -> Tuple[Dict[Any, Any], Dict[Any, Any]]:
    """
    Separate file-like leaves from request data.

    A list counts as uploads when it is non-empty and every item is file-like.
    A mapping left empty because all of its entries were files is dropped
    from the data.

    Returns:
        ``(data, files)`` with the same nesting as the input
    """
    remaining: Dict[Any, Any] = {}
    files: Dict[Any, Any] = {}
    for key, value in data.items():
        if is_file_like(value):
            files[key] = value
        elif isinstance(value, list) and value and all(is_file_like(item) for item in value):
            files[key] = value
        elif isinstance(value, Mapping):
            sub_data, sub_files = split_files(value)
            if sub_files:
                files[key] = sub_files
            if sub_data or not sub_files:
                remaining[key] = sub_data
        else:
            remaining[key] = value
    return remaining, files

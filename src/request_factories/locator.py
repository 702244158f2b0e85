"""
Binding request factories to the request types they fake.

A target is the request type a factory produces data for. Targets are keyed by
bare name: a type contributes its ``__name__`` and a dotted string its last
segment, so ``SignupRequest`` and ``"app.requests.SignupRequest"`` share a key.

Finding a factory for a target goes through a :class:`FactoryLocator`. The
default :class:`ConventionLocator` checks, in order:

1. explicit mappings from :func:`register_factory`
2. factories whose class declares ``target``
3. the naming convention: ``<TargetName><factory_suffix>`` in the configured
   namespace (mirroring the target's module below ``request_namespace``), then
   in the Python files under the configured path
"""

import hashlib
import importlib
import importlib.util
import logging
import re
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, List, Optional, Protocol, Type, runtime_checkable

from request_factories.config import FactoryConfig, get_factory_config
from request_factories.exceptions import CouldNotLocateRequestFactory, FactoryUsageError

logger = logging.getLogger(__name__)

# Explicit target -> factory mappings
_factory_mappings: Dict[str, Type] = {}

# Factories that declared a `target` on their class
_declared_factories: Dict[str, Type] = {}

# Modules loaded from the configured path, keyed by file
_path_modules: Dict[Path, ModuleType] = {}


def target_key(target: Any) -> str:
    """Registry key for a target type or dotted target name."""
    if isinstance(target, type):
        return target.__name__
    if isinstance(target, str) and target:
        return target.rsplit(".", 1)[-1]
    raise FactoryUsageError(f"A target must be a type or a non-empty string, got {target!r}")


def register_factory(target: Any, factory: Type) -> None:
    """Map a target to a factory explicitly. Takes precedence over everything else."""
    _factory_mappings[target_key(target)] = factory
    logger.debug(f"Mapped {target_key(target)} -> {factory.__name__}")


def unregister_factory(target: Any) -> None:
    """Remove an explicit mapping, if any."""
    _factory_mappings.pop(target_key(target), None)


def get_registered_factory(target: Any) -> Optional[Type]:
    """Get the explicitly mapped or declared factory for a target."""
    key = target_key(target)
    return _factory_mappings.get(key) or _declared_factories.get(key)


def register_declared_factory(factory: Type) -> None:
    """Record a factory class that declares its own ``target``."""
    key = target_key(factory.target)
    previous = _declared_factories.get(key)
    if previous is not None and previous is not factory:
        previous_name = _qualified_target(previous.target)
        current_name = _qualified_target(factory.target)
        if "." in previous_name and "." in current_name and previous_name != current_name:
            logger.warning(
                f"Declared targets {previous_name} and {current_name} share the key {key}; "
                f"{factory.__name__} replaces {previous.__name__}"
            )
        else:
            logger.debug(f"{factory.__name__} replaces {previous.__name__} as declared factory for {key}")
    _declared_factories[key] = factory


def clear_factory_mappings() -> None:
    """Forget every explicit and declared mapping (for test isolation)."""
    _factory_mappings.clear()
    _declared_factories.clear()


@runtime_checkable
class FactoryLocator(Protocol):
    """Adapter a host framework implements to find the factory for a request type."""

    def locate_factory(self, target: Any) -> Type: ...


class ConventionLocator:
    """
    Locate factories by mapping, declaration, then naming convention.

    Args:
        config: Configuration to use; defaults to the current global one
            at lookup time
    """

    def __init__(self, config: Optional[FactoryConfig] = None) -> None:
        self._config = config

    @property
    def config(self) -> FactoryConfig:
        return self._config if self._config is not None else get_factory_config()

    def locate_factory(self, target: Any) -> Type:
        """
        Find the factory class for ``target``.

        Raises:
            CouldNotLocateRequestFactory: If no strategy finds a factory
        """
        factory = get_registered_factory(target)
        if factory is not None:
            return factory

        config = self.config
        factory_name = target_key(target) + config.factory_suffix
        searched: List[str] = []

        for module_name in self.candidate_modules(target):
            searched.append(f"{module_name}.{factory_name}")
            factory = self._from_module(module_name, factory_name)
            if factory is not None:
                logger.debug(f"Located {factory_name} in module {module_name}")
                return factory

        if config.path:
            searched.append(f"{config.path}/**/*.py::{factory_name}")
            factory = self._from_path(Path(config.path), factory_name)
            if factory is not None:
                logger.debug(f"Located {factory_name} under {config.path}")
                return factory

        raise CouldNotLocateRequestFactory(target, searched)

    def candidate_modules(self, target: Any) -> List[str]:
        """Module names the convention looks in, most specific first."""
        config = self.config
        candidates: List[str] = []

        target_module = _target_module(target)
        request_namespace = config.request_namespace
        if target_module and request_namespace and target_module.startswith(request_namespace + "."):
            relative = target_module[len(request_namespace) + 1:]
            candidates.append(f"{config.namespace}.{relative}")

        candidates.append(config.namespace)
        return candidates

    def _from_module(self, module_name: str, factory_name: str) -> Optional[Type]:
        try:
            module = importlib.import_module(module_name)
        except ModuleNotFoundError as e:
            # Only a missing candidate module is a miss; broken imports inside it surface
            if e.name and (module_name == e.name or module_name.startswith(e.name + ".")):
                return None
            raise
        return _factory_attribute(module, factory_name)

    def _from_path(self, root: Path, factory_name: str) -> Optional[Type]:
        if not root.is_dir():
            logger.warning(f"Configured factory path {root} is not a directory")
            return None

        pattern = re.compile(rf"^class\s+{re.escape(factory_name)}\b", re.MULTILINE)
        for file_path in sorted(root.rglob("*.py")):
            try:
                source = file_path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Could not read {file_path}: {e}")
                continue
            if not pattern.search(source):
                continue

            module = _load_path_module(file_path)
            if module is None:
                continue
            factory = _factory_attribute(module, factory_name)
            if factory is not None:
                return factory
        return None


def _target_module(target: Any) -> Optional[str]:
    if isinstance(target, type):
        return target.__module__
    if isinstance(target, str) and "." in target:
        return target.rsplit(".", 1)[0]
    return None


def _factory_attribute(module: ModuleType, factory_name: str) -> Optional[Type]:
    from request_factories.factory import RequestFactory

    candidate = getattr(module, factory_name, None)
    if isinstance(candidate, type) and issubclass(candidate, RequestFactory):
        return candidate
    return None


def _load_path_module(file_path: Path) -> Optional[ModuleType]:
    resolved = file_path.resolve()
    if resolved in _path_modules:
        return _path_modules[resolved]

    digest = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:12]
    module_name = f"_request_factories_path_{file_path.stem}_{digest}"
    spec = importlib.util.spec_from_file_location(module_name, resolved)
    if spec is None or spec.loader is None:
        return None

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        logger.warning(f"Failed to import factory module {file_path}: {e}")
        return None

    _path_modules[resolved] = module
    return module


def _qualified_target(target: Any) -> str:
    if isinstance(target, type):
        return f"{target.__module__}.{target.__qualname__}"
    return str(target)

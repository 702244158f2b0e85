"""
Framework configuration for locating factories and generating fake data.

The only settings that influence how a factory is *found* are ``namespace``,
``path``, ``request_namespace`` and ``factory_suffix``. None of them change how
a factory resolves its data. ``strict_paths`` is the default for factories that
do not set their own, and the Faker settings only affect generated values.

You normally set this once, either from a ``conftest.py`` or through the
pytest ini options registered by :mod:`request_factories.plugin`.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class FactoryConfig:
    """
    Settings for the factory locator and Faker.

    Attributes:
        namespace: Dotted module path holding request factories
        path: Directory holding request factory modules, searched when the
            namespace lookup fails
        request_namespace: Dotted module path of the request types; a target's
            module below it is mirrored below ``namespace``
        factory_suffix: Suffix stripped from a factory class name to get its
            target name (``SignupRequestFactory`` -> ``SignupRequest``)
        strict_paths: Default strict mode for factories
        faker_locale: Locale passed to ``Faker``
        faker_seed: Seed applied to every Faker instance when set
    """

    namespace: str = "tests.request_factories"
    path: Optional[str] = None
    request_namespace: Optional[str] = None
    factory_suffix: str = "Factory"
    strict_paths: bool = False
    faker_locale: Optional[str] = None
    faker_seed: Optional[int] = None


# Global framework configuration
_factory_config: Optional[FactoryConfig] = None


def set_factory_config(config: FactoryConfig) -> None:
    """
    Set the configuration used by the locator and by new factories.

    Args:
        config: The configuration to install

    Example:
        >>> from request_factories.config import FactoryConfig, set_factory_config
        >>> set_factory_config(FactoryConfig(namespace="tests.factories"))
    """
    global _factory_config
    _factory_config = config


def get_factory_config() -> FactoryConfig:
    """Get the current configuration, falling back to the defaults."""
    if _factory_config is None:
        return FactoryConfig()
    return _factory_config


def configure(**changes: Any) -> FactoryConfig:
    """
    Replace selected fields of the current configuration.

    Returns:
        The new configuration, already installed
    """
    config = dataclasses.replace(get_factory_config(), **changes)
    set_factory_config(config)
    return config


def reset_factory_config() -> None:
    """Drop any installed configuration so the defaults apply again."""
    global _factory_config
    _factory_config = None

"""
pytest plugin.

Registered through the ``pytest11`` entry point. It reads the ini options
below into the global :class:`~request_factories.config.FactoryConfig` and
runs every test inside its own fake scope, so fakes never leak between tests::

    [tool.pytest.ini_options]
    request_factories_namespace = "tests.request_factories"
    request_factories_path = "tests/request_factories"
    request_factories_request_namespace = "app.requests"
    request_factories_strict = "true"
    request_factories_faker_seed = "1234"
"""

import logging
from pathlib import Path

import pytest

from request_factories.config import configure
from request_factories.factory import reset_fakers
from request_factories.registry import fake_scope

logger = logging.getLogger(__name__)

_INI_OPTIONS = {
    "request_factories_namespace": "Dotted module path holding request factories",
    "request_factories_path": "Directory holding request factory modules, relative to rootdir",
    "request_factories_request_namespace": "Dotted module path holding the request types",
    "request_factories_strict": "Default strict path checking for factories (true/false)",
    "request_factories_faker_seed": "Seed for the shared Faker instances",
}

_TRUTHY = {"1", "true", "yes", "on"}


def pytest_addoption(parser):
    """Add request-factories ini options."""
    for name, help_text in _INI_OPTIONS.items():
        parser.addini(name, help=help_text, default="")


def pytest_configure(config):
    """Apply the ini options that are set; leave the rest of the config alone."""
    changes = {}

    namespace = config.getini("request_factories_namespace")
    if namespace:
        changes["namespace"] = namespace

    path = config.getini("request_factories_path")
    if path:
        resolved = Path(path)
        if not resolved.is_absolute():
            resolved = Path(config.rootpath) / resolved
        changes["path"] = str(resolved)

    request_namespace = config.getini("request_factories_request_namespace")
    if request_namespace:
        changes["request_namespace"] = request_namespace

    strict = config.getini("request_factories_strict")
    if strict:
        changes["strict_paths"] = strict.strip().lower() in _TRUTHY

    seed = config.getini("request_factories_faker_seed")
    if seed:
        try:
            changes["faker_seed"] = int(seed)
        except ValueError:
            raise pytest.UsageError(f"request_factories_faker_seed must be an integer, got {seed!r}")

    if changes:
        configure(**changes)
        reset_fakers()
        logger.debug(f"Configured request factories from ini: {sorted(changes)}")


@pytest.fixture(autouse=True)
def _request_factories_scope():
    """Give each test a fresh fake registry."""
    with fake_scope() as registry:
        yield registry


@pytest.fixture
def fake_registry(_request_factories_scope):
    """The fake registry of the current test."""
    return _request_factories_scope

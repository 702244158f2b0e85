"""Pytest configuration and shared fixtures."""
import pytest

from request_factories import fake_scope
from tests.factories import created_users


@pytest.fixture(autouse=True)
def reset_module_state():
    """Reset module-level configuration, mappings and Faker caches around each test."""
    # Import the modules to access their globals
    import request_factories.config as config_module
    import request_factories.factory as factory_module
    import request_factories.locator as locator_module

    # Store original values
    original_config = config_module._factory_config
    original_mappings = dict(locator_module._factory_mappings)
    original_declared = dict(locator_module._declared_factories)

    config_module._factory_config = None
    factory_module.reset_fakers()
    created_users.clear()

    yield

    # Restore original values after test
    config_module._factory_config = original_config
    locator_module._factory_mappings.clear()
    locator_module._factory_mappings.update(original_mappings)
    locator_module._declared_factories.clear()
    locator_module._declared_factories.update(original_declared)
    factory_module.reset_fakers()


@pytest.fixture
def fakes():
    """A fresh fake registry active for the test."""
    with fake_scope() as registry:
        yield registry


@pytest.fixture
def convention_config():
    """Point the locator at the test request types and factories."""
    from request_factories import configure

    return configure(
        namespace="tests.fixture_factories",
        request_namespace="tests.app_requests",
    )

"""Tests for the fake registry and its context scoping."""

from request_factories import FakeRegistry, fake_scope, get_current_registry
from request_factories.registry import get_default_registry, set_current_registry
from tests.app_requests import SignupRequest
from tests.factories import SignupRequestFactory


def test_set_get_and_clear():
    """Test basic registry operations keyed by target."""
    registry = FakeRegistry()
    factory = SignupRequestFactory.new()

    registry.set(SignupRequest, factory)
    assert registry.get(SignupRequest) is factory
    assert registry.get("tests.app_requests.SignupRequest") is factory
    assert SignupRequest in registry
    assert len(registry) == 1

    registry.clear(SignupRequest)
    assert registry.get(SignupRequest) is None
    assert len(registry) == 0


def test_last_set_wins():
    """Test that registering twice keeps the latest factory."""
    registry = FakeRegistry()
    first = SignupRequestFactory.new()
    second = SignupRequestFactory.new().state(name="Second")

    registry.set("SignupRequest", first)
    registry.set(SignupRequest, second)
    assert registry.get("SignupRequest") is second
    assert registry.targets() == ["SignupRequest"]


def test_pop_consumes():
    """Test that pop removes the fake."""
    registry = FakeRegistry()
    registry.set(SignupRequest, SignupRequestFactory.new())
    assert registry.pop(SignupRequest) is not None
    assert registry.pop(SignupRequest) is None


def test_clear_all():
    """Test clearing every fake."""
    registry = FakeRegistry()
    registry.set("A", SignupRequestFactory.new())
    registry.set("B", SignupRequestFactory.new())
    registry.clear()
    assert len(registry) == 0


def test_fake_scope_isolates_registries():
    """Test that each scope gets its own registry and restores the previous one."""
    with fake_scope() as outer:
        assert get_current_registry() is outer
        SignupRequestFactory.new().fake()

        with fake_scope() as inner:
            assert get_current_registry() is inner
            assert SignupRequest not in inner

        assert get_current_registry() is outer
        assert SignupRequest in outer


def test_fake_scope_with_explicit_registry():
    """Test activating a given registry."""
    registry = FakeRegistry()
    with fake_scope(registry) as active:
        assert active is registry
        assert get_current_registry() is registry


def test_default_registry_without_scope():
    """Test the process-wide fallback when no scope is active."""
    token = set_current_registry(None)
    try:
        assert get_current_registry() is get_default_registry()
    finally:
        from request_factories.registry import current_registry

        current_registry.reset(token)


def test_factory_fake_registers_in_active_registry(fakes):
    """Test that fake() on a builder lands in the active registry."""
    factory = SignupRequestFactory.new().state(name="Faked")
    assert factory.fake() is factory
    assert fakes.get(SignupRequest) is factory


def test_factory_fake_with_explicit_registry(fakes):
    """Test fake() with a registry argument."""
    registry = FakeRegistry()
    SignupRequestFactory.new().fake(registry=registry)
    assert SignupRequest in registry
    assert SignupRequest not in fakes

"""Tests for fake registration and the simulated request boundary."""
import io

import pytest

from request_factories import (
    CouldNotLocateRequestFactory,
    FactoryUsageError,
    FakeRegistry,
    ResolvedRequest,
    as_factory,
    fake,
    prepare_request,
)
from tests.app_requests import ContactRequest, ProfileRequest, SignupRequest
from tests.app_requests.auth import OrphanRequest
from tests.factories import CommentFactory, ProfileRequestFactory, SignupRequestFactory, created_users


def test_as_factory_accepts_builders_and_classes():
    """Test the accepted ways to name a factory."""
    builder = SignupRequestFactory.new()
    assert as_factory(builder) is builder
    assert isinstance(as_factory(SignupRequestFactory), SignupRequestFactory)
    assert isinstance(as_factory(lambda: SignupRequestFactory), SignupRequestFactory)
    assert isinstance(as_factory(SignupRequestFactory.new), SignupRequestFactory)


def test_as_factory_locates_targets(convention_config):
    """Test that a request type is located through the convention."""
    assert type(as_factory(ContactRequest)).__name__ == "ContactRequestFactory"
    assert isinstance(as_factory(SignupRequest), SignupRequestFactory)


def test_as_factory_rejects_other_values():
    """Test the usage errors."""
    with pytest.raises(FactoryUsageError):
        as_factory(42)
    with pytest.raises(FactoryUsageError, match="expected a RequestFactory"):
        as_factory(lambda: "not a factory")


def test_fake_unknown_target_fails_immediately(convention_config, fakes):
    """Test that locating a missing factory fails at registration time."""
    with pytest.raises(CouldNotLocateRequestFactory):
        fake(OrphanRequest)
    assert len(fakes) == 0


def test_prepare_request_without_fake(fakes):
    """Test that requests without a fake pass through unchanged."""
    resolved = prepare_request(SignupRequest, {"name": "Direct"})
    assert resolved == ResolvedRequest(data={"name": "Direct"}, files={})


def test_prepare_request_injects_fake(fakes):
    """Test that a faked factory fills in the fields a request omits."""
    fake(SignupRequestFactory.new().state({"name": "Oliver Nybroe", "email": "oliver@worksome.com"}))

    resolved = prepare_request(SignupRequest, {"email": "luke@worksome.com"})
    assert resolved.data == {
        "name": "Oliver Nybroe",
        "email": "luke@worksome.com",
        "company": "Worksome",
    }


def test_prepare_request_consumes_fake(fakes):
    """Test that a fake is used for the next request only."""
    fake(SignupRequestFactory)
    assert prepare_request(SignupRequest).data["name"] == "Luke Downing"
    assert prepare_request(SignupRequest).data == {}


def test_fake_by_target(convention_config, fakes):
    """Test faking a request type located by convention."""
    fake(ContactRequest)
    assert prepare_request(ContactRequest, {"subject": "Bye"}).data == {
        "subject": "Bye",
        "message": "Just saying hi",
    }


def test_prepare_request_merges_files(fakes):
    """Test that explicit files win over factory files."""
    upload = io.BytesIO(b"explicit")
    fake(ProfileRequestFactory)

    resolved = prepare_request(ProfileRequest, files={"avatar": upload, "cv": upload})
    assert resolved.files == {"avatar": upload, "cv": upload}
    assert "address" in resolved.data


def test_request_data_replacing_model_field_skips_creation(fakes):
    """Test that a model factory overridden at the boundary never runs."""
    fake(CommentFactory)
    resolved = prepare_request("Comment", {"author_id": 5})
    assert resolved.data["author_id"] == 5
    assert created_users == []


def test_fakes_are_scoped_to_registry():
    """Test that an explicit registry keeps fakes out of the active one."""
    registry = FakeRegistry()
    fake(SignupRequestFactory, registry=registry)
    assert prepare_request(SignupRequest).data == {}
    assert prepare_request(SignupRequest, registry=registry).data["name"] == "Luke Downing"

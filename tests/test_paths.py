"""Tests for dot-path helpers."""
import io

import pytest

from request_factories import MalformedPath, UnresolvableReference
from request_factories.paths import forget, get_path, merge, split_files, split_path, undot
from tests.factories import AddressFactory


def test_split_path():
    """Test splitting dotted paths into segments."""
    assert split_path("name") == ("name",)
    assert split_path("address.line_one") == ("address", "line_one")


@pytest.mark.parametrize("path", ["", ".name", "name.", "address..line_one"])
def test_split_path_rejects_empty_segments(path):
    """Test that empty segments are a configuration error."""
    with pytest.raises(MalformedPath, match="Malformed dot path"):
        split_path(path)


def test_undot_expands_dotted_keys():
    """Test that dotted keys become nested mappings."""
    result = undot({"address.line_one": "X", "address.postcode": "Y", "name": "Luke"})
    assert result == {"address": {"line_one": "X", "postcode": "Y"}, "name": "Luke"}


def test_undot_merges_with_plain_nested_mapping():
    """Test dotted keys extend a nested mapping given in the same patch."""
    result = undot({"address": {"line_one": "X"}, "address.city.name": "London"})
    assert result == {"address": {"line_one": "X", "city": {"name": "London"}}}


def test_undot_does_not_mutate_input():
    """Test that undot builds new dicts."""
    original = {"a.b": 1}
    undot(original)
    assert original == {"a.b": 1}


def test_merge_preserves_siblings():
    """Test that a nested override keeps sibling keys from the base."""
    base = {"address": {"line_one": "1 Test Street", "postcode": "AB1"}, "name": "Luke"}
    merged = merge(base, {"address": {"line_one": "X"}})
    assert merged == {"address": {"line_one": "X", "postcode": "AB1"}, "name": "Luke"}
    assert base["address"]["line_one"] == "1 Test Street"


def test_merge_replaces_scalars_permissively():
    """Test that permissive merging replaces a scalar with a mapping."""
    merged = merge({"meta": "none"}, {"meta": {"source": "web"}})
    assert merged == {"meta": {"source": "web"}}


def test_merge_creates_missing_intermediate_permissively():
    """Test that permissive merging creates missing intermediate mappings."""
    merged = merge({}, {"contact": {"phone": "123"}})
    assert merged == {"contact": {"phone": "123"}}


def test_merge_strict_rejects_missing_intermediate():
    """Test that strict merging refuses to invent intermediate mappings."""
    with pytest.raises(UnresolvableReference, match="contact"):
        merge({"name": "Luke"}, {"contact": {"phone": "123"}}, strict=True)


def test_merge_strict_rejects_scalar_parent():
    """Test that strict merging refuses to replace a scalar with a mapping."""
    with pytest.raises(UnresolvableReference) as exc_info:
        merge({"name": "Luke"}, {"name": {"first": "Luke"}}, strict=True)
    assert exc_info.value.path == ("name",)


def test_merge_strict_allows_new_leaf():
    """Test that strict merging still accepts new leaf keys."""
    merged = merge({"address": {"line_one": "X"}}, {"address": {"unit": "4B"}}, strict=True)
    assert merged == {"address": {"line_one": "X", "unit": "4B"}}


def test_merge_forwards_mapping_to_nested_builder():
    """Test that overriding into a nested builder records a state on it."""
    merged = merge({"address": AddressFactory}, {"address": {"line_one": "X"}})
    builder = merged["address"]
    assert isinstance(builder, AddressFactory)
    assert builder.create()["line_one"] == "X"


def test_get_path():
    """Test looking up nested paths, including list indexes."""
    tree = {"address": {"line_one": "X"}, "lines": [{"amount": 1}, {"amount": 2}]}
    assert get_path(tree, ("address", "line_one")) == "X"
    assert get_path(tree, ("lines", "1", "amount")) == 2
    assert get_path(tree, ("address", "missing"), "default") == "default"


def test_forget():
    """Test deleting paths in place."""
    tree = {"address": {"line_one": "X", "postcode": "Y"}, "lines": ["a", "b"]}
    assert forget(tree, ("address", "postcode")) is True
    assert forget(tree, ("lines", "0")) is True
    assert forget(tree, ("address", "missing")) is False
    assert tree == {"address": {"line_one": "X"}, "lines": ["b"]}


def test_split_files():
    """Test separating file-like leaves from data."""
    avatar = io.BytesIO(b"a")
    photos = [io.BytesIO(b"1"), io.BytesIO(b"2")]
    data, files = split_files({
        "name": "Luke",
        "avatar": avatar,
        "gallery": {"photos": photos},
        "tags": ["a", "b"],
    })
    assert data == {"name": "Luke", "tags": ["a", "b"]}
    assert files == {"avatar": avatar, "gallery": {"photos": photos}}


def test_split_files_keeps_empty_mappings():
    """Test that an empty mapping without files stays in the data."""
    data, files = split_files({"meta": {}})
    assert data == {"meta": {}}
    assert files == {}

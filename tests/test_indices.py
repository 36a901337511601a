"""Tests for filter translation and index bookkeeping helpers."""

from __future__ import annotations

import pytest

from ohm import IndexNotFound, MalformedQueryError, indices
from tests.conftest import Gadget, User


class TestFilters:
    def test_one_key_per_filter(self):
        assert indices.filters(User, {"name": "John", "age": 30}) == [
            "User:indices:name:John",
            "User:indices:age:30",
        ]

    def test_list_values_expand(self):
        assert indices.filters(User, {"name": ["A", "B"]}) == [
            "User:indices:name:A",
            "User:indices:name:B",
        ]

    def test_rejects_non_mappings(self):
        with pytest.raises(MalformedQueryError) as exc:
            indices.filters(User, "1")
        assert exc.value.received == "1"
        assert "User.by_id" in str(exc.value)

    def test_rejects_empty_lists(self):
        with pytest.raises(MalformedQueryError) as exc:
            indices.filters(User, {"name": "John", "age": []})
        assert str(exc.value) == "Malformed query for User: 'age' is filtered by an empty list."

    def test_rejects_unknown_index(self):
        with pytest.raises(IndexNotFound):
            indices.filters(User, {"email": "x"})

    def test_merge_filters(self):
        assert indices.merge_filters(None, {"a": 1}) == {"a": 1}
        assert indices.merge_filters({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}
        assert indices.merge_filters("1", {}) == "1"


class TestLookup:
    def test_typed_values_are_cast(self):
        assert indices.lookup(Gadget, "size", "01") == "1"
        assert indices.lookup(Gadget, "serial", 7) == "7"

    def test_uncoercible_value_is_kept(self):
        assert indices.lookup(Gadget, "size", "abc") == "abc"

    def test_untyped_and_computed_values(self):
        assert indices.lookup(User, "name", "John") == "John"
        assert indices.lookup(User, "provider", "example.com") == "example.com"


class TestIndexValues:
    def test_current_values_include_computed_ones(self, john):
        assert indices.index_values(john, "indices") == {
            "name": "John",
            "age": 30,
            "provider": "example.com",
        }
        assert indices.index_values(john, "uniques") == {"email": "john@example.com"}

    def test_no_instance(self):
        assert indices.index_values(None, "indices") == {}


class TestDump:
    def test_dump(self):
        assert indices.dump(None) == ""
        assert indices.dump(30) == "30"
        assert indices.dump("x") == "x"


class TestUniques:
    def test_detect_duplicate(self, john, redis_db):
        found = indices.detect_duplicate(redis_db, User, "2", {"email": "john@example.com"})
        assert found == "email"

    def test_own_value_is_not_a_duplicate(self, john, redis_db):
        assert indices.detect_duplicate(redis_db, User, john.id, {"email": john.email}) is None

    def test_empty_value_is_never_a_duplicate(self, redis_db):
        redis_db.hset("User:uniques:email", "", "1")
        assert indices.detect_duplicate(redis_db, User, "2", {"email": None}) is None

    def test_unique_keys(self):
        assert indices.unique_keys(User) == ["User:uniques:email"]

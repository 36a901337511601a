"""Tests for the Model lifecycle: identity, persistence, indices and uniques."""

from __future__ import annotations

import json

import pytest

from ohm import (
    IndexNotFound,
    MalformedQueryError,
    MissingID,
    Model,
    StoreConflictError,
    UniqueIndexViolation,
)
from ohm.fields import to_reference
from tests.conftest import Gadget, Post, Tag, User


class TestIdentity:
    def test_first_save_assigns_increasing_ids(self):
        first = User.create(name="A", email="a@x.com")
        second = User.create(name="B", email="b@x.com")
        assert first.id == "1"
        assert second.id == "2"

    def test_later_saves_keep_the_id(self, john):
        john.update(name="Johnny")
        assert john.id == "1"
        assert User.all().ids() == ["1"]

    def test_unsaved_model_has_no_id(self):
        user = User(name="John")
        assert user.is_new
        with pytest.raises(MissingID):
            user.id
        with pytest.raises(MissingID):
            user.key

    def test_explicit_id(self):
        assert User(id=7).id == "7"

    def test_keys(self, john):
        assert User.key == "User"
        assert john.key == "User:1"
        assert john.key["counters"] == "User:1:counters"

    def test_equality(self, john):
        assert User.by_id(john.id) == john
        assert hash(User.by_id(john.id)) == hash(john)
        assert User(name="John") != User(name="John")
        assert john != Post(id=john.id)

    def test_repr(self, john):
        assert repr(john).startswith("User(id='1', name='John'")


class TestPersistence:
    def test_round_trip(self, john):
        loaded = User.by_id(john.id)
        assert loaded.name == "John"
        assert loaded.email == "john@example.com"
        assert loaded.age == 30

    def test_stored_hash(self, john, redis_db):
        assert redis_db.hgetall("User:1") == {
            "name": "John",
            "email": "john@example.com",
            "age": "30",
        }
        assert redis_db.smembers("User:all") == {"1"}

    def test_empty_values_are_not_stored(self, redis_db):
        user = User.create(name="John", email="")
        assert redis_db.hgetall(user.key) == {"name": "John"}

    def test_by_id_missing(self):
        assert User.by_id("99") is None
        assert User.by_id(None) is None
        assert not User.exists("99")

    def test_model_without_attributes(self, redis_db):
        tag = Tag.create()
        assert Tag.exists(tag.id)
        assert not redis_db.exists(tag.key)

    def test_update_replaces_attributes(self, john):
        john.update(name="Jane", email="jane@example.com")
        loaded = User.by_id(john.id)
        assert loaded.name == "Jane"
        assert loaded.email == "jane@example.com"

    def test_update_attributes_rejects_unknown(self):
        user = User()
        with pytest.raises(AttributeError):
            user.update_attributes(nickname="JJ")
        with pytest.raises(AttributeError):
            user.update_attributes(id="3")
        with pytest.raises(AttributeError):
            user.update_attributes(visits=3)

    def test_load_reads_current_values(self, john, other_client):
        other_client.hset(john.key, "name", "Changed")
        assert john.name == "John"
        assert john.load().name == "Changed"

    def test_get_and_set(self, john, redis_db):
        john.set("name", "Jo")
        assert redis_db.hget(john.key, "name") == "Jo"
        redis_db.hset(john.key, "age", "31")
        assert john.get("age") == 31
        assert john.age == 31

    def test_set_empty_value_deletes_the_field(self, john, redis_db):
        john.set("name", None)
        assert not redis_db.hexists(john.key, "name")

    def test_to_dict_and_json(self, john):
        assert john.to_dict() == {"id": "1"}
        assert json.loads(john.to_json()) == {"id": "1"}
        assert User(name="x").to_dict() == {}


class TestIndices:
    def test_find_by_index(self, john):
        assert User.find(name="John").ids() == [john.id]
        assert User.find({"name": "John"}).ids() == [john.id]

    def test_find_by_typed_index(self, john):
        assert john in User.find(age=30)
        assert john in User.find(age="30")

    def test_find_by_computed_index(self, john):
        assert john in User.find(provider="example.com")

    def test_update_moves_index_entries(self, john, redis_db):
        john.update(name="Jane", email="jane@other.com")
        assert User.find(name="John").is_empty()
        assert john in User.find(name="Jane")
        assert User.find(provider="example.com").is_empty()
        assert john in User.find(provider="other.com")
        assert not redis_db.exists("User:indices:name:John")

    def test_none_values_are_not_indexed(self, redis_db):
        User.create(email="x@y.com")
        assert redis_db.keys("User:indices:name:*") == []

    def test_undeclared_index(self):
        with pytest.raises(IndexNotFound) as exc:
            User.find(email="john@example.com")
        assert exc.value.attribute == "email"

    def test_malformed_queries(self):
        with pytest.raises(MalformedQueryError):
            User.find("1")
        with pytest.raises(TypeError):
            User.find("1")
        with pytest.raises(MalformedQueryError):
            User.find()

    def test_empty_list_filter(self, john):
        with pytest.raises(MalformedQueryError, match="empty list"):
            User.find(age=[])
        with pytest.raises(MalformedQueryError):
            User.find(name="John").except_(age=())

    def test_lookup_values_are_cast(self):
        gadget = Gadget.create(serial="007", size=1)
        assert Gadget.find(size="01").ids() == [gadget.id]
        assert Gadget.find(size=["1", 1]).ids() == [gadget.id]
        assert Gadget.find(size="abc").is_empty()


class TestUniques:
    def test_with_unique(self, john):
        assert User.with_unique("email", "john@example.com") == john
        assert User.with_unique("email", "nobody@example.com") is None

    def test_with_unique_casts_the_value(self):
        gadget = Gadget.create(serial="007", size=1)
        assert Gadget.with_unique("serial", "007") == gadget
        assert Gadget.with_unique("serial", 7) == gadget
        assert Gadget.with_unique("serial", "seven") is None

    def test_with_unique_requires_a_unique(self):
        with pytest.raises(IndexNotFound):
            User.with_unique("name", "John")

    def test_duplicate_value_is_rejected(self, john, redis_db):
        with pytest.raises(UniqueIndexViolation) as exc:
            User.create(name="Other", email="john@example.com")
        assert exc.value.attribute == "email"
        assert str(exc.value) == "email is not unique."
        assert User.all().ids() == [john.id]
        assert User.find(name="Other").is_empty()
        assert redis_db.hgetall("User:uniques:email") == {"john@example.com": john.id}

    def test_resaving_keeps_own_unique(self, john):
        john.update(name="Johnny")
        assert User.with_unique("email", "john@example.com") == john

    def test_changed_value_releases_the_old_one(self, john):
        john.update(email="new@example.com")
        assert User.with_unique("email", "john@example.com") is None
        other = User.create(name="Other", email="john@example.com")
        assert User.with_unique("email", "john@example.com") == other


class TestCounters:
    def test_incr_and_decr(self, john, redis_db):
        assert john.incr("visits") == 1
        assert john.incr("visits", 5) == 6
        assert john.decr("visits", 2) == 4
        assert john.visits == 4
        assert redis_db.hget("User:1:counters", "visits") == "4"

    def test_unsaved_counter_reads_zero(self):
        assert User().visits == 0

    def test_counters_are_read_only(self, john):
        with pytest.raises(AttributeError):
            john.visits = 3

    def test_save_leaves_counters_alone(self, john):
        john.incr("visits")
        john.update(name="Johnny")
        assert User.by_id(john.id).visits == 1


class TestReferences:
    def test_reference_round_trip(self, john):
        post = Post.create(title="Hello", user=john)
        assert post.user_id == john.id
        assert Post.by_id(post.id).user == john

    def test_reference_id_is_indexed(self, john):
        post = Post.create(title="Hello", user=john)
        assert post in Post.find(user_id=john.id)

    def test_assigning_the_id_clears_the_memo(self, john):
        other = User.create(name="Other", email="o@x.com")
        post = Post(title="Hello", user=john)
        assert post.user == john
        post.user_id = other.id
        assert post.user == other

    def test_missing_reference(self):
        assert Post(title="Orphan").user is None

    def test_collection_of_referencing_models(self, john):
        post = Post.create(title="Hello", user=john)
        Post.create(title="Other")
        assert john.written.ids() == [post.id]

    def test_set_of(self, john):
        first = Post.create(title="First")
        second = Post.create(title="Second")
        john.posts.add(first)
        john.posts.add(second)
        assert john.posts.size() == 2
        assert first in john.posts
        john.posts.delete(first)
        assert john.posts.ids() == [second.id]

    def test_set_of_replace(self, john):
        first = Post.create(title="First")
        second = Post.create(title="Second")
        john.posts.add(first)
        john.posts.replace([second])
        assert john.posts.ids() == [second.id]
        john.posts.replace([])
        assert john.posts.is_empty()

    def test_set_of_requires_a_saved_owner(self):
        with pytest.raises(MissingID):
            User().posts


class TestDelete:
    def test_delete_removes_everything(self, john, redis_db):
        john.incr("visits")
        john.posts.add(Post.create(title="Hello"))
        john.delete()
        assert not User.exists(john.id)
        assert User.by_id(john.id) is None
        assert redis_db.keys("User:*") == ["User:id"]

    def test_delete_releases_uniques(self, john):
        john.delete()
        assert User.create(name="New", email="john@example.com") is not None

    def test_delete_uses_stored_values(self, john):
        john.name = "Unsaved"
        john.delete()
        assert User.find(name="John").is_empty()


class TestSchema:
    def test_schema_contents(self):
        schema = User.__ohm_schema__
        assert schema.attributes == ("name", "email", "age")
        assert schema.indices == ("name", "age", "provider")
        assert schema.uniques == ("email",)
        assert schema.counters == ("visits",)
        assert schema.collections == ("posts",)
        assert "user_id" in Post.__ohm_schema__.indices

    def test_computed_fields_are_marked(self):
        computed = [f.name for f in User.__ohm_schema__.fields if f.computed]
        assert computed == ["provider"]

    def test_unknown_computed_index(self):
        with pytest.raises(TypeError, match="no attribute or property"):

            class Broken(Model, indices=("missing",)):
                pass

    def test_to_reference(self):
        assert User.to_reference() == "user"
        assert to_reference("BlogPost") == "blog_post"


class TestConcurrentSaves:
    def test_interleaved_write_aborts_the_save(self, john, other_client):
        def interleave(t):
            @t.on_read
            def _other_process_writes(reader, store):
                other_client.hset(john.key, "name", "Other")

        john.name = "Mine"
        with pytest.raises(StoreConflictError):
            john.save(extend=interleave)
        assert User.by_id(john.id).name == "Other"
        assert User.find(name="Mine").is_empty()

    def test_interleaved_unique_claim_aborts_the_save(self, other_client):
        user = User(name="A", email="taken@x.com")

        def interleave(t):
            @t.on_read
            def _other_process_claims(reader, store):
                other_client.hset("User:uniques:email", "taken@x.com", "99")

        with pytest.raises(StoreConflictError):
            user.save(extend=interleave)
        assert not User.exists(user.id)
        assert other_client.hget("User:uniques:email", "taken@x.com") == "99"

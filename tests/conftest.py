"""Shared test fixtures for ohm tests."""

from __future__ import annotations

import fakeredis
import pytest

import ohm
from ohm import Attribute, CollectionOf, Counter, Model, Reference, SetOf, connection

# --- Test model types ---


class User(Model, indices=("provider",)):
    name = Attribute(index=True)
    email = Attribute(unique=True)
    age = Attribute(int, index=True)
    visits = Counter()
    posts = SetOf("Post")
    written = CollectionOf("Post")

    @property
    def provider(self):
        return self.email.split("@")[-1] if self.email else None


class Post(Model):
    title = Attribute()
    user = Reference("User")


class Event(Model):
    name = Attribute()
    url = Attribute()
    slug = Attribute()

    def validate(self):
        super().validate()
        self.assert_present("name")
        self.assert_url("url")


class Tag(Model):
    pass


class Gadget(Model):
    serial = Attribute(int, unique=True)
    size = Attribute(int, index=True)

    def validate(self):
        super().validate()
        self.assert_present("size")
        self.assert_member("size", [1, 2, 3])
        self.assert_numeric("serial")


# --- Fixtures ---


@pytest.fixture
def server():
    """An in-process Redis server, fresh for every test."""
    return fakeredis.FakeServer()


@pytest.fixture(autouse=True)
def redis_db(monkeypatch, server):
    """Route every ohm connection to the test server and return the global client."""

    def _create_client(options):
        return fakeredis.FakeRedis(server=server, decode_responses=True)

    monkeypatch.setattr(connection, "create_client", _create_client)
    connection.reset_all()
    yield ohm.client()
    connection.reset_all()


@pytest.fixture
def other_client(server):
    """A second client on the same server, standing in for another process."""
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def john():
    return User.create(name="John", email="john@example.com", age=30)


@pytest.fixture
def people():
    """Three users with overlapping names, ages and providers."""
    return [
        User.create(name="John", email="john@gmail.com", age=30),
        User.create(name="John", email="jdoe@example.com", age=40),
        User.create(name="Jane", email="jane@example.com", age=30),
    ]

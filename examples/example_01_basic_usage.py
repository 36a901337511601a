"""Example 01: Basic Usage - ohm Fundamentals.

This example demonstrates the fundamental operations:
- Defining models with indexed, unique and typed attributes
- Creating, loading, updating and deleting models
- Finding models through indices and combining filters
- Counters, references and sets of other models

Run it against a local Redis (or set OHM_REDIS_URL).
"""

import ohm
from ohm import Attribute, CollectionOf, Counter, Model, Reference, SetOf, UniqueIndexViolation


# Step 1: Define models
# Indexed attributes can be searched with find(); unique attributes with with_unique().
class Person(Model, indices=("domain",)):
    """A person in our system."""

    name = Attribute(index=True)
    email = Attribute(unique=True)
    age = Attribute(int, index=True)
    logins = Counter()
    bookmarks = SetOf("Article")
    articles = CollectionOf("Article")

    @property
    def domain(self):
        return self.email.split("@")[-1] if self.email else None

    def validate(self):
        super().validate()
        self.assert_present("name")
        self.assert_email("email")


class Article(Model):
    """An article written by a person."""

    title = Attribute()
    person = Reference("Person")


def main() -> None:
    ohm.flush()

    # Step 2: Create models
    alice = Person.create(name="Alice", email="alice@example.com", age=30)
    bob = Person.create(name="Bob", email="bob@example.org", age=30)
    print(f"Created {alice!r} and {bob!r}")

    invalid = Person(name="", email="not-an-email")
    if invalid.save() is None:
        print(f"Rejected invalid person: {dict(invalid.errors)}")

    try:
        Person.create(name="Mallory", email="alice@example.com")
    except UniqueIndexViolation as e:
        print(f"Rejected duplicate: {e}")

    # Step 3: Query
    print("Age 30:", [p.name for p in Person.find(age=30).sort_by("name", order="ALPHA")])
    print("Age 30 at example.com:", [p.name for p in Person.find(age=30, domain="example.com")])
    print("By email:", Person.with_unique("email", "bob@example.org"))

    # Step 4: Counters, references and sets
    alice.incr("logins")
    post = Article.create(title="Hello Redis", person=alice)
    bob.bookmarks.add(post)
    print(f"Alice logged in {alice.logins} time(s), wrote {alice.articles.size()} article(s)")
    print(f"Bob bookmarked: {[a.title for a in bob.bookmarks]}")
    print(f"Article author: {Article.by_id(post.id).person.name}")

    # Step 5: Update and delete
    alice.update(name="Alicia")
    print("Still called Alice:", Person.find(name="Alice").size())
    bob.delete()
    print("Bob exists:", Person.exists(bob.id))


if __name__ == "__main__":
    main()

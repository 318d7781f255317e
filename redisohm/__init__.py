"""
redisohm - Object-hash mapping for Redis.

Declare models with attributes, indices, unique fields, counters and
associations; save and delete them atomically through server-side Lua
scripts; query them with composable set algebra evaluated inside Redis.

Quick Start:
    import redisohm
    from redisohm import Model, attribute, counter, reference, collection

    redisohm.connect("redis://localhost:6379")

    class Author(Model):
        email = attribute(unique=True)
        name = attribute()
        books = collection("Book", "author_id")

    class Book(Model):
        title = attribute()
        genre = attribute(index=True)
        author = reference(Author)
        reads = counter()

    ada = Author.create(email="ada@example.com", name="Ada")
    book = Book.create(title="Notes", genre="math", author_id=ada.id)
    book.reads.incr()

    Book.find(genre="math").ids()               # ["1"]
    Book.find(genre=["math", "poetry"])          # union of both genres
    Author.with_("email", "ada@example.com")     # Author id=1
    ada.books.to_list()                          # [Book id=1]

Persisted layout (all keys scoped by model name):
    <Model>:id                       id counter
    <Model>:all                      set of live ids
    <Model>:<id>                     hash of attributes
    <Model>:indices:<field>:<value>  set of ids with that value
    <Model>:uniques:<field>          hash of value -> id
    <Model>:<id>:counters            hash of counters
    <Model>:<id>:<name>              sets, lists and tracked keys
"""

from .connection import connect, get_redis, set_redis
from .containers import Counter, MutableCollection, MutableList, MutableSet
from .exceptions import (
    OhmError,
    MissingID,
    IndexNotFound,
    RecordNotFound,
    UniqueIndexViolation,
)
from .fields import attribute, collection, counter, list_of, reference, set_of, tracked
from .finder import Finder
from .keys import Key
from .model import Model
from .schema import ModelRegistry, ModelSchema, registry

__all__ = [
    # Connection
    "connect",
    "get_redis",
    "set_redis",
    # Models
    "Model",
    "ModelSchema",
    "ModelRegistry",
    "registry",
    # Fields
    "attribute",
    "counter",
    "reference",
    "collection",
    "set_of",
    "list_of",
    "tracked",
    # Queries and accessors
    "Finder",
    "Key",
    "Counter",
    "MutableCollection",
    "MutableSet",
    "MutableList",
    # Exceptions
    "OhmError",
    "MissingID",
    "IndexNotFound",
    "RecordNotFound",
    "UniqueIndexViolation",
]

__version__ = "0.1.0"

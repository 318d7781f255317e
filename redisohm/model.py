"""Model base class: declaration, persistence and lookup."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .connection import get_redis
from .exceptions import IndexNotFound, MissingID, RecordNotFound
from .fields import Field
from .finder import Filter, Finder, index_keys, intersection, merge_filter
from .keys import Key
from .schema import ModelSchema, registry
from .scripting import SCRIPTS, pack_pairs


logger = logging.getLogger(__name__)


class _KeyAccessor:
    """``Model.key`` is the model namespace; ``instance.key`` is ``<Model>:<id>``."""

    def __get__(self, obj: Optional["Model"], owner: type) -> Key:
        root = Key(owner.model_name, owner.redis())
        if obj is None:
            return root
        if obj._id is None:
            raise MissingID(owner.model_name)
        return root[obj._id]


class ModelMeta(type):
    """Adds ``Model[id]`` and ``id in Model`` to model classes."""

    def __getitem__(cls, id: Any) -> Optional["Model"]:
        if id is None:
            return None
        id = str(id)
        if not cls.exists(id):
            raise RecordNotFound(cls.model_name, id)
        return cls._from_id(id).load()

    def __contains__(cls, id: Any) -> bool:
        return cls.exists(id)


class Model(metaclass=ModelMeta):
    """Base class for objects stored in Redis.

    Subclasses declare their fields with the helpers in
    ``redisohm.fields``; the schema is built once when the class is
    created.

    Example:
        class User(Model):
            email = attribute(unique=True)
            country = attribute(index=True)
            name = attribute()

        user = User.create(email="ada@example.com", country="UK", name="Ada")
        User[user.id].name                # "Ada"
        User.find(country="UK").ids()     # ["1"]
        User.with_("email", "ada@example.com")
    """

    #: Overrides the class name as the key prefix
    model_name: str = "Model"
    #: Client for this model; the process-wide client when None
    redis_client: Any = None
    schema: ModelSchema = ModelSchema()

    key = _KeyAccessor()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.model_name = cls.__dict__.get("model_name", cls.__name__)

        fields: Dict[str, Field] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, Field):
                    fields[name] = value

        cls.schema = ModelSchema(
            attributes=frozenset(n for n, f in fields.items() if f.is_attribute),
            indices=frozenset(n for n, f in fields.items() if f.indexed),
            uniques=frozenset(n for n, f in fields.items() if f.unique),
            tracked=frozenset(f.tracks_suffix for f in fields.values() if f.tracks_suffix),
        )
        registry.register(cls)

    def __init__(self, atts: Optional[Dict[str, Any]] = None, **kwargs: Any):
        self._id: Optional[str] = None
        self._attributes: Dict[str, str] = {}
        self.merge(merge_filter(atts, kwargs))

    @classmethod
    def _from_id(cls, id: str) -> "Model":
        obj = cls.__new__(cls)
        obj._id = str(id)
        obj._attributes = {}
        return obj

    # Class-level access

    @classmethod
    def redis(cls) -> Any:
        return cls.redis_client if cls.redis_client is not None else get_redis()

    @classmethod
    def all(cls) -> Finder:
        """A finder over every live record; the base of all queries."""
        return Finder(cls, cls.key, cls.schema.indices, str(cls.key["all"]))

    @classmethod
    def find(cls, filter: Optional[Filter] = None, **kwargs: Any) -> Finder:
        """Records matching every field in the filter.

        Raises:
            IndexNotFound: If a field is not indexed
        """
        key = cls.key
        groups = index_keys(key, cls.schema.indices, merge_filter(filter, kwargs))
        if not groups:
            return cls.all()
        operands = intersection(groups)
        expr = ("SINTER", *operands) if operands is not None else None
        return Finder(cls, key, cls.schema.indices, expr)

    @classmethod
    def with_(cls, name: str, value: Any) -> Optional["Model"]:
        """Look up a record by a unique field.

        Raises:
            IndexNotFound: If ``name`` is not a unique field
        """
        if not cls.schema.is_unique(name):
            raise IndexNotFound(name)
        key = cls.key
        id = cls.redis().hget(key["uniques"][name], str(value))
        return cls._from_id(id).load() if id is not None else None

    @classmethod
    def exists(cls, id: Any) -> bool:
        return cls.all().includes(id)

    @classmethod
    def get(cls, id: Any, default: Any = None) -> Any:
        """Return the record with ``id``, or ``default`` if there is none."""
        if id is None:
            return default
        try:
            return cls[id]
        except RecordNotFound:
            return default

    @classmethod
    def fetch(cls, ids: Iterable[Any]) -> List["Model"]:
        """Load many records with one pipelined round trip."""
        ids = [str(id) for id in ids]
        if not ids:
            return []

        key = cls.key
        pipe = cls.redis().pipeline(transaction=False)
        for id in ids:
            pipe.hgetall(key[id])

        return [
            cls._from_id(id)._absorb(atts) for id, atts in zip(ids, pipe.execute())
        ]

    @classmethod
    def create(cls, atts: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "Model":
        return cls(atts, **kwargs).save()

    # Instance state

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def attributes(self) -> Dict[str, str]:
        return dict(self._attributes)

    def merge(self, atts: Dict[str, Any]) -> "Model":
        """Assign declared attributes from ``atts``; unknown names are dropped."""
        for name, value in atts.items():
            if name in self.schema.attributes:
                setattr(self, name, value)
        return self

    def _absorb(self, atts: Dict[str, str]) -> "Model":
        self._attributes.update(atts)
        return self

    def load(self) -> "Model":
        """Read the stored attributes into this instance."""
        return self._absorb(self.redis().hgetall(self.key))

    # Persistence

    def save(self) -> "Model":
        """Persist present attributes, indices and uniques atomically.

        The first save assigns the id. Attributes absent from the instance
        are left untouched in the store.

        Raises:
            UniqueIndexViolation: If a unique value belongs to another record
        """
        schema = self.schema
        atts, indices, uniques = [], [], []

        for name in sorted(schema.attributes):
            value = self._attributes.get(name)
            if value is None:
                continue
            atts.append((name, value))
            if schema.is_indexed(name):
                indices.append((name, value))
            if schema.is_unique(name):
                uniques.append((name, value))

        id = SCRIPTS["save"](
            self.redis(),
            self.model_name,
            self._id or "",
            *pack_pairs(atts),
            *pack_pairs(indices),
            *pack_pairs(uniques),
        )
        self._id = str(id)
        logger.debug("Saved %s:%s", self.model_name, self._id)
        return self

    def update(self, atts: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "Model":
        return self.merge(merge_filter(atts, kwargs)).save()

    def delete(self) -> "Model":
        """Remove the record and everything tied to it. Safe to repeat.

        Raises:
            MissingID: If the instance was never saved
        """
        key = self.key
        uniques = [
            (name, self._attributes[name])
            for name in sorted(self.schema.uniques)
            if name in self._attributes
        ]
        tracked = sorted(self.schema.tracked)

        SCRIPTS["delete"](
            self.redis(),
            self.model_name,
            self._id,
            str(key),
            *pack_pairs(uniques),
            len(tracked),
            *tracked,
        )
        logger.debug("Deleted %s", key)
        return self

    # Identity

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return str(self.key) == str(other.key)

    def __hash__(self) -> int:
        return hash(str(self.key))

    def __repr__(self) -> str:
        return f"<{self.model_name} id={self._id!r} {self._attributes!r}>"

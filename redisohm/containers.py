"""Accessors for sets, lists and counters stored under an instance key."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Type

from .exceptions import MissingID
from .keys import Key

if TYPE_CHECKING:
    from .model import Model


def _member_id(obj: Any) -> Optional[str]:
    if obj is None:
        return None
    id = getattr(obj, "id", obj)
    return None if id is None else str(id)


def _saved_id(obj: "Model") -> str:
    if obj.id is None:
        raise MissingID(type(obj).__name__)
    return obj.id


class MutableCollection(ABC):
    """Base for collections of model ids kept under ``key``.

    Subclasses differ in mutation semantics; reading is shared.
    """

    def __init__(self, model: Type["Model"], key: Key):
        self.model = model
        self.key = key

    @abstractmethod
    def size(self) -> int:
        pass

    @abstractmethod
    def includes(self, obj: Any) -> bool:
        pass

    @abstractmethod
    def ids(self) -> List[str]:
        pass

    def to_list(self) -> List["Model"]:
        """Load every referenced instance in one round trip."""
        return self.model.fetch(self.ids())

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, obj: Any) -> bool:
        return self.includes(obj)

    def __iter__(self) -> Iterator["Model"]:
        return iter(self.to_list())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.model.__name__}, {str(self.key)!r})"


class MutableSet(MutableCollection):
    """Unordered set of ids of ``model`` instances."""

    def size(self) -> int:
        return int(self.key.call("SCARD"))

    def add(self, obj: "Model") -> None:
        self.key.call("SADD", _saved_id(obj))

    def delete(self, obj: "Model") -> None:
        self.key.call("SREM", _saved_id(obj))

    def includes(self, obj: Any) -> bool:
        id = _member_id(obj)
        if id is None:
            return False
        return bool(self.key.call("SISMEMBER", id))

    def ids(self) -> List[str]:
        return list(self.key.call("SMEMBERS"))


class MutableList(MutableCollection):
    """Ordered list of ids of ``model`` instances. Duplicates are allowed."""

    def size(self) -> int:
        return int(self.key.call("LLEN"))

    def push(self, obj: "Model") -> None:
        """Append to the end of the list."""
        self.key.call("RPUSH", _saved_id(obj))

    def unshift(self, obj: "Model") -> None:
        """Prepend to the start of the list."""
        self.key.call("LPUSH", _saved_id(obj))

    def delete(self, obj: "Model") -> None:
        """Remove every occurrence of ``obj``."""
        self.key.call("LREM", 0, _saved_id(obj))

    def ids(self) -> List[str]:
        return list(self.key.call("LRANGE", 0, -1))

    def includes(self, obj: Any) -> bool:
        # No index on lists: scan the full range.
        id = _member_id(obj)
        return id is not None and id in self.ids()


class Counter:
    """An integer field in the instance's ``counters`` hash.

    Example:
        post.views.incr()       # 1
        post.views.decr(2)      # -1
        int(post.views)         # -1
    """

    def __init__(self, key: Key, name: str):
        self.key = key
        self.name = name

    @property
    def value(self) -> int:
        """Current value; 0 if never incremented."""
        value = self.key.call("HGET", self.name)
        return int(value) if value is not None else 0

    def incr(self, by: int = 1) -> int:
        return int(self.key.call("HINCRBY", self.name, by))

    def decr(self, by: int = 1) -> int:
        return self.incr(-by)

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"Counter({str(self.key)!r}, {self.name!r})"

"""Composable, lazily evaluated queries over index sets.

A Finder wraps an expression tree built from the index sets of a model.
Building never touches Redis; the tree is evaluated server-side only by
``size``, ``includes``, ``ids`` and ``to_list``.

Example:
    # (a = 1) AND (b = 1 OR b = 2), minus records with c = 3
    finder = Post.find(a="1").combine(b=["1", "2"]).except_(c="3")
    finder.ids()
"""

from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Type

from .exceptions import IndexNotFound
from .keys import Key
from .solver import Expression, members, solve

if TYPE_CHECKING:
    from .model import Model


Filter = Mapping[str, Any]


def merge_filter(filter: Optional[Filter], kwargs: Dict[str, Any]) -> Dict[str, Any]:
    """Combine a positional filter mapping with keyword filters."""
    merged = dict(filter or {})
    merged.update(kwargs)
    return merged


def index_keys(key: Key, indices: FrozenSet[str], filter: Filter) -> List[List[str]]:
    """Translate a filter into index set keys, one group per field.

    A list, tuple or set value expands to one key per value, so a group
    may hold several keys, or none for an empty collection.

    Raises:
        IndexNotFound: If a field is not indexed
    """
    groups = []
    for name, value in filter.items():
        if name not in indices:
            raise IndexNotFound(name)
        values = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
        groups.append([str(key["indices"][name][v]) for v in values])
    return groups


def intersection(groups: List[List[str]]) -> Optional[List[Expression]]:
    """Operands matching every group, each group being a union of its keys.

    Returns None when a group is empty, since nothing can match it.
    """
    operands: List[Expression] = []
    for group in groups:
        if not group:
            return None
        operands.append(group[0] if len(group) == 1 else ("SUNION", *group))
    return operands


class Finder:
    """A set-algebra expression over a model's index sets.

    Every building method returns a new Finder; the receiver is never
    modified. An empty filter leaves the expression unchanged. A finder
    whose expression is None is known to be empty and never touches Redis.
    """

    def __init__(
        self,
        model: Type["Model"],
        key: Key,
        indices: FrozenSet[str],
        expr: Optional[Expression],
    ):
        self.model = model
        self.key = key
        self.indices = indices
        self.expr = expr

    def _express(self, filter: Optional[Filter], kwargs: Dict[str, Any]) -> List[List[str]]:
        return index_keys(self.key, self.indices, merge_filter(filter, kwargs))

    def _derive(self, expr: Optional[Expression]) -> "Finder":
        return Finder(self.model, self.key, self.indices, expr)

    @property
    def empty(self) -> bool:
        return self.expr is None

    # Building

    def find(self, filter: Optional[Filter] = None, **kwargs: Any) -> "Finder":
        """Narrow to records matching every field in the filter.

        A list value matches any of its values; an empty list matches nothing.
        """
        groups = self._express(filter, kwargs)
        if not groups:
            return self
        operands = intersection(groups)
        if operands is None or self.empty:
            return self._derive(None)
        return self._derive(("SINTER", self.expr, *operands))

    def union(self, filter: Optional[Filter] = None, **kwargs: Any) -> "Finder":
        """Add records matching every field in the filter."""
        groups = self._express(filter, kwargs)
        operands = intersection(groups)
        if not groups or operands is None:
            return self
        if self.empty:
            return self._derive(("SINTER", *operands))
        return self._derive(("SUNION", self.expr, ("SINTER", *operands)))

    def except_(self, filter: Optional[Filter] = None, **kwargs: Any) -> "Finder":
        """Remove records matching any field value in the filter."""
        keys = [k for group in self._express(filter, kwargs) for k in group]
        if not keys or self.empty:
            return self
        return self._derive(("SDIFF", self.expr, ("SUNION", *keys)))

    def combine(self, filter: Optional[Filter] = None, **kwargs: Any) -> "Finder":
        """Narrow to records matching any field value in the filter."""
        groups = self._express(filter, kwargs)
        if not groups:
            return self
        keys = [k for group in groups for k in group]
        if not keys or self.empty:
            return self._derive(None)
        return self._derive(("SINTER", self.expr, ("SUNION", *keys)))

    # Evaluation

    @property
    def redis(self) -> Any:
        return self.model.redis()

    def size(self) -> int:
        if self.empty:
            return 0
        return int(solve(self.redis, ("SCARD", self.expr)))

    def includes(self, obj: Any) -> bool:
        """Check membership of an id or a model instance.

        ``None`` and unsaved instances are never included.
        """
        id = getattr(obj, "id", obj)
        if id is None or self.empty:
            return False
        return bool(solve(self.redis, ("SISMEMBER", self.expr, str(id))))

    def ids(self) -> List[str]:
        if self.empty:
            return []
        return list(members(self.redis, self.expr))

    def to_list(self) -> List["Model"]:
        """Load every matching instance in one pipelined round trip."""
        return self.model.fetch(self.ids())

    def first(self) -> Optional["Model"]:
        """Return one matching instance, or None if there are none."""
        ids = self.ids()
        return self.model.fetch(ids[:1])[0] if ids else None

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, obj: Any) -> bool:
        return self.includes(obj)

    def __iter__(self) -> Iterator["Model"]:
        return iter(self.to_list())

    def __repr__(self) -> str:
        return f"Finder({self.model.__name__}, {self.expr!r})"

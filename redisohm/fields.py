"""Declarative fields for Model subclasses.

Example:
    class Post(Model):
        title = attribute()
        slug = attribute(unique=True)
        status = attribute(index=True)
        views = counter()
        author = reference("User")
        comments = collection("Comment", "post_id")
        tags = set_of("Tag")
        revisions = list_of("Revision")
        log = tracked()
"""

from typing import TYPE_CHECKING, Any, Optional, Type, Union

from .containers import Counter, MutableList, MutableSet
from .exceptions import MissingID
from .schema import registry

if TYPE_CHECKING:
    from .model import Model


ModelRef = Union[str, Type["Model"]]


class Field:
    """Base descriptor. Subclasses declare what they add to the schema."""

    name: str = ""

    #: Contributions to the owning model's schema
    is_attribute = False
    indexed = False
    unique = False
    tracks_suffix: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Attribute(Field):
    """A string value stored in the instance hash."""

    is_attribute = True

    def __init__(self, index: bool = False, unique: bool = False):
        self.indexed = index
        self.unique = unique

    def __get__(self, obj: Optional["Model"], owner: type) -> Any:
        if obj is None:
            return self
        return obj._attributes.get(self.name)

    def __set__(self, obj: "Model", value: Any) -> None:
        if value is None:
            obj._attributes.pop(self.name, None)
        else:
            obj._attributes[self.name] = str(value)


class CounterField(Field):
    """An integer changed only by atomic increments."""

    tracks_suffix = "counters"

    def __get__(self, obj: Optional["Model"], owner: type) -> Any:
        if obj is None:
            return self
        return Counter(obj.key["counters"], self.name)


class Reference(Field):
    """A foreign key: an indexed ``<name>_id`` attribute plus a typed getter."""

    def __init__(self, model: ModelRef):
        self.model = model

    def __set_name__(self, owner: type, name: str) -> None:
        super().__set_name__(owner, name)
        self.attribute = f"{name}_id"
        if self.attribute not in owner.__dict__:
            id_field = Attribute(index=True)
            id_field.__set_name__(owner, self.attribute)
            setattr(owner, self.attribute, id_field)

    def __get__(self, obj: Optional["Model"], owner: type) -> Any:
        if obj is None:
            return self
        return registry.resolve(self.model).get(getattr(obj, self.attribute))

    def __set__(self, obj: "Model", value: Optional["Model"]) -> None:
        setattr(obj, self.attribute, None if value is None else value.id)


class Collection(Field):
    """The instances of ``model`` whose ``reference`` points at this one."""

    def __init__(self, model: ModelRef, reference: str):
        self.model = model
        self.reference = reference

    def __get__(self, obj: Optional["Model"], owner: type) -> Any:
        if obj is None:
            return self
        if obj.id is None:
            raise MissingID(owner.model_name)
        return registry.resolve(self.model).find({self.reference: obj.id})


class SetField(Field):
    def __init__(self, model: ModelRef):
        self.model = model

    def __set_name__(self, owner: type, name: str) -> None:
        super().__set_name__(owner, name)
        self.tracks_suffix = name

    def __get__(self, obj: Optional["Model"], owner: type) -> Any:
        if obj is None:
            return self
        return MutableSet(registry.resolve(self.model), obj.key[self.name])


class ListField(SetField):
    def __get__(self, obj: Optional["Model"], owner: type) -> Any:
        if obj is None:
            return self
        return MutableList(registry.resolve(self.model), obj.key[self.name])


class TrackedKey(Field):
    """A free-form key under the instance, deleted with it."""

    def __set_name__(self, owner: type, name: str) -> None:
        super().__set_name__(owner, name)
        self.tracks_suffix = name

    def __get__(self, obj: Optional["Model"], owner: type) -> Any:
        if obj is None:
            return self
        return obj.key[self.name]


def attribute(index: bool = False, unique: bool = False) -> Attribute:
    return Attribute(index=index, unique=unique)


def counter() -> CounterField:
    return CounterField()


def reference(model: ModelRef) -> Reference:
    return Reference(model)


def collection(model: ModelRef, reference: str) -> Collection:
    return Collection(model, reference)


def set_of(model: ModelRef) -> SetField:
    return SetField(model)


def list_of(model: ModelRef) -> ListField:
    return ListField(model)


def tracked() -> TrackedKey:
    return TrackedKey()

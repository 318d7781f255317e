"""Per-model schema and the registry of model classes."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, FrozenSet, Optional, Type, Union

if TYPE_CHECKING:
    from .model import Model


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSchema:
    """Immutable description of what a model stores and maintains.

    Built once per class from its field declarations.

    Attributes:
        attributes: Names stored in the instance hash
        indices: Attributes maintained as lookup sets
        uniques: Attributes enforced as value -> id mappings
        tracked: Key suffixes deleted together with the instance
    """

    attributes: FrozenSet[str] = frozenset()
    indices: FrozenSet[str] = frozenset()
    uniques: FrozenSet[str] = frozenset()
    tracked: FrozenSet[str] = frozenset()

    def __post_init__(self):
        for name in self.indices | self.uniques:
            if name not in self.attributes:
                raise ValueError(f"Indexed or unique field '{name}' is not an attribute")

    def is_indexed(self, name: str) -> bool:
        return name in self.indices

    def is_unique(self, name: str) -> bool:
        return name in self.uniques


class ModelRegistry:
    """Maps model names to model classes.

    References and collections may name their target model as a string,
    which is resolved here the first time it is used.

    Example:
        registry = ModelRegistry()
        registry.register(Post)
        registry.resolve("Post")    # Post
    """

    def __init__(self):
        self._models: Dict[str, Type["Model"]] = {}

    def register(self, cls: Type["Model"]) -> None:
        """Register a model class under its model name.

        A later class with the same name replaces the earlier one.
        """
        name = cls.model_name
        if name in self._models and self._models[name] is not cls:
            logger.debug("Model %s redefined", name)
        self._models[name] = cls

    def get(self, name: str) -> Optional[Type["Model"]]:
        return self._models.get(name)

    def resolve(self, model: Union[str, Type["Model"]]) -> Type["Model"]:
        """Return the class for ``model``, which may be a class or a name.

        Raises:
            LookupError: If no model is registered under the name
        """
        if not isinstance(model, str):
            return model
        cls = self._models.get(model)
        if cls is None:
            raise LookupError(f"No model registered as: {model}")
        return cls

    def clear(self) -> None:
        """Remove all registered models."""
        self._models.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._models


registry = ModelRegistry()

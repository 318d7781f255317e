"""Exceptions for the redisohm package."""


class OhmError(Exception):
    """Base exception for all redisohm errors."""

    pass


class MissingID(OhmError):
    """A key-dependent operation was attempted on an unsaved instance."""

    def __init__(self, model: str = ""):
        self.model = model
        super().__init__(f"{model or 'Model'} instance has no id; save it first")


class IndexNotFound(OhmError, KeyError):
    """A lookup referenced a field that is not indexed (or not unique)."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Index not found: {field}")


class RecordNotFound(OhmError, KeyError):
    """No record with the given id exists."""

    def __init__(self, model: str, id: str):
        self.model = model
        self.id = id
        super().__init__(f"No {model} with id: {id}")


class UniqueIndexViolation(OhmError):
    """Save aborted because a unique value is claimed by another record."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Unique index violation: {field}")

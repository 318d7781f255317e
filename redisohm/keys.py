"""Hierarchical Redis key builder."""

from typing import Any, Optional


class Key(str):
    """A Redis key that builds child keys with ``[]``.

    Keys are plain strings, so they can be passed anywhere redis-py
    expects a key name. Indexing appends a ``:``-separated segment and
    keeps the client binding.

    Example:
        key = Key("Foo")
        key[1]                        # "Foo:1"
        key["indices"]["a"]["x"]      # "Foo:indices:a:x"

        log = Key("Log", redis)[1]["text"]
        log.call("APPEND", "hello")   # APPEND Log:1:text hello
    """

    def __new__(cls, name: Any, redis: Optional[Any] = None):
        key = super().__new__(cls, str(name))
        key._redis = redis
        return key

    def __getitem__(self, segment: Any) -> "Key":
        return Key(f"{self}:{segment}", self._redis)

    @property
    def redis(self) -> Any:
        """The bound client, falling back to the process-wide one."""
        if self._redis is not None:
            return self._redis
        from .connection import get_redis

        return get_redis()

    def call(self, command: str, *args: Any) -> Any:
        """Run ``command`` with this key as its first argument."""
        return self.redis.execute_command(command, str(self), *args)

    def bind(self, redis: Any) -> "Key":
        """Return the same key bound to ``redis``."""
        return Key(str(self), redis)

    def __repr__(self) -> str:
        return f"Key({str(self)!r})"


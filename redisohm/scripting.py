"""Server-side Lua programs, executed through the script cache.

Each program is identified by the SHA1 of its source. Calls go through
EVALSHA; if the server does not know the hash (NOSCRIPT), the source is
loaded with SCRIPT LOAD and the call is retried exactly once.
"""

import hashlib
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from redis.exceptions import NoScriptError, ResponseError

from .exceptions import UniqueIndexViolation


logger = logging.getLogger(__name__)

LUA_DIR = Path(__file__).parent / "lua"

UNIQUE_VIOLATION_PATTERN = re.compile(r"UniqueIndexViolation: (\w+)")


class ScriptState(Enum):
    """Whether a script is known to be in the server's cache."""

    UNKNOWN = "unknown"
    KNOWN = "known"


class LuaScript:
    """A named Lua program with EVALSHA / reload-on-miss semantics.

    Example:
        save = LuaScript.from_file("save")
        new_id = save(redis, "Foo", "", 0, 0, 0)
    """

    def __init__(self, name: str, source: str):
        self.name = name
        self.source = source
        self.sha = hashlib.sha1(source.encode("utf-8")).hexdigest()
        self.state = ScriptState.UNKNOWN

    @classmethod
    def from_file(cls, name: str) -> "LuaScript":
        """Load ``lua/<name>.lua`` from the package directory."""
        return cls(name, (LUA_DIR / f"{name}.lua").read_text(encoding="utf-8"))

    def __call__(self, redis: Any, *args: Any) -> Any:
        """Run the script with ``numkeys = 0`` and ``args`` as ARGV.

        Raises:
            UniqueIndexViolation: If the script reports a unique conflict
            redis.exceptions.RedisError: Any other store failure, including
                a second NOSCRIPT after reloading
        """
        try:
            try:
                result = redis.evalsha(self.sha, 0, *args)
            except NoScriptError:
                logger.debug("Script %s (%s) not cached, loading", self.name, self.sha)
                self.state = ScriptState.UNKNOWN
                redis.script_load(self.source)
                result = redis.evalsha(self.sha, 0, *args)
        except ResponseError as e:
            match = UNIQUE_VIOLATION_PATTERN.search(str(e))
            if match and not isinstance(e, NoScriptError):
                raise UniqueIndexViolation(match.group(1)) from e
            raise

        if self.state is ScriptState.UNKNOWN:
            logger.debug("Script %s (%s) cached on the server", self.name, self.sha)
        self.state = ScriptState.KNOWN
        return result

    def __repr__(self) -> str:
        return f"LuaScript({self.name!r}, sha={self.sha[:8]}, state={self.state.value})"


SCRIPTS: Dict[str, LuaScript] = {
    name: LuaScript.from_file(name) for name in ("save", "delete", "solve")
}


def pack_pairs(pairs: Any) -> list:
    """Encode ``(field, value)`` pairs as a count-prefixed flat ARGV section."""
    pairs = list(pairs)
    packed: list = [len(pairs)]
    for field, value in pairs:
        packed.extend((field, value))
    return packed

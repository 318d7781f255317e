"""Evaluate nested set-operation expressions inside Redis.

An expression is either a key (a string) or a tuple whose first item is
one of ``SINTER``, ``SUNION``, ``SDIFF`` and whose remaining items are
expressions. A command such as ``("SCARD", expr)`` is solved by storing
every nested operation into a temporary key on the server, running the
outer command against it and deleting the temporaries, all in one
script call. Intermediate sets never travel to the client.
"""

from typing import Any, List, Tuple, Union

from .scripting import SCRIPTS


Expression = Union[str, Tuple[Any, ...]]

SET_OPERATIONS = ("SINTER", "SUNION", "SDIFF")


def is_nested(value: Any) -> bool:
    return isinstance(value, tuple)


def encode(command: Tuple[Any, ...]) -> List[Any]:
    """Encode a command tree in the prefix form read by ``solve.lua``."""
    name, *args = command
    encoded: List[Any] = ["op", name, len(args)]
    for arg in args:
        if is_nested(arg):
            encoded.extend(encode(arg))
        else:
            encoded.extend(("arg", arg))
    return encoded


def solve(redis: Any, command: Tuple[Any, ...]) -> Any:
    """Run ``command``, evaluating any nested expressions server-side.

    Example:
        solve(redis, ("SCARD", ("SINTER", "Foo:all", "Foo:indices:a:1")))
    """
    if not any(is_nested(arg) for arg in command[1:]):
        return redis.execute_command(*command)
    return SCRIPTS["solve"](redis, *encode(command))


def members(redis: Any, expr: Expression) -> Any:
    """Return the members of the set described by ``expr``."""
    if is_nested(expr):
        if expr[0] not in SET_OPERATIONS:
            raise ValueError(f"Not a set operation: {expr[0]}")
        return solve(redis, expr)
    return solve(redis, ("SMEMBERS", expr))

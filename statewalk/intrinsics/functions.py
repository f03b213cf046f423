"""The closed catalogue of ``States.*`` intrinsic functions.

Every function validates its arguments before doing any work and raises
:class:`~statewalk.errors.IntrinsicArgumentError` with one of three message
shapes::

    wrong number of arguments to States.X (given N, expected M)
    wrong type for first argument to States.X (given Integer, expected Array)
    invalid value for second argument to States.X (given -1, expected a positive Integer)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import random
import re
import uuid
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from ..errors import IntrinsicArgumentError

FUNCTIONS: Dict[str, Callable[..., Any]] = {}

_ORDINALS = (
    "first", "second", "third", "fourth", "fifth",
    "sixth", "seventh", "eighth", "ninth", "tenth",
)

_TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "Array": lambda v: isinstance(v, list),
    "Object": lambda v: isinstance(v, dict),
    "String": lambda v: isinstance(v, str),
    "Boolean": lambda v: isinstance(v, bool),
    "Integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "Number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "null": lambda v: v is None,
}

_HASH_ALGORITHMS = {
    "MD5": "md5",
    "SHA-1": "sha1",
    "SHA-256": "sha256",
    "SHA-384": "sha384",
    "SHA-512": "sha512",
}

MAX_ARRAY_RANGE_ITEMS = 1000


def intrinsic(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Register ``func`` under the intrinsic function ``name``."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        FUNCTIONS[name] = func
        return func

    return decorator


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, float):
        return "Float"
    if isinstance(value, str):
        return "String"
    if isinstance(value, list):
        return "Array"
    if isinstance(value, dict):
        return "Object"
    return type(value).__name__


def _ordinal(index: int) -> str:
    return _ORDINALS[index] if index < len(_ORDINALS) else f"#{index + 1}"


def check_arity(
    name: str, args: Sequence[Any], expected: Union[int, Tuple[int, Optional[int]]]
) -> None:
    """Check ``len(args)`` against an exact count or a ``(min, max)`` range."""
    given = len(args)
    if isinstance(expected, int):
        minimum = maximum = expected
        description = str(expected)
    else:
        minimum, maximum = expected
        description = (
            f"at least {minimum}" if maximum is None else f"{minimum}..{maximum}"
        )
    if given < minimum or (maximum is not None and given > maximum):
        raise IntrinsicArgumentError(
            name,
            f"wrong number of arguments to {name} (given {given}, expected {description})",
        )


def check_type(name: str, index: int, value: Any, *expected: str) -> None:
    if any(_TYPE_CHECKS[kind](value) for kind in expected):
        return
    raise IntrinsicArgumentError(
        name,
        f"wrong type for {_ordinal(index)} argument to {name} "
        f"(given {type_name(value)}, expected {' or '.join(expected)})",
    )


def invalid_value(name: str, index: int, value: Any, expected: str) -> IntrinsicArgumentError:
    return IntrinsicArgumentError(
        name,
        f"invalid value for {_ordinal(index)} argument to {name} "
        f"(given {json.dumps(value)}, expected {expected})",
    )


def json_equal(left: Any, right: Any) -> bool:
    """Compare JSON values without conflating booleans and numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(map(json_equal, left, right))
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(
            json_equal(value, right[key]) for key, value in left.items()
        )
    return left == right


@intrinsic("States.Format")
def states_format(*args: Any) -> str:
    name = "States.Format"
    check_arity(name, args, (1, None))
    template, values = args[0], args[1:]
    check_type(name, 0, template, "String")
    for index, value in enumerate(values, start=1):
        check_type(name, index, value, "String", "Number", "Boolean", "null")

    pieces = re.split(r"(?<!\\)\{\}", template)
    if len(pieces) - 1 != len(values):
        raise IntrinsicArgumentError(
            name,
            f"wrong number of arguments to {name} "
            f"(given {len(args)}, expected {len(pieces)})",
        )

    rendered = [pieces[0]]
    for value, piece in zip(values, pieces[1:]):
        rendered.append(value if isinstance(value, str) else json.dumps(value))
        rendered.append(piece)
    return "".join(rendered).replace("\\{", "{").replace("\\}", "}")


@intrinsic("States.StringToJson")
def states_string_to_json(*args: Any) -> Any:
    name = "States.StringToJson"
    check_arity(name, args, 1)
    check_type(name, 0, args[0], "String")
    try:
        return json.loads(args[0])
    except ValueError:
        raise invalid_value(name, 0, args[0], "a JSON String") from None


@intrinsic("States.JsonToString")
def states_json_to_string(*args: Any) -> str:
    check_arity("States.JsonToString", args, 1)
    return json.dumps(args[0], separators=(",", ":"))


@intrinsic("States.Array")
def states_array(*args: Any) -> list:
    return list(args)


@intrinsic("States.ArrayPartition")
def states_array_partition(*args: Any) -> list:
    name = "States.ArrayPartition"
    check_arity(name, args, 2)
    array, size = args
    check_type(name, 0, array, "Array")
    check_type(name, 1, size, "Integer")
    if size <= 0:
        raise invalid_value(name, 1, size, "a positive Integer")
    return [array[i : i + size] for i in range(0, len(array), size)] or [[]]


@intrinsic("States.ArrayContains")
def states_array_contains(*args: Any) -> bool:
    name = "States.ArrayContains"
    check_arity(name, args, 2)
    array, value = args
    check_type(name, 0, array, "Array")
    return any(json_equal(item, value) for item in array)


@intrinsic("States.ArrayRange")
def states_array_range(*args: Any) -> list:
    name = "States.ArrayRange"
    check_arity(name, args, 3)
    for index, value in enumerate(args):
        check_type(name, index, value, "Integer")
    start, end, step = args
    if step == 0:
        raise invalid_value(name, 2, step, "a non-zero Integer")
    result = range(start, end + (1 if step > 0 else -1), step)
    if len(result) > MAX_ARRAY_RANGE_ITEMS:
        raise invalid_value(
            name, 2, step, f"a step producing at most {MAX_ARRAY_RANGE_ITEMS} items"
        )
    return list(result)


@intrinsic("States.ArrayGetItem")
def states_array_get_item(*args: Any) -> Any:
    name = "States.ArrayGetItem"
    check_arity(name, args, 2)
    array, index = args
    check_type(name, 0, array, "Array")
    check_type(name, 1, index, "Integer")
    if index < 0 or index >= len(array):
        raise invalid_value(name, 1, index, f"an index between 0 and {len(array) - 1}")
    return array[index]


@intrinsic("States.ArrayLength")
def states_array_length(*args: Any) -> int:
    name = "States.ArrayLength"
    check_arity(name, args, 1)
    check_type(name, 0, args[0], "Array")
    return len(args[0])


@intrinsic("States.ArrayUnique")
def states_array_unique(*args: Any) -> list:
    name = "States.ArrayUnique"
    check_arity(name, args, 1)
    check_type(name, 0, args[0], "Array")
    unique: list = []
    for item in args[0]:
        if not any(json_equal(item, seen) for seen in unique):
            unique.append(item)
    return unique


@intrinsic("States.Base64Encode")
def states_base64_encode(*args: Any) -> str:
    name = "States.Base64Encode"
    check_arity(name, args, 1)
    check_type(name, 0, args[0], "String")
    return base64.b64encode(args[0].encode("utf-8")).decode("ascii")


@intrinsic("States.Base64Decode")
def states_base64_decode(*args: Any) -> str:
    name = "States.Base64Decode"
    check_arity(name, args, 1)
    check_type(name, 0, args[0], "String")
    try:
        return base64.b64decode(args[0], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise invalid_value(name, 0, args[0], "a Base64 encoded String") from None


@intrinsic("States.Hash")
def states_hash(*args: Any) -> str:
    name = "States.Hash"
    check_arity(name, args, 2)
    data, algorithm = args
    check_type(name, 0, data, "String")
    check_type(name, 1, algorithm, "String")
    if algorithm not in _HASH_ALGORITHMS:
        raise invalid_value(name, 1, algorithm, "one of " + ", ".join(_HASH_ALGORITHMS))
    return hashlib.new(_HASH_ALGORITHMS[algorithm], data.encode("utf-8")).hexdigest()


@intrinsic("States.JsonMerge")
def states_json_merge(*args: Any) -> dict:
    name = "States.JsonMerge"
    check_arity(name, args, 3)
    left, right, deep = args
    check_type(name, 0, left, "Object")
    check_type(name, 1, right, "Object")
    check_type(name, 2, deep, "Boolean")
    if deep:
        raise invalid_value(name, 2, deep, "false")
    return {**left, **right}


@intrinsic("States.MathRandom")
def states_math_random(*args: Any) -> int:
    name = "States.MathRandom"
    check_arity(name, args, (2, 3))
    for index, value in enumerate(args):
        check_type(name, index, value, "Integer")
    start, end = args[0], args[1]
    if end <= start:
        raise invalid_value(name, 1, end, f"an Integer greater than {start}")
    rng = random.Random(args[2]) if len(args) == 3 else random
    return rng.randrange(start, end)


@intrinsic("States.MathAdd")
def states_math_add(*args: Any) -> Union[int, float]:
    name = "States.MathAdd"
    check_arity(name, args, 2)
    check_type(name, 0, args[0], "Number")
    check_type(name, 1, args[1], "Number")
    return args[0] + args[1]


@intrinsic("States.StringSplit")
def states_string_split(*args: Any) -> list:
    name = "States.StringSplit"
    check_arity(name, args, 2)
    text, delimiters = args
    check_type(name, 0, text, "String")
    check_type(name, 1, delimiters, "String")
    if not delimiters:
        raise invalid_value(name, 1, delimiters, "a non-empty String")
    parts = re.split("[" + re.escape(delimiters) + "]", text)
    return [part for part in parts if part]


@intrinsic("States.UUID")
def states_uuid(*args: Any) -> str:
    check_arity("States.UUID", args, 0)
    return str(uuid.uuid4())

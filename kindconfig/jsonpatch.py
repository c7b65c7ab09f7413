"""JSON Patch (RFC 6902) and JSON Merge Patch (RFC 7386) on plain Python data."""

from __future__ import annotations

import copy
import json
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

__all__ = [
    "JsonPatchError",
    "decode_patch",
    "apply_patch",
    "merge_patch",
]

_ARRAY_INDEX = re.compile(r"-?(0|[1-9][0-9]*)")


class JsonPatchError(ValueError):
    """Raised when a patch cannot be decoded or applied."""


def decode_patch(data: str | bytes) -> list[dict[str, Any]]:
    """Decode an RFC 6902 patch document into a list of operations."""
    try:
        operations = json.loads(data)
    except ValueError as exc:
        raise JsonPatchError(f"invalid JSON patch: {exc}") from exc
    if not isinstance(operations, list):
        raise JsonPatchError("a JSON patch must be an array of operations")
    for operation in operations:
        if not isinstance(operation, dict):
            raise JsonPatchError(f"a JSON patch operation must be an object, got {operation!r}")
    return operations


def _tokens(path: Any) -> list[str]:
    if not isinstance(path, str):
        raise JsonPatchError(f"invalid JSON pointer: {path!r}")
    if path == "":
        return []
    if not path.startswith("/"):
        raise JsonPatchError(f"JSON pointer must start with '/': {path!r}")
    return [token.replace("~1", "/").replace("~0", "~") for token in path[1:].split("/")]


def _array_index(token: str, length: int, *, inserting: bool) -> int:
    if inserting and token == "-":
        return length
    if not _ARRAY_INDEX.fullmatch(token):
        raise JsonPatchError(f"invalid array index {token!r}")
    index = int(token)
    if index < 0:
        if index < -length:
            raise JsonPatchError(f"array index {index} out of bounds")
        index += length
    upper = length + 1 if inserting else length
    if index >= upper:
        raise JsonPatchError(f"array index {index} out of bounds")
    return index


def _child(container: Any, token: str) -> Any:
    if isinstance(container, dict):
        if token not in container:
            raise JsonPatchError(f"missing key {token!r}")
        return container[token]
    if isinstance(container, list):
        return container[_array_index(token, len(container), inserting=False)]
    raise JsonPatchError(f"cannot traverse into a {type(container).__name__}")


def _get(document: Any, tokens: list[str]) -> Any:
    current = document
    for token in tokens:
        current = _child(current, token)
    return current


def _required(operation: Mapping[str, Any], name: str) -> Any:
    if name not in operation:
        raise JsonPatchError(f"operation {operation.get('op')!r} is missing {name!r}")
    return operation[name]


def _add_at(document: Any, tokens: list[str], value: Any) -> Any:
    if not tokens:
        return value
    parent = _get(document, tokens[:-1])
    last = tokens[-1]
    if isinstance(parent, dict):
        parent[last] = value
    elif isinstance(parent, list):
        parent.insert(_array_index(last, len(parent), inserting=True), value)
    else:
        raise JsonPatchError(f"cannot add into a {type(parent).__name__}")
    return document


def _remove_at(document: Any, tokens: list[str]) -> Any:
    if not tokens:
        raise JsonPatchError("cannot remove the document root")
    parent = _get(document, tokens[:-1])
    last = tokens[-1]
    if isinstance(parent, dict):
        if last not in parent:
            raise JsonPatchError(f"unable to remove nonexistent key {last!r}")
        return parent.pop(last)
    if isinstance(parent, list):
        return parent.pop(_array_index(last, len(parent), inserting=False))
    raise JsonPatchError(f"cannot remove from a {type(parent).__name__}")


def _op_add(document: Any, operation: Mapping[str, Any]) -> Any:
    tokens = _tokens(_required(operation, "path"))
    return _add_at(document, tokens, copy.deepcopy(_required(operation, "value")))


def _op_remove(document: Any, operation: Mapping[str, Any]) -> Any:
    _remove_at(document, _tokens(_required(operation, "path")))
    return document


def _op_replace(document: Any, operation: Mapping[str, Any]) -> Any:
    tokens = _tokens(_required(operation, "path"))
    value = copy.deepcopy(_required(operation, "value"))
    if not tokens:
        return value
    parent = _get(document, tokens[:-1])
    last = tokens[-1]
    if isinstance(parent, dict):
        if last not in parent:
            raise JsonPatchError(f"unable to replace nonexistent key {last!r}")
        parent[last] = value
    elif isinstance(parent, list):
        parent[_array_index(last, len(parent), inserting=False)] = value
    else:
        raise JsonPatchError(f"cannot replace inside a {type(parent).__name__}")
    return document


def _op_move(document: Any, operation: Mapping[str, Any]) -> Any:
    source = _required(operation, "from")
    target = _required(operation, "path")
    source_tokens = _tokens(source)
    target_tokens = _tokens(target)
    if source == target:
        _get(document, source_tokens)
        return document
    if target_tokens[: len(source_tokens)] == source_tokens:
        raise JsonPatchError(f"cannot move {source!r} into its own child {target!r}")
    value = _remove_at(document, source_tokens)
    return _add_at(document, target_tokens, value)


def _op_copy(document: Any, operation: Mapping[str, Any]) -> Any:
    value = copy.deepcopy(_get(document, _tokens(_required(operation, "from"))))
    return _add_at(document, _tokens(_required(operation, "path")), value)


def _op_test(document: Any, operation: Mapping[str, Any]) -> Any:
    path = _required(operation, "path")
    expected = _required(operation, "value")
    if not _json_equal(_get(document, _tokens(path)), expected):
        raise JsonPatchError(f"testing value at {path!r} failed")
    return document


_OPERATIONS: dict[str, Callable[[Any, Mapping[str, Any]], Any]] = {
    "add": _op_add,
    "remove": _op_remove,
    "replace": _op_replace,
    "move": _op_move,
    "copy": _op_copy,
    "test": _op_test,
}


def _json_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(_json_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(map(_json_equal, left, right))
    return type(left) is type(right) and left == right


def apply_patch(operations: Iterable[Mapping[str, Any]], document: Any) -> Any:
    """Apply RFC 6902 operations to document, returning a new document."""
    result = copy.deepcopy(document)
    for operation in operations:
        if not isinstance(operation, Mapping):
            raise JsonPatchError(f"a JSON patch operation must be an object, got {operation!r}")
        name = operation.get("op")
        handler = _OPERATIONS.get(name) if isinstance(name, str) else None
        if handler is None:
            raise JsonPatchError(f"unexpected operation {name!r}")
        result = handler(result, operation)
    return result


def merge_patch(original: Any, patch: Any) -> Any:
    """Apply an RFC 7386 merge patch to original, returning a new value."""
    if not isinstance(patch, Mapping):
        return copy.deepcopy(patch)
    result = copy.deepcopy(dict(original)) if isinstance(original, Mapping) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result
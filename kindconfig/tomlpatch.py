"""Patching TOML documents with TOML merge patches and JSON 6902 patches."""

from __future__ import annotations

import datetime
import math
import re
import tomllib
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from kindconfig.jsonpatch import JsonPatchError, apply_patch, decode_patch, merge_patch

__all__ = [
    "TomlPatchError",
    "toml_patch",
    "toml_to_data",
    "dumps_toml",
]

_INDENT = "  "
_BARE_KEY = re.compile(r"[A-Za-z0-9_-]+")
_ESCAPES = {"\t": "\\t", "\n": "\\n", "\r": "\\r", '"': '\\"', "\\": "\\\\"}


class TomlPatchError(ValueError):
    """Raised when TOML cannot be parsed, patched or encoded."""


def toml_patch(
    to_patch: str,
    patches: Iterable[str] | None = None,
    patches6902: Iterable[str] | None = None,
) -> str:
    """Patch to_patch with TOML merge patches, then JSON 6902 patches."""
    document: Any = toml_to_data(to_patch)
    for patch in patches or ():
        document = merge_patch(document, toml_to_data(patch))
    for raw in patches6902 or ():
        try:
            document = apply_patch(decode_patch(raw), document)
        except JsonPatchError as exc:
            raise TomlPatchError(str(exc)) from exc
    return dumps_toml(document)


def toml_to_data(text: str | bytes) -> dict[str, Any]:
    """Parse arbitrary TOML into plain Python data."""
    try:
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        return tomllib.loads(text)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise TomlPatchError(f"invalid TOML: {exc}") from exc


def dumps_toml(data: Mapping[str, Any]) -> str:
    """Encode a mapping as TOML with sorted keys and indented sub-tables."""
    if not isinstance(data, Mapping):
        raise TomlPatchError(f"a TOML document must be a table, got {type(data).__name__}")
    out: list[str] = []
    _emit_table((), data, out)
    return "".join(out)


def _newline(out: list[str]) -> None:
    if out:
        out.append("\n")


def _kind(value: Any) -> str:
    if value is None:
        raise TomlPatchError("cannot encode a null value in TOML")
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return "datetime"
    if isinstance(value, Mapping):
        return "table"
    if isinstance(value, (list, tuple)):
        _array_kind(value)
        return "array"
    raise TomlPatchError(f"cannot encode a value of type {type(value).__name__} in TOML")


def _array_kind(values: list[Any] | tuple[Any, ...]) -> str | None:
    kinds = {_kind(value) for value in values}
    if len(kinds) > 1:
        raise TomlPatchError("cannot encode an array with mixed element types")
    return kinds.pop() if kinds else None


def _quote_key(name: str) -> str:
    if _BARE_KEY.fullmatch(name):
        return name
    return f'"{_escape(name)}"'


def _table_name(key: tuple[str, ...]) -> str:
    if any(not part for part in key):
        raise TomlPatchError(f"table name {'.'.join(key)!r} has an empty part")
    return ".".join(_quote_key(part) for part in key)


def _indent(key: tuple[str, ...]) -> str:
    return _INDENT * (len(key) - 1)


def _escape(text: str) -> str:
    pieces = []
    for char in text:
        if char in _ESCAPES:
            pieces.append(_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            pieces.append(f"\\u{ord(char):04X}")
        else:
            pieces.append(char)
    return "".join(pieces)


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    return text if "." in text else text + ".0"


def _format_datetime(value: datetime.date | datetime.time) -> str:
    if isinstance(value, datetime.datetime) and value.tzinfo is not None:
        return value.astimezone(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return value.isoformat()


def _element(value: Any) -> str:
    kind = _kind(value)
    if kind == "bool":
        return "true" if value else "false"
    if kind == "int":
        return str(value)
    if kind == "float":
        return _format_float(value)
    if kind == "string":
        return f'"{_escape(value)}"'
    if kind == "datetime":
        return _format_datetime(value)
    if kind == "array":
        return "[" + ", ".join(_element(item) for item in value) + "]"
    raise TomlPatchError("cannot encode a table inside an array")


def _emit(key: tuple[str, ...], value: Any, out: list[str]) -> None:
    kind = _kind(value)
    if kind == "table":
        _emit_table(key, value, out)
    elif kind == "array" and _array_kind(value) == "table":
        _emit_array_of_tables(key, value, out)
    else:
        out.append(f"{_indent(key)}{_quote_key(key[-1])} = {_element(value)}")
        _newline(out)


def _emit_table(key: tuple[str, ...], table: Mapping[str, Any], out: list[str]) -> None:
    if key:
        name = _table_name(key)
        if len(key) == 1:
            _newline(out)
        out.append(f"{_indent(key)}[{name}]")
        _newline(out)
    _emit_entries(key, table, out)


def _emit_array_of_tables(key: tuple[str, ...], tables: Iterable[Any], out: list[str]) -> None:
    name = _table_name(key)
    for table in tables:
        _newline(out)
        out.append(f"{_indent(key)}[[{name}]]")
        _newline(out)
        _emit_entries(key, table, out)


def _emit_entries(key: tuple[str, ...], table: Mapping[str, Any], out: list[str]) -> None:
    direct: list[str] = []
    nested: list[str] = []
    for name in sorted(table):
        if not isinstance(name, str):
            raise TomlPatchError(f"TOML keys must be strings, got {name!r}")
        value = table[name]
        if value is None:
            continue
        (nested if _kind(value) == "table" else direct).append(name)
    for name in direct + nested:
        _emit(key + (name,), table[name], out)
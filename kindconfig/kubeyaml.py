"""Patching Kubernetes YAML document streams with merge and JSON 6902 patches."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import yaml

from kindconfig.jsonpatch import JsonPatchError, apply_patch, decode_patch, merge_patch

__all__ = [
    "PatchError",
    "PatchJSON6902",
    "MatchInfo",
    "MergePatch",
    "Json6902Patch",
    "Resource",
    "kube_yaml",
    "split_yaml_documents",
    "parse_match_info",
    "parse_resources",
    "parse_merge_patches",
    "convert_json6902_patches",
    "group_version_to_api_version",
]

_YAML_SEPARATOR = "\n---"
_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _Loader(yaml.SafeLoader):
    """Safe loader that leaves timestamp-like scalars as strings."""


_Loader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class PatchError(ValueError):
    """Raised when documents or patches cannot be parsed or applied."""


@dataclass
class PatchJSON6902:
    """A JSON 6902 patch targeting resources of one group, version and kind."""

    group: str = ""
    version: str = ""
    kind: str = ""
    patch: str = ""


@dataclass(frozen=True)
class MatchInfo:
    """The v1 TypeMeta used to match resources and patches."""

    kind: str = ""
    api_version: str = ""


@dataclass
class MergePatch:
    """A merge patch document and what it matches."""

    raw: str
    data: Any
    match_info: MatchInfo = field(default_factory=MatchInfo)


@dataclass
class Json6902Patch:
    """A decoded JSON 6902 patch and what it matches."""

    raw: str
    operations: list[dict[str, Any]]
    match_info: MatchInfo = field(default_factory=MatchInfo)


@dataclass
class Resource:
    """One document of the stream being patched."""

    raw: str
    data: Any
    match_info: MatchInfo = field(default_factory=MatchInfo)

    def matches(self, other: MatchInfo) -> bool:
        """Kind must match; apiVersion only when the patch sets it."""
        mine = self.match_info
        return mine.kind == other.kind and (
            not other.api_version or mine.api_version == other.api_version
        )

    def apply_merge_patch(self, patch: MergePatch) -> bool:
        """Apply patch if it matches; return whether it matched."""
        if not self.matches(patch.match_info):
            return False
        if not isinstance(patch.data, Mapping):
            raise PatchError("a merge patch must be a mapping")
        self.data = merge_patch(self.data, patch.data)
        return True

    def apply_6902_patch(self, patch: Json6902Patch) -> bool:
        """Apply patch if it matches; return whether it matched."""
        if not self.matches(patch.match_info):
            return False
        try:
            self.data = apply_patch(patch.operations, self.data)
        except JsonPatchError as exc:
            raise PatchError(str(exc)) from exc
        return True

    def encode(self) -> str:
        """Encode the resource as YAML with sorted keys."""
        try:
            text = yaml.safe_dump(
                self.data,
                default_flow_style=False,
                sort_keys=True,
                allow_unicode=True,
            )
        except yaml.YAMLError as exc:
            raise PatchError(f"failed to encode resource: {exc}") from exc
        if text.endswith("\n...\n"):
            text = text[: -len("...\n")]
        return text


def _json_key(key: Any) -> str:
    if key is None:
        return "null"
    if isinstance(key, bool):
        return "true" if key else "false"
    return str(key)


def _to_json(value: Any) -> Any:
    if isinstance(value, dict):
        return {_json_key(k): _to_json(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_json(item) for item in value]
    return value


def _load(raw: str) -> Any:
    try:
        return _to_json(yaml.load(raw, Loader=_Loader))
    except yaml.YAMLError as exc:
        raise PatchError(f"failed to convert YAML to JSON: {exc}") from exc


def _meta_string(value: Any, name: str, raw: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    raise PatchError(f"failed to parse type meta for {raw!r}: {name} must be a string")


def group_version_to_api_version(group: str, version: str) -> str:
    """Join group and version into an apiVersion."""
    return version if not group else f"{group}/{version}"


def parse_match_info(raw: str) -> MatchInfo:
    """Read kind and apiVersion from a YAML document."""
    try:
        loaded = yaml.load(raw, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise PatchError(f"failed to parse type meta for {raw!r}: {exc}") from exc
    if loaded is None:
        return MatchInfo()
    if not isinstance(loaded, dict):
        raise PatchError(f"failed to parse type meta for {raw!r}: not a mapping")
    return MatchInfo(
        kind=_meta_string(loaded.get("kind"), "kind", raw),
        api_version=_meta_string(loaded.get("apiVersion"), "apiVersion", raw),
    )


def split_yaml_documents(stream: str) -> list[str]:
    """Split a YAML stream on lines starting with '---'.

    A separator is a newline followed by '---' and the rest of that line.
    A trailing separator ends the stream; a final separator line that has
    no terminating newline drops whatever remains.
    """
    documents: list[str] = []
    rest = stream
    while rest:
        index = rest.find(_YAML_SEPARATOR)
        if index < 0:
            documents.append(rest)
            break
        after = rest[index + len(_YAML_SEPARATOR):]
        if not after:
            documents.append(rest[:index])
            break
        newline = after.find("\n")
        if newline < 0:
            break
        documents.append(rest[:index])
        rest = after[newline + 1:]
    return documents


def parse_resources(stream: str) -> list[Resource]:
    """Split and parse a YAML document stream into resources."""
    return [
        Resource(raw=raw, data=_load(raw), match_info=parse_match_info(raw))
        for raw in split_yaml_documents(stream)
    ]


def parse_merge_patches(raw_patches: Iterable[str]) -> list[MergePatch]:
    """Parse merge patches, splitting any document streams among them."""
    split = [raw for patch in raw_patches for raw in split_yaml_documents(patch)]
    return [
        MergePatch(raw=raw, data=_load(raw), match_info=parse_match_info(raw))
        for raw in split
    ]


def convert_json6902_patches(patches6902: Iterable[PatchJSON6902]) -> list[Json6902Patch]:
    """Decode configured JSON 6902 patches, whose bodies may be YAML."""
    converted = []
    for configured in patches6902:
        data = _load(configured.patch)
        try:
            operations = decode_patch(json.dumps(data))
        except (JsonPatchError, TypeError, ValueError) as exc:
            raise PatchError(str(exc)) from exc
        converted.append(
            Json6902Patch(
                raw=configured.patch,
                operations=operations,
                match_info=MatchInfo(
                    kind=configured.kind,
                    api_version=group_version_to_api_version(
                        configured.group, configured.version
                    ),
                ),
            )
        )
    return converted


def kube_yaml(
    to_patch: str,
    patches: Iterable[str] | None = None,
    patches6902: Iterable[PatchJSON6902] | None = None,
) -> str:
    """Patch a Kubernetes YAML document stream.

    Merge patches are applied first, then JSON 6902 patches, each to the
    documents whose kind (and apiVersion, when the patch sets it) match.
    """
    try:
        resources = parse_resources(to_patch)
    except PatchError as exc:
        raise PatchError(f"failed to parse yaml to patch: {exc}") from exc
    try:
        merge_patches = parse_merge_patches(patches or ())
    except PatchError as exc:
        raise PatchError(f"failed to parse patches: {exc}") from exc
    try:
        json_patches = convert_json6902_patches(patches6902 or ())
    except PatchError as exc:
        raise PatchError(f"failed to parse JSON 6902 patches: {exc}") from exc

    encoded = []
    for resource in resources:
        for merge in merge_patches:
            try:
                resource.apply_merge_patch(merge)
            except PatchError as exc:
                raise PatchError(f"failed to apply patch: {exc}") from exc
        for patch in json_patches:
            try:
                resource.apply_6902_patch(patch)
            except PatchError as exc:
                raise PatchError(f"failed to apply JSON 6902 patch: {exc}") from exc
        encoded.append(resource.encode())
    return "---\n".join(encoded)
"""Writing, merging and removing kind entries in KUBECONFIG files."""

from __future__ import annotations

import os
from typing import Protocol, TypeVar

from kindconfig.kubeconfig import (
    Config,
    KubeconfigError,
    check_kubeadm_expectations,
    encode,
    kind_cluster_key,
    read_config,
)
from kindconfig.kubeconfig_paths import locked, path_for_merge, paths

__all__ = [
    "write_config",
    "merge",
    "write_merged",
    "remove",
    "remove_kind",
]


class _Named(Protocol):
    name: str


_N = TypeVar("_N", bound=_Named)


def _get_env(key: str) -> str:
    return os.environ.get(key, "")


def write_config(cfg: Config, config_path: str | os.PathLike[str]) -> None:
    """Write cfg to config_path, creating parent directories as needed."""
    encoded = encode(cfg).encode("utf-8")
    directory = os.path.dirname(os.fspath(config_path)) or "."
    if not os.path.exists(directory):
        try:
            os.makedirs(directory, mode=0o755, exist_ok=True)
        except OSError as exc:
            raise KubeconfigError(f"failed to create directory for KUBECONFIG: {exc}") from exc
    try:
        fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as handle:
            handle.write(encoded)
    except OSError as exc:
        raise KubeconfigError(f"failed to write KUBECONFIG: {exc}") from exc


def _upsert(entries: list[_N], entry: _N) -> None:
    replaced = False
    for index, existing in enumerate(entries):
        if existing.name == entry.name:
            entries[index] = entry
            replaced = True
    if not replaced:
        entries.append(entry)


def merge(existing: Config, kind: Config) -> None:
    """Merge the kind kubeconfig into existing, in place."""
    check_kubeadm_expectations(kind)

    _upsert(existing.clusters, kind.clusters[0])
    _upsert(existing.users, kind.users[0])
    _upsert(existing.contexts, kind.contexts[0])

    existing.current_context = kind.current_context

    # some clients depend on apiVersion and kind being present
    if not existing.other_fields:
        existing.other_fields = kind.other_fields


def write_merged(kind_config: Config, explicit_config_path: str) -> None:
    """Merge kind_config into the kubeconfig kubectl would merge into.

    The current context is set to that of kind_config.
    """
    config_path = path_for_merge(explicit_config_path, _get_env)
    try:
        with locked(config_path):
            try:
                existing = read_config(config_path)
            except KubeconfigError as exc:
                raise KubeconfigError(f"failed to get kubeconfig to merge: {exc}") from exc
            merge(existing, kind_config)
            write_config(existing, config_path)
    except OSError as exc:
        raise KubeconfigError(f"failed to lock config file: {exc}") from exc


def remove(cfg: Config, kind_cluster_name: str) -> bool:
    """Drop the kind cluster's entries from cfg; return whether cfg changed."""
    key = kind_cluster_key(kind_cluster_name)

    clusters = [c for c in cfg.clusters if c.name != key]
    users = [u for u in cfg.users if u.name != key]
    contexts = [c for c in cfg.contexts if c.name != key]
    mutated = (
        len(clusters) != len(cfg.clusters)
        or len(users) != len(cfg.users)
        or len(contexts) != len(cfg.contexts)
    )
    cfg.clusters, cfg.users, cfg.contexts = clusters, users, contexts

    if cfg.current_context == key:
        cfg.current_context = ""
        mutated = True
    return mutated


def remove_kind(kind_cluster_name: str, explicit_path: str) -> None:
    """Remove the kind cluster from every kubeconfig file kubectl would consider."""
    for config_path in paths(explicit_path, _get_env):
        try:
            with locked(config_path):
                try:
                    existing = read_config(config_path)
                except KubeconfigError as exc:
                    raise KubeconfigError(
                        f"failed to read kubeconfig to remove KIND entry: {exc}"
                    ) from exc
                if remove(existing, kind_cluster_name):
                    write_config(existing, config_path)
        except OSError as exc:
            raise KubeconfigError(f"failed to lock config file: {exc}") from exc
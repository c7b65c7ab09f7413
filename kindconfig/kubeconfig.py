"""KUBECONFIG data model, decoding, encoding and kind-specific helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

import yaml

__all__ = [
    "KubeconfigError",
    "Cluster",
    "NamedCluster",
    "NamedUser",
    "Context",
    "NamedContext",
    "Config",
    "decode",
    "encode",
    "kind_cluster_key",
    "check_kubeadm_expectations",
    "kind_from_raw_kubeadm",
    "read_config",
]


class KubeconfigError(Exception):
    """Raised when a KUBECONFIG cannot be read, decoded or validated."""


@dataclass
class Cluster:
    """How to communicate with a Kubernetes cluster."""

    server: str = ""
    other_fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class NamedCluster:
    """A nickname and its cluster information."""

    name: str = ""
    cluster: Cluster = field(default_factory=Cluster)


@dataclass
class NamedUser:
    """A nickname and its user information, kept untouched."""

    name: str = ""
    user: dict[str, Any] = field(default_factory=dict)


@dataclass
class Context:
    """References to a cluster and a user, plus untouched extra fields."""

    cluster: str = ""
    user: str = ""
    other_fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class NamedContext:
    """A nickname and its context information."""

    name: str = ""
    context: Context = field(default_factory=Context)


@dataclass
class Config:
    """A KUBECONFIG; fields kind does not use are kept in other_fields."""

    clusters: list[NamedCluster] = field(default_factory=list)
    users: list[NamedUser] = field(default_factory=list)
    contexts: list[NamedContext] = field(default_factory=list)
    current_context: str = ""
    other_fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the plain mapping this config serialises to."""
        data: dict[str, Any] = dict(self.other_fields)
        if self.clusters:
            data["clusters"] = [_named_cluster_to_dict(c) for c in self.clusters]
        if self.users:
            data["users"] = [{"name": u.name, "user": dict(u.user)} for u in self.users]
        if self.contexts:
            data["contexts"] = [_named_context_to_dict(c) for c in self.contexts]
        if self.current_context:
            data["current-context"] = self.current_context
        return data


def _named_cluster_to_dict(named: NamedCluster) -> dict[str, Any]:
    cluster: dict[str, Any] = dict(named.cluster.other_fields)
    if named.cluster.server:
        cluster["server"] = named.cluster.server
    return {"name": named.name, "cluster": cluster}


def _named_context_to_dict(named: NamedContext) -> dict[str, Any]:
    context: dict[str, Any] = dict(named.context.other_fields)
    context["cluster"] = named.context.cluster
    context["user"] = named.context.user
    return {"name": named.name, "context": context}


def _as_str(value: Any, what: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise KubeconfigError(f"expected a scalar for {what}, got {type(value).__name__}")


def _as_mapping(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise KubeconfigError(f"expected a mapping for {what}, got {type(value).__name__}")
    return dict(value)


def _as_list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise KubeconfigError(f"expected a sequence for {what}, got {type(value).__name__}")
    return value


def _cluster_from(value: Any) -> NamedCluster:
    entry = _as_mapping(value, "cluster entry")
    body = _as_mapping(entry.get("cluster"), "cluster")
    server = _as_str(body.pop("server", None), "cluster server")
    return NamedCluster(
        name=_as_str(entry.get("name"), "cluster name"),
        cluster=Cluster(server=server, other_fields=body),
    )


def _user_from(value: Any) -> NamedUser:
    entry = _as_mapping(value, "user entry")
    return NamedUser(
        name=_as_str(entry.get("name"), "user name"),
        user=_as_mapping(entry.get("user"), "user"),
    )


def _context_from(value: Any) -> NamedContext:
    entry = _as_mapping(value, "context entry")
    body = _as_mapping(entry.get("context"), "context")
    cluster = _as_str(body.pop("cluster", None), "context cluster")
    user = _as_str(body.pop("user", None), "context user")
    return NamedContext(
        name=_as_str(entry.get("name"), "context name"),
        context=Context(cluster=cluster, user=user, other_fields=body),
    )


def decode(data: str | bytes) -> Config:
    """Decode KUBECONFIG YAML into a Config."""
    try:
        loaded = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise KubeconfigError(f"failed to decode KUBECONFIG: {exc}") from exc
    if loaded is None:
        return Config()
    raw = _as_mapping(loaded, "KUBECONFIG document")
    clusters = [_cluster_from(c) for c in _as_list(raw.pop("clusters", None), "clusters")]
    users = [_user_from(u) for u in _as_list(raw.pop("users", None), "users")]
    contexts = [_context_from(c) for c in _as_list(raw.pop("contexts", None), "contexts")]
    current = _as_str(raw.pop("current-context", None), "current-context")
    return Config(
        clusters=clusters,
        users=users,
        contexts=contexts,
        current_context=current,
        other_fields=raw,
    )


def encode(cfg: Config) -> str:
    """Encode cfg as normalised YAML; an empty config encodes to ''."""
    data = cfg.to_dict()
    if not data:
        return ""
    try:
        return yaml.safe_dump(
            data,
            default_flow_style=False,
            sort_keys=True,
            allow_unicode=True,
        )
    except yaml.YAMLError as exc:
        raise KubeconfigError(f"failed to encode KUBECONFIG: {exc}") from exc


def kind_cluster_key(cluster_name: str) -> str:
    """Return the key identifying a kind cluster in kubeconfig files."""
    return "kind-" + cluster_name


def check_kubeadm_expectations(cfg: Config) -> None:
    """Check that a kubeadm KUBECONFIG has exactly one cluster, user and context."""
    if len(cfg.clusters) != 1:
        raise KubeconfigError(
            f"kubeadm KUBECONFIG should have one cluster, but read {len(cfg.clusters)}"
        )
    if len(cfg.users) != 1:
        raise KubeconfigError(
            f"kubeadm KUBECONFIG should have one user, but read {len(cfg.users)}"
        )
    if len(cfg.contexts) != 1:
        raise KubeconfigError(
            f"kubeadm KUBECONFIG should have one context, but read {len(cfg.contexts)}"
        )


def kind_from_raw_kubeadm(
    raw_kubeadm_kubeconfig: str, cluster_name: str, server: str = ""
) -> Config:
    """Derive a kind kubeconfig from a raw kubeadm one.

    Every named reference is renamed to the kind cluster key, and the
    cluster server is replaced when server is non-empty.
    """
    cfg = decode(raw_kubeadm_kubeconfig)
    check_kubeadm_expectations(cfg)

    key = kind_cluster_key(cluster_name)
    cfg.clusters[0].name = key
    cfg.users[0].name = key
    cfg.contexts[0].name = key
    cfg.contexts[0].context.user = key
    cfg.contexts[0].context.cluster = key
    cfg.current_context = key

    if server:
        cfg.clusters[0].cluster.server = server
    return cfg


def read_config(config_path: str | os.PathLike[str]) -> Config:
    """Load a KUBECONFIG file, returning an empty Config if it does not exist."""
    try:
        with open(config_path, "rb") as handle:
            raw = handle.read()
    except FileNotFoundError:
        return Config()
    except OSError as exc:
        raise KubeconfigError(f"failed to read {os.fspath(config_path)}: {exc}") from exc
    return decode(raw)
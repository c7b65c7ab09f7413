# kindconfig

Helpers for the configuration files of local Kubernetes clusters.

## Kubeconfig handling

`kindconfig.kubeconfig` holds the data model (`Config`, `NamedCluster`,
`Cluster`, `NamedUser`, `NamedContext`, `Context`) and:

- `decode(data)` / `encode(cfg)` – read KUBECONFIG YAML into a `Config` and
  write it back with sorted keys. Fields that are not modelled are kept in
  `other_fields` and written back unchanged. An empty config encodes to `""`.
- `kind_from_raw_kubeadm(raw, cluster_name, server)` – take the admin
  kubeconfig written by kubeadm (exactly one cluster, user and context,
  checked by `check_kubeadm_expectations`) and rename every entry to
  `kind_cluster_key(cluster_name)`, i.e. `kind-<name>`. A non-empty `server`
  replaces the cluster's server address.
- `read_config(path)` – load a file, or an empty `Config` if it is missing.

Problems are raised as `KubeconfigError`.

`kindconfig.kubeconfig_paths` picks files the way kubectl does: an explicit
path, else the entries of `$KUBECONFIG` (empty and duplicate entries dropped),
else `$HOME/.kube/config` (`paths`, `path_for_merge`, `home_dir`). It also
provides a `<file>.lock` lock file, usable as the context manager `locked(path)`.

`kindconfig.kubeconfig_files` edits files under that lock:

- `write_merged(cfg, explicit_path)` inserts or replaces the cluster, user and
  context entries and sets the current context.
- `remove_kind(name, explicit_path)` removes the `kind-<name>` entries (and
  clears the current context if it pointed there) from every candidate file.
- `merge`, `remove` and `write_config` do the same on in-memory configs.

```python
from kindconfig.kubeconfig import encode, kind_from_raw_kubeadm
from kindconfig.kubeconfig_files import remove_kind, write_merged

with open("admin.conf") as fh:
    cfg = kind_from_raw_kubeadm(fh.read(), "dev", "https://127.0.0.1:6443")

print(encode(cfg))      # YAML for the "kind-dev" entry
write_merged(cfg, "")   # merge into $KUBECONFIG or ~/.kube/config
remove_kind("dev", "")  # and take it out again
```

## Patching

- `kindconfig.jsonpatch` – `decode_patch`, `apply_patch` (RFC 6902) and
  `merge_patch` (RFC 7386) on plain Python data; errors raise `JsonPatchError`.
- `kindconfig.tomlpatch` – `toml_patch(to_patch, patches, patches6902)` applies
  TOML merge patches, then JSON 6902 patches, and writes TOML with sorted keys
  and indented sub-tables (`dumps_toml`). Errors raise `TomlPatchError`.
- `kindconfig.kubeyaml` – `kube_yaml(to_patch, patches, patches6902)` patches a
  YAML document stream. Patches apply to documents whose `kind` matches and,
  when the patch sets one, whose `apiVersion` matches. JSON 6902 patches are
  given as `PatchJSON6902(group, version, kind, patch)`. Errors raise `PatchError`.

```python
from kindconfig.tomlpatch import toml_patch

out = toml_patch('disabled_plugins = ["restart"]', ["disabled_plugins = []"], [])
```

```python
from kindconfig.kubeyaml import PatchJSON6902, kube_yaml

patched = kube_yaml(
    "kind: ClusterConfiguration\napiVersion: kubeadm.k8s.io/v1beta2\n",
    ["kind: ClusterConfiguration\nclusterName: dev\n"],
    [PatchJSON6902(group="kubeadm.k8s.io", version="v1beta2",
                   kind="ClusterConfiguration",
                   patch='[{"op": "add", "path": "/networking", "value": {}}]')],
)
```

## Load balancer config

`kindconfig.loadbalancer.config(ConfigData(...))` renders an HAProxy
configuration for the control-plane endpoint, with backend servers ordered by
name. `IMAGE` and `CONFIG_PATH` name the load balancer image and where its
config file lives.

```python
from kindconfig.loadbalancer import ConfigData, config

print(config(ConfigData(control_plane_port=6443,
                        backend_servers={"cp1": "10.0.0.2:6443"})))
```

## Log archives

`kindconfig.logs.untar(stream, directory)` unpacks a tar stream into a
directory. Regular files and directories are written; other entry types are
skipped with a warning on the `kindconfig.logs` logger.

## What this package does not do

It does not talk to cluster nodes or containers. Getting the admin
kubeconfig, the API server endpoint or a log archive off a node is left to
the caller; the functions here work on text, files and streams you supply.
There is no command-line tool.

## Installation and tests

Install with pip from the project directory; the `test` extra adds pytest,
which runs the suite in `tests/`.
import pytest
import yaml

from kindconfig.kubeyaml import (
    Json6902Patch,
    MatchInfo,
    MergePatch,
    PatchError,
    PatchJSON6902,
    Resource,
    convert_json6902_patches,
    group_version_to_api_version,
    kube_yaml,
    parse_match_info,
    parse_merge_patches,
    parse_resources,
    split_yaml_documents,
)

CLUSTER_CONFIG = """apiVersion: kubeadm.k8s.io/v1beta2
kind: ClusterConfiguration
kubernetesVersion: v1.21.1
networking:
  serviceSubnet: 10.96.0.0/16
"""

INIT_CONFIG = """apiVersion: kubeadm.k8s.io/v1beta2
kind: InitConfiguration
nodeRegistration:
  criSocket: /run/containerd/containerd.sock
"""

STREAM = CLUSTER_CONFIG + "---\n" + INIT_CONFIG


def _docs(text):
    return [yaml.safe_load(doc) for doc in text.split("---\n")]


def test_no_patches_round_trips_sorted_stream():
    assert kube_yaml(STREAM, [], []) == STREAM


def test_merge_patch_applies_to_matching_kind_only():
    patch = "kind: ClusterConfiguration\nnetworking:\n  podSubnet: 10.244.0.0/16\n"
    cluster, init = _docs(kube_yaml(STREAM, [patch], []))
    assert cluster["networking"] == {
        "serviceSubnet": "10.96.0.0/16",
        "podSubnet": "10.244.0.0/16",
    }
    assert init == yaml.safe_load(INIT_CONFIG)


def test_merge_patch_with_other_api_version_is_ignored():
    patch = (
        "apiVersion: kubeadm.k8s.io/v1beta3\n"
        "kind: ClusterConfiguration\n"
        "kubernetesVersion: v9.9.9\n"
    )
    assert kube_yaml(STREAM, [patch], []) == STREAM


def test_merge_patch_null_removes_key():
    patch = "kind: ClusterConfiguration\nkubernetesVersion: null\n"
    cluster, _ = _docs(kube_yaml(STREAM, [patch]))
    assert "kubernetesVersion" not in cluster
    assert cluster["kind"] == "ClusterConfiguration"


def test_merge_patch_stream_is_split():
    patches = [
        "kind: ClusterConfiguration\nkubernetesVersion: v1.20.0\n"
        "---\n"
        "kind: InitConfiguration\nnodeRegistration:\n  name: node-a\n"
    ]
    cluster, init = _docs(kube_yaml(STREAM, patches))
    assert cluster["kubernetesVersion"] == "v1.20.0"
    assert init["nodeRegistration"]["name"] == "node-a"


def test_json6902_patch_applies_with_group_version():
    patch = PatchJSON6902(
        group="kubeadm.k8s.io",
        version="v1beta2",
        kind="ClusterConfiguration",
        patch='- op: add\n  path: /networking/podSubnet\n  value: "10.244.0.0/16"\n',
    )
    cluster, init = _docs(kube_yaml(STREAM, [], [patch]))
    assert cluster["networking"]["podSubnet"] == "10.244.0.0/16"
    assert init == yaml.safe_load(INIT_CONFIG)


def test_json6902_patch_with_other_version_is_ignored():
    patch = PatchJSON6902(
        group="kubeadm.k8s.io",
        version="v1beta3",
        kind="ClusterConfiguration",
        patch='[{"op": "remove", "path": "/networking"}]',
    )
    assert kube_yaml(STREAM, [], [patch]) == STREAM


def test_json6902_patch_bad_path_raises():
    patch = PatchJSON6902(
        group="kubeadm.k8s.io",
        version="v1beta2",
        kind="ClusterConfiguration",
        patch='[{"op": "remove", "path": "/fooooooo"}]',
    )
    with pytest.raises(PatchError, match="failed to apply JSON 6902 patch"):
        kube_yaml(STREAM, [], [patch])


def test_json6902_patch_not_a_list_raises():
    patch = PatchJSON6902(kind="ClusterConfiguration", patch="op: add\n")
    with pytest.raises(PatchError, match="failed to parse JSON 6902 patches"):
        kube_yaml(STREAM, [], [patch])


def test_invalid_yaml_to_patch_raises():
    with pytest.raises(PatchError, match="failed to parse yaml to patch"):
        kube_yaml("a: [", [], [])


def test_invalid_merge_patch_raises():
    with pytest.raises(PatchError, match="failed to parse patches"):
        kube_yaml(STREAM, ["kind: [unclosed"], [])


def test_split_documents():
    assert split_yaml_documents("a: 1\n---\nb: 2\n") == ["a: 1", "b: 2\n"]


def test_split_trailing_separator():
    assert split_yaml_documents("a: 1\n---") == ["a: 1"]


def test_split_without_separator_and_empty():
    assert split_yaml_documents("a: 1\n") == ["a: 1\n"]
    assert split_yaml_documents("") == []


def test_split_separator_line_rest_is_discarded():
    assert split_yaml_documents("a: 1\n--- ignored\nb: 2") == ["a: 1", "b: 2"]


def test_parse_match_info():
    info = parse_match_info(CLUSTER_CONFIG)
    assert info == MatchInfo(kind="ClusterConfiguration", api_version="kubeadm.k8s.io/v1beta2")
    assert parse_match_info("") == MatchInfo()


@pytest.mark.parametrize("raw", ["a: [", "- a\n- b\n", "kind: 3\n"])
def test_parse_match_info_errors(raw):
    with pytest.raises(PatchError):
        parse_match_info(raw)


def test_parse_resources_keeps_timestamps_as_strings():
    (resource,) = parse_resources("kind: Foo\ncreated: 2020-01-01\n")
    assert resource.data["created"] == "2020-01-01"
    assert resource.match_info.kind == "Foo"


def test_parse_merge_patches_splits_streams():
    patches = parse_merge_patches(["kind: A\n---\nkind: B\n", "kind: C\n"])
    assert [p.match_info.kind for p in patches] == ["A", "B", "C"]


def test_convert_json6902_patches():
    (converted,) = convert_json6902_patches(
        [PatchJSON6902(group="", version="v1", kind="Pod", patch="- op: remove\n  path: /spec\n")]
    )
    assert converted.match_info == MatchInfo(kind="Pod", api_version="v1")
    assert converted.operations == [{"op": "remove", "path": "/spec"}]


def test_group_version_to_api_version():
    assert group_version_to_api_version("", "v1") == "v1"
    assert group_version_to_api_version("apps", "v1") == "apps/v1"


def test_resource_matches():
    resource = Resource(raw="", data={}, match_info=MatchInfo(kind="Pod", api_version="v1"))
    assert resource.matches(MatchInfo(kind="Pod"))
    assert resource.matches(MatchInfo(kind="Pod", api_version="v1"))
    assert not resource.matches(MatchInfo(kind="Pod", api_version="v2"))
    assert not resource.matches(MatchInfo(kind="Service"))


def test_resource_non_matching_merge_patch_leaves_data():
    resource = Resource(raw="", data={"kind": "Pod", "x": 1}, match_info=MatchInfo(kind="Pod"))
    patch = MergePatch(raw="", data={"kind": "Service", "x": 2}, match_info=MatchInfo(kind="Service"))
    assert resource.apply_merge_patch(patch) is False
    assert resource.data == {"kind": "Pod", "x": 1}


def test_resource_matching_6902_patch_mutates():
    resource = Resource(raw="", data={"kind": "Pod", "x": 1}, match_info=MatchInfo(kind="Pod"))
    patch = Json6902Patch(
        raw="",
        operations=[{"op": "replace", "path": "/x", "value": 2}],
        match_info=MatchInfo(kind="Pod"),
    )
    assert resource.apply_6902_patch(patch) is True
    assert resource.data == {"kind": "Pod", "x": 2}


def test_resource_encode_sorts_keys():
    resource = Resource(raw="", data={"zeta": 1, "alpha": 2}, match_info=MatchInfo())
    encoded = resource.encode()
    assert yaml.safe_load(encoded) == {"zeta": 1, "alpha": 2}
    assert encoded.index("alpha") < encoded.index("zeta")


def test_resource_encode_null():
    assert Resource(raw="", data=None).encode() == "null\n"
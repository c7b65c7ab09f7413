import pytest

from kindconfig.jsonpatch import JsonPatchError, apply_patch, decode_patch, merge_patch


def test_decode_patch_returns_operations():
    raw = '[{"op": "remove", "path": "/a"}, {"op": "add", "path": "/b", "value": 1}]'
    assert decode_patch(raw) == [
        {"op": "remove", "path": "/a"},
        {"op": "add", "path": "/b", "value": 1},
    ]


def test_decode_patch_accepts_bytes():
    assert decode_patch(b'[{"op": "remove", "path": "/x"}]') == [{"op": "remove", "path": "/x"}]


@pytest.mark.parametrize("raw", ["🏰", '{"op": "add"}', "[1, 2]", "[", ""])
def test_decode_patch_rejects_invalid(raw):
    with pytest.raises(JsonPatchError):
        decode_patch(raw)


def test_add_to_object_leaves_original_untouched():
    doc = {"foo": "bar"}
    value = "qux"
    result = apply_patch([{"op": "add", "path": "/baz", "value": value}], doc)
    assert result == {**doc, "baz": value}
    assert "baz" not in doc


def test_add_into_array_inserts_and_appends():
    doc = {"foo": ["bar", "baz"]}
    inserted = apply_patch([{"op": "add", "path": "/foo/1", "value": "qux"}], doc)
    assert inserted["foo"][1] == "qux"
    assert inserted["foo"][0] == doc["foo"][0]
    assert inserted["foo"][2] == doc["foo"][1]
    appended = apply_patch([{"op": "add", "path": "/foo/-", "value": "end"}], doc)
    assert appended["foo"] == doc["foo"] + ["end"]


def test_add_past_end_of_array_fails():
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "add", "path": "/foo/5", "value": 1}], {"foo": [1]})


def test_add_then_remove_round_trips():
    doc = {"a": {"b": [1, 2, 3]}}
    ops = [
        {"op": "add", "path": "/a/c", "value": {"nested": True}},
        {"op": "remove", "path": "/a/c"},
    ]
    assert apply_patch(ops, doc) == doc


def test_add_with_missing_parent_fails():
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "add", "path": "/missing/child", "value": 1}], {})


def test_remove_missing_key_fails():
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "remove", "path": "/fooooooo"}], {"foo": 1})


def test_remove_out_of_range_index_fails():
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "remove", "path": "/list/3"}], {"list": [1, 2, 3]})


def test_remove_negative_index_counts_from_end():
    doc = {"list": [1, 2, 3]}
    assert apply_patch([{"op": "remove", "path": "/list/-1"}], doc) == {"list": doc["list"][:-1]}


def test_remove_root_fails():
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "remove", "path": ""}], {"a": 1})


def test_replace_existing_value():
    doc = {"a": 1, "b": [1, 2]}
    result = apply_patch(
        [
            {"op": "replace", "path": "/a", "value": "two"},
            {"op": "replace", "path": "/b/0", "value": None},
        ],
        doc,
    )
    assert result["a"] == "two"
    assert result["b"][0] is None
    assert result["b"][1] == doc["b"][1]


def test_replace_missing_key_fails():
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "replace", "path": "/nope", "value": 1}], {"a": 1})


def test_replace_root():
    value = ["whole", "new", "document"]
    assert apply_patch([{"op": "replace", "path": "", "value": value}], {"a": 1}) == value


def test_move_relocates_value():
    doc = {"src": {"x": 1}, "dst": {}}
    result = apply_patch([{"op": "move", "from": "/src/x", "path": "/dst/y"}], doc)
    assert "x" not in result["src"]
    assert result["dst"]["y"] == doc["src"]["x"]


def test_move_into_own_child_fails():
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "move", "from": "/a", "path": "/a/b"}], {"a": {"b": 1}})


def test_copy_duplicates_value_independently():
    doc = {"a": {"list": [1]}}
    result = apply_patch(
        [
            {"op": "copy", "from": "/a", "path": "/b"},
            {"op": "add", "path": "/b/list/-", "value": 2},
        ],
        doc,
    )
    assert result["a"] == doc["a"]
    assert result["b"]["list"] == doc["a"]["list"] + [2]


def test_test_operation_passes_and_fails():
    doc = {"a": [1, {"b": "c"}]}
    assert apply_patch([{"op": "test", "path": "/a", "value": [1, {"b": "c"}]}], doc) == doc
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "test", "path": "/a/0", "value": 2}], doc)


def test_test_operation_distinguishes_bool_from_number():
    with pytest.raises(JsonPatchError):
        apply_patch([{"op": "test", "path": "/flag", "value": 1}], {"flag": True})


def test_escaped_pointer_tokens():
    doc = {"a/b": 1, "m~n": 2}
    result = apply_patch(
        [
            {"op": "remove", "path": "/a~1b"},
            {"op": "remove", "path": "/m~0n"},
        ],
        doc,
    )
    assert result == {}


@pytest.mark.parametrize(
    "operation",
    [
        {"op": "frobnicate", "path": "/a"},
        {"path": "/a"},
        {"op": "add", "path": "/a"},
        {"op": "add", "path": "a", "value": 1},
        {"op": "remove"},
    ],
)
def test_malformed_operations_fail(operation):
    with pytest.raises(JsonPatchError):
        apply_patch([operation], {"a": 1})


def test_merge_patch_removes_null_and_merges_nested():
    original = {"a": "b", "c": {"d": "e", "f": "g"}}
    patch = {"a": "z", "c": {"f": None}}
    result = merge_patch(original, patch)
    assert result["a"] == patch["a"]
    assert result["c"] == {"d": original["c"]["d"]}
    assert original["c"]["f"] == "g"


def test_merge_patch_non_object_replaces():
    assert merge_patch({"a": 1}, ["x"]) == ["x"]
    assert merge_patch({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}


def test_merge_patch_into_non_object_prunes_nulls():
    assert merge_patch("scalar", {"a": {"b": None, "c": 1}}) == {"a": {"c": 1}}


def test_merge_patch_empty_patch_is_identity():
    original = {"a": {"b": [1, 2]}}
    assert merge_patch(original, {}) == original
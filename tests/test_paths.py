"""Tests for dotted-path helpers."""

from docguard.schema.paths import (
    MISSING,
    delete_path,
    expand,
    generic,
    get_path,
    is_ancestor,
    iter_nodes,
    join,
    parent,
    set_path,
)


# =============================================================================
# Path strings
# =============================================================================


class TestPathStrings:
    def test_join(self):
        assert join("", "title") == "title"
        assert join("context", "userId") == "context.userId"
        assert join("tags", 0) == "tags.0"

    def test_parent(self):
        assert parent("context.userId") == "context"
        assert parent("title") == ""

    def test_generic_replaces_indexes(self):
        assert generic("tags.0.name") == "tags.$.name"
        assert generic("title") == "title"

    def test_is_ancestor(self):
        assert is_ancestor("context", "context.userId")
        assert not is_ancestor("context", "contextual")
        assert not is_ancestor("context", "context")


# =============================================================================
# Reading and writing
# =============================================================================


class TestGetPath:
    def test_nested_value(self):
        assert get_path({"a": {"b": 1}}, "a.b") == 1

    def test_missing_key(self):
        assert get_path({"a": {}}, "a.b") is MISSING

    def test_array_index(self):
        assert get_path({"tags": ["x", "y"]}, "tags.1") == "y"
        assert get_path({"tags": ["x"]}, "tags.3") is MISSING

    def test_through_scalar(self):
        assert get_path({"a": 5}, "a.b") is MISSING

    def test_none_is_a_value(self):
        assert get_path({"a": None}, "a") is None

    def test_missing_is_falsy(self):
        assert not MISSING
        assert repr(MISSING) == "MISSING"


class TestSetPath:
    def test_creates_intermediate_objects(self):
        doc = {}
        set_path(doc, "context.userId", "u1")
        assert doc == {"context": {"userId": "u1"}}

    def test_replaces_scalar_parent(self):
        doc = {"context": 1}
        set_path(doc, "context.userId", "u1")
        assert doc == {"context": {"userId": "u1"}}

    def test_sets_array_element(self):
        doc = {"tags": [{"name": "a"}]}
        set_path(doc, "tags.0.name", "b")
        assert doc == {"tags": [{"name": "b"}]}


class TestDeletePath:
    def test_deletes_nested_key(self):
        doc = {"a": {"b": 1, "c": 2}}
        delete_path(doc, "a.b")
        assert doc == {"a": {"c": 2}}

    def test_missing_key_is_ignored(self):
        doc = {"a": 1}
        delete_path(doc, "b.c")
        assert doc == {"a": 1}


# =============================================================================
# Traversal
# =============================================================================


class TestIterNodes:
    def test_depth_first(self):
        nodes = list(iter_nodes({"a": {"b": 1}, "c": [2]}))
        assert nodes == [
            ("a", {"b": 1}),
            ("a.b", 1),
            ("c", [2]),
            ("c.0", 2),
        ]


class TestExpand:
    def test_array_elements(self):
        doc = {"tags": [{}, {}]}
        assert expand(doc, "tags.$.name") == ["tags.0.name", "tags.1.name"]

    def test_leaf_need_not_exist(self):
        assert expand({}, "title") == ["title"]

    def test_missing_parent_yields_nothing(self):
        assert expand({}, "address.city") == []
        assert expand({"address": {}}, "address.city") == ["address.city"]

"""Tests for modifier and selector helpers."""

import pytest

from docguard.errors import InvalidModifierError
from docguard.modifier import (
    doc_id_from_selector,
    inject,
    is_empty,
    lookup,
    normalize_modifier,
    normalize_selector,
    prune,
    selector_fields,
    virtual_document,
)
from docguard.schema.paths import MISSING


# =============================================================================
# normalize_modifier
# =============================================================================


class TestNormalizeModifier:
    def test_expands_aliases(self):
        assert normalize_modifier({"set": {"a": 1}, "unset": {"b": ""}}) == {
            "$set": {"a": 1},
            "$unset": {"b": ""},
        }

    def test_merges_alias_and_operator(self):
        result = normalize_modifier({"set": {"a": 1}, "$set": {"b": 2}})
        assert result == {"$set": {"a": 1, "b": 2}}

    def test_returns_deep_copy(self):
        original = {"$set": {"context": {"userId": "u1"}}}
        result = normalize_modifier(original)
        result["$set"]["context"]["userId"] = "u2"
        assert original["$set"]["context"]["userId"] == "u1"

    def test_other_operators_pass_through(self):
        assert normalize_modifier({"$inc": {"copies": 1}}) == {"$inc": {"copies": 1}}

    @pytest.mark.parametrize(
        "modifier",
        [None, {}, [("$set", {})], {"title": "x"}, {"$set": ["title"]}],
    )
    def test_rejects_non_operator_payloads(self, modifier):
        with pytest.raises(InvalidModifierError):
            normalize_modifier(modifier)


class TestEmptiness:
    def test_is_empty(self):
        assert is_empty({"$set": {}, "$unset": {}})
        assert not is_empty({"$set": {}, "$unset": {"a": ""}})

    def test_prune_drops_empty_operators(self):
        assert prune({"$set": {}, "$unset": {"a": ""}}) == {"$unset": {"a": ""}}


# =============================================================================
# Selectors
# =============================================================================


class TestSelectors:
    def test_bare_value_is_id(self):
        assert normalize_selector("abc") == {"_id": "abc"}
        assert normalize_selector(None) == {}

    def test_selector_fields_collects_equalities(self):
        selector = {
            "title": "Ulysses",
            "copies": {"$gt": 1},
            "author": {"$eq": "James Joyce"},
        }
        assert selector_fields(selector) == {"title": "Ulysses", "author": "James Joyce"}

    def test_selector_fields_reads_and_clauses(self):
        selector = {"$and": [{"title": "Ulysses"}, {"author": "James Joyce"}]}
        assert selector_fields(selector) == {"title": "Ulysses", "author": "James Joyce"}

    def test_selector_fields_ignores_or(self):
        assert selector_fields({"$or": [{"title": "a"}, {"title": "b"}]}) == {}

    def test_doc_id_from_selector(self):
        assert doc_id_from_selector("abc") == "abc"
        assert doc_id_from_selector({"_id": "abc", "title": "x"}) == "abc"
        assert doc_id_from_selector({"title": "x"}) is None

    def test_virtual_document(self):
        doc = virtual_document(
            {"title": "Ulysses", "type": "simple"},
            {
                "$setOnInsert": {"copies": 0, "type": "variant"},
                "$set": {"copies": 1, "context.userId": "u1"},
            },
        )
        assert doc == {
            "title": "Ulysses",
            "type": "variant",
            "copies": 1,
            "context": {"userId": "u1"},
        }


# =============================================================================
# lookup / inject
# =============================================================================


class TestLookup:
    def test_direct_key(self):
        assert lookup({"$set": {"title": "x"}}, "title") == "x"

    def test_inside_set_object(self):
        modifier = {"$set": {"context": {"userId": "u1"}}}
        assert lookup(modifier, "context.userId") == "u1"

    def test_missing(self):
        assert lookup({"$set": {"title": "x"}}, "author") is MISSING
        assert lookup({"$unset": {"title": ""}}, "title") is MISSING

    def test_set_on_insert(self):
        assert lookup({"$setOnInsert": {"copies": 0}}, "copies") == 0


class TestInject:
    def test_adds_key(self):
        modifier = {"$set": {"title": "x"}}
        inject(modifier, "$set", "updatedAt", 1)
        assert modifier == {"$set": {"title": "x", "updatedAt": 1}}

    def test_nests_into_set_object(self):
        modifier = {"$set": {"context": {}}}
        inject(modifier, "$set", "context.isUpdate", True)
        assert modifier == {"$set": {"context": {"isUpdate": True}}}

    def test_set_removes_pending_unset(self):
        modifier = {"$unset": {"updatedAt": ""}}
        inject(modifier, "$set", "updatedAt", 1)
        assert modifier["$set"] == {"updatedAt": 1}
        assert "updatedAt" not in modifier["$unset"]

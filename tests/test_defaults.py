"""End-to-end scenarios for default values."""

import pytest

from docguard import MemoryStore, SchemaCollection, rule_set_from_dict


@pytest.fixture
def default_values():
    collection = SchemaCollection("dv", MemoryStore())
    collection.attach_schema(rule_set_from_dict({
        "bool1": {"type": bool, "defaultValue": False},
    }))
    return collection


class TestDefaultValues:
    @pytest.mark.asyncio
    async def test_applied_on_insert(self, default_values):
        doc_id = await default_values.insert({})
        assert (await default_values.find_one(doc_id))["bool1"] is False

    @pytest.mark.asyncio
    async def test_do_not_override_given_value(self, default_values):
        doc_id = await default_values.insert({"bool1": True})
        assert (await default_values.find_one(doc_id))["bool1"] is True

    @pytest.mark.asyncio
    async def test_do_not_interfere_with_update(self, default_values):
        doc_id = await default_values.insert({})

        await default_values.update(doc_id, {"$set": {"bool1": True}})

        assert (await default_values.find_one(doc_id))["bool1"] is True

    @pytest.mark.asyncio
    async def test_unset_of_defaulted_required_field_allowed(self, default_values):
        doc_id = await default_values.insert({})

        await default_values.update(doc_id, {"$unset": {"bool1": ""}})

        assert "bool1" not in await default_values.find_one(doc_id)

    @pytest.mark.asyncio
    async def test_auto_value_wins_over_default(self):
        collection = SchemaCollection("dv2", MemoryStore())
        collection.attach_schema(rule_set_from_dict({
            "status": {
                "type": str,
                "defaultValue": "draft",
                "autoValue": lambda ctx: "imported" if ctx.extra.get("imported") else None,
            },
        }))

        plain = await collection.insert({})
        imported = await collection.insert({}, extra={"imported": True})

        assert (await collection.find_one(plain))["status"] == "draft"
        assert (await collection.find_one(imported))["status"] == "imported"

    @pytest.mark.asyncio
    async def test_upsert_defaults_only_on_insert(self):
        collection = SchemaCollection("dv3", MemoryStore())
        collection.attach_schema(rule_set_from_dict({
            "name": str,
            "bool1": {"type": bool, "defaultValue": False},
        }))

        result = await collection.upsert({"name": "a"}, {"$set": {"name": "a"}})
        assert (await collection.find_one(result.inserted_id))["bool1"] is False

        await collection.update({"name": "a"}, {"$set": {"bool1": True}})
        second = await collection.upsert({"name": "a"}, {"$set": {"name": "a"}})

        assert second.inserted_id is None
        assert (await collection.find_one({"name": "a"}))["bool1"] is True

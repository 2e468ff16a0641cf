"""Tests for the SchemaCollection facade."""

import pytest

from docguard import (
    Caller,
    FieldValidationError,
    InterceptorAbortError,
    InterceptorRegistry,
    MemoryStore,
    SchemaCollection,
    Settings,
    ValidationContextStore,
    interceptor,
    rule_set_from_dict,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_registries():
    """Clear process-wide registries before and after each test."""
    ValidationContextStore.clear()
    InterceptorRegistry.clear()
    yield
    ValidationContextStore.clear()
    InterceptorRegistry.clear()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def books(store):
    collection = SchemaCollection("books", store)
    collection.attach_schema(rule_set_from_dict({
        "title": str,
        "copies": {"type": int, "min": 0},
        "archived": {"type": bool, "optional": True},
    }))
    return collection


# =============================================================================
# Schemas
# =============================================================================


class TestSchemaLookup:
    def test_no_schema_attached(self, store):
        collection = SchemaCollection("loose", store)

        assert collection.schema() is None
        assert collection.schema({"a": 1}) is None
        assert collection.guards == []

    def test_combined_schema(self, books):
        combined = books.schema()

        assert combined.keys() == ["title", "copies", "archived"]
        assert books.guards == [None]

    def test_detach(self, books):
        assert books.detach_schema() == 1
        assert books.schema() is None
        assert books.detach_schema() == 0

    def test_detach_only_matching_selector(self, store):
        collection = SchemaCollection("products", store)
        collection.attach_schema(rule_set_from_dict({"a": str}), selector={"type": "a"})
        collection.attach_schema(rule_set_from_dict({"b": str}), selector={"type": "b"})

        assert collection.detach_schema({"type": "a"}) == 1
        assert collection.guards == [{"type": "b"}]

    def test_replace_drops_previous_bindings(self, books):
        books.attach_schema(rule_set_from_dict({"name": str}), replace=True)

        assert books.schema().keys() == ["name"]


# =============================================================================
# Pass-through
# =============================================================================


class TestWithoutSchema:
    @pytest.mark.asyncio
    async def test_mutations_forward_raw(self, store):
        collection = SchemaCollection("loose", store)

        doc_id = await collection.insert({"anything": "  goes  ", "n": "1"})
        updated = await collection.update(doc_id, {"$set": {"extra": True}})

        assert updated == 1
        assert await collection.find_one(doc_id) == {
            "_id": doc_id,
            "anything": "  goes  ",
            "n": "1",
            "extra": True,
        }

    @pytest.mark.asyncio
    async def test_bypass_skips_pipeline(self, books):
        doc_id = await books.insert({"title": "  Ulysses  ", "bogus": 1}, bypass=True)

        doc = await books.find_one(doc_id)
        assert doc["title"] == "  Ulysses  "
        assert doc["bogus"] == 1


# =============================================================================
# Validation contexts
# =============================================================================


class TestValidationContexts:
    @pytest.mark.asyncio
    async def test_default_context(self, books):
        with pytest.raises(FieldValidationError):
            await books.insert({"title": "Ulysses", "copies": -1})

        context = books.validation_context()
        assert context.name == "default"
        assert context.key_is_invalid("copies")

    @pytest.mark.asyncio
    async def test_named_context(self, books):
        with pytest.raises(FieldValidationError) as exc_info:
            await books.insert({"copies": 1}, validation_context="form")

        assert exc_info.value.validation_context == "form"
        assert books.validation_context("form").key_is_invalid("title")
        assert books.validation_context().is_valid()

    @pytest.mark.asyncio
    async def test_settings_default_context(self, store):
        collection = SchemaCollection(
            "books", store, Settings(default_context="backend")
        )
        collection.attach_schema(rule_set_from_dict({"title": str}))

        with pytest.raises(FieldValidationError):
            await collection.insert({})

        assert collection.validation_context().name == "backend"
        assert collection.validation_context().key_is_invalid("title")
        assert ValidationContextStore.names("books") == ["backend"]

    @pytest.mark.asyncio
    async def test_success_resets_context(self, books):
        with pytest.raises(FieldValidationError):
            await books.insert({"title": "Ulysses"})
        assert not books.validation_context().is_valid()

        await books.insert({"title": "Ulysses", "copies": 2})

        assert books.validation_context().is_valid()


# =============================================================================
# Interceptors
# =============================================================================


class TestInterceptors:
    @pytest.mark.asyncio
    async def test_abort_leaves_store_untouched(self, books, store):
        @interceptor("rejectArchived")
        def reject_archived(state):
            if state.payload.get("archived"):
                return "Archived books are read-only"
            return None

        books.add_interceptor("rejectArchived")

        with pytest.raises(InterceptorAbortError) as exc_info:
            await books.insert({"title": "Ulysses", "copies": 1, "archived": True})

        assert exc_info.value.interceptor == "rejectArchived"
        assert len(store) == 0

        await books.insert({"title": "Ulysses", "copies": 1})
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_on_filters_operations(self, books):
        seen = []

        @interceptor("audit")
        def audit(state):
            seen.append(state.kind.value)
            return None

        books.add_interceptor("audit", on=["update"])

        doc_id = await books.insert({"title": "Ulysses", "copies": 1})
        await books.update(doc_id, {"$set": {"copies": 2}})

        assert seen == ["update"]

    @pytest.mark.asyncio
    async def test_sees_cleaned_payload(self, books):
        payloads = []

        @interceptor("capture")
        def capture(state):
            payloads.append(state.payload)
            return None

        books.add_interceptor("capture")
        await books.insert({"title": " Ulysses ", "copies": "3", "bogus": 1})

        assert payloads == [{"title": "Ulysses", "copies": 3}]


# =============================================================================
# Callers
# =============================================================================


class TestCallers:
    @pytest.mark.asyncio
    async def test_untrusted_caller_cannot_skip_validation(self, books):
        with pytest.raises(FieldValidationError):
            await books.insert(
                {"title": "Ulysses"}, caller=Caller("U001", trusted=False), validate=False
            )

    @pytest.mark.asyncio
    async def test_untrusted_caller_cannot_bypass(self, books, store):
        untrusted = Caller("U001", trusted=False)

        with pytest.raises(FieldValidationError):
            await books.insert(
                {"copies": "not a number", "evil": 1}, caller=untrusted, bypass=True
            )
        assert len(store) == 0

        doc_id = await books.insert({"title": "Ulysses", "copies": 1})
        with pytest.raises(FieldValidationError):
            await books.update(
                doc_id, {"$set": {"copies": -5}}, caller=untrusted, bypass=True
            )
        assert (await books.find_one(doc_id))["copies"] == 1

    @pytest.mark.asyncio
    async def test_trusted_caller_skips_validation(self, books):
        doc_id = await books.insert({"title": "Ulysses"}, validate=False)

        assert await books.find_one(doc_id) == {"_id": doc_id, "title": "Ulysses"}

    @pytest.mark.asyncio
    async def test_unknown_option(self, books):
        with pytest.raises(ValueError, match="Unknown mutation option"):
            await books.insert({"title": "Ulysses", "copies": 1}, bogus=True)

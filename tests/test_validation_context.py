"""Tests for named validation contexts."""

import pytest

from docguard.validation import (
    DEFAULT_CONTEXT,
    ErrorType,
    FieldError,
    NamedValidationContext,
    ValidationContextStore,
)


@pytest.fixture(autouse=True)
def clear_contexts():
    """Clear validation contexts before and after each test."""
    ValidationContextStore.clear()
    yield
    ValidationContextStore.clear()


COPIES_REQUIRED = FieldError(
    name="copies", type=ErrorType.REQUIRED, message="Number of copies is required"
)
TITLE_TYPE = FieldError(name="title", type=ErrorType.TYPE, message="Title must be of type String")


class TestValidationContextStore:
    def test_unknown_context_is_empty(self):
        assert ValidationContextStore.errors("books") == []
        assert ValidationContextStore.context("books").is_valid()

    def test_record_replaces(self):
        ValidationContextStore.record("books", DEFAULT_CONTEXT, [COPIES_REQUIRED, TITLE_TYPE])
        ValidationContextStore.record("books", DEFAULT_CONTEXT, [TITLE_TYPE])

        assert ValidationContextStore.errors("books") == [TITLE_TYPE]

    def test_names_are_independent(self):
        ValidationContextStore.record("books", "form", [COPIES_REQUIRED])
        ValidationContextStore.record("books", DEFAULT_CONTEXT, [])

        assert ValidationContextStore.errors("books", "form") == [COPIES_REQUIRED]
        assert ValidationContextStore.names("books") == ["default", "form"]

    def test_collections_are_independent(self):
        ValidationContextStore.record("books", DEFAULT_CONTEXT, [COPIES_REQUIRED])
        assert ValidationContextStore.errors("authors") == []

    def test_recorded_errors_are_a_snapshot(self):
        errors = [COPIES_REQUIRED]
        ValidationContextStore.record("books", DEFAULT_CONTEXT, errors)
        errors.append(TITLE_TYPE)

        assert ValidationContextStore.errors("books") == [COPIES_REQUIRED]


class TestNamedValidationContext:
    def test_handle_reflects_latest_record(self):
        ctx = ValidationContextStore.context("books", "form")
        assert ctx.is_valid()

        ValidationContextStore.record("books", "form", [COPIES_REQUIRED])

        assert not ctx.is_valid()
        assert ctx.errors() == [COPIES_REQUIRED]

    def test_key_helpers(self):
        ValidationContextStore.record("books", DEFAULT_CONTEXT, [COPIES_REQUIRED])
        ctx = NamedValidationContext("books")

        assert ctx.key_is_invalid("copies")
        assert not ctx.key_is_invalid("title")
        assert ctx.key_error_message("copies") == "Number of copies is required"
        assert ctx.key_error_message("title") == ""
        assert ctx.invalid_keys() == [
            {"name": "copies", "type": "required", "message": "Number of copies is required"}
        ]

    def test_reset(self):
        ValidationContextStore.record("books", DEFAULT_CONTEXT, [COPIES_REQUIRED])
        ctx = NamedValidationContext("books")

        ctx.reset()

        assert ctx.is_valid()

    def test_repr(self):
        ValidationContextStore.record("books", "form", [COPIES_REQUIRED])
        assert repr(NamedValidationContext("books", "form")) == (
            "NamedValidationContext('books', 'form', errors=1)"
        )

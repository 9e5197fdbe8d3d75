"""Tests for per-filetype schema validation.

PYTEST_DONT_REWRITE: the schema callables below use bare asserts whose
messages are checked verbatim, so pytest must not rewrite them.
"""

from __future__ import annotations

from typing_extensions import TypedDict

import pytest
from pydantic import BaseModel, TypeAdapter

from mddb.errors import SchemaValidationError
from mddb.index.schema import validate_record, validate_records, validation_error
from mddb.models import DocumentRecord


class BlogSchema(BaseModel):
    title: str


class PageDict(TypedDict):
    title: str


def make_record(name: str, filetype: str | None, **metadata) -> DocumentRecord:
    return DocumentRecord(
        id=name,
        file_path=f"/content/{name}.md",
        url_path=f"{name}.md",
        extension="md",
        filetype=filetype,
        metadata=metadata,
    )


class TestValidationError:
    """Tests for validation_error."""

    def test_model_schema(self) -> None:
        schemas = {"blog": BlogSchema}

        assert validation_error(make_record("a", "blog", title="x"), schemas) is None
        assert "title" in validation_error(make_record("b", "blog"), schemas)

    def test_type_adapter_schema(self) -> None:
        schemas = {"page": TypeAdapter(PageDict)}

        assert validation_error(make_record("a", "page", title="x"), schemas) is None
        assert validation_error(make_record("b", "page"), schemas) is not None

    def test_callable_schema(self) -> None:
        def must_have_author(metadata):
            if "author" not in metadata:
                raise ValueError("author is required")

        error = validation_error(make_record("a", "post"), {"post": must_have_author})

        assert error == "author is required"

    def test_callable_schema_with_assert(self) -> None:
        def must_have_title(metadata):
            assert "title" in metadata, "title required"

        error = validation_error(make_record("a", "post"), {"post": must_have_title})

        assert error == "title required"

    def test_callable_schema_custom_exception(self) -> None:
        class Rejected(Exception):
            pass

        def reject(metadata):
            raise Rejected()

        assert validation_error(make_record("a", "post"), {"post": reject}) == "Rejected"

    def test_no_schema_for_filetype(self) -> None:
        assert validation_error(make_record("a", "other"), {"blog": BlogSchema}) is None
        assert validation_error(make_record("a", None), {"blog": BlogSchema}) is None


class TestValidateRecords:
    """Tests for batch validation."""

    def test_collects_every_failure(self) -> None:
        records = [
            make_record("ok", "blog", title="fine"),
            make_record("bad1", "blog"),
            make_record("bad2", "blog", title=None),
        ]

        with pytest.raises(SchemaValidationError) as excinfo:
            validate_records(records, {"blog": BlogSchema})

        assert set(excinfo.value.failures) == {"/content/bad1.md", "/content/bad2.md"}
        assert str(excinfo.value) == SchemaValidationError.DEFAULT_MESSAGE

    def test_no_schemas(self) -> None:
        validate_records([make_record("a", "blog")], {})

    def test_validate_record(self) -> None:
        with pytest.raises(SchemaValidationError) as excinfo:
            validate_record(make_record("bad", "blog"), {"blog": BlogSchema})

        assert list(excinfo.value.failures) == ["/content/bad.md"]

    def test_assert_schema_fails_the_batch(self) -> None:
        def must_have_title(metadata):
            assert "title" in metadata, "title required"

        with pytest.raises(SchemaValidationError) as excinfo:
            validate_records(
                [make_record("ok", "post", title="x"), make_record("bad", "post")],
                {"post": must_have_title},
            )

        assert excinfo.value.failures == {"/content/bad.md": "title required"}

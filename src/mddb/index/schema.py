"""Per-filetype schema validation of document metadata."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from mddb.errors import SchemaValidationError
from mddb.models import DocumentRecord

LOGGER = logging.getLogger(__name__)


def _check(schema: Any, metadata: Dict[str, Any]) -> None:
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        schema.model_validate(metadata)
    elif hasattr(schema, "validate_python"):
        # pydantic.TypeAdapter
        schema.validate_python(metadata)
    else:
        schema(metadata)


def validation_error(record: DocumentRecord, schemas: Mapping[str, Any]) -> str | None:
    """Return a description of the schema violation, or None when the record is valid."""
    schema = schemas.get(record.filetype) if record.filetype else None
    if schema is None:
        return None
    try:
        _check(schema, record.metadata)
    except PydanticValidationError as exc:
        return str(exc)
    except Exception as exc:
        # Plain callables signal failure with any exception, including a bare assert.
        return str(exc) or type(exc).__name__
    return None


def validate_record(record: DocumentRecord, schemas: Mapping[str, Any]) -> None:
    error = validation_error(record, schemas)
    if error is not None:
        raise SchemaValidationError({record.file_path: error})


def validate_records(records: Iterable[DocumentRecord], schemas: Mapping[str, Any]) -> None:
    """Validate a whole batch, raising one error that lists every failing file."""
    if not schemas:
        return
    failures: Dict[str, str] = {}
    for record in records:
        error = validation_error(record, schemas)
        if error is not None:
            LOGGER.error("Validation failed for %s (filetype %s)", record.file_path, record.filetype)
            failures[record.file_path] = error
    if failures:
        raise SchemaValidationError(failures)

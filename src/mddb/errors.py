"""Exception types raised by the indexing pipeline."""

from __future__ import annotations

import sqlite3
from typing import Dict

# Engine failures are propagated unchanged; the alias lets callers branch on them.
StoreError = sqlite3.Error


class MddbError(Exception):
    """Base class for mddb errors."""


class InputError(MddbError):
    """A root folder, file or configuration module cannot be read."""


class ExtractionError(MddbError):
    """The facet extractor failed to parse a document."""

    def __init__(self, message: str, *, file_path: str | None = None) -> None:
        super().__init__(message)
        self.file_path = file_path


class SchemaValidationError(MddbError):
    """One or more documents do not satisfy the schema of their filetype."""

    DEFAULT_MESSAGE = "Validation Failed: Unable to validate files against the specified scheme."

    def __init__(self, failures: Dict[str, str], message: str | None = None) -> None:
        super().__init__(message or self.DEFAULT_MESSAGE)
        self.failures = dict(failures)

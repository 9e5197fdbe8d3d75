"""Facet extraction from Markdown sources."""

from mddb.ingestion.parser import ExtractionContext, ParsedFile, parse_file

__all__ = ["ExtractionContext", "ParsedFile", "parse_file"]

"""Application and indexing configuration."""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Sequence

from mddb.errors import InputError

if TYPE_CHECKING:
    from mddb.models import DocumentRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("markdown.db")
DEFAULT_IGNORE_PATTERNS = (r"Excalidraw", r"\.obsidian", r"DS_Store")

ComputedField = Callable[["DocumentRecord", Any], Any]
PathToUrlResolver = Callable[[str], str]


def identity_url_resolver(path: str) -> str:
    return path


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    ignore_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = DEFAULT_DB_PATH

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = DEFAULT_DB_PATH
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path


@dataclass(slots=True)
class IndexConfig:
    """Caller-supplied customisation of an indexing run."""

    computed_fields: List[ComputedField] = field(default_factory=list)
    schemas: Dict[str, Any] = field(default_factory=dict)
    ignore_patterns: List[str] = field(default_factory=list)
    path_to_url_resolver: PathToUrlResolver = identity_url_resolver
    permalinks: List[str] | None = None
    parser_plugins: List[Any] = field(default_factory=list)
    extractors: Dict[str, Callable[..., Any]] = field(default_factory=dict)
    workers: int = 4

    def merged_with(self, other: "IndexConfig | None") -> "IndexConfig":
        """Return a copy where non-empty values of ``other`` take precedence."""
        if other is None:
            return IndexConfig(
                computed_fields=list(self.computed_fields),
                schemas=dict(self.schemas),
                ignore_patterns=list(self.ignore_patterns),
                path_to_url_resolver=self.path_to_url_resolver,
                permalinks=self.permalinks,
                parser_plugins=list(self.parser_plugins),
                extractors=dict(self.extractors),
                workers=self.workers,
            )
        return IndexConfig(
            computed_fields=list(self.computed_fields) + list(other.computed_fields),
            schemas={**self.schemas, **other.schemas},
            ignore_patterns=list(self.ignore_patterns) + list(other.ignore_patterns),
            path_to_url_resolver=(
                other.path_to_url_resolver
                if other.path_to_url_resolver is not identity_url_resolver
                else self.path_to_url_resolver
            ),
            permalinks=other.permalinks if other.permalinks is not None else self.permalinks,
            parser_plugins=list(self.parser_plugins) + list(other.parser_plugins),
            extractors={**self.extractors, **other.extractors},
            workers=other.workers,
        )


_CONFIG_NAMES: Sequence[str] = (
    "computed_fields",
    "schemas",
    "ignore_patterns",
    "path_to_url_resolver",
    "permalinks",
    "parser_plugins",
    "extractors",
    "workers",
)


def config_from_mapping(values: Mapping[str, Any]) -> IndexConfig:
    kwargs = {name: values[name] for name in _CONFIG_NAMES if values.get(name) is not None}
    return IndexConfig(**kwargs)


def load_config(path: Path) -> IndexConfig:
    """Load an :class:`IndexConfig` from a Python module.

    The module declares any of ``computed_fields``, ``schemas``,
    ``ignore_patterns``, ``path_to_url_resolver``, ``permalinks``,
    ``parser_plugins``, ``extractors`` and ``workers`` at top level.
    A module-level ``config`` that is already an :class:`IndexConfig` wins.
    """
    path = Path(path)
    if not path.is_file():
        raise InputError(f"Config file not found: {path}")

    spec = importlib.util.spec_from_file_location(f"mddb_user_config_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise InputError(f"Unable to load config file: {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise InputError(f"Unable to load config file {path}: {exc}") from exc

    explicit = getattr(module, "config", None)
    if isinstance(explicit, IndexConfig):
        return explicit

    LOGGER.debug("Loaded config module %s", path)
    return config_from_mapping(vars(module))

"""Core mddb data models."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping

SUPPORTED_EXTENSIONS = ("md", "mdx")

TASK_DATE_FIELDS = ("created", "due", "completion", "start", "scheduled")


@dataclass(slots=True)
class Link:
    """Reference from one document to another (or to an external URL)."""

    from_: str
    to: str
    to_raw: str
    text: str = ""
    internal: bool = True
    embed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_,
            "to": self.to,
            "toRaw": self.to_raw,
            "text": self.text,
            "internal": self.internal,
            "embed": self.embed,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Link":
        return cls(
            from_=data["from"],
            to=data["to"],
            to_raw=data.get("toRaw", data["to"]),
            text=data.get("text", ""),
            internal=bool(data.get("internal", True)),
            embed=bool(data.get("embed", False)),
        )


@dataclass(slots=True)
class Task:
    """Checklist item extracted from a document.

    Date attributes are always present; a missing date is ``None``.
    """

    description: str
    checked: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
    created: str | None = None
    due: str | None = None
    completion: str | None = None
    start: str | None = None
    scheduled: str | None = None
    list: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "checked": self.checked,
            "metadata": dict(self.metadata),
            "created": self.created,
            "due": self.due,
            "completion": self.completion,
            "start": self.start,
            "scheduled": self.scheduled,
            "list": self.list,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        return cls(
            description=str(data.get("description", "")),
            checked=bool(data.get("checked", False)),
            metadata=dict(data.get("metadata") or {}),
            created=data.get("created"),
            due=data.get("due"),
            completion=data.get("completion"),
            start=data.get("start"),
            scheduled=data.get("scheduled"),
            list=data.get("list"),
        )


@dataclass
class DocumentRecord:
    """Canonical representation of one indexed file.

    Computed fields may attach extra attributes (``record.title = ...``);
    they are reported by :meth:`extra_fields` and persisted with the record.
    """

    id: str
    file_path: str
    url_path: str
    extension: str
    filetype: str | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)

    @property
    def is_markdown(self) -> bool:
        return self.extension in SUPPORTED_EXTENSIONS

    def extra_fields(self) -> Dict[str, Any]:
        declared = {f.name for f in fields(self)}
        return {key: value for key, value in vars(self).items() if key not in declared}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "file_path": self.file_path,
            "url_path": self.url_path,
            "extension": self.extension,
            "filetype": self.filetype,
            "metadata": self.metadata,
            "tags": list(self.tags),
            "links": [link.to_dict() for link in self.links],
            "tasks": [task.to_dict() for task in self.tasks],
        }
        for key, value in self.extra_fields().items():
            data.setdefault(key, value)
        return data

import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from ulid import ULID

DEFAULT_CATEGORY = "General"
PREVIEW_LENGTH = 100


class ItemKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    URL = "url"


def new_item_id() -> str:
    return f"i_{ULID()}"


def file_name(path: str) -> str:
    """Last segment of a POSIX or Windows path."""
    return re.split(r"[\\/]", path)[-1]


def make_preview(kind: ItemKind, content: str, source_application: Optional[str] = None) -> str:
    """Short summary shown for an item, derived from its kind and content."""
    if kind is ItemKind.TEXT:
        return content[:PREVIEW_LENGTH]
    if kind is ItemKind.IMAGE:
        return f"Image copied from {source_application or 'Unknown'}"
    if kind is ItemKind.FILE:
        return file_name(content)
    return content


class ClipboardItem(BaseModel):
    """One entry of the clipboard history.

    ``content``, ``preview`` and the creation fields are frozen; use
    :meth:`with_content` to get an edited copy with a matching preview.
    Records serialize with the camelCase keys used by the history slot.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=new_item_id, frozen=True)
    content: str = Field(frozen=True)
    kind: ItemKind = Field(frozen=True)
    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt", frozen=True)
    is_favorite: bool = Field(default=False, alias="isFavorite")
    category: str = DEFAULT_CATEGORY
    preview: str = Field(default="", frozen=True)
    source_application: Optional[str] = Field(default=None, alias="sourceApplication", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _fill_preview(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("preview"):
            return data
        kind = data.get("kind")
        content = data.get("content")
        if kind is None or content is None:
            return data
        app = data.get("source_application", data.get("sourceApplication"))
        data = dict(data)
        data["preview"] = make_preview(ItemKind(kind), content, app)
        return data

    @field_validator("created_at")
    @classmethod
    def _local_naive(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @field_validator("category")
    @classmethod
    def _non_empty_category(cls, value: str) -> str:
        value = value.strip()
        return value or DEFAULT_CATEGORY

    @property
    def display_title(self) -> str:
        if self.kind is ItemKind.TEXT:
            lines = self.content.splitlines()
            return lines[0].strip() if lines else "Empty"
        if self.kind is ItemKind.IMAGE:
            return "Image"
        if self.kind is ItemKind.FILE:
            first = self.content.splitlines()[0] if self.content else ""
            return file_name(first.rstrip("\\/")) or "File"
        return urlparse(self.content).hostname or self.content

    def with_content(self, content: str) -> "ClipboardItem":
        return self.model_copy(
            update={
                "content": content,
                "preview": make_preview(self.kind, content, self.source_application),
            }
        )

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

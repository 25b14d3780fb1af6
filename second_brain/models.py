from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_millis(value: datetime) -> int:
    """Milliseconds since the epoch, the on-disk mtime encoding."""
    return int(round(_as_utc(value).timestamp() * 1000))


def from_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


class IndexedFile(BaseModel):
    path: str
    content: str
    mtime: datetime
    size: int = Field(ge=0)
    extension: str = ""

    @field_validator("path")
    @classmethod
    def _path_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("path must not be blank")
        return value

    @field_validator("mtime")
    @classmethod
    def _mtime_aware(cls, value: datetime) -> datetime:
        return _as_utc(value)


class SearchResult(BaseModel):
    path: str
    content: str
    score: float
    mtime: datetime


class RecentFile(BaseModel):
    path: str
    mtime: datetime


class IndexReport(BaseModel):
    path: str
    filesIndexed: int
    chunksIndexed: int


class SearchReport(BaseModel):
    query: str
    results: List[SearchResult]


class FileSummary(BaseModel):
    path: str
    size: int
    preview: str


class RecentActivity(BaseModel):
    days: float
    files: List[RecentFile]

"""Helpers for rows that embed documents in TEXT columns.

Course content, enrollment sub-records, session participants and similar
nested lists are stored as JSON text and validated back into pydantic models
on read.
"""

from collections.abc import Sequence
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter


M = TypeVar("M", bound=BaseModel)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


@lru_cache
def _list_adapter(model: type[BaseModel]) -> TypeAdapter[Any]:
    return TypeAdapter(list[model])  # type: ignore[valid-type]


def dump_documents(model: type[M], items: Sequence[M]) -> str:
    """Serialize a list of embedded documents to JSON text."""
    return _list_adapter(model).dump_json(list(items)).decode()


def load_documents(model: type[M], raw: str | None) -> list[M]:
    """Parse JSON text into a list of ``model``; empty/None gives []."""
    if not raw:
        return []
    return _list_adapter(model).validate_json(raw)


def dump_document(item: BaseModel | None) -> str | None:
    return item.model_dump_json() if item is not None else None


def load_document(model: type[M], raw: str | None) -> M | None:
    if not raw:
        return None
    return model.model_validate_json(raw)

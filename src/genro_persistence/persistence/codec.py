# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Record codecs: conversion between typed records and row dicts.

A persistence never inspects record types itself. It hands records to a
codec, which turns them into ``{column: value}`` dicts and back and knows
where the record keeps its id.

Codecs:
    ModelCodec: pydantic models (fields map 1:1 to columns).
    MapCodec: plain dicts, stored as they are.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from collections.abc import Mapping

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class RecordCodec(Protocol[T]):
    """Conversion contract used by SqlPersistence."""

    id_field: str

    def to_row(self, item: T) -> dict[str, Any]: ...

    def from_row(self, row: Mapping[str, Any]) -> T: ...

    def is_record(self, value: Any) -> bool: ...

    def get_id(self, item: T) -> Any: ...

    def set_id(self, item: T, value: Any) -> T: ...


class ModelCodec(Generic[M]):
    """Codec for pydantic models.

    ``to_row`` dumps the model in Python mode, so nested models become dicts
    (bound as JSON) and datetimes stay datetimes. ``set_id`` assigns in place
    unless the model is frozen, in which case a copy is returned.
    """

    def __init__(self, model: type[M], id_field: str = "id"):
        self.model = model
        self.id_field = id_field

    def to_row(self, item: M) -> dict[str, Any]:
        return item.model_dump()

    def from_row(self, row: Mapping[str, Any]) -> M:
        return self.model.model_validate(dict(row))

    def is_record(self, value: Any) -> bool:
        return isinstance(value, self.model)

    def get_id(self, item: M) -> Any:
        return getattr(item, self.id_field, None)

    def set_id(self, item: M, value: Any) -> M:
        if item.model_config.get("frozen"):
            return item.model_copy(update={self.id_field: value})
        setattr(item, self.id_field, value)
        return item


class MapCodec:
    """Codec for plain dict records."""

    def __init__(self, id_field: str = "id"):
        self.id_field = id_field

    def to_row(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return dict(item)

    def from_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return dict(row)

    def is_record(self, value: Any) -> bool:
        # Dicts are bound as JSON anyway
        return False

    def get_id(self, item: Mapping[str, Any]) -> Any:
        return item.get(self.id_field)

    def set_id(self, item: dict[str, Any], value: Any) -> dict[str, Any]:
        item[self.id_field] = value
        return item


__all__ = ["MapCodec", "ModelCodec", "RecordCodec"]

# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Paging request and result containers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class PagingParams:
    """Which slice of a result set to return.

    Attributes:
        skip: Rows to skip. None or negative means no OFFSET.
        take: Rows to return, capped at the persistence max page size.
            None or non-positive means the max page size.
        total: Also count all matching rows.
    """

    skip: int | None = None
    take: int | None = None
    total: bool = False

    def get_skip(self) -> int | None:
        if self.skip is None or self.skip < 0:
            return None
        return self.skip

    def get_take(self, max_take: int) -> int:
        if self.take is None or self.take <= 0:
            return max_take
        return min(self.take, max_take)


@dataclass
class DataPage(Generic[T]):
    """One page of results; ``total`` is set only when it was requested."""

    items: list[T] = field(default_factory=list)
    total: int | None = None


__all__ = ["DataPage", "PagingParams"]

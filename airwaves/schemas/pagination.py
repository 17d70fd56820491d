"""
Page envelope for the notification listing.
"""
from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

ItemT = TypeVar("ItemT")


class PaginatedResponse(BaseModel, Generic[ItemT]):
    """One page of items plus the counters a client needs to ask for the next one."""

    items: list[ItemT]
    total: int
    page: int
    size: int

    @computed_field  # type: ignore[misc]
    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0

    @computed_field  # type: ignore[misc]
    @property
    def has_more(self) -> bool:
        return self.page * self.size < self.total

"""Base models shared across the package."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class Event:
    """Standard event envelope for streaming."""

    event_id: str
    event_type: str  # entity.action (e.g., ledger.charge)
    event_time: datetime
    source: str  # Service/system that generated
    subject: str  # Entity ID affected
    data: dict
    metadata: dict = field(default_factory=dict)


@dataclass
class Page(Generic[T]):
    """One page of an owner-scoped listing."""

    items: list[T]
    page: int
    limit: int
    total: int
    # card_id -> CardSummary for the cards referenced by ``items``
    cards: dict[str, Any] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict[str, int | bool]:
        """Pagination block as returned to clients."""
        return {
            "current_page": self.page,
            "total_pages": self.total_pages,
            "total_items": self.total,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }

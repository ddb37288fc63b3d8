"""Bounded, newest-first log of executed queries."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

DEFAULT_MAX_ITEMS = 50


@dataclass(frozen=True)
class QueryHistoryItem:
    query: str
    response: str
    executed_at: datetime
    success: bool

    @property
    def short_query(self) -> str:
        return self.query if len(self.query) <= 100 else self.query[:100] + "..."

    def time_ago(self, now: datetime | None = None) -> str:
        span = (now or datetime.now(timezone.utc)) - self.executed_at
        minutes = span.total_seconds() / 60
        if minutes < 1:
            return "just now"
        if minutes < 60:
            return f"{int(minutes)}m ago"
        if minutes < 24 * 60:
            return f"{int(minutes // 60)}h ago"
        return f"{span.days}d ago"


class QueryHistory:
    """Newest-first history capped at *max_items*; overflow evicts the oldest."""

    def __init__(self, max_items: int = DEFAULT_MAX_ITEMS, items: list[QueryHistoryItem] | None = None):
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self._max_items = max_items
        self._items: list[QueryHistoryItem] = list(items or [])[:max_items]

    @property
    def max_items(self) -> int:
        return self._max_items

    @property
    def items(self) -> tuple[QueryHistoryItem, ...]:
        return tuple(self._items)

    @property
    def latest(self) -> QueryHistoryItem | None:
        return self._items[0] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[QueryHistoryItem]:
        return iter(tuple(self._items))

    def record(
        self,
        query: str,
        response: str,
        success: bool,
        executed_at: datetime | None = None,
    ) -> QueryHistoryItem:
        item = QueryHistoryItem(
            query=query,
            response=response,
            executed_at=executed_at or datetime.now(timezone.utc),
            success=success,
        )
        # Rebuild instead of mutating so earlier snapshots from .items stay valid
        self._items = [item, *self._items][: self._max_items]
        return item

    def clear(self) -> None:
        self._items = []

    def to_json(self) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []
        for item in self._items:
            entry = asdict(item)
            entry["executed_at"] = item.executed_at.isoformat()
            entries.append(entry)
        return entries

    @classmethod
    def from_json(cls, data: Any, max_items: int = DEFAULT_MAX_ITEMS) -> QueryHistory:
        """Rebuild from :meth:`to_json` output, skipping malformed entries."""
        items: list[QueryHistoryItem] = []
        for entry in data if isinstance(data, list) else []:
            if not isinstance(entry, dict):
                continue
            try:
                executed_at = datetime.fromisoformat(entry["executed_at"])
                items.append(
                    QueryHistoryItem(
                        query=str(entry["query"]),
                        response=str(entry.get("response", "")),
                        executed_at=executed_at,
                        success=bool(entry.get("success", False)),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return cls(max_items=max_items, items=items)

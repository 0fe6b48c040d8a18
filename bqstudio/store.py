"""Estimate store interfaces used by the session driver."""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import EstimateDraft, EstimateItem

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = {"id", "project_id", "created_at"}
UPDATABLE_FIELDS = {field_info.name for field_info in fields(EstimateItem)} - IMMUTABLE_FIELDS


class EstimateStore(ABC):
    """Abstract base class that all estimate stores must implement."""

    @abstractmethod
    async def fetch_items(self, project_id: str) -> List[EstimateItem]:
        """Return every item of ``project_id`` ordered by ``order``."""

    @abstractmethod
    async def create_item(self, draft: EstimateDraft) -> EstimateItem:
        """Persist ``draft`` and return the stored item."""

    @abstractmethod
    async def update_item(self, item_id: str, changes: Mapping[str, Any]) -> None:
        """Apply ``changes`` to the item identified by ``item_id``."""

    @abstractmethod
    async def delete_item(self, item_id: str) -> None:
        """Remove the item and its descendants."""


class InMemoryEstimateStore(EstimateStore):
    """Dictionary backed store, handy for tests and file driven runs."""

    def __init__(self, items: Optional[Iterable[EstimateItem]] = None) -> None:
        self._items: Dict[str, EstimateItem] = {}
        for item in items or []:
            self._items[item.id] = item

    async def fetch_items(self, project_id: str) -> List[EstimateItem]:
        selected = [
            item
            for item in self._items.values()
            if item.project_id in (None, project_id)
        ]
        return sorted(selected, key=lambda item: item.order)

    async def create_item(self, draft: EstimateDraft) -> EstimateItem:
        if not draft.name.strip():
            raise ValueError("Item name must not be empty")
        if draft.parent_id is not None and draft.parent_id not in self._items:
            raise KeyError(f"Parent item '{draft.parent_id}' does not exist")
        stamp = _now()
        item = draft.to_item(self._new_id(), created_at=stamp, updated_at=stamp)
        self._items[item.id] = item
        self._persist()
        logger.debug("Created item %s (%s)", item.id, item.name)
        return item

    async def update_item(self, item_id: str, changes: Mapping[str, Any]) -> None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        current = self._items.get(item_id)
        if current is None:
            raise KeyError(f"Item '{item_id}' does not exist")
        updates = dict(changes)
        updates["updated_at"] = _now()
        self._items[item_id] = current.updated(**updates)
        self._persist()

    async def delete_item(self, item_id: str) -> None:
        if item_id not in self._items:
            raise KeyError(f"Item '{item_id}' does not exist")
        doomed = self._descendants(item_id) | {item_id}
        for key in doomed:
            self._items.pop(key, None)
        self._persist()
        logger.debug("Deleted %d items under %s", len(doomed), item_id)

    def snapshot(self) -> List[EstimateItem]:
        return sorted(self._items.values(), key=lambda item: item.order)

    def _descendants(self, item_id: str) -> set:
        found: set = set()
        frontier = [item_id]
        while frontier:
            parent = frontier.pop()
            for item in self._items.values():
                if item.parent_id == parent and item.id not in found:
                    found.add(item.id)
                    frontier.append(item.id)
        return found

    def _new_id(self) -> str:
        return uuid.uuid4().hex

    def _persist(self) -> None:
        """Hook for subclasses that write the items somewhere durable."""


class JsonEstimateStore(InMemoryEstimateStore):
    """Store persisting all items to a single JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(self._load())

    def _load(self) -> List[EstimateItem]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise ValueError(f"Store file '{self.path}' must contain an 'items' list")
        return [EstimateItem.from_record(record) for record in data["items"]]

    def _persist(self) -> None:
        payload = {"items": [item.as_record() for item in self.snapshot()]}
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)


def _now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


__all__ = [
    "EstimateStore",
    "InMemoryEstimateStore",
    "JsonEstimateStore",
]

"""Data model for bill of quantities estimate items."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

LEVEL_STRUCTURE = 0
LEVEL_ELEMENT = 1
LEVEL_ITEM = 2

STATUS_INCOMPLETE = "incomplete"
STATUS_COMPLETE = "complete"
STATUS_ALL = "all"
STATUSES = (STATUS_INCOMPLETE, STATUS_COMPLETE)


@dataclass(frozen=True)
class EstimateItem:
    """A single flat estimate record as returned by the store."""

    id: str
    name: str
    level: int
    parent_id: Optional[str] = None
    order: int = 0
    quantity: float = 0.0
    unit: str = ""
    unit_cost: float = 0.0
    amount: float = 0.0
    status: str = STATUS_INCOMPLETE
    project_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "EstimateItem":
        """Build an item from a loosely typed mapping (store row, CSV row)."""

        if "id" not in record or _is_blank(record.get("id")):
            raise KeyError("Estimate record is missing the 'id' field")
        return cls(id=str(record["id"]).strip(), **_common_fields(record))

    def as_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level,
            "parent_id": self.parent_id,
            "order": self.order,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_cost": self.unit_cost,
            "amount": self.amount,
            "status": self.status,
            "project_id": self.project_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def updated(self, **changes: Any) -> "EstimateItem":
        return replace(self, **changes)


@dataclass(frozen=True)
class EstimateDraft:
    """Payload for creating an item; the store assigns the identifier."""

    name: str
    level: int
    parent_id: Optional[str] = None
    order: int = 0
    quantity: float = 0.0
    unit: str = ""
    unit_cost: float = 0.0
    amount: float = 0.0
    status: str = STATUS_INCOMPLETE
    project_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "EstimateDraft":
        fields = _common_fields(record)
        fields.pop("created_at", None)
        fields.pop("updated_at", None)
        return cls(**fields)

    def to_item(
        self,
        item_id: str,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ) -> EstimateItem:
        return EstimateItem(
            id=item_id,
            name=self.name,
            level=self.level,
            parent_id=self.parent_id,
            order=self.order,
            quantity=self.quantity,
            unit=self.unit,
            unit_cost=self.unit_cost,
            amount=self.amount,
            status=self.status,
            project_id=self.project_id,
            created_at=created_at,
            updated_at=updated_at,
        )


@dataclass
class TreeNode:
    """In-memory tree node wrapping a stored item.

    ``amount`` and ``costs`` are derived by :mod:`bqstudio.rollup` and
    ``index`` by :mod:`bqstudio.indexing`; none of them is ever read back from
    the stored record for branch nodes.
    """

    item: EstimateItem
    children: List["TreeNode"] = field(default_factory=list)
    amount: float = 0.0
    costs: Dict[str, float] = field(default_factory=dict)
    index: str = ""

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def level(self) -> int:
        return self.item.level

    @property
    def is_leaf(self) -> bool:
        return self.item.level == LEVEL_ITEM

    def copy_shallow(self) -> "TreeNode":
        """Return a detached copy of this node without children."""

        return TreeNode(
            item=self.item,
            children=[],
            amount=self.amount,
            costs=dict(self.costs),
            index=self.index,
        )


def to_float(value: Any) -> float:
    """Coerce an optional numeric value, treating missing input as zero."""

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def normalise_status(value: Any) -> str:
    text = "" if _is_blank(value) else str(value).strip().lower()
    return text if text in STATUSES else STATUS_INCOMPLETE


def _common_fields(record: Mapping[str, Any]) -> Dict[str, Any]:
    if "level" not in record or _is_blank(record.get("level")):
        raise KeyError("Estimate record is missing the 'level' field")

    unit_cost = record.get("unit_cost")
    if _is_blank(unit_cost):
        unit_cost = record.get("rate")
    order = record.get("order")
    if _is_blank(order):
        order = record.get("order_index")
    parent_id = record.get("parent_id")
    project_id = record.get("project_id")

    return {
        "name": "" if _is_blank(record.get("name")) else str(record["name"]).strip(),
        "level": int(to_float(record["level"])),
        "parent_id": None if _is_blank(parent_id) else str(parent_id).strip(),
        "order": int(to_float(order)),
        "quantity": to_float(record.get("quantity")),
        "unit": "" if _is_blank(record.get("unit")) else str(record["unit"]).strip(),
        "unit_cost": to_float(unit_cost),
        "amount": to_float(record.get("amount")),
        "status": normalise_status(record.get("status")),
        "project_id": None if _is_blank(project_id) else str(project_id).strip(),
        "created_at": _optional_text(record.get("created_at")),
        "updated_at": _optional_text(record.get("updated_at")),
    }


def _optional_text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    return str(value)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


__all__ = [
    "EstimateDraft",
    "EstimateItem",
    "LEVEL_ELEMENT",
    "LEVEL_ITEM",
    "LEVEL_STRUCTURE",
    "STATUSES",
    "STATUS_ALL",
    "STATUS_COMPLETE",
    "STATUS_INCOMPLETE",
    "TreeNode",
    "normalise_status",
    "to_float",
]

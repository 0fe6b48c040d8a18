"""Bottom-up derivation of amounts and cost-category values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .config import CATEGORY_NAMES, CostCategories
from .models import TreeNode, to_float


@dataclass
class EstimateTotals:
    """Project level figures derived from the root nodes of a forest."""

    project_total: float = 0.0
    categories: Dict[str, float] = field(default_factory=dict)

    @property
    def total_overheads(self) -> float:
        return self.categories.get("overheads", 0.0)

    @property
    def total_profit(self) -> float:
        return self.categories.get("profit", 0.0)

    @property
    def contract_sum(self) -> float:
        return self.project_total + self.total_overheads + self.total_profit

    def as_dict(self) -> Dict[str, float]:
        payload = {"project_total": self.project_total}
        payload.update({f"total_{name}": value for name, value in self.categories.items()})
        payload["contract_sum"] = self.contract_sum
        return payload


def leaf_amount(node: TreeNode) -> float:
    return to_float(node.item.quantity) * to_float(node.item.unit_cost)


def rollup_node(node: TreeNode, rates: Dict[str, float]) -> float:
    """Recompute ``node`` and its subtree, returning the node amount."""

    if node.is_leaf:
        node.amount = leaf_amount(node)
        node.costs = {name: node.amount * rates[name] for name in CATEGORY_NAMES}
        return node.amount

    costs = {name: 0.0 for name in CATEGORY_NAMES}
    amount = 0.0
    for child in node.children:
        amount += rollup_node(child, rates)
        for name in CATEGORY_NAMES:
            costs[name] += child.costs[name]
    node.amount = amount
    node.costs = costs
    return amount


def rollup_forest(forest: List[TreeNode], categories: CostCategories) -> List[TreeNode]:
    """Populate ``amount`` and ``costs`` for every node of ``forest`` in place."""

    rates = categories.as_dict()
    for root in forest:
        rollup_node(root, rates)
    return forest


def resum_node(node: TreeNode) -> float:
    """Re-add branch values from children, keeping leaf values as they are."""

    if node.is_leaf:
        return node.amount

    costs = {name: 0.0 for name in CATEGORY_NAMES}
    amount = 0.0
    for child in node.children:
        amount += resum_node(child)
        for name in CATEGORY_NAMES:
            costs[name] += child.costs.get(name, 0.0)
    node.amount = amount
    node.costs = costs
    return amount


def resum_forest(forest: List[TreeNode]) -> List[TreeNode]:
    for root in forest:
        resum_node(root)
    return forest


def compute_totals(forest: Iterable[TreeNode]) -> EstimateTotals:
    """Sum the already rolled-up root nodes of ``forest``."""

    totals = EstimateTotals(categories={name: 0.0 for name in CATEGORY_NAMES})
    for root in forest:
        totals.project_total += root.amount
        for name in CATEGORY_NAMES:
            totals.categories[name] += root.costs.get(name, 0.0)
    return totals


__all__ = [
    "EstimateTotals",
    "compute_totals",
    "leaf_amount",
    "rollup_forest",
    "resum_forest",
    "resum_node",
    "rollup_node",
]

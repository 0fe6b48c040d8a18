"""Structure preserving search and status filtering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .indexing import assign_indices
from .models import STATUS_ALL, STATUSES, TreeNode
from .rollup import resum_forest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterCriteria:
    """Free-text search term plus status selector."""

    search: str = ""
    status: str = STATUS_ALL

    def __post_init__(self) -> None:
        status = (self.status or STATUS_ALL).strip().lower()
        if status != STATUS_ALL and status not in STATUSES:
            raise ValueError(
                f"Unknown status '{self.status}'; expected one of: "
                + ", ".join((STATUS_ALL, *STATUSES))
            )
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "search", (self.search or "").strip())

    @property
    def is_identity(self) -> bool:
        return not self.search and self.status == STATUS_ALL

    def matches_name(self, node: TreeNode) -> bool:
        return self.search.casefold() in node.name.casefold()

    def matches_status(self, node: TreeNode) -> bool:
        return self.status == STATUS_ALL or node.item.status == self.status

    def matches_branch(self, node: TreeNode) -> bool:
        # Branches carry no status, so they only match on their own name when
        # the status selector does not narrow the view.
        if not self.matches_name(node):
            return False
        return bool(self.search) or self.status == STATUS_ALL


def filter_tree(forest: List[TreeNode], criteria: FilterCriteria) -> List[TreeNode]:
    """Return a filtered copy of ``forest``.

    A node survives when it matches ``criteria`` or when any descendant
    survives. The input forest is left untouched. Leaves keep their derived
    values; branches are re-summed from their visible children and the copy
    is re-indexed.
    """

    filtered = _filter_nodes(forest, criteria)
    resum_forest(filtered)
    assign_indices(filtered)
    logger.debug(
        "Filter search=%r status=%s kept %d of %d roots",
        criteria.search,
        criteria.status,
        len(filtered),
        len(forest),
    )
    return filtered


def _filter_nodes(nodes: List[TreeNode], criteria: FilterCriteria) -> List[TreeNode]:
    kept: List[TreeNode] = []
    for node in nodes:
        copy = _filter_node(node, criteria)
        if copy is not None:
            kept.append(copy)
    return kept


def _filter_node(node: TreeNode, criteria: FilterCriteria) -> Optional[TreeNode]:
    if node.is_leaf:
        if criteria.matches_name(node) and criteria.matches_status(node):
            return node.copy_shallow()
        return None

    children = _filter_nodes(node.children, criteria)
    if not children and not criteria.matches_branch(node):
        return None
    copy = node.copy_shallow()
    copy.children = children
    return copy


__all__ = ["FilterCriteria", "filter_tree"]

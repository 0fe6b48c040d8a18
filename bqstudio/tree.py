"""Reconstruction of the Structure / Element / Item tree from flat records."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .config import CostCategories
from .errors import TreeIntegrityError
from .indexing import assign_indices
from .models import LEVEL_ITEM, LEVEL_STRUCTURE, EstimateItem, TreeNode
from .rollup import rollup_forest

logger = logging.getLogger(__name__)

Forest = List[TreeNode]


def sort_items(items: Iterable[EstimateItem]) -> List[EstimateItem]:
    """Return ``items`` ordered by their sibling ordering key."""

    return sorted(items, key=lambda item: item.order)


def build_forest(items: Sequence[EstimateItem], *, strict: bool = False) -> Forest:
    """Link flat records into a forest of level-0 roots.

    Records are expected in ``order`` ascending; roots and children keep
    encounter order. Records that cannot be placed (unknown parent, wrong
    level, duplicate id) are logged and left out unless ``strict`` is set, in
    which case the first one raises :class:`TreeIntegrityError`.
    """

    nodes: Dict[str, TreeNode] = {}
    for item in items:
        if item.id in nodes:
            _reject(item, "duplicate id", strict)
            continue
        nodes[item.id] = TreeNode(item=item)

    roots: Forest = []
    placed: set = set()
    for item in items:
        node = nodes.get(item.id)
        if node is None or node.item is not item or item.id in placed:
            continue
        if not LEVEL_STRUCTURE <= item.level <= LEVEL_ITEM:
            _reject(item, f"level {item.level} is outside 0..2", strict)
            continue

        if item.parent_id is None:
            if item.level != LEVEL_STRUCTURE:
                _reject(item, f"level {item.level} item has no parent", strict)
                continue
            roots.append(node)
            placed.add(item.id)
            continue

        reason = _link_problem(item, nodes.get(item.parent_id))
        if reason:
            _reject(item, reason, strict)
            continue
        nodes[item.parent_id].children.append(node)
        placed.add(item.id)

    unreachable = len(placed) - count_nodes(roots)
    if unreachable:
        logger.warning(
            "%d records are unreachable because an ancestor was excluded", unreachable
        )
    logger.debug("Built forest with %d roots from %d records", len(roots), len(items))
    return roots


def build_tree(
    items: Sequence[EstimateItem],
    categories: Optional[CostCategories] = None,
    *,
    strict: bool = False,
) -> Forest:
    """Build the forest, derive amounts and categories, then index it."""

    forest = build_forest(items, strict=strict)
    rollup_forest(forest, categories or CostCategories())
    assign_indices(forest)
    return forest


def iter_nodes(forest: Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Yield every node in pre-order."""

    for node in forest:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


def count_nodes(forest: Iterable[TreeNode]) -> int:
    return sum(1 for _ in iter_nodes(forest))


def find_node(forest: Iterable[TreeNode], item_id: str) -> Optional[TreeNode]:
    for node in iter_nodes(forest):
        if node.id == item_id:
            return node
    return None


def _link_problem(item: EstimateItem, parent: Optional[TreeNode]) -> Optional[str]:
    if item.parent_id == item.id:
        return "item is its own parent"
    if parent is None:
        return f"parent '{item.parent_id}' not found"
    if parent.level != item.level - 1:
        return f"level {item.level} under level {parent.level} parent"
    return None


def _reject(item: EstimateItem, reason: str, strict: bool) -> None:
    if strict:
        raise TreeIntegrityError(item.id, reason)
    logger.warning("Excluding item '%s' from tree: %s", item.id, reason)


__all__ = [
    "Forest",
    "build_forest",
    "build_tree",
    "count_nodes",
    "find_node",
    "iter_nodes",
    "sort_items",
]

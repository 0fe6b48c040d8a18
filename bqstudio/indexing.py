"""Dotted positional indices for the visible tree."""

from __future__ import annotations

from typing import List

from .models import TreeNode


def assign_indices(forest: List[TreeNode], prefix: str = "") -> List[TreeNode]:
    """Label every node with its 1-based position path, e.g. ``"2.1.3"``."""

    for position, node in enumerate(forest, start=1):
        node.index = f"{prefix}.{position}" if prefix else str(position)
        if node.children:
            assign_indices(node.children, node.index)
    return forest


__all__ = ["assign_indices"]

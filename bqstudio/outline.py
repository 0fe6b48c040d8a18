"""Utilities for reading and writing Excel row outline metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Union

from openpyxl import load_workbook


@dataclass
class OutlineNode:
    """Representation of a row outline group."""

    sheet: str
    level: int
    start: int
    end: int
    children: List["OutlineNode"] = field(default_factory=list)


def levels_to_level_map(levels: Sequence[int], first_row: int = 2) -> Dict[int, int]:
    """Map worksheet row numbers to the outline level of rows at ``levels``.

    ``first_row`` is the worksheet row of the first entry (row 1 holds the
    header).
    """

    return {
        first_row + offset: int(level)
        for offset, level in enumerate(levels)
        if int(level) > 0
    }


def build_outline_nodes(level_map: Dict[int, int], sheet: str) -> List[OutlineNode]:
    """Build a nested outline tree from a mapping of row numbers to levels."""

    if not level_map:
        return []

    items = sorted((int(idx), int(level or 0)) for idx, level in level_map.items())
    stack: List[Dict[str, object]] = []
    completed: List[OutlineNode] = []
    previous_index = items[0][0] - 1

    def close_nodes(target_level: int, end: int) -> None:
        while stack and int(stack[-1]["level"]) > target_level:
            info = stack.pop()
            start = int(info["start"])
            node = OutlineNode(
                sheet=sheet,
                level=int(info["level"]),
                start=start,
                end=max(start, end),
                children=list(info["children"]),
            )
            if stack:
                stack[-1]["children"].append(node)
            else:
                completed.append(node)

    for index, level in items:
        # a gap in row numbers means the rows in between sit at level 0
        if index > previous_index + 1:
            close_nodes(0, previous_index)
        close_nodes(level, index - 1)
        previous_index = index
        while len(stack) < level:
            stack.append({"level": len(stack) + 1, "start": index, "children": []})

    close_nodes(0, previous_index)
    return completed


def read_outline_levels(path: Union[str, Path], sheet: str) -> Dict[int, int]:
    """Return ``{row: outline level}`` for grouped rows of ``sheet``."""

    workbook = load_workbook(path)
    ws = workbook[sheet]
    levels: Dict[int, int] = {}
    for idx, dim in ws.row_dimensions.items():
        level = int(getattr(dim, "outlineLevel", 0) or 0)
        if level > 0:
            levels[int(idx)] = level
    return levels


def _apply_nodes(ws, nodes: Iterable[OutlineNode]) -> None:
    for node in nodes:
        for row_idx in range(node.start, node.end + 1):
            dim = ws.row_dimensions[row_idx]
            current_level = int(getattr(dim, "outlineLevel", 0) or 0)
            dim.outlineLevel = max(current_level, node.level)
        if node.children:
            _apply_nodes(ws, node.children)


def apply_outline_to_openpyxl(ws, nodes: List[OutlineNode]) -> None:
    """Apply outline metadata to an openpyxl worksheet."""

    if not nodes:
        return
    _apply_nodes(ws, nodes)


__all__ = [
    "OutlineNode",
    "apply_outline_to_openpyxl",
    "build_outline_nodes",
    "levels_to_level_map",
    "read_outline_levels",
]

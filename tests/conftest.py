from __future__ import annotations

from pathlib import Path
from typing import List
import sys

import pytest

# Ensure project root is on sys.path for absolute imports
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from bqstudio import CostCategories, EstimateItem, build_tree


def make_item(item_id, level, parent=None, order=0, quantity=0.0, unit_cost=0.0, **extra):
    return EstimateItem(
        id=item_id,
        name=extra.pop("name", item_id),
        level=level,
        parent_id=parent,
        order=order,
        quantity=quantity,
        unit=extra.pop("unit", "m2" if level == 2 else ""),
        unit_cost=unit_cost,
        project_id=extra.pop("project_id", "p1"),
        **extra,
    )


@pytest.fixture
def scenario_items() -> List[EstimateItem]:
    return [
        make_item("A", 0, order=1),
        make_item("B", 1, "A", order=2),
        make_item("C", 2, "B", order=3, quantity=10, unit_cost=5),
    ]


@pytest.fixture
def project_items() -> List[EstimateItem]:
    return [
        make_item("S1", 0, order=1, name="Substructure"),
        make_item("E1", 1, "S1", order=2, name="Excavation"),
        make_item("I1", 2, "E1", order=3, quantity=120, unit_cost=450, name="Bulk excavation", status="complete"),
        make_item("I2", 2, "E1", order=4, quantity=80, unit_cost=300, name="Cart away surplus"),
        make_item("E2", 1, "S1", order=5, name="Concrete work"),
        make_item("I3", 2, "E2", order=6, quantity=45, unit_cost=650, name="Blinding concrete", status="complete"),
        make_item("S2", 0, order=7, name="Superstructure"),
        make_item("E3", 1, "S2", order=8, name="Walling"),
        make_item("I4", 2, "E3", order=9, quantity=210, unit_cost=1800, name="Stone walling"),
        make_item("I5", 2, "E3", order=10, quantity=60, unit_cost=85, name="Hoop iron", unit="m", status="complete"),
    ]


@pytest.fixture
def project_forest(project_items):
    return build_tree(project_items, CostCategories())

import asyncio

import pytest

from bqstudio.errors import EditingLockedError, FetchError, MutationError, TreeIntegrityError
from bqstudio.filtering import FilterCriteria
from bqstudio.models import EstimateDraft
from bqstudio.session import EstimateSession
from bqstudio.store import InMemoryEstimateStore, JsonEstimateStore
from bqstudio.tree import count_nodes, find_node

from conftest import make_item


class FailingStore(InMemoryEstimateStore):
    async def fetch_items(self, project_id):
        raise ConnectionError("store unavailable")


class RejectingStore(InMemoryEstimateStore):
    """Rejects creation of any item whose name starts with 'bad'."""

    def __init__(self, items=None):
        super().__init__(items)
        self.create_calls = 0

    async def create_item(self, draft):
        self.create_calls += 1
        if draft.name.startswith("bad"):
            raise ValueError("duplicate item")
        return await super().create_item(draft)


def _leaf(name, parent="E1", quantity=1.0, rate=10.0):
    return EstimateDraft(
        name=name,
        level=2,
        parent_id=parent,
        order=99,
        quantity=quantity,
        unit="m2",
        unit_cost=rate,
        project_id="p1",
    )


def test_refresh_builds_tree(project_items):
    session = EstimateSession(InMemoryEstimateStore(project_items), "p1")

    forest = asyncio.run(session.refresh())

    assert count_nodes(forest) == 10
    assert session.totals().project_total == pytest.approx(490350)


def test_refresh_failure_raises_fetch_error():
    session = EstimateSession(FailingStore(), "p1")

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(session.refresh())

    assert excinfo.value.project_id == "p1"
    assert session.forest == []


def test_strict_refresh_failure_keeps_previous_snapshot(project_items):
    session = EstimateSession(InMemoryEstimateStore(project_items), "p1", strict=True)
    asyncio.run(session.refresh())
    session.store = InMemoryEstimateStore([*project_items, make_item("X", 2, "ghost")])

    with pytest.raises(TreeIntegrityError):
        asyncio.run(session.refresh())

    assert len(session.items) == len(project_items)
    assert count_nodes(session.forest) == len(project_items)


def test_add_item_refetches_and_rolls_up(project_items):
    session = EstimateSession(InMemoryEstimateStore(project_items), "p1")
    asyncio.run(session.refresh())

    created = asyncio.run(session.add_item(_leaf("Hardcore filling", quantity=10, rate=100)))

    assert find_node(session.forest, created.id) is not None
    assert find_node(session.forest, "E1").amount == pytest.approx(79000)
    assert session.forest[0].amount == pytest.approx(108250)


def test_update_and_delete_item(project_items):
    session = EstimateSession(InMemoryEstimateStore(project_items), "p1")
    asyncio.run(session.refresh())

    asyncio.run(session.update_item("I2", {"quantity": 100}))
    assert find_node(session.forest, "I2").amount == pytest.approx(30000)

    asyncio.run(session.delete_item("E1"))
    assert find_node(session.forest, "I1") is None
    assert session.forest[0].amount == pytest.approx(29250)


def test_mutation_failure_is_reported(project_items):
    session = EstimateSession(InMemoryEstimateStore(project_items), "p1")
    asyncio.run(session.refresh())

    with pytest.raises(MutationError) as excinfo:
        asyncio.run(session.delete_item("missing"))

    assert excinfo.value.operation == "delete"
    assert count_nodes(session.forest) == 10


def test_locked_session_refuses_mutations(project_items):
    store = InMemoryEstimateStore(project_items)
    session = EstimateSession(store, "p1", locked=True)

    with pytest.raises(EditingLockedError):
        asyncio.run(session.add_item(_leaf("Blocked")))

    assert len(store.snapshot()) == len(project_items)


def test_import_stops_at_first_failure(project_items):
    store = RejectingStore(project_items)
    session = EstimateSession(store, "p1")
    asyncio.run(session.refresh())
    drafts = [_leaf("good one"), _leaf("bad two"), _leaf("good three")]

    result = asyncio.run(session.import_items(drafts))

    assert not result.ok
    assert [item.name for item in result.succeeded] == ["good one"]
    assert result.failed.position == 1
    assert result.failed.error == "duplicate item"
    assert [draft.name for draft in result.skipped] == ["good three"]
    assert store.create_calls == 2
    assert count_nodes(session.forest) == 11


def test_view_leaves_snapshot_untouched(project_items):
    session = EstimateSession(InMemoryEstimateStore(project_items), "p1")
    asyncio.run(session.refresh())

    view = session.view(FilterCriteria(search="hoop"))

    assert count_nodes(view) == 3
    assert count_nodes(session.forest) == 10


def test_json_store_persists_items(tmp_path):
    path = tmp_path / "store" / "estimate.json"
    store = JsonEstimateStore(path)

    async def seed():
        root = await store.create_item(EstimateDraft(name="Substructure", level=0, order=1, project_id="p1"))
        element = await store.create_item(
            EstimateDraft(name="Excavation", level=1, parent_id=root.id, order=2, project_id="p1")
        )
        leaf = await store.create_item(_leaf("Bulk excavation", parent=element.id, quantity=120, rate=450))
        await store.update_item(leaf.id, {"status": "complete"})
        return [root.id, element.id, leaf.id]

    ids = asyncio.run(seed())

    reloaded = JsonEstimateStore(path)
    items = asyncio.run(reloaded.fetch_items("p1"))

    assert [item.id for item in items] == ids
    assert items[2].status == "complete"
    assert items[2].unit_cost == 450
    assert items[2].created_at is not None

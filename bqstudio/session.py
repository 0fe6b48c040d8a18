"""Fetch, rebuild and mutate an estimate through an :class:`EstimateStore`."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from .config import CostCategories
from .errors import EditingLockedError, FetchError, MutationError
from .filtering import FilterCriteria, filter_tree
from .models import EstimateDraft, EstimateItem
from .rollup import EstimateTotals, compute_totals
from .store import EstimateStore
from .tree import Forest, build_tree

logger = logging.getLogger(__name__)


@dataclass
class ImportFailure:
    position: int
    name: str
    error: str


@dataclass
class ImportResult:
    """Outcome of a sequential bulk import."""

    succeeded: List[EstimateItem] = field(default_factory=list)
    failed: Optional[ImportFailure] = None
    skipped: List[EstimateDraft] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed is None


class EstimateSession:
    """Holds the latest snapshot of one project's estimate.

    The tree is never patched locally: every successful mutation is followed
    by a full refetch and rebuild, so the last fetch always wins.
    """

    def __init__(
        self,
        store: EstimateStore,
        project_id: str,
        categories: Optional[CostCategories] = None,
        *,
        locked: bool = False,
        strict: bool = False,
    ) -> None:
        self.store = store
        self.project_id = project_id
        self.categories = categories or CostCategories()
        self.locked = locked
        self.strict = strict
        self.items: List[EstimateItem] = []
        self.forest: Forest = []

    async def refresh(self) -> Forest:
        try:
            items = await self.store.fetch_items(self.project_id)
        except Exception as exc:
            logger.error("Failed to fetch estimate for project %s: %s", self.project_id, exc)
            raise FetchError(self.project_id, f"Could not load estimate: {exc}") from exc
        items = list(items)
        forest = build_tree(items, self.categories, strict=self.strict)
        self.items, self.forest = items, forest
        logger.info(
            "Loaded %d items (%d structures) for project %s",
            len(self.items),
            len(self.forest),
            self.project_id,
        )
        return self.forest

    def view(self, criteria: Optional[FilterCriteria] = None) -> Forest:
        """Filtered, indexed copy of the current snapshot."""

        return filter_tree(self.forest, criteria or FilterCriteria())

    def totals(self, criteria: Optional[FilterCriteria] = None) -> EstimateTotals:
        return compute_totals(self.view(criteria))

    async def add_item(self, draft: EstimateDraft) -> EstimateItem:
        self._ensure_unlocked("create")
        created = await self._dispatch("create", None, self.store.create_item(draft))
        await self.refresh()
        return created

    async def update_item(self, item_id: str, changes: Mapping[str, Any]) -> None:
        self._ensure_unlocked("update")
        await self._dispatch("update", item_id, self.store.update_item(item_id, changes))
        await self.refresh()

    async def delete_item(self, item_id: str) -> None:
        self._ensure_unlocked("delete")
        await self._dispatch("delete", item_id, self.store.delete_item(item_id))
        await self.refresh()

    async def import_items(self, drafts: Sequence[EstimateDraft]) -> ImportResult:
        """Create ``drafts`` one by one, stopping at the first rejected row."""

        self._ensure_unlocked("import")
        result = ImportResult()
        for position, draft in enumerate(drafts):
            try:
                created = await self.store.create_item(draft)
            except Exception as exc:
                logger.error("Import stopped at row %d (%s): %s", position + 1, draft.name, exc)
                result.failed = ImportFailure(position=position, name=draft.name, error=str(exc))
                result.skipped = list(drafts[position + 1 :])
                break
            result.succeeded.append(created)

        logger.info(
            "Imported %d of %d items for project %s",
            len(result.succeeded),
            len(drafts),
            self.project_id,
        )
        if result.succeeded:
            await self.refresh()
        return result

    def _ensure_unlocked(self, operation: str) -> None:
        if self.locked:
            raise EditingLockedError(operation)

    async def _dispatch(self, operation: str, item_id: Optional[str], call) -> Any:
        try:
            return await call
        except Exception as exc:
            logger.error("Store rejected %s of %s: %s", operation, item_id or "new item", exc)
            raise MutationError(operation, str(exc), item_id=item_id) from exc


__all__ = ["EstimateSession", "ImportFailure", "ImportResult"]

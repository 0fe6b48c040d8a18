"""BQ Studio core package.

This package provides the building blocks for turning a flat list of bill of
quantities records into a Structure / Element / Item tree, rolling amounts and
cost categories up that tree, filtering it without orphaning matches, and
exporting the visible rows to a table, a spreadsheet or a paginated document.
It powers the command line interface distributed with this repository and is
meant to be reused by any user interface built on top of it.
"""

from .config import (
    AppConfig,
    ColumnVisibility,
    CostCategories,
    OutputConfig,
    ProjectConfig,
    load_config,
)
from .errors import (
    EditingLockedError,
    EstimateError,
    FetchError,
    ImportValidationError,
    MutationError,
    TreeIntegrityError,
)
from .export import (
    RowRecord,
    export_to_document,
    export_to_spreadsheet,
    export_to_table,
    flatten_forest,
)
from .filtering import FilterCriteria, filter_tree
from .indexing import assign_indices
from .io import load_estimate_items, read_import_rows
from .models import EstimateDraft, EstimateItem, TreeNode
from .reporting import export_estimate
from .rollup import EstimateTotals, compute_totals, rollup_forest
from .session import EstimateSession, ImportResult
from .store import EstimateStore, InMemoryEstimateStore, JsonEstimateStore
from .tree import build_forest, build_tree, iter_nodes

__all__ = [
    "AppConfig",
    "ColumnVisibility",
    "CostCategories",
    "EditingLockedError",
    "EstimateDraft",
    "EstimateError",
    "EstimateItem",
    "EstimateSession",
    "EstimateStore",
    "EstimateTotals",
    "FetchError",
    "FilterCriteria",
    "ImportResult",
    "ImportValidationError",
    "InMemoryEstimateStore",
    "JsonEstimateStore",
    "MutationError",
    "OutputConfig",
    "ProjectConfig",
    "RowRecord",
    "TreeIntegrityError",
    "TreeNode",
    "assign_indices",
    "build_forest",
    "build_tree",
    "compute_totals",
    "export_estimate",
    "export_to_document",
    "export_to_spreadsheet",
    "export_to_table",
    "filter_tree",
    "flatten_forest",
    "iter_nodes",
    "load_config",
    "load_estimate_items",
    "read_import_rows",
    "rollup_forest",
]

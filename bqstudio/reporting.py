"""Utilities for writing estimate exports to disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .config import ColumnVisibility, OutputConfig, ProjectConfig
from .export import export_to_document, export_to_spreadsheet, export_to_table
from .models import TreeNode

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "xlsx", "pdf")


def export_estimate(
    forest: List[TreeNode],
    output: OutputConfig,
    columns: Optional[ColumnVisibility] = None,
    project: Optional[ProjectConfig] = None,
    formats: Iterable[str] = EXPORT_FORMATS,
) -> Dict[str, Path]:
    """Persist the requested export formats to the configured output directory."""

    project = project or ProjectConfig()
    columns = columns or ColumnVisibility()
    requested = [fmt.lower() for fmt in formats]
    unknown = set(requested) - set(EXPORT_FORMATS)
    if unknown:
        raise ValueError(f"Unsupported export formats: {', '.join(sorted(unknown))}")

    output_dir = output.directory
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Writing estimate exports to %s", output_dir)

    paths: Dict[str, Path] = {}

    if "csv" in requested:
        table_path = output_dir / output.table_report
        export_to_table(forest, columns).to_csv(table_path, index=False)
        paths["csv"] = table_path

    if "xlsx" in requested:
        spreadsheet_path = output_dir / output.spreadsheet
        spreadsheet_path.write_bytes(
            export_to_spreadsheet(forest, columns, project_name=project.name)
        )
        paths["xlsx"] = spreadsheet_path

    if "pdf" in requested:
        document_path = output_dir / output.document
        document_path.write_bytes(
            export_to_document(
                forest,
                columns,
                project_name=project.name,
                project_id=project.id,
                currency=project.currency,
            )
        )
        paths["pdf"] = document_path

    return paths


__all__ = ["EXPORT_FORMATS", "export_estimate"]

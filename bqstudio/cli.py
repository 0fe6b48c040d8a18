"""Command line interface for building and exporting an estimate."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .config import AppConfig, ColumnVisibility, load_config
from .errors import EstimateError
from .filtering import FilterCriteria
from .io import load_estimate_items
from .reporting import EXPORT_FORMATS, export_estimate
from .rollup import EstimateTotals
from .session import EstimateSession
from .store import InMemoryEstimateStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Roll up and export a bill of quantities estimate")
    parser.add_argument("--config", type=Path, help="Path to YAML configuration")
    parser.add_argument("--items", type=Path, help="Flat items file (CSV, XLSX or JSON)")
    parser.add_argument("--search", help="Only show items whose name contains this text")
    parser.add_argument("--status", help="Item status filter (all, complete, incomplete)")
    parser.add_argument(
        "--columns",
        help="Comma separated list of visible columns, e.g. quantity,unit,rate,amount",
    )
    parser.add_argument("--output-dir", type=Path, help="Directory for generated exports")
    parser.add_argument("--project-name", help="Project name shown in exports")
    parser.add_argument(
        "--format",
        action="append",
        choices=EXPORT_FORMATS,
        help="Export format to write; may be repeated (default: all)",
    )
    parser.add_argument("--strict", action="store_true", help="Fail on records that cannot be placed in the tree")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING)")
    parser.add_argument("--quiet", action="store_true", help="Suppress console summary output")
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else AppConfig()
        _apply_overrides(config, args)
        criteria = FilterCriteria(
            search=args.search if args.search is not None else config.filters.search,
            status=args.status or config.filters.status,
        )
    except Exception as exc:  # pragma: no cover - CLI validation
        logger.error("Failed to load configuration: %s", exc)
        return 1

    if config.items is None:
        logger.error("No items file given; use --items or paths.items in the configuration")
        return 1

    try:
        items = load_estimate_items(config.items)
    except Exception as exc:
        logger.exception("Failed to load estimate items: %s", exc)
        return 1

    if not args.config:
        config.project.id = _shared_project_id(items) or config.project.id

    session = EstimateSession(
        InMemoryEstimateStore(items),
        config.project.id,
        config.categories,
        locked=True,
        strict=args.strict,
    )
    try:
        asyncio.run(session.refresh())
    except EstimateError as exc:
        logger.error("Failed to build estimate: %s", exc)
        return 1

    if items and not session.items:
        logger.error(
            "None of the %d loaded items belong to project '%s'", len(items), config.project.id
        )
        return 1

    forest = session.view(criteria)
    try:
        paths = export_estimate(
            forest,
            config.output,
            columns=config.columns,
            project=config.project,
            formats=args.format or EXPORT_FORMATS,
        )
    except Exception as exc:
        logger.exception("Failed to export estimate: %s", exc)
        return 1

    if not args.quiet:
        _print_summary(session.totals(criteria), config.project.currency, sorted(paths.values()))

    return 0


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> None:
    if args.items:
        config.items = _resolve_override_path(args.items)

    if args.output_dir:
        config.output.directory = _resolve_override_path(args.output_dir)

    if args.project_name:
        config.project.name = args.project_name

    if args.columns is not None:
        config.columns = ColumnVisibility.from_names(args.columns.split(","))


def _shared_project_id(items) -> Optional[str]:
    project_ids = {item.project_id for item in items if item.project_id}
    if len(project_ids) == 1:
        return project_ids.pop()
    return None


def _resolve_override_path(path: Path) -> Path:
    path = Path(path).expanduser()
    if path.is_absolute():
        return path
    return (Path.cwd() / path).resolve()


def _print_summary(totals: EstimateTotals, currency: str, paths: List[Path]) -> None:
    print("Estimate summary:")
    print(f"  Grand total:     {currency} {totals.project_total:,.2f}")
    print(f"  Total overheads: {currency} {totals.total_overheads:,.2f}")
    print(f"  Total profit:    {currency} {totals.total_profit:,.2f}")
    for path in paths:
        print(f"  Wrote {path}")


if __name__ == "__main__":  # pragma: no cover - manual execution entry point
    raise SystemExit(main())

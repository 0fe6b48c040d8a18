"""IO helpers for flat estimate item files and bulk import sheets."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import numpy as np
import pandas as pd

from .errors import ImportValidationError
from .models import LEVEL_ITEM, EstimateDraft, EstimateItem

logger = logging.getLogger(__name__)

ITEM_NUMERIC_COLUMNS = ("level", "order", "quantity", "unit_cost", "rate", "amount")
IMPORT_REQUIRED_COLUMNS: Sequence[str] = ("name", "quantity", "unit", "rate")


def load_estimate_items(path: Path) -> List[EstimateItem]:
    """Load a flat item list from CSV, Excel or JSON and sort it by ``order``."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Items file '{path}' does not exist")

    logger.info("Loading estimate items from %s", path)
    ext = path.suffix.lower()
    if ext == ".json":
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        records = data.get("items", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ValueError(f"Items file '{path}' must contain a list of records")
        items = [EstimateItem.from_record(record) for record in records]
        return sorted(items, key=lambda item: item.order)

    frame = _read_frame(path)
    frame = frame.rename(columns=lambda column: _normalise_header(column))
    for column in ITEM_NUMERIC_COLUMNS:
        if column in frame.columns:
            frame[column] = coerce_numeric(frame[column])

    items = [EstimateItem.from_record(record) for record in _frame_records(frame)]
    return sorted(items, key=lambda item: item.order)


def read_import_rows(
    path: Path,
    parent_id: str,
    project_id: str,
    *,
    level: int = LEVEL_ITEM,
    current_order: int = 0,
) -> List[EstimateDraft]:
    """Turn an import sheet with ``name, quantity, unit, rate`` into drafts."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Import file '{path}' does not exist")

    frame = _read_frame(path)
    frame = frame.rename(columns=lambda column: _normalise_header(column))
    missing = [column for column in IMPORT_REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise ImportValidationError("Missing required columns: " + ", ".join(missing))
    if frame.empty:
        raise ImportValidationError("The import file contains no data")

    quantities = coerce_numeric(frame["quantity"])
    rates = coerce_numeric(frame["rate"])

    drafts: List[EstimateDraft] = []
    for position, (_, row) in enumerate(frame.iterrows(), start=1):
        name = _text(row.get("name"))
        if not name:
            logger.debug("Skipping import row %d: empty name", position)
            continue

        quantity = quantities.iloc[position - 1]
        rate = rates.iloc[position - 1]
        if pd.isna(quantity) or pd.isna(rate):
            raise ImportValidationError(
                f"Row {position}: Quantity and Rate must be valid numbers", row=position
            )
        unit = _text(row.get("unit"))
        if not unit:
            raise ImportValidationError(f"Row {position}: Unit is required", row=position)

        drafts.append(
            EstimateDraft(
                name=name,
                level=level,
                parent_id=parent_id,
                order=current_order + position,
                quantity=float(quantity),
                unit=unit,
                unit_cost=float(rate),
                amount=float(quantity) * float(rate),
                project_id=project_id,
            )
        )

    if not drafts:
        raise ImportValidationError("No valid items found in the import file")
    logger.info("Parsed %d import rows from %s", len(drafts), path)
    return drafts


def coerce_numeric(values: pd.Series) -> pd.Series:
    """Coerce textual representations of numbers into floats."""

    if not isinstance(values, pd.Series):
        values = pd.Series(values)
    if values.empty:
        return pd.to_numeric(values, errors="coerce")

    cleaned = values.astype(str)
    cleaned = cleaned.str.replace(r"\s+", "", regex=True)
    cleaned = cleaned.str.replace(r"(?i)(ksh|kes|eur|€|usd|\$|gbp|£)", "", regex=True)
    cleaned = cleaned.str.replace(r"[^0-9,\.\-+]", "", regex=True)
    cleaned = cleaned.str.replace(",", "", regex=False)
    cleaned = cleaned.str.replace(r"\.$", "", regex=True)

    return pd.to_numeric(cleaned, errors="coerce")


def _read_frame(path: Path) -> pd.DataFrame:
    ext = path.suffix.lower()
    if ext in {".csv", ".txt"}:
        return pd.read_csv(path, dtype=str)
    if ext in {".xlsx", ".xls"}:
        return pd.read_excel(path, dtype=str)
    raise ValueError(f"Unsupported file extension '{ext}' for '{path}'")


def _frame_records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    cleaned = frame.astype(object).where(frame.notna(), None)
    records = cleaned.to_dict(orient="records")
    for record in records:
        for key, value in record.items():
            if isinstance(value, np.generic):
                record[key] = value.item()
    return records


def _normalise_header(value: Any) -> str:
    text = "" if value is None else str(value)
    return "_".join(text.strip().lower().split())


def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ""
    return str(value).strip()


__all__ = [
    "IMPORT_REQUIRED_COLUMNS",
    "coerce_numeric",
    "load_estimate_items",
    "read_import_rows",
]

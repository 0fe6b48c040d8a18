"""Configuration loading utilities for BQ Studio."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml

from .models import STATUS_ALL

CATEGORY_NAMES = ("material", "labour", "equipment", "overheads", "profit", "vat")
COLUMN_NAMES = ("quantity", "unit", "rate", "amount", *CATEGORY_NAMES)
COLUMN_LABELS = {
    "quantity": "Quantity",
    "unit": "Unit",
    "rate": "Rate",
    "amount": "Amount",
    "material": "Material",
    "labour": "Labour",
    "equipment": "Equipment",
    "overheads": "Overheads",
    "profit": "Profit",
    "vat": "VAT",
}


@dataclass
class CostCategories:
    """Share of a leaf amount attributed to each cost category.

    The shares are independent of each other and need not sum to one.
    """

    material: float = 0.40
    labour: float = 0.30
    equipment: float = 0.20
    overheads: float = 0.05
    profit: float = 0.05
    vat: float = 0.16

    def __post_init__(self) -> None:
        for name in CATEGORY_NAMES:
            value = float(getattr(self, name))
            if value < 0:
                raise ValueError(f"Cost category '{name}' must not be negative")
            setattr(self, name, value)

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in CATEGORY_NAMES}


@dataclass
class ColumnVisibility:
    """Which optional columns the table and export encoders render."""

    quantity: bool = True
    unit: bool = True
    rate: bool = True
    amount: bool = True
    material: bool = True
    labour: bool = True
    equipment: bool = True
    overheads: bool = True
    profit: bool = True
    vat: bool = True

    def visible(self) -> List[str]:
        return [name for name in COLUMN_NAMES if getattr(self, name)]

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ColumnVisibility":
        requested = {_normalise_column_name(name) for name in names if str(name).strip()}
        unknown = requested - set(COLUMN_NAMES)
        if unknown:
            raise ValueError(f"Unknown columns: {', '.join(sorted(unknown))}")
        return cls(**{name: name in requested for name in COLUMN_NAMES})


@dataclass
class FilterDefaults:
    search: str = ""
    status: str = STATUS_ALL


@dataclass
class ProjectConfig:
    id: str = "project"
    name: str = "Estimate"
    currency: str = "Ksh"


@dataclass
class OutputConfig:
    """Paths describing where exports should be written."""

    directory: Path = Path("output")
    table_report: str = "estimate.csv"
    spreadsheet: str = "estimate.xlsx"
    document: str = "estimate.pdf"

    def resolved(self, base_path: Path) -> "OutputConfig":
        return OutputConfig(
            directory=_resolve_path(self.directory, base_path),
            table_report=self.table_report,
            spreadsheet=self.spreadsheet,
            document=self.document,
        )


@dataclass
class AppConfig:
    """Container for all configuration required by the CLI pipeline."""

    items: Optional[Path] = None
    project: ProjectConfig = field(default_factory=ProjectConfig)
    categories: CostCategories = field(default_factory=CostCategories)
    columns: ColumnVisibility = field(default_factory=ColumnVisibility)
    filters: FilterDefaults = field(default_factory=FilterDefaults)
    output: OutputConfig = field(default_factory=OutputConfig)

    def resolved(self, base_path: Path) -> "AppConfig":
        return AppConfig(
            items=_resolve_path(self.items, base_path) if self.items else None,
            project=self.project,
            categories=self.categories,
            columns=self.columns,
            filters=self.filters,
            output=self.output.resolved(base_path),
        )


def load_config(path: Path) -> AppConfig:
    """Load :class:`AppConfig` from a YAML file."""

    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file '{config_path}' does not exist")

    with config_path.open("r", encoding="utf-8") as stream:
        raw_config: Mapping[str, Any] = yaml.safe_load(stream) or {}

    if not isinstance(raw_config, Mapping):
        raise ValueError("Configuration root must be a mapping")
    if "project" not in raw_config:
        raise ValueError("Configuration must include the 'project' section")

    paths_section = raw_config.get("paths") or {}
    items = paths_section.get("items")

    project = ProjectConfig(**_pick(raw_config["project"] or {}, ProjectConfig))
    project.id = str(project.id)
    categories = CostCategories(**_pick(raw_config.get("categories") or {}, CostCategories))
    columns = _parse_columns(raw_config.get("columns"))
    filters = FilterDefaults(**_pick(raw_config.get("filters") or {}, FilterDefaults))
    output = OutputConfig(**_parse_output_section(raw_config.get("output") or {}))

    config = AppConfig(
        items=Path(items) if items else None,
        project=project,
        categories=categories,
        columns=columns,
        filters=filters,
        output=output,
    )
    return config.resolved(config_path.parent)


def _parse_columns(section: Any) -> ColumnVisibility:
    if section is None:
        return ColumnVisibility()
    if isinstance(section, (list, tuple)):
        return ColumnVisibility.from_names(section)
    if not isinstance(section, Mapping):
        raise ValueError("columns must be a list of names or a mapping of flags")
    parsed: Dict[str, bool] = {}
    for key, value in section.items():
        name = _normalise_column_name(key)
        if name not in COLUMN_NAMES:
            raise ValueError(f"Unknown column '{key}' in configuration")
        parsed[name] = bool(value)
    return ColumnVisibility(**parsed)


def _normalise_column_name(value: Any) -> str:
    text = str(value).strip().lower()
    if text == "labor":
        return "labour"
    return text


def _pick(section: Mapping[str, Any], target: type) -> Dict[str, Any]:
    allowed = {field_info.name for field_info in fields(target)}
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(
            f"Unknown keys for {target.__name__}: {', '.join(sorted(map(str, unknown)))}"
        )
    return dict(section)


def _parse_output_section(section: Mapping[str, Any]) -> Dict[str, Any]:
    parsed: Dict[str, Any] = {}
    if "directory" in section:
        parsed["directory"] = Path(section["directory"])
    for key in ("table_report", "spreadsheet", "document"):
        if key in section:
            parsed[key] = section[key]
    return parsed


def _resolve_path(path: Path, base_path: Path) -> Path:
    expanded = Path(path).expanduser()
    if expanded.is_absolute():
        return expanded
    return (base_path / expanded).resolve()


__all__ = [
    "AppConfig",
    "CATEGORY_NAMES",
    "COLUMN_LABELS",
    "COLUMN_NAMES",
    "ColumnVisibility",
    "CostCategories",
    "FilterDefaults",
    "OutputConfig",
    "ProjectConfig",
    "load_config",
]

import json

import numpy as np
import pandas as pd
import pytest

from bqstudio.errors import ImportValidationError
from bqstudio.io import coerce_numeric, load_estimate_items, read_import_rows


def test_load_estimate_items_from_csv(tmp_path):
    data = pd.DataFrame(
        {
            "ID": ["E1", "S1", "I1"],
            "Name": ["Excavation", "Substructure", "Bulk excavation"],
            "Parent ID": [None, None, "E1"],
            "Level": ["1", "0", "2"],
            "Order": ["2", "1", "3"],
            "Quantity": [None, None, "1 200.5"],
            "Unit": [None, None, "m3"],
            "Rate": [None, None, "Ksh 450"],
            "Status": [None, None, "Complete"],
        }
    )
    data.loc[0, "Parent ID"] = "S1"
    csv_path = tmp_path / "items.csv"
    data.to_csv(csv_path, index=False)

    items = load_estimate_items(csv_path)

    assert [item.id for item in items] == ["S1", "E1", "I1"]
    assert items[0].parent_id is None
    assert items[1].parent_id == "S1"
    assert items[2].quantity == pytest.approx(1200.5)
    assert items[2].unit_cost == pytest.approx(450)
    assert items[2].status == "complete"
    assert items[0].quantity == 0


def test_load_estimate_items_from_json(tmp_path):
    path = tmp_path / "items.json"
    path.write_text(
        json.dumps(
            {
                "items": [
                    {"id": "I1", "name": "Leaf", "level": 2, "parent_id": "E1", "order_index": 3, "rate": 5, "quantity": 2},
                    {"id": "S1", "name": "Root", "level": 0, "order_index": 1},
                ]
            }
        ),
        encoding="utf-8",
    )

    items = load_estimate_items(path)

    assert [item.id for item in items] == ["S1", "I1"]
    assert items[1].unit_cost == 5
    assert items[1].order == 3


def test_load_estimate_items_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_estimate_items(tmp_path / "missing.csv")


def test_load_estimate_items_rejects_unknown_extension(tmp_path):
    path = tmp_path / "items.ods"
    path.write_text("id,level\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_estimate_items(path)


def _write_import(tmp_path, rows, name="import.csv"):
    path = tmp_path / name
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def test_read_import_rows_builds_drafts(tmp_path):
    path = _write_import(
        tmp_path,
        {
            "Name": ["Formwork", "", "Rebar"],
            "Quantity": ["12", "3", "1,000"],
            "Unit": ["m2", "m", "kg"],
            "Rate": ["800", "5", "150.50"],
        },
    )

    drafts = read_import_rows(path, "E2", "p1", current_order=6)

    assert [draft.name for draft in drafts] == ["Formwork", "Rebar"]
    assert [draft.order for draft in drafts] == [7, 9]
    assert drafts[1].quantity == pytest.approx(1000)
    assert drafts[1].amount == pytest.approx(150500)
    assert all(draft.parent_id == "E2" and draft.level == 2 for draft in drafts)
    assert all(draft.status == "incomplete" for draft in drafts)


def test_read_import_rows_requires_columns(tmp_path):
    path = _write_import(tmp_path, {"Name": ["Formwork"], "Quantity": ["1"]})

    with pytest.raises(ImportValidationError, match="unit, rate"):
        read_import_rows(path, "E2", "p1")


@pytest.mark.parametrize(
    "rows, row_number",
    [
        ({"Name": ["A", "B"], "Quantity": ["1", "abc"], "Unit": ["m", "m"], "Rate": ["1", "2"]}, 2),
        ({"Name": ["A", "B"], "Quantity": ["1", "2"], "Unit": ["m", None], "Rate": ["1", "2"]}, 2),
    ],
)
def test_read_import_rows_reports_bad_row(tmp_path, rows, row_number):
    path = _write_import(tmp_path, rows)

    with pytest.raises(ImportValidationError) as excinfo:
        read_import_rows(path, "E2", "p1")

    assert excinfo.value.row == row_number
    assert f"Row {row_number}" in str(excinfo.value)


def test_read_import_rows_without_valid_names(tmp_path):
    path = _write_import(
        tmp_path,
        {"Name": [None, " "], "Quantity": ["1", "2"], "Unit": ["m", "m"], "Rate": ["1", "2"]},
    )

    with pytest.raises(ImportValidationError, match="No valid items"):
        read_import_rows(path, "E2", "p1")


def test_coerce_numeric_handles_currency_and_separators():
    values = pd.Series(["Ksh 1,250.00", " 42 ", "$7.", "n/a", None])

    result = coerce_numeric(values)

    assert result.iloc[0] == pytest.approx(1250)
    assert result.iloc[1] == pytest.approx(42)
    assert result.iloc[2] == pytest.approx(7)
    assert np.isnan(result.iloc[3])
    assert np.isnan(result.iloc[4])

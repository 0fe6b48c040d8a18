from pathlib import Path

import pandas as pd
import pytest

from bqstudio.cli import main

ROOT = Path(__file__).resolve().parent.parent
CONFIG = ROOT / "config" / "config.yaml"


def test_cli_creates_expected_reports(tmp_path):
    output_dir = tmp_path / "reports"
    exit_code = main([
        "--config",
        str(CONFIG),
        "--output-dir",
        str(output_dir),
        "--quiet",
    ])

    assert exit_code == 0
    table_path = output_dir / "estimate.csv"
    spreadsheet_path = output_dir / "estimate.xlsx"
    document_path = output_dir / "estimate.pdf"

    for path in (table_path, spreadsheet_path, document_path):
        assert path.exists()

    table = pd.read_csv(table_path, dtype={"Index": str})
    assert len(table) == 10
    assert table.loc[table["Level"] == 0, "Amount"].sum() == pytest.approx(490350)
    assert document_path.read_bytes().startswith(b"%PDF")


def test_cli_applies_search_and_format(tmp_path, capsys):
    output_dir = tmp_path / "filtered"
    exit_code = main([
        "--config",
        str(CONFIG),
        "--output-dir",
        str(output_dir),
        "--search",
        "walling",
        "--columns",
        "quantity,rate,amount",
        "--format",
        "csv",
    ])

    assert exit_code == 0
    assert not (output_dir / "estimate.pdf").exists()
    table = pd.read_csv(output_dir / "estimate.csv", dtype={"Index": str})
    assert list(table["Index"]) == ["1", "1.1", "1.1.1"]
    assert list(table.columns[4:]) == ["Quantity", "Rate", "Amount"]

    out = capsys.readouterr().out
    assert "Grand total:     Ksh 378,000.00" in out


def test_cli_fails_without_items(tmp_path):
    assert main(["--output-dir", str(tmp_path), "--quiet"]) == 1


def test_cli_rejects_unknown_column(tmp_path):
    exit_code = main([
        "--config",
        str(CONFIG),
        "--output-dir",
        str(tmp_path),
        "--columns",
        "amount,discount",
        "--quiet",
    ])

    assert exit_code == 1


def test_cli_items_without_config_uses_items_project(tmp_path):
    output_dir = tmp_path / "plain"
    exit_code = main([
        "--items",
        str(ROOT / "sample_data" / "estimate_items.csv"),
        "--output-dir",
        str(output_dir),
        "--format",
        "csv",
        "--quiet",
    ])

    assert exit_code == 0
    table = pd.read_csv(output_dir / "estimate.csv", dtype={"Index": str})
    assert len(table) == 10
    assert table.loc[table["Level"] == 0, "Amount"].sum() == pytest.approx(490350)


def test_cli_fails_when_no_item_belongs_to_project(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "project:\n  id: other-site\n  name: Other site\n",
        encoding="utf-8",
    )
    output_dir = tmp_path / "out"

    exit_code = main([
        "--config",
        str(config_path),
        "--items",
        str(ROOT / "sample_data" / "estimate_items.csv"),
        "--output-dir",
        str(output_dir),
        "--quiet",
    ])

    assert exit_code == 1
    assert not (output_dir / "estimate.csv").exists()

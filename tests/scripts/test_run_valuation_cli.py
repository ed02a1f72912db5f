"""End-to-end tests for scripts/run_valuation.py."""

import importlib.util
import json
from datetime import datetime
from pathlib import Path

import pytest

from conftest import write_workbook

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "run_valuation.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("run_valuation", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def workbook(tmp_path):
    return write_workbook(tmp_path / "inventario.xlsx", {
        "Productos": [
            ["Codigo", "Producto", "Costo"],
            [1001, "Widget", 2],
        ],
        "Compras": [
            ["No", "Fecha", "Codigo", "Importe", "Unidades"],
        ],
        "Recepciones": [
            ["No", "Fecha", "Codigo", "Unidades"],
            [1, datetime(2025, 3, 1), 1001, 10],
        ],
        "Ventas": [
            ["Factura", "Fecha", "Codigo", "Cantidad"],
            ["F-1", datetime(2025, 3, 2), 1001, 4],
            ["F-2", datetime(2025, 3, 3), 9999, 1],
        ],
    })


class TestRunValuationCli:
    def test_prints_json_summary(self, cli, workbook, capsys):
        assert cli.main(["--file", str(workbook)]) == 0

        summary = json.loads(capsys.readouterr().out)
        assert summary["records"]["receptions"] == 1
        assert summary["totals"]["cogs"] == "8"
        assert summary["totals"]["inventory_value"] == "12"
        assert summary["warning_count"] == 1
        assert summary["warnings"][0]["kind"] == "NEGATIVE_STOCK"
        assert summary["parse_error_count"] == 0

    def test_explain_product(self, cli, workbook, capsys):
        assert cli.main(["--file", str(workbook), "--explain", "1001"]) == 0

        explain = json.loads(capsys.readouterr().out)["explain"]
        assert explain["product_code"] == 1001
        assert explain["current_stock"] == "6"
        assert len(explain["lots"]) == 1
        assert len(explain["consumptions"]) == 1

    def test_missing_source(self, cli, tmp_path, capsys):
        assert cli.main(["--file", str(tmp_path / "absent.xlsx")]) == 1
        assert "Source not found" in capsys.readouterr().err

    def test_invalid_config(self, cli, workbook, tmp_path, capsys):
        config = tmp_path / "bad.yaml"
        config.write_text("engine:\n  outgoing_order: lifo\n")

        assert cli.main(["--file", str(workbook), "--config", str(config)]) == 1
        assert "CONFIG_INVALID" in capsys.readouterr().err

    def test_negative_reception_cost_valued(self, cli, tmp_path, capsys):
        """A credit-note cost below zero is valued, not aborted on."""
        path = write_workbook(tmp_path / "credito.xlsx", {
            "Productos": [["Codigo", "Producto"], [7, "Bolt"]],
            "Compras": [["No", "Fecha", "Codigo", "Importe", "Unidades"]],
            "Recepciones": [
                ["No", "Fecha", "Codigo", "Unidades", "Costo"],
                [1, datetime(2025, 3, 1), 7, 5, "(3)"],
            ],
            "Ventas": [["Factura", "Fecha", "Codigo", "Cantidad"]],
        })

        assert cli.main(["--file", str(path)]) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["totals"]["inventory_value"] == "-15"
        assert summary["parse_error_count"] == 0


class TestProbeOnly:
    def test_lists_sheets_without_valuing(self, cli, workbook, capsys):
        assert cli.main(["--file", str(workbook), "--probe-only"]) == 0

        out = capsys.readouterr().out
        assert "[receptions] Recepciones" in out
        assert "Rows: 2" in out
        assert "['Factura', 'Fecha', 'Codigo', 'Cantidad']" in out
        assert "[shrinkage] Mermas: NOT FOUND (optional)" in out
        assert "totals" not in out

    def test_missing_required_sheet_reported(self, cli, tmp_path, capsys):
        path = write_workbook(tmp_path / "solo.xlsx", {"Productos": [["Codigo", "Producto"]]})

        assert cli.main(["--file", str(path), "--probe-only"]) == 0
        assert "[sales] Ventas: NOT FOUND (required)" in capsys.readouterr().out

"""Tests for load_dataset - whole workbook or CSV directory to typed records."""

import dataclasses
from datetime import date, datetime
from decimal import Decimal

import pytest

from conftest import write_workbook
from inventory_config import default_config, parse_ingestion_config
from inventory_config.schema import SourceFormat
from inventory_ingestion import load_dataset, probe_dataset
from inventory_kernel.exceptions import (
    IngestionError,
    SheetNotFoundError,
    UnsupportedSourceError,
)
from inventory_services import run_fifo_valuation


PRODUCTS = [
    ["Codigo", "Clase", "Producto", "Descripcion", "UM", "Caja", "Pallet", "Costo", "Precio"],
    [1001, "A", "Widget", "Blue widget", "u", 12, None, None, 5],
    [1002, "B", "Gadget", None, "u", None, None, 4, 9],
]
PURCHASES = [
    ["No", "Fecha", "Proveedor", "Codigo", "Producto", "Descripcion", "Precio", "Moneda",
     "Cantidad", "Empaque", "Importe", "Tasa", "Unidades"],
    [50, datetime(2025, 3, 3), "Acme", 1001, "Widget", "", 24, "USD", 5, "caja", 120, 1, 60],
]
RECEPTIONS = [
    ["No", "Fecha", "Proveedor", "Codigo", "Producto", "Descripcion", "Cantidad", "Empaque", "Unidades", "Costo"],
    [1, datetime(2025, 3, 1), "Acme", 1001, "Widget", "", 5, "caja", 60, None],
    [2, datetime(2025, 3, 1), "Acme", 1002, "Gadget", "", 10, "u", None, None],
    [3, "not a date", "Acme", 1002, "Gadget", "", 10, "u", None, None],
]
SALES = [
    ["Factura", "Fecha", "Codigo", "Producto", "Descripcion", "Cantidad", "UM", "Precio", "Unidades"],
    ["F-1", datetime(2025, 3, 5), 1001, "Widget", "", 1, "caja", 50, 12],
    ["F-2", datetime(2025, 3, 6), 1002, "Gadget", "", 3, "u", 9, None],
]
SHRINKAGE = [
    ["Fecha", "Entidad", "Codigo", "Producto", "Descripcion", "Cantidad", "UM"],
    [datetime(2025, 3, 4), "Tienda 1", 1001, "Widget", "", -2, "u"],
]


def _full_workbook(tmp_path, **overrides):
    sheets = {
        "Productos": PRODUCTS,
        "Compras": PURCHASES,
        "Recepciones": RECEPTIONS,
        "Ventas": SALES,
        "Mermas": SHRINKAGE,
    }
    sheets.update(overrides)
    return write_workbook(tmp_path / "inventario.xlsx", {k: v for k, v in sheets.items() if v is not None})


class TestLoadWorkbook:
    """XLSX workbook with the default layout."""

    def test_all_record_kinds_loaded(self, tmp_path):
        dataset = load_dataset(_full_workbook(tmp_path), default_config().ingestion)

        assert [p.code for p in dataset.products] == [1001, 1002]
        assert dataset.products[1].description == "Gadget"
        assert dataset.purchases[0].units == Decimal("60")
        assert [r.units for r in dataset.receptions] == [Decimal("60"), Decimal("10")]
        assert [s.id for s in dataset.sale_items] == ["F-1-2", "F-2-3"]
        assert dataset.shrinkage[0].quantity == Decimal("2")
        assert dataset.shrinkage[0].shrinkage_date == date(2025, 3, 4)
        assert dataset.sheets == ("Productos", "Compras", "Recepciones", "Ventas", "Mermas")

    def test_bad_rows_reported_not_raised(self, tmp_path):
        dataset = load_dataset(_full_workbook(tmp_path), default_config().ingestion)

        [error] = dataset.errors
        assert error.sheet == "Recepciones"
        assert error.row == 4
        assert error.column == "Fecha"
        assert error.raw_value == "not a date"

    def test_optional_shrinkage_sheet_may_be_absent(self, tmp_path):
        path = _full_workbook(tmp_path, Mermas=None)
        dataset = load_dataset(path, default_config().ingestion)
        assert dataset.shrinkage == ()

    def test_required_sheet_missing_raises(self, tmp_path):
        path = _full_workbook(tmp_path, Ventas=None)
        with pytest.raises(SheetNotFoundError) as exc_info:
            load_dataset(path, default_config().ingestion)
        assert exc_info.value.sheet == "Ventas"
        assert exc_info.value.code == "SHEET_NOT_FOUND"

    def test_custom_sheet_and_columns(self, tmp_path):
        path = _full_workbook(tmp_path, Ventas=None, Facturas=[
            ["Nro", "Dia", "Codigo", "Cant"],
            ["Z-1", "2025-03-05", 1001, 2],
        ])
        config = parse_ingestion_config({
            "sheets": {
                "sales": {
                    "sheet": "facturas",
                    "columns": {"sale_id": "Nro", "sale_date": "Dia", "quantity": "Cant"},
                },
            },
        })

        dataset = load_dataset(path, config)
        [item] = dataset.sale_items
        assert item.sale_id == "Z-1"
        assert item.quantity == Decimal("2")

    def test_missing_file(self, tmp_path):
        with pytest.raises(IngestionError):
            load_dataset(tmp_path / "absent.xlsx", default_config().ingestion)

    def test_unsupported_format(self, tmp_path):
        path = _full_workbook(tmp_path)
        config = dataclasses.replace(default_config().ingestion, source_format="ods")
        with pytest.raises(UnsupportedSourceError):
            load_dataset(path, config)

    def test_feeds_valuation(self, tmp_path):
        """Loaded records value end to end."""
        dataset = load_dataset(_full_workbook(tmp_path), default_config().ingestion)
        result = run_fifo_valuation(
            dataset.products,
            dataset.purchases,
            dataset.receptions,
            dataset.sale_items,
            dataset.shrinkage,
        )

        # Widget lot 60 @ 2 (purchase 120/60); Gadget lot 10 @ 4 (catalog)
        assert result.shrinkage_cost == Decimal("4")
        assert result.cogs == Decimal("24") + Decimal("12")
        assert result.inventory_value == Decimal("46") * 2 + Decimal("7") * 4
        assert result.state.warnings == ()


class TestLoadCsvDirectory:
    """CSV directory with one file per sheet."""

    def _write(self, directory, name, rows):
        lines = [",".join("" if v is None else str(v) for v in row) for row in rows]
        (directory / f"{name}.csv").write_text("\n".join(lines) + "\n", encoding="utf-8")

    def test_loads_csv_files(self, tmp_path):
        self._write(tmp_path, "Productos", [["Codigo", "Producto", "Costo"], [7, "Bolt", "0.5"]])
        self._write(tmp_path, "Compras", [["No", "Fecha", "Codigo", "Importe", "Unidades"]])
        self._write(tmp_path, "Recepciones", [["No", "Fecha", "Codigo", "Unidades"], [1, "2025-03-01", 7, 100]])
        self._write(tmp_path, "ventas", [["Factura", "Fecha", "Codigo", "Cantidad"], ["F-1", "3/2/25", 7, 10]])
        config = dataclasses.replace(default_config().ingestion, source_format=SourceFormat.CSV)

        dataset = load_dataset(tmp_path, config)

        assert dataset.products[0].unit_cost == Decimal("0.5")
        assert dataset.purchases == ()
        assert dataset.receptions[0].units == Decimal("100")
        assert dataset.sale_items[0].sale_date == date(2025, 3, 2)
        assert dataset.shrinkage == ()
        assert dataset.errors == ()

    def test_csv_source_must_be_directory(self, tmp_path):
        path = tmp_path / "single.csv"
        path.write_text("a\n1\n", encoding="utf-8")
        config = dataclasses.replace(default_config().ingestion, source_format=SourceFormat.CSV)
        with pytest.raises(IngestionError):
            load_dataset(path, config)


class TestProbeDataset:
    """Preview of the configured sheets without mapping."""

    def test_probes_found_sheets_by_kind(self, tmp_path):
        probes = probe_dataset(_full_workbook(tmp_path), default_config().ingestion)

        assert set(probes) == {"products", "purchases", "receptions", "sales", "shrinkage"}
        assert probes["receptions"].row_count == 3
        assert probes["sales"].columns[0] == "Factura"
        assert probes["products"].sample_rows[0]["Codigo"] == 1001

    def test_missing_required_sheet_left_out(self, tmp_path):
        path = _full_workbook(tmp_path, Ventas=None)
        probes = probe_dataset(path, default_config().ingestion)
        assert "sales" not in probes
        assert "products" in probes

    def test_csv_directory(self, tmp_path):
        (tmp_path / "Productos.csv").write_text("Codigo,Producto\n7,Bolt\n", encoding="utf-8")
        config = dataclasses.replace(default_config().ingestion, source_format=SourceFormat.CSV)

        probes = probe_dataset(tmp_path, config)
        assert list(probes) == ["products"]
        assert probes["products"].columns == ("Codigo", "Producto")

    def test_missing_source(self, tmp_path):
        with pytest.raises(IngestionError):
            probe_dataset(tmp_path / "absent.xlsx", default_config().ingestion)

"""
Pytest fixtures for the inventory valuation test suite.

Provides:
- Structured logging configured for the whole session
- A log capture fixture returning parsed JSON records
- Record builders for products, purchases, receptions, sales and shrinkage
"""

import json
import logging
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

import pytest

from inventory_kernel.domain.records import (
    Product,
    Purchase,
    Reception,
    SaleItem,
    Shrinkage,
)
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

DAY0 = date(2025, 3, 1)


def day(n: int) -> date:
    """Date ``n`` days after the fixed test epoch."""
    return DAY0 + timedelta(days=n)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            run_fifo_valuation(...)
            logs = captured_logs()
            assert any(r["message"] == "fifo_run_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Record builders
# =============================================================================


def make_product(code=1, name="Widget", unit_cost=None, **kwargs) -> Product:
    return Product(code=code, name=name, unit_cost=unit_cost, **kwargs)


def make_purchase(number=1, on=DAY0, product_code=1, total="100", units="50", **kwargs) -> Purchase:
    return Purchase(
        number=number,
        purchase_date=on,
        supplier=kwargs.pop("supplier", "Acme"),
        product_code=product_code,
        total_amount=Decimal(total),
        units=Decimal(units),
        **kwargs,
    )


def make_reception(number=1, on=DAY0, product_code=1, units="10", unit_cost=None, **kwargs) -> Reception:
    return Reception(
        number=number,
        reception_date=on,
        supplier=kwargs.pop("supplier", "Acme"),
        product_code=product_code,
        units=Decimal(units),
        unit_cost=Decimal(unit_cost) if unit_cost is not None else None,
        **kwargs,
    )


def make_sale(id="S1", product_code=1, quantity="1", unit_price=None, on=None, total_units="0", **kwargs) -> SaleItem:
    return SaleItem(
        id=id,
        sale_id=kwargs.pop("sale_id", id),
        product_code=product_code,
        quantity=Decimal(quantity),
        total_units=Decimal(total_units),
        unit_price=Decimal(unit_price) if unit_price is not None else None,
        sale_date=on,
        **kwargs,
    )


def make_shrinkage(id="M1", on=DAY0, product_code=1, quantity="1", **kwargs) -> Shrinkage:
    return Shrinkage(
        id=id,
        shrinkage_date=on,
        product_code=product_code,
        quantity=Decimal(quantity),
        **kwargs,
    )


@pytest.fixture
def two_lot_receptions() -> list[Reception]:
    """Lots [10 @ 2, 5 @ 3] for product 1, in date order."""
    return [
        make_reception(number=1, on=day(0), units="10", unit_cost="2"),
        make_reception(number=2, on=day(1), units="5", unit_cost="3"),
    ]


@pytest.fixture
def catalog() -> list[Product]:
    return [
        make_product(code=1, name="Widget"),
        make_product(code=2, name="Gadget", description="Blue gadget", unit_cost=Decimal("4")),
    ]


def write_workbook(path, sheets: dict[str, list[list]]):
    """Write an .xlsx with one sheet per entry; each value is a list of rows."""
    from openpyxl import Workbook

    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path

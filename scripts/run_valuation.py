#!/usr/bin/env python3
"""
Run a FIFO inventory valuation over a workbook export and print a JSON summary.

Loads the YAML config (or the built-in defaults), reads the products,
purchases, receptions, sales and shrinkage sheets, runs the FIFO engine and
prints totals, warnings and row-level parsing errors to stdout.  Structured
logs go to stderr.

Usage:
    python3 scripts/run_valuation.py --file <workbook.xlsx> [options]

Examples:
    # Default sheet layout
    python3 scripts/run_valuation.py --file inventario.xlsx

    # Custom layout, chronological outgoing order, drill into one product
    python3 scripts/run_valuation.py --config config/valuation.yaml \\
        --file inventario.xlsx --explain 1001

    # CSV directory (ingestion.format: csv in the config)
    python3 scripts/run_valuation.py --config csv.yaml --file exports/

    # Check the sheet layout before a full run
    python3 scripts/run_valuation.py --file inventario.xlsx --probe-only
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="FIFO inventory valuation: load -> value -> summarize.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--file",
        required=True,
        type=Path,
        help="Workbook (.xlsx) or directory of CSV files.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: built-in layout and engine settings).",
    )
    parser.add_argument(
        "--explain",
        type=int,
        default=None,
        metavar="CODE",
        help="Include lots and consumptions of one product code.",
    )
    parser.add_argument(
        "--warnings",
        type=int,
        default=20,
        metavar="N",
        help="Number of warnings and parsing errors to print (default: 20).",
    )
    parser.add_argument(
        "--probe-only",
        action="store_true",
        help="List each configured sheet (rows, columns, sample) and exit without valuing.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr output (default: WARNING).",
    )
    return parser.parse_args(argv)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def build_summary(result: Any, dataset: Any, limit: int, explain_code: int | None) -> dict[str, Any]:
    """Plain-dict summary of a run, ready for json.dumps(default=str)."""
    warnings = result.state.warnings
    summary: dict[str, Any] = {
        "sheets": list(dataset.sheets),
        "records": {
            "products": len(dataset.products),
            "purchases": len(dataset.purchases),
            "receptions": len(dataset.receptions),
            "sale_items": len(dataset.sale_items),
            "shrinkage": len(dataset.shrinkage),
        },
        "totals": {
            "inventory_value": result.inventory_value,
            "cogs": result.cogs,
            "shrinkage_cost": result.shrinkage_cost,
            "lots": len(result.state.lots),
            "consumptions": len(result.state.consumptions),
        },
        "warning_count": len(warnings),
        "warnings": [asdict(w) for w in warnings[:limit]],
        "parse_error_count": len(dataset.errors),
        "parse_errors": [asdict(e) for e in dataset.errors[:limit]],
    }
    if explain_code is not None:
        explanation = result.engine.explain(explain_code)
        summary["explain"] = {
            "product_code": explanation.product_code,
            "current_stock": explanation.current_stock,
            "current_value": explanation.current_value,
            "lots": [asdict(lot) for lot in explanation.lots],
            "consumptions": [
                {**asdict(c), "lot_id": c.lot_ref} for c in explanation.consumptions
            ],
        }
    return _jsonable(summary)


def print_probe(ingestion: Any, probes: dict[str, Any]) -> None:
    """Sheet-by-sheet preview in the configured record-kind order."""
    for kind, mapping in ingestion.sheets.items():
        probe = probes.get(kind)
        if probe is None:
            status = "required" if mapping.required else "optional"
            print(f"[{kind}] {mapping.sheet}: NOT FOUND ({status})")
            continue
        print(f"[{kind}] {mapping.sheet}")
        print(f"  Rows: {probe.row_count}")
        print(f"  Columns: {list(probe.columns)}")
        print("  Sample (first 3):")
        for i, row in enumerate(probe.sample_rows[:3], 1):
            print(f"    {i}: {row}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    source_path = args.file.resolve()
    if not source_path.exists():
        print(f"ERROR: Source not found: {source_path}", file=sys.stderr)
        return 1

    # Lazy imports so we fail fast on args first
    import yaml

    from inventory_config import default_config, load_config
    from inventory_ingestion import load_dataset, probe_dataset
    from inventory_kernel.exceptions import InventoryKernelError
    from inventory_kernel.logging_config import LogContext, configure_logging
    from inventory_services import run_fifo_valuation

    configure_logging(level=args.log_level, stream=sys.stderr)

    try:
        config = load_config(args.config) if args.config else default_config()
    except InventoryKernelError as e:
        print(f"ERROR: Failed to load config: [{e.code}] {e}", file=sys.stderr)
        return 1
    except (OSError, yaml.YAMLError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    if args.probe_only:
        try:
            probes = probe_dataset(source_path, config.ingestion)
        except InventoryKernelError as e:
            print(f"ERROR: Failed to probe source: [{e.code}] {e}", file=sys.stderr)
            return 1
        print_probe(config.ingestion, probes)
        return 0

    with LogContext.bind(source_file=str(source_path)):
        try:
            dataset = load_dataset(source_path, config.ingestion)
        except InventoryKernelError as e:
            print(f"ERROR: Failed to load source: [{e.code}] {e}", file=sys.stderr)
            return 1

        result = run_fifo_valuation(
            dataset.products,
            dataset.purchases,
            dataset.receptions,
            dataset.sale_items,
            dataset.shrinkage,
            settings=config.engine,
        )

    summary = build_summary(result, dataset, args.warnings, args.explain)
    print(json.dumps(summary, indent=2, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
inventory_services.fifo_service -- Stateful FIFO inventory valuation engine.

Responsibility:
    Turn receptions into cost lots, draw those lots down oldest-first for
    shrinkage and sale lines, and keep the audit trail (consumption records)
    and data-quality warnings that explain every cost it assigns.

Architecture position:
    Services -- stateful orchestration over the pure valuation engines.
    Composes LotLedger (lot state), PurchaseCostIndex and
    resolve_unit_cost (reception cost fallback chain).

Invariants enforced:
    - Two phases, BUILDING then CONSUMING.  Receptions can only be ingested
      while building; the first consumption call moves the engine to
      CONSUMING for good.
    - Every request that cannot be met from lots yields exactly one
      NEGATIVE_STOCK warning and exactly one virtual consumption record for
      the shortfall, costed at the mean unit cost of the product's lots.
    - A reception with no derivable cost yields a NO_COST warning and a lot
      at cost 0.
    - The audit trail and warning log are append-only and only leave the
      engine as tuples.

Failure modes:
    - EnginePhaseError from ingest_receptions once consumption has started.
    - Data-quality problems are never raised; see the warnings log.

Audit relevance:
    ``explain(product_code)`` shows, for one product, every lot with its
    origin reception and every consumption with its outgoing reference, so
    any COGS figure can be traced back to the receptions that funded it.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from uuid import UUID, uuid5

from inventory_config.schema import EngineSettings, OutgoingOrder
from inventory_engines.valuation import (
    ConsumptionRecord,
    FIFOWarning,
    Lot,
    LotLedger,
    OutgoingKind,
    PurchaseCostIndex,
    WarningKind,
    resolve_unit_cost,
)
from inventory_kernel.domain.records import (
    Product,
    Purchase,
    Reception,
    SaleItem,
    Shrinkage,
)
from inventory_kernel.exceptions import EnginePhaseError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.fifo")

_CONSUMPTION_NAMESPACE = UUID("0b9d6a51-7c2e-5f14-8e3a-d25c1f9b7a60")

_ZERO = Decimal("0")


class EnginePhase(str, Enum):
    BUILDING = "building"
    CONSUMING = "consuming"


@dataclass(frozen=True)
class FIFOState:
    """Full audit snapshot of an engine."""

    lots: tuple[Lot, ...]
    consumptions: tuple[ConsumptionRecord, ...]
    warnings: tuple[FIFOWarning, ...]


@dataclass(frozen=True)
class ProductValuation:
    quantity: Decimal
    value: Decimal


@dataclass(frozen=True)
class InventoryValuation:
    """Value of stock still available in lots."""

    total: Decimal
    by_product: Mapping[int, ProductValuation]


@dataclass(frozen=True)
class ProductExplanation:
    """Audit drill-down for one product."""

    product_code: int
    lots: tuple[Lot, ...]
    consumptions: tuple[ConsumptionRecord, ...]
    current_stock: Decimal
    current_value: Decimal


@dataclass(frozen=True)
class DepletionResult:
    """Outcome of one outgoing request against the lots."""

    total_cost: Decimal
    consumptions: tuple[ConsumptionRecord, ...]

    @property
    def shortfall(self) -> Decimal:
        return sum((c.quantity for c in self.consumptions if c.is_virtual), _ZERO)


class FIFOEngine:
    """
    FIFO cost-lot engine for one dataset.

    Contract:
        Construct with the product catalog and purchases, call
        ``ingest_receptions`` (one or more times), then consume outgoing
        events.  One instance processes exactly one dataset; it is not safe
        for concurrent use.
    Guarantees:
        - Deterministic: identical inputs produce identical lots,
          consumptions (ids included), warnings and costs.
        - Outgoing records are returned as decorated copies; inputs are
          never mutated.
    Non-goals:
        - No persistence, no rollback.
        - Does not parse source files; see inventory_ingestion.

    Usage:
        engine = FIFOEngine(products, purchases)
        engine.ingest_receptions(receptions)
        shrinkage = engine.consume_shrinkage(shrinkage)
        items = engine.consume_sales(items)
        engine.get_cogs()
    """

    def __init__(
        self,
        products: Iterable[Product],
        purchases: Iterable[Purchase],
        settings: EngineSettings | None = None,
    ):
        self.settings = settings or EngineSettings()
        self._products: dict[int, Product] = {p.code: p for p in products}
        self._purchases = PurchaseCostIndex(purchases)
        self._ledger = LotLedger()
        self._consumptions: list[ConsumptionRecord] = []
        self._warnings: list[FIFOWarning] = []
        self._phase = EnginePhase.BUILDING
        self._receptions_ingested = 0
        self._consumption_seq = 0

    @property
    def phase(self) -> EnginePhase:
        return self._phase

    # =========================================================================
    # Build phase
    # =========================================================================

    def ingest_receptions(self, receptions: Iterable[Reception]) -> None:
        """
        Create one lot per reception with a positive unit count.

        Receptions are processed in date order (stable), so lot arrival order
        on a shared date follows input order.  Receptions with units <= 0 are
        skipped without a warning.

        Raises:
            EnginePhaseError: if consumption has already started.
        """
        if self._phase is not EnginePhase.BUILDING:
            logger.error("fifo_ingest_after_consume", extra={"phase": self._phase.value})
            raise EnginePhaseError("ingest_receptions", self._phase.value)

        ordered = sorted(receptions, key=lambda r: r.reception_date)
        created = skipped = 0

        for reception in ordered:
            if reception.units <= 0:
                skipped += 1
                continue
            self._create_lot(reception)
            created += 1

        self._receptions_ingested += created
        logger.info("fifo_receptions_ingested", extra={
            "receptions": len(ordered),
            "lots_created": created,
            "skipped_non_positive": skipped,
            "lot_count": self._ledger.lot_count(),
        })

    def _create_lot(self, reception: Reception) -> Lot:
        resolution = resolve_unit_cost(
            reception,
            self._purchases,
            self._products,
            self.settings.purchase_match_window_days,
        )

        unit_cost = resolution.unit_cost
        if unit_cost is None:
            self._warn(
                WarningKind.NO_COST,
                product_code=reception.product_code,
                product_label=self._reception_label(reception),
                message="Reception has no derivable unit cost; lot valued at 0",
                event_date=reception.reception_date,
                reference=reception.reference,
            )
            unit_cost = _ZERO

        lot = self._ledger.add_lot(
            product_code=reception.product_code,
            entry_date=reception.reception_date,
            quantity=reception.units,
            unit_cost=unit_cost,
            origin_ref=reception.reference,
            supplier=reception.supplier,
        )
        logger.debug("fifo_lot_created", extra={
            "lot_id": str(lot.lot_id),
            "product_code": lot.product_code,
            "quantity": str(lot.initial_quantity),
            "unit_cost": str(lot.unit_cost),
            "cost_source": resolution.source.value,
            "purchase_number": resolution.purchase_number,
            "origin_ref": lot.origin_ref,
        })
        return lot

    # =========================================================================
    # Consume phase
    # =========================================================================

    def consume(
        self,
        product_code: int,
        quantity: Decimal,
        event_date: date | None,
        kind: OutgoingKind,
        reference: str,
    ) -> DepletionResult:
        """
        Draw ``|quantity|`` units of a product from its lots, oldest first.

        Postconditions:
            - One consumption record per lot actually drawn from.
            - If lots run out: one NEGATIVE_STOCK warning and one virtual
              record for the remainder at the mean unit cost of ALL the
              product's lots (0 when it has none).
            - ``total_cost`` equals the sum of the records' total costs.
        """
        self._enter_consuming("consume")

        requested = abs(quantity)
        draws, remaining = self._ledger.draw(product_code, requested)

        generated: list[ConsumptionRecord] = []
        total_cost = _ZERO
        for draw in draws:
            cost = draw.cost
            total_cost += cost
            generated.append(self._record(
                lot_id=draw.lot.lot_id,
                product_code=product_code,
                event_date=event_date,
                quantity=draw.quantity,
                unit_cost=draw.lot.unit_cost,
                total_cost=cost,
                kind=kind,
                reference=reference,
            ))

        if self.settings.flag_inconsistent_dates and event_date is not None:
            late = [d.lot for d in draws if d.lot.entry_date > event_date]
            if late:
                self._warn(
                    WarningKind.INCONSISTENT_DATE,
                    product_code=product_code,
                    product_label=self._product_label(product_code),
                    message=(
                        f"Outgoing dated {event_date.isoformat()} drew from lot "
                        f"{late[0].origin_ref} entered {late[0].entry_date.isoformat()}"
                    ),
                    event_date=event_date,
                    reference=reference,
                )

        if remaining > 0:
            self._warn(
                WarningKind.NEGATIVE_STOCK,
                product_code=product_code,
                product_label=self._product_label(product_code),
                message=f"Insufficient stock: short by {remaining} units",
                event_date=event_date,
                reference=reference,
            )
            mean_cost = self._ledger.mean_unit_cost(product_code)
            virtual_cost = remaining * mean_cost
            total_cost += virtual_cost
            generated.append(self._record(
                lot_id=None,
                product_code=product_code,
                event_date=event_date,
                quantity=remaining,
                unit_cost=mean_cost,
                total_cost=virtual_cost,
                kind=kind,
                reference=reference,
            ))

        self._consumptions.extend(generated)
        return DepletionResult(total_cost=total_cost, consumptions=tuple(generated))

    def consume_shrinkage(self, records: Iterable[Shrinkage]) -> list[Shrinkage]:
        """
        Cost shrinkage records in date order (stable).

        Returns copies decorated with ``fifo_cost``, in the order processed.
        """
        self._enter_consuming("consume_shrinkage")
        ordered = sorted(records, key=lambda r: r.shrinkage_date)
        processed = [self._process_shrinkage(record) for record in ordered]

        logger.info("fifo_shrinkage_consumed", extra={
            "records": len(processed),
            "shrinkage_cost": str(self.get_shrinkage_cost()),
        })
        return processed

    def consume_sales(self, items: Iterable[SaleItem]) -> list[SaleItem]:
        """
        Cost sale lines in input order.

        Returns copies decorated with ``fifo_cost`` and ``gross_margin``.
        """
        self._enter_consuming("consume_sales")
        processed = [self._process_sale(item) for item in items]

        logger.info("fifo_sales_consumed", extra={
            "items": len(processed),
            "cogs": str(self.get_cogs()),
        })
        return processed

    def consume_outgoing(
        self,
        shrinkage: Iterable[Shrinkage],
        sales: Iterable[SaleItem],
    ) -> tuple[list[Shrinkage], list[SaleItem]]:
        """
        Consume shrinkage and sales under the configured ordering policy.

        TWO_PASS: all shrinkage (date order) then all sales (input order).
        CHRONOLOGICAL: one queue sorted by date; on a shared date shrinkage
        goes before sales and input order is kept; undated sales follow all
        dated events in input order.

        Returns shrinkage in date order and sales in input order under both
        policies.
        """
        if self.settings.outgoing_order is OutgoingOrder.TWO_PASS:
            return self.consume_shrinkage(shrinkage), self.consume_sales(sales)

        self._enter_consuming("consume_outgoing")
        shrinkage = sorted(shrinkage, key=lambda r: r.shrinkage_date)
        sales = list(sales)

        dated: list[tuple[date, int, int]] = [
            (record.shrinkage_date, 0, i) for i, record in enumerate(shrinkage)
        ]
        dated.extend(
            (item.sale_date, 1, i) for i, item in enumerate(sales) if item.sale_date is not None
        )
        dated.sort()
        undated = [i for i, item in enumerate(sales) if item.sale_date is None]

        processed_shrinkage: list[Shrinkage | None] = [None] * len(shrinkage)
        processed_sales: list[SaleItem | None] = [None] * len(sales)
        for _, source, i in dated:
            if source == 0:
                processed_shrinkage[i] = self._process_shrinkage(shrinkage[i])
            else:
                processed_sales[i] = self._process_sale(sales[i])
        for i in undated:
            processed_sales[i] = self._process_sale(sales[i])

        logger.info("fifo_outgoing_consumed", extra={
            "order": self.settings.outgoing_order.value,
            "shrinkage_records": len(shrinkage),
            "sale_items": len(sales),
            "undated_sale_items": len(undated),
            "cogs": str(self.get_cogs()),
            "shrinkage_cost": str(self.get_shrinkage_cost()),
        })
        return list(processed_shrinkage), list(processed_sales)

    def _process_shrinkage(self, record: Shrinkage) -> Shrinkage:
        quantity = abs(record.quantity)
        if quantity <= 0:
            return dataclasses.replace(record, fifo_cost=_ZERO)
        result = self.consume(
            record.product_code,
            quantity,
            record.shrinkage_date,
            OutgoingKind.SHRINKAGE,
            record.reference,
        )
        return dataclasses.replace(record, fifo_cost=result.total_cost)

    def _process_sale(self, item: SaleItem) -> SaleItem:
        quantity = item.total_units if item.total_units > 0 else abs(item.quantity)
        if quantity <= 0:
            return dataclasses.replace(item, fifo_cost=_ZERO, gross_margin=_ZERO)

        result = self.consume(
            item.product_code,
            quantity,
            item.sale_date,
            OutgoingKind.SALE,
            item.reference,
        )
        revenue = (item.unit_price or _ZERO) * abs(item.quantity)
        return dataclasses.replace(
            item,
            fifo_cost=result.total_cost,
            gross_margin=revenue - result.total_cost,
        )

    def _enter_consuming(self, operation: str) -> None:
        if self._phase is EnginePhase.CONSUMING:
            return
        if self._receptions_ingested == 0:
            logger.warning("fifo_consume_before_ingest", extra={
                "operation": operation,
                "lot_count": self._ledger.lot_count(),
            })
        self._phase = EnginePhase.CONSUMING

    # =========================================================================
    # Queries
    # =========================================================================

    def get_state(self) -> FIFOState:
        return FIFOState(
            lots=self._ledger.all_lots(),
            consumptions=tuple(self._consumptions),
            warnings=tuple(self._warnings),
        )

    def get_inventory_value(self) -> InventoryValuation:
        """Total and per-product value of lots with stock still available."""
        by_product: dict[int, ProductValuation] = {}
        total = _ZERO
        for code in self._ledger.product_codes():
            quantity = self._ledger.available_quantity(code)
            if quantity <= 0:
                continue
            value = self._ledger.available_value(code)
            by_product[code] = ProductValuation(quantity=quantity, value=value)
            total += value
        return InventoryValuation(total=total, by_product=MappingProxyType(by_product))

    def get_cogs(self) -> Decimal:
        return self._sum_cost(OutgoingKind.SALE)

    def get_shrinkage_cost(self) -> Decimal:
        return self._sum_cost(OutgoingKind.SHRINKAGE)

    def explain(self, product_code: int) -> ProductExplanation:
        """Lots and consumptions of one product, from current state."""
        return ProductExplanation(
            product_code=product_code,
            lots=self._ledger.lots(product_code),
            consumptions=tuple(c for c in self._consumptions if c.product_code == product_code),
            current_stock=self._ledger.available_quantity(product_code),
            current_value=self._ledger.available_value(product_code),
        )

    def _sum_cost(self, kind: OutgoingKind) -> Decimal:
        return sum((c.total_cost for c in self._consumptions if c.kind is kind), _ZERO)

    # =========================================================================
    # Internals
    # =========================================================================

    def _record(
        self,
        *,
        lot_id: UUID | None,
        product_code: int,
        event_date: date | None,
        quantity: Decimal,
        unit_cost: Decimal,
        total_cost: Decimal,
        kind: OutgoingKind,
        reference: str,
    ) -> ConsumptionRecord:
        self._consumption_seq += 1
        return ConsumptionRecord(
            consumption_id=uuid5(_CONSUMPTION_NAMESPACE, f"{reference}:{lot_id}:{self._consumption_seq}"),
            lot_id=lot_id,
            product_code=product_code,
            outgoing_date=event_date,
            quantity=quantity,
            unit_cost=unit_cost,
            total_cost=total_cost,
            kind=kind,
            outgoing_ref=reference,
        )

    def _warn(
        self,
        kind: WarningKind,
        *,
        product_code: int,
        product_label: str,
        message: str,
        event_date: date | None,
        reference: str,
    ) -> None:
        self._warnings.append(FIFOWarning(
            kind=kind,
            product_code=product_code,
            product_label=product_label,
            message=message,
            event_date=event_date,
            reference=reference,
        ))
        logger.warning("fifo_warning_recorded", extra={
            "warning_kind": kind.value,
            "product_code": product_code,
            "reference": reference,
            "detail": message,
        })

    def _product_label(self, product_code: int) -> str:
        product = self._products.get(product_code)
        return product.label if product is not None else f"Product {product_code}"

    def _reception_label(self, reception: Reception) -> str:
        return reception.product_name or self._product_label(reception.product_code)

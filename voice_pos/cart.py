"""
Cashier cart: the open sale, tendered amount and sales history.

State of the open sale::

    EMPTY --add_item--> BUILDING --commit_sale / cancel_sale--> EMPTY
                        BUILDING --add_item / remove_line / set_quantity--> BUILDING
                        (removing the last line also returns to EMPTY)

Items are merged by name: adding a name already in the sale raises that
line's quantity. Every mutation is announced to subscribers as a CartEvent;
the cart never renders anything itself.

Committing is asynchronous because the sale is handed to a persistence
collaborator first. Only after it acknowledges is the sale recorded and the
cart cleared; if persistence fails the cart is left exactly as it was.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import EmptySale, InsufficientPayment, PersistenceFailure
from .services.sales import SalePersister

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def to_money(value: Any) -> Decimal:
    """Convert a wire/float price to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class SaleState(str, Enum):
    EMPTY = "empty"
    BUILDING = "building"


class CartEventKind(str, Enum):
    ITEM_ADDED = "item_added"
    LINE_REMOVED = "line_removed"
    QUANTITY_SET = "quantity_set"
    TENDER_CHANGED = "tender_changed"
    SALE_COMMITTED = "sale_committed"
    SALE_CANCELLED = "sale_cancelled"


@dataclass(frozen=True)
class CartLine:
    id: int
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_wire(self) -> Dict[str, Any]:
        return {"name": self.name, "price": float(self.unit_price), "quantity": self.quantity}


@dataclass(frozen=True)
class SaleRecord:
    id: str
    timestamp: datetime
    lines: Tuple[CartLine, ...]
    total: Decimal


@dataclass(frozen=True)
class CartEvent:
    kind: CartEventKind
    line: Optional[CartLine] = None
    sale: Optional[SaleRecord] = None
    change: Optional[Decimal] = None


CartObserver = Callable[[CartEvent], None]


class CartAggregator:
    """The cashier's open sale plus running totals for the day."""

    def __init__(self, persister: Optional[SalePersister] = None):
        self._persister = persister
        self._lines: List[CartLine] = []
        self._next_line_id = 1
        self._observers: List[CartObserver] = []
        self._commit_lock = asyncio.Lock()
        self.tendered = ZERO
        self.history: List[SaleRecord] = []
        self.total_sales = ZERO
        self.total_orders = 0

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def state(self) -> SaleState:
        return SaleState.BUILDING if self._lines else SaleState.EMPTY

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), ZERO)

    @property
    def change(self) -> Decimal:
        return max(ZERO, self.tendered - self.total)

    def find_line(self, line_id: int) -> Optional[CartLine]:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def subscribe(self, observer: CartObserver) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _emit(self, event: CartEvent) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.exception("Cart observer failed on %s", event.kind.value)

    # -------------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------------

    def add_item(self, name: str, unit_price: Any, quantity: int = 1) -> CartLine:
        """Add ``quantity`` of an item, merging with an existing line of the same name."""
        price = to_money(unit_price)
        if price < 0:
            raise ValueError(f"Price must not be negative: {unit_price}")
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1: {quantity}")

        for index, line in enumerate(self._lines):
            if line.name == name:
                updated = replace(line, quantity=line.quantity + quantity)
                self._lines[index] = updated
                break
        else:
            updated = CartLine(id=self._next_line_id, name=name, unit_price=price, quantity=quantity)
            self._next_line_id += 1
            self._lines.append(updated)

        logger.info("Added %dx %s to cart", quantity, name)
        self._emit(CartEvent(CartEventKind.ITEM_ADDED, line=updated))
        return updated

    def remove_line(self, line_id: int) -> bool:
        line = self.find_line(line_id)
        if line is None:
            return False
        self._lines.remove(line)
        self._emit(CartEvent(CartEventKind.LINE_REMOVED, line=line))
        return True

    def set_quantity(self, line_id: int, quantity: int) -> bool:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            return self.remove_line(line_id)
        for index, line in enumerate(self._lines):
            if line.id == line_id:
                updated = replace(line, quantity=quantity)
                self._lines[index] = updated
                self._emit(CartEvent(CartEventKind.QUANTITY_SET, line=updated))
                return True
        return False

    # -------------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------------

    def record_tender(self, digit: int) -> Decimal:
        """Append one keypad digit to the tendered amount."""
        if isinstance(digit, bool) or not isinstance(digit, int) or not 0 <= digit <= 9:
            raise ValueError(f"Tender digit must be 0-9: {digit!r}")
        self.tendered = self.tendered * 10 + digit
        self._emit(CartEvent(CartEventKind.TENDER_CHANGED))
        return self.tendered

    def clear_tender(self) -> None:
        self.tendered = ZERO
        self._emit(CartEvent(CartEventKind.TENDER_CHANGED))

    # -------------------------------------------------------------------------
    # Sale completion
    # -------------------------------------------------------------------------

    async def commit_sale(self) -> Decimal:
        """
        Complete the open sale.

        Returns:
            Change due to the customer.

        Raises:
            EmptySale: No lines, or a total of zero.
            InsufficientPayment: Tendered amount below the total.
            PersistenceFailure: The sale could not be saved; nothing changed.
        """
        async with self._commit_lock:
            total = self.total
            if not self._lines or total <= 0:
                raise EmptySale()
            if self.tendered < total:
                raise InsufficientPayment(self.tendered, total)

            lines = tuple(self._lines)
            tendered = self.tendered
            await self._persist(lines, total)

            sale = SaleRecord(
                id=str(uuid.uuid4()),
                timestamp=datetime.now(timezone.utc),
                lines=lines,
                total=total,
            )
            self.history.insert(0, sale)
            self.total_sales += total
            self.total_orders += 1
            change = max(ZERO, tendered - total)

            self._lines = self._lines_added_during_commit(lines)
            self.tendered = ZERO

            logger.info("Sale completed: %d lines, total %.2f, change %.2f", len(lines), total, change)
            self._emit(CartEvent(CartEventKind.SALE_COMMITTED, sale=sale, change=change))
            return change

    async def _persist(self, lines: Tuple[CartLine, ...], total: Decimal) -> None:
        if self._persister is None:
            return
        items = [line.to_wire() for line in lines]
        try:
            await asyncio.to_thread(self._persister.complete_sale, items, float(total))
        except PersistenceFailure:
            logger.error("Error saving sale; sale left open for retry")
            raise
        except Exception as e:
            logger.exception("Unexpected error saving sale; sale left open for retry")
            raise PersistenceFailure(str(e)) from e

    def _lines_added_during_commit(self, committed: Tuple[CartLine, ...]) -> List[CartLine]:
        """Lines (or extra quantity) that arrived while the sale was being saved."""
        sold = {line.name: line.quantity for line in committed}
        remaining = []
        for line in self._lines:
            extra = line.quantity - sold.get(line.name, 0)
            if extra > 0:
                remaining.append(replace(line, quantity=extra))
        return remaining

    def cancel_sale(self) -> None:
        """Drop the open sale and tendered amount without recording anything."""
        self._lines = []
        self.tendered = ZERO
        logger.info("Sale cancelled")
        self._emit(CartEvent(CartEventKind.SALE_CANCELLED))

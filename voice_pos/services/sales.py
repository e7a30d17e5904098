"""
Sale Persistence Service for Voice POS
======================================

Completed sales are written to the ``orders`` table, one row per sold line.
The cashier cart never talks to the database itself; it is handed a
persistence collaborator with a single operation::

    complete_sale(items, total) -> {"items": [... with ids ...], "total": total}

Two collaborators are provided:

- **HttpSalePersister**: POSTs to /api/complete-sale on the server. Used by
  a cart running in a separate process from the API.
- **DatabaseSalePersister**: writes through a SQLAlchemy session factory
  directly. Used when the cart runs in-process with the database.

Atomicity:
----------
All lines of a sale are inserted in one transaction. Either every line is
stored or, on error, the transaction is rolled back and PersistenceFailure is
raised, so the caller can leave the sale open and retry.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import PersistenceFailure
from ..models import OrderLine


logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


def _item_field(item: Any, field: str) -> Any:
    if isinstance(item, dict):
        return item.get(field)
    return getattr(item, field)


def record_completed_sale(db: Session, items: Sequence[Any], total: float) -> Dict[str, Any]:
    """
    Persist the lines of a committed sale.

    Args:
        db: Database session
        items: Lines with name, price and quantity (dicts or SaleItemIn)
        total: Sale total as computed by the cart

    Returns:
        Dict with the saved lines (including ids and line totals) and the total

    Raises:
        PersistenceFailure: The insert failed; nothing was stored.
    """
    rows: List[OrderLine] = []
    for item in items:
        price = float(_item_field(item, "price"))
        quantity = int(_item_field(item, "quantity"))
        rows.append(OrderLine(
            item_name=_item_field(item, "name"),
            quantity=quantity,
            price=price,
            total_price=price * quantity,
        ))

    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database error saving sale: %s", e)
        raise PersistenceFailure(f"Database error: {e}") from e

    saved = [
        {
            "id": row.id,
            "name": row.item_name,
            "quantity": row.quantity,
            "price": row.price,
            "total_price": row.total_price,
        }
        for row in rows
    ]
    logger.info("Sale completed: %d items saved to database", len(saved))
    return {"items": saved, "total": total}


class SalePersister(ABC):
    """Persistence collaborator of the cashier cart."""

    @abstractmethod
    def complete_sale(self, items: List[Dict[str, Any]], total: float) -> Dict[str, Any]:
        """Persist a sale or raise PersistenceFailure."""


class DatabaseSalePersister(SalePersister):
    """Writes sales through a SQLAlchemy session factory."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def complete_sale(self, items: List[Dict[str, Any]], total: float) -> Dict[str, Any]:
        db = self._session_factory()
        try:
            return record_completed_sale(db, items, total)
        finally:
            db.close()


class HttpSalePersister(SalePersister):
    """Posts sales to the /api/complete-sale endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT,
        http: Optional[requests.Session] = None,
    ):
        self.url = base_url.rstrip("/") + "/api/complete-sale"
        self.timeout = timeout
        self._http = http or requests.Session()

    def complete_sale(self, items: List[Dict[str, Any]], total: float) -> Dict[str, Any]:
        try:
            response = self._http.post(
                self.url,
                json={"items": items, "total": total},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Error saving sale: %s", e)
            raise PersistenceFailure(f"Request failed: {e}") from e

        if not response.ok:
            logger.error("Sale rejected by server: HTTP %d", response.status_code)
            raise PersistenceFailure(f"HTTP error! status: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise PersistenceFailure("Server returned an unreadable response") from e

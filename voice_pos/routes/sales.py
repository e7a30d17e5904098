"""
Sales and Configuration Routes for Voice POS
============================================

Endpoints:
----------
- GET /api/config: Model credential for the voice page
- POST /api/complete-sale: Persist a committed sale, one row per line
- GET /api/orders: All persisted order lines, newest first
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import config
from ..db import get_db
from ..errors import PersistenceFailure
from ..models import OrderLine
from ..schemas.sales import (
    ClientConfigOut,
    CompleteSaleRequest,
    CompleteSaleResponse,
    OrderLineOut,
    SavedSaleItem,
)
from ..services.sales import record_completed_sale

logger = logging.getLogger(__name__)

sales_router = APIRouter(prefix="/api", tags=["Sales"])


@sales_router.get("/config", response_model=ClientConfigOut)
def get_client_config() -> ClientConfigOut:
    """Hand the model credential (or its placeholder) to the voice page."""
    return ClientConfigOut(api_key=config.GOOGLE_API_KEY or config.API_KEY_PLACEHOLDER)


@sales_router.post("/complete-sale", response_model=CompleteSaleResponse)
def complete_sale(
    req: CompleteSaleRequest,
    db: Session = Depends(get_db),
) -> CompleteSaleResponse:
    """Save a completed sale to the database."""
    if not req.items:
        raise HTTPException(status_code=400, detail="No items provided for sale")

    logger.info("Saving completed sale to database: %d items, total %.2f", len(req.items), req.total)
    try:
        result = record_completed_sale(db, req.items, req.total)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))

    return CompleteSaleResponse(
        message=f"Sale completed: {len(result['items'])} items saved",
        items=[SavedSaleItem(**item) for item in result["items"]],
        total=result["total"],
    )


@sales_router.get("/orders", response_model=List[OrderLineOut])
def list_orders(db: Session = Depends(get_db)) -> List[OrderLine]:
    """Return every persisted order line, newest first."""
    return (
        db.query(OrderLine)
        .order_by(OrderLine.timestamp.desc(), OrderLine.id.desc())
        .all()
    )

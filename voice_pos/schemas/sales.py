"""
Sales Schemas for Voice POS
===========================

Pydantic models for the sale persistence endpoints used by the cashier page.

Endpoint Coverage:
------------------
- POST /api/complete-sale: Persist the lines of a committed sale
- GET /api/orders: List persisted order lines, newest first

Each sold cart line becomes one row in the ``orders`` table; the response
echoes the lines back with their database ids and line totals.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SaleItemIn(BaseModel):
    """A cart line as sent by the cashier page."""
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class CompleteSaleRequest(BaseModel):
    """
    Request body for POST /api/complete-sale.

    ``items`` may be omitted or empty; the route answers that case with 400
    rather than a validation error so the cashier page can show one message.
    """
    items: List[SaleItemIn] = Field(default_factory=list)
    total: float = 0.0


class SavedSaleItem(BaseModel):
    """A persisted line with its assigned id."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    quantity: int
    price: float
    total_price: float = Field(..., serialization_alias="totalPrice")


class CompleteSaleResponse(BaseModel):
    message: str
    items: List[SavedSaleItem]
    total: float


class OrderLineOut(BaseModel):
    """Row of the orders table."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_name: str
    quantity: int
    price: float
    total_price: float
    timestamp: Optional[datetime] = None


class ClientConfigOut(BaseModel):
    """Configuration handed to the browser pages."""
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(..., serialization_alias="apiKey")

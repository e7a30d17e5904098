"""
Schemas Package for Voice POS
=============================

Pydantic models for the relay wire format and the HTTP API.

Schema Organization:
--------------------
- **relay.py**: Relay channel envelope and ADD_ITEM payload
- **sales.py**: Sale persistence request/response models
"""

from .relay import (
    ADD_ITEM,
    AddItemData,
    RelayMessage,
    decode_frame,
    parse_message,
)

from .sales import (
    SaleItemIn,
    CompleteSaleRequest,
    SavedSaleItem,
    CompleteSaleResponse,
    OrderLineOut,
    ClientConfigOut,
)

__all__ = [
    "ADD_ITEM",
    "AddItemData",
    "RelayMessage",
    "decode_frame",
    "parse_message",
    "SaleItemIn",
    "CompleteSaleRequest",
    "SavedSaleItem",
    "CompleteSaleResponse",
    "OrderLineOut",
    "ClientConfigOut",
]

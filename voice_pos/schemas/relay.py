"""
Relay Channel Schemas
=====================

Wire format of the real-time relay between the voice (producer) page and the
cashier (consumer) pages. Every frame is a JSON text frame shaped as a tagged
event::

    {"type": "ADD_ITEM", "data": {"name": "Teh ais", "price": 3.0, "quantity": 1}}

The hub forwards any JSON object unchanged; only consumers interpret ``type``.
Messages are frozen once built so a sent message cannot be altered.
"""

import json
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import MalformedPayload

ADD_ITEM = "ADD_ITEM"


class AddItemData(BaseModel):
    """Payload of an ADD_ITEM event."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)


class RelayMessage(BaseModel):
    """Tagged relay event."""
    model_config = ConfigDict(frozen=True)

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def add_item(cls, name: str, price: float, quantity: int = 1) -> "RelayMessage":
        data = AddItemData(name=name, price=price, quantity=quantity)
        return cls(type=ADD_ITEM, data=data.model_dump())

    def encode(self) -> str:
        return json.dumps(self.model_dump())

    def add_item_data(self) -> AddItemData:
        """Validate ``data`` as an ADD_ITEM payload."""
        try:
            return AddItemData.model_validate(self.data)
        except ValidationError as e:
            raise MalformedPayload(f"Invalid {ADD_ITEM} data: {e.errors()}", self.data) from e


def decode_frame(raw: Any) -> Dict[str, Any]:
    """
    Decode a raw frame into a JSON object.

    Raises:
        MalformedPayload: The frame is not UTF-8 JSON or not an object.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayload("Frame is not UTF-8 text", raw) from e
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedPayload(f"Frame is not valid JSON: {e}", raw) from e
    if not isinstance(decoded, dict):
        raise MalformedPayload("Frame is not a JSON object", raw)
    return decoded


def parse_message(raw: Any) -> RelayMessage:
    """Decode a frame into a RelayMessage envelope."""
    decoded = decode_frame(raw)
    try:
        return RelayMessage.model_validate(decoded)
    except ValidationError as e:
        raise MalformedPayload(f"Invalid relay envelope: {e.errors()}", decoded) from e

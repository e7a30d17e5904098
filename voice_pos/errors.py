"""
Error taxonomy for the relay pipeline and the cashier cart.

- MalformedPayload: an unparsable relay frame or structured block. Logged and
  dropped; never closes a connection.
- EmptySale / InsufficientPayment: user-facing refusals of a commit. The cart
  is left exactly as it was.
- ChannelDisconnected: the relay link is down. Drives automatic reconnection
  and is not surfaced as a hard failure.
- PersistenceFailure: the sale could not be saved. The sale stays open so the
  operator can retry.
"""

from decimal import Decimal


class VoicePosError(Exception):
    """Base class for all voice POS errors."""


class MalformedPayload(VoicePosError):
    """A payload could not be decoded into the expected shape."""

    def __init__(self, message: str, payload=None):
        super().__init__(message)
        self.payload = payload


class SaleRefused(VoicePosError):
    """A commit was refused; the open sale is unchanged."""


class EmptySale(SaleRefused):
    def __init__(self):
        super().__init__("Cannot complete empty sale")


class InsufficientPayment(SaleRefused):
    def __init__(self, tendered: Decimal, total: Decimal):
        super().__init__(f"Insufficient payment: tendered {tendered:.2f}, total {total:.2f}")
        self.tendered = tendered
        self.total = total


class ChannelDisconnected(VoicePosError):
    """The relay connection is not open."""


class PersistenceFailure(VoicePosError):
    """The persistence collaborator did not acknowledge a sale."""


class ModelUnavailable(VoicePosError):
    """No usable credential for the conversational model."""

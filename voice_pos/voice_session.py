"""
Producing side of the relay: the voice page's session context.

Model frames are fed in as they arrive. Text fragments accumulate in the
transcript; when the transcript completes an order block it is extracted and
each item is sent to the cashier pages as one ADD_ITEM message.

Cancellation:
-------------
Extraction results are tagged with the transcript generation they came from.
``clear_transcript()`` marks every earlier generation as discarded, so a
result that is still being sent when the operator clears stops at the next
item and is never applied further.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .config import GEMINI_MODEL
from .menu_vocabulary import MenuEntry, build_vocabulary
from .model_stream import build_setup_message, is_setup_complete, iter_text_fragments
from .order_extraction import ExtractedItem, extract
from .relay.endpoint import RelayEndpoint
from .schemas.relay import RelayMessage
from .transcript import CompletionSignal, TranscriptAccumulator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionResult:
    generation: int
    items: Tuple[ExtractedItem, ...]


class VoiceSession:
    """One voice page: transcript, menu vocabulary and the relay it sends on."""

    def __init__(
        self,
        endpoint: RelayEndpoint,
        instructions: str = "",
        accumulator: Optional[TranscriptAccumulator] = None,
        model: str = GEMINI_MODEL,
    ):
        self.endpoint = endpoint
        self.model = model
        self.accumulator = accumulator or TranscriptAccumulator()
        self.model_ready = False
        self._instructions = (instructions or "").strip()
        self._active_instructions: Optional[str] = None
        self._vocabulary: Dict[str, MenuEntry] = build_vocabulary(self._instructions)
        self._discard_below = 0

    # -------------------------------------------------------------------------
    # Instructions and vocabulary
    # -------------------------------------------------------------------------

    @property
    def instructions(self) -> str:
        return self._instructions

    @property
    def vocabulary(self) -> Dict[str, MenuEntry]:
        return self._vocabulary

    def update_instructions(self, text: str) -> bool:
        """
        Replace the session instructions.

        Returns:
            True when a model session is open with different instructions and
            must be reconnected for the change to take effect.
        """
        self._instructions = (text or "").strip()
        self._vocabulary = build_vocabulary(self._instructions)
        needs_reconnect = self.model_ready and self._instructions != self._active_instructions
        if needs_reconnect:
            logger.info("Instructions changed; reconnect the model to apply them")
        return needs_reconnect

    def build_setup_message(self) -> Dict[str, Any]:
        self._active_instructions = self._instructions
        return build_setup_message(self._instructions, self.model)

    # -------------------------------------------------------------------------
    # Model stream input
    # -------------------------------------------------------------------------

    async def handle_model_message(self, message: Dict[str, Any]) -> int:
        """Process one decoded model frame. Returns the number of items relayed."""
        if is_setup_complete(message):
            self.model_ready = True
            logger.info("Model session ready")
            return 0

        sent = 0
        for fragment in iter_text_fragments(message):
            sent += await self.append_fragment(fragment)
        return sent

    async def append_fragment(self, fragment: str) -> int:
        signal = self.accumulator.append(fragment)
        if not signal.ready:
            return 0
        return await self.apply_extraction(self.extract(signal))

    def extract(self, signal: CompletionSignal) -> ExtractionResult:
        items = extract(signal.text, self._vocabulary)
        logger.info("Extracted %d items from transcript (gen %d)", len(items), signal.generation)
        return ExtractionResult(generation=signal.generation, items=tuple(items))

    # -------------------------------------------------------------------------
    # Relay output
    # -------------------------------------------------------------------------

    def is_stale(self, result: ExtractionResult) -> bool:
        return result.generation < self._discard_below

    async def apply_extraction(self, result: ExtractionResult) -> int:
        """
        Send each extracted item as an ADD_ITEM message.

        Returns:
            Number of messages written to the relay.
        """
        if not result.items:
            return 0
        if self.is_stale(result):
            logger.info("Discarding stale extraction result (gen %d)", result.generation)
            return 0
        if not self.endpoint.connected:
            logger.error("Relay not connected; %d extracted items dropped", len(result.items))
            return 0

        sent = 0
        for item in result.items:
            if self.is_stale(result):
                logger.info("Transcript cleared mid-send; %d items not relayed",
                            len(result.items) - sent)
                break
            message = RelayMessage.add_item(item.name, float(item.unit_price), item.quantity)
            if await self.endpoint.send(message):
                sent += 1
        logger.info("Sent %d of %d items to POS", sent, len(result.items))
        return sent

    def clear_transcript(self) -> None:
        """Drop the transcript and anything extracted from it that is not yet sent."""
        self.accumulator.clear()
        self._discard_below = self.accumulator.generation

"""
Conversational model stream (Gemini Live style).

The model is an opaque collaborator: this module only knows how to open the
stream, send the session setup frame, forward audio chunks that were captured
elsewhere, and pull free text out of the frames that come back. Two fields
carry text:

- ``serverContent.inputTranscription.text``: what the customer said
- ``serverContent.modelTurn.parts[].text``: what the model answered

Without a usable credential the stream is never opened; the cashier cart keeps
working with manual entry.
"""

import base64
import json
import logging
from typing import Any, Dict, Iterator, Optional

from .config import GEMINI_LIVE_URL, GEMINI_MODEL, GOOGLE_API_KEY, has_usable_api_key
from .errors import MalformedPayload, ModelUnavailable
from .relay.endpoint import Connector, websockets_connector
from .schemas.relay import decode_frame

logger = logging.getLogger(__name__)

AUDIO_SAMPLE_RATE = 16000

DEFAULT_INSTRUCTION = (
    "You are a voice transcription assistant. "
    "Simply transcribe what the user says clearly and accurately."
)
INSTRUCTION_SUFFIX = (
    "\n\nPlease respond to the user's voice input according to the instruction above. "
    "Be concise and helpful."
)


def live_endpoint(api_key: str, base_url: str = GEMINI_LIVE_URL) -> str:
    return f"{base_url}?key={api_key}"


def build_setup_message(instructions: str, model: str = GEMINI_MODEL) -> Dict[str, Any]:
    """First frame of a model session: model name, text replies, system instruction."""
    instructions = (instructions or "").strip()
    text = f"{instructions}{INSTRUCTION_SUFFIX}" if instructions else DEFAULT_INSTRUCTION
    return {
        "setup": {
            "model": model,
            "generationConfig": {"responseModalities": ["TEXT"]},
            "systemInstruction": {"parts": [{"text": text}]},
        }
    }


def build_audio_message(pcm: bytes, sample_rate: int = AUDIO_SAMPLE_RATE) -> Dict[str, Any]:
    """Wrap 16-bit little-endian PCM audio in a realtime input frame."""
    return {
        "realtimeInput": {
            "mediaChunks": [{
                "mimeType": f"audio/pcm;rate={sample_rate}",
                "data": base64.b64encode(pcm).decode("ascii"),
            }]
        }
    }


def is_setup_complete(message: Dict[str, Any]) -> bool:
    return "setupComplete" in message


def iter_text_fragments(message: Dict[str, Any]) -> Iterator[str]:
    """Yield the free-text fragments of one model frame, transcription first."""
    content = message.get("serverContent")
    if not isinstance(content, dict):
        return

    transcription = content.get("inputTranscription")
    if isinstance(transcription, dict) and transcription.get("text"):
        yield transcription["text"]

    turn = content.get("modelTurn")
    if isinstance(turn, dict):
        for part in turn.get("parts") or []:
            if isinstance(part, dict) and part.get("text"):
                yield part["text"]


class ModelStreamClient:
    """Connects a VoiceSession to the live model."""

    def __init__(
        self,
        api_key: Optional[str] = GOOGLE_API_KEY,
        connector: Optional[Connector] = None,
        base_url: str = GEMINI_LIVE_URL,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self._connector = connector or websockets_connector
        self._conn = None

    @property
    def enabled(self) -> bool:
        return has_usable_api_key(self.api_key)

    async def run(self, session) -> None:
        """
        Stream model frames into ``session`` until the connection closes.

        Raises:
            ModelUnavailable: No usable credential is configured.
        """
        if not self.enabled:
            raise ModelUnavailable("Please configure your Google API key in the .env file")

        logger.info("Connecting to live model %s", session.model)
        self._conn = await self._connector(live_endpoint(self.api_key, self.base_url))
        try:
            await self._conn.send(json.dumps(session.build_setup_message()))
            async for raw in self._conn:
                try:
                    message = decode_frame(raw)
                except MalformedPayload as e:
                    logger.error("Error parsing model message: %s", e)
                    continue
                await session.handle_model_message(message)
        finally:
            session.model_ready = False
            self._conn = None
            logger.info("Model stream closed")

    async def send_audio(self, pcm: bytes) -> bool:
        if self._conn is None:
            return False
        await self._conn.send(json.dumps(build_audio_message(pcm)))
        return True

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()

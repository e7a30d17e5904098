"""
Transcript accumulation for a single voice session.

Model output arrives as many small text fragments. The accumulator joins them
into a running buffer and reports when the buffer holds a complete structured
order block, at which point it hands the whole text over and starts a fresh
buffer for the next order.

Every reset bumps ``generation``. Callers tag extraction work with the
generation it was derived from so results computed from discarded text can be
recognized and dropped.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

BLOCK_OPEN = "```json"
BLOCK_CLOSE = "}\n```"

_FENCED_BLOCK_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")

CompletionPredicate = Callable[[str], bool]


def fenced_block_closed(text: str) -> bool:
    """Default completion check: an opening fence and a brace-closed fence are both present."""
    return BLOCK_OPEN in text and BLOCK_CLOSE in text


def json_block_complete(text: str) -> bool:
    """
    Stricter completion check: the last fenced block must parse as JSON.

    Usable as a drop-in predicate when the model tends to emit a closing fence
    before the payload is actually finished.
    """
    blocks = _FENCED_BLOCK_RE.findall(text)
    if not blocks:
        return False
    try:
        json.loads(blocks[-1])
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class CompletionSignal:
    """Outcome of an append: pending, or ready with the text that completed."""
    ready: bool
    generation: int
    text: str = ""

    @classmethod
    def pending(cls, generation: int) -> "CompletionSignal":
        return cls(ready=False, generation=generation)


class TranscriptAccumulator:
    """Append-only transcript buffer with a pluggable completion predicate."""

    def __init__(self, is_complete: Optional[CompletionPredicate] = None):
        self._is_complete = is_complete or fenced_block_closed
        self._chunks: List[str] = []
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def text(self) -> str:
        return " ".join(self._chunks)

    @property
    def is_empty(self) -> bool:
        return not self._chunks

    def append(self, fragment: str) -> CompletionSignal:
        """
        Append a fragment and check whether the buffer is now complete.

        Blank fragments are ignored. On completion the buffer is reset before
        returning, so the same content can never signal twice.
        """
        clean = (fragment or "").strip()
        if not clean:
            return CompletionSignal.pending(self._generation)

        self._chunks.append(clean)
        text = self.text
        logger.debug("Transcript (gen %d): %s", self._generation, text)

        if not self._is_complete(text):
            return CompletionSignal.pending(self._generation)

        generation = self._generation
        logger.info("Complete order block detected (gen %d, %d chars)", generation, len(text))
        self._reset()
        return CompletionSignal(ready=True, generation=generation, text=text)

    def clear(self) -> None:
        """Discard the buffer, cancelling any partial order in it."""
        if self._chunks:
            logger.info("Transcript cleared (gen %d, %d fragments dropped)",
                        self._generation, len(self._chunks))
        self._reset()

    def _reset(self) -> None:
        self._chunks = []
        self._generation += 1

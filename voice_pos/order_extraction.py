"""
Order Extraction (no LLM calls).

Turns a completed transcript into a list of ExtractedItem. Three strategies,
chosen by what the transcript contains:

1. Structured: the transcript holds a fenced ```json block. The LAST complete
   block is parsed (a later utterance supersedes earlier partial ones). If it
   does not parse, nothing is extracted for this transcript.
2. Line-based: the model answered with lines like
   "- Teh ais, 1, RM3.00 each". Each matching line is read on its own.
3. Free text: plain speech. Quantity words are collected in order and handed
   out to every vocabulary entry whose keywords appear in the text, in
   vocabulary order. When several items are mentioned without clear
   per-item quantities the pairing can be wrong; the order is kept
   deterministic rather than guessed.

extract() is pure: same input, same output, no side effects, never raises.
"""

import json
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from .menu_vocabulary import MenuEntry
from .transcript import BLOCK_OPEN

logger = logging.getLogger(__name__)


# =============================================================================
# Word to Number Mapping
# =============================================================================

WORD_TO_NUM = {
    # Malay
    "satu": 1, "dua": 2, "tiga": 3, "empat": 4, "lima": 5,
    # English
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

QUANTITY_PATTERN = re.compile(
    r"\b(" + "|".join(WORD_TO_NUM) + r"|\d+)\b"
)


# =============================================================================
# Compiled Regex Patterns
# =============================================================================

FENCED_JSON_PATTERN = re.compile(r"```json\s*([\s\S]*?)\s*```")

# "- Teh ais, 1, RM3.00 each"
STRUCTURED_LINE_PATTERN = re.compile(
    r"^-\s*([^,]+),\s*(\d+),\s*RM(\d+\.?\d*)\s*each",
    re.MULTILINE,
)

# Formatting glitches seen in model output, applied in order
_SPLIT_DECIMAL = re.compile(r"(\d)\s+(\.\d+)")          # "2 .50" -> "2.50"
_TRAILING_COMMA_BRACKET = re.compile(r",\s*]")          # "}, ]"  -> "}]"
_TRAILING_COMMA_BRACE = re.compile(r",\s*}")            # ", }"   -> "}"
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ExtractedItem:
    """One normalized order line produced from a transcript."""
    name: str
    unit_price: Decimal
    quantity: int

    def to_wire(self) -> Dict[str, Any]:
        return {"name": self.name, "price": float(self.unit_price), "quantity": self.quantity}


def normalize_name(name: str) -> str:
    return _WHITESPACE.sub(" ", name).strip()


def clean_json_block(block: str) -> str:
    """Repair the formatting glitches the model is known to produce."""
    cleaned = _SPLIT_DECIMAL.sub(r"\1\2", block)
    # A second pass catches overlapping matches such as "1 .5 .0"
    cleaned = _SPLIT_DECIMAL.sub(r"\1\2", cleaned)
    cleaned = _TRAILING_COMMA_BRACKET.sub("]", cleaned)
    cleaned = _TRAILING_COMMA_BRACE.sub("}", cleaned)
    return cleaned


def _coerce_quantity(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, float) and value.is_integer():
        quantity = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        quantity = int(value.strip())
    else:
        return None
    return quantity if quantity >= 1 else None


def _coerce_price(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


# =============================================================================
# Strategies
# =============================================================================

def extract_structured(transcript: str) -> List[ExtractedItem]:
    """Parse the last fenced JSON block of the transcript."""
    blocks = FENCED_JSON_PATTERN.findall(transcript)
    if not blocks:
        logger.debug("Opening fence without a complete block; nothing to extract")
        return []

    logger.debug("Using JSON block %d of %d", len(blocks), len(blocks))
    cleaned = clean_json_block(blocks[-1])
    try:
        payload = json.loads(cleaned)
    except ValueError as e:
        logger.warning("Failed to parse order block: %s", e)
        logger.debug("Unparsable block: %s", cleaned)
        return []

    entries = payload.get("items") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        logger.warning("Order block has no items list")
        return []

    items: List[ExtractedItem] = []
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            logger.warning("Skipping order entry without a name: %r", entry)
            continue
        raw_price = entry.get("base_price")
        if raw_price is None:
            raw_price = entry.get("price")
        price = _coerce_price(raw_price)
        quantity = _coerce_quantity(entry.get("quantity"))
        name = normalize_name(entry["name"])
        if not name or price is None or quantity is None:
            logger.warning("Skipping invalid order entry: %r", entry)
            continue
        items.append(ExtractedItem(name=name, unit_price=price, quantity=quantity))
    return items


def extract_structured_lines(text: str) -> List[ExtractedItem]:
    """Read "- name, quantity, RMprice each" lines."""
    items: List[ExtractedItem] = []
    for match in STRUCTURED_LINE_PATTERN.finditer(text):
        name = normalize_name(match.group(1))
        quantity = int(match.group(2))
        if not name or quantity < 1:
            continue
        items.append(ExtractedItem(name=name, unit_price=Decimal(match.group(3)), quantity=quantity))
    logger.debug("Extracted %d items from structured lines", len(items))
    return items


def parse_quantities(lower_text: str) -> List[int]:
    """Quantity expressions in the order they were spoken."""
    quantities = []
    for token in QUANTITY_PATTERN.findall(lower_text):
        if token in WORD_TO_NUM:
            quantities.append(WORD_TO_NUM[token])
        else:
            quantities.append(int(token) or 1)
    return quantities


def extract_free_text(text: str, vocabulary: Mapping[str, MenuEntry]) -> List[ExtractedItem]:
    """Match spoken text against the session vocabulary."""
    if not vocabulary:
        logger.debug("No menu vocabulary configured; free text ignored")
        return []

    lower_text = text.lower()
    quantities = parse_quantities(lower_text)

    items: List[ExtractedItem] = []
    quantity_index = 0
    for entry in vocabulary.values():
        if not any(keyword in lower_text for keyword in entry.keywords):
            continue
        quantity = quantities[quantity_index] if quantity_index < len(quantities) else 1
        items.append(ExtractedItem(name=entry.name, unit_price=entry.price, quantity=quantity))
        quantity_index += 1
    return items


def extract(transcript: str, vocabulary: Optional[Mapping[str, MenuEntry]] = None) -> List[ExtractedItem]:
    """
    Extract order items from a transcript.

    Args:
        transcript: Full transcript text (model output and/or user speech).
        vocabulary: Session vocabulary used by the free-text strategy.

    Returns:
        Extracted items in transcript order; empty when nothing usable was found.
    """
    if not transcript:
        return []
    try:
        if BLOCK_OPEN in transcript:
            return extract_structured(transcript)
        if "RM" in transcript and "each" in transcript:
            return extract_structured_lines(transcript)
        return extract_free_text(transcript, vocabulary or {})
    except Exception:
        logger.exception("Unexpected error extracting order")
        return []

"""
Menu vocabulary built from free-form session instructions.

Operators paste their menu into the instruction text that is also sent to the
model, in shapes like::

    - Teh ais: RM3.00
    Nasi lemak - RM5.50
    Burger $12.99

Every line that looks like "name, separator, price" becomes a MenuEntry keyed
by its lowercased name. Headings, examples and subtotal/total rows are
skipped. The result keeps line order, which the free-text extractor relies on.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# "- Teh ais: RM3.00", "Item Name - $price", "Item Name: $price", "Item Name $price"
MENU_LINE_PATTERN = re.compile(r"^-?\s*([^-:$]+?)[\s\-:]*(?:RM|rm|\$)?(\d+\.?\d*)")

# Substrings marking a line as template text rather than a sellable item
NON_ITEM_MARKERS = ("Example", "#", "*", "Subtotal", "Total")

MIN_NAME_LENGTH = 2


@dataclass(frozen=True)
class MenuEntry:
    """A recognizable menu item."""
    name: str
    price: Decimal
    keywords: Tuple[str, ...]


def _parse_price(raw: str) -> Optional[Decimal]:
    try:
        price = Decimal(raw)
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def parse_menu_line(line: str) -> Optional[MenuEntry]:
    """Parse one configuration line, returning None when it is not a menu item."""
    match = MENU_LINE_PATTERN.match(line)
    if not match:
        return None

    name = match.group(1).strip()
    if len(name) < MIN_NAME_LENGTH:
        return None
    if any(marker in name for marker in NON_ITEM_MARKERS):
        return None

    price = _parse_price(match.group(2))
    if price is None:
        return None

    return MenuEntry(name=name, price=price, keywords=tuple(name.lower().split()))


def build_vocabulary(config_text: str) -> Dict[str, MenuEntry]:
    """
    Build the session vocabulary from instruction text.

    Args:
        config_text: Free-form instructions, one menu item per line.

    Returns:
        Ordered mapping of lowercased item name to MenuEntry. A repeated name
        keeps its first position and takes the later price.
    """
    vocabulary: Dict[str, MenuEntry] = {}
    for line in (config_text or "").splitlines():
        entry = parse_menu_line(line)
        if entry is None:
            continue
        vocabulary[entry.name.lower()] = entry

    logger.debug("Built vocabulary with %d entries: %s", len(vocabulary), list(vocabulary))
    return vocabulary

"""Mapping receipt analysis output into by-item split input."""

import json
import logging
import re
from decimal import Decimal

from pydantic import ValidationError

from ..exceptions import ReceiptParseError
from ..models import ByItemSplit, ReceiptScan, SplitItem

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_TITLE = "Receipt"

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def parse_receipt_response(text: str) -> ReceiptScan:
    """
    Parse the JSON object returned by the receipt analysis service.

    Vision models sometimes wrap their answer in a markdown code fence even
    when told not to, so a surrounding fence is stripped first.

    Raises:
        ReceiptParseError: If the text is not a valid receipt object
    """
    cleaned = text.strip()
    match = _CODE_FENCE.match(cleaned)
    if match:
        cleaned = match.group(1)

    try:
        data = json.loads(cleaned, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise ReceiptParseError(f"Receipt response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ReceiptParseError("Receipt response must be a JSON object")

    try:
        return ReceiptScan.model_validate(data)
    except ValidationError as e:
        raise ReceiptParseError(f"Receipt response has invalid fields: {e}") from e


def receipt_to_items(scan: ReceiptScan) -> list[SplitItem]:
    """Convert receipt line items into unassigned split items."""
    items = []
    for receipt_item in scan.items or []:
        amount = receipt_item.quantity * receipt_item.unit_price
        items.append(SplitItem(name=receipt_item.name or "Item", amount=amount))
    return items


def receipt_to_strategy(scan: ReceiptScan) -> tuple[str, Decimal, ByItemSplit]:
    """
    Turn a receipt scan into expense title, total and by-item strategy.

    Returns:
        Tuple of (title, total, strategy)
    """
    title = scan.merchant_name.strip() or DEFAULT_RECEIPT_TITLE
    items = receipt_to_items(scan)
    total = scan.total
    if total <= 0:
        total = sum((item.amount for item in items), Decimal("0"))

    logger.info(f"Mapped receipt '{title}' with {len(items)} items, total {total}")

    return title, total, ByItemSplit(items=items)

"""
Validation of a single scanned tag against the order being ticketed.

match_scan() is a pure function of (raw string, OrderContext). It never reads
or changes scan session state, so a given scan always yields the same result
for the same order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

import tag_codec
from exceptions import MalformedTagError


class RejectionReason(Enum):
    MALFORMED_TAG = "MalformedTag"
    CUSTOMER_MISMATCH = "CustomerMismatch"
    ITEM_NOT_IN_ORDER = "ItemNotInOrder"


@dataclass(frozen=True)
class OrderContext:
    """
    Read-only view of the order for the lifetime of one scan session.

    Attributes:
        order_id: Order being ticketed
        customer_id: Expected owner of every scanned tag
        item_ids: Items to ticket, in order, without duplicates
        item_names: Optional item_id -> display name, used in feedback
    """
    order_id: str
    customer_id: str
    item_ids: Tuple[str, ...]
    item_names: Dict[str, str] = field(default_factory=dict, compare=False)

    @classmethod
    def build(cls, order_id: str, customer_id: str, item_ids: Iterable[str],
              item_names: Optional[Dict[str, str]] = None) -> 'OrderContext':
        """Create a context, collapsing repeated item ids (first one wins)."""
        unique = tuple(dict.fromkeys(item_ids))
        return cls(order_id, customer_id, unique, dict(item_names or {}))

    def __post_init__(self):
        if len(set(self.item_ids)) != len(self.item_ids):
            raise ValueError("OrderContext.item_ids must not contain duplicates; use OrderContext.build()")

    def contains(self, item_id: str) -> bool:
        return item_id in self.item_ids

    def display_name(self, item_id: str) -> str:
        return self.item_names.get(item_id) or item_id


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of matching one scan.

    Exactly one of item_id (accepted) or reason (rejected) is set.
    """
    item_id: Optional[str] = None
    reason: Optional[RejectionReason] = None
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.reason is None


def match_scan(raw_tag: str, context: OrderContext) -> MatchResult:
    """
    Decide whether a raw scan belongs to the order.

    Checks, stopping at the first failure:
    1. the tag decodes (MALFORMED_TAG)
    2. the tag's customer is the order's customer (CUSTOMER_MISMATCH)
    3. the tag's item is one of the order's items (ITEM_NOT_IN_ORDER)

    Args:
        raw_tag: String exactly as delivered by the scanner
        context: The order being ticketed

    Returns:
        MatchResult with item_id on acceptance, reason and message otherwise
    """
    try:
        parts = tag_codec.decode(raw_tag)
    except MalformedTagError:
        return MatchResult(
            reason=RejectionReason.MALFORMED_TAG,
            message="Invalid barcode format. Expected format: customerID_productID",
        )

    if parts.customer_id != context.customer_id:
        return MatchResult(
            reason=RejectionReason.CUSTOMER_MISMATCH,
            message=f"Customer ID mismatch. Expected {context.customer_id}, got {parts.customer_id}",
        )

    if not context.contains(parts.item_id):
        return MatchResult(
            reason=RejectionReason.ITEM_NOT_IN_ORDER,
            message=f"Product not found in this order: {parts.item_id}",
        )

    return MatchResult(item_id=parts.item_id)

"""
Order data shapes exchanged with the external order collaborators.

The order source is any object with a ``get_order(order_id)`` method returning
either an OrderRecord or a plain dict:

    {
      "customerId": "C1",
      "status": "CREATED",
      "customerName": "Jane Doe",        # optional
      "items": [
        {"itemId": "A", "displayName": "Shirt, light starch"},
        {"_id": "B", "name": "Trousers"}
      ]
    }

Status strings are parsed into the closed OrderStatus enumeration here, at the
boundary, so the workflow never compares raw strings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from exceptions import ValidationError


class OrderStatus(Enum):
    CREATED = "CREATED"
    PROCESSING = "PROCESSING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DELIVERY_SCHEDULED = "DELIVERY_SCHEDULED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, value: Any) -> Optional['OrderStatus']:
        """
        Parse a status value case-insensitively.

        Returns None for anything that is not a known status, so the caller
        decides how to report it.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class OrderItem:
    item_id: str
    display_name: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class OrderRecord:
    """An order as returned by the order source at workflow start."""
    order_id: str
    customer_id: str
    status: Any
    items: List[OrderItem] = field(default_factory=list)
    customer_name: Optional[str] = None


@dataclass(frozen=True)
class TagLabel:
    """
    One printable tag handed to the print collaborator.

    The print collaborator is any object with ``print_labels(labels)``
    returning a truthy value on success (or raising on failure). A batch is
    all-or-nothing: a failed call means no tag of the batch counts as printed.
    """
    tag: str
    order_id: str
    item: OrderItem
    customer_name: Optional[str] = None


def _first(data: Dict[str, Any], *keys: str, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def order_from_source(order_id: str, raw: Any) -> OrderRecord:
    """
    Normalize whatever the order source returned into an OrderRecord.

    Args:
        order_id: The order that was requested
        raw: OrderRecord or dict as described in the module docstring

    Returns:
        OrderRecord (status left as delivered, parsed later by the workflow)

    Raises:
        ValidationError: If the order is missing or lacks a customer id
    """
    if raw is None:
        raise ValidationError(f"Order {order_id} not found")

    if isinstance(raw, OrderRecord):
        return raw

    if not isinstance(raw, dict):
        raise ValidationError(f"Unsupported order payload for {order_id}: {type(raw).__name__}")

    customer_id = _first(raw, 'customerId', 'customer_id')
    if not customer_id:
        raise ValidationError(f"Order {order_id} has no customer id")

    items = []
    for entry in raw.get('items') or []:
        if isinstance(entry, OrderItem):
            items.append(entry)
            continue
        item_id = _first(entry, 'itemId', 'item_id', '_id', 'id')
        if not item_id:
            raise ValidationError(f"Order {order_id} contains an item without an id")
        known = {'itemId', 'item_id', '_id', 'id', 'displayName', 'display_name', 'name'}
        items.append(OrderItem(
            item_id=str(item_id),
            display_name=str(_first(entry, 'displayName', 'display_name', 'name', default='')),
            extra={k: v for k, v in entry.items() if k not in known},
        ))

    return OrderRecord(
        order_id=str(_first(raw, 'orderId', 'order_id', '_id', default=order_id)),
        customer_id=str(customer_id),
        status=raw.get('status'),
        items=items,
        customer_name=_first(raw, 'customerName', 'customer_name'),
    )

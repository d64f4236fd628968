"""
Encoding and decoding of garment tag values.

A tag carries ``<customerId>_<itemId>``: ASCII, a single underscore delimiter,
no escaping, no checksum or version field. The same string is printed as a
Code-128 barcode and read back by the scanner.

Because nothing is escaped, identifiers containing the delimiter cannot be
represented; encode() refuses them instead of producing a tag that would fail
to decode.
"""

from typing import NamedTuple, Optional

from exceptions import InvalidIdentifierError, MalformedTagError

DELIMITER = "_"


class TagParts(NamedTuple):
    customer_id: str
    item_id: str


def _check_identifier(value, field: str) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidIdentifierError(f"{field} must be a non-empty string", value, field)
    if not value.isascii():
        raise InvalidIdentifierError(f"{field} must be ASCII: {value!r}", value, field)
    if DELIMITER in value:
        raise InvalidIdentifierError(
            f"{field} must not contain '{DELIMITER}': {value!r}", value, field
        )


def encode(customer_id: str, item_id: str) -> str:
    """
    Build the tag value for one garment.

    Args:
        customer_id: Owner of the order
        item_id: Garment (order item) identifier

    Returns:
        Tag string, e.g. encode("C1", "A") -> "C1_A"

    Raises:
        InvalidIdentifierError: If either identifier is empty, non-ASCII or
                                contains the delimiter
    """
    _check_identifier(customer_id, "customer_id")
    _check_identifier(item_id, "item_id")
    return f"{customer_id}{DELIMITER}{item_id}"


def decode(tag: str) -> TagParts:
    """
    Split a scanned tag back into (customer_id, item_id).

    No normalization is applied: case and whitespace are significant.

    Raises:
        MalformedTagError: Unless the tag splits into exactly two non-empty parts
    """
    if not isinstance(tag, str):
        raise MalformedTagError(f"Tag must be a string, got {type(tag).__name__}", None)

    parts = tag.split(DELIMITER)
    if len(parts) != 2:
        raise MalformedTagError(
            f"Expected exactly one '{DELIMITER}' in tag, found {len(parts) - 1}: {tag!r}", tag
        )

    customer_id, item_id = parts
    if not customer_id or not item_id:
        raise MalformedTagError(f"Tag has an empty segment: {tag!r}", tag)

    return TagParts(customer_id, item_id)


def try_decode(tag: str) -> Optional[TagParts]:
    """decode() that returns None instead of raising."""
    try:
        return decode(tag)
    except MalformedTagError:
        return None

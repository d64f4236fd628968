"""
Custom exceptions for the Garment Ticketing application.

This module defines application-specific exceptions for better error handling,
operator feedback, and debugging. Using custom exceptions allows the
application to:
- Provide specific error messages tailored to counter operations
- Include contextual information (order id, status, failed labels)
- Enable targeted exception handling in the UI layer
- Improve logging and error reporting

Every failure in the ticketing flow is recoverable: the workflow returns to a
previous, still-usable state and the operator retries. Scan rejections
(malformed tag, wrong customer, unknown item) are NOT exceptions; they are
reported as RejectionReason values by the scan matcher.

Exception hierarchy:
    TicketingError (base)
    ├── ValidationError (input validation failures)
    │   └── InvalidIdentifierError (identifier cannot be encoded in a tag)
    ├── MalformedTagError (tag string does not decode)
    ├── PrintFailureError (print collaborator failed)
    ├── CompletionFailureError (order-status sink rejected the transition)
    ├── InvalidEntryStateError (order not in the eligible status)
    └── WorkflowStateError (operation not allowed in the current phase)
"""

from typing import Optional


class TicketingError(Exception):
    """
    Base exception for all Garment Ticketing errors.

    All application-specific exceptions inherit from this class, so the UI can
    catch every ticketing error with a single except clause:
        try:
            workflow.print_tags()
        except TicketingError as e:
            show_error(e.get_display_message())
    """

    def get_display_message(self) -> str:
        """Message suitable for an operator-facing dialog."""
        return str(self)


class ValidationError(TicketingError):
    """
    Raised when input validation fails.

    Example usage:
        if not order_id:
            raise ValidationError("Order id is required")
    """
    pass


class InvalidIdentifierError(ValidationError):
    """
    Raised when a customer or item id cannot be carried by a tag.

    The tag wire format uses a single underscore as the delimiter with no
    escaping, so identifiers must be non-empty ASCII without underscores.

    Attributes:
        identifier: The offending value
        field: Which identifier was rejected ("customer_id" or "item_id")
    """

    def __init__(self, message: str, identifier=None, field: Optional[str] = None):
        super().__init__(message)
        self.identifier = identifier
        self.field = field


class MalformedTagError(TicketingError):
    """
    Raised by the tag codec when a string is not a valid tag.

    A valid tag splits on the delimiter into exactly two non-empty segments.

    Attributes:
        raw_tag: The string that failed to decode
    """

    def __init__(self, message: str, raw_tag: Optional[str] = None):
        super().__init__(message)
        self.raw_tag = raw_tag

    def get_display_message(self) -> str:
        return "Invalid barcode format. Expected format: customerID_productID"


class PrintFailureError(TicketingError):
    """
    Raised when the print collaborator fails to print the order's tags.

    Printing is treated as atomic: on failure no tag is considered printed and
    the workflow stays in the print phase so the operator can retry.

    Attributes:
        order_id: Order whose tags failed to print
        label_count: Number of labels in the failed batch
    """

    def __init__(self, message: str, order_id: Optional[str] = None, label_count: int = 0):
        super().__init__(message)
        self.order_id = order_id
        self.label_count = label_count

    def get_display_message(self) -> str:
        return (
            f"Failed to print {self.label_count} tag(s) for order {self.order_id}.\n\n"
            f"{self}\n\n"
            f"Check the printer and try again."
        )


class CompletionFailureError(TicketingError):
    """
    Raised when the order-status sink rejects the post-ticketing transition.

    The scanned items stay confirmed, so the operator can retry completion
    without re-scanning.

    Attributes:
        order_id: Order that failed to transition
        target_status: Status that was requested
    """

    def __init__(self, message: str, order_id: Optional[str] = None, target_status: Optional[str] = None):
        super().__init__(message)
        self.order_id = order_id
        self.target_status = target_status

    def get_display_message(self) -> str:
        return (
            f"Could not move order {self.order_id} to {self.target_status}.\n\n"
            f"{self}\n\n"
            f"All items are still ticketed. Please retry."
        )


class InvalidEntryStateError(TicketingError):
    """
    Raised when ticketing is started for an order that is not eligible.

    Only orders in the single pre-ticketing status can be ticketed.

    Attributes:
        order_id: Order that was rejected
        status: The order's current status (raw value if it was unrecognized)
        expected: The eligible status
    """

    def __init__(self, message: str, order_id: Optional[str] = None,
                 status: Optional[str] = None, expected: Optional[str] = None):
        super().__init__(message)
        self.order_id = order_id
        self.status = status
        self.expected = expected

    def get_display_message(self) -> str:
        return (
            f"Order {self.order_id} cannot be ticketed.\n\n"
            f"Current status: {self.status}\n"
            f"Required status: {self.expected}"
        )


class WorkflowStateError(TicketingError):
    """
    Raised when a workflow operation is invoked in the wrong phase.

    Examples: scanning before tags were printed, completing while items are
    still missing, cancelling an already completed workflow.
    """
    pass

# Standard library imports
import time
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional

# Qt framework for signals/slots pattern
from PySide6.QtCore import QObject, Signal

# Local imports
import tag_codec
from app_config import TicketingConfig
from exceptions import (
    CompletionFailureError,
    InvalidEntryStateError,
    PrintFailureError,
    TicketingError,
    ValidationError,
    WorkflowStateError,
)
from order_models import OrderRecord, OrderStatus, TagLabel, order_from_source
from scan_matcher import OrderContext
from scan_session import ScanSession, SubmitOutcome, SubmitResult
from logger import get_logger, set_order_context, set_operator_context, set_phase_context

logger = get_logger(__name__)


class WorkflowPhase(Enum):
    IDLE = "IDLE"
    PRINT = "PRINT"
    SCAN = "SCAN"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TicketingWorkflow(QObject):
    """
    Drives the ticketing of one order: print tags, scan them back, complete.

    Phases:
        IDLE -> start() -> PRINT -> print_tags() -> SCAN -> complete() -> COMPLETED
        cancel() from PRINT or SCAN -> CANCELLED

    Collaborators are injected by the caller, who owns their lifecycle:
    - order_source.get_order(order_id) -> OrderRecord or dict
    - status_sink.update_status(order_id, new_status, note) -> truthy on success
    - printer.print_labels(labels) -> truthy on success

    Every failure is recoverable. A print failure stays in PRINT, a rejected
    scan stays in SCAN, a failed completion stays in SCAN with all items still
    confirmed. Nothing is retried automatically.

    The class does no UI work; the screen listens to the signals below.

    Attributes:
        phase_changed (Signal): new phase name
        scan_accepted (Signal): item_id, remaining count
        scan_rejected (Signal): rejection reason, operator message
        progress_changed (Signal): confirmed count, total count
        ticketing_completed (Signal): order_id
        order (OrderRecord | None): The order loaded by start()
        context (OrderContext | None): Read-only view used for matching
        session (ScanSession | None): Present only in the SCAN phase
    """
    phase_changed = Signal(str)
    scan_accepted = Signal(str, int)
    scan_rejected = Signal(str, str)
    progress_changed = Signal(int, int)
    ticketing_completed = Signal(str)

    def __init__(self, order_source, status_sink, printer,
                 operator_name: Optional[str] = None,
                 config: Optional[TicketingConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            order_source: Provides the order and its items at start
            status_sink: Receives the post-ticketing status transition
            printer: Prints tag labels
            operator_name: Acting operator, written into the audit note
            config: Statuses and duplicate window; defaults when omitted
            clock: Monotonic clock for duplicate suppression
        """
        super().__init__()

        self.order_source = order_source
        self.status_sink = status_sink
        self.printer = printer
        self.operator_name = operator_name
        self.config = config or TicketingConfig()
        self._clock = clock

        self.phase = WorkflowPhase.IDLE
        self.order: Optional[OrderRecord] = None
        self.context: Optional[OrderContext] = None
        self.session: Optional[ScanSession] = None

    # ------------------------------------------------------------------
    # Phase handling
    # ------------------------------------------------------------------

    def _set_phase(self, phase: WorkflowPhase):
        self.phase = phase
        set_phase_context(phase.value)
        logger.info(f"Ticketing phase: {phase.value}")
        self.phase_changed.emit(phase.value)

    def _require_phase(self, *phases: WorkflowPhase):
        if self.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise WorkflowStateError(
                f"Operation not allowed in phase {self.phase.value} (allowed: {allowed})"
            )

    @property
    def order_id(self) -> Optional[str]:
        return self.context.order_id if self.context else None

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def start(self, order_id: str) -> OrderContext:
        """
        Load the order and enter the PRINT phase.

        Raises:
            WorkflowStateError: If the workflow was already started
            ValidationError: If the order cannot be loaded
            InvalidEntryStateError: If the order is not in the eligible status
        """
        self._require_phase(WorkflowPhase.IDLE)

        logger.info(f"Starting ticketing for order {order_id}")

        raw = self.order_source.get_order(order_id)
        order = order_from_source(order_id, raw)

        status = OrderStatus.parse(order.status)
        expected = self.config.entry_status
        if status is not expected:
            logger.error(f"Order {order_id} has status {order.status!r}, expected {expected.value}")
            raise InvalidEntryStateError(
                f"Order {order_id} is {order.status!r}; only {expected.value} orders can be ticketed",
                order_id=order_id,
                status=status.value if status else str(order.status),
                expected=expected.value,
            )

        # Only an order that passed the entry guard owns the logging context
        set_order_context(order_id)
        set_operator_context(self.operator_name)

        self.order = order
        self.context = OrderContext.build(
            order.order_id,
            order.customer_id,
            (item.item_id for item in order.items),
            {item.item_id: item.display_name for item in order.items if item.display_name},
        )
        if len(self.context.item_ids) != len(order.items):
            logger.warning(f"Order {order_id} lists repeated item ids; duplicates collapsed")

        self._set_phase(WorkflowPhase.PRINT)
        return self.context

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    def build_labels(self, item_ids: Optional[Iterable[str]] = None) -> List[TagLabel]:
        """
        Encode one tag per item.

        Args:
            item_ids: Subset to label; all order items when omitted

        Raises:
            ValidationError: If an id is not part of the order
            InvalidIdentifierError: If an id cannot be encoded in a tag
        """
        if self.order is None:
            raise WorkflowStateError("No order loaded")

        items_by_id = {}
        for item in self.order.items:
            items_by_id.setdefault(item.item_id, item)

        wanted = list(dict.fromkeys(item_ids)) if item_ids is not None else list(self.context.item_ids)
        unknown = [item_id for item_id in wanted if item_id not in items_by_id]
        if unknown:
            raise ValidationError(f"Items not in order {self.order.order_id}: {', '.join(unknown)}")

        return [
            TagLabel(
                tag=tag_codec.encode(self.order.customer_id, item_id),
                order_id=self.order.order_id,
                item=items_by_id[item_id],
                customer_name=self.order.customer_name,
            )
            for item_id in wanted
        ]

    def _send_to_printer(self, labels: List[TagLabel]):
        order_id = self.order.order_id
        if not labels:
            raise PrintFailureError("No items to print", order_id=order_id, label_count=0)

        logger.info(f"Printing {len(labels)} tags for order {order_id}")
        try:
            result = self.printer.print_labels(labels)
        except PrintFailureError:
            raise
        except Exception as e:
            logger.error(f"Print collaborator failed: {e}", exc_info=True)
            raise PrintFailureError(f"Failed to print barcodes: {e}",
                                    order_id=order_id, label_count=len(labels)) from e

        if not result:
            logger.error("Print collaborator reported failure")
            raise PrintFailureError("Printer reported failure",
                                    order_id=order_id, label_count=len(labels))

    def print_tags(self) -> List[TagLabel]:
        """
        Print every tag of the order and enter the SCAN phase.

        On failure the workflow stays in PRINT and no scan session exists.

        Raises:
            WorkflowStateError: If not in the PRINT phase
            PrintFailureError: If the print collaborator failed
        """
        self._require_phase(WorkflowPhase.PRINT)

        try:
            labels = self.build_labels()
        except TicketingError as e:
            raise PrintFailureError(str(e), order_id=self.order.order_id) from e

        self._send_to_printer(labels)

        self.session = ScanSession(
            self.context,
            duplicate_window=self.config.duplicate_window_seconds,
            clock=self._clock,
        )
        self.session.activate()

        self._set_phase(WorkflowPhase.SCAN)
        self.progress_changed.emit(self.session.confirmed_count(), self.session.total_count())
        return labels

    def reprint_tags(self, item_ids: Optional[Iterable[str]] = None) -> List[TagLabel]:
        """
        Reprint some or all tags while scanning (e.g. a torn or smudged tag).

        Confirmed items and the scan session are left untouched.
        """
        self._require_phase(WorkflowPhase.SCAN)
        labels = self.build_labels(item_ids)
        self._send_to_printer(labels)
        return labels

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def set_scanning_enabled(self, enabled: bool):
        """Follow scan input focus: scans are ignored while disabled."""
        self._require_phase(WorkflowPhase.SCAN)
        if enabled:
            self.session.activate()
        else:
            self.session.deactivate()

    def submit_scan(self, raw_tag: str) -> SubmitResult:
        """
        Route one complete scan string to the session.

        Rejections are reported through scan_rejected and the return value;
        the session keeps running.

        Raises:
            WorkflowStateError: If not in the SCAN phase
        """
        self._require_phase(WorkflowPhase.SCAN)

        result = self.session.submit(raw_tag)

        if result.outcome is SubmitOutcome.ACCEPTED:
            self.scan_accepted.emit(result.item_id, self.session.remaining_count())
            if result.newly_confirmed:
                self.progress_changed.emit(self.session.confirmed_count(), self.session.total_count())
            if self.session.is_complete():
                logger.info(f"All {self.session.total_count()} items ticketed, ready to complete")
        elif result.outcome is SubmitOutcome.REJECTED:
            self.scan_rejected.emit(result.reason.value, result.message)

        return result

    def remaining_count(self) -> int:
        if self.session is None:
            return len(self.context.item_ids) if self.context else 0
        return self.session.remaining_count()

    def is_complete(self) -> bool:
        return self.session is not None and self.session.is_complete()

    def can_complete(self) -> bool:
        """Whether the completion action should be enabled."""
        return self.phase is WorkflowPhase.SCAN and self.is_complete()

    # ------------------------------------------------------------------
    # Completion / cancellation
    # ------------------------------------------------------------------

    def build_status_note(self, new_status: OrderStatus, when: Optional[datetime] = None) -> str:
        when = when or datetime.now()
        by = f" by {self.operator_name}" if self.operator_name else ""
        return (
            f"Status changed to {new_status.value} via barcode ticketing"
            f"{by} at {when.isoformat(sep=' ', timespec='seconds')}"
        )

    def complete(self) -> str:
        """
        Move the order to the post-ticketing status.

        Returns:
            The audit note sent with the transition

        Raises:
            WorkflowStateError: If not in SCAN or items are still missing
            CompletionFailureError: If the status sink rejected the transition;
                                    the workflow stays in SCAN, ready to retry
        """
        self._require_phase(WorkflowPhase.SCAN)
        if not self.session.is_complete():
            raise WorkflowStateError(
                f"Cannot complete: {self.session.remaining_count()} item(s) not yet scanned"
            )

        order_id = self.context.order_id
        new_status = self.config.completion_status
        note = self.build_status_note(new_status)

        try:
            ok = self.status_sink.update_status(order_id, new_status.value, note)
        except Exception as e:
            logger.error(f"Error updating order status: {e}", exc_info=True)
            raise CompletionFailureError(str(e), order_id=order_id,
                                         target_status=new_status.value) from e

        if not ok:
            logger.error(f"Status update to {new_status.value} rejected for order {order_id}")
            raise CompletionFailureError("Order status update was rejected",
                                         order_id=order_id, target_status=new_status.value)

        logger.info(f"Updated order {order_id} status to {new_status.value}")
        self.session = None
        self._set_phase(WorkflowPhase.COMPLETED)
        self.ticketing_completed.emit(order_id)
        return note

    def cancel(self):
        """Abandon ticketing; the order status is not touched."""
        self._require_phase(WorkflowPhase.PRINT, WorkflowPhase.SCAN)
        if self.session is not None:
            logger.info(
                f"Ticketing cancelled with {self.session.confirmed_count()}/"
                f"{self.session.total_count()} items scanned"
            )
        self.session = None
        self._set_phase(WorkflowPhase.CANCELLED)

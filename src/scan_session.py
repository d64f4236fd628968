"""
Stateful accumulation of confirmed garments for one order.

A ScanSession lives for one ticketing attempt: it is created when the operator
enters scan mode and discarded when the workflow completes or is cancelled.
Nothing here is persisted.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Optional

from app_config import DEFAULT_DUPLICATE_WINDOW_SECONDS
from scan_matcher import OrderContext, RejectionReason, match_scan
from logger import get_logger

logger = get_logger(__name__)


class SubmitOutcome(Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    IGNORED = "IGNORED"


@dataclass(frozen=True)
class SubmitResult:
    outcome: SubmitOutcome
    item_id: Optional[str] = None
    reason: Optional[RejectionReason] = None
    message: str = ""
    newly_confirmed: bool = False

    @classmethod
    def ignored(cls) -> 'SubmitResult':
        return cls(SubmitOutcome.IGNORED)

    @property
    def accepted(self) -> bool:
        return self.outcome is SubmitOutcome.ACCEPTED


class ScanSession:
    """
    Confirms order items from scanned tags, with duplicate suppression.

    Rules applied by submit(), in order:
    - inactive session: the scan is ignored
    - same tag as the last accepted one, inside the suppression window: ignored
      (scanners tend to fire the same read several times in a row)
    - otherwise the scan matcher decides; a rejection records last_error
    - an acceptance confirms the item (idempotent) and restarts the window

    Time comes from a monotonic clock read at each submit(), so the window is
    an expiry timestamp rather than a scheduled callback.

    The confirmed set only ever grows. submit() is serialized by a lock, so a
    transport delivering scans from another thread keeps the suppression rule.

    Attributes:
        context (OrderContext): The order being ticketed (read-only)
        duplicate_window (float): Suppression window in seconds
        last_error (str | None): Message of the last rejection, cleared on acceptance
        last_rejection (RejectionReason | None): Reason of the last rejection
    """

    def __init__(self, context: OrderContext,
                 duplicate_window: float = DEFAULT_DUPLICATE_WINDOW_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.context = context
        self.duplicate_window = duplicate_window
        self._clock = clock

        self._confirmed = set()
        self._is_active = False
        self._last_accepted_tag: Optional[str] = None
        self._last_accepted_expiry = 0.0
        self.last_error: Optional[str] = None
        self.last_rejection: Optional[RejectionReason] = None

        self.scan_stats = {'accepted': 0, 'rejected': 0, 'ignored': 0}

        self._lock = threading.Lock()

        logger.debug(
            f"ScanSession created for order {context.order_id}: "
            f"{len(context.item_ids)} items, window {duplicate_window}s"
        )

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._is_active

    def activate(self):
        with self._lock:
            self._is_active = True
        logger.debug("Scanning activated")

    def deactivate(self):
        """Stop processing scans and forget the last accepted tag."""
        with self._lock:
            self._is_active = False
            self._last_accepted_tag = None
            self._last_accepted_expiry = 0.0
        logger.debug("Scanning deactivated")

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    @property
    def last_accepted_tag(self) -> Optional[str]:
        return self._last_accepted_tag

    def submit(self, raw_tag: str, now: Optional[float] = None) -> SubmitResult:
        """
        Process one scan.

        Args:
            raw_tag: Complete string delivered by the scan transport
            now: Monotonic time of the scan; read from the clock when omitted

        Returns:
            SubmitResult with outcome ACCEPTED, REJECTED or IGNORED
        """
        with self._lock:
            if now is None:
                now = self._clock()

            if not self._is_active:
                self.scan_stats['ignored'] += 1
                logger.debug(f"Scan ignored, session inactive: {raw_tag!r}")
                return SubmitResult.ignored()

            if raw_tag == self._last_accepted_tag and now < self._last_accepted_expiry:
                self.scan_stats['ignored'] += 1
                logger.debug(f"Duplicate scan suppressed: {raw_tag!r}")
                return SubmitResult.ignored()

            match = match_scan(raw_tag, self.context)

            if not match.accepted:
                self.last_error = match.message
                self.last_rejection = match.reason
                self.scan_stats['rejected'] += 1
                logger.warning(f"Scan rejected ({match.reason.value}): {raw_tag!r} - {match.message}")
                return SubmitResult(
                    SubmitOutcome.REJECTED, reason=match.reason, message=match.message
                )

            if not self.context.contains(match.item_id):
                # The matcher guarantees membership; reaching this is a bug.
                raise RuntimeError(
                    f"Matcher accepted item {match.item_id!r} outside order {self.context.order_id}"
                )

            newly_confirmed = match.item_id not in self._confirmed
            self._confirmed.add(match.item_id)
            self._last_accepted_tag = raw_tag
            self._last_accepted_expiry = now + self.duplicate_window
            self.last_error = None
            self.last_rejection = None
            self.scan_stats['accepted'] += 1

            remaining = len(self.context.item_ids) - len(self._confirmed)
            if newly_confirmed:
                logger.info(f"Tag accepted: {raw_tag} ({remaining} remaining)")
            else:
                logger.info(f"Tag re-scanned, item {match.item_id} already confirmed")

            return SubmitResult(
                SubmitOutcome.ACCEPTED,
                item_id=match.item_id,
                message=f"Successfully ticketed: {self.context.display_name(match.item_id)}",
                newly_confirmed=newly_confirmed,
            )

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @property
    def confirmed_item_ids(self) -> FrozenSet[str]:
        return frozenset(self._confirmed)

    def is_item_confirmed(self, item_id: str) -> bool:
        return item_id in self._confirmed

    def confirmed_count(self) -> int:
        return len(self._confirmed)

    def total_count(self) -> int:
        return len(self.context.item_ids)

    def remaining_count(self) -> int:
        return len(self.context.item_ids) - len(self._confirmed)

    def is_complete(self) -> bool:
        return all(item_id in self._confirmed for item_id in self.context.item_ids)

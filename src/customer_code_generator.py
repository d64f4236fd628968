"""
Single-flight generation of customer QR codes.

Customer cards carry a QR code of the customer id. Generating and storing the
image involves network I/O, so it runs on a background thread. At most one
generation per customer id is in flight at any time: an explicit pending set
is checked and updated under a lock, and a request for an id that is already
pending is refused rather than queued.
"""

import io
import threading
from typing import Callable, Dict, Optional, Set

import qrcode

from logger import get_logger

logger = get_logger(__name__)


def generate_qr_png(data: str, box_size: int = 10) -> bytes:
    """
    Render a QR code as PNG bytes.

    Args:
        data: Payload to encode
        box_size: Pixel size of one QR module
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class CustomerCodeGenerator:
    """
    Generates and stores customer QR codes, one in-flight job per customer.

    Behaviour:
    - request(customer_id): starts a job unless one is pending for that id;
      returns True if a job was started
    - is_pending(customer_id): whether a job for the id is in flight
    - wait_idle(timeout): blocks until no job is pending

    The store collaborator is called as store(customer_id, png_bytes); any
    exception it raises is logged and recorded in last_errors, and the id
    leaves the pending set so a later request can retry.

    sync_mode=True runs the job inline on the calling thread; useful for unit
    tests that assert on the stored result right after request().
    """

    def __init__(
        self,
        store: Callable[[str, bytes], None],
        render: Callable[[str], bytes] = generate_qr_png,
        sync_mode: bool = False,
    ) -> None:
        self._store = store
        self._render = render
        self._sync_mode = sync_mode

        self._condition = threading.Condition()
        self._pending: Set[str] = set()
        self.last_errors: Dict[str, str] = {}

    def is_pending(self, customer_id: str) -> bool:
        with self._condition:
            return customer_id in self._pending

    def pending_ids(self) -> Set[str]:
        with self._condition:
            return set(self._pending)

    def request(self, customer_id: str) -> bool:
        """
        Start generating the QR code for a customer.

        Returns:
            True if a job was started, False if one is already in flight
        """
        if not customer_id:
            raise ValueError("customer_id is required")

        with self._condition:
            if customer_id in self._pending:
                logger.debug(f"QR generation already in flight for customer {customer_id}")
                return False
            self._pending.add(customer_id)

        if self._sync_mode:
            self._run(customer_id)
        else:
            thread = threading.Thread(
                target=self._run, args=(customer_id,), daemon=True,
                name=f"customer-qr-{customer_id}",
            )
            thread.start()
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no generation is pending. Returns False on timeout."""
        with self._condition:
            return self._condition.wait_for(lambda: not self._pending, timeout=timeout)

    def _run(self, customer_id: str) -> None:
        try:
            png = self._render(customer_id)
            self._store(customer_id, png)
            self.last_errors.pop(customer_id, None)
            logger.info(f"Stored QR code for customer {customer_id} ({len(png)} bytes)")
        except Exception as e:
            self.last_errors[customer_id] = str(e)
            logger.exception(f"QR generation failed for customer {customer_id}")
        finally:
            with self._condition:
                self._pending.discard(customer_id)
                self._condition.notify_all()

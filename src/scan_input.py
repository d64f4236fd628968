"""
Scan input transports.

The ticketing workflow only needs "one complete string per scan". Two ways of
getting there:

- KeystrokeScanBuffer: USB scanners emulate a keyboard and type the tag
  followed by Enter (or Tab, depending on scanner configuration). Characters
  are buffered until the terminator arrives.
- SerializedScanFeeder: scans arriving on other threads (e.g. a networked
  scanner listening on a socket) are pushed into a queue consumed by a single
  background thread, so submissions reach the workflow one at a time.
"""

import queue
import threading
from typing import Callable, List, Optional

from logger import get_logger

logger = get_logger(__name__)

TERMINATORS = ("\r", "\n", "\t")


class KeystrokeScanBuffer:
    """
    Assembles keyboard-wedge scanner input into complete scan strings.

    Usage:
        buffer = KeystrokeScanBuffer()
        for ch in "C1_A\\r":
            scan = buffer.feed(ch)
        # scan == "C1_A"
    """

    def __init__(self, terminators=TERMINATORS):
        self.terminators = tuple(terminators)
        self._chars: List[str] = []

    @property
    def pending_text(self) -> str:
        return "".join(self._chars)

    def feed(self, text: str) -> Optional[str]:
        """
        Add typed characters.

        Returns:
            The completed scan when a terminator arrives with a non-empty
            buffer, else None. Characters after the terminator start the next
            scan; only the first completed scan is returned.
        """
        completed = None
        for ch in text:
            if ch in self.terminators:
                if self._chars and completed is None:
                    completed = "".join(self._chars)
                    self._chars = []
                elif self._chars:
                    logger.warning(f"Dropped scan typed in the same burst: {self.pending_text!r}")
                    self._chars = []
            else:
                self._chars.append(ch)
        return completed

    def submit(self) -> Optional[str]:
        """Explicit submit (manual entry): return the buffered text, if any."""
        if not self._chars:
            return None
        text = "".join(self._chars)
        self._chars = []
        return text

    def clear(self):
        self._chars = []


class SerializedScanFeeder:
    """
    Single-consumer queue delivering scans to a handler one at a time.

    put() may be called from any thread. A single daemon thread calls
    handler(raw) for each scan in arrival order. Exceptions raised by the
    handler are logged and the feeder keeps running.

    sync_mode=True calls the handler inline; useful for unit tests.
    """

    _STOP = object()

    def __init__(self, handler: Callable[[str], object], sync_mode: bool = False) -> None:
        self._handler = handler
        self._sync_mode = sync_mode
        self._lock = threading.Lock()

        if sync_mode:
            return

        self._queue: "queue.Queue" = queue.Queue()
        self._stopped = False
        self._thread = threading.Thread(target=self._run, daemon=True, name="scan-feeder")
        self._thread.start()

    def put(self, raw: str) -> None:
        if self._sync_mode:
            with self._lock:
                self._deliver(raw)
            return
        if self._stopped:
            raise RuntimeError("SerializedScanFeeder is stopped")
        self._queue.put(raw)

    def join(self) -> None:
        """Block until every queued scan has been delivered."""
        if not self._sync_mode:
            self._queue.join()

    def shutdown(self) -> None:
        """Deliver queued scans, then stop the consumer thread."""
        if self._sync_mode or self._stopped:
            return
        self._stopped = True
        self._queue.put(self._STOP)
        self._thread.join(timeout=10)

    def _deliver(self, raw: str) -> None:
        try:
            self._handler(raw)
        except Exception:
            logger.exception(f"Scan handler failed for {raw!r}")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    break
                self._deliver(item)
            finally:
                self._queue.task_done()

import logging
import threading
import time

from focilchain.config import LOG_WINDOW

logger = logging.getLogger(__name__)


class ProductionLog:
    """
    Append-only stream of human readable production events.

    Every entry is prefixed with the local wall-clock time, e.g.
    ``[14:03:21] Block #3 created successfully with 10 transactions``.
    Entries are mirrored to the module logger.
    """

    def __init__(self, clock=time.localtime):
        self._entries = []
        self._lock = threading.Lock()
        self._clock = clock

    def add(self, message: str) -> str:
        entry = f"[{time.strftime('%H:%M:%S', self._clock())}] {message}"
        with self._lock:
            self._entries.append(entry)
        logger.info("%s", message)
        return entry

    def tail(self, n: int = LOG_WINDOW):
        with self._lock:
            if n <= 0:
                return []
            return list(self._entries[-n:])

    def __len__(self):
        with self._lock:
            return len(self._entries)

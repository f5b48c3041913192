import logging
import threading
from collections import deque

logger = logging.getLogger(__name__)


class Mempool:
    """
    FIFO queue of transactions waiting for an inclusion list.

    A transaction leaves the pool the moment it is dequeued and is never
    put back, even if the block it was meant for is not appended.
    """

    def __init__(self, transactions=None):
        self._pending_txs = deque()
        self._seen_tx_ids = set()  # Dedup tracking
        self._lock = threading.Lock()

        if transactions:
            self.add_transactions(transactions)

    def add_transaction(self, tx):
        """
        Appends a transaction to the back of the queue unless a transaction
        with the same id is already pending.
        """
        with self._lock:
            if tx.id in self._seen_tx_ids:
                logger.warning("Mempool: Duplicate transaction rejected %s", tx.id)
                return False

            self._pending_txs.append(tx)
            self._seen_tx_ids.add(tx.id)
            return True

    def add_transactions(self, txs):
        """Adds a batch of transactions. Returns how many were accepted."""
        return sum(1 for tx in txs if self.add_transaction(tx))

    def dequeue(self, n):
        """
        Removes and returns up to n transactions from the front of the queue.
        """
        if n < 0:
            raise ValueError("Cannot dequeue a negative number of transactions.")

        with self._lock:
            taken = []
            while self._pending_txs and len(taken) < n:
                tx = self._pending_txs.popleft()
                self._seen_tx_ids.discard(tx.id)
                taken.append(tx)
            return taken

    def contains(self, tx):
        with self._lock:
            return tx.id in self._seen_tx_ids

    def size(self):
        with self._lock:
            return len(self._pending_txs)

    def __len__(self):
        return self.size()

    def get_pending_transactions(self):
        """Returns a copy of the pending queue, front first."""
        with self._lock:
            return list(self._pending_txs)

"""
Block producer: the timer-driven control loop of the simulation.

On every tick the producer rotates to the next validator address, asks the
election oracle whether it may build a block, assembles the inclusion list
when it may, and appends the sealed block to the chain after a simulated
broadcast. At most one production attempt is ever in flight.
"""

import asyncio
import enum
import logging
import random
from typing import List, Optional

from focilchain.assembler import InclusionListAssembler
from focilchain.block import create_block
from focilchain.chain import Blockchain
from focilchain.config import (
    BROADCAST_DELAY_SECONDS,
    DEFAULT_BLOCK_INTERVAL_MS,
    ELECTION_POLICY_SCORE,
    ELECTION_THRESHOLD,
    HOME_TAGGED_COUNT,
    IDENTITY_COUNT,
    INITIAL_POOL_SIZE,
    LOG_WINDOW,
    REPLENISH_BATCH_SIZE,
    TRANSACTIONS_PER_BLOCK,
)
from focilchain.identity import generate_identities, short_address
from focilchain.log import ProductionLog
from focilchain.mempool import Mempool
from focilchain.network import broadcast_block
from focilchain.oracle import apply_home_override, create_oracle, modulo_elects
from focilchain.transaction import generate_random_transactions

logger = logging.getLogger(__name__)


class InvalidInterval(ValueError):
    """Raised when the block interval is not a positive integer of milliseconds."""


class ProducerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    IDLE = "idle"
    PRODUCING = "producing"
    HALTED = "halted"


def _validate_interval(interval_ms) -> int:
    if isinstance(interval_ms, bool) or not isinstance(interval_ms, int) or interval_ms <= 0:
        raise InvalidInterval(f"Block interval must be a positive integer of milliseconds, got {interval_ms!r}")
    return interval_ms


class BlockProducer:
    """
    Owns the pool, the chain and the production log.

    Readers get copies through ``snapshot()`` and ``recent_log()``; only a
    production attempt mutates the pool and the chain.
    """

    def __init__(
        self,
        identities: Optional[List[str]] = None,
        identity_count: int = IDENTITY_COUNT,
        oracle=None,
        oracle_url: Optional[str] = None,
        election_policy: str = ELECTION_POLICY_SCORE,
        threshold: float = ELECTION_THRESHOLD,
        home_address: Optional[str] = None,
        force_home_election: bool = True,
        interval_ms: int = DEFAULT_BLOCK_INTERVAL_MS,
        broadcast_delay: float = BROADCAST_DELAY_SECONDS,
        initial_pool_size: int = INITIAL_POOL_SIZE,
        replenish_batch_size: int = REPLENISH_BATCH_SIZE,
        per_block: int = TRANSACTIONS_PER_BLOCK,
        home_tagged: int = HOME_TAGGED_COUNT,
        rng: Optional[random.Random] = None,
    ):
        self._identities = list(identities) if identities is not None else None
        self.identity_count = identity_count
        self.oracle = oracle or create_oracle(oracle_url, threshold=threshold, policy=election_policy)
        self.oracle_url = oracle_url
        self.home_address = home_address
        self.force_home_election = force_home_election
        self._interval_ms = _validate_interval(interval_ms)
        self.broadcast_delay = broadcast_delay
        self.initial_pool_size = initial_pool_size
        self.replenish_batch_size = replenish_batch_size
        self.per_block = per_block
        self.assembler = InclusionListAssembler(per_block=per_block, home_tagged=home_tagged)
        self.log = ProductionLog()
        self._rng = rng or random.Random()

        self.addresses: List[str] = []
        self.chain: Optional[Blockchain] = None
        self.mempool: Optional[Mempool] = None

        self._initialized = False
        self._running = True
        self._producing = False
        self._node_index = 0

        self._timer_task: Optional[asyncio.Task] = None
        self._tick_tasks = set()

    # -------------------------
    # STATE
    # -------------------------
    @property
    def state(self) -> ProducerState:
        if not self._initialized:
            return ProducerState.UNINITIALIZED
        if self._producing:
            return ProducerState.PRODUCING
        if not self._running:
            return ProducerState.HALTED
        return ProducerState.IDLE

    @property
    def is_producing(self) -> bool:
        return self._producing

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def current_node_index(self) -> int:
        return self._node_index

    def is_home_validator(self, address: str) -> bool:
        """
        The configured home address, or, when none is configured, every
        address the modulo rotation bias accepts.
        """
        if self.home_address is not None:
            return address == self.home_address
        return modulo_elects(address)

    # -------------------------
    # SETUP
    # -------------------------
    def _synthesize(self, count: int):
        return generate_random_transactions(self.addresses, count, self._rng)

    def initialize(self):
        """Create identities, the genesis block and the initial pool. Idempotent."""
        if self._initialized:
            return

        logger.info("Initializing blockchain...")
        if self._identities is None:
            self.addresses = generate_identities(self.identity_count)
        else:
            self.addresses = list(self._identities)

        if len(self.addresses) < 2:
            raise ValueError("The identity pool needs at least two addresses.")

        self.chain = Blockchain(self.addresses[0])
        self.mempool = Mempool(self._synthesize(self.initial_pool_size))
        self._initialized = True

        logger.info(
            "Initialization complete: %d validators, %d pending transactions",
            len(self.addresses), self.mempool.size(),
        )

    # -------------------------
    # CONTROL SURFACE
    # -------------------------
    async def start(self):
        """Initialize if needed and start the block timer."""
        self.initialize()
        if self._timer_task is not None and not self._timer_task.done():
            return

        logger.info("Setting up block creation interval: %dms", self._interval_ms)
        self._timer_task = asyncio.create_task(self._run_timer())

    def halt(self):
        """Suppress future ticks. An attempt already in flight still completes."""
        if self._running:
            self._running = False
            self.log.add("Blockchain halted")

    def resume(self):
        if not self._running:
            self._running = True
            self.log.add("Blockchain resumed")

    def toggle_running(self) -> bool:
        if self._running:
            self.halt()
        else:
            self.resume()
        return self._running

    def set_interval(self, interval_ms: int):
        """
        Change the block interval. Applies from the next scheduling cycle;
        the wait already in progress is not rescheduled.
        """
        self._interval_ms = _validate_interval(interval_ms)
        self.log.add(f"Block time updated to {interval_ms / 1000:g} seconds")

    async def stop(self):
        """Cancel the timer and any attempt still in flight."""
        tasks = [t for t in self._tick_tasks if not t.done()]
        if self._timer_task is not None and not self._timer_task.done():
            tasks.append(self._timer_task)

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._timer_task = None
        logger.info("Block producer stopped")

    def recent_log(self, n: int = LOG_WINDOW):
        return self.log.tail(n)

    def snapshot(self) -> dict:
        """Read-only view for the presentation layer. Holds copies only."""
        return {
            "state": self.state.value,
            "chain": tuple(self.chain.to_dict_list()) if self.chain else (),
            "pool": tuple(tx.to_dict() for tx in self.mempool.get_pending_transactions()) if self.mempool else (),
            "log": tuple(self.recent_log()),
            "is_producing": self._producing,
            "is_running": self._running,
            "interval_ms": self._interval_ms,
            "current_node_index": self.current_node_index,
        }

    # -------------------------
    # SCHEDULING
    # -------------------------
    async def _run_timer(self):
        while True:
            # Interval is re-read every cycle, so changes apply to the next wait
            await asyncio.sleep(self._interval_ms / 1000)
            if not self._running:
                continue

            task = asyncio.create_task(self.tick())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)

    async def tick(self):
        """
        Run one production attempt. A no-op while uninitialized, halted or
        already producing. Returns the appended block, or None.
        """
        if not self._initialized or not self._running or self._producing:
            return None

        self._producing = True
        try:
            return await self._produce_block()
        except Exception as e:
            # Transactions already taken from the pool stay consumed
            self.log.add(f"Error creating block: {e}")
            logger.exception("Error creating block")
            return None
        finally:
            self._producing = False

    def _replenish_pool(self):
        if self.replenish_batch_size <= 0:
            return
        if self.mempool.size() < self.per_block * 2:
            new_transactions = self._synthesize(self.replenish_batch_size)
            self.mempool.add_transactions(new_transactions)
            self.log.add(f"Generated {len(new_transactions)} new transactions")

    async def _produce_block(self):
        self._node_index = (self._node_index + 1) % len(self.addresses)
        creator = self.addresses[self._node_index]
        block_id = self.chain.height
        is_home = self.is_home_validator(creator)

        self.log.add(f"Node {short_address(creator)} attempting to create block #{block_id}")
        if self.oracle_url:
            self.log.add(f"Requesting ZK proof from {self.oracle_url}...")
        else:
            self.log.add("Requesting ZK proof from local oracle...")

        result = await self.oracle.request_proof(creator)

        if is_home and self.force_home_election:
            if not result.elected:
                apply_home_override(result)
            self.log.add("This is your validator - ensuring election for inclusion list creation")

        if not result.elected:
            self.log.add(f"Node {short_address(creator)} was not elected by ZK proof")
            if result.record is not None:
                self.log.add(result.record.describe())
            return None

        self.log.add(f"Node {short_address(creator)} was elected! Creating inclusion list...")
        if result.record is not None:
            self.log.add(result.record.describe())

        self._replenish_pool()

        inclusion = self.assembler.assemble(self.mempool, self.addresses, is_home, synthesize=self._synthesize)
        if is_home:
            if inclusion.synthesized_tagged:
                self.log.add(
                    f"Generated {inclusion.synthesized_tagged} additional transactions "
                    f"to reach {len(inclusion.tagged)} for your inclusion list"
                )
            if inclusion.synthesized_untagged:
                self.log.add(
                    f"Generated {inclusion.synthesized_untagged} additional transactions "
                    f"to reach {len(inclusion.untagged)} for other validators"
                )
            self.log.add(
                f"Your validator created an inclusion list with exactly {len(inclusion.tagged)} "
                f"transactions + {len(inclusion.untagged)} from other validators"
            )
        elif inclusion.synthesized_untagged:
            self.log.add(
                f"Generated {inclusion.synthesized_untagged} additional transactions to reach {len(inclusion)}"
            )

        block = create_block(
            index=block_id,
            transactions=inclusion.transactions,
            previous_hash=self.chain.last_block.hash,
            creator=creator,
            proof=result.proof,
            election_record=result.record,
        )

        self.log.add(f"Broadcasting block #{block.index} to the network...")
        await broadcast_block(block, self.broadcast_delay)

        self.chain.add_block(block)
        self.log.add(f"Block #{block.index} created successfully with {len(block.transactions)} transactions")
        if is_home:
            self.log.add(f"Your validator successfully included {len(block.transactions)} transactions in the block")

        return block

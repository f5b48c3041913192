from .block import Block, create_block, create_genesis_block
from .config import GENESIS_PREVIOUS_HASH, GENESIS_PROOF
import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class ChainIntegrityError(Exception):
    """Raised when a block does not extend the chain tip exactly."""


class Blockchain:
    """
    Append-only, hash-linked list of blocks.

    The chain only grows by one block at a time on top of the current tip:
    no forks and no reorganisations.
    """

    def __init__(self, genesis_creator: str):
        self.chain = []
        self._lock = threading.RLock()
        self._create_genesis_block(genesis_creator)

    def _create_genesis_block(self, creator):
        """
        Creates the genesis block outside of the election path.
        """
        genesis_block = create_genesis_block(creator)
        self.chain.append(genesis_block)
        logger.debug("Genesis block created: %s", genesis_block.hash)

    @property
    def last_block(self):
        """
        Returns the most recent block in the chain.
        """
        with self._lock:
            return self.chain[-1]

    @property
    def height(self):
        """Returns the current chain height (number of blocks)."""
        with self._lock:
            return len(self.chain)

    def __len__(self):
        return self.height

    def _check_extends_tip(self, block: Block):
        if block.index != len(self.chain):
            raise ChainIntegrityError(
                f"Block {block.index} rejected: expected id {len(self.chain)}"
            )

        tip_hash = self.chain[-1].hash
        if block.previous_hash != tip_hash:
            raise ChainIntegrityError(
                f"Block {block.index} rejected: previous hash {block.previous_hash} != {tip_hash}"
            )

        if block.hash != block.compute_hash():
            raise ChainIntegrityError(f"Block {block.index} rejected: invalid content hash")

    def add_block(self, block: Block) -> Block:
        """
        Validates a sealed block against the tip and appends it.
        Either the whole block is appended or the chain is left untouched.
        """
        with self._lock:
            try:
                self._check_extends_tip(block)
            except ChainIntegrityError as e:
                logger.warning("%s", e)
                raise

            self.chain.append(block)
            return block

    def append(self, index, transactions, previous_hash, creator, proof, election_record=None) -> Block:
        """
        Builds a block from its parts and appends it atomically.
        """
        with self._lock:
            block = create_block(
                index=index,
                transactions=transactions,
                previous_hash=previous_hash,
                creator=creator,
                proof=proof,
                election_record=election_record,
            )
            return self.add_block(block)

    def validate_chain(self) -> bool:
        """
        Re-check the whole chain.

        Checks:
        1. Genesis block has id 0, no transactions and the sentinel parent
        2. Every block id equals its position
        3. Every previous_hash links to the hash of the block before it
        4. Every stored hash matches the block contents
        """
        with self._lock:
            blocks = list(self.chain)

        genesis = blocks[0]
        if genesis.index != 0 or genesis.transactions or genesis.previous_hash != GENESIS_PREVIOUS_HASH:
            logger.warning("Chain validation failed: Invalid genesis block")
            return False

        if genesis.proof != GENESIS_PROOF:
            logger.warning("Chain validation failed: Invalid genesis proof")
            return False

        for i, block in enumerate(blocks):
            if block.index != i:
                logger.warning("Chain validation failed: Invalid index at block %d", i)
                return False

            if block.hash != block.compute_hash():
                logger.warning("Chain validation failed: Invalid hash at block %d", i)
                return False

            if i > 0 and block.previous_hash != blocks[i - 1].hash:
                logger.warning("Chain validation failed: Invalid previous_hash at block %d", i)
                return False

        return True

    def included_transaction_ids(self) -> set:
        with self._lock:
            return {tx.id for block in self.chain for tx in block.transactions}

    def get_block(self, index: int) -> Optional[Block]:
        """Block at `index`, or None when the chain is not that tall."""
        with self._lock:
            if 0 <= index < len(self.chain):
                return self.chain[index]
            return None

    def to_dict_list(self) -> list:
        """Export chain as list of block dictionaries."""
        with self._lock:
            return [block.to_dict() for block in self.chain]

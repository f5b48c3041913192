import logging
from typing import Callable, List, Optional

from focilchain.config import HOME_TAGGED_COUNT, TRANSACTIONS_PER_BLOCK
from focilchain.transaction import Transaction, generate_random_transactions

logger = logging.getLogger(__name__)


class InsufficientPool(Exception):
    """Raised when the pool is short and no transactions can be synthesized."""


class InclusionList:
    """Transactions picked for one block, plus how many had to be synthesized."""

    def __init__(self, tagged: List[Transaction], untagged: List[Transaction], synthesized_tagged: int = 0, synthesized_untagged: int = 0):
        self.tagged = tagged
        self.untagged = untagged
        self.synthesized_tagged = synthesized_tagged
        self.synthesized_untagged = synthesized_untagged

    @property
    def transactions(self) -> List[Transaction]:
        # Home-validator transactions always come first
        return self.tagged + self.untagged

    def __len__(self):
        return len(self.tagged) + len(self.untagged)


def take_exactly(pool, n: int, synthesize: Optional[Callable[[int], List[Transaction]]]):
    """
    Dequeue n transactions from the front of the pool, synthesizing the rest.

    Returns (transactions, synthesized_count).
    """
    taken = pool.dequeue(n)
    missing = n - len(taken)
    if missing == 0:
        return taken, 0

    if synthesize is None:
        raise InsufficientPool(f"Pool holds {len(taken)} of {n} transactions and synthesis is unavailable")

    extra = synthesize(missing)
    if len(extra) != missing:
        raise InsufficientPool(f"Synthesizer produced {len(extra)} of {missing} transactions")

    return taken + list(extra), missing


class InclusionListAssembler:
    """
    Builds the inclusion list of an elected validator.

    * home validator: exactly HOME_TAGGED_COUNT tagged transactions followed by
      TRANSACTIONS_PER_BLOCK - HOME_TAGGED_COUNT untagged ones
    * any other validator: exactly TRANSACTIONS_PER_BLOCK untagged transactions

    Selected transactions are removed from the pool immediately.
    """

    def __init__(self, per_block: int = TRANSACTIONS_PER_BLOCK, home_tagged: int = HOME_TAGGED_COUNT):
        if not 0 <= home_tagged <= per_block:
            raise ValueError("home_tagged must be between 0 and per_block")
        self.per_block = per_block
        self.home_tagged = home_tagged

    def assemble(self, pool, addresses: List[str], is_home_validator: bool, synthesize=None) -> InclusionList:
        if synthesize is None and addresses:
            def synthesize(count):
                return generate_random_transactions(addresses, count)

        if not is_home_validator:
            untagged, synthesized = take_exactly(pool, self.per_block, synthesize)
            return InclusionList([], untagged, synthesized_untagged=synthesized)

        tagged, synthesized_tagged = take_exactly(pool, self.home_tagged, synthesize)
        for tx in tagged:
            tx.mark_included_by_validator()

        untagged, synthesized_untagged = take_exactly(pool, self.per_block - self.home_tagged, synthesize)

        logger.debug(
            "Assembled home inclusion list: %d tagged (%d synthesized), %d untagged (%d synthesized)",
            len(tagged), synthesized_tagged, len(untagged), synthesized_untagged,
        )
        return InclusionList(tagged, untagged, synthesized_tagged, synthesized_untagged)

import time
import hashlib
import json
from typing import List, Optional

from focilchain.config import GENESIS_PREVIOUS_HASH, GENESIS_PROOF
from focilchain.oracle import ElectionRecord
from focilchain.transaction import Transaction


def _sha256(data: str) -> str:
    return "0x" + hashlib.sha256(data.encode("utf-8")).hexdigest()


def serialize_transactions(transactions: List[Transaction]) -> str:
    """Canonical JSON form of a transaction list (order preserved, keys sorted)."""
    return json.dumps(
        [tx.to_dict() for tx in transactions],
        sort_keys=True,
        separators=(",", ":"),
    )


class Block:
    def __init__(
        self,
        index: int,
        previous_hash: str,
        creator: str,
        proof: str,
        transactions: Optional[List[Transaction]] = None,
        timestamp: Optional[float] = None,
        election_record: Optional[ElectionRecord] = None,
    ):
        self.index = index
        self.previous_hash = previous_hash
        self.creator = creator
        self.proof = proof
        self.transactions: List[Transaction] = list(transactions or [])

        # Capture time of construction (ms)
        self.timestamp: int = (
            round(time.time() * 1000)
            if timestamp is None
            else int(timestamp)
        )

        self.election_record = election_record
        self.hash: Optional[str] = None

    def compute_hash(self) -> str:
        block_string = (
            f"{self.index}{self.timestamp}{self.previous_hash}"
            f"{self.creator}{self.proof}{serialize_transactions(self.transactions)}"
        )
        return _sha256(block_string)

    def to_dict(self):
        data = {
            "id": self.index,
            "timestamp": self.timestamp,
            "hash": self.hash,
            "previousHash": self.previous_hash,
            "creator": self.creator,
            "proof": self.proof,
            "transactions": [tx.to_dict() for tx in self.transactions],
        }
        if self.election_record is not None:
            data["electionRecord"] = self.election_record.to_dict()
        return data

    @staticmethod
    def from_dict(data: dict) -> "Block":
        """Create block from dictionary."""
        record = data.get("electionRecord")
        block = Block(
            index=data["id"],
            previous_hash=data["previousHash"],
            creator=data["creator"],
            proof=data["proof"],
            transactions=[Transaction.from_dict(tx) for tx in data.get("transactions", [])],
            timestamp=data.get("timestamp"),
            election_record=ElectionRecord.from_dict(record) if record else None,
        )
        block.hash = data.get("hash")
        return block

    @property
    def tagged_count(self) -> int:
        return sum(1 for tx in self.transactions if tx.included_by_validator)

    def __repr__(self):
        return f"Block(#{self.index}, txs={len(self.transactions)}, hash={self.hash[:10] if self.hash else 'None'})"


def create_block(
    index: int,
    transactions: List[Transaction],
    previous_hash: str,
    creator: str,
    proof: str,
    election_record: Optional[ElectionRecord] = None,
    timestamp: Optional[float] = None,
) -> Block:
    """Build a block and seal it with its content hash."""
    block = Block(
        index=index,
        previous_hash=previous_hash,
        creator=creator,
        proof=proof,
        transactions=transactions,
        timestamp=timestamp,
        election_record=election_record,
    )
    block.hash = block.compute_hash()
    return block


def create_genesis_block(creator: str) -> Block:
    """Create the genesis block: id 0, no transactions, all-zero parent."""
    return create_block(
        index=0,
        transactions=[],
        previous_hash=GENESIS_PREVIOUS_HASH,
        creator=creator,
        proof=GENESIS_PROOF,
    )

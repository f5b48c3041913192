import hashlib
import random
import time
from decimal import Decimal
from typing import List, Optional

WEI_PER_ETH = 10 ** 18

# Generated transfer values, in ETH
MIN_VALUE_ETH = 0.001
VALUE_SPAN_ETH = 9.999


class Transaction:
    def __init__(self, id, sender, receiver, value, timestamp=None, hash=None, included_by_validator=False):
        self.id = id
        self.sender = sender        # Address (hex str)
        self.receiver = receiver    # Address (hex str)
        self.value = str(value)     # Integer wei, kept as a string
        self.timestamp = int(timestamp) if timestamp is not None else round(time.time() * 1000)
        self.hash = hash or self.compute_hash()
        self.included_by_validator = bool(included_by_validator)

    def compute_hash(self) -> str:
        payload = f"{self.sender}{self.receiver}{self.value}{self.timestamp}{self.id}"
        return "0x" + hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def mark_included_by_validator(self):
        """Tag this transaction as chosen by the home validator. Allowed once."""
        if self.included_by_validator:
            raise ValueError(f"Transaction {self.id} is already tagged")
        self.included_by_validator = True

    def to_dict(self):
        return {
            "id": self.id,
            "from": self.sender,
            "to": self.receiver,
            "value": self.value,
            "timestamp": self.timestamp,
            "hash": self.hash,
            "includedByValidator": self.included_by_validator,
        }

    @staticmethod
    def from_dict(data: dict) -> "Transaction":
        """Create transaction from dictionary."""
        return Transaction(
            id=data["id"],
            sender=data["from"],
            receiver=data["to"],
            value=data["value"],
            timestamp=data.get("timestamp"),
            hash=data.get("hash"),
            included_by_validator=data.get("includedByValidator", False),
        )

    def __repr__(self):
        tag = "*" if self.included_by_validator else ""
        return f"Tx{tag}({self.sender[:8]}→{self.receiver[:8]}, {self.value})"


def eth_to_wei(value_eth: str) -> str:
    return str(int(Decimal(value_eth) * WEI_PER_ETH))


def generate_random_transactions(addresses: List[str], count: int, rng: Optional[random.Random] = None) -> List[Transaction]:
    """
    Generate `count` synthetic transfers between distinct addresses of the pool.

    Values range from 0.001 to 10 ETH with six decimals and are stored in wei.
    """
    if len(addresses) < 2:
        raise ValueError("At least two addresses are needed to generate transfers.")

    rng = rng or random.Random()
    transactions = []

    for i in range(count):
        from_index = rng.randrange(len(addresses))
        to_index = rng.randrange(len(addresses))
        while to_index == from_index:
            to_index = rng.randrange(len(addresses))

        value_eth = f"{rng.random() * VALUE_SPAN_ETH + MIN_VALUE_ETH:.6f}"
        now_ms = round(time.time() * 1000)

        sender = addresses[from_index]
        receiver = addresses[to_index]
        value = eth_to_wei(value_eth)

        transactions.append(
            Transaction(
                id=f"tx-{i}-{now_ms}-{rng.getrandbits(32):08x}",
                sender=sender,
                receiver=receiver,
                value=value,
                timestamp=now_ms,
            )
        )

    return transactions

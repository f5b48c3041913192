# Core modules
from .transaction import Transaction, generate_random_transactions
from .block import Block, create_block, create_genesis_block
from .chain import Blockchain, ChainIntegrityError
from .mempool import Mempool

# Election
from .oracle import (
    ElectionRecord,
    ElectionResult,
    LocalElectionOracle,
    RemoteElectionOracle,
    OracleUnavailable,
    apply_home_override,
    create_oracle,
    modulo_elects,
)
from .assembler import InclusionList, InclusionListAssembler, InsufficientPool

# Node
from .identity import generate_identities
from .log import ProductionLog
from .network import broadcast_block
from .producer import BlockProducer, InvalidInterval, ProducerState

__all__ = [
    # Core
    "Transaction",
    "generate_random_transactions",
    "Block",
    "create_block",
    "create_genesis_block",
    "Blockchain",
    "ChainIntegrityError",
    "Mempool",
    # Election
    "ElectionRecord",
    "ElectionResult",
    "LocalElectionOracle",
    "RemoteElectionOracle",
    "OracleUnavailable",
    "apply_home_override",
    "create_oracle",
    "modulo_elects",
    "InclusionList",
    "InclusionListAssembler",
    "InsufficientPool",
    # Node
    "generate_identities",
    "ProductionLog",
    "broadcast_block",
    "BlockProducer",
    "InvalidInterval",
    "ProducerState",
]

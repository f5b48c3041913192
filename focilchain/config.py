"""
config.py - FOCILChain configuration constants.
Defaults for the election and block production simulation.
"""

# Inclusion list sizes
TRANSACTIONS_PER_BLOCK = 10
HOME_TAGGED_COUNT = 4

# Block production timer (ms)
DEFAULT_BLOCK_INTERVAL_MS = 12000

# Election oracle
ELECTION_THRESHOLD = 0.3
HOME_SCORE_NUDGE = 0.1
MODULO_BASE = 7
MODULO_ACCEPT = 5  # elected iff digest sum % MODULO_BASE < MODULO_ACCEPT

ELECTION_POLICY_SCORE = "score"
ELECTION_POLICY_MODULO = "modulo"
ELECTION_POLICIES = (ELECTION_POLICY_SCORE, ELECTION_POLICY_MODULO)

# Remote proof service
ORACLE_TIMEOUT_SECONDS = 2.0
ZK_PROOF_PATH = "/zk-proof"

# Startup sizes
IDENTITY_COUNT = 50
INITIAL_POOL_SIZE = 15
REPLENISH_BATCH_SIZE = 10

# Simulated network latency for block broadcast
BROADCAST_DELAY_SECONDS = 0.5

# Genesis block
GENESIS_PREVIOUS_HASH = "0x" + "0" * 64
GENESIS_PROOF = "genesis-zk-proof"

# Trailing window of the production log shown to readers
LOG_WINDOW = 50

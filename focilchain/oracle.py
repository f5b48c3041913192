"""
Election oracle.

Decides whether a validator address may build the next inclusion list.
The proof it hands back is a mock: it keeps the shape of the response of a
zero-knowledge proof service (proof string, election flag, private data)
without proving anything.

Two implementations share the ``request_proof`` coroutine:

* ``LocalElectionOracle`` computes everything from a sha256 digest of the
  address and is fully reproducible for a given (address, nonce).
* ``RemoteElectionOracle`` asks an HTTP proof service and falls back to a
  local oracle whenever the service cannot be used.
"""

import asyncio
import hashlib
import logging
import time
from typing import Optional

import aiohttp

from focilchain.config import (
    ELECTION_POLICIES,
    ELECTION_POLICY_MODULO,
    ELECTION_POLICY_SCORE,
    ELECTION_THRESHOLD,
    HOME_SCORE_NUDGE,
    MODULO_ACCEPT,
    MODULO_BASE,
    ORACLE_TIMEOUT_SECONDS,
    ZK_PROOF_PATH,
)

logger = logging.getLogger(__name__)


class OracleUnavailable(Exception):
    """Raised when the remote proof service cannot produce a usable answer."""


class ElectionRecord:
    """Private data behind one election attempt."""

    def __init__(self, eligibility_score: float, threshold: float, validator_weight: float, randomness: str, timestamp: int):
        self.eligibility_score = eligibility_score
        self.threshold = threshold
        self.validator_weight = validator_weight
        self.randomness = randomness  # Hex str, 16 bytes
        self.timestamp = timestamp    # evaluatedAt, UNIX seconds

    def to_dict(self):
        return {
            "eligibilityScore": self.eligibility_score,
            "threshold": self.threshold,
            "validatorWeight": self.validator_weight,
            "randomness": self.randomness,
            "timestamp": self.timestamp,
        }

    @staticmethod
    def from_dict(data: dict) -> "ElectionRecord":
        return ElectionRecord(
            eligibility_score=float(data["eligibilityScore"]),
            threshold=float(data["threshold"]),
            validator_weight=float(data["validatorWeight"]),
            randomness=str(data["randomness"]),
            timestamp=int(data["timestamp"]),
        )

    def describe(self) -> str:
        return (
            f"Eligibility score: {self.eligibility_score:.6f}, "
            f"Threshold: {self.threshold:.6f}, "
            f"Weight: {self.validator_weight:.2f}"
        )

    def __repr__(self):
        return f"ElectionRecord(score={self.eligibility_score:.2f}, threshold={self.threshold:.2f})"


class ElectionResult:
    """Response of the proof service: ``{proof, elected, privateData?}``."""

    def __init__(self, proof: str, elected: bool, record: Optional[ElectionRecord] = None):
        self.proof = proof
        self.elected = elected
        self.record = record

    def to_dict(self):
        data = {"proof": self.proof, "elected": self.elected}
        if self.record is not None:
            data["privateData"] = self.record.to_dict()
        return data

    @staticmethod
    def from_dict(data: dict) -> "ElectionResult":
        if not isinstance(data.get("proof"), str) or not isinstance(data.get("elected"), bool):
            raise ValueError("Malformed proof response")

        private_data = data.get("privateData")
        return ElectionResult(
            proof=data["proof"],
            elected=data["elected"],
            record=ElectionRecord.from_dict(private_data) if private_data else None,
        )


def _sha256(data: str) -> bytes:
    return hashlib.sha256(data.encode("utf-8")).digest()


def digest_sum(address: str) -> int:
    """Sum of the bytes of sha256(address)."""
    return sum(_sha256(address))


def modulo_elects(address: str) -> bool:
    """Rotation bias: accepts roughly MODULO_ACCEPT out of MODULO_BASE addresses."""
    return digest_sum(address) % MODULO_BASE < MODULO_ACCEPT


def apply_home_override(result: ElectionResult, nudge: float = HOME_SCORE_NUDGE) -> ElectionResult:
    """
    Force the home validator through the election.

    The eligibility score is lifted just above the threshold when the
    natural evaluation would have rejected it, and never past 1.0. With a
    threshold of 0.9 or more the record therefore keeps a score at or below
    its threshold even though the validator is elected.
    """
    result.elected = True
    record = result.record
    if record is not None:
        record.eligibility_score = min(1.0, max(record.eligibility_score, record.threshold + nudge))
    return result


class LocalElectionOracle:
    def __init__(self, threshold: float = ELECTION_THRESHOLD, policy: str = ELECTION_POLICY_SCORE):
        if policy not in ELECTION_POLICIES:
            raise ValueError(f"Unknown election policy: {policy}")
        self.threshold = threshold
        self.policy = policy

    def evaluate(self, address: str, nonce: Optional[int] = None) -> ElectionResult:
        if nonce is None:
            nonce = int(time.time())

        total = digest_sum(address)
        eligibility_score = (total % 100) / 100  # 0-0.99
        validator_weight = 1 + (total % 10) / 10  # 1.0-1.9
        randomness = _sha256(f"{address}:{nonce}")[:16].hex()

        if self.policy == ELECTION_POLICY_MODULO:
            elected = total % MODULO_BASE < MODULO_ACCEPT
        else:
            elected = eligibility_score > self.threshold

        proof = "mock-zk-proof-0x" + _sha256(f"{address}{nonce}").hex()
        record = ElectionRecord(
            eligibility_score=eligibility_score,
            threshold=self.threshold,
            validator_weight=validator_weight,
            randomness="0x" + randomness,
            timestamp=nonce,
        )
        return ElectionResult(proof=proof, elected=elected, record=record)

    async def request_proof(self, address: str, nonce: Optional[int] = None) -> ElectionResult:
        return self.evaluate(address, nonce)


class RemoteElectionOracle:
    """
    Client for ``GET <base_url>/zk-proof?address=<address>``.

    Transport errors, timeouts, non-200 statuses and malformed payloads all
    fall back to the local oracle.

    The election policy and threshold only configure that fallback. When the
    service answers, its ``elected`` flag and record are taken as they are.
    """

    def __init__(self, base_url: str, fallback: Optional[LocalElectionOracle] = None, timeout: float = ORACLE_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.fallback = fallback or LocalElectionOracle()
        self.timeout = timeout

    async def fetch_proof(self, address: str) -> ElectionResult:
        url = f"{self.base_url}{ZK_PROOF_PATH}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    params={"address": address},
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise OracleUnavailable(f"Proof service returned HTTP {response.status}")
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise OracleUnavailable(f"Proof service unreachable: {e}") from e

        if not isinstance(data, dict):
            raise OracleUnavailable("Proof service returned a non-object payload")

        try:
            return ElectionResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise OracleUnavailable(f"Malformed proof response: {e}") from e

    async def request_proof(self, address: str, nonce: Optional[int] = None) -> ElectionResult:
        try:
            return await self.fetch_proof(address)
        except OracleUnavailable as e:
            logger.warning("Oracle: %s, using local fallback", e)
            return self.fallback.evaluate(address, nonce)


def create_oracle(url: Optional[str] = None, threshold: float = ELECTION_THRESHOLD, policy: str = ELECTION_POLICY_SCORE):
    """Remote oracle when a URL is configured, local oracle otherwise."""
    local = LocalElectionOracle(threshold=threshold, policy=policy)
    if url:
        return RemoteElectionOracle(url, fallback=local)
    return local

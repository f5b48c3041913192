import logging
from typing import List, Tuple

from nacl.signing import SigningKey
from nacl.encoding import HexEncoder

logger = logging.getLogger(__name__)


def create_keypair() -> Tuple[SigningKey, str]:
    """Generate a signing key and its hex-encoded address."""
    sk = SigningKey.generate()
    address = sk.verify_key.encode(encoder=HexEncoder).decode()
    return sk, address


def generate_keypairs(count: int) -> List[Tuple[SigningKey, str]]:
    if count <= 0:
        raise ValueError("Identity count must be a positive integer.")

    keypairs = [create_keypair() for _ in range(count)]
    logger.debug("Generated %d validator keypairs", count)
    return keypairs


def generate_identities(count: int) -> List[str]:
    """
    Build the identity pool: an ordered list of validator addresses.

    Addresses are 64-character hex Ed25519 verify keys. The signing keys
    are discarded since the simulation never signs anything.
    """
    return [address for _, address in generate_keypairs(count)]


def short_address(address: str, length: int = 8) -> str:
    return f"{address[:length]}..."

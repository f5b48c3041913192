import asyncio
import logging

from focilchain.config import BROADCAST_DELAY_SECONDS

logger = logging.getLogger(__name__)


async def broadcast_block(block, delay: float = BROADCAST_DELAY_SECONDS):
    """
    Simulated broadcast of a block to peers.

    Nothing leaves the process: the call only waits for a fixed latency.
    It never fails, but the wait can be cancelled on shutdown.
    """
    logger.debug("Broadcasting block: %s", block.index)
    if delay > 0:
        await asyncio.sleep(delay)
    logger.debug("Block broadcast complete: %s", block.index)

#!/usr/bin/env python3
"""
FOCILChain Simulator CLI

Runs the election and block production loop and exposes its controls on
an interactive console.

Usage:
    # Default: 50 validators, 12 second blocks, local oracle
    python cli.py

    # Faster blocks
    python cli.py --interval 3000

    # Ask a proof service first, fall back to the local oracle
    python cli.py --oracle-url http://localhost:3001

    # Modulo election policy
    python cli.py --policy modulo
"""

import argparse
import asyncio
import logging
import signal
import sys

from focilchain import BlockProducer
from focilchain.config import (
    BROADCAST_DELAY_SECONDS,
    DEFAULT_BLOCK_INTERVAL_MS,
    ELECTION_POLICIES,
    ELECTION_POLICY_SCORE,
    IDENTITY_COUNT,
)

logger = logging.getLogger(__name__)


class Console:
    """Interactive front-end for a BlockProducer."""

    def __init__(self, producer: BlockProducer):
        self.producer = producer
        self._running = False

    async def start(self):
        self._running = True
        await self.producer.start()
        await self._run()

    async def stop(self):
        """Stop the producer gracefully."""
        logger.info("Stopping producer...")
        self._running = False
        await self.producer.stop()

    async def _run(self):
        logger.info("Producer running. Type 'help' for commands.")

        while self._running:
            try:
                cmd = await self._read_input()
                if cmd is None or cmd == "":
                    # EOF on stdin, keep producing until a signal arrives
                    await asyncio.sleep(1.0)
                    continue
                if self._handle_command(cmd) is False:
                    break
            except asyncio.CancelledError:
                break

    async def _read_input(self):
        """Read a line from stdin asynchronously."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, sys.stdin.readline)

    def _print_help(self):
        """Print available commands."""
        print("""
Available commands:
  status             - Show producer status
  chain              - Show chain status
  block <id>         - Show block details
  pool               - Show pending transactions
  log [n]            - Show the last n production log entries
  halt               - Stop producing blocks
  resume             - Resume producing blocks
  interval <ms>      - Set the block interval in milliseconds
  help               - Show this help
  exit / quit        - Stop the simulator
""")

    def _handle_command(self, cmd: str):
        """Handle interactive command."""
        parts = cmd.strip().split()
        if not parts:
            return True  # Continue running

        command = parts[0].lower()
        args = parts[1:]
        snapshot = self.producer.snapshot()

        if command in ("exit", "quit"):
            return False  # Stop running

        elif command == "help":
            self._print_help()

        elif command == "status":
            print(f"State: {snapshot['state']}")
            print(f"Validators: {len(self.producer.addresses)}")
            print(f"Chain height: {len(snapshot['chain'])}")
            print(f"Pool: {len(snapshot['pool'])} txns")
            print(f"Running: {'Yes' if snapshot['is_running'] else 'No'}")
            print(f"Producing: {'Yes' if snapshot['is_producing'] else 'No'}")
            print(f"Block time: {snapshot['interval_ms'] / 1000:g}s")

        elif command == "chain":
            last = snapshot["chain"][-1]
            print(f"Chain height: {len(snapshot['chain'])}")
            print(f"Last block: #{last['id']}")
            print(f"  Hash: {last['hash'][:34]}...")
            print(f"  Creator: {last['creator'][:16]}...")
            print(f"  Txns: {len(last['transactions'])}")

        elif command == "block":
            if not args:
                print("Usage: block <id>")
            else:
                try:
                    idx = int(args[0])
                    block = self.producer.chain.get_block(idx)
                    if block is not None:
                        print(f"Block #{block.index}")
                        print(f"  Hash: {block.hash}")
                        print(f"  Prev: {block.previous_hash[:34]}...")
                        print(f"  Time: {block.timestamp}")
                        print(f"  Creator: {block.creator}")
                        print(f"  Proof: {block.proof[:40]}...")
                        print(f"  Txns: {len(block.transactions)} ({block.tagged_count} from your validator)")
                        if block.election_record is not None:
                            print(f"  {block.election_record.describe()}")
                    else:
                        print(f"Block {idx} not found (height: {len(snapshot['chain'])})")
                except ValueError:
                    print("Invalid block id")

        elif command == "pool":
            pending = snapshot["pool"]
            if pending:
                print(f"Pending transactions ({len(pending)}):")
                for tx in pending[:10]:  # Show first 10
                    print(f"  {tx['from'][:8]}... -> {tx['to'][:8]}... : {tx['value']} wei")
                if len(pending) > 10:
                    print(f"  ... and {len(pending) - 10} more")
            else:
                print("Pool is empty")

        elif command == "log":
            try:
                n = int(args[0]) if args else 10
            except ValueError:
                print("Usage: log [n]")
                return True
            for entry in self.producer.recent_log(n):
                print(entry)

        elif command == "halt":
            self.producer.halt()
            print("Running: OFF")

        elif command == "resume":
            self.producer.resume()
            print("Running: ON")

        elif command == "interval":
            if not args:
                print("Usage: interval <ms>")
            else:
                try:
                    self.producer.set_interval(int(args[0]))
                    print(f"Block time: {self.producer.interval_ms / 1000:g}s (from next cycle)")
                except ValueError as e:
                    print(f"Invalid interval: {e}")

        else:
            print(f"Unknown command: {command}. Type 'help' for commands.")

        return True  # Continue running


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="FOCILChain election and block production simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py                                     # Local oracle, 12s blocks
  python cli.py --interval 3000                     # 3s blocks
  python cli.py --oracle-url http://localhost:3001  # Remote proof service
        """
    )

    parser.add_argument(
        "--interval", "-i",
        type=int,
        default=DEFAULT_BLOCK_INTERVAL_MS,
        help=f"Block interval in milliseconds (default: {DEFAULT_BLOCK_INTERVAL_MS})"
    )

    parser.add_argument(
        "--validators", "-n",
        type=int,
        default=IDENTITY_COUNT,
        help=f"Number of validator identities (default: {IDENTITY_COUNT})"
    )

    parser.add_argument(
        "--policy",
        choices=ELECTION_POLICIES,
        default=ELECTION_POLICY_SCORE,
        help="Election policy: score threshold or modulo-7 rotation bias. "
             "With --oracle-url it applies only to the local fallback"
    )

    parser.add_argument(
        "--home",
        type=str,
        default=None,
        help="Home validator address (default: addresses favored by the rotation bias)"
    )

    parser.add_argument(
        "--no-force-home",
        action="store_true",
        help="Do not force the election of the home validator"
    )

    parser.add_argument(
        "--oracle-url",
        type=str,
        default=None,
        help="Base URL of a proof service exposing /zk-proof"
    )

    parser.add_argument(
        "--broadcast-delay",
        type=float,
        default=BROADCAST_DELAY_SECONDS,
        help=f"Simulated broadcast latency in seconds (default: {BROADCAST_DELAY_SECONDS})"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args()


# Module-level variable to store shutdown task
shutdown_task = None

async def run_producer(args):
    """Run the simulator with given arguments."""
    global shutdown_task

    producer = BlockProducer(
        identity_count=args.validators,
        oracle_url=args.oracle_url,
        election_policy=args.policy,
        home_address=args.home,
        force_home_election=not args.no_force_home,
        interval_ms=args.interval,
        broadcast_delay=args.broadcast_delay,
    )
    console = Console(producer)

    # Handle shutdown signals
    loop = asyncio.get_event_loop()

    def shutdown_handler():
        global shutdown_task
        logger.info("Shutdown signal received")
        shutdown_task = asyncio.create_task(console.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await console.start()
    except KeyboardInterrupt:
        pass
    finally:
        # If shutdown was already initiated by signal handler, wait for it
        if shutdown_task is not None:
            try:
                await asyncio.wait_for(shutdown_task, timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Shutdown task timed out")
        else:
            await console.stop()


def main():
    """Main entry point."""
    args = parse_args()

    # Setup logging
    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )

    if args.interval <= 0:
        print("Block interval must be a positive number of milliseconds")
        sys.exit(2)

    print(f"""
╔══════════════════════════════════════════════╗
║        FOCILChain Block Producer             ║
╚══════════════════════════════════════════════╝
  Validators: {args.validators}
  Block time: {args.interval / 1000:g}s
  Policy: {args.policy}
  Oracle: {args.oracle_url if args.oracle_url else 'local'}

  Type 'help' for available commands.
""")

    asyncio.run(run_producer(args))


if __name__ == "__main__":
    main()

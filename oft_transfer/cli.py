"""
Command line entry point

    python -m oft_transfer --amount 1101 --source sepolia --destination baseSepolia

Exit status is 0 on success and 1 on any failure; the failure message is
printed to stderr as-is.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from .chain_context import ChainContextResolver
from .network_config import DEFAULT_CONFIG_PATH, NetworkRegistry
from .observer import setup_logging
from .transfer_engine import BridgeTransferEngine, TransferReceipt


DEFAULT_SOURCE = "sepolia"
DEFAULT_DESTINATION = "baseSepolia"
DEFAULT_AMOUNT = "1101"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oft-transfer",
        description="Send bridge tokens from one network to another"
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="network config YAML")
    parser.add_argument("--source", default=DEFAULT_SOURCE, help="source network name")
    parser.add_argument("--destination", default=DEFAULT_DESTINATION, help="destination network name")
    parser.add_argument("--source-address", help="token contract on the source network")
    parser.add_argument("--destination-address", help="token contract on the destination network")
    parser.add_argument("--amount", default=DEFAULT_AMOUNT, help="tokens to send, in whole units")
    parser.add_argument("--log-level", default="INFO")
    return parser


async def run(args: argparse.Namespace) -> TransferReceipt:
    registry = NetworkRegistry.from_file(args.config)
    engine = BridgeTransferEngine(
        settings=registry.settings,
        resolver=ChainContextResolver(registry)
    )
    try:
        return await engine.transfer_by_name(
            args.amount,
            args.source,
            args.destination,
            source_address=args.source_address,
            destination_address=args.destination_address
        )
    finally:
        await engine.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        receipt = asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug(f"Transfer failed: {e!r}")
        print(str(e) or repr(e), file=sys.stderr)
        return 1

    logger.debug(f"Receipt: {receipt.to_dict()}")
    return 0

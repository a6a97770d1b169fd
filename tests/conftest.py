"""
Pytest fixtures: in-memory bridge contracts standing in for chain bindings
"""

import asyncio
import itertools
from typing import Dict, List, Optional, Tuple

import pytest

from oft_transfer.chain_client import TransactionReceipt
from oft_transfer.chain_context import ChainContext
from oft_transfer.errors import TransactionRevertedError
from oft_transfer.network_config import TransferSettings
from oft_transfer.observer import RecordingObserver
from oft_transfer.options import pad_address


OWNER = "0x1111111111111111111111111111111111111111"
SEPOLIA_CONTRACT = "0x89d224A430cCb9bfde3F14B4A11F1C1050c915B9"
BASE_CONTRACT = "0xf41c4631B58C6e839ba8f35D44819eA7CA56DDB8"
ENDPOINT = "0x6EDCE65403992e310A62460808c4b910D972f10f"

ONE_TOKEN = 10 ** 18

_hashes = itertools.count(1)


class FakePendingTransaction:
    """Pending transaction whose wait() can hang or revert"""

    def __init__(self, name: str, block_number: int, hang: bool = False, revert: bool = False):
        self.name = name
        self.hash = "0x" + format(next(_hashes), "064x")
        self.block_number = block_number
        self.hang = hang
        self.revert = revert
        self.waited = 0

    async def wait(self, confirmations: int = 1, timeout: float = 120.0) -> TransactionReceipt:
        self.waited += 1
        if self.hang:
            await asyncio.Event().wait()
        if self.revert:
            raise TransactionRevertedError(f"Transaction {self.hash} reverted", tx_hash=self.hash)
        return TransactionReceipt(tx_hash=self.hash, block_number=self.block_number, status=1)


class FakeBridgeContract:
    """
    Token + bridge contract on one chain

    Records every read (`calls`) and write (`transactions`). State changes
    apply when the transaction is submitted.
    """

    def __init__(self, network_id: str, address: str, owner: str = OWNER, native_fee: int = 10 ** 15):
        self.network_id = network_id
        self.address = address
        self.owner = owner
        self.native_fee = native_fee

        self.allowances: Dict[Tuple[str, str], int] = {}
        self.peers: Dict[int, bytes] = {}
        self.balances: Dict[str, int] = {owner: 5000 * ONE_TOKEN}

        self.calls: List[Tuple[str, tuple]] = []
        self.transactions: List[Tuple[str, tuple, int]] = []

        self.fail_calls: Dict[str, Exception] = {}
        self.fail_transactions: Dict[str, Exception] = {}
        self.hang_on: set = set()
        self.revert_on: set = set()
        self.block_number = 100
        self.closed = False

    # Reads

    async def call(self, name: str, *args):
        self.calls.append((name, args))
        if name in self.fail_calls:
            raise self.fail_calls[name]

        if name == 'allowance':
            owner, spender = args
            return self.allowances.get((owner, spender), 0)
        if name == 'isPeer':
            eid, peer = args
            return self.peers.get(eid) == peer
        if name == 'quoteSend':
            return (self.native_fee, 0)
        if name == 'balanceOf':
            return self.balances.get(args[0], 0)
        raise AssertionError(f"unexpected call {name}")

    # Writes

    async def transact(self, name: str, *args, value: int = 0):
        self.transactions.append((name, args, value))
        if name in self.fail_transactions:
            raise self.fail_transactions[name]

        if name not in self.revert_on:
            if name == 'approve':
                spender, amount = args
                self.allowances[(self.owner, spender)] = amount
            elif name == 'setPeer':
                eid, peer = args
                self.peers[eid] = peer
            elif name == 'send':
                send_param = args[0]
                amount = send_param[2]
                self.balances[self.owner] -= amount
                key = (self.owner, ENDPOINT)
                self.allowances[key] = self.allowances.get(key, 0) - amount

        self.block_number += 1
        return FakePendingTransaction(
            name,
            self.block_number,
            hang=name in self.hang_on,
            revert=name in self.revert_on
        )

    async def close(self):
        self.closed = True

    # Helpers

    def link_to(self, other: 'FakeBridgeContract', eid: int):
        self.peers[eid] = pad_address(other.address)

    def sent(self, name: str) -> List[Tuple[tuple, int]]:
        return [(args, value) for tx_name, args, value in self.transactions if tx_name == name]

    def called(self, name: str) -> int:
        return sum(1 for call_name, _ in self.calls if call_name == name)


def make_context(network_id: str, eid: int, address: str) -> ChainContext:
    return ChainContext(
        network_id=network_id,
        protocol_endpoint_id=eid,
        rpc_url=f"https://{network_id}.example",
        signing_key="0x" + "ab" * 32,
        contract_address=address,
        contract_interface=({"type": "function", "name": "send"},)
    )


@pytest.fixture
def source_context() -> ChainContext:
    return make_context("sepolia", 40161, SEPOLIA_CONTRACT)


@pytest.fixture
def destination_context() -> ChainContext:
    return make_context("baseSepolia", 40245, BASE_CONTRACT)


@pytest.fixture
def source_contract() -> FakeBridgeContract:
    return FakeBridgeContract("sepolia", SEPOLIA_CONTRACT)


@pytest.fixture
def destination_contract() -> FakeBridgeContract:
    contract = FakeBridgeContract("baseSepolia", BASE_CONTRACT)
    contract.balances[OWNER] = 0
    return contract


@pytest.fixture
def contracts(source_contract, destination_contract) -> Dict[str, FakeBridgeContract]:
    return {
        source_contract.network_id: source_contract,
        destination_contract.network_id: destination_contract,
    }


@pytest.fixture
def binder(contracts):
    return lambda context: contracts[context.network_id]


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def settings() -> TransferSettings:
    return TransferSettings(endpoint_address=ENDPOINT, confirmation_timeout_seconds=0.2)


def link_both(source: FakeBridgeContract, destination: FakeBridgeContract,
              source_eid: int = 40161, destination_eid: int = 40245,
              only: Optional[str] = None):
    """Pre-register peers; only='forward' or 'backward' links a single direction"""
    if only in (None, 'forward'):
        source.link_to(destination, destination_eid)
    if only in (None, 'backward'):
        destination.link_to(source, source_eid)

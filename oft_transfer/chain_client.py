"""
Chain Client

Thin async layer over web3.py:
- connect: AsyncWeb3 over HTTP with a request timeout
- SigningIdentity: local key signing + raw transaction submission
- ContractBinding: read calls and signed write calls by function name
- PendingTransaction: receipt/confirmation waiting

Every write returns a PendingTransaction; callers decide how long to wait.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import aiohttp
from eth_account import Account
from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TimeExhausted

from .chain_context import ChainContext
from .errors import ConfirmationTimeoutError, TransactionRevertedError


DEFAULT_POLL_INTERVAL_SECONDS = 2.0


def connect(url: str, timeout: float = 30.0) -> AsyncWeb3:
    """Create an AsyncWeb3 for an RPC url (no request is sent yet)"""
    provider = AsyncHTTPProvider(url, request_kwargs={'timeout': aiohttp.ClientTimeout(total=timeout)})
    return AsyncWeb3(provider)


@dataclass(frozen=True)
class TransactionReceipt:
    """Mined transaction summary"""
    tx_hash: str
    block_number: int
    status: int
    gas_used: Optional[int] = None


class PendingTransaction:
    """Submitted transaction awaiting inclusion"""

    def __init__(self, w3: AsyncWeb3, tx_hash: str, poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS):
        self.w3 = w3
        self.hash = tx_hash
        self.poll_interval = poll_interval

    def __repr__(self):
        return f"PendingTransaction({self.hash})"

    async def wait(self, confirmations: int = 1, timeout: float = 120.0) -> TransactionReceipt:
        """
        Wait until the transaction has the given number of confirmations

        Args:
            confirmations: Blocks including the transaction's own block
            timeout: Seconds to wait for the receipt

        Returns:
            TransactionReceipt

        Raises:
            TimeExhausted: receipt not available within timeout
            TransactionRevertedError: mined with status 0
        """
        raw = await self.w3.eth.wait_for_transaction_receipt(
            self.hash,
            timeout=timeout,
            poll_latency=self.poll_interval
        )
        receipt = TransactionReceipt(
            tx_hash=Web3.to_hex(raw['transactionHash']),
            block_number=raw['blockNumber'],
            status=raw['status'],
            gas_used=raw.get('gasUsed')
        )

        if receipt.status != 1:
            raise TransactionRevertedError(
                f"Transaction {receipt.tx_hash} reverted in block {receipt.block_number}",
                tx_hash=receipt.tx_hash
            )

        while confirmations > 1:
            current = await self.w3.eth.block_number
            if current - receipt.block_number + 1 >= confirmations:
                break
            await asyncio.sleep(self.poll_interval)

        return receipt


class SigningIdentity:
    """Private key bound to one RPC connection"""

    def __init__(self, private_key: str, w3: AsyncWeb3):
        self.w3 = w3
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    def __repr__(self):
        return f"SigningIdentity({self.address})"

    async def send(self, tx: Dict[str, Any]) -> PendingTransaction:
        """Sign a built transaction locally and submit it"""
        signed = self._account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return PendingTransaction(self.w3, Web3.to_hex(tx_hash))


class ContractBinding:
    """Contract at an address, called through a signing identity"""

    def __init__(self, address: str, abi: Sequence[Dict], identity: SigningIdentity):
        self.identity = identity
        self.address = Web3.to_checksum_address(address)
        self._contract = identity.w3.eth.contract(address=self.address, abi=list(abi))

    @property
    def owner(self) -> str:
        return self.identity.address

    def _function(self, name: str, args: Sequence[Any]):
        return getattr(self._contract.functions, name)(*args)

    async def call(self, name: str, *args) -> Any:
        """Run a read-only contract function and return the decoded result"""
        return await self._function(name, args).call({'from': self.owner})

    async def transact(self, name: str, *args, value: int = 0) -> PendingTransaction:
        """Build, sign and submit a state changing contract call"""
        nonce = await self.identity.w3.eth.get_transaction_count(self.owner, 'pending')
        tx = await self._function(name, args).build_transaction({
            'from': self.owner,
            'value': value,
            'nonce': nonce
        })
        pending = await self.identity.send(tx)
        logger.debug(f"{name} submitted from {self.owner}: {pending.hash}")
        return pending

    async def close(self):
        """Close the provider's HTTP sessions"""
        try:
            await self.identity.w3.provider.disconnect()
        except (RuntimeError, ConnectionError, OSError) as e:
            logger.debug(f"Error closing connection for {self.address}: {e}")


def bind_contract(context: ChainContext, rpc_timeout: float = 30.0) -> ContractBinding:
    """Connect to a chain and bind its contract with the context's signing key"""
    w3 = connect(context.rpc_url, timeout=rpc_timeout)
    identity = SigningIdentity(context.signing_key, w3)
    return ContractBinding(context.contract_address, context.contract_interface, identity)


async def wait_for_confirmation(
    pending: PendingTransaction,
    confirmations: int,
    timeout: float,
    label: str
) -> TransactionReceipt:
    """
    Wait for a pending transaction, bounded by timeout

    Raises:
        ConfirmationTimeoutError: not confirmed within timeout
        TransactionRevertedError: mined with status 0
    """
    try:
        return await asyncio.wait_for(pending.wait(confirmations, timeout=timeout), timeout=timeout)
    except (asyncio.TimeoutError, TimeExhausted) as e:
        raise ConfirmationTimeoutError(
            f"{label}: transaction {pending.hash} not confirmed within {timeout:g}s"
        ) from e

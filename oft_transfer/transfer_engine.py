"""
Bridge Transfer Engine

Sends tokens from one chain to another through the bridge contract:
1. Allowance - approve the endpoint for exactly the amount if needed
2. Peers - make both contracts trust each other (skipped when linked)
3. Quote - native fee for relaying the message
4. Send - submit the transfer paying the quoted fee
5. Confirmation - wait for the send on the source chain
6. Reporting - post-transfer balances (best effort)

Steps run strictly in order and stop at the first failure. Nothing is
retried; re-running resumes safely because steps 1 and 2 are skipped once
satisfied. Delivery on the destination chain is not awaited.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, Optional, Tuple, Union

from loguru import logger

from .chain_client import ContractBinding, TransactionReceipt, bind_contract, wait_for_confirmation
from .chain_context import ChainContext, ChainContextResolver
from .errors import (
    AllowanceError,
    ConfigurationError,
    ConfirmationTimeoutError,
    QuoteError,
    SendError,
)
from .network_config import TransferSettings
from .observer import LoguruObserver, TransferObserver
from .options import executor_lz_receive_option, from_base_units, pad_address, parse_amount, to_base_units
from .peer_registration import PeerRegistrationCoordinator


@dataclass(frozen=True)
class TransferRequest:
    """Amount to move from source to destination"""
    amount: Decimal
    source: ChainContext
    destination: ChainContext
    token_decimals: int = 18

    def __post_init__(self):
        # frozen: bypass __setattr__ to store the parsed amount
        object.__setattr__(self, 'amount', parse_amount(self.amount))
        # rejects amounts finer than the token's smallest unit
        to_base_units(self.amount, self.token_decimals)
        if self.source.protocol_endpoint_id == self.destination.protocol_endpoint_id:
            raise ConfigurationError(
                f"Source and destination share endpoint id {self.source.protocol_endpoint_id}"
            )


@dataclass
class TransferReceipt:
    """Confirmed send on the source chain"""
    tx_hash: str
    block_number: int
    amount: Decimal
    amount_base_units: int
    native_fee: int
    source_network: str
    destination_network: str
    approval_tx_hash: Optional[str] = None
    peer_registrations: int = 0
    source_balance: Optional[Decimal] = None
    destination_balance: Optional[Decimal] = None
    source_balance_raw: Optional[int] = None
    destination_balance_raw: Optional[int] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict:
        data = asdict(self)
        for key in ('amount', 'source_balance', 'destination_balance'):
            if data[key] is not None:
                data[key] = str(data[key])
        if self.completed_at:
            data['completed_at'] = self.completed_at.isoformat()
        return data


SendParam = Tuple[int, bytes, int, int, bytes, bytes, bytes]


class BridgeTransferEngine:
    """
    Cross-chain token transfer through a bridge contract

    The engine owns one contract binding per chain for the duration of a
    run. Bindings are created on first use through `binder`, which tests
    replace with in-memory fakes.
    """

    def __init__(
        self,
        settings: Optional[TransferSettings] = None,
        observer: Optional[TransferObserver] = None,
        binder: Optional[Callable[[ChainContext], ContractBinding]] = None,
        resolver: Optional[ChainContextResolver] = None
    ):
        """
        Initialize transfer engine

        Args:
            settings: Transfer settings (defaults when omitted)
            observer: Progress sink (loguru when omitted)
            binder: ChainContext -> ContractBinding factory
            resolver: Needed only for transfer_by_name
        """
        self.settings = settings or TransferSettings()
        self.observer = observer or LoguruObserver()
        self.resolver = resolver
        self._binder = binder or (lambda ctx: bind_contract(ctx, self.settings.rpc_timeout_seconds))
        self._contracts: Dict[Tuple[str, str], ContractBinding] = {}

        self.peers = PeerRegistrationCoordinator(self.contract_for, self.settings, self.observer)

    def contract_for(self, context: ChainContext) -> ContractBinding:
        """Contract binding for a chain and contract address, created once per engine"""
        key = (context.network_id, context.contract_address)
        if key not in self._contracts:
            self._contracts[key] = self._binder(context)
        return self._contracts[key]

    async def transfer_by_name(
        self,
        amount: Union[str, Decimal],
        source_network: str,
        destination_network: str,
        source_address: Optional[str] = None,
        destination_address: Optional[str] = None
    ) -> TransferReceipt:
        """Resolve both networks, then run transfer()"""
        if self.resolver is None:
            raise ConfigurationError("No chain context resolver configured")

        source = self.resolver.resolve(source_network, source_address)
        destination = self.resolver.resolve(destination_network, destination_address)

        return await self.transfer(TransferRequest(
            amount=amount,
            source=source,
            destination=destination,
            token_decimals=self.settings.token_decimals
        ))

    async def transfer(self, request: TransferRequest) -> TransferReceipt:
        """
        Execute the complete transfer

        Args:
            request: Transfer request

        Returns:
            TransferReceipt once the send is confirmed on the source chain

        Raises:
            AllowanceError, PeeringError, QuoteError, SendError, ConfirmationTimeoutError
        """
        source, destination = request.source, request.destination
        source_contract = self.contract_for(source)
        destination_contract = self.contract_for(destination)
        amount_ld = to_base_units(request.amount, self.settings.token_decimals)

        self.observer.emit(
            'transfer.start', f"Starting transfer of {request.amount} tokens",
            source=source.network_id, destination=destination.network_id, amount=str(request.amount)
        )

        # Step 1: Allowance
        approval_tx_hash = await self.ensure_allowance(source_contract, request.amount, amount_ld)

        # Step 2: Peers
        registrations = await self.peers.ensure_mutual_peering(source, destination)

        # Step 3: Quote
        send_param = self.build_send_param(destination, destination_contract.owner, amount_ld)
        native_fee = await self.quote_fee(source_contract, send_param)

        # Step 4: Send
        pending = await self.submit_send(source_contract, send_param, native_fee)

        # Step 5: Confirmation
        receipt = await self.confirm_send(pending)

        result = TransferReceipt(
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            amount=request.amount,
            amount_base_units=amount_ld,
            native_fee=native_fee,
            source_network=source.network_id,
            destination_network=destination.network_id,
            approval_tx_hash=approval_tx_hash,
            peer_registrations=registrations,
            completed_at=datetime.now(timezone.utc)
        )

        # Step 6: Reporting
        result.source_balance_raw = await self.read_balance(source_contract, 'source')
        result.destination_balance_raw = await self.read_balance(destination_contract, 'destination')
        result.source_balance = self._human(result.source_balance_raw)
        result.destination_balance = self._human(result.destination_balance_raw)

        self.observer.emit(
            'transfer.complete', f"Transfer of {request.amount} tokens complete; txHash: {result.tx_hash}",
            tx_hash=result.tx_hash
        )
        return result

    async def ensure_allowance(self, contract: ContractBinding, amount: Decimal, amount_ld: int) -> Optional[str]:
        """
        Approve the endpoint for exactly amount_ld if the current allowance is lower

        Returns:
            Approval transaction hash, or None if the allowance was sufficient
        """
        spender = self.settings.endpoint_address
        owner = contract.owner

        try:
            allowance = await contract.call('allowance', owner, spender)
        except Exception as e:
            raise AllowanceError(f"Cannot read allowance for {owner}: {e}") from e

        if allowance >= amount_ld:
            self.observer.emit(
                'allowance.sufficient', "Endpoint allowance already sufficient",
                allowance=allowance
            )
            return None

        self.observer.emit('allowance.approving', "Approving token spend for bridge endpoint...")

        try:
            pending = await contract.transact('approve', spender, amount_ld)
            receipt = await wait_for_confirmation(
                pending,
                self.settings.confirmations,
                self.settings.confirmation_timeout_seconds,
                label='approve'
            )
        except ConfirmationTimeoutError:
            raise
        except Exception as e:
            raise AllowanceError(f"Approval of {amount} tokens failed: {e}") from e

        self.observer.emit(
            'allowance.approved', f"Approved {amount} tokens to bridge endpoint",
            tx_hash=receipt.tx_hash
        )
        return receipt.tx_hash

    def build_send_param(self, destination: ChainContext, recipient: str, amount_ld: int) -> SendParam:
        """(dstEid, to, amountLD, minAmountLD, extraOptions, composeMsg, oftCmd)"""
        options = executor_lz_receive_option(
            self.settings.executor_gas_limit,
            self.settings.executor_native_value
        )
        return (
            destination.protocol_endpoint_id,
            pad_address(recipient),
            amount_ld,
            amount_ld,
            bytes.fromhex(options[2:]),
            b'',
            b''
        )

    async def quote_fee(self, contract: ContractBinding, send_param: SendParam) -> int:
        """Native fee for relaying send_param"""
        try:
            native_fee, _lz_token_fee = await contract.call('quoteSend', send_param, False)
        except Exception as e:
            raise QuoteError(f"Fee quotation failed: {e}") from e

        self.observer.emit(
            'fee.quoted',
            f"Estimated gas fee for the token transfer operation: {from_base_units(native_fee)}",
            native_fee=native_fee
        )
        return native_fee

    async def submit_send(self, contract: ContractBinding, send_param: SendParam, native_fee: int):
        try:
            pending = await contract.transact(
                'send', send_param, (native_fee, 0), contract.owner, value=native_fee
            )
        except Exception as e:
            raise SendError(f"Send failed: {e}") from e

        self.observer.emit(
            'send.submitted', f"Token transfer operation initiated; txHash: {pending.hash}",
            tx_hash=pending.hash
        )
        return pending

    async def confirm_send(self, pending) -> TransactionReceipt:
        try:
            receipt = await wait_for_confirmation(
                pending,
                self.settings.confirmations,
                self.settings.confirmation_timeout_seconds,
                label='send'
            )
        except ConfirmationTimeoutError:
            raise
        except Exception as e:
            raise SendError(f"Send transaction {pending.hash} failed: {e}") from e

        self.observer.emit(
            'send.confirmed', f"Token transfer operation completed; txHash: {receipt.tx_hash}",
            tx_hash=receipt.tx_hash, block_number=receipt.block_number
        )
        return receipt

    def _human(self, raw: Optional[int]) -> Optional[Decimal]:
        if raw is None:
            return None
        return from_base_units(raw, self.settings.token_decimals)

    async def read_balance(self, contract: ContractBinding, side: str) -> Optional[int]:
        """Owner token balance in base units; None when it cannot be read"""
        try:
            raw = await contract.call('balanceOf', contract.owner)
        except Exception as e:
            self.observer.emit(
                'balance.unavailable', f"Cannot read {side} owner balance: {e}", side=side
            )
            return None

        balance = self._human(raw)
        self.observer.emit(
            f'balance.{side}', f"{side.capitalize()} owner balance: {balance}",
            owner=contract.owner, balance=str(balance)
        )
        return raw

    async def close(self):
        """Close all chain connections opened by this engine"""
        for (network_id, address), contract in list(self._contracts.items()):
            try:
                await contract.close()
            except Exception as e:
                logger.debug(f"Error closing {network_id} {address}: {e}")
        self._contracts.clear()

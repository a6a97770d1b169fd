"""
Peer Registration Coordinator

Makes two bridge contracts trust each other as peers. Each direction is
checked on-chain first and only registered when missing, so re-running is
safe after a partial failure.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional

from .chain_client import ContractBinding, wait_for_confirmation
from .chain_context import ChainContext
from .errors import ConfirmationTimeoutError, PeeringError, PeeringTimeoutError
from .network_config import TransferSettings
from .observer import LoguruObserver, TransferObserver
from .options import pad_address


@dataclass(frozen=True)
class PeerDirection:
    """One side registering the other as its peer"""
    origin: ChainContext
    target: ChainContext

    @property
    def label(self) -> str:
        return f"{self.origin.network_id}->{self.target.network_id}"


class PeerRegistrationCoordinator:
    """Idempotent, two-way peer registration"""

    def __init__(
        self,
        contract_for: Callable[[ChainContext], ContractBinding],
        settings: Optional[TransferSettings] = None,
        observer: Optional[TransferObserver] = None
    ):
        """
        Args:
            contract_for: Returns the signing contract binding for a chain
            settings: Confirmation count/timeout and concurrency switch
            observer: Progress sink
        """
        self.contract_for = contract_for
        self.settings = settings or TransferSettings()
        self.observer = observer or LoguruObserver()

    async def ensure_mutual_peering(self, a: ChainContext, b: ChainContext) -> int:
        """
        Ensure a and b recognise each other as peers

        Returns:
            Number of registration transactions issued (0, 1 or 2)

        Raises:
            PeeringError: check or registration failed (direction and step attached)
        """
        directions = [PeerDirection(origin=a, target=b), PeerDirection(origin=b, target=a)]

        if self.settings.concurrent_peering:
            results = await self._ensure_concurrently(directions)
        else:
            results = [await self.ensure_peer(d) for d in directions]

        return sum(results)

    async def _ensure_concurrently(self, directions: List[PeerDirection]) -> List[bool]:
        """Run all directions at once; the first failure cancels the rest"""
        tasks = [asyncio.ensure_future(self.ensure_peer(d)) for d in directions]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # collect cancelled and failed tasks before propagating
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def ensure_peer(self, direction: PeerDirection) -> bool:
        """
        Register direction.target on direction.origin unless already registered

        Returns:
            True if a registration transaction was issued
        """
        label = direction.label
        contract = self.contract_for(direction.origin)
        peer_eid = direction.target.protocol_endpoint_id
        peer_address = pad_address(direction.target.contract_address)

        try:
            linked = await contract.call('isPeer', peer_eid, peer_address)
        except Exception as e:
            raise PeeringError(
                f"Peer check {label} failed: {e}", direction=label, step='check'
            ) from e

        if linked:
            self.observer.emit(
                'peer.linked', f"Peer already set on {direction.origin.network_id} contract",
                direction=label
            )
            return False

        self.observer.emit(
            'peer.registering', f"Setting peer on {direction.origin.network_id} contract...",
            direction=label
        )

        try:
            pending = await contract.transact('setPeer', peer_eid, peer_address)
            receipt = await wait_for_confirmation(
                pending,
                self.settings.confirmations,
                self.settings.confirmation_timeout_seconds,
                label=f"setPeer {label}"
            )
        except ConfirmationTimeoutError as e:
            raise PeeringTimeoutError(str(e), direction=label, step='register') from e
        except Exception as e:
            raise PeeringError(
                f"Peer registration {label} failed: {e}", direction=label, step='register'
            ) from e

        self.observer.emit(
            'peer.registered', f"Peer set on {direction.origin.network_id} contract",
            direction=label, tx_hash=receipt.tx_hash
        )
        return True

"""
OFT Bridge Transfer

Moves tokens between two networks through a bridge (omnichain token)
contract deployed on both sides.

Components:
- network_config: YAML network registry and transfer settings
- artifacts: deployment artifact (ABI) lookup
- chain_context: per-network handle resolution
- chain_client: web3 RPC, signing and contract bindings
- peer_registration: two-way, idempotent peer setup
- transfer_engine: allowance -> peers -> quote -> send -> confirm -> report

Transfer Steps:
1. Allowance - exact-amount approval for the bridge endpoint (skipped if sufficient)
2. Peers - both contracts registered as each other's peer (skipped if linked)
3. Quote - native messaging fee
4. Send - transfer paying the quoted fee
5. Confirmation - source chain finality only
6. Reporting - owner balances on both sides
"""

from .errors import (
    BridgeTransferError,
    ConfigurationError,
    ArtifactNotFoundError,
    AllowanceError,
    PeeringError,
    PeeringTimeoutError,
    QuoteError,
    SendError,
    ConfirmationTimeoutError,
    TransactionRevertedError,
)
from .network_config import (
    NetworkRegistry,
    NetworkConfig,
    TransferSettings,
)
from .artifacts import (
    ArtifactStore,
    DeploymentArtifact,
)
from .chain_context import (
    ChainContext,
    ChainContextResolver,
)
from .peer_registration import (
    PeerRegistrationCoordinator,
    PeerDirection,
)
from .transfer_engine import (
    BridgeTransferEngine,
    TransferRequest,
    TransferReceipt,
)
from .observer import (
    LoguruObserver,
    RecordingObserver,
    setup_logging,
)

__all__ = [
    # Errors
    'BridgeTransferError',
    'ConfigurationError',
    'ArtifactNotFoundError',
    'AllowanceError',
    'PeeringError',
    'PeeringTimeoutError',
    'QuoteError',
    'SendError',
    'ConfirmationTimeoutError',
    'TransactionRevertedError',

    # Configuration
    'NetworkRegistry',
    'NetworkConfig',
    'TransferSettings',
    'ArtifactStore',
    'DeploymentArtifact',

    # Chains
    'ChainContext',
    'ChainContextResolver',

    # Transfer
    'PeerRegistrationCoordinator',
    'PeerDirection',
    'BridgeTransferEngine',
    'TransferRequest',
    'TransferReceipt',

    # Observability
    'LoguruObserver',
    'RecordingObserver',
    'setup_logging',
]

__version__ = '1.0.0'

"""
Transfer Errors

Failure kinds raised while resolving chains and running a transfer.
Every error unwinds to the operator; none of them is retried.
"""

from typing import Optional


class BridgeTransferError(Exception):
    """Base class for all bridge transfer failures"""


# Setup phase

class ConfigurationError(BridgeTransferError):
    """Unknown network, bad settings or missing credential"""


class ArtifactNotFoundError(BridgeTransferError):
    """No usable deployment artifact for a network"""


# Transfer phase

class AllowanceError(BridgeTransferError):
    """Reading or granting the endpoint allowance failed"""


class PeeringError(BridgeTransferError):
    """
    Peer check or registration failed for one direction

    Attributes:
        direction: "<from>-><to>" network names
        step: "check" or "register"
    """

    def __init__(self, message: str, direction: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message)
        self.direction = direction
        self.step = step


class QuoteError(BridgeTransferError):
    """Fee quotation for the send failed"""


class SendError(BridgeTransferError):
    """Submitting the send transaction failed"""


class ConfirmationTimeoutError(BridgeTransferError):
    """A submitted transaction was not confirmed in time"""


class PeeringTimeoutError(PeeringError, ConfirmationTimeoutError):
    """Peer registration transaction was not confirmed in time"""


class TransactionRevertedError(BridgeTransferError):
    """Transaction was mined with a failed status"""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash

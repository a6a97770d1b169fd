"""
Chain Context Resolver

Turns a network name into everything needed to talk to that chain:
RPC url, signing credential, bridge endpoint id and contract binding data.
Resolution only reads local config and artifacts; no RPC calls are made.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from loguru import logger
from web3 import Web3

from .artifacts import ArtifactStore
from .errors import ConfigurationError
from .network_config import NetworkRegistry


@dataclass(frozen=True)
class ChainContext:
    """Resolved, read-only handle for one network"""
    network_id: str
    protocol_endpoint_id: int
    rpc_url: str
    signing_key: str
    contract_address: str
    contract_interface: Tuple[Dict, ...]

    def __repr__(self):
        return (f"ChainContext({self.network_id}: eid={self.protocol_endpoint_id}, "
                f"contract={self.contract_address})")


class ChainContextResolver:
    """Builds ChainContext values from the network registry and artifact store"""

    def __init__(self, registry: NetworkRegistry, artifacts: Optional[ArtifactStore] = None):
        self.registry = registry
        self.artifacts = artifacts or ArtifactStore(registry.deployments_path, registry.contract_name)

    def resolve(self, network_id: str, contract_address: Optional[str] = None) -> ChainContext:
        """
        Resolve one network

        Args:
            network_id: Network name from the config
            contract_address: Deployed contract address; falls back to the artifact's address

        Returns:
            ChainContext

        Raises:
            ConfigurationError: unknown network, no usable contract address
            ArtifactNotFoundError: no artifact for the network
        """
        network = self.registry.get(network_id)
        artifact = self.artifacts.load(network_id)

        address = contract_address or artifact.address
        if not address:
            raise ConfigurationError(f'No contract address given for "{network_id}"')
        if not Web3.is_address(address):
            raise ConfigurationError(f'Invalid contract address for "{network_id}": {address}')

        context = ChainContext(
            network_id=network_id,
            protocol_endpoint_id=network.eid,
            rpc_url=network.url,
            signing_key=network.signing_key,
            contract_address=Web3.to_checksum_address(address),
            contract_interface=tuple(artifact.abi)
        )
        logger.debug(f"Resolved {context!r}")
        return context

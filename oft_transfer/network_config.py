"""
Network Configuration

Loads the static network registry and transfer settings from YAML.

Each network entry provides:
- url: RPC endpoint
- eid: bridge protocol endpoint id (not the native chain id)
- accounts_env / accounts: signing credential(s)

Signing credentials are read from the environment (a local .env file is
honoured) and are never logged.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import yaml
from dotenv import load_dotenv
from loguru import logger

from .errors import ConfigurationError


DEFAULT_CONFIG_PATH = "oft_config.yaml"

# LayerZero V2 endpoint, same address on every supported EVM testnet
DEFAULT_ENDPOINT_ADDRESS = "0x6EDCE65403992e310A62460808c4b910D972f10f"


@dataclass(frozen=True)
class NetworkConfig:
    """Static parameters of one network"""
    name: str
    url: str
    eid: int
    accounts: List[str] = field(default_factory=list, repr=False)

    @property
    def signing_key(self) -> str:
        return self.accounts[0]


@dataclass(frozen=True)
class TransferSettings:
    """Tunables for a transfer run"""
    endpoint_address: str = DEFAULT_ENDPOINT_ADDRESS
    token_decimals: int = 18
    executor_gas_limit: int = 20000
    executor_native_value: int = 0
    confirmations: int = 1
    confirmation_timeout_seconds: float = 300.0
    rpc_timeout_seconds: float = 30.0
    concurrent_peering: bool = False

    def __post_init__(self):
        if self.confirmations < 1:
            raise ConfigurationError("confirmations must be at least 1")
        if self.confirmation_timeout_seconds <= 0:
            raise ConfigurationError("confirmation_timeout_seconds must be positive")
        if self.rpc_timeout_seconds <= 0:
            raise ConfigurationError("rpc_timeout_seconds must be positive")
        if self.executor_gas_limit <= 0:
            raise ConfigurationError("executor_gas_limit must be positive")
        if self.executor_native_value < 0:
            raise ConfigurationError("executor_native_value cannot be negative")
        if self.token_decimals < 0:
            raise ConfigurationError("token_decimals cannot be negative")


class NetworkRegistry:
    """
    Static network configuration registry

    Features:
    - YAML backed network table
    - Credentials from environment variables
    - Transfer settings with validation
    - Deployment artifact location
    """

    def __init__(self, config: Dict, source: str = "<memory>"):
        """
        Initialize registry from an already parsed config mapping

        Args:
            config: Parsed YAML mapping
            source: Where the mapping came from (for error messages)
        """
        if not isinstance(config, dict):
            raise ConfigurationError(f"Config {source} must be a mapping")

        networks = config.get('networks')
        if not networks or not isinstance(networks, dict):
            raise ConfigurationError(f"Networks not found in {source}")

        self.source = source
        self._networks: Dict = networks
        self.settings = self._parse_settings(config.get('transfer') or {})

        deployments = config.get('deployments') or {}
        self.deployments_path = Path(deployments.get('path', 'deployments'))
        self.contract_name = deployments.get('contract_name', 'SYD')

        logger.debug(f"Network registry loaded from {source}: {', '.join(self.network_names)}")

    @classmethod
    def from_file(cls, config_path: str = DEFAULT_CONFIG_PATH) -> 'NetworkRegistry':
        """
        Load registry from a YAML file

        Args:
            config_path: Path to YAML config

        Returns:
            NetworkRegistry
        """
        load_dotenv()

        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {path}: {e}") from e

        registry = cls(config or {}, source=str(path))

        # Relative deployment paths are resolved against the config file
        if not registry.deployments_path.is_absolute():
            registry.deployments_path = path.parent / registry.deployments_path

        return registry

    @property
    def network_names(self) -> List[str]:
        return list(self._networks.keys())

    def get(self, network_name: str) -> NetworkConfig:
        """
        Look up a network

        Args:
            network_name: Network name as used in the config

        Returns:
            NetworkConfig

        Raises:
            ConfigurationError: unknown network or incomplete entry
        """
        entry = self._networks.get(network_name)
        if not entry:
            raise ConfigurationError(f'Network "{network_name}" not found in {self.source}')
        if not isinstance(entry, dict):
            raise ConfigurationError(f'Network "{network_name}" must be a mapping in {self.source}')

        url = entry.get('url')
        if not url:
            raise ConfigurationError(f'Network "{network_name}" has no url')

        eid = entry.get('eid')
        if eid is None:
            raise ConfigurationError(f'Network "{network_name}" has no eid')
        try:
            eid = int(eid)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f'Network "{network_name}" has invalid eid: {eid!r}') from e

        return NetworkConfig(
            name=network_name,
            url=url,
            eid=eid,
            accounts=self._resolve_accounts(network_name, entry)
        )

    def _resolve_accounts(self, network_name: str, entry: Dict) -> List[str]:
        """Read signing credentials for a network entry"""
        env_name = entry.get('accounts_env')
        if env_name:
            key = os.environ.get(env_name)
            if not key:
                raise ConfigurationError(
                    f'Network "{network_name}": environment variable {env_name} is not set'
                )
            return [key]

        accounts = entry.get('accounts') or []
        if isinstance(accounts, str):
            accounts = [accounts]
        if not accounts:
            raise ConfigurationError(f'Network "{network_name}" has no signing account')
        return list(accounts)

    @staticmethod
    def _parse_settings(raw: Dict) -> TransferSettings:
        known = TransferSettings.__dataclass_fields__.keys()
        unknown = set(raw) - set(known)
        if unknown:
            raise ConfigurationError(f"Unknown transfer settings: {', '.join(sorted(unknown))}")
        try:
            return TransferSettings(**raw)
        except TypeError as e:
            raise ConfigurationError(f"Invalid transfer settings: {e}") from e

"""
Deployment Artifact Store

Reads contract interfaces from hardhat-deploy style artifacts:

    <deployments>/<network>/<ContractName>.json  ->  {"address": ..., "abi": [...]}
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from .errors import ArtifactNotFoundError


@dataclass(frozen=True)
class DeploymentArtifact:
    """Deployed contract interface and (optional) location"""
    network_name: str
    contract_name: str
    abi: List[Dict]
    address: Optional[str] = None


class ArtifactStore:
    """Deployment artifacts keyed by network name"""

    def __init__(self, deployments_path: Path, contract_name: str):
        self.deployments_path = Path(deployments_path)
        self.contract_name = contract_name

    def artifact_path(self, network_name: str) -> Path:
        return self.deployments_path / network_name / f"{self.contract_name}.json"

    def load(self, network_name: str) -> DeploymentArtifact:
        """
        Load the artifact for a network

        Raises:
            ArtifactNotFoundError: file missing, unreadable or without an ABI
        """
        path = self.artifact_path(network_name)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(f"Cannot import ABI for {network_name}: {path} not found") from e
        except (OSError, json.JSONDecodeError) as e:
            raise ArtifactNotFoundError(f"Cannot import ABI for {network_name}: {e}") from e

        abi = data.get('abi') if isinstance(data, dict) else None
        if not isinstance(abi, list) or not abi:
            raise ArtifactNotFoundError(f"Cannot import ABI for {network_name}: no abi in {path}")

        logger.debug(f"Loaded {self.contract_name} artifact for {network_name} ({len(abi)} entries)")

        return DeploymentArtifact(
            network_name=network_name,
            contract_name=self.contract_name,
            abi=abi,
            address=data.get('address')
        )

"""
Configuration for the Aave governance proposal fetcher.

Defaults mirror the public Aave Governance V3 deployment. Every value can be
overridden from the environment; a `.env` (or `env`) file in the project root is
loaded first without overriding variables that are already set.

Usage:
    from src.proposal_config import load_config

    config = load_config()
    client = SubgraphClient(config)
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

from src.errors import ConfigError

SUBGRAPH_ID = "A7QMszgomC9cnnfpAcqZVLr2DffvkGNfimD8iUSMiurK"
DEFAULT_SUBGRAPH_URL = f"https://gateway.thegraph.com/api/subgraphs/id/{SUBGRAPH_ID}"
DEFAULT_SNAPSHOT_ENDPOINT = "https://hub.snapshot.org/graphql"

GOVERNANCE_V3_ADDRESS = "0xEC568fffba86c094cf06b22134B23074DFE2252c"

DEFAULT_GATEWAY_URLS = [
    "https://ipfs.io",
    "https://gateway.pinata.cloud",
    "https://dweb.link",
]

SUBGRAPH_TIMEOUT = 30  # seconds
ONCHAIN_TIMEOUT = 10
GATEWAY_TIMEOUT = 5


@dataclass(frozen=True)
class ChainConfig:
    """one chain the governance contract may live on"""
    name: str
    label: str
    contract_address: str
    rpc_url: str


# ordered: the on-chain lookup tries these top to bottom
KNOWN_CHAINS: Dict[str, ChainConfig] = {
    "ethereum": ChainConfig("ethereum", "Ethereum Mainnet", GOVERNANCE_V3_ADDRESS, "https://eth.llamarpc.com"),
    "polygon": ChainConfig("polygon", "Polygon", GOVERNANCE_V3_ADDRESS, "https://polygon-rpc.com"),
    "avalanche": ChainConfig("avalanche", "Avalanche", GOVERNANCE_V3_ADDRESS, "https://api.avax.network/ext/bc/C/rpc"),
}


@dataclass
class GovernanceConfig:
    """all endpoints, credentials and timeouts for one run"""
    endpoint: str = DEFAULT_SUBGRAPH_URL
    api_key: Optional[str] = None
    chains: List[ChainConfig] = field(default_factory=lambda: list(KNOWN_CHAINS.values()))
    gateway_urls: List[str] = field(default_factory=lambda: list(DEFAULT_GATEWAY_URLS))
    subgraph_timeout: float = SUBGRAPH_TIMEOUT
    onchain_timeout: float = ONCHAIN_TIMEOUT
    gateway_timeout: float = GATEWAY_TIMEOUT
    snapshot_endpoint: str = DEFAULT_SNAPSHOT_ENDPOINT
    snapshot_api_key: Optional[str] = None


def detect_project_root() -> Path:
    """detect project root by walking upward for a pyproject marker"""
    start = Path(__file__).resolve().parent
    for candidate in [start, *start.parents]:
        if (candidate / "pyproject.toml").exists():
            return candidate
    return start.parent


def load_env_files(root: Optional[Path] = None) -> None:
    root = root or detect_project_root()
    for candidate in (root / ".env", root / "env"):
        if candidate.exists():
            load_dotenv(dotenv_path=candidate, override=False)


def _split_list(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if not math.isfinite(value) or value <= 0:
        raise ConfigError(f"{name} must be a positive finite number, got {raw!r}")
    return value


def _chains_from_env(env: Mapping[str, str]) -> List[ChainConfig]:
    names = _split_list(env.get("AAVE_CHAINS", "")) or list(KNOWN_CHAINS)
    chains: List[ChainConfig] = []
    for name in names:
        key = name.lower()
        known = KNOWN_CHAINS.get(key)
        if known is None:
            raise ConfigError(
                f"Unknown chain '{name}' in AAVE_CHAINS (known: {', '.join(KNOWN_CHAINS)})")
        rpc_override = env.get(f"AAVE_RPC_{key.upper()}")
        if rpc_override:
            known = replace(known, rpc_url=rpc_override.strip())
        chains.append(known)
    return chains


def load_config(env: Optional[Mapping[str, str]] = None, api_key: Optional[str] = None,
                require_api_key: bool = True) -> GovernanceConfig:
    """
    Build a GovernanceConfig from defaults and environment variables.

    Args:
        env: Mapping to read from; defaults to os.environ
        api_key: Explicit subgraph API key, wins over GRAPH_API_KEY
        require_api_key: Raise ConfigError when no API key is available

    Returns:
        The populated configuration
    """
    env = os.environ if env is None else env

    key = api_key or env.get("GRAPH_API_KEY")
    if require_api_key and not key:
        raise ConfigError(
            "GRAPH_API_KEY is required (provide --api-key or set env var)")

    gateways = _split_list(env.get("IPFS_GATEWAYS", "")) or list(DEFAULT_GATEWAY_URLS)

    return GovernanceConfig(
        endpoint=env.get("AAVE_SUBGRAPH_URL") or DEFAULT_SUBGRAPH_URL,
        api_key=key,
        chains=_chains_from_env(env),
        gateway_urls=[g.rstrip("/") for g in gateways],
        subgraph_timeout=_positive_float(env, "SUBGRAPH_TIMEOUT", SUBGRAPH_TIMEOUT),
        onchain_timeout=_positive_float(env, "ONCHAIN_TIMEOUT", ONCHAIN_TIMEOUT),
        gateway_timeout=_positive_float(env, "IPFS_TIMEOUT", GATEWAY_TIMEOUT),
        snapshot_endpoint=env.get("SNAPSHOT_ENDPOINT") or DEFAULT_SNAPSHOT_ENDPOINT,
        snapshot_api_key=env.get("SNAPSHOT_API_KEY") or None,
    )


__all__ = ["ChainConfig", "GovernanceConfig", "KNOWN_CHAINS", "load_config", "load_env_files"]

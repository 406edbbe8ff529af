import pytest

from src.errors import ConfigError
from src.proposal_config import DEFAULT_GATEWAY_URLS, KNOWN_CHAINS, load_config


def test_defaults():
    config = load_config(env={"GRAPH_API_KEY": "k"})
    assert config.api_key == "k"
    assert [c.name for c in config.chains] == ["ethereum", "polygon", "avalanche"]
    assert config.gateway_urls == DEFAULT_GATEWAY_URLS
    assert config.onchain_timeout == 10
    assert config.gateway_timeout == 5
    assert config.snapshot_api_key is None


def test_explicit_api_key_wins():
    assert load_config(env={"GRAPH_API_KEY": "env"}, api_key="cli").api_key == "cli"


def test_missing_api_key():
    with pytest.raises(ConfigError):
        load_config(env={})
    assert load_config(env={}, require_api_key=False).api_key is None


def test_env_overrides():
    config = load_config(env={
        "GRAPH_API_KEY": "k",
        "AAVE_SUBGRAPH_URL": "https://my.subgraph",
        "AAVE_CHAINS": "Polygon, ethereum",
        "AAVE_RPC_POLYGON": "https://polygon.private",
        "IPFS_GATEWAYS": "https://a.example/, https://b.example",
        "ONCHAIN_TIMEOUT": "2.5",
        "SNAPSHOT_API_KEY": "snap",
    })
    assert config.endpoint == "https://my.subgraph"
    assert [c.name for c in config.chains] == ["polygon", "ethereum"]
    assert config.chains[0].rpc_url == "https://polygon.private"
    assert config.chains[1] == KNOWN_CHAINS["ethereum"]
    assert config.gateway_urls == ["https://a.example", "https://b.example"]
    assert config.onchain_timeout == 2.5
    assert config.snapshot_api_key == "snap"


@pytest.mark.parametrize("env", [
    {"AAVE_CHAINS": "ethereum,solana"},
    {"IPFS_TIMEOUT": "soon"},
    {"ONCHAIN_TIMEOUT": "0"},
])
def test_invalid_values(env):
    env = dict(env, GRAPH_API_KEY="k")
    with pytest.raises(ConfigError):
        load_config(env=env)


@pytest.mark.parametrize("raw", ["nan", "inf", "-inf", "Infinity"])
def test_timeouts_must_be_finite(raw):
    with pytest.raises(ConfigError):
        load_config(env={"GRAPH_API_KEY": "k", "SUBGRAPH_TIMEOUT": raw})

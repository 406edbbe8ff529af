from types import SimpleNamespace

import pytest
import requests
from web3.exceptions import ContractLogicError

import src.fetch_onchain_proposal as onchain
from src.errors import FetchTimeoutError, TransportError, ValidationError
from src.proposal_config import ChainConfig

CHAIN = ChainConfig("ethereum", "Ethereum Mainnet", "0xEC568fffba86c094cf06b22134B23074DFE2252c", "http://rpc.example")


def _install_fake_web3(monkeypatch, outcome):
    seen = {}

    def get_proposal(proposal_id):
        def call():
            seen["proposal_id"] = proposal_id
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return SimpleNamespace(call=call)

    class FakeWeb3:
        @staticmethod
        def HTTPProvider(url, request_kwargs=None):
            seen["url"] = url
            seen["request_kwargs"] = request_kwargs
            return url

        @staticmethod
        def to_checksum_address(address):
            return address

        def __init__(self, provider):
            self.eth = SimpleNamespace(
                contract=lambda address, abi: SimpleNamespace(
                    functions=SimpleNamespace(getProposal=get_proposal)))

    monkeypatch.setattr(onchain, "Web3", FakeWeb3)
    return seen


def test_web3_reader_decodes_tuple(monkeypatch):
    values = [411, "0xabc", 100, 200, 5 * 10 ** 18, 0, 2, False, False]
    seen = _install_fake_web3(monkeypatch, values)

    proposal = onchain.make_web3_reader(10)(CHAIN, 411)

    assert seen == {"url": "http://rpc.example", "request_kwargs": {"timeout": 10}, "proposal_id": 411}
    assert proposal.chain is CHAIN
    assert (proposal.id, proposal.start_time, proposal.end_time) == (411, 100, 200)
    assert proposal.for_votes == 5 * 10 ** 18
    assert proposal.executed is False


@pytest.mark.parametrize("error,expected", [
    (requests.Timeout("slow"), FetchTimeoutError),
    (requests.ConnectionError("down"), TransportError),
    (ContractLogicError("execution reverted"), TransportError),
    (ValueError("rpc error"), TransportError),
])
def test_web3_reader_translates_errors(monkeypatch, error, expected):
    _install_fake_web3(monkeypatch, error)
    with pytest.raises(expected):
        onchain.make_web3_reader(10)(CHAIN, 411)


def test_decode_rejects_wrong_arity():
    with pytest.raises(ValidationError):
        onchain.decode_proposal_tuple(CHAIN, [1, 2, 3])


def test_validation_distinguishes_mismatch_and_zero_timestamps():
    mismatch = onchain.decode_proposal_tuple(CHAIN, [1, "0x", 10, 20, 0, 0, 0, False, False])
    unstarted = onchain.decode_proposal_tuple(CHAIN, [411, "0x", 0, 20, 0, 0, 0, False, False])

    with pytest.raises(ValidationError, match="mismatch"):
        onchain.validate_onchain_proposal(mismatch, 411)
    with pytest.raises(ValidationError, match="zero timestamps"):
        onchain.validate_onchain_proposal(unstarted, 411)


def test_find_returns_none_when_every_chain_fails():
    calls = []

    def reader(chain, proposal_id):
        calls.append(chain.name)
        raise TransportError("down")

    chains = [CHAIN, ChainConfig("polygon", "Polygon", CHAIN.contract_address, "http://p")]
    assert onchain.find_proposal_on_chains(chains, 411, reader) is None
    assert calls == ["ethereum", "polygon"]

"""
Read an Aave Governance V3 proposal directly from the governance contract.

The subgraph does not say which chain it indexes, so the lookup walks the
configured chains in order and stops at the first one that returns a proposal
with the requested id and non-zero voting timestamps.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from src.errors import FetchTimeoutError, TransportError, ValidationError
from src.proposal_config import ChainConfig

logger = logging.getLogger(__name__)

# Simplified getProposal ABI:
# (id, creator, startTime, endTime, forVotes, againstVotes, state, executed, canceled)
GOVERNANCE_V3_ABI = [
    {
        "inputs": [{"name": "proposalId", "type": "uint256"}],
        "name": "getProposal",
        "outputs": [
            {"name": "id", "type": "uint256"},
            {"name": "creator", "type": "address"},
            {"name": "startTime", "type": "uint40"},
            {"name": "endTime", "type": "uint40"},
            {"name": "forVotes", "type": "uint256"},
            {"name": "againstVotes", "type": "uint256"},
            {"name": "state", "type": "uint8"},
            {"name": "executed", "type": "bool"},
            {"name": "canceled", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


@dataclass
class OnchainProposal:
    """Decoded getProposal result and the chain it came from."""
    chain: ChainConfig
    id: int
    creator: str
    start_time: int
    end_time: int
    for_votes: int
    against_votes: int
    state: int
    executed: bool
    canceled: bool


# (chain, proposal_id) -> OnchainProposal, raising TransportError on failure
ProposalReader = Callable[[ChainConfig, int], OnchainProposal]


def decode_proposal_tuple(chain: ChainConfig, values: Sequence) -> OnchainProposal:
    if len(values) != 9:
        raise ValidationError(
            f"getProposal on {chain.name} returned {len(values)} values, expected 9")
    pid, creator, start, end, for_votes, against_votes, state, executed, canceled = values
    return OnchainProposal(
        chain=chain,
        id=int(pid),
        creator=str(creator),
        start_time=int(start),
        end_time=int(end),
        for_votes=int(for_votes),
        against_votes=int(against_votes),
        state=int(state),
        executed=bool(executed),
        canceled=bool(canceled),
    )


def make_web3_reader(timeout: float) -> ProposalReader:
    """Return a reader that performs one eth_call per chain with a bounded timeout."""

    def read(chain: ChainConfig, proposal_id: int) -> OnchainProposal:
        w3 = Web3(Web3.HTTPProvider(chain.rpc_url, request_kwargs={"timeout": timeout}))
        try:
            contract = w3.eth.contract(
                address=Web3.to_checksum_address(chain.contract_address), abi=GOVERNANCE_V3_ABI)
            values = contract.functions.getProposal(proposal_id).call()
        except requests.Timeout as e:
            raise FetchTimeoutError(f"RPC timeout on {chain.name} after {timeout}s") from e
        except ContractLogicError as e:
            raise TransportError(f"contract call reverted on {chain.name}: {e}") from e
        except requests.RequestException as e:
            raise TransportError(f"network/RPC error on {chain.name}: {e}") from e
        except (Web3Exception, ValueError) as e:
            raise TransportError(f"error on {chain.name}: {e}") from e
        return decode_proposal_tuple(chain, values)

    return read


def validate_onchain_proposal(proposal: OnchainProposal, requested_id: int) -> OnchainProposal:
    if proposal.id != requested_id:
        raise ValidationError(
            f"Proposal ID mismatch on {proposal.chain.name}: requested {requested_id}, got {proposal.id}")
    if proposal.start_time == 0 or proposal.end_time == 0:
        raise ValidationError(
            f"Proposal {requested_id} has zero timestamps on {proposal.chain.name} (may not have started voting)")
    return proposal


def find_proposal_on_chains(
    chains: List[ChainConfig],
    proposal_id: int,
    reader: ProposalReader,
) -> Optional[OnchainProposal]:
    """
    Try each chain in order and return the first valid proposal.

    Call errors and validation failures are logged and the next chain is
    tried; None means no chain produced a usable result.
    """
    logger.info(f"[ONCHAIN] Looking up proposal {proposal_id} on {len(chains)} chain(s)")
    for chain in chains:
        logger.info(f"[ONCHAIN] Trying {chain.label} (contract {chain.contract_address}, rpc {chain.rpc_url})")
        try:
            proposal = validate_onchain_proposal(reader(chain, proposal_id), proposal_id)
        except FetchTimeoutError as e:
            logger.warning(f"[ONCHAIN] {e} (RPC endpoint might be down or slow)")
            continue
        except TransportError as e:
            logger.warning(f"[ONCHAIN] {e}")
            continue
        except ValidationError as e:
            # id mismatch points at the wrong chain, zero timestamps at an unstarted proposal
            logger.warning(f"[ONCHAIN] {e}")
            continue
        logger.info(
            f"[ONCHAIN] Found proposal on {chain.label}: startTime={proposal.start_time} endTime={proposal.end_time}")
        return proposal

    logger.warning(
        f"[ONCHAIN] Proposal {proposal_id} not found on any chain (tried: {', '.join(c.name for c in chains)})")
    return None


__all__ = [
    "OnchainProposal",
    "find_proposal_on_chains",
    "make_web3_reader",
    "validate_onchain_proposal",
]

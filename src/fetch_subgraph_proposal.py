"""
The Graph subgraph client for Aave Governance V3 proposals.

This module queries the Aave Governance V3 subgraph for a single proposal and
turns the returned node into a ProposalRecord. It can also introspect the
subgraph schema to discover the nested fields available on a proposal.

Usage:
    from src.fetch_subgraph_proposal import SubgraphClient

    client = SubgraphClient(config)
    record = client.fetch_proposal("411")
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import logging
import requests

from src.errors import FetchTimeoutError, NotFoundError, QueryError, TransportError
from src.proposal_config import GovernanceConfig

# Module-level logger
logger = logging.getLogger(__name__)

# nested types whose fields the introspection pass lists
INTROSPECTED_TYPES = {
    "proposal": "Proposal",
    "metadata": "ProposalMetadata",
    "votes": "ProposalVotes",
    "votingPortal": "VotingPortal",
    "votingConfig": "VotingConfig",
    "transactions": "ProposalTransactions",
    "constants": "Constants",
    "transactionData": "TransactionData",
}

TYPE_INTROSPECTION_QUERY = """
query IntrospectType {{
  __type(name: "{type_name}") {{
    name
    kind
    fields {{
      name
      description
      type {{
        name
        kind
        ofType {{
          name
          kind
          ofType {{ name kind }}
        }}
      }}
    }}
  }}
}}
"""

TRANSACTION_STAGES = ["created", "active", "queued", "executed", "failed", "canceled"]

_STATIC_NESTED = """
    votingConfig {
      id
      cooldownBeforeVotingStart
    }"""


@dataclass
class ProposalRecord:
    """Canonical proposal fields from the subgraph."""
    proposal_id: str
    state: Optional[int] = None
    creator: Optional[str] = None
    ipfs_hash: Optional[str] = None
    voting_duration: Optional[int] = None
    title: Optional[str] = None
    raw_content: Optional[str] = None
    for_votes: int = 0
    against_votes: int = 0
    created_timestamp: Optional[int] = None
    activated_timestamp: Optional[int] = None
    cooldown_before_voting_start: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _stage_timestamp(transactions: Dict[str, Any], stage: str) -> Optional[int]:
    entry = transactions.get(stage) or {}
    if not isinstance(entry, dict):
        return None
    ts = _to_int(entry.get("timestamp"))
    # zero means the transition never happened
    return ts or None


def parse_proposal_node(node: Dict[str, Any]) -> ProposalRecord:
    """Convert a subgraph proposals node into a ProposalRecord."""
    metadata = node.get("proposalMetadata") or {}
    votes = node.get("votes") or {}
    if isinstance(votes, list):
        votes = votes[0] if votes else {}
    transactions = node.get("transactions") or {}
    voting_config = node.get("votingConfig") or {}

    return ProposalRecord(
        proposal_id=str(node.get("proposalId") if node.get("proposalId") is not None else node.get("id")),
        state=_to_int(node.get("state")),
        creator=node.get("creator"),
        ipfs_hash=node.get("ipfsHash"),
        voting_duration=_to_int(node.get("votingDuration")),
        title=metadata.get("title"),
        raw_content=metadata.get("rawContent"),
        for_votes=_to_int(votes.get("forVotes")) or 0,
        against_votes=_to_int(votes.get("againstVotes")) or 0,
        created_timestamp=_stage_timestamp(transactions, "created"),
        activated_timestamp=_stage_timestamp(transactions, "active"),
        cooldown_before_voting_start=_to_int(voting_config.get("cooldownBeforeVotingStart")) or None,
        raw=node,
    )


def _field_names(type_info: Optional[Dict[str, Any]]) -> List[str]:
    if not type_info:
        return []
    return [f["name"] for f in (type_info.get("fields") or []) if f.get("name")]


def build_proposal_query(proposal_id: str, schema: Optional[Dict[str, Any]] = None) -> str:
    """
    Build the proposals query for one proposal id.

    Without a schema the nested selection is the static set known to exist on
    the Aave V3 subgraph. With an introspected schema (see
    SubgraphClient.introspect_schema) the nested objects are selected from the
    fields the service actually exposes.
    """
    if not (str(proposal_id).isascii() and str(proposal_id).isdigit()):
        raise ValueError(f"proposal id must be numeric, got {proposal_id!r}")

    query = f"""{{
  proposals(where: {{ proposalId: "{proposal_id}" }}) {{
    id
    proposalId
    state
    creator
    accessLevel
    ipfsHash
    votingDuration
    snapshotBlockHash
    proposalMetadata {{
      id
      proposalId
      title
      rawContent
    }}
    votes {{
      id
      forVotes
      againstVotes
    }}"""

    stages = "\n".join(
        f"      {stage} {{\n        id\n        timestamp\n        blockNumber\n      }}"
        for stage in TRANSACTION_STAGES
    )
    transactions = f"""
    transactions {{
      id
{stages}
    }}"""

    if schema is None:
        query += _STATIC_NESTED + transactions
    else:
        for key in ("votingPortal", "votingConfig"):
            names = _field_names(schema.get(key))
            if names:
                query += f"\n    {key} {{\n      " + "\n      ".join(names) + "\n    }"
        if _field_names(schema.get("transactions")):
            query += transactions
        constants = _field_names(schema.get("constants"))
        if constants:
            query += "\n    constants {\n      " + "\n      ".join(constants) + "\n    }"
        query += "\n    payloads"

    query += "\n  }\n}"
    return query


class SubgraphClient:
    """Client for the Aave Governance V3 subgraph on The Graph gateway."""

    def __init__(self, config: GovernanceConfig, session: Optional[requests.Session] = None):
        """
        Initialize the subgraph client.

        Args:
            config: Run configuration holding endpoint, API key and timeout
            session: Optional requests session, mainly for tests
        """
        self.endpoint = config.endpoint
        self.timeout = config.subgraph_timeout
        self.headers = {"Content-Type": "application/json"}
        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"
        self.session = session or requests.Session()

    def _make_request(self, query: str) -> Dict[str, Any]:
        """
        Make a single GraphQL request to the subgraph.

        Args:
            query: GraphQL query string

        Returns:
            The `data` object of the response

        Raises:
            FetchTimeoutError: If the request exceeded the timeout
            TransportError: If the request failed or the body was not JSON
            QueryError: If the service reported GraphQL errors
        """
        payload = {"query": query}
        logger.debug(f"[SUBGRAPH PAYLOAD] POST {self.endpoint} body={json.dumps(payload)[:2000]}")

        try:
            response = self.session.post(
                self.endpoint,
                headers=self.headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise FetchTimeoutError(f"subgraph request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise TransportError(f"subgraph request failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                f"[SUBGRAPH HTTP ERROR] status={response.status_code} body={response.text[:800]}")
            raise TransportError(f"subgraph returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"[SUBGRAPH JSON ERROR] Non-JSON response: {response.text[:800]}")
            raise TransportError("subgraph returned a non-JSON body") from e

        logger.debug(f"[SUBGRAPH RESPONSE] {json.dumps(data)[:4000]}")

        if isinstance(data, dict) and data.get("errors"):
            messages = [
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in data["errors"]
            ]
            logger.error(f"[SUBGRAPH GQL ERRORS] {json.dumps(data['errors'])[:1000]}")
            raise QueryError(messages)

        if not isinstance(data, dict):
            raise TransportError("subgraph returned an unexpected body")
        return data.get("data") or {}

    def fetch_proposal(self, proposal_id: str, schema: Optional[Dict[str, Any]] = None) -> ProposalRecord:
        """Fetch a single proposal by its on-chain proposal id."""
        data = self._make_request(build_proposal_query(proposal_id, schema))
        proposals = data.get("proposals") or []
        if not proposals:
            raise NotFoundError(proposal_id)
        node = proposals[0]
        logger.debug(f"[SUBGRAPH] proposal fields: {sorted(node.keys())}")
        return parse_proposal_node(node)

    def introspect_type(self, type_name: str) -> Optional[Dict[str, Any]]:
        data = self._make_request(TYPE_INTROSPECTION_QUERY.format(type_name=type_name))
        return data.get("__type")

    def introspect_schema(self) -> Dict[str, Any]:
        """
        Discover the fields of the proposal-related schema types.

        Returns a dict keyed like INTROSPECTED_TYPES; types the schema does not
        define map to None.
        """
        schema: Dict[str, Any] = {}
        for key, type_name in INTROSPECTED_TYPES.items():
            type_info = self.introspect_type(type_name)
            schema[key] = type_info
            if not type_info:
                logger.info(f"[INTROSPECTION] {type_name}: not defined")
                continue
            logger.info(f"[INTROSPECTION] {type_name} fields:")
            for f in type_info.get("fields") or []:
                f_type = f.get("type") or {}
                type_label = f_type.get("name") or (f_type.get("ofType") or {}).get("name") or f_type.get("kind")
                desc = f" ({f['description']})" if f.get("description") else ""
                logger.info(f"   - {f.get('name')}: {type_label}{desc}")
        return schema


__all__ = ["ProposalRecord", "SubgraphClient", "build_proposal_query", "parse_proposal_node"]

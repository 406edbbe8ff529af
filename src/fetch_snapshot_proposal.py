"""fetch a single snapshot (off-chain) proposal for the report"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from src.errors import FetchTimeoutError, NotFoundError, QueryError, TransportError, ValidationError
from src.proposal_config import GovernanceConfig

logger = logging.getLogger(__name__)

SNAPSHOT_PROPOSAL_QUERY = """
query Proposal($id: String!) {
  proposal(id: $id) {
    id
    title
    choices
    start
    end
    snapshot
    state
    author
    created
    link
    type
    network
    symbol
    discussion
    space { id name }
    scores
    scores_total
    scores_updated
    votes
    quorum
    flagged
    ipfs
  }
}
"""


@dataclass
class SnapshotProposal:
    id: str
    title: str = ""
    state: str = ""
    author: str = ""
    space: str = ""
    start: int = 0
    end: int = 0
    choices: List[str] = field(default_factory=list)
    scores: List[float] = field(default_factory=list)
    scores_total: float = 0.0
    votes: int = 0
    discussion: str = ""
    link: str = ""


def parse_snapshot_proposal(proposal: Dict[str, Any]) -> SnapshotProposal:
    """flatten a snapshot proposal node; malformed values raise ValidationError"""
    try:
        return SnapshotProposal(
            id=proposal.get('id', ''),
            title=proposal.get('title') or '',
            state=proposal.get('state') or '',
            author=proposal.get('author') or '',
            space=(proposal.get('space') or {}).get('id', ''),
            start=int(proposal.get('start') or 0),
            end=int(proposal.get('end') or 0),
            choices=list(proposal.get('choices') or []),
            scores=[float(s) for s in (proposal.get('scores') or [])],
            scores_total=float(proposal.get('scores_total') or 0),
            votes=int(proposal.get('votes') or 0),
            discussion=proposal.get('discussion') or '',
            link=proposal.get('link') or '',
        )
    except (AttributeError, TypeError, ValueError) as e:
        raise ValidationError(f"malformed snapshot proposal: {e}") from e


class SnapshotClient:
    """http client for the snapshot hub, one attempt per request"""

    def __init__(self, config: GovernanceConfig, client: Optional[httpx.Client] = None):
        self.endpoint = config.snapshot_endpoint
        self.headers = {"Content-Type": "application/json"}
        if config.snapshot_api_key:
            self.headers["X-Api-Key"] = config.snapshot_api_key
        self.client = client or httpx.Client(http2=True, timeout=config.subgraph_timeout)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SnapshotClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.post(self.endpoint, headers=self.headers, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"snapshot request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"[SNAPSHOT] HTTP {e.response.status_code}: {e.response.text[:500]}")
            raise TransportError(f"snapshot returned HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise TransportError(f"snapshot request failed: {e}") from e
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError("snapshot returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise TransportError(f"snapshot returned an unexpected body: {type(data).__name__}")
        if data.get('errors'):
            logger.error(f"[SNAPSHOT] graphql errors: {data['errors']}")
            raise QueryError([str(err.get('message', err)) if isinstance(err, dict) else str(err)
                              for err in data['errors']])
        result = data.get('data') or {}
        if not isinstance(result, dict):
            raise TransportError("snapshot returned a non-object data field")
        return result

    def fetch_proposal(self, proposal_id: str, space: Optional[str] = None) -> SnapshotProposal:
        """fetch one proposal; with a space the id is sent as space/id"""
        full_id = f"{space}/{proposal_id}" if space else proposal_id
        data = self.post({"query": SNAPSHOT_PROPOSAL_QUERY, "variables": {"id": full_id}})
        proposal = data.get('proposal')
        if not proposal:
            raise NotFoundError(full_id)
        return parse_snapshot_proposal(proposal)


__all__ = ["SnapshotClient", "SnapshotProposal", "parse_snapshot_proposal"]

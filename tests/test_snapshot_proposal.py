import json

import httpx
import pytest

from src.errors import FetchTimeoutError, NotFoundError, QueryError, TransportError, ValidationError
from src.fetch_snapshot_proposal import SnapshotClient
from src.proposal_config import GovernanceConfig

PROPOSAL = {
    "id": "0xsnap", "title": "Temp check", "state": "closed", "author": "0xauthor",
    "space": {"id": "aave.eth", "name": "Aave"}, "start": 1704067200, "end": 1704672000,
    "choices": ["YAE", "NAY"], "scores": [1200.5, 3], "scores_total": 1203.5,
    "votes": 40, "discussion": "https://governance.aave.com/t/x/1",
}


def _client(handler, api_key=None):
    config = GovernanceConfig(snapshot_endpoint="https://hub.example/graphql", snapshot_api_key=api_key)
    return SnapshotClient(config, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_fetch_proposal_with_space():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["api_key"] = request.headers.get("X-Api-Key")
        return httpx.Response(200, json={"data": {"proposal": PROPOSAL}})

    with _client(handler, api_key="snap") as client:
        proposal = client.fetch_proposal("0xsnap", space="aave.eth")

    assert seen["body"]["variables"] == {"id": "aave.eth/0xsnap"}
    assert seen["api_key"] == "snap"
    assert proposal.space == "aave.eth"
    assert proposal.scores == [1200.5, 3.0]
    assert proposal.votes == 40


def test_missing_proposal():
    with _client(lambda request: httpx.Response(200, json={"data": {"proposal": None}})) as client:
        with pytest.raises(NotFoundError):
            client.fetch_proposal("0xnone")


def test_graphql_errors():
    body = {"errors": [{"message": "invalid id"}]}
    with _client(lambda request: httpx.Response(200, json=body)) as client:
        with pytest.raises(QueryError):
            client.fetch_proposal("bad")


def test_http_error_and_timeout():
    with _client(lambda request: httpx.Response(500, text="down")) as client:
        with pytest.raises(TransportError):
            client.fetch_proposal("0xsnap")

    def slow(request):
        raise httpx.ReadTimeout("slow", request=request)

    with _client(slow) as client:
        with pytest.raises(FetchTimeoutError):
            client.fetch_proposal("0xsnap")


@pytest.mark.parametrize("node", [
    dict(PROPOSAL, scores=[None]),
    dict(PROPOSAL, start="tomorrow"),
    dict(PROPOSAL, space="aave.eth"),
    ["not", "an", "object"],
])
def test_malformed_proposal_node(node):
    with _client(lambda request: httpx.Response(200, json={"data": {"proposal": node}})) as client:
        with pytest.raises(ValidationError):
            client.fetch_proposal("0xsnap")


@pytest.mark.parametrize("body", [[{"data": {}}], {"data": ["x"]}])
def test_unexpected_body_shape(body):
    with _client(lambda request: httpx.Response(200, json=body)) as client:
        with pytest.raises(TransportError):
            client.fetch_proposal("0xsnap")

import pytest

from fakes import FakeResponse, FakeSession, connection_error, timeout
from src.fetch_ipfs_metadata import fetch_ipfs_metadata, is_null_pointer, pointer_to_cid

GATEWAYS = ["https://gw1.example", "https://gw2.example/", "https://gw3.example"]
DIGEST = "0x" + "ab" * 32


@pytest.mark.parametrize("pointer", [None, "", "0x", "0x0", "0x" + "0" * 64])
def test_null_pointers(pointer):
    assert is_null_pointer(pointer)
    assert fetch_ipfs_metadata(pointer, GATEWAYS, 5, session=FakeSession()) is None


def test_bytes32_digest_becomes_cidv0():
    cid = pointer_to_cid(DIGEST)
    assert cid.startswith("Qm")
    assert len(cid) == 46
    assert not is_null_pointer(DIGEST)


def test_cid_passes_through():
    cid = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
    assert pointer_to_cid(cid) == cid


def test_first_successful_gateway_wins():
    session = FakeSession(
        timeout(),
        FakeResponse(200, {"title": "t", "discussion": "x"}),
        FakeResponse(200, {"title": "never"}),
    )
    data = fetch_ipfs_metadata(DIGEST, GATEWAYS, 5, session=session)

    assert data == {"title": "t", "discussion": "x"}
    assert len(session.calls) == 2
    method, url, kwargs = session.calls[1]
    assert url == f"https://gw2.example/ipfs/{pointer_to_cid(DIGEST)}"
    assert kwargs["timeout"] == 5
    assert kwargs["headers"]["Accept"] == "application/json"


def test_all_gateways_failing_returns_none():
    session = FakeSession(
        connection_error(),
        FakeResponse(404, text="not found"),
        FakeResponse(200, None, text="<html>"),
    )
    assert fetch_ipfs_metadata(DIGEST, GATEWAYS, 5, session=session) is None
    assert len(session.calls) == 3

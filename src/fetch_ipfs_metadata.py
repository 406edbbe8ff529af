"""fetch proposal metadata json from ipfs gateways, best effort"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

import base58
import requests

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")
# sha2-256 multihash prefix: code 0x12, length 0x20
_SHA256_MULTIHASH_PREFIX = b"\x12\x20"


def is_null_pointer(pointer: Optional[str]) -> bool:
    """true when the pointer is missing or a zero sentinel"""
    if not pointer or not pointer.strip():
        return True
    p = pointer.strip()
    if _HEX_RE.match(p):
        digits = p[2:]
        return not digits or int(digits, 16) == 0
    return False


def pointer_to_cid(pointer: str) -> str:
    """convert a bytes32 sha256 digest to a cidv0, pass cids through"""
    p = pointer.strip()
    if _HEX_RE.match(p):
        digits = p[2:]
        if len(digits) == 64:
            return base58.b58encode(_SHA256_MULTIHASH_PREFIX + bytes.fromhex(digits)).decode("ascii")
        return digits
    return p


def fetch_ipfs_metadata(
    pointer: Optional[str],
    gateway_urls: List[str],
    timeout: float,
    session: Optional[requests.Session] = None,
) -> Optional[Any]:
    """
    Try each gateway in order and return the first parsed JSON body.

    Each attempt has its own timeout. Failures are logged and never raised;
    None means no gateway produced metadata.
    """
    if is_null_pointer(pointer):
        logger.debug("[IPFS] no metadata pointer on proposal")
        return None

    cid = pointer_to_cid(pointer)
    http = session or requests.Session()
    for gateway in gateway_urls:
        url = f"{gateway.rstrip('/')}/ipfs/{cid}"
        logger.info(f"[IPFS] Trying gateway: {url}")
        try:
            response = http.get(url, headers={"Accept": "application/json"}, timeout=timeout)
        except requests.Timeout:
            logger.warning(f"[IPFS] timeout after {timeout}s: {url}")
            continue
        except requests.RequestException as e:
            logger.warning(f"[IPFS] request failed: {url}: {e}")
            continue
        if not response.ok:
            logger.warning(f"[IPFS] HTTP {response.status_code} from {url}")
            continue
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"[IPFS] non-JSON body from {url}")
            continue
        logger.info(f"[IPFS] Found metadata via {gateway}")
        return data

    logger.warning(f"[IPFS] metadata unavailable for {pointer}")
    return None


__all__ = ["fetch_ipfs_metadata", "is_null_pointer", "pointer_to_cid"]

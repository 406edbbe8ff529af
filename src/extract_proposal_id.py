"""turn a proposal id or an aave governance url into a canonical proposal id"""

import re
from typing import List, Optional, Pattern

from src.errors import InputError

# order matters: the first pattern that matches wins; ids are ASCII digits only
URL_PATTERNS: List[Pattern[str]] = [
    re.compile(r"proposalId[=:]([0-9]+)", re.IGNORECASE),
    re.compile(r"/proposal/\?.*proposalId=([0-9]+)", re.IGNORECASE),
    re.compile(r"/governance/v3/proposal/\?.*proposalId=([0-9]+)", re.IGNORECASE),
    re.compile(r"/governance/([0-9]+)", re.IGNORECASE),
    re.compile(r"/t/[^/]+/([0-9]+)", re.IGNORECASE),
    re.compile(r"proposal[/\-]([0-9]+)", re.IGNORECASE),
]

_DIGITS = re.compile(r"^[0-9]+$")

SUPPORTED_FORMATS = [
    "Proposal ID: 411",
    "URL: https://app.aave.com/governance/v3/proposal/?proposalId=411",
    "URL: https://app.aave.com/governance/411",
    "URL: https://governance.aave.com/t/slug/411",
]


def match_proposal_id(text: Optional[str]) -> Optional[str]:
    """return the proposal id found in text or None"""
    if not text:
        return None
    trimmed = text.strip()
    if _DIGITS.match(trimmed):
        return trimmed
    for pattern in URL_PATTERNS:
        match = pattern.search(trimmed)
        if match and match.group(1):
            return match.group(1)
    return None


def extract_proposal_id(text: Optional[str]) -> str:
    proposal_id = match_proposal_id(text)
    if proposal_id is None:
        raise InputError(text)
    return proposal_id


__all__ = ["extract_proposal_id", "match_proposal_id", "SUPPORTED_FORMATS"]

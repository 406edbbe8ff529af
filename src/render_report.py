"""format the merged proposal view as console text"""

from typing import Any, List, Optional

from src.fetch_snapshot_proposal import SnapshotProposal
from src.fetch_subgraph_proposal import ProposalRecord
from src.formatting import format_duration, format_timestamp
from src.resolve_timing import TimingResult

TOKEN_DECIMALS = 18
TOKEN_SYMBOL = "AAVE"

STATE_LABELS = {
    0: "Null",
    1: "Created",
    2: "Active",
    3: "Queued",
    4: "Executed",
    5: "Failed",
    6: "Cancelled",
    7: "Expired",
}

RULE = "-" * 50


def translate_state(state: Any) -> str:
    try:
        key = int(state)
    except (TypeError, ValueError):
        return f"Unknown({state})"
    return STATE_LABELS.get(key, f"Unknown({state})")


def format_token_amount(raw: Any) -> str:
    """raw 18-decimal units -> whole tokens with thousands separators"""
    value = int(raw or 0) // (10 ** TOKEN_DECIMALS)
    return f"{value:,}"


def _snapshot_lines(snapshot: SnapshotProposal) -> List[str]:
    lines = [
        "",
        f"Snapshot:      {snapshot.id}",
        f"  Title:       {snapshot.title or 'N/A'}",
        f"  Space:       {snapshot.space or 'N/A'}",
        f"  State:       {snapshot.state or 'N/A'}",
    ]
    if snapshot.start:
        lines.append(f"  Start:       {format_timestamp(snapshot.start)}")
    if snapshot.end:
        lines.append(f"  End:         {format_timestamp(snapshot.end)}")
    for choice, score in zip(snapshot.choices, snapshot.scores):
        lines.append(f"  {choice}: {score:,.0f}")
    lines.append(f"  Votes:       {snapshot.votes:,}")
    if snapshot.discussion:
        lines.append(f"  Discussion:  {snapshot.discussion}")
    return lines


def render_report(
    proposal: ProposalRecord,
    timing: TimingResult,
    discussion_url: Optional[str] = None,
    snapshot: Optional[SnapshotProposal] = None,
) -> str:
    duration = proposal.voting_duration
    duration_text = f"{format_duration(duration)} ({duration} seconds)" if duration else "N/A"

    lines = [
        "",
        f"--- Aave Governance Proposal #{proposal.proposal_id} ---",
        f"Title:         {proposal.title or 'N/A'}",
        f"State:         {translate_state(proposal.state)}",
        f"Creator:       {proposal.creator or 'N/A'}",
        f"IPFS:          {proposal.ipfs_hash or 'N/A'}",
        f"Discussion:    {discussion_url or 'N/A (not found in metadata)'}",
        f"Votes:         For {format_token_amount(proposal.for_votes)} {TOKEN_SYMBOL}"
        f" | Against {format_token_amount(proposal.against_votes)} {TOKEN_SYMBOL}",
        f"Duration:      {duration_text}",
        f"Started:       {timing.start_display}",
        f"Ends:          {timing.end_display}",
        f"Time Left:     {timing.remaining_display}",
    ]
    if timing.onchain is not None:
        lines.extend([
            f"Chain:         {timing.onchain.chain.label}",
            f"Executed:      {'Yes' if timing.onchain.executed else 'No'}",
            f"Canceled:      {'Yes' if timing.onchain.canceled else 'No'}",
        ])
    if snapshot is not None:
        lines.extend(_snapshot_lines(snapshot))
    lines.extend([RULE, ""])
    return "\n".join(lines)


__all__ = ["render_report", "translate_state", "format_token_amount", "STATE_LABELS"]

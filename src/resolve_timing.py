"""
Resolve when a proposal's voting window opens and closes.

Each evidence source knows one way of finding the voting timestamps. The
resolver asks them in a fixed priority order and stops at the first source that
returns a result; lower-priority sources are never consulted after that, even
if they would disagree.

Usage:
    from src.resolve_timing import TimingResolver

    resolver = TimingResolver(config)
    timing = resolver.resolve(record, metadata)
    print(timing.start_display, timing.end_display, timing.remaining_display)
"""

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Callable, List, Optional

from src.errors import TransportError, ValidationError
from src.fetch_onchain_proposal import (
    OnchainProposal,
    ProposalReader,
    find_proposal_on_chains,
    make_web3_reader,
)
from src.fetch_subgraph_proposal import ProposalRecord
from src.formatting import format_duration_compact, format_time_remaining, format_timestamp
from src.proposal_config import ChainConfig, GovernanceConfig

logger = logging.getLogger(__name__)

CANCELLED_STATE = 6

METADATA_START_FIELDS = ["start", "startTime", "created", "createdAt"]
METADATA_END_FIELDS = ["end", "endTime", "endsAt"]


class TimingSource(Enum):
    """Where a timing result came from, highest priority first."""
    ACTIVATION_EVENT = "activation_event"
    CREATED_PLUS_COOLDOWN = "created_plus_cooldown"
    ONCHAIN = "onchain"
    METADATA = "metadata"
    CANCELLED = "cancelled"
    DURATION_ESTIMATE = "duration_estimate"
    UNAVAILABLE = "unavailable"


@dataclass
class TimingResult:
    source: TimingSource
    start_display: str
    end_display: str
    remaining_display: str
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None
    onchain: Optional[OnchainProposal] = None


@dataclass
class TimingContext:
    """Everything an evidence source may look at."""
    proposal: ProposalRecord
    metadata: Any
    now: float


def timed_result(source: TimingSource, start: int, end: int, now: float,
                 onchain: Optional[OnchainProposal] = None) -> TimingResult:
    return TimingResult(
        source=source,
        start_display=format_timestamp(start),
        end_display=format_timestamp(end),
        remaining_display=format_time_remaining(end - now),
        start_timestamp=start,
        end_timestamp=end,
        onchain=onchain,
    )


# datetime handles years 1..9999; anything past that is a unit mistake (often milliseconds)
MAX_EPOCH = 253402300799


def _checked_epoch(value: float) -> int:
    if (isinstance(value, float) and not math.isfinite(value)) or value < 0 or value > MAX_EPOCH:
        raise ValidationError(f"metadata timestamp out of range: {value!r}")
    return int(value)


def parse_metadata_timestamp(value: Any) -> Optional[int]:
    """
    epoch seconds (number or digit string) or a date string -> epoch seconds

    Unparseable values give None; numbers that are not finite or lie outside
    the datetime range raise ValidationError.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _checked_epoch(value)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.isascii() and text.isdigit():
        return _checked_epoch(int(text))
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _first_present(metadata: dict, names: List[str]) -> Any:
    for name in names:
        value = metadata.get(name)
        if value:
            return value
    return None


class EvidenceSource:
    """One way of determining the voting window."""

    name = "evidence"

    def attempt(self, context: TimingContext) -> Optional[TimingResult]:
        raise NotImplementedError


class ActivationEventSource(EvidenceSource):
    """Activation timestamp from the subgraph's state-transition log."""

    name = "activation event"

    def attempt(self, context: TimingContext) -> Optional[TimingResult]:
        p = context.proposal
        if not p.activated_timestamp or not p.voting_duration:
            return None
        start = p.activated_timestamp
        return timed_result(TimingSource.ACTIVATION_EVENT, start, start + p.voting_duration, context.now)


class CreatedPlusCooldownSource(EvidenceSource):
    name = "created + cooldown"

    def attempt(self, context: TimingContext) -> Optional[TimingResult]:
        p = context.proposal
        if not p.created_timestamp or not p.cooldown_before_voting_start or not p.voting_duration:
            return None
        start = p.created_timestamp + p.cooldown_before_voting_start
        logger.debug(
            f"[TIMING] activation = created ({p.created_timestamp}) + cooldown ({p.cooldown_before_voting_start}) = {start}")
        return timed_result(TimingSource.CREATED_PLUS_COOLDOWN, start, start + p.voting_duration, context.now)


class OnchainContractSource(EvidenceSource):
    """Direct getProposal read, walking the configured chains in order."""

    name = "on-chain contract"

    def __init__(self, chains: List[ChainConfig], reader: ProposalReader):
        self.chains = list(chains)
        self.reader = reader

    def attempt(self, context: TimingContext) -> Optional[TimingResult]:
        if not self.chains:
            return None
        found = find_proposal_on_chains(self.chains, int(context.proposal.proposal_id), self.reader)
        if found is None:
            return None
        return timed_result(TimingSource.ONCHAIN, found.start_time, found.end_time, context.now, onchain=found)


class MetadataTimestampSource(EvidenceSource):
    name = "IPFS metadata"

    def attempt(self, context: TimingContext) -> Optional[TimingResult]:
        metadata = context.metadata
        if not isinstance(metadata, dict):
            return None
        start = parse_metadata_timestamp(_first_present(metadata, METADATA_START_FIELDS))
        end = parse_metadata_timestamp(_first_present(metadata, METADATA_END_FIELDS))
        if start is None or end is None:
            logger.debug("[TIMING] metadata has no usable start/end fields")
            return None
        return timed_result(TimingSource.METADATA, start, end, context.now)


class CancelledStateSource(EvidenceSource):
    """Only consulted when no metadata document was fetched."""

    name = "cancelled state"

    def attempt(self, context: TimingContext) -> Optional[TimingResult]:
        if context.metadata or context.proposal.state != CANCELLED_STATE:
            return None
        reason = "N/A (proposal was cancelled before voting started)"
        return TimingResult(TimingSource.CANCELLED, reason, reason, "N/A (proposal cancelled)")


class DurationEstimateSource(EvidenceSource):
    """Only the configured duration is known; no absolute dates."""

    name = "duration estimate"

    def attempt(self, context: TimingContext) -> Optional[TimingResult]:
        duration = context.proposal.voting_duration
        if not duration:
            return None
        if context.metadata:
            start_display = "N/A (IPFS metadata found but no usable timestamp fields)"
        else:
            start_display = "N/A (exact start time unavailable)"
        return TimingResult(
            TimingSource.DURATION_ESTIMATE,
            start_display,
            f"Voting duration: {format_duration_compact(duration)} (exact times unavailable)",
            "Unknown (cannot calculate without start time)",
        )


UNAVAILABLE = TimingResult(
    TimingSource.UNAVAILABLE,
    "N/A (timing data unavailable)",
    "N/A (timing data unavailable)",
    "N/A (cannot calculate)",
)


def default_sources(chains: List[ChainConfig], reader: ProposalReader) -> List[EvidenceSource]:
    return [
        ActivationEventSource(),
        CreatedPlusCooldownSource(),
        OnchainContractSource(chains, reader),
        MetadataTimestampSource(),
        CancelledStateSource(),
        DurationEstimateSource(),
    ]


class TimingResolver:
    """Runs the evidence sources as a waterfall."""

    def __init__(
        self,
        config: GovernanceConfig,
        reader: Optional[ProposalReader] = None,
        clock: Callable[[], float] = time.time,
        sources: Optional[List[EvidenceSource]] = None,
    ):
        """
        Args:
            config: Run configuration; its chains and on-chain timeout are used
            reader: On-chain proposal reader, defaults to a web3 reader
            clock: Returns the current epoch time in seconds
            sources: Override the evidence sources and their order
        """
        if sources is None:
            reader = reader or make_web3_reader(config.onchain_timeout)
            sources = default_sources(config.chains, reader)
        self.sources = list(sources)
        self.clock = clock

    def resolve(self, proposal: ProposalRecord, metadata: Any = None) -> TimingResult:
        context = TimingContext(proposal=proposal, metadata=metadata, now=self.clock())
        for source in self.sources:
            try:
                result = source.attempt(context)
            except (TransportError, ValidationError) as e:
                logger.warning(f"[TIMING] {source.name} failed: {e}")
                continue
            if result is not None:
                logger.info(f"[TIMING] Resolved voting window from {source.name}")
                return result
        logger.warning(f"[TIMING] No timing evidence for proposal {proposal.proposal_id}")
        return UNAVAILABLE


__all__ = [
    "EvidenceSource",
    "TimingResolver",
    "TimingResult",
    "TimingSource",
    "parse_metadata_timestamp",
]

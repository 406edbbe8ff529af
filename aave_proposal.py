#!/usr/bin/env python3
"""
cli to fetch an aave governance v3 proposal and print a reconciled report
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from src.discussion_urls import extract_discussion_url
from src.errors import (
    ConfigError,
    FetchTimeoutError,
    InputError,
    NotFoundError,
    ProposalFetchError,
    QueryError,
    TransportError,
)
from src.extract_proposal_id import SUPPORTED_FORMATS, extract_proposal_id
from src.fetch_ipfs_metadata import fetch_ipfs_metadata
from src.fetch_snapshot_proposal import SnapshotClient, SnapshotProposal
from src.fetch_subgraph_proposal import SubgraphClient
from src.proposal_config import GovernanceConfig, load_config, load_env_files
from src.render_report import render_report
from src.resolve_timing import TimingResolver

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch an Aave Governance V3 proposal from the subgraph, on-chain and IPFS.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python aave_proposal.py 411\n"
            "  python aave_proposal.py \"https://app.aave.com/governance/v3/proposal/?proposalId=411\"\n"
            "  python aave_proposal.py 411 --snapshot-id 0xabc... --snapshot-space aave.eth\n"
        ),
    )
    parser.add_argument("proposal", nargs="?", default=None,
                        help="Proposal ID or Aave governance / forum URL")
    parser.add_argument("--api-key", dest="api_key", default=None,
                        help="The Graph API key (default: GRAPH_API_KEY env var)")
    parser.add_argument("--introspect", action="store_true",
                        help="Introspect the subgraph schema and build the query from it")
    parser.add_argument("--snapshot-id", dest="snapshot_id", default=None,
                        help="Also fetch this Snapshot (off-chain) proposal")
    parser.add_argument("--snapshot-space", dest="snapshot_space", default=None,
                        help="Snapshot space for --snapshot-id (e.g. 'aave.eth')")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose logging (DEBUG)")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Reduce logging output (ERROR)")
    return parser


def _configure_logging(verbose: bool, quiet: bool) -> None:
    # default INFO; --verbose -> DEBUG; --quiet -> ERROR
    if verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.ERROR
    else:
        log_level = logging.INFO
    logging.basicConfig(level=log_level, format='[%(levelname)s] %(message)s')


def _print_usage() -> None:
    print("Usage:", file=sys.stderr)
    print("  aave-proposal <proposalId>", file=sys.stderr)
    print("  aave-proposal <url>", file=sys.stderr)
    print("\nSupported formats:", file=sys.stderr)
    for fmt in SUPPORTED_FORMATS:
        print(f"  - {fmt}", file=sys.stderr)


def _fetch_snapshot(config: GovernanceConfig, snapshot_id: str, space: Optional[str]) -> Optional[SnapshotProposal]:
    """snapshot data is optional; failures only drop the section"""
    try:
        with SnapshotClient(config) as client:
            return client.fetch_proposal(snapshot_id, space=space)
    except ProposalFetchError as e:
        logger.warning(f"[SNAPSHOT] Skipping Snapshot section: {e}")
        return None


def run(args: argparse.Namespace, config: GovernanceConfig) -> int:
    try:
        proposal_id = extract_proposal_id(args.proposal)
    except InputError as e:
        logger.error(str(e))
        _print_usage()
        return EXIT_FAILURE

    logger.info(f"Fetching proposal #{proposal_id}...")
    client = SubgraphClient(config)
    try:
        schema = client.introspect_schema() if args.introspect else None
        proposal = client.fetch_proposal(proposal_id, schema=schema)
    except NotFoundError as e:
        logger.error(str(e))
        return EXIT_FAILURE
    except QueryError as e:
        logger.error(f"Subgraph query failed: {e}")
        return EXIT_FAILURE
    except FetchTimeoutError as e:
        logger.error(f"Subgraph request timed out: {e}")
        return EXIT_FAILURE
    except TransportError as e:
        logger.error(f"Could not reach the subgraph: {e}")
        return EXIT_FAILURE

    metadata = fetch_ipfs_metadata(proposal.ipfs_hash, config.gateway_urls, config.gateway_timeout)
    discussion_url = extract_discussion_url(metadata, proposal.raw_content)

    timing = TimingResolver(config).resolve(proposal, metadata)

    snapshot = None
    if args.snapshot_id:
        snapshot = _fetch_snapshot(config, args.snapshot_id, args.snapshot_space)

    print(render_report(proposal, timing, discussion_url, snapshot))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    load_env_files()

    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose, args.quiet)

    if not args.proposal:
        logger.error("Please provide a proposal ID or URL")
        _print_usage()
        return EXIT_FAILURE

    try:
        config = load_config(api_key=args.api_key)
    except ConfigError as e:
        logger.error(str(e))
        return EXIT_CONFIG

    try:
        return run(args, config)
    except Exception as e:
        logger.exception(f"Script error: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())

"""
Find the governance forum thread linked from a proposal.

Candidates come from an ordered list of extraction rules applied to the IPFS
metadata and to the subgraph's rawContent field. Every forum URL found is kept,
then the list is normalized and deduplicated and the first entry wins.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Pattern

logger = logging.getLogger(__name__)

# stops at markdown brackets and at the backslash of JSON escapes in a serialized document
FORUM_URL_RE: Pattern[str] = re.compile(
    r"https?://(?:www\.)?governance\.aave\.com/t/[^\s<>\"'()\[\]\\]+", re.IGNORECASE)

METADATA_URL_FIELDS = [
    "discussion", "discussionUrl", "discussion_url", "forumLink",
    "forum_link", "link", "reference", "referenceUrl",
]
RAW_CONTENT_URL_FIELDS = [
    "discussion", "discussionUrl", "discussion_url", "link",
    "reference", "body", "description",
]


@dataclass
class ExtractionRule:
    """a named way of pulling candidate strings out of the proposal data"""
    name: str
    candidates: Callable[[Any, Optional[str]], Iterable[Any]]


def _metadata_fields(metadata: Any, raw_content: Optional[str]) -> Iterable[Any]:
    if isinstance(metadata, dict):
        return [metadata.get(name) for name in METADATA_URL_FIELDS]
    return []


def _metadata_document(metadata: Any, raw_content: Optional[str]) -> Iterable[Any]:
    if metadata is None:
        return []
    if isinstance(metadata, str):
        return [metadata]
    try:
        return [json.dumps(metadata, ensure_ascii=False)]
    except (TypeError, ValueError):
        return []


def _raw_content_text(metadata: Any, raw_content: Optional[str]) -> Iterable[Any]:
    return [raw_content]


def _raw_content_json(metadata: Any, raw_content: Optional[str]) -> Iterable[Any]:
    if not raw_content or not isinstance(raw_content, str):
        return []
    try:
        parsed = json.loads(raw_content)
    except ValueError:
        return []
    if not isinstance(parsed, dict):
        return []
    return [parsed.get(name) for name in RAW_CONTENT_URL_FIELDS]


EXTRACTION_RULES: List[ExtractionRule] = [
    ExtractionRule("metadata fields", _metadata_fields),
    ExtractionRule("metadata document", _metadata_document),
    ExtractionRule("rawContent", _raw_content_text),
    ExtractionRule("parsed rawContent", _raw_content_json),
]


def find_forum_urls(value: Any) -> List[str]:
    if not value or not isinstance(value, str):
        return []
    return FORUM_URL_RE.findall(value)


def normalize_forum_url(url: str) -> str:
    """drop query and fragment, then a trailing slash"""
    normalized = url.split("?")[0].split("#")[0]
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def dedupe_urls(urls: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for url in urls:
        normalized = normalize_forum_url(url)
        if normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    return result


def collect_discussion_urls(metadata: Any, raw_content: Optional[str],
                            rules: Optional[List[ExtractionRule]] = None) -> List[str]:
    found: List[str] = []
    for rule in rules or EXTRACTION_RULES:
        for candidate in rule.candidates(metadata, raw_content):
            matches = find_forum_urls(candidate)
            if matches:
                logger.debug(f"[DISCUSSION] {rule.name}: {matches}")
                found.extend(matches)
    return dedupe_urls(found)


def extract_discussion_url(metadata: Any, raw_content: Optional[str]) -> Optional[str]:
    urls = collect_discussion_urls(metadata, raw_content)
    if urls:
        logger.info(f"[DISCUSSION] Extracted discussion URLs: {urls}")
        return urls[0]
    logger.info("[DISCUSSION] No discussion URLs found in IPFS metadata or rawContent")
    return None


__all__ = ["EXTRACTION_RULES", "ExtractionRule", "collect_discussion_urls", "extract_discussion_url",
           "normalize_forum_url"]

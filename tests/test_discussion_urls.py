import json

from src.discussion_urls import (
    EXTRACTION_RULES,
    collect_discussion_urls,
    extract_discussion_url,
    normalize_forum_url,
)

THREAD = "https://governance.aave.com/t/arfc-raise-caps/15000"


def test_same_thread_with_different_query_strings_is_deduplicated():
    raw = f"See {THREAD}?u=alice and also {THREAD}/?u=bob#post_3 for details"
    assert collect_discussion_urls(None, raw) == [THREAD]
    assert extract_discussion_url(None, raw) == THREAD


def test_normalize_strips_query_fragment_and_trailing_slash():
    assert normalize_forum_url(THREAD + "/") == THREAD
    assert normalize_forum_url(THREAD + "#reply") == THREAD
    assert normalize_forum_url(THREAD + "?a=1#b") == THREAD


def test_metadata_fields_come_before_raw_content():
    other = "https://governance.aave.com/t/other-thread/99"
    metadata = {"discussions": "ignored", "discussion": THREAD}
    assert extract_discussion_url(metadata, f"raw mentions {other}") == THREAD


def test_whole_metadata_document_is_scanned():
    metadata = {"nested": {"deep": [f"text {THREAD}"]}}
    assert extract_discussion_url(metadata, None) == THREAD


def test_raw_content_parsed_as_json():
    raw = json.dumps({"title": "x", "body": f"Forum: [thread]({THREAD})"})
    # markdown parentheses are not part of the url
    assert extract_discussion_url(None, raw) == THREAD


def test_www_prefix_and_case_insensitive_host():
    url = "HTTPS://www.Governance.Aave.com/t/slug/1"
    assert extract_discussion_url({"link": url}, None) == url


def test_no_forum_link():
    assert extract_discussion_url({"link": "https://snapshot.org/#/aave.eth"}, "plain text") is None
    assert extract_discussion_url(None, None) is None


def test_rules_are_ordered_and_named():
    assert [r.name for r in EXTRACTION_RULES] == [
        "metadata fields", "metadata document", "rawContent", "parsed rawContent",
    ]


def test_serialized_document_escapes_are_not_part_of_the_url():
    # json.dumps turns the newline into a backslash escape
    metadata = {"description": f"see {THREAD}\nthanks", "extra": f"tab\t{THREAD}/\tend"}
    assert collect_discussion_urls(metadata, None) == [THREAD]

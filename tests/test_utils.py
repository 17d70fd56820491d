"""
Helper tests: mention and quote extraction, previews, slugs and relative times.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from airwaves.utils.dates import format_time_ago
from airwaves.utils.mentions import (
    extract_mentioned_user_ids,
    extract_mentioned_usernames,
    extract_quoted_post_ids,
    make_preview,
)
from airwaves.utils.slugs import generate_slug

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class TestMentions:
    def test_mention_nodes_in_order_without_duplicates(self) -> None:
        content = (
            '<p>Hi <span data-type="mention" data-id="u-1">@ann</span> and '
            '<span class="m" data-id="u-2" data-type="mention">@bob</span> '
            '<span data-type="mention" data-id="u-1">@ann</span></p>'
        )
        assert extract_mentioned_user_ids(content) == ["u-1", "u-2"]

    def test_other_spans_are_not_mentions(self) -> None:
        assert extract_mentioned_user_ids('<span data-id="x">x</span>') == []

    def test_plain_handles_are_lowercased(self) -> None:
        assert extract_mentioned_usernames("Thanks @Ann and @dj_mike. cc @ann") == [
            "ann",
            "dj_mike",
        ]

    def test_email_addresses_are_not_handles(self) -> None:
        assert extract_mentioned_usernames("mail studio@station.fm") == []

    def test_quoted_post_ids(self) -> None:
        content = (
            '<blockquote data-post-id="p-9"><p>old</p></blockquote>'
            "<blockquote><p>no id</p></blockquote><p>reply</p>"
        )
        assert extract_quoted_post_ids(content) == ["p-9"]


class TestPreview:
    def test_short_text_is_kept(self) -> None:
        assert make_preview("<p>Great  show!</p>", 50) == "Great show!"

    def test_long_text_is_cut_with_ellipsis(self) -> None:
        preview = make_preview("word " * 40, 20)
        assert len(preview) <= 20
        assert preview.endswith("…")


class TestSlug:
    def test_basic(self) -> None:
        assert generate_slug("Show Times!") == "show-times"

    def test_accents_and_separators(self) -> None:
        assert generate_slug("  Café -- Live_Sets ") == "cafe-live-sets"

    def test_empty_falls_back(self) -> None:
        assert generate_slug("!!!") == "topic"


class TestTimeAgo:
    def test_days(self) -> None:
        assert format_time_ago(NOW - timedelta(days=3), NOW) == "3d ago"

    def test_hours(self) -> None:
        assert format_time_ago(NOW - timedelta(hours=2), NOW) == "2h ago"

    def test_minutes(self) -> None:
        assert format_time_ago(NOW - timedelta(minutes=5), NOW) == "5m ago"

    def test_just_now(self) -> None:
        assert format_time_ago(NOW - timedelta(seconds=20), NOW) == "Just now"

    def test_naive_values_are_utc(self) -> None:
        assert format_time_ago(datetime(2026, 10, 19, 10, 0), NOW) == "2h ago"

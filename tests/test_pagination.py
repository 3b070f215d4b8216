"""Test activity ordering and pagination of the listing."""

import math

import pytest

from app.algorithms.pagination import display_color, page, truncate_message
from app.algorithms.submit import submit
from app.algorithms.threads import list_roots


def _fill(put_post, count):
    # Timestamps are distinct so the expected order is unambiguous
    for n in range(count):
        put_post(f"p{n:03d}", last_activity=1_000 + n)


class TestPage:
    """Test slicing the sorted root list."""

    def test_most_recent_first(self, store, put_post):
        put_post("old", last_activity=1)
        put_post("new", last_activity=3)
        put_post("mid", last_activity=2)

        result = page(store, 1)
        assert [entry.id for entry in result.posts] == ["new", "mid", "old"]

    def test_replies_are_not_listed(self, store, put_post):
        put_post("A")
        put_post("a1", parent_id="A")

        assert [entry.id for entry in page(store, 1).posts] == ["A"]

    def test_reply_bumps_thread_to_top(self, store):
        first = submit(store, "first", "one", now=1_000)
        second = submit(store, "second", "two", now=2_000)
        assert [entry.id for entry in page(store, 1).posts] == [second, first]

        submit(store, "Re", "bump", parent_id=first, now=3_000)

        assert [entry.id for entry in page(store, 1).posts] == [first, second]

    @pytest.mark.parametrize("total,size", [(0, 30), (1, 30), (30, 30), (31, 30), (65, 30), (7, 3)])
    def test_pages_cover_everything_once(self, store, put_post, total, size):
        _fill(put_post, total)
        last_page = max(math.ceil(total / size), 1)

        seen = []
        for number in range(1, last_page + 1):
            result = page(store, number, page_size=size)
            assert len(result.posts) <= size
            assert result.has_next == (number < math.ceil(total / size))
            assert result.has_prev == (number > 1)
            seen.extend(entry.id for entry in result.posts)

        expected = [
            post.id for post in sorted(list_roots(store), key=lambda p: p.last_activity, reverse=True)
        ]
        assert seen == expected
        assert len(set(seen)) == total

    def test_page_numbers_below_one_clamp(self, store, put_post):
        _fill(put_post, 5)
        for number in (0, -3):
            result = page(store, number, page_size=2)
            assert result.page == 1
            assert not result.has_prev
            assert result.prev_page is None
            assert [entry.id for entry in result.posts] == ["p004", "p003"]

    def test_page_past_the_end_is_empty(self, store, put_post):
        _fill(put_post, 3)
        result = page(store, 5, page_size=2)

        assert result.posts == []
        assert not result.has_next
        assert result.has_prev
        assert result.prev_page == 4

    def test_navigation_links(self, store, put_post):
        _fill(put_post, 5)
        result = page(store, 2, page_size=2)

        assert result.next_page == 3
        assert result.prev_page == 1

    def test_reply_counts_on_entries(self, store, put_post):
        put_post("A", last_activity=2)
        put_post("B", last_activity=1)
        put_post("a1", parent_id="A")
        put_post("a2", parent_id="A")

        counts = {entry.id: entry.reply_count for entry in page(store, 1).posts}
        assert counts == {"A": 2, "B": 0}

    def test_corrupt_record_does_not_break_listing(self, store, put_post):
        _fill(put_post, 3)
        store.put(b"rotten", b"\xde\xad\xbe\xef")

        assert len(page(store, 1).posts) == 3

    def test_invalid_page_size(self, store):
        with pytest.raises(ValueError):
            page(store, 1, page_size=0)


class TestListingEntries:
    """Test the per-post listing fields."""

    def test_long_messages_are_truncated(self, store, put_post):
        put_post("A", message="y" * 3_000)

        entry = page(store, 1).posts[0]
        assert entry.truncated
        assert entry.message == "y" * 2_700
        assert entry.read_more == "/post/A"

    def test_short_messages_untouched(self, store, put_post):
        put_post("A", message="short")

        entry = page(store, 1).posts[0]
        assert not entry.truncated
        assert entry.message == "short"
        assert entry.read_more is None

    def test_attachment_and_kind(self, store, put_post):
        put_post("A", attachment="Ab12Cd-clip.webm")

        entry = page(store, 1).posts[0]
        assert entry.attachment == "Ab12Cd-clip.webm"
        assert entry.media_kind == "video"

    def test_color_matches_helper(self, store, put_post):
        put_post("A")
        assert page(store, 1).posts[0].display_color == display_color("A")


class TestDisplayColor:
    """Test the id-derived color."""

    def test_stable(self):
        assert display_color("abc123") == display_color("abc123")

    def test_format(self):
        color = display_color("abc123")
        assert len(color) == 7
        assert color.startswith("#")
        int(color[1:], 16)
        assert color == color.upper()

    def test_varies_with_id(self):
        colors = {display_color(f"id{n}") for n in range(50)}
        assert len(colors) > 1


class TestTruncateMessage:
    """Test cutting long escaped messages."""

    def test_exact_limit_is_not_truncated(self):
        assert truncate_message("z" * 10, 10) == ("z" * 10, False)

    def test_does_not_split_entities(self):
        message = "a" * 8 + "&amp;" + "b" * 10
        cut, truncated = truncate_message(message, 10)

        assert truncated
        assert cut == "a" * 8

    def test_complete_entity_survives(self):
        message = "a" * 5 + "&#39;" + "b" * 10
        cut, _ = truncate_message(message, 10)
        assert cut == "a" * 5 + "&#39;"

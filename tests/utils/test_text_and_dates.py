import re
from datetime import datetime, timedelta, timezone

from readmaster.utils.dates import is_yesterday, start_of_day_utc, to_naive_utc, yesterday_range_utc
from readmaster.utils.text import (
    calculate_reading_time,
    count_words,
    cut_after_last,
    decode_html_entities,
    find_blocks,
    remove_blocks,
    strip_html_tags,
)


def test_strip_html_tags():
    markup = "<p>Hello&nbsp;<b>world</b></p><script>alert(1)</script><style>p {}</style>"
    assert strip_html_tags(markup) == "Hello world"
    assert strip_html_tags(None) == ""


def test_decode_entities():
    assert decode_html_entities("Tom &amp; Jerry &quot;&#39;&lt;&gt;") == "Tom & Jerry \"'<>"


def test_word_count_and_reading_time():
    assert count_words("<p>one two</p>  three") == 3
    assert count_words("") == 0
    assert calculate_reading_time(0) == 0
    assert calculate_reading_time(1) == 1
    assert calculate_reading_time(250) == 1
    assert calculate_reading_time(251) == 2


def test_aware_datetimes_are_converted_to_naive_utc():
    aware = datetime(2026, 5, 1, 1, 30, tzinfo=timezone(timedelta(hours=3)))
    assert to_naive_utc(aware) == datetime(2026, 4, 30, 22, 30)
    assert start_of_day_utc(aware) == datetime(2026, 4, 30)


def test_yesterday_helpers():
    reference = datetime(2026, 3, 1, 0, 5)
    assert yesterday_range_utc(reference) == (datetime(2026, 2, 28), datetime(2026, 3, 1))
    assert is_yesterday(datetime(2026, 2, 28, 23, 59), reference)
    assert not is_yesterday(datetime(2026, 3, 1), reference)


def test_block_helpers_ignore_openings_after_the_last_close():
    pattern = re.compile(r"<b>(.*?)</b>", re.IGNORECASE | re.DOTALL)
    markup = "<b>one</b> <B>two</B> <b>dangling"

    assert cut_after_last(markup, "</b>") == "<b>one</b> <B>two</B>"
    assert find_blocks(markup, pattern, "</b>") == ["one", "two"]
    assert remove_blocks(markup, pattern, "</b>") == "  <b>dangling"
    assert find_blocks("<b>never closed", pattern, "</b>") == []
    assert remove_blocks("<b>never closed", pattern, "</b>") == "<b>never closed"

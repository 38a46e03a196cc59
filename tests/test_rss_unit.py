"""Unit tests for RSS rendering."""

import xml.etree.ElementTree as ET
from datetime import UTC, datetime

import feedparser
from dateutil import parser as date_parser

from hotrank_rss.models import RankedItem, TemplateMaterial
from hotrank_rss.rss import (
    CHANNEL_DESCRIPTION,
    CHANNEL_LINK,
    CHANNEL_TITLE,
    build_description,
    build_rss,
    cdata_safe,
    escape_xml,
    format_rfc1123,
    image_mime,
    render_item,
)

NOW = datetime(2024, 10, 2, 10, 0, 0, tzinfo=UTC)


def parse(document: str) -> ET.Element:
    return ET.fromstring(document.encode("utf-8"))


def make_item(item_id=1, **material) -> RankedItem:
    return RankedItem(item_id=item_id, material=TemplateMaterial(**material))


class TestEscapingUnit:
    """Unit tests for escape_xml and cdata_safe."""

    def test_escape_all_special_characters(self):
        assert escape_xml("a&b<c>d\"e'f") == "a&amp;b&lt;c&gt;d&quot;e&apos;f"

    def test_escape_ampersand_first(self):
        assert escape_xml("&lt;") == "&amp;lt;"

    def test_escape_none(self):
        assert escape_xml(None) == ""

    def test_escape_non_string(self):
        assert escape_xml(42) == "42"

    def test_escape_drops_control_characters(self):
        assert escape_xml("a\x00b\x1fc\td") == "abc\td"

    def test_cdata_terminator(self):
        assert cdata_safe("x]]>y") == "x]]&gt;y"

    def test_cdata_leaves_markup_alone(self):
        assert cdata_safe("<b>&</b>") == "<b>&</b>"


class TestDatesUnit:
    """Unit tests for RFC 1123 formatting."""

    def test_known_timestamp(self):
        assert format_rfc1123(1700000000000) == "Tue, 14 Nov 2023 22:13:20 GMT"

    def test_example_format(self):
        assert format_rfc1123(1727863200000) == "Wed, 02 Oct 2024 10:00:00 GMT"

    def test_float_timestamp(self):
        assert format_rfc1123(1700000000000.0) == "Tue, 14 Nov 2023 22:13:20 GMT"

    def test_missing_timestamp_uses_now(self):
        assert format_rfc1123(None, NOW) == "Wed, 02 Oct 2024 10:00:00 GMT"

    def test_non_numeric_timestamp_uses_now(self):
        assert format_rfc1123("1700000000000", NOW) == "Wed, 02 Oct 2024 10:00:00 GMT"

    def test_out_of_range_timestamp_uses_now(self):
        assert format_rfc1123(10**20, NOW) == "Wed, 02 Oct 2024 10:00:00 GMT"

    def test_now_defaults_to_current_instant(self):
        rendered = format_rfc1123()

        assert rendered.endswith(" GMT")
        parsed = date_parser.parse(rendered)
        assert abs((parsed - datetime.now(UTC)).total_seconds()) < 60


class TestImageMimeUnit:
    """Unit tests for image_mime."""

    def test_known_extensions(self):
        assert image_mime("https://x.com/a.png") == "image/png"
        assert image_mime("https://x.com/a.jpg") == "image/jpeg"
        assert image_mime("https://x.com/a.jpeg") == "image/jpeg"
        assert image_mime("https://x.com/a.webp") == "image/webp"

    def test_case_and_query_insensitive(self):
        assert image_mime("https://x.com/img.PNG?v=2") == "image/png"

    def test_unknown_defaults_to_jpeg(self):
        assert image_mime("https://x.com/a.gif") == "image/jpeg"
        assert image_mime("https://x.com/noext") == "image/jpeg"

    def test_extension_only_in_query_is_ignored(self):
        assert image_mime("https://x.com/a?format=.png") == "image/jpeg"


class TestDescriptionUnit:
    """Unit tests for build_description."""

    def test_all_fields(self):
        item = make_item(
            author_name="A",
            stat_read=10,
            stat_praise=2,
            stat_comment=3,
            stat_collect=4,
        )

        assert build_description(item) == "作者：A | 阅读：10 | 点赞：2 | 评论：3 | 收藏：4"

    def test_only_some_fields(self):
        item = make_item(stat_praise=5, stat_collect=0)

        assert build_description(item) == "点赞：5 | 收藏：0"

    def test_blank_author_omitted(self):
        item = make_item(author_name="   ", stat_read=1)

        assert build_description(item) == "阅读：1"

    def test_empty(self):
        assert build_description(make_item()) == ""

    def test_integral_float_count(self):
        assert build_description(make_item(stat_read=10.0)) == "阅读：10"


class TestRenderItemUnit:
    """Unit tests for render_item and build_rss."""

    def test_sample_hot_list_item(self):
        item = RankedItem.from_dict(
            {
                "itemId": 123,
                "templateMaterial": {
                    "widgetTitle": "T",
                    "authorName": "A",
                    "publishTime": 1700000000000,
                    "statRead": 10,
                },
            }
        )

        root = parse(build_rss([item], now=NOW))
        element = root.find("channel/item")

        assert element.findtext("title") == "T"
        assert element.findtext("link") == "https://36kr.com/p/123"
        assert element.findtext("guid") == "https://36kr.com/p/123"
        assert element.find("guid").get("isPermaLink") == "true"
        assert element.findtext("pubDate") == "Tue, 14 Nov 2023 22:13:20 GMT"
        assert element.findtext("author") == "A"
        assert element.findtext("description") == "作者：A | 阅读：10"
        assert element.find("enclosure") is None

    def test_bare_item(self):
        root = parse(build_rss([make_item(item_id="x1")], now=NOW))
        element = root.find("channel/item")

        assert element.findtext("description") == ""
        assert element.findtext("author") == ""
        assert element.find("enclosure") is None
        assert element.findtext("pubDate") == "Wed, 02 Oct 2024 10:00:00 GMT"

    def test_scalar_fields_from_api_are_rendered(self):
        item = RankedItem.from_dict(
            {
                "itemId": True,
                "templateMaterial": {"widgetTitle": 5, "authorName": 42},
            }
        )

        element = parse(build_rss([item], now=NOW)).find("channel/item")

        assert element.findtext("title") == "5"
        assert element.findtext("author") == "42"
        assert element.findtext("description") == "作者：42"
        assert element.findtext("link") == "https://36kr.com/p/true"

    def test_item_level_publish_time_fallback(self):
        item = RankedItem(
            item_id=1, material=TemplateMaterial(), publish_time=1700000000000
        )

        root = parse(build_rss([item], now=NOW))

        assert root.findtext("channel/item/pubDate") == "Tue, 14 Nov 2023 22:13:20 GMT"

    def test_enclosure(self):
        item = make_item(widget_image="https://img.36krcdn.com/a.webp?x=1&y=2")

        element = parse(build_rss([item], now=NOW)).find("channel/item/enclosure")

        assert element.get("url") == "https://img.36krcdn.com/a.webp?x=1&y=2"
        assert element.get("type") == "image/webp"

    def test_blank_image_has_no_enclosure(self):
        rendered = render_item(make_item(widget_image="  "), NOW)

        assert "<enclosure" not in rendered

    def test_cdata_terminator_in_author(self):
        item = make_item(author_name="x]]>y")

        element = parse(build_rss([item], now=NOW)).find("channel/item")

        assert element.findtext("description") == "作者：x]]&gt;y"
        assert element.findtext("author") == "x]]>y"

    def test_channel_header(self):
        document = build_rss([], now=NOW)
        channel = parse(document).find("channel")

        assert document.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        assert channel.findtext("title") == CHANNEL_TITLE
        assert channel.findtext("link") == CHANNEL_LINK
        assert channel.findtext("description") == CHANNEL_DESCRIPTION
        assert channel.findtext("lastBuildDate") == "Wed, 02 Oct 2024 10:00:00 GMT"
        assert channel.findall("item") == []

    def test_only_first_eight_items(self):
        items = [make_item(item_id=n) for n in range(12)]

        links = [
            e.findtext("link")
            for e in parse(build_rss(items, now=NOW)).findall("channel/item")
        ]

        assert links == [f"https://36kr.com/p/{n}" for n in range(8)]

    def test_accepts_generators(self):
        items = (make_item(item_id=n) for n in range(3))

        assert len(parse(build_rss(items, now=NOW)).findall("channel/item")) == 3

    def test_readable_by_feedparser(self):
        items = [
            make_item(
                item_id=n,
                widget_title=f"标题 {n}",
                publish_time=1700000000000 + n * 60_000,
            )
            for n in range(3)
        ]

        feed = feedparser.parse(build_rss(items, now=NOW).encode("utf-8"))

        assert feed.feed.title == CHANNEL_TITLE
        assert [entry.link for entry in feed.entries] == [
            f"https://36kr.com/p/{n}" for n in range(3)
        ]
        assert [entry.title for entry in feed.entries] == ["标题 0", "标题 1", "标题 2"]
        published = date_parser.parse(feed.entries[1].published)
        assert published == datetime(2023, 11, 14, 22, 14, 20, tzinfo=UTC)

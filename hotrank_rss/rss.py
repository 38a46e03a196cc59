"""RSS 2.0 rendering for the hot-rank list."""

import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from itertools import islice

from .models import RankedItem

MAX_ITEMS = 8

ARTICLE_URL_PREFIX = "https://36kr.com/p/"

CHANNEL_TITLE = "36氪 - 热榜前8"
CHANNEL_LINK = "https://36kr.com/"
CHANNEL_DESCRIPTION = "来自 gateway.36kr.com 的 hotRankList（前8）"

# Checked in order against the lowercased URL path
IMAGE_MIME_TYPES = (
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
    (".webp", "image/webp"),
)
DEFAULT_IMAGE_MIME = "image/jpeg"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Code points XML 1.0 does not allow anywhere in a document
_INVALID_XML_CHARS = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]"
)


def escape_xml(text) -> str:
    """Escape text for an XML element body or attribute value."""
    if text is None:
        return ""

    text = _INVALID_XML_CHARS.sub("", str(text))
    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    text = text.replace(">", "&gt;")
    text = text.replace('"', "&quot;")
    text = text.replace("'", "&apos;")

    return text


def cdata_safe(text) -> str:
    """Make text safe to embed in a CDATA section."""
    if text is None:
        return ""
    return _INVALID_XML_CHARS.sub("", str(text)).replace("]]>", "]]&gt;")


def format_rfc1123(epoch_ms=None, now: datetime | None = None) -> str:
    """Format an epoch-milliseconds timestamp as an RFC 1123 date in GMT.

    Missing, non-numeric or out-of-range timestamps render ``now``
    (the current instant when not given).
    """
    moment = None
    if isinstance(epoch_ms, (int, float)) and not isinstance(epoch_ms, bool):
        try:
            moment = _EPOCH + timedelta(milliseconds=int(epoch_ms))
        except (OverflowError, ValueError):
            moment = None

    if moment is None:
        moment = now or datetime.now(UTC)

    return format_datetime(moment.astimezone(UTC), usegmt=True)


def image_mime(url: str) -> str:
    """Guess the image MIME type from a URL's extension."""
    path = url.split("?", 1)[0].lower()
    for extension, mime in IMAGE_MIME_TYPES:
        if path.endswith(extension):
            return mime
    return DEFAULT_IMAGE_MIME


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def item_link(item: RankedItem) -> str:
    item_id = "" if item.item_id is None else _format_number(item.item_id)
    return ARTICLE_URL_PREFIX + item_id


def build_description(item: RankedItem) -> str:
    """Join the author and engagement stats of an item with `` | ``.

    Blank authors and missing counters are left out.
    """
    material = item.material
    parts = []

    if material.author_name and material.author_name.strip():
        parts.append(f"作者：{material.author_name}")

    for label, value in (
        ("阅读", material.stat_read),
        ("点赞", material.stat_praise),
        ("评论", material.stat_comment),
        ("收藏", material.stat_collect),
    ):
        if value is not None:
            parts.append(f"{label}：{_format_number(value)}")

    return " | ".join(parts)


def render_item(item: RankedItem, now: datetime | None = None) -> str:
    """Render one ``<item>`` element."""
    material = item.material
    link = item_link(item)
    pub_date = format_rfc1123(item.effective_publish_time, now)
    description = build_description(item)

    enclosure = ""
    image = material.widget_image
    if image and image.strip():
        enclosure = (
            f'\n      <enclosure url="{escape_xml(image)}" '
            f'type="{image_mime(image)}" />'
        )

    return (
        "    <item>\n"
        f"      <title>{escape_xml(material.widget_title)}</title>\n"
        f"      <link>{escape_xml(link)}</link>\n"
        f'      <guid isPermaLink="true">{escape_xml(link)}</guid>\n'
        f"      <pubDate>{escape_xml(pub_date)}</pubDate>\n"
        f"      <author>{escape_xml(material.author_name)}</author>\n"
        f"      <description><![CDATA[{cdata_safe(description)}]]></description>"
        f"{enclosure}\n"
        "    </item>"
    )


def build_rss(items: Iterable[RankedItem], now: datetime | None = None) -> str:
    """Render the first ``MAX_ITEMS`` ranked items as an RSS 2.0 document.

    Args:
        items: Ranked items in display order
        now: Render instant; used for ``lastBuildDate`` and as the
            fallback publish date

    Returns:
        The complete XML document
    """
    now = now or datetime.now(UTC)
    rendered = "\n".join(
        render_item(item, now) for item in islice(items, MAX_ITEMS)
    )

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<rss version="2.0">\n'
        "  <channel>\n"
        f"    <title>{escape_xml(CHANNEL_TITLE)}</title>\n"
        f"    <link>{escape_xml(CHANNEL_LINK)}</link>\n"
        f"    <description>{escape_xml(CHANNEL_DESCRIPTION)}</description>\n"
        f"    <lastBuildDate>{escape_xml(format_rfc1123(now=now))}</lastBuildDate>\n"
        f"{rendered}\n"
        "  </channel>\n"
        "</rss>\n"
    )

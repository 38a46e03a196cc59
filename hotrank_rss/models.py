"""Data models for the hot-rank RSS generator."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


def _number(value: Any) -> int | float | None:
    # bool is an int subclass but never a valid counter or timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _text(value: Any) -> str | None:
    """Scalar JSON value as display text; objects and arrays give None."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return None


@dataclass(frozen=True)
class TemplateMaterial:
    """Display block nested in a ranked item (``templateMaterial``)."""

    widget_title: str | None = None
    author_name: str | None = None
    publish_time: int | float | None = None  # epoch milliseconds
    widget_image: str | None = None
    stat_read: int | float | None = None
    stat_praise: int | float | None = None
    stat_comment: int | float | None = None
    stat_collect: int | float | None = None

    @classmethod
    def from_dict(cls, raw: Any) -> "TemplateMaterial":
        if not isinstance(raw, dict):
            return cls()
        return cls(
            widget_title=_text(raw.get("widgetTitle")),
            author_name=_text(raw.get("authorName")),
            publish_time=_number(raw.get("publishTime")),
            widget_image=_string(raw.get("widgetImage")),
            stat_read=_number(raw.get("statRead")),
            stat_praise=_number(raw.get("statPraise")),
            stat_comment=_number(raw.get("statComment")),
            stat_collect=_number(raw.get("statCollect")),
        )


@dataclass(frozen=True)
class RankedItem:
    """A single entry of ``data.hotRankList``."""

    item_id: str | int | float | None
    material: TemplateMaterial
    publish_time: int | float | None = None

    @classmethod
    def from_dict(cls, raw: Any) -> "RankedItem":
        if not isinstance(raw, dict):
            return cls(item_id=None, material=TemplateMaterial())
        item_id = raw.get("itemId")
        if isinstance(item_id, bool):
            item_id = _text(item_id)
        elif not isinstance(item_id, str):
            item_id = _number(item_id)
        return cls(
            item_id=item_id,
            material=TemplateMaterial.from_dict(raw.get("templateMaterial")),
            publish_time=_number(raw.get("publishTime")),
        )

    @property
    def effective_publish_time(self) -> int | float | None:
        """Material-level timestamp, falling back to the item-level one."""
        if self.material.publish_time is not None:
            return self.material.publish_time
        return self.publish_time


@dataclass(frozen=True)
class HotRankResponse:
    """Top-level shape of the hot-rank API response."""

    code: Any
    hot_rank_list: list[Any] | None
    raw: Any = None

    @classmethod
    def from_json(cls, parsed: Any) -> "HotRankResponse":
        if not isinstance(parsed, dict):
            return cls(code=None, hot_rank_list=None, raw=parsed)
        data = parsed.get("data")
        hot = data.get("hotRankList") if isinstance(data, dict) else None
        return cls(
            code=parsed.get("code"),
            hot_rank_list=hot if isinstance(hot, list) else None,
            raw=parsed,
        )

    @property
    def ok(self) -> bool:
        return (
            isinstance(self.code, int)
            and not isinstance(self.code, bool)
            and self.code == 0
        )


class FailureReason(Enum):
    """Why a single fetch attempt failed."""

    HTTP_STATUS = "http_status"
    INVALID_JSON = "invalid_json"
    API_CODE = "api_code"
    SCHEMA = "schema"
    NETWORK = "network"


@dataclass(frozen=True)
class FetchFailure:
    """Tagged description of a failed fetch attempt."""

    reason: FailureReason
    message: str
    status_code: int | None = None
    body: str | None = None
    payload: Any = None

    def details(self) -> dict[str, Any]:
        """Structured payload suitable for logging."""
        details: dict[str, Any] = {"reason": self.reason.value}
        if self.status_code is not None:
            details["status"] = self.status_code
        if self.body is not None:
            details["body"] = self.body
        if self.payload is not None:
            details["response"] = self.payload
        return details


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one fetch attempt: items on success, failure otherwise."""

    items: list[RankedItem] | None = None
    failure: FetchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, items: list[RankedItem]) -> "FetchResult":
        return cls(items=items)

    @classmethod
    def failed(cls, failure: FetchFailure) -> "FetchResult":
        return cls(failure=failure)

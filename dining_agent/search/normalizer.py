"""把各 provider 的原始结果映射为统一的 BubbleOption。

纯函数，无 I/O。缺失或类型不对的可选字段会被省略，
任何单条记录都恰好产出一个 BubbleOption，不会抛异常。
"""

import math
from typing import Any, Callable, Dict, Iterable, List, Optional

from dining_agent.domain.suggestions import BubbleOption, SearchProvider


RESULT_KEYS = {
    SearchProvider.GOOGLE_LOCAL: "local_results",
    SearchProvider.YELP: "organic_results",
}


def extract_results(provider: SearchProvider | str, body: Optional[Dict[str, Any]]) -> List[Any]:
    """从网关返回的 JSON 中取出 provider 对应的结果数组。"""

    if not isinstance(body, dict):
        return []
    results = body.get(RESULT_KEYS[SearchProvider(provider)])
    return list(results) if isinstance(results, list) else []


def normalize(provider: SearchProvider | str, raw_results: Iterable[Any]) -> List[BubbleOption]:
    """归一化一批结果，保证批内 value 唯一。"""

    provider = SearchProvider(provider)
    mapper = _MAPPERS[provider]
    options: List[BubbleOption] = []
    used: set[str] = set()
    for position, raw in enumerate(raw_results or [], start=1):
        record = raw if isinstance(raw, dict) else {}
        option = mapper(record)
        base = option.value or f"{provider.value}-{position}"
        value, suffix = base, 1
        while value in used:
            suffix += 1
            value = f"{base}-{suffix}"
        used.add(value)
        if value != option.value:
            option = BubbleOption(
                title=option.title,
                value=value,
                price=option.price,
                rating=option.rating,
                reviews=option.reviews,
                hours=option.hours,
                extras=option.extras,
            )
        options.append(option)
    return options


def normalize_google_local(record: Dict[str, Any]) -> BubbleOption:
    place_id = _as_str(record.get("place_id"))
    extras = {"place_id": place_id} if place_id else {}
    return BubbleOption(
        title=_as_str(record.get("title")) or "",
        value=place_id or "",
        price=_as_str(record.get("price")),
        rating=_as_float(record.get("rating")),
        reviews=_as_int(record.get("reviews")),
        hours=_as_str(record.get("hours")),
        extras=extras,
    )


def normalize_yelp(record: Dict[str, Any]) -> BubbleOption:
    place_ids = record.get("place_ids")
    first_id = _as_str(place_ids[0]) if isinstance(place_ids, list) and place_ids else None
    extras: Dict[str, Any] = {}
    categories = record.get("categories")
    if isinstance(categories, list):
        titles = [
            str(cat.get("title"))
            for cat in categories
            if isinstance(cat, dict) and cat.get("title")
        ]
        if titles:
            extras["categories"] = ", ".join(titles)
    for key in ("neighborhoods", "phone", "snippet", "thumbnail"):
        val = _as_str(record.get(key))
        if val:
            extras[key] = val
    service_options = record.get("service_options")
    if isinstance(service_options, (dict, list)) and service_options:
        extras["service_options"] = service_options
    return BubbleOption(
        title=_as_str(record.get("title")) or "",
        value=first_id or "",
        price=_as_str(record.get("price")),
        rating=_as_float(record.get("rating")),
        reviews=_as_int(record.get("reviews")),
        extras=extras,
    )


_MAPPERS: Dict[SearchProvider, Callable[[Dict[str, Any]], BubbleOption]] = {
    SearchProvider.GOOGLE_LOCAL: normalize_google_local,
    SearchProvider.YELP: normalize_yelp,
}


def _as_str(value: Any) -> Optional[str]:
    """统一为显示形式：连续空白折叠为单个空格。"""

    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = " ".join(str(value).split())
    return text or None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None

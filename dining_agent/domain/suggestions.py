"""餐厅搜索相关的领域模型。

- SearchProvider: 两个搜索后端（Google Local / Yelp）的标签枚举。
- LocalSearch / ReviewsDirectory: SuggestionQuery 的两个变体，各自只携带
  自己适用的参数，网关按类型分派。
- BubbleOption: 归一化后的一条结果，用于渲染卡片。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


BUBBLE_OPTION_TYPE = "bubble_option"


class SearchProvider(str, Enum):
    """搜索后端，取值即 SerpApi 的 engine 标识。"""

    GOOGLE_LOCAL = "google_local"
    YELP = "yelp"


@dataclass(frozen=True)
class LocalSearch:
    """Google Local 搜索：只有关键词和地点。"""

    term: str
    location: str

    @property
    def provider(self) -> SearchProvider:
        return SearchProvider.GOOGLE_LOCAL


@dataclass(frozen=True)
class ReviewsDirectory:
    """Yelp 搜索：额外支持分类过滤、排序和属性过滤。"""

    term: str
    location: str
    category: Optional[str] = None
    sort_by: Optional[str] = None
    attributes: Tuple[str, ...] = ()

    @property
    def provider(self) -> SearchProvider:
        return SearchProvider.YELP


SuggestionQuery = Union[LocalSearch, ReviewsDirectory]


def build_query(
    provider: SearchProvider | str,
    term: str,
    location: str,
    category: Optional[str] = None,
    sort_by: Optional[str] = None,
    attributes: Optional[list[str]] = None,
) -> SuggestionQuery:
    """根据 provider 标签构造对应的查询变体。

    过滤参数只对 Yelp 生效，对 Google Local 会被丢弃。
    """

    provider = SearchProvider(provider)
    if provider is SearchProvider.YELP:
        return ReviewsDirectory(
            term=term,
            location=location,
            category=category or None,
            sort_by=sort_by or None,
            attributes=tuple(a for a in (attributes or []) if a),
        )
    return LocalSearch(term=term, location=location)


@dataclass(frozen=True)
class BubbleOption:
    """归一化后的一条餐厅结果。

    value 在同一批结果中唯一，用作列表渲染的稳定 key。
    extras 保存各 provider 特有的字段（分类、电话、缩略图等）。
    """

    title: str
    value: str
    price: Optional[str] = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    hours: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_item(self) -> Dict[str, Any]:
        """转换为带外通道中的条目，缺失字段不出现。"""

        item: Dict[str, Any] = {"type": BUBBLE_OPTION_TYPE, "title": self.title, "value": self.value}
        for key in ("price", "rating", "reviews", "hours"):
            val = getattr(self, key)
            if val is not None:
                item[key] = val
        for key, val in self.extras.items():
            if val is not None and key not in item:
                item[key] = val
        return item

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "BubbleOption":
        """从通道条目还原（客户端解析流时使用）。"""

        core = {"type", "title", "value", "price", "rating", "reviews", "hours"}
        return cls(
            title=str(item.get("title") or ""),
            value=str(item.get("value") or ""),
            price=item.get("price"),
            rating=item.get("rating"),
            reviews=item.get("reviews"),
            hours=item.get("hours"),
            extras={k: v for k, v in item.items() if k not in core},
        )

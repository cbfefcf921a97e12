"""结果卡片渲染。

一张卡片是三行以内的纯文本，供 tkinter 界面直接展示：

    Tutta Bella Neapolitan Pizzeria
    4.5 ★★★★☆ (1203) $$
    ⏰ Open ⋅ Closes 10 PM

第二行依次为评分、5 个星标、(评论数)、价格，缺失的字段省略；
营业时间徽章只在 hours 存在时出现。parse_card 可以从显示内容还原这些字段。
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from dining_agent.domain.suggestions import BubbleOption


TOTAL_STARS = 5
STAR_ON = "★"
STAR_OFF = "☆"
HOURS_BADGE = "⏰ "

_META_RE = re.compile(
    r"^(?:(?P<rating>-?\d+(?:\.\d+)?(?:e[-+]\d+)?) )?"
    r"(?P<stars>[★☆]{5})"
    r"(?: \((?P<reviews>-?\d+)\))?"
    r"(?: (?P<price>.+))?$"
)


def star_icons(rating: Optional[float], total: int = TOTAL_STARS) -> List[bool]:
    """第 i 个星标（从 1 开始）在 i <= rating 时点亮。"""

    if rating is None:
        return [False] * total
    return [i <= rating for i in range(1, total + 1)]


def render_stars(rating: Optional[float]) -> str:
    return "".join(STAR_ON if lit else STAR_OFF for lit in star_icons(rating))


def render_card(option: BubbleOption) -> str:
    title = " ".join(option.title.split())
    meta: List[str] = []
    if option.rating is not None:
        meta.append(str(float(option.rating)))
    meta.append(render_stars(option.rating))
    if option.reviews is not None:
        meta.append(f"({option.reviews})")
    if option.price:
        meta.append(" ".join(option.price.split()))
    lines = [title, " ".join(meta)]
    if option.hours:
        lines.append(HOURS_BADGE + " ".join(option.hours.split()))
    return "\n".join(lines)


def render_grid(options: List[BubbleOption]) -> str:
    return "\n\n".join(render_card(o) for o in options)


@dataclass(frozen=True)
class CardFields:
    """从卡片显示内容解析出的字段。"""

    title: str
    rating: Optional[float] = None
    reviews: Optional[int] = None
    price: Optional[str] = None
    hours: Optional[str] = None


def parse_card(text: str) -> CardFields:
    lines = text.split("\n")
    if len(lines) < 2:
        raise ValueError("card must have at least a title and a meta line")
    match = _META_RE.match(lines[1])
    if not match:
        raise ValueError(f"unrecognized card meta line: {lines[1]!r}")
    hours = None
    if len(lines) > 2 and lines[2].startswith(HOURS_BADGE):
        hours = lines[2][len(HOURS_BADGE):]
    rating = match.group("rating")
    reviews = match.group("reviews")
    return CardFields(
        title=lines[0],
        rating=float(rating) if rating is not None else None,
        reviews=int(reviews) if reviews is not None else None,
        price=match.group("price"),
        hours=hours,
    )


def parse_grid(text: str) -> List[CardFields]:
    return [parse_card(block) for block in text.split("\n\n") if block.strip()]

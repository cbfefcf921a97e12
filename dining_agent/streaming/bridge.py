"""把回合事件转换为客户端消费的 NDJSON 流，并在客户端解析/渲染。

每行一个 JSON 对象：

    {"type": "bubble_option", "title": ..., "value": ..., ...}   结构化条目
    {"type": "text", "delta": "..."}                              回复文本增量
    {"type": "error", "code": "...", "message": "..."}            回合失败
    {"type": "finish"}                                            回合结束

同一回合内结构化条目一定先于文本出现。
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from dining_agent.agents.suggestion_agent import TurnEvent
from dining_agent.domain.exceptions import BusinessError, StreamFormatError
from dining_agent.domain.suggestions import BUBBLE_OPTION_TYPE, BubbleOption


TEXT_TYPE = "text"
ERROR_TYPE = "error"
FINISH_TYPE = "finish"


def _line(record: Dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False) + "\n"


def encode_turn(events: Iterable[TurnEvent]) -> Iterator[str]:
    """把 TurnEvent 序列编码为 NDJSON 行。"""

    text_started = False
    for event in events:
        if event.kind == "item":
            if text_started:
                raise StreamFormatError(code="ITEM_AFTER_TEXT", message="Structured item emitted after text")
            yield _line(event.item or {})
        elif event.kind == "delta":
            if event.delta_text:
                text_started = True
                yield _line({"type": TEXT_TYPE, "delta": event.delta_text})
        elif event.kind == "final":
            yield _line({"type": FINISH_TYPE})


def encode_error(exc: BaseException) -> str:
    if isinstance(exc, BusinessError):
        return _line({"type": ERROR_TYPE, "code": exc.code, "message": exc.message})
    return _line({"type": ERROR_TYPE, "code": "INTERNAL_ERROR", "message": str(exc) or type(exc).__name__})


@dataclass
class StreamEnvelope:
    """客户端解析出的一个回合。"""

    items: List[Dict[str, Any]] = field(default_factory=list)
    text: str = ""
    error: Optional[Dict[str, str]] = None
    finished: bool = False


def decode_stream(lines: Iterable[str]) -> StreamEnvelope:
    """解析 NDJSON 行，校验“条目先于文本”的顺序约束。"""

    envelope = StreamEnvelope()
    parts: List[str] = []
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise StreamFormatError(code="BAD_RECORD", message=f"Invalid stream record: {e}")
        if not isinstance(record, dict):
            raise StreamFormatError(code="BAD_RECORD", message="Stream record is not an object")
        kind = record.get("type")
        if kind == TEXT_TYPE:
            parts.append(str(record.get("delta") or ""))
        elif kind == ERROR_TYPE:
            envelope.error = {
                "code": str(record.get("code") or "UNKNOWN"),
                "message": str(record.get("message") or ""),
            }
        elif kind == FINISH_TYPE:
            envelope.finished = True
        else:
            if parts:
                raise StreamFormatError(code="ITEM_AFTER_TEXT", message="Structured item received after text")
            envelope.items.append(record)
    envelope.text = "".join(parts)
    return envelope


@dataclass(frozen=True)
class StructuredResultBatch:
    """卡片网格 + 回复文本。"""

    options: List[BubbleOption]
    text: str


@dataclass(frozen=True)
class PlainText:
    text: str


RenderedTurn = Union[StructuredResultBatch, PlainText]


def render_turn(envelope: StreamEnvelope) -> RenderedTurn:
    """按第一个条目的类型标签一次性决定渲染方式。"""

    if envelope.items and envelope.items[0].get("type") == BUBBLE_OPTION_TYPE:
        return StructuredResultBatch(
            options=[BubbleOption.from_item(item) for item in envelope.items],
            text=envelope.text,
        )
    return PlainText(text=envelope.text)

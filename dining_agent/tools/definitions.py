"""工具数据结构定义。

这些 dataclass 描述了“函数调用”的 schema，既用于：
- 将可用函数列表暴露给 LLM（ToolDef / ToolParam）。
- 在流式响应中拼接模型触发的函数调用（ToolCallDelta / ToolCall）。
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


@dataclass
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass
class ToolDef:
    """一个可供 LLM 调用的工具定义。"""

    name: str
    description: str
    params: Dict[str, ToolParam]


@dataclass
class ToolCall:
    """模型发起的一次完整函数调用。

    raw_arguments 保留模型输出的原始参数串，解析失败时 arguments 为空。
    """

    id: str
    name: str
    arguments: Dict[str, Any]
    raw_arguments: str = ""


@dataclass
class ToolCallDelta:
    """流式响应中的函数调用片段。"""

    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


@dataclass
class _PendingCall:
    id: Optional[str] = None
    name: str = ""
    parts: List[str] = field(default_factory=list)


class ToolCallAssembler:
    """按 index 拼接流式函数调用片段，流结束后得到完整 ToolCall 列表。"""

    def __init__(self) -> None:
        self._pending: Dict[int, _PendingCall] = {}

    def feed(self, delta: ToolCallDelta) -> None:
        call = self._pending.setdefault(delta.index, _PendingCall())
        if delta.id:
            call.id = delta.id
        if delta.name:
            call.name += delta.name
        if delta.arguments:
            call.parts.append(delta.arguments)

    def __bool__(self) -> bool:
        return bool(self._pending)

    def calls(self) -> List[ToolCall]:
        result: List[ToolCall] = []
        for index in sorted(self._pending):
            pending = self._pending[index]
            raw = "".join(pending.parts)
            result.append(
                ToolCall(
                    id=pending.id or f"tool_call_{index}",
                    name=pending.name,
                    arguments=_parse_arguments(raw),
                    raw_arguments=raw,
                )
            )
        return result


def _parse_arguments(raw: str) -> Dict[str, Any]:
    if not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}

"""对外 API 服务模块。

提供简化的函数接口供 HTTP 服务与桌面界面调用。
"""

from typing import Any, Dict, Iterable, Iterator, List, Optional

from dining_agent.agents.suggestion_agent import SuggestionAgent, Turn
from dining_agent.domain.models import ChatMessage
from dining_agent.infrastructure.logging.logger import logger
from dining_agent.providers import create_provider
from dining_agent.streaming.bridge import encode_error, encode_turn


_agent: Optional[SuggestionAgent] = None


def get_default_agent() -> SuggestionAgent:
    """获取默认的 SuggestionAgent 实例（单例，不持有任何回合状态）。"""
    global _agent
    if _agent is None:
        _agent = SuggestionAgent(provider_client=create_provider())
    return _agent


def to_chat_messages(messages: Iterable[Dict[str, Any]]) -> List[ChatMessage]:
    """把客户端传来的 {role, content} 列表转成 ChatMessage，忽略未知角色。"""

    result: List[ChatMessage] = []
    for m in messages:
        role = m.get("role")
        content = m.get("content") or ""
        if role in ("user", "assistant") and content:
            result.append(ChatMessage(role=role, content=content))
    return result


def stream_chat(
    messages: List[ChatMessage],
    agent: Optional[SuggestionAgent] = None,
) -> Iterator[str]:
    """运行一个回合并产出 NDJSON 行。

    回合失败时追加一条 error 记录后结束，调用方据此把回合显示为出错。
    """

    agent = agent or get_default_agent()
    turn = Turn()
    try:
        yield from encode_turn(agent.run_turn(messages, turn))
    except Exception as e:
        logger.error(f"Chat turn failed: {e}", extra={"extra": {
            "trace_id": turn.trace_id,
            "state": turn.state.value,
            "error": str(e),
        }})
        yield encode_error(e)

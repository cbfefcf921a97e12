"""餐厅推荐 Agent 核心模块。

一次回合（Turn）的状态流转：

    RECEIVED -> DISPATCHED -> STREAMING -> [TOOL_CALL] -> FINALIZED
    任一步骤出错 -> FAILED

- 首轮请求带两个互斥的函数声明。流的模式由第一个携带内容或函数调用的增量决定：
  文本则直接透传；函数调用则拼接参数、执行搜索、把结果写入带外通道，
  再发起一次不带函数声明的总结请求，总结的流式输出作为用户可见回复。
- 带外通道是显式传入/返回的累加器，回合结束（成功或失败）时封闭。
- 补全接口的错误不在本地恢复，回合标记为 FAILED 后向上抛出。
"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Literal, Optional
from uuid import uuid4

from dining_agent.config.settings import settings
from dining_agent.domain.exceptions import ChannelClosedError
from dining_agent.domain.models import ChatMessage, ChatRequest
from dining_agent.domain.suggestions import ReviewsDirectory, SuggestionQuery
from dining_agent.infrastructure.logging.logger import logger
from dining_agent.prompts import load_prompt, load_system_prompt
from dining_agent.providers.base import ProviderClient
from dining_agent.tools.definitions import ToolCall, ToolCallAssembler, ToolDef
from dining_agent.tools.executor import ToolExecutor
from dining_agent.tools.suggestion_tools import suggestion_tool_defs


class OutOfBandChannel:
    """单个回合的结构化数据通道。

    条目按追加顺序保存；seal() 之后不允许再追加。
    """

    def __init__(self) -> None:
        self._items: List[Dict[str, Any]] = []
        self._sealed = False

    def append(self, item: Dict[str, Any]) -> None:
        if self._sealed:
            raise ChannelClosedError(code="CHANNEL_CLOSED", message="Out-of-band channel is sealed")
        self._items.append(dict(item))

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def items(self) -> List[Dict[str, Any]]:
        return list(self._items)

    def to_json(self) -> str:
        return json.dumps(self._items, ensure_ascii=False)

    def __len__(self) -> int:
        return len(self._items)


class TurnState(str, Enum):
    RECEIVED = "received"
    DISPATCHED = "dispatched"
    STREAMING = "streaming"
    TOOL_CALL = "tool_call"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass
class Turn:
    """一次用户提交到完整回复的上下文。"""

    trace_id: str = field(default_factory=lambda: f"tr-{uuid4().hex}")
    state: TurnState = TurnState.RECEIVED
    channel: OutOfBandChannel = field(default_factory=OutOfBandChannel)
    tool_name: Optional[str] = None
    query: Optional[SuggestionQuery] = None
    content: str = ""
    error: Optional[BaseException] = None


@dataclass
class AgentConfig:
    provider: str = "openai"
    model: str = "agent-chat"
    summary_model_local: str = "summary-local"
    summary_model_reviews: str = "summary-reviews"
    temperature: Optional[float] = None


@dataclass
class TurnEvent:
    """SuggestionAgent 产生的流式事件。

    kind:
        - "item": 一条结构化结果（已写入带外通道）。
        - "delta": 回复文本增量。
        - "final": 回合结束，携带完整 Turn。
    """

    kind: Literal["item", "delta", "final"]
    turn: Turn
    item: Optional[Dict[str, Any]] = None
    delta_text: Optional[str] = None


class SuggestionAgent:
    def __init__(
        self,
        provider_client: ProviderClient,
        tool_executor: Optional[ToolExecutor] = None,
        tool_defs: Optional[List[ToolDef]] = None,
        config: Optional[AgentConfig] = None,
    ):
        self._provider_client = provider_client
        self._tool_executor = tool_executor or ToolExecutor()
        self._tool_defs = tool_defs if tool_defs is not None else suggestion_tool_defs()
        self._config = config or AgentConfig(
            provider=provider_client.name,
            model=getattr(settings, "agent_model", "agent-chat"),
            summary_model_local=getattr(settings, "summary_model_local", "summary-local"),
            summary_model_reviews=getattr(settings, "summary_model_reviews", "summary-reviews"),
        )

    def run_turn(self, messages: List[ChatMessage], turn: Optional[Turn] = None) -> Iterator[TurnEvent]:
        """执行一个回合，逐步产出 item/delta/final 事件。

        Args:
            messages: 会话历史（不含 system 提示）。
            turn: 可选的回合对象；不传则新建，其中的带外通道在结束时封闭。
        """

        turn = turn or Turn()
        log_ctx: Dict[str, Any] = {"trace_id": turn.trace_id}
        start_time = time.time()
        try:
            yield from self._run(messages, turn, log_ctx)
        except Exception as e:
            turn.error = e
            self._transition(turn, TurnState.FAILED, log_ctx)
            self._log(logging.ERROR, "Turn failed", log_ctx, error=str(e), error_type=type(e).__name__)
            raise
        finally:
            turn.channel.seal()

        self._log(
            logging.INFO,
            "Completed turn",
            log_ctx,
            elapsed_seconds=round(time.time() - start_time, 2),
            items=len(turn.channel),
            tool_name=turn.tool_name,
        )

    def _run(self, messages: List[ChatMessage], turn: Turn, log_ctx: Dict[str, Any]) -> Iterator[TurnEvent]:
        chat_messages = [ChatMessage(role="system", content=load_system_prompt())]
        chat_messages.extend(messages)
        req = ChatRequest(
            provider=self._config.provider,
            model=self._config.model,
            messages=chat_messages,
            temperature=self._config.temperature,
            tools=self._tool_defs or None,
            tool_choice="auto",
        )
        self._transition(turn, TurnState.DISPATCHED, log_ctx, message_count=len(chat_messages))
        stream = self._provider_client.chat_stream(req)
        self._transition(turn, TurnState.STREAMING, log_ctx)

        assembler = ToolCallAssembler()
        pieces: List[str] = []
        held: List[str] = []
        ignored_call = False
        mode: Optional[str] = None
        for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            text = choice.delta.content or ""
            if mode is None:
                if choice.tool_call_deltas:
                    mode = "tool"
                elif text:
                    mode = "text"
            if mode == "tool":
                for delta in choice.tool_call_deltas:
                    assembler.feed(delta)
                if text:
                    held.append(text)
            elif mode == "text":
                # 文本之后的函数调用不执行，只记录
                ignored_call = ignored_call or bool(choice.tool_call_deltas)
                if text:
                    pieces.append(text)
                    yield TurnEvent(kind="delta", turn=turn, delta_text=text)

        if mode == "tool":
            call = self._select_call(assembler.calls(), log_ctx)
            if call is not None:
                yield from self._run_tool_call(call, turn, log_ctx)
                return
            # 未知函数：不执行工具，透传首轮流中的文本
            for text in held:
                pieces.append(text)
                yield TurnEvent(kind="delta", turn=turn, delta_text=text)
        elif mode == "text" and ignored_call:
            self._log(logging.WARNING, "Ignored tool call after text output", log_ctx)

        turn.content = "".join(pieces)
        self._transition(turn, TurnState.FINALIZED, log_ctx)
        yield TurnEvent(kind="final", turn=turn)

    def _select_call(self, calls: List[ToolCall], log_ctx: Dict[str, Any]) -> Optional[ToolCall]:
        """两个函数互斥：只执行第一个已声明的调用。"""

        known = [c for c in calls if self._tool_executor.is_known(c.name)]
        for call in calls:
            if not self._tool_executor.is_known(call.name):
                self._log(logging.WARNING, "Unknown function requested", log_ctx, tool_name=call.name)
        if len(known) > 1:
            self._log(
                logging.WARNING,
                "Multiple function calls in one turn, only the first is executed",
                log_ctx,
                tool_names=[c.name for c in known],
            )
        return known[0] if known else None

    def _run_tool_call(self, call: ToolCall, turn: Turn, log_ctx: Dict[str, Any]) -> Iterator[TurnEvent]:
        turn.tool_name = call.name
        self._transition(turn, TurnState.TOOL_CALL, log_ctx, tool_name=call.name, tool_args=call.arguments)

        outcome = self._tool_executor.execute(call)
        turn.query = outcome.query
        for option in outcome.options:
            item = option.to_item()
            turn.channel.append(item)
            yield TurnEvent(kind="item", turn=turn, item=item)
        self._log(
            logging.INFO,
            "Tool execution finished",
            log_ctx,
            tool_name=call.name,
            result_count=len(outcome.options),
        )

        req = self._summary_request(outcome.query, turn.channel)
        self._log(logging.INFO, "Calling provider for summary", log_ctx, model=req.model)
        pieces: List[str] = []
        for chunk in self._provider_client.chat_stream(req):
            if not chunk.choices:
                continue
            text = chunk.choices[0].delta.content or ""
            if text:
                pieces.append(text)
                yield TurnEvent(kind="delta", turn=turn, delta_text=text)

        turn.content = "".join(pieces)
        self._transition(turn, TurnState.FINALIZED, log_ctx)
        yield TurnEvent(kind="final", turn=turn)

    def _summary_request(self, query: SuggestionQuery, channel: OutOfBandChannel) -> ChatRequest:
        """构造总结请求：单条 user 消息，内嵌已累积的结构化数据。"""

        is_reviews = isinstance(query, ReviewsDirectory)
        if not len(channel):
            template = load_prompt("summary_empty")
        elif is_reviews:
            template = load_prompt("summary_reviews")
        else:
            template = load_prompt("summary_local")
        content = template.format(results=channel.to_json(), cuisine=query.term, location=query.location)
        model = self._config.summary_model_reviews if is_reviews else self._config.summary_model_local
        return ChatRequest(
            provider=self._config.provider,
            model=model,
            messages=[ChatMessage(role="user", content=content)],
            temperature=self._config.temperature,
        )

    def _transition(self, turn: Turn, state: TurnState, log_ctx: Dict[str, Any], **fields: Any) -> None:
        previous = turn.state
        turn.state = state
        self._log(logging.INFO, "Turn state changed", log_ctx, from_state=previous.value, to_state=state.value, **fields)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})

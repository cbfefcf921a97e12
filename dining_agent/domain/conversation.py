from dataclasses import dataclass, field
from typing import List, Literal, Optional, TYPE_CHECKING
from uuid import uuid4

from .models import ChatMessage

if TYPE_CHECKING:
    from dining_agent.streaming.bridge import RenderedTurn


MessageRole = Literal["user", "assistant"]


@dataclass
class Message:
    id: str
    role: MessageRole
    content: str
    ui: Optional["RenderedTurn"] = None
    error: Optional[str] = None


@dataclass
class Conversation:
    """浏览器会话内的消息历史，只追加，不持久化。"""

    messages: List[Message] = field(default_factory=list)

    def append(self, role: MessageRole, content: str, ui=None, error: Optional[str] = None) -> Message:
        msg = Message(id=f"m-{uuid4().hex}", role=role, content=content, ui=ui, error=error)
        self.messages.append(msg)
        return msg

    def to_chat_messages(self) -> List[ChatMessage]:
        """转换为发给补全接口的历史。

        失败的回合（出错的助手消息及其对应的用户消息）不参与上下文，
        保证历史中不会出现连续两条用户消息。
        """

        kept: List[Message] = []
        for m in self.messages:
            if m.error is not None:
                if m.role == "assistant" and kept and kept[-1].role == "user":
                    kept.pop()
                continue
            if m.content:
                kept.append(m)
        return [ChatMessage(role=m.role, content=m.content) for m in kept]

    def __len__(self) -> int:
        return len(self.messages)

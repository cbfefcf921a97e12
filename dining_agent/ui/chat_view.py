"""聊天视图的状态与交互逻辑（不依赖任何 GUI 工具包）。

保存当前选择的搜索来源、菜系、邮编以及消息历史。
快捷按钮拼出一条合成的用户输入（如 "yelp italian in 98104"），
与用户手动输入走完全相同的提交路径。
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from dining_agent.domain.conversation import Conversation, Message
from dining_agent.domain.models import ChatMessage
from dining_agent.streaming.bridge import decode_stream, render_turn


@dataclass(frozen=True)
class Option:
    label: str
    value: str


API_OPTIONS = [
    Option("Search with Yelp", "yelp"),
    Option("Search with Google", "google"),
]

RESTAURANT_OPTIONS = [
    Option("Mexican", "mexican"),
    Option("Italian", "italian"),
    Option("Sports Bar", "sportsbar"),
    Option("Japanese Sushi", "japanese"),
    Option("Vegetarian", "vegetarian"),
    Option("Chinese", "chinese"),
    Option("Indian", "indian"),
    Option("French Bistro", "french"),
    Option("Steakhouse", "steakhouse"),
    Option("Seafood", "seafood"),
]

INCOMPLETE_SELECTION_PROMPT = "Please select an API, enter a zip code, and choose a restaurant type."
STREAM_TRUNCATED_MESSAGE = "stream ended before finish"

# 输入：会话历史；输出：NDJSON 行
Transport = Callable[[List[ChatMessage]], Iterable[str]]


class ChatViewState:
    def __init__(self, transport: Transport, alert: Callable[[str], None]):
        self._transport = transport
        self._alert = alert
        self.selected_api = ""
        self.selected_restaurant_type = ""
        self.zip_code = ""
        self.conversation = Conversation()

    @property
    def messages(self) -> List[Message]:
        return self.conversation.messages

    def select_api(self, value: str) -> None:
        self.selected_api = value

    def set_zip_code(self, value: str) -> None:
        self.zip_code = value.strip()

    def select_restaurant_type(self, value: str) -> Optional[Message]:
        """选中菜系；若来源和邮编都已就绪，立即发起搜索。"""

        self.selected_restaurant_type = value
        if self.selected_api and self.zip_code:
            return self._submit_query(value)
        return None

    def compose_query(self, restaurant_type: Optional[str] = None) -> str:
        kind = restaurant_type or self.selected_restaurant_type
        return f"{self.selected_api} {kind} in {self.zip_code}"

    def is_ready(self) -> bool:
        return bool(self.selected_api and self.zip_code and self.selected_restaurant_type)

    def trigger_search(self) -> Optional[Message]:
        """搜索按钮：三项未选全时只弹一次提示，不发起搜索。"""

        if not self.is_ready():
            self._alert(INCOMPLETE_SELECTION_PROMPT)
            return None
        return self._submit_query(self.selected_restaurant_type)

    def _submit_query(self, restaurant_type: str) -> Message:
        return self.submit(self.compose_query(restaurant_type))

    def submit(self, text: str) -> Message:
        """提交一条用户输入，消费回复流，返回助手消息。

        传输层异常、流中的 error 记录或缺少 finish 记录都会使本回合显示为出错。
        """

        self.conversation.append("user", text)
        history = self.conversation.to_chat_messages()
        try:
            envelope = decode_stream(self._transport(history))
        except Exception as e:
            return self.conversation.append("assistant", "", error=str(e) or type(e).__name__)
        if envelope.error:
            return self.conversation.append("assistant", envelope.text, error=envelope.error["message"])
        if not envelope.finished:
            return self.conversation.append("assistant", envelope.text, error=STREAM_TRUNCATED_MESSAGE)
        return self.conversation.append("assistant", envelope.text, ui=render_turn(envelope))

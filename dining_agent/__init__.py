"""Dining Agent 顶层包。

该包提供餐厅推荐聊天助手的核心实现，
包括配置加载、领域模型、补全接口适配、SerpApi 搜索网关、
结果归一化、函数调用编排、流式桥接以及聊天界面。
"""

from dining_agent.agents.suggestion_agent import SuggestionAgent, Turn, TurnState
from dining_agent.api.service import stream_chat

__all__ = ["SuggestionAgent", "Turn", "TurnState", "stream_chat"]

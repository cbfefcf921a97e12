"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供具体实现 (openai_client)。
"""

from typing import Optional

from dining_agent.config.settings import settings
from dining_agent.providers.base import ProviderClient
from dining_agent.providers.openai_client import OpenAIClient


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，目前只有 openai。"""

    provider_name = (name or "openai").lower()
    if provider_name != "openai":
        raise KeyError(f"Unknown provider: {name!r}")
    return OpenAIClient(settings)

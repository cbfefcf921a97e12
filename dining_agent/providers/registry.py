"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "agent-chat"。
- provider_model：厂商实际提供的模型 ID，例如 "gpt-3.5-turbo"。

Yelp 路径的总结调用固定使用 gpt-4，这里只作为配置存在，
可以通过 settings.summary_model_reviews 换成其他逻辑名。"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_tokens: Optional[int]
    default_temperature: Optional[float]


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    models={
        "agent-chat": ModelConfig(
            logical_name="agent-chat",
            provider_model="gpt-3.5-turbo",
            max_tokens=None,
            default_temperature=None,
        ),
        "summary-local": ModelConfig(
            logical_name="summary-local",
            provider_model="gpt-3.5-turbo",
            max_tokens=256,
            default_temperature=None,
        ),
        "summary-reviews": ModelConfig(
            logical_name="summary-reviews",
            provider_model="gpt-4",
            max_tokens=256,
            default_temperature=None,
        ),
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openai": OPENAI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def resolve_model(cfg: ProviderConfig, logical_name: str) -> ModelConfig:
    """未登记的名字按原样当作厂商模型 ID 使用。"""

    if logical_name in cfg.models:
        return cfg.models[logical_name]
    return ModelConfig(
        logical_name=logical_name,
        provider_model=logical_name,
        max_tokens=None,
        default_temperature=None,
    )

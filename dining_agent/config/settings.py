"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。

两个密钥（OPENAI_API_KEY、SERP_API_KEY）均作为不透明字符串读取，
在首次真正需要时才校验是否存在。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("DINING_AGENT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 补全接口（OpenAI 兼容） ----
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API 密钥")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI 兼容接口的基础URL",
    )
    agent_model: str = Field(
        default="agent-chat",
        description="首轮（带函数声明）调用使用的逻辑模型名",
    )
    summary_model_local: str = Field(
        default="summary-local",
        description="Google Local 结果总结调用使用的逻辑模型名",
    )
    summary_model_reviews: str = Field(
        default="summary-reviews",
        description="Yelp 结果总结调用使用的逻辑模型名",
    )

    # ---- 搜索聚合接口（SerpApi） ----
    serp_api_key: Optional[str] = Field(default=None, description="SerpApi 密钥")
    serp_base_url: str = Field(
        default="https://serpapi.com/search",
        description="SerpApi 搜索端点",
    )

    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    server_host: str = Field(default="127.0.0.1", description="HTTP 服务监听地址")
    server_port: int = Field(default=8000, ge=1, le=65535, description="HTTP 服务端口")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("openai_api_key", "serp_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()

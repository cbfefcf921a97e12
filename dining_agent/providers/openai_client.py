"""OpenAI 兼容的 chat/completions 适配器。

- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>
- 流式: SSE，每行 "data: {...}"，以 "data: [DONE]" 结束。

函数调用以 tool_calls 增量返回（兼容旧的 function_call 字段），
这里只负责把片段原样解析出来，拼接由 ToolCallAssembler 完成。
"""

import json
from typing import Any, Dict, Iterable, List

import httpx

from dining_agent.config.settings import settings
from dining_agent.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from dining_agent.domain.models import (
    ChatMessage,
    ChatRequest,
    ChatStreamChunk,
    ChatStreamChoice,
    ChatUsage,
)
from dining_agent.providers.registry import OPENAI_CONFIG, ModelConfig, resolve_model
from dining_agent.tools.definitions import ToolCallDelta, ToolDef


class OpenAIClient:
    """OpenAI Provider 客户端实现。"""

    name = "openai"

    def __init__(self, cfg=settings):
        self._settings = cfg

    def chat_stream(self, req: ChatRequest) -> Iterable[ChatStreamChunk]:
        if not getattr(self._settings, "openai_api_key", None):
            raise ValidationError(code="MISSING_API_KEY", message="OPENAI_API_KEY not set")
        model_cfg = resolve_model(OPENAI_CONFIG, req.model)
        payload = self._build_payload(req, model_cfg)
        base = getattr(self._settings, "openai_base_url", None) or OPENAI_CONFIG.base_url
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                with client.stream(
                    "POST",
                    f"{base.rstrip('/')}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._settings.openai_api_key}",
                        "Content-Type": "application/json",
                    },
                ) as resp:
                    if resp.status_code == 429:
                        raise RateLimitError(code="RATE_LIMIT", message="OpenAI rate limit", http_status=429)
                    if resp.status_code >= 400:
                        resp.read()
                        raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
                    for line in resp.iter_lines():
                        if not line:
                            continue
                        data_str = line
                        if data_str.startswith("data:"):
                            data_str = data_str[5:].strip()
                        else:
                            data_str = data_str.strip()
                        if not data_str or data_str == "[DONE]":
                            continue
                        try:
                            payload_chunk = json.loads(data_str)
                        except json.JSONDecodeError:
                            continue
                        if isinstance(payload_chunk, dict) and payload_chunk.get("error"):
                            err = payload_chunk["error"]
                            message = err.get("message") if isinstance(err, dict) else str(err)
                            raise ApiError(code="API_ERROR", message=message or "stream error", http_status=502)
                        yield self._parse_stream_chunk(payload_chunk, req)
        except httpx.HTTPError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e), http_status=502)

    # ---- 辅助方法 ----

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> dict:
        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "messages": [self._message_to_payload(m) for m in req.messages],
            "stream": True,
        }
        temperature = req.temperature if req.temperature is not None else model_cfg.default_temperature
        if temperature is not None:
            payload["temperature"] = temperature
        max_tokens = req.max_tokens or model_cfg.max_tokens
        if max_tokens:
            payload["max_tokens"] = max_tokens
        if req.tools:
            payload["tools"] = [self._serialize_tool(tool) for tool in req.tools]
            payload["tool_choice"] = req.tool_choice
        return payload

    def _parse_stream_chunk(self, data: dict, req: ChatRequest) -> ChatStreamChunk:
        choices: list[ChatStreamChoice] = []
        for i, ch in enumerate(data.get("choices") or []):
            delta_payload = ch.get("delta") or {}
            choices.append(
                ChatStreamChoice(
                    index=ch.get("index", i),
                    delta=ChatMessage(
                        role=delta_payload.get("role") or "assistant",
                        content=delta_payload.get("content") or "",
                    ),
                    tool_call_deltas=self._parse_tool_call_deltas(delta_payload),
                    finish_reason=ch.get("finish_reason"),
                )
            )
        usage_raw = data.get("usage") or {}
        usage = None
        if usage_raw:
            usage = ChatUsage(
                prompt_tokens=usage_raw.get("prompt_tokens", 0),
                completion_tokens=usage_raw.get("completion_tokens", 0),
                total_tokens=usage_raw.get("total_tokens", 0),
            )
        return ChatStreamChunk(
            provider=self.name,
            model=req.model,
            choices=choices,
            usage=usage,
            raw=data,
        )

    @staticmethod
    def _parse_tool_call_deltas(payload: Dict[str, Any]) -> List[ToolCallDelta]:
        """解析 tool_calls 片段，兼容旧版 function_call。"""

        deltas: List[ToolCallDelta] = []
        for pos, call in enumerate(payload.get("tool_calls") or []):
            func = call.get("function") or {}
            deltas.append(
                ToolCallDelta(
                    index=call.get("index", pos),
                    id=call.get("id"),
                    name=func.get("name"),
                    arguments=func.get("arguments") or "",
                )
            )
        function_call = payload.get("function_call")
        if function_call:
            deltas.append(
                ToolCallDelta(
                    index=0,
                    name=function_call.get("name"),
                    arguments=function_call.get("arguments") or "",
                )
            )
        return deltas

    @staticmethod
    def _message_to_payload(message: ChatMessage) -> Dict[str, Any]:
        return {"role": message.role, "content": message.content}

    @staticmethod
    def _serialize_tool(tool: ToolDef) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in tool.params.items():
            schema = param.schema or {"type": "string"}
            if param.description:
                schema = {**schema, "description": param.description}
            properties[name] = schema
            if param.required:
                required.append(name)
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                },
            },
        }

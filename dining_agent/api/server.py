"""HTTP 服务。

ENDPOINTS:
  GET  /health    - 返回服务状态以及两个密钥是否已配置。
  POST /api/chat  - 请求体 {"messages": [{"role", "content"}, ...]}，
                    以 application/x-ndjson 流式返回一个回合（格式见 streaming.bridge）。

回合中途失败时 HTTP 状态已经发出，失败以流中的 error 记录表示。
"""

from typing import List, Literal

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from dining_agent.api import service
from dining_agent.config.settings import settings
from dining_agent.infrastructure.logging.logger import logger


class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=32_000)


class ChatRequestIn(BaseModel):
    messages: List[ChatMessageIn] = Field(..., min_length=1, max_length=200)


app = FastAPI(title="Dining Agent API")

# 允许其他端口上的前端直接调用
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "completion_key": bool(settings.openai_api_key),
        "search_key": bool(settings.serp_api_key),
    }


@app.post("/api/chat")
def chat(request: ChatRequestIn):
    messages = service.to_chat_messages(m.model_dump() for m in request.messages)
    if not messages or messages[-1].role != "user":
        raise HTTPException(status_code=400, detail="The last message must be a non-empty user message")
    logger.info("Chat request received", extra={"extra": {"message_count": len(messages)}})
    return StreamingResponse(service.stream_chat(messages), media_type="application/x-ndjson")


def main() -> None:
    uvicorn.run(app, host=settings.server_host, port=settings.server_port)


if __name__ == "__main__":
    main()

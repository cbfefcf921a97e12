"""领域层模型与协议。

包含：
- models: 统一的 ChatMessage / ChatRequest / ChatStreamChunk 模型。
- suggestions: 搜索查询变体与归一化结果 BubbleOption。
- conversation: 会话与消息模型（仅内存）。
- exceptions: 业务异常类型定义。
"""

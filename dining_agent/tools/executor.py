from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from dining_agent.domain.exceptions import ValidationError
from dining_agent.domain.suggestions import BubbleOption, SuggestionQuery
from dining_agent.search.gateway import SerpApiGateway
from dining_agent.search.normalizer import extract_results, normalize
from .definitions import ToolCall
from .suggestion_tools import TOOL_ARGS


@dataclass
class ToolOutcome:
    """一次函数调用的执行结果。"""

    call_id: str
    query: SuggestionQuery
    options: List[BubbleOption] = field(default_factory=list)


class ToolExecutor:
    def __init__(self, gateway: Optional[SerpApiGateway] = None):
        self._gateway = gateway or SerpApiGateway()

    @staticmethod
    def is_known(name: str) -> bool:
        return name in TOOL_ARGS

    def parse_query(self, call: ToolCall) -> SuggestionQuery:
        args_model = TOOL_ARGS.get(call.name)
        if args_model is None:
            raise ValidationError(code="UNKNOWN_TOOL", message=f"Unknown tool {call.name!r}")
        try:
            args = args_model.model_validate(call.arguments)
        except PydanticValidationError as e:
            raise ValidationError(
                code="INVALID_TOOL_ARGUMENTS",
                message=f"Invalid arguments for {call.name}: {e.errors(include_url=False)}",
                tool_name=call.name,
                raw_arguments=call.raw_arguments,
            )
        return args.to_query()

    def execute(self, call: ToolCall) -> ToolOutcome:
        query = self.parse_query(call)
        body = self._gateway.search(query)
        options = normalize(query.provider, extract_results(query.provider, body))
        return ToolOutcome(call_id=call.id, query=query, options=options)

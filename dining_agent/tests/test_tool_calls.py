import pytest

from dining_agent.domain.exceptions import ValidationError
from dining_agent.domain.suggestions import LocalSearch, ReviewsDirectory
from dining_agent.tools.definitions import ToolCall, ToolCallAssembler, ToolCallDelta
from dining_agent.tools.executor import ToolExecutor
from dining_agent.tools.suggestion_tools import GOOGLE_TOOL, YELP_TOOL


class GatewayStub:
    def __init__(self, body=None):
        self.body = body
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        return self.body


def test_assembler_joins_fragments_by_index():
    asm = ToolCallAssembler()
    assert not asm
    asm.feed(ToolCallDelta(index=0, id="c1", name=YELP_TOOL))
    asm.feed(ToolCallDelta(index=1, id="c2", name=GOOGLE_TOOL, arguments='{"cuisine"'))
    asm.feed(ToolCallDelta(index=0, arguments='{"cuisine": "italian", '))
    asm.feed(ToolCallDelta(index=0, arguments='"location": "98104"}'))
    asm.feed(ToolCallDelta(index=1, arguments=': "thai"}'))
    assert asm
    first, second = asm.calls()
    assert first.id == "c1"
    assert first.arguments == {"cuisine": "italian", "location": "98104"}
    assert second.name == GOOGLE_TOOL
    assert second.arguments == {"cuisine": "thai"}


def test_assembler_bad_json_keeps_raw():
    asm = ToolCallAssembler()
    asm.feed(ToolCallDelta(index=0, name=GOOGLE_TOOL, arguments="{not json"))
    [call] = asm.calls()
    assert call.arguments == {}
    assert call.raw_arguments == "{not json"
    assert call.id == "tool_call_0"


def test_parse_yelp_query():
    call = ToolCall(
        id="c1",
        name=YELP_TOOL,
        arguments={"cuisine": " italian ", "location": "98104", "cflt": "restaurants", "attrs": ["price", " "]},
    )
    query = ToolExecutor(gateway=GatewayStub()).parse_query(call)
    assert query == ReviewsDirectory(
        term="italian", location="98104", category="restaurants", sort_by=None, attributes=("price",)
    )


def test_parse_google_query_ignores_yelp_filters():
    call = ToolCall(id="c1", name=GOOGLE_TOOL, arguments={"cuisine": "sushi", "location": "Seattle", "cflt": "bars"})
    query = ToolExecutor(gateway=GatewayStub()).parse_query(call)
    assert query == LocalSearch(term="sushi", location="Seattle")


@pytest.mark.parametrize(
    "arguments",
    [
        {},
        {"cuisine": "italian"},
        {"cuisine": "   ", "location": "98104"},
        {"cuisine": ["italian"], "location": "98104"},
    ],
)
def test_invalid_arguments(arguments):
    call = ToolCall(id="c1", name=GOOGLE_TOOL, arguments=arguments)
    with pytest.raises(ValidationError) as ei:
        ToolExecutor(gateway=GatewayStub()).parse_query(call)
    assert ei.value.code == "INVALID_TOOL_ARGUMENTS"
    assert ei.value.extra["tool_name"] == GOOGLE_TOOL


def test_unknown_tool():
    executor = ToolExecutor(gateway=GatewayStub())
    assert not executor.is_known("get_weather")
    with pytest.raises(ValidationError) as ei:
        executor.parse_query(ToolCall(id="c1", name="get_weather", arguments={}))
    assert ei.value.code == "UNKNOWN_TOOL"


def test_execute_normalizes_results():
    gateway = GatewayStub({"local_results": [{"title": "A", "place_id": "p1", "rating": 4.5}]})
    outcome = ToolExecutor(gateway=gateway).execute(
        ToolCall(id="c9", name=GOOGLE_TOOL, arguments={"cuisine": "pizza", "location": "98104"})
    )
    assert outcome.call_id == "c9"
    assert gateway.queries == [LocalSearch(term="pizza", location="98104")]
    assert [o.value for o in outcome.options] == ["p1"]


def test_execute_gateway_failure_gives_no_options():
    outcome = ToolExecutor(gateway=GatewayStub(None)).execute(
        ToolCall(id="c1", name=YELP_TOOL, arguments={"cuisine": "pizza", "location": "98104"})
    )
    assert outcome.options == []

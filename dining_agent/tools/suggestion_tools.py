"""两个互斥的餐厅推荐函数声明及其参数校验。

模型输出的参数在进入搜索网关前先经过 pydantic 校验，
缺少 cuisine/location 或类型不对的调用会被拒绝。
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dining_agent.domain.suggestions import LocalSearch, ReviewsDirectory, SuggestionQuery
from .definitions import ToolDef, ToolParam


GOOGLE_TOOL = "get_restaurant_suggestions_google"
YELP_TOOL = "get_restaurant_suggestions_yelp"

_CUISINE = ToolParam(
    name="cuisine",
    description="Type of cuisine, e.g., Italian, Vegan",
    required=True,
    schema={"type": "string"},
)
_LOCATION = ToolParam(
    name="location",
    description="Zip code or city area for the restaurant search, e.g., 98104 or Seattle",
    required=True,
    schema={"type": "string"},
)


def suggestion_tool_defs() -> List[ToolDef]:
    return [
        ToolDef(
            name=GOOGLE_TOOL,
            description="Get restaurant suggestions from Google based on cuisine type",
            params={"cuisine": _CUISINE, "location": _LOCATION},
        ),
        ToolDef(
            name=YELP_TOOL,
            description="Get restaurant suggestions from Yelp based on cuisine type",
            params={
                "cuisine": _CUISINE,
                "location": _LOCATION,
                "cflt": ToolParam(
                    name="cflt",
                    description="Category filter, e.g., bars, restaurants",
                    required=False,
                    schema={"type": "string"},
                ),
                "sortby": ToolParam(
                    name="sortby",
                    description="Sorting criteria, e.g., rating, review_count",
                    required=False,
                    schema={"type": "string"},
                ),
                "attrs": ToolParam(
                    name="attrs",
                    description="Additional attributes for filtering, e.g., price, features",
                    required=False,
                    schema={"type": "array", "items": {"type": "string"}},
                ),
            },
        ),
    ]


class GoogleArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cuisine: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=200)

    @field_validator("cuisine", "location")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    def to_query(self) -> SuggestionQuery:
        return LocalSearch(term=self.cuisine, location=self.location)


class YelpArgs(GoogleArgs):
    cflt: Optional[str] = None
    sortby: Optional[str] = None
    attrs: List[str] = Field(default_factory=list)

    def to_query(self) -> SuggestionQuery:
        return ReviewsDirectory(
            term=self.cuisine,
            location=self.location,
            category=(self.cflt or "").strip() or None,
            sort_by=(self.sortby or "").strip() or None,
            attributes=tuple(a.strip() for a in self.attrs if a and a.strip()),
        )


TOOL_ARGS: Dict[str, type[GoogleArgs]] = {
    GOOGLE_TOOL: GoogleArgs,
    YELP_TOOL: YelpArgs,
}

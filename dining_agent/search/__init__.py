"""搜索集成层。

- gateway: 通过 SerpApi 访问 Google Local / Yelp。
- normalizer: 把原始结果归一化为 BubbleOption。
"""

from dining_agent.search.gateway import SerpApiGateway, build_params, fetch_search_results
from dining_agent.search.normalizer import extract_results, normalize

__all__ = ["SerpApiGateway", "build_params", "fetch_search_results", "extract_results", "normalize"]

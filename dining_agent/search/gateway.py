"""SerpApi 搜索网关。

一次查询对应一次 HTTP GET：
- URL: {serp_base_url}?engine=...&...&api_key=...
- Yelp 使用 find_desc/find_loc，可选 cflt/sortby/attrs（attrs 可重复）。
- Google Local 使用 q/location，不带任何过滤参数。

任何非 2xx、传输错误或无法解析的响应都会被记录日志并返回 None，
调用方需要把“没有结果”当作正常结果处理。
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from dining_agent.config.settings import settings
from dining_agent.domain.suggestions import (
    LocalSearch,
    ReviewsDirectory,
    SuggestionQuery,
    build_query,
)
from dining_agent.infrastructure.logging.logger import logger


QueryParams = List[Tuple[str, str]]


def build_params(query: SuggestionQuery, api_key: str) -> QueryParams:
    """按查询变体构造有序的 query 参数列表。"""

    params: QueryParams = [("engine", query.provider.value)]
    if isinstance(query, ReviewsDirectory):
        params.append(("find_desc", query.term))
        params.append(("find_loc", query.location))
        if query.category:
            params.append(("cflt", query.category))
        if query.sort_by:
            params.append(("sortby", query.sort_by))
        for attr in query.attributes:
            params.append(("attrs", attr))
    elif isinstance(query, LocalSearch):
        params.append(("q", query.term))
        params.append(("location", query.location))
    else:
        raise TypeError(f"Unsupported query type: {type(query).__name__}")
    params.append(("api_key", api_key))
    return params


class SerpApiGateway:
    """SerpApi 客户端，失败时降级为 None。"""

    def __init__(self, cfg=settings):
        self._settings = cfg

    def search(self, query: SuggestionQuery) -> Optional[Dict[str, Any]]:
        api_key = getattr(self._settings, "serp_api_key", None)
        log_ctx = {
            "engine": query.provider.value,
            "term": query.term,
            "location": query.location,
        }
        if not api_key:
            _log(logging.ERROR, "SERP_API_KEY not set, search skipped", log_ctx)
            return None

        params = build_params(query, api_key)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.get(self._settings.serp_base_url, params=params)
        except httpx.HTTPError as e:
            _log(logging.ERROR, "Search request failed", log_ctx, error=str(e))
            return None

        if not 200 <= resp.status_code < 300:
            _log(logging.ERROR, "Search returned error status", log_ctx, http_status=resp.status_code)
            return None

        try:
            data = resp.json()
        except ValueError as e:
            _log(logging.ERROR, "Search response is not JSON", log_ctx, error=str(e))
            return None
        if not isinstance(data, dict):
            _log(logging.ERROR, "Search response is not an object", log_ctx)
            return None

        _log(logging.INFO, "Search finished", log_ctx, http_status=resp.status_code)
        return data


def fetch_search_results(
    engine: str,
    term: str,
    location: str,
    api_key: str,
    category: Optional[str] = None,
    sort_by: Optional[str] = None,
    attributes: Optional[list[str]] = None,
    cfg=settings,
) -> Optional[Dict[str, Any]]:
    """按 engine 标识发起一次搜索，过滤参数只对 Yelp 生效。"""

    query = build_query(engine, term, location, category, sort_by, attributes)
    overrides = _KeyOverride(cfg, api_key)
    return SerpApiGateway(overrides).search(query)


class _KeyOverride:
    """在不修改全局配置的情况下替换 serp_api_key。"""

    def __init__(self, cfg, api_key: str):
        self._cfg = cfg
        self.serp_api_key = api_key

    def __getattr__(self, name: str) -> Any:
        return getattr(self._cfg, name)


def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
    payload = dict(log_ctx)
    payload.update(fields)
    logger.log(level, message, extra={"extra": payload})

import httpx

from dining_agent.domain.suggestions import LocalSearch, ReviewsDirectory, build_query
from dining_agent.search.gateway import SerpApiGateway, build_params, fetch_search_results


class SettingsStub:
    serp_api_key = "serp-test-key"
    serp_base_url = "https://serpapi.com/search"
    http_timeout = 1.0


def _client_returning(resp, captured):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def get(self, url, params=None, **_):
            captured["url"] = url
            captured["params"] = params
            if isinstance(resp, Exception):
                raise resp
            return resp

    return Client


class Resp:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


def test_build_params_yelp_with_filters():
    query = ReviewsDirectory(
        term="italian",
        location="98104",
        category="restaurants",
        sort_by="rating",
        attributes=("price", "outdoor_seating"),
    )
    params = build_params(query, "k")
    assert params == [
        ("engine", "yelp"),
        ("find_desc", "italian"),
        ("find_loc", "98104"),
        ("cflt", "restaurants"),
        ("sortby", "rating"),
        ("attrs", "price"),
        ("attrs", "outdoor_seating"),
        ("api_key", "k"),
    ]


def test_build_params_yelp_without_filters():
    params = build_params(ReviewsDirectory(term="thai", location="Seattle"), "k")
    keys = [k for k, _ in params]
    assert keys == ["engine", "find_desc", "find_loc", "api_key"]


def test_build_params_google_local_drops_filters():
    query = build_query("google_local", "mexican", "98101", category="bars", sort_by="rating", attributes=["price"])
    assert isinstance(query, LocalSearch)
    params = build_params(query, "k")
    assert params == [
        ("engine", "google_local"),
        ("q", "mexican"),
        ("location", "98101"),
        ("api_key", "k"),
    ]
    keys = {k for k, _ in params}
    assert not keys & {"cflt", "sortby", "attrs", "find_desc", "find_loc"}


def test_search_success(monkeypatch):
    captured = {}
    body = {"local_results": [{"title": "A"}]}
    monkeypatch.setattr("httpx.Client", _client_returning(Resp(200, body), captured))
    res = SerpApiGateway(SettingsStub()).search(LocalSearch(term="pizza", location="98104"))
    assert res == body
    assert captured["url"] == "https://serpapi.com/search"
    assert ("q", "pizza") in captured["params"]
    assert captured["params"][-1] == ("api_key", "serp-test-key")


def test_search_http_500_returns_none(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _client_returning(Resp(500, {"error": "boom"}), captured))
    assert SerpApiGateway(SettingsStub()).search(ReviewsDirectory(term="x", location="y")) is None


def test_search_transport_error_returns_none(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _client_returning(httpx.ConnectError("refused"), captured))
    assert SerpApiGateway(SettingsStub()).search(LocalSearch(term="x", location="y")) is None


def test_search_invalid_json_returns_none(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _client_returning(Resp(200, None), captured))
    assert SerpApiGateway(SettingsStub()).search(LocalSearch(term="x", location="y")) is None


def test_search_without_key_skips_request(monkeypatch):
    class NoKey(SettingsStub):
        serp_api_key = None

    def boom(*a, **kw):
        raise AssertionError("no request expected")

    monkeypatch.setattr("httpx.Client", boom)
    assert SerpApiGateway(NoKey()).search(LocalSearch(term="x", location="y")) is None


def test_fetch_search_results_uses_given_key(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _client_returning(Resp(200, {"organic_results": []}), captured))
    res = fetch_search_results("yelp", "italian", "98104", "explicit-key", category="restaurants", cfg=SettingsStub())
    assert res == {"organic_results": []}
    assert ("cflt", "restaurants") in captured["params"]
    assert captured["params"][-1] == ("api_key", "explicit-key")
